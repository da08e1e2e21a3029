"""Capability interfaces for the control plane.

The lifecycle controller depends on three independently substitutable
capability groups:

- VolumeOperations: volume queries and mutations
- ServerLookup: resolving cloud servers
- ActionWaiting: blocking until an asynchronous action is terminal

Implementations:
- hcvolume.infra.hcloud.VolumeAPI / ServerAPI: Hetzner Cloud REST API
- hcvolume.driver.waiter.ActionWaiter: polling waiter
"""

from abc import ABC, abstractmethod

from hcvolume.models import Action, Server, Volume, VolumeCreateRequest, VolumeCreateResult


class VolumeOperations(ABC):
    """Interface for remote volume operations."""

    @abstractmethod
    async def all(self) -> list[Volume]:
        """List every volume visible to the API token (all pages)."""
        ...

    @abstractmethod
    async def get_by_name(self, name: str) -> Volume | None:
        """Get a volume by its remote name.

        Returns:
            The volume, or None if no volume has that name.
        """
        ...

    @abstractmethod
    async def create(self, request: VolumeCreateRequest) -> VolumeCreateResult:
        """Create a volume. The returned action must be waited on."""
        ...

    @abstractmethod
    async def attach(self, volume: Volume, server: Server) -> Action:
        ...

    @abstractmethod
    async def detach(self, volume: Volume) -> Action:
        ...

    @abstractmethod
    async def change_protection(self, volume: Volume, delete: bool) -> Action:
        ...

    @abstractmethod
    async def delete(self, volume: Volume) -> None:
        """Delete a volume. Fails while it is protected or attached."""
        ...


class ServerLookup(ABC):
    """Interface for resolving cloud servers."""

    @abstractmethod
    async def get_by_name(self, name: str) -> Server | None:
        ...

    @abstractmethod
    async def get_by_id(self, server_id: int) -> Server | None:
        ...


class ActionWaiting(ABC):
    """Interface for waiting on asynchronous actions."""

    @abstractmethod
    async def wait(self, action: Action, timeout: float | None = None) -> None:
        """Block until the action is terminal.

        Args:
            action: Action handle returned by a mutating call.
            timeout: Optional upper bound in seconds.

        Raises:
            ActionFailedError: The action finished with an error.
            ActionTimeoutError: The timeout expired first.
        """
        ...
