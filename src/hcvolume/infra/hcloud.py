"""Hetzner Cloud API client.

Provides async access to the volume, server and action endpoints.
"""

import logging

import httpx

from hcvolume import __version__
from hcvolume.config import CloudConfig
from hcvolume.interfaces import ServerLookup, VolumeOperations
from hcvolume.models import (
    Action,
    Server,
    Volume,
    VolumeCreateRequest,
    VolumeCreateResult,
)

logger = logging.getLogger(__name__)

PAGE_SIZE = 50


class HCloudAPIError(Exception):
    """Raised when the API answers with an error status.

    Attributes:
        status_code: HTTP status of the response.
        code: Machine-readable error code from the response body.
        message: Error message from the response body.
    """

    def __init__(self, status_code: int, code: str, message: str) -> None:
        self.status_code = status_code
        self.code = code
        self.message = message
        super().__init__(f"{message} ({code}, HTTP {status_code})")


def raise_for_error(resp: httpx.Response) -> None:
    """Raise HCloudAPIError for error responses."""
    if not resp.is_error:
        return
    code, message = "unknown", resp.reason_phrase or "request failed"
    try:
        error = resp.json().get("error") or {}
        code = error.get("code", code)
        message = error.get("message", message)
    except ValueError:
        pass
    raise HCloudAPIError(resp.status_code, code, message)


# =============================================================================
# HTTP Client (Singleton)
# =============================================================================


class HCloudClient:
    """Async Hetzner Cloud HTTP client."""

    def __init__(
        self,
        config: CloudConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _create_client(self) -> httpx.AsyncClient:
        """Create a new HTTP client."""
        return httpx.AsyncClient(
            base_url=self._config.endpoint,
            timeout=self._config.api_timeout,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {self._config.token.strip()}",
                "User-Agent": f"hcvolume/{__version__}",
            },
        )

    async def get(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = self._create_client()
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None


_hcloud_client: HCloudClient | None = None


def get_hcloud_client(config: CloudConfig) -> HCloudClient:
    """Get the global API client singleton."""
    global _hcloud_client
    if _hcloud_client is None:
        _hcloud_client = HCloudClient(config)
    return _hcloud_client


async def close_hcloud() -> None:
    """Close the global API client."""
    global _hcloud_client
    if _hcloud_client:
        await _hcloud_client.close()
        _hcloud_client = None


# =============================================================================
# Volume API
# =============================================================================


class VolumeAPI(VolumeOperations):
    """Volume endpoints."""

    def __init__(self, client: HCloudClient) -> None:
        self._hcloud = client

    async def all(self) -> list[Volume]:
        client = await self._hcloud.get()
        volumes: list[Volume] = []
        page: int | None = 1
        while page:
            resp = await client.get("/volumes", params={"page": page, "per_page": PAGE_SIZE})
            raise_for_error(resp)
            data = resp.json()
            volumes.extend(Volume.model_validate(v) for v in data.get("volumes", []))
            page = data.get("meta", {}).get("pagination", {}).get("next_page")
        return volumes

    async def get_by_name(self, name: str) -> Volume | None:
        client = await self._hcloud.get()
        resp = await client.get("/volumes", params={"name": name})
        raise_for_error(resp)
        volumes = resp.json().get("volumes", [])
        if not volumes:
            return None
        return Volume.model_validate(volumes[0])

    async def create(self, request: VolumeCreateRequest) -> VolumeCreateResult:
        client = await self._hcloud.get()
        resp = await client.post("/volumes", json=request.to_api())
        raise_for_error(resp)
        result = VolumeCreateResult.model_validate(resp.json())
        logger.debug("Created volume: %s (id=%d)", result.volume.name, result.volume.id)
        return result

    async def _action(self, volume: Volume, command: str, body: dict | None = None) -> Action:
        client = await self._hcloud.get()
        resp = await client.post(f"/volumes/{volume.id}/actions/{command}", json=body or {})
        raise_for_error(resp)
        return Action.model_validate(resp.json()["action"])

    async def attach(self, volume: Volume, server: Server) -> Action:
        return await self._action(volume, "attach", {"server": server.id, "automount": False})

    async def detach(self, volume: Volume) -> Action:
        return await self._action(volume, "detach")

    async def change_protection(self, volume: Volume, delete: bool) -> Action:
        return await self._action(volume, "change_protection", {"delete": delete})

    async def delete(self, volume: Volume) -> None:
        client = await self._hcloud.get()
        resp = await client.delete(f"/volumes/{volume.id}")
        raise_for_error(resp)
        logger.debug("Deleted volume: %s (id=%d)", volume.name, volume.id)


# =============================================================================
# Server API
# =============================================================================


class ServerAPI(ServerLookup):
    """Server endpoints."""

    def __init__(self, client: HCloudClient) -> None:
        self._hcloud = client

    async def get_by_name(self, name: str) -> Server | None:
        client = await self._hcloud.get()
        resp = await client.get("/servers", params={"name": name})
        raise_for_error(resp)
        servers = resp.json().get("servers", [])
        if not servers:
            return None
        return Server.model_validate(servers[0])

    async def get_by_id(self, server_id: int) -> Server | None:
        client = await self._hcloud.get()
        resp = await client.get(f"/servers/{server_id}")
        if resp.status_code == 404:
            return None
        raise_for_error(resp)
        return Server.model_validate(resp.json()["server"])


# =============================================================================
# Action API
# =============================================================================


class ActionAPI:
    """Action endpoints."""

    def __init__(self, client: HCloudClient) -> None:
        self._hcloud = client

    async def get(self, action_id: int) -> Action:
        client = await self._hcloud.get()
        resp = await client.get(f"/actions/{action_id}")
        raise_for_error(resp)
        return Action.model_validate(resp.json()["action"])
