"""Volume lifecycle controller.

Implements the Docker volume driver operations on top of the cloud
control plane and the local mount manager.

Every mutating remote call returns an action that is waited on before
the next dependent step. Nothing is rolled back automatically: a failed
create may leave an unattached or unformatted volume behind, and the
error names the phase that failed.
"""

from __future__ import annotations

import logging
import os
import socket
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

import httpx
from pydantic import BaseModel

from hcvolume.api.errors import (
    CloudAPIError,
    InvalidOptionError,
    MountError,
    PluginError,
    ServerResolutionError,
    VolumeNotFoundError,
)
from hcvolume.config import REMOTE_FORMATS, SUPPORTED_FILESYSTEMS, PluginConfig
from hcvolume.driver.lock import get_volume_lock
from hcvolume.driver.mounts import MountManager
from hcvolume.driver.naming import VolumeNaming
from hcvolume.driver.options import OptionResolver
from hcvolume.driver.result import OperationResult, StepResult, StepStatus
from hcvolume.driver.waiter import ActionWaiter
from hcvolume.infra.hcloud import ActionAPI, HCloudAPIError, ServerAPI, VolumeAPI, get_hcloud_client
from hcvolume.interfaces import ActionWaiting, ServerLookup, VolumeOperations
from hcvolume.logging_schema import LogEvent
from hcvolume.metrics import HCVOLUME_OPERATION_DURATION, HCVOLUME_OPERATION_ERRORS
from hcvolume.models import Server, Volume, VolumeCreateRequest

logger = logging.getLogger(__name__)

# Label attached to every volume created by the driver.
MANAGED_LABEL = "docker-volume-hetzner"

# Volumes are visible from every host in the cluster, not just the creator.
SCOPE_GLOBAL = "global"


class VolumeInfo(BaseModel):
    """Snapshot of a volume as reported to the container runtime."""

    name: str
    mountpoint: str = ""
    created_at: str = ""
    status: dict[str, Any] = {}


@contextmanager
def _phase(description: str) -> Iterator[None]:
    """Prefix errors raised inside the block with the phase description."""
    try:
        yield
    except PluginError as e:
        raise e.wrap(description) from e
    except (HCloudAPIError, httpx.HTTPError) as e:
        raise CloudAPIError(f"{description}: {e}") from e


@contextmanager
def _track(operation: str) -> Iterator[None]:
    started = time.monotonic()
    try:
        yield
    except PluginError as e:
        HCVOLUME_OPERATION_ERRORS.labels(operation=operation, error_code=e.code.value).inc()
        raise
    except Exception:
        HCVOLUME_OPERATION_ERRORS.labels(operation=operation, error_code="INTERNAL_ERROR").inc()
        raise
    finally:
        HCVOLUME_OPERATION_DURATION.labels(operation=operation).observe(time.monotonic() - started)


class VolumeDriver:
    """Docker volume driver backed by cloud block storage."""

    def __init__(
        self,
        config: PluginConfig,
        volumes: VolumeOperations | None = None,
        servers: ServerLookup | None = None,
        waiter: ActionWaiting | None = None,
        mounts: MountManager | None = None,
        hostname: Callable[[], str] | None = None,
    ) -> None:
        self._config = config
        self._naming = VolumeNaming(config.volume.prefix)
        self._options = OptionResolver(config.volume)

        client = get_hcloud_client(config.cloud)
        self._volumes = volumes or VolumeAPI(client)
        self._servers = servers or ServerAPI(client)
        self._waiter = waiter or ActionWaiter(
            ActionAPI(client),
            poll_interval=config.cloud.poll_interval,
            default_timeout=config.cloud.action_timeout,
        )
        self._mounts = mounts or MountManager(mkfs_dir=config.server.mkfs_dir)
        self._hostname = hostname or self._local_hostname

    @property
    def naming(self) -> VolumeNaming:
        return self._naming

    @property
    def options(self) -> OptionResolver:
        return self._options

    # =========================================================================
    # Lifecycle operations
    # =========================================================================

    async def create(self, name: str, options: dict[str, str] | None = None) -> OperationResult:
        """Create, attach, format and chown a new volume."""
        prefixed = self._naming.prefixed_name(name)
        with _track("create"):
            result = OperationResult(name=prefixed)
            result.warnings.extend(self._options.validate(name, options))

            size = self._options.resolve_int("size", options)
            if size <= 0:
                raise InvalidOptionError(f"size must be a positive number of GB, got {size}")
            fstype = self._options.resolve_fstype(options)
            uid = self._options.resolve_int("uid", options)
            gid = self._options.resolve_int("gid", options)

            # Only an explicitly requested fstype is formatted by the cloud
            requested = (options or {}).get("fstype")
            remote_format = requested if requested in REMOTE_FORMATS else None

            async with get_volume_lock(prefixed):
                logger.info("starting volume creation for %r", prefixed)

                srv = await self._server_for_localhost()

                # Same location as the server: cross-location attachment is invalid
                request = VolumeCreateRequest(
                    name=prefixed,
                    size=size,
                    location=srv.datacenter.location.name,
                    labels={MANAGED_LABEL: ""},
                    format=remote_format,
                )
                with _phase(f"creating volume {prefixed!r}"):
                    created = await self._volumes.create(request)
                with _phase(f"waiting for create volume {prefixed!r}"):
                    for action in (created.action, *created.next_actions):
                        if action is not None:
                            await self._waiter.wait(action)

                volume = created.volume
                logger.info(
                    "volume %r (%dGB) created on %r; attaching",
                    prefixed,
                    size,
                    srv.name,
                    extra={"event": LogEvent.VOLUME_CREATED, "volume": prefixed, "size": size},
                )

                await self._attach(volume, srv)

                if self._config.volume.use_protection:
                    result.record(await self._protect(volume))
                else:
                    result.record(StepResult(name="protect", status=StepStatus.SKIPPED))

                if remote_format is None:
                    logger.info("formatting %r as %r", prefixed, fstype)
                    with _phase(f"mkfs on {volume.linux_device!r}"):
                        await self._mounts.mkfs(volume.linux_device, fstype)

                if uid != 0 or gid != 0:
                    with _phase(f"chown {volume.linux_device!r} to '{uid}:{gid}'"):
                        await self._mounts.set_ownership(volume.linux_device, fstype, uid, gid)

            return result

    async def get(self, name: str) -> VolumeInfo:
        """Report a volume and where it is mounted on this host."""
        prefixed = self._naming.prefixed_name(name)
        with _track("get"):
            logger.info("fetching information for volume %r", prefixed)

            vol = await self._get_volume(prefixed)
            with _phase("getting local mounts"):
                mounts = await self._mounts.get_mounts()

            mountpoint = self._mounts.lookup(mounts, vol.linux_device)
            status: dict[str, Any] = {}
            if mountpoint:
                status["mounted"] = True

            info = VolumeInfo(
                name=self._naming.unprefixed_name(vol.name),
                mountpoint=mountpoint or "",
                created_at=vol.created.isoformat(),
                status=status,
            )
            logger.debug("returning info on %r: %r", prefixed, info)
            return info

    async def list(self) -> list[VolumeInfo]:
        """List the volumes carrying the configured prefix."""
        with _track("list"):
            logger.info("got list request")

            with _phase("could not list all volumes"):
                vols = await self._volumes.all()
            with _phase("could not get local mounts"):
                mounts = await self._mounts.get_mounts()

            return [
                VolumeInfo(
                    name=self._naming.unprefixed_name(vol.name),
                    mountpoint=self._mounts.lookup(mounts, vol.linux_device) or "",
                )
                for vol in vols
                if self._naming.has_prefix(vol.name)
            ]

    async def remove(self, name: str) -> None:
        """Unprotect, detach and delete a volume, strictly in that order."""
        prefixed = self._naming.prefixed_name(name)
        with _track("remove"):
            async with get_volume_lock(prefixed):
                logger.info("starting volume removal for %r", prefixed)

                vol = await self._get_volume(prefixed)

                if vol.protection.delete:
                    logger.info("disabling protection for %r", prefixed)
                    with _phase(f"unprotecting volume {prefixed!r}"):
                        action = await self._volumes.change_protection(vol, delete=False)
                    with _phase(f"waiting for volume unprotection {prefixed!r}"):
                        await self._waiter.wait(action)
                    logger.info(
                        "protection disabled for %r",
                        prefixed,
                        extra={"event": LogEvent.VOLUME_UNPROTECTED, "volume": prefixed},
                    )

                if vol.is_attached:
                    logger.info("detaching volume %r (attached to %d)", prefixed, vol.server)
                    await self._detach(vol, str(vol.server))

                with _phase(f"deleting volume {prefixed!r}"):
                    await self._volumes.delete(vol)

                logger.info(
                    "volume %r removed successfully",
                    prefixed,
                    extra={"event": LogEvent.VOLUME_REMOVED, "volume": prefixed},
                )

    async def path(self, name: str) -> str:
        """Return the current mountpoint of a volume ("" if not mounted)."""
        with _track("path"):
            logger.info("got path request for volume %r", self._naming.prefixed_name(name))
            info = await self.get(name)
            return info.mountpoint

    async def mount(self, name: str, request_id: str) -> str:
        """Attach the volume to this host and mount it for one request.

        Returns:
            The mountpoint, ``<propagated_mount_root>/<request_id>``.
        """
        prefixed = self._naming.prefixed_name(name)
        mountpoint = self._mountpoint(request_id)
        with _track("mount"):
            async with get_volume_lock(prefixed):
                logger.info("received mount request for %r as %r", prefixed, request_id)

                vol = await self._get_volume(prefixed)
                srv = await self._server_for_localhost()

                if vol.server != srv.id:
                    if vol.is_attached:
                        with _phase(f"fetching server details for volume {prefixed!r}"):
                            current = await self._servers.get_by_id(vol.server)
                        await self._detach(vol, current.name if current else str(vol.server))
                    await self._attach(vol, srv)

                logger.info("creating mountpoint %s", mountpoint)
                created = await self._mounts.make_mountpoint(mountpoint)

                logger.info("mounting %r on %r", prefixed, mountpoint)
                try:
                    fstype = await self._mounts.mount_with_fallback(
                        vol.linux_device, mountpoint, SUPPORTED_FILESYSTEMS
                    )
                except MountError as e:
                    if created:
                        await self._discard_mountpoint(mountpoint)
                    raise e.wrap(f"mounting volume {prefixed!r}") from e

                logger.info(
                    "successfully mounted %r on %r",
                    prefixed,
                    mountpoint,
                    extra={
                        "event": LogEvent.VOLUME_MOUNTED,
                        "volume": prefixed,
                        "mountpoint": mountpoint,
                        "fstype": fstype,
                    },
                )
                return mountpoint

    async def unmount(self, name: str, request_id: str) -> None:
        """Unmount one request's mountpoint and detach the volume from this host."""
        prefixed = self._naming.prefixed_name(name)
        mountpoint = self._mountpoint(request_id)
        with _track("unmount"):
            async with get_volume_lock(prefixed):
                logger.info("received unmount request for %r as %r", prefixed, request_id)

                vol = await self._get_volume(prefixed)

                await self._mounts.unmount(mountpoint)
                logger.info(
                    "unmounted %r",
                    mountpoint,
                    extra={"event": LogEvent.VOLUME_UNMOUNTED, "volume": prefixed, "mountpoint": mountpoint},
                )
                await self._mounts.remove_mountpoint(mountpoint)

                # Local cleanup is done; a failing lookup only skips the detach
                try:
                    srv = await self._server_for_localhost()
                except ServerResolutionError as e:
                    logger.warning(
                        "skipping detach of %r: %s",
                        prefixed,
                        e.message,
                        extra={"event": LogEvent.DETACH_SKIPPED, "volume": prefixed},
                    )
                    return

                if vol.server != srv.id:
                    return

                with _phase("getting local mounts"):
                    mounts = await self._mounts.get_mounts()
                still_mounted = self._mounts.lookup(mounts, vol.linux_device)
                if still_mounted:
                    logger.info(
                        "volume %r still mounted on %r; not detaching",
                        prefixed,
                        still_mounted,
                        extra={"event": LogEvent.DETACH_SKIPPED, "volume": prefixed},
                    )
                    return

                logger.info("detaching volume %r", prefixed)
                await self._detach(vol, srv.name)

    def capabilities(self) -> str:
        return SCOPE_GLOBAL

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get_volume(self, prefixed: str) -> Volume:
        with _phase(f"getting cloud volume {prefixed!r}"):
            vol = await self._volumes.get_by_name(prefixed)
        if vol is None:
            raise VolumeNotFoundError(f"getting cloud volume {prefixed!r}: volume not found")
        return vol

    def _local_hostname(self) -> str:
        return self._config.server.hostname or socket.gethostname()

    async def _server_for_localhost(self) -> Server:
        try:
            hostname = self._hostname()
        except OSError as e:
            raise ServerResolutionError(f"getting local hostname: {e}") from e

        if "." in hostname:
            logger.warning(
                "hostname contains dot (%r); make sure hostname != FQDN and matches the cloud server name",
                hostname,
                extra={"event": LogEvent.HOSTNAME_WARNING},
            )

        try:
            srv = await self._servers.get_by_name(hostname)
        except (HCloudAPIError, httpx.HTTPError) as e:
            raise ServerResolutionError(f"getting cloud server {hostname!r}: {e}") from e
        if srv is None:
            raise ServerResolutionError(f"getting cloud server {hostname!r}: no server with that name")
        return srv

    async def _attach(self, vol: Volume, srv: Server) -> None:
        logger.info("attaching volume %r to %r", vol.name, srv.name)
        with _phase(f"attaching volume {vol.name!r} to {srv.name!r}"):
            action = await self._volumes.attach(vol, srv)
        with _phase(f"waiting for volume attachment {vol.name!r} to {srv.name!r}"):
            await self._waiter.wait(action)
        logger.info(
            "volume %r attached to %r",
            vol.name,
            srv.name,
            extra={"event": LogEvent.VOLUME_ATTACHED, "volume": vol.name, "server": srv.name},
        )

    async def _detach(self, vol: Volume, server_name: str) -> None:
        logger.info("detaching volume %r from %r", vol.name, server_name)
        with _phase(f"detaching volume {vol.name!r} from {server_name!r}"):
            action = await self._volumes.detach(vol)
        with _phase(f"waiting for volume detachment {vol.name!r} from {server_name!r}"):
            await self._waiter.wait(action)
        logger.info(
            "volume %r detached from %r",
            vol.name,
            server_name,
            extra={"event": LogEvent.VOLUME_DETACHED, "volume": vol.name, "server": server_name},
        )

    async def _protect(self, vol: Volume) -> StepResult:
        """Enable deletion protection. Failures are logged, never raised."""
        try:
            with _phase(f"protecting volume {vol.name!r}"):
                action = await self._volumes.change_protection(vol, delete=True)
                await self._waiter.wait(action)
        except PluginError as e:
            logger.warning(
                "could not enable protection: %s",
                e.message,
                extra={"event": LogEvent.PROTECTION_FAILED, "volume": vol.name},
            )
            return StepResult(name="protect", status=StepStatus.FAILED_NONFATAL, message=e.message)

        logger.info(
            "protection enabled for %r",
            vol.name,
            extra={"event": LogEvent.VOLUME_PROTECTED, "volume": vol.name},
        )
        return StepResult(name="protect", status=StepStatus.COMPLETED)

    def _mountpoint(self, request_id: str) -> str:
        if not request_id or "/" in request_id or request_id in (".", ".."):
            raise InvalidOptionError(f"invalid mount request id {request_id!r}")
        return os.path.join(self._config.server.propagated_mount_root, request_id)

    async def _discard_mountpoint(self, mountpoint: str) -> None:
        try:
            await self._mounts.remove_mountpoint(mountpoint)
        except PluginError as e:
            logger.warning(
                "could not remove mountpoint after failed mount: %s",
                e.message,
                extra={"event": LogEvent.CLEANUP_FAILED, "mountpoint": mountpoint},
            )
