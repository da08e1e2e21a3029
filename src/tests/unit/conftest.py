"""Fixtures for volume driver unit tests."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from hcvolume.config import CloudConfig, PluginConfig, ServerConfig, VolumeDefaults
from hcvolume.driver import MountManager, VolumeDriver
from hcvolume.interfaces import ActionWaiting, ServerLookup, VolumeOperations
from hcvolume.models import (
    Action,
    ActionStatus,
    Datacenter,
    Location,
    Server,
    Volume,
    VolumeCreateResult,
)

LOCAL_HOSTNAME = "node-1"


def make_action(action_id: int = 1, command: str = "", status: ActionStatus = ActionStatus.RUNNING) -> Action:
    return Action(id=action_id, command=command, status=status)


def make_server(server_id: int = 10, name: str = LOCAL_HOSTNAME, location: str = "fsn1") -> Server:
    return Server(
        id=server_id,
        name=name,
        datacenter=Datacenter(name=f"{location}-dc14", location=Location(name=location)),
    )


def make_volume(
    name: str = "docker-data",
    volume_id: int = 100,
    server: int | None = None,
    protected: bool = False,
    linux_device: str = "/dev/disk/by-id/scsi-0HC_Volume_100",
) -> Volume:
    return Volume(
        id=volume_id,
        name=name,
        size=10,
        created=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        server=server,
        location=Location(name="fsn1"),
        protection={"delete": protected},
        linux_device=linux_device,
    )


@pytest.fixture
def volume_factory():
    """Factory for Volume models."""
    return make_volume


@pytest.fixture
def server_factory():
    """Factory for Server models."""
    return make_server


@pytest.fixture
def action_factory():
    """Factory for Action models."""
    return make_action


@pytest.fixture
def plugin_config(tmp_path) -> PluginConfig:
    """Explicit config; nothing is read from the environment."""
    return PluginConfig(
        cloud=CloudConfig(token="test-token", poll_interval=0.0),
        volume=VolumeDefaults(prefix="docker", size=10, fstype="ext4", uid=0, gid=0),
        server=ServerConfig(propagated_mount_root=str(tmp_path / "mnt"), hostname=LOCAL_HOSTNAME),
    )


@pytest.fixture
def local_server() -> Server:
    return make_server()


@pytest.fixture
def mock_volumes() -> AsyncMock:
    """Mock VolumeOperations."""
    api = AsyncMock(spec=VolumeOperations)
    api.all = AsyncMock(return_value=[])
    api.get_by_name = AsyncMock(return_value=None)
    api.create = AsyncMock(
        return_value=VolumeCreateResult(
            volume=make_volume(),
            action=make_action(1, "create_volume"),
            next_actions=[],
        )
    )
    api.attach = AsyncMock(return_value=make_action(2, "attach_volume"))
    api.detach = AsyncMock(return_value=make_action(3, "detach_volume"))
    api.change_protection = AsyncMock(return_value=make_action(4, "change_protection"))
    api.delete = AsyncMock()
    return api


@pytest.fixture
def mock_servers(local_server: Server) -> AsyncMock:
    """Mock ServerLookup resolving the local hostname."""
    lookup = AsyncMock(spec=ServerLookup)
    lookup.get_by_name = AsyncMock(return_value=local_server)
    lookup.get_by_id = AsyncMock(return_value=None)
    return lookup


@pytest.fixture
def mock_waiter() -> AsyncMock:
    """Mock ActionWaiting; every action succeeds immediately."""
    waiter = AsyncMock(spec=ActionWaiting)
    waiter.wait = AsyncMock(return_value=None)
    return waiter


@pytest.fixture
def mock_mounts() -> AsyncMock:
    """Mock MountManager with an empty mount table."""
    mounts = AsyncMock(spec=MountManager)
    mounts.get_mounts = AsyncMock(return_value={})
    mounts.lookup = MagicMock(side_effect=MountManager.lookup)
    mounts.mkfs = AsyncMock()
    mounts.set_ownership = AsyncMock()
    mounts.mount_with_fallback = AsyncMock(return_value="ext4")
    mounts.unmount = AsyncMock()
    mounts.make_mountpoint = AsyncMock(return_value=True)
    mounts.remove_mountpoint = AsyncMock()
    return mounts


@pytest.fixture
def driver(
    plugin_config: PluginConfig,
    mock_volumes: AsyncMock,
    mock_servers: AsyncMock,
    mock_waiter: AsyncMock,
    mock_mounts: AsyncMock,
) -> VolumeDriver:
    """VolumeDriver with every collaborator mocked."""
    return VolumeDriver(
        plugin_config,
        volumes=mock_volumes,
        servers=mock_servers,
        waiter=mock_waiter,
        mounts=mock_mounts,
        hostname=lambda: LOCAL_HOSTNAME,
    )
