"""Unit tests for local device operations."""

import os
from collections import namedtuple
from unittest.mock import AsyncMock, MagicMock

import psutil
import pytest

from hcvolume.api.errors import FormatError, MountError, MountpointError, OwnershipError
from hcvolume.driver import VolumeDriver
from hcvolume.driver.mounts import CommandResult, CommandRunner, MountManager, chown_if_empty

Partition = namedtuple("Partition", ["device", "mountpoint", "fstype", "opts"])

OK = CommandResult(returncode=0, stdout="", stderr="")


def failed(stderr: str = "mount: wrong fs type") -> CommandResult:
    return CommandResult(returncode=32, stdout="", stderr=stderr)


@pytest.fixture
def mock_runner() -> AsyncMock:
    runner = AsyncMock(spec=CommandRunner)
    runner.run = AsyncMock(return_value=OK)
    return runner


@pytest.fixture
def manager(mock_runner: AsyncMock) -> MountManager:
    return MountManager(runner=mock_runner, mkfs_dir="/sbin")


class TestChownIfEmpty:
    """Tests for chown_if_empty()."""

    def test_only_lost_and_found(self, tmp_path, monkeypatch) -> None:
        (tmp_path / "lost+found").mkdir()
        chown = MagicMock()
        monkeypatch.setattr(os, "chown", chown)

        chown_if_empty(str(tmp_path), 1000, 1001)

        chown.assert_called_once_with(str(tmp_path), 1000, 1001)

    def test_empty_directory(self, tmp_path, monkeypatch) -> None:
        chown = MagicMock()
        monkeypatch.setattr(os, "chown", chown)

        chown_if_empty(str(tmp_path), 1000, 1000)

        chown.assert_called_once()

    def test_refuses_non_empty(self, tmp_path, monkeypatch) -> None:
        (tmp_path / "lost+found").mkdir()
        (tmp_path / "data.db").write_text("x")
        chown = MagicMock()
        monkeypatch.setattr(os, "chown", chown)

        with pytest.raises(OwnershipError) as exc_info:
            chown_if_empty(str(tmp_path), 1000, 1000)

        assert "not an empty volume" in exc_info.value.message
        chown.assert_not_called()

    def test_lost_and_found_must_be_directory(self, tmp_path, monkeypatch) -> None:
        (tmp_path / "lost+found").write_text("not a dir")
        chown = MagicMock()
        monkeypatch.setattr(os, "chown", chown)

        with pytest.raises(OwnershipError):
            chown_if_empty(str(tmp_path), 1000, 1000)

        chown.assert_not_called()

    def test_chown_error(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setattr(os, "chown", MagicMock(side_effect=PermissionError("operation not permitted")))

        with pytest.raises(OwnershipError) as exc_info:
            chown_if_empty(str(tmp_path), 1000, 1000)

        assert "operation not permitted" in exc_info.value.message


class TestMkfs:
    async def test_runs_mkfs_tool(self, manager: MountManager, mock_runner: AsyncMock) -> None:
        await manager.mkfs("/dev/sdb", "xfs")

        mock_runner.run.assert_awaited_once_with("/sbin/mkfs.xfs", "/dev/sdb")

    async def test_failure_includes_diagnostics(
        self, manager: MountManager, mock_runner: AsyncMock
    ) -> None:
        mock_runner.run.return_value = failed("/dev/sdb is mounted; will not make a filesystem here!")

        with pytest.raises(FormatError) as exc_info:
            await manager.mkfs("/dev/sdb", "ext4")

        assert "will not make a filesystem" in exc_info.value.message


class TestMount:
    async def test_mount_command(self, manager: MountManager, mock_runner: AsyncMock) -> None:
        await manager.mount("/dev/sdb", "/mnt/req1", "ext4", "noatime")

        mock_runner.run.assert_awaited_once_with(
            "mount", "-t", "ext4", "-o", "noatime", "/dev/sdb", "/mnt/req1"
        )

    async def test_unmount_failure(self, manager: MountManager, mock_runner: AsyncMock) -> None:
        mock_runner.run.return_value = failed("umount: /mnt/req1: target is busy.")

        with pytest.raises(MountError) as exc_info:
            await manager.unmount("/mnt/req1")

        assert "target is busy" in exc_info.value.message

    async def test_fallback_stops_at_first_success(
        self, manager: MountManager, mock_runner: AsyncMock
    ) -> None:
        mock_runner.run.side_effect = [failed(), OK, OK]

        fstype = await manager.mount_with_fallback("/dev/sdb", "/mnt/req1", ("ext4", "xfs", "ext3"))

        assert fstype == "xfs"
        assert mock_runner.run.await_count == 2

    async def test_fallback_total_failure(
        self, manager: MountManager, mock_runner: AsyncMock
    ) -> None:
        mock_runner.run.return_value = failed()
        candidates = ("ext4", "xfs", "ext3", "ext2")

        with pytest.raises(MountError) as exc_info:
            await manager.mount_with_fallback("/dev/sdb", "/mnt/req1", candidates)

        assert [fstype for fstype, _ in exc_info.value.attempts] == list(candidates)
        assert all(isinstance(e, MountError) for _, e in exc_info.value.attempts)
        assert mock_runner.run.await_count == 4


class TestSetOwnership:
    async def test_mounts_chowns_and_unmounts(
        self, manager: MountManager, mock_runner: AsyncMock, monkeypatch
    ) -> None:
        chown = MagicMock()
        monkeypatch.setattr("hcvolume.driver.mounts.chown_if_empty", chown)

        await manager.set_ownership("/dev/sdb", "ext4", 1000, 1000)

        mount_call, umount_call = mock_runner.run.await_args_list
        tmp_dir = mount_call.args[-1]
        assert mount_call.args[:4] == ("mount", "-t", "ext4", "/dev/sdb")
        assert umount_call.args == ("umount", tmp_dir)
        chown.assert_called_once_with(tmp_dir, 1000, 1000)
        assert not os.path.exists(tmp_dir)

    async def test_unmounts_after_failed_chown(
        self, manager: MountManager, mock_runner: AsyncMock, monkeypatch
    ) -> None:
        monkeypatch.setattr(
            "hcvolume.driver.mounts.chown_if_empty",
            MagicMock(side_effect=OwnershipError("not an empty volume")),
        )

        with pytest.raises(OwnershipError):
            await manager.set_ownership("/dev/sdb", "ext4", 1000, 1000)

        commands = [c.args[0] for c in mock_runner.run.await_args_list]
        assert commands == ["mount", "umount"]
        tmp_dir = mock_runner.run.await_args_list[1].args[1]
        assert not os.path.exists(tmp_dir)

    async def test_failed_mount_does_not_unmount(
        self, manager: MountManager, mock_runner: AsyncMock
    ) -> None:
        mock_runner.run.return_value = failed()

        with pytest.raises(MountError):
            await manager.set_ownership("/dev/sdb", "ext4", 1000, 1000)

        mock_runner.run.assert_awaited_once()
        tmp_dir = mock_runner.run.await_args.args[-1]
        assert not os.path.exists(tmp_dir)


class TestMountpoints:
    async def test_make_mountpoint(self, manager: MountManager, tmp_path) -> None:
        path = str(tmp_path / "mnt" / "req1")

        assert await manager.make_mountpoint(path) is True
        assert os.path.isdir(path)
        assert await manager.make_mountpoint(path) is False

    async def test_remove_mountpoint(self, manager: MountManager, tmp_path) -> None:
        path = tmp_path / "req1"
        path.mkdir()

        await manager.remove_mountpoint(str(path))

        assert not path.exists()

    async def test_remove_missing_mountpoint(self, manager: MountManager, tmp_path) -> None:
        with pytest.raises(MountpointError):
            await manager.remove_mountpoint(str(tmp_path / "missing"))


class TestMountTable:
    async def test_get_mounts(self, manager: MountManager, monkeypatch) -> None:
        monkeypatch.setattr(
            psutil,
            "disk_partitions",
            MagicMock(
                return_value=[
                    Partition("/dev/sdb", "/mnt/req1", "ext4", "rw"),
                    Partition("tmpfs", "/run", "tmpfs", "rw"),
                ]
            ),
        )

        mounts = await manager.get_mounts()

        assert mounts["/dev/sdb"] == "/mnt/req1"
        assert mounts["tmpfs"] == "/run"

    async def test_get_mounts_error(self, manager: MountManager, monkeypatch) -> None:
        monkeypatch.setattr(psutil, "disk_partitions", MagicMock(side_effect=OSError("no /proc")))

        with pytest.raises(MountError):
            await manager.get_mounts()

    def test_lookup_resolves_symlinks(self, tmp_path) -> None:
        device = tmp_path / "sdb"
        device.write_text("")
        link = tmp_path / "by-id"
        link.symlink_to(device)

        mounts = {os.path.realpath(device): "/mnt/req1"}

        assert MountManager.lookup(mounts, str(link)) == "/mnt/req1"
        assert MountManager.lookup(mounts, "") is None
        assert MountManager.lookup(mounts, str(tmp_path / "other")) is None


class TestMountFailureCleanup:
    """A failed mount leaves no mountpoint directory behind."""

    async def test_driver_removes_directory(
        self,
        plugin_config,
        mock_volumes: AsyncMock,
        mock_servers: AsyncMock,
        mock_waiter: AsyncMock,
        mock_runner: AsyncMock,
        volume_factory,
    ) -> None:
        mock_runner.run.return_value = failed()
        mock_volumes.get_by_name.return_value = volume_factory(server=10)
        driver = VolumeDriver(
            plugin_config,
            volumes=mock_volumes,
            servers=mock_servers,
            waiter=mock_waiter,
            mounts=MountManager(runner=mock_runner),
            hostname=lambda: "node-1",
        )
        mountpoint = os.path.join(plugin_config.server.propagated_mount_root, "req1")

        with pytest.raises(MountError):
            await driver.mount("data", "req1")

        assert not os.path.exists(mountpoint)
        assert os.path.isdir(plugin_config.server.propagated_mount_root)
