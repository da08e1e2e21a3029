"""Local device operations: format, mount, ownership.

All kernel-level work goes through external tools (mkfs.*, mount, umount)
run by CommandRunner, so it can be substituted in tests.
"""

from __future__ import annotations

import asyncio
import logging
import os
import subprocess
import tempfile
from dataclasses import dataclass

import psutil

from hcvolume.api.errors import FormatError, MountError, MountpointError, OwnershipError
from hcvolume.logging_schema import LogEvent

logger = logging.getLogger(__name__)

LOST_AND_FOUND = "lost+found"


@dataclass
class CommandResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def diagnostics(self) -> str:
        return (self.stderr or self.stdout).strip() or f"exit status {self.returncode}"


class CommandRunner:
    """Runs external commands and captures their output."""

    async def run(self, *cmd: str) -> CommandResult:
        logger.debug("Running command: %s", " ".join(cmd))
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except FileNotFoundError:
            return CommandResult(returncode=127, stdout="", stderr=f"{cmd[0]}: command not found")
        stdout, stderr = await proc.communicate()
        return CommandResult(
            returncode=proc.returncode if proc.returncode is not None else -1,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )


def chown_if_empty(path: str, uid: int, gid: int) -> None:
    """Change ownership of a freshly formatted filesystem root.

    Refuses to touch a directory holding anything besides ``lost+found``,
    so a volume that unexpectedly already contains data keeps its owner.

    Raises:
        OwnershipError: The directory is not empty, or chown failed.
    """
    try:
        with os.scandir(path) as entries:
            found = [(e.name, e.is_dir(follow_symlinks=False)) for e in entries]
    except OSError as e:
        raise OwnershipError(f"reading {path}: {e}") from e

    for name, is_dir in found:
        if name == LOST_AND_FOUND and is_dir:
            continue
        raise OwnershipError(f"{path} is not an empty volume (found {name!r}); will not chown")

    try:
        os.chown(path, uid, gid)
    except OSError as e:
        logger.error("chown error: %s", e)
        raise OwnershipError(f"chown {path} to {uid}:{gid}: {e}") from e


class MountManager:
    """Formats, mounts and unmounts block devices on this host."""

    def __init__(self, runner: CommandRunner | None = None, mkfs_dir: str = "/sbin") -> None:
        self._runner = runner or CommandRunner()
        self._mkfs_dir = mkfs_dir

    # =========================================================================
    # Mount table
    # =========================================================================

    async def get_mounts(self) -> dict[str, str]:
        """Return a device -> mountpoint map of currently mounted filesystems.

        Devices are keyed both as reported and with symlinks resolved, so
        /dev/disk/by-id paths match the /dev/sdX entries the kernel reports.
        """
        try:
            partitions = await asyncio.to_thread(psutil.disk_partitions, True)
        except (OSError, psutil.Error) as e:
            raise MountError(f"reading local mount table: {e}") from e

        mounts: dict[str, str] = {}
        for partition in partitions:
            mounts.setdefault(partition.device, partition.mountpoint)
            if partition.device.startswith("/"):
                mounts.setdefault(os.path.realpath(partition.device), partition.mountpoint)
        return mounts

    @staticmethod
    def lookup(mounts: dict[str, str], device: str) -> str | None:
        if not device:
            return None
        if device in mounts:
            return mounts[device]
        return mounts.get(os.path.realpath(device))

    # =========================================================================
    # Formatting
    # =========================================================================

    async def mkfs(self, device: str, fstype: str) -> None:
        result = await self._runner.run(os.path.join(self._mkfs_dir, f"mkfs.{fstype}"), device)
        if not result.success:
            logger.error("mkfs stderr: %s", result.stderr.strip())
            raise FormatError(f"mkfs.{fstype} on {device}: {result.diagnostics}")
        logger.info(
            "Formatted %s as %s",
            device,
            fstype,
            extra={"event": LogEvent.VOLUME_FORMATTED, "device": device, "fstype": fstype},
        )

    # =========================================================================
    # Mounting
    # =========================================================================

    async def mount(self, device: str, mountpoint: str, fstype: str, options: str = "") -> None:
        cmd = ["mount", "-t", fstype]
        if options:
            cmd += ["-o", options]
        cmd += [device, mountpoint]
        result = await self._runner.run(*cmd)
        if not result.success:
            raise MountError(f"mounting {device} on {mountpoint} as {fstype}: {result.diagnostics}")

    async def unmount(self, mountpoint: str) -> None:
        result = await self._runner.run("umount", mountpoint)
        if not result.success:
            raise MountError(f"unmounting {mountpoint}: {result.diagnostics}")

    async def mount_with_fallback(
        self,
        device: str,
        mountpoint: str,
        candidates: tuple[str, ...] | list[str],
    ) -> str:
        """Mount trying each filesystem type in order.

        Returns:
            The filesystem type that mounted.

        Raises:
            MountError: Every candidate failed; ``attempts`` holds one entry
                per candidate.
        """
        attempts: list[tuple[str, MountError]] = []
        for fstype in candidates:
            try:
                await self.mount(device, mountpoint, fstype)
            except MountError as e:
                logger.debug(
                    "Mount attempt failed",
                    extra={
                        "event": LogEvent.MOUNT_ATTEMPT_FAILED,
                        "device": device,
                        "fstype": fstype,
                        "error": e.message,
                    },
                )
                attempts.append((fstype, e))
                continue
            return fstype

        details = "; ".join(f"{fstype}: {e.message}" for fstype, e in attempts)
        raise MountError(
            f"mounting {device} as any of {', '.join(candidates)}: {details}",
            attempts=attempts,
        )

    # =========================================================================
    # Ownership
    # =========================================================================

    async def set_ownership(
        self,
        device: str,
        fstype: str,
        uid: int,
        gid: int,
        mount_options: str = "",
    ) -> None:
        """Set the owner of the filesystem root while leaving the device unmounted.

        Mounts the device on a private temporary directory, chowns it and
        unmounts again. The temporary mount is always unmounted once it
        succeeded, including when chown fails.
        """
        try:
            tmp_dir = await asyncio.to_thread(tempfile.mkdtemp, prefix="mnt-")
        except OSError as e:
            raise MountpointError(f"creating temp dir for setting permissions: {e}") from e

        try:
            await self.mount(device, tmp_dir, fstype, mount_options)
        except MountError:
            await self._remove_dir_quietly(tmp_dir)
            raise

        try:
            await asyncio.to_thread(chown_if_empty, tmp_dir, uid, gid)
        except OwnershipError:
            try:
                await self.unmount(tmp_dir)
            except MountError as unmount_err:
                logger.error(
                    "failed unmounting while cleaning up after error in chown",
                    extra={"event": LogEvent.CLEANUP_FAILED, "mountpoint": tmp_dir, "error": unmount_err.message},
                )
            else:
                await self._remove_dir_quietly(tmp_dir)
            raise

        await self.unmount(tmp_dir)
        await self._remove_dir_quietly(tmp_dir)
        logger.info(
            "Changed owner of %s to %d:%d",
            device,
            uid,
            gid,
            extra={"event": LogEvent.OWNERSHIP_CHANGED, "device": device, "uid": uid, "gid": gid},
        )

    # =========================================================================
    # Mountpoint directories
    # =========================================================================

    async def make_mountpoint(self, path: str) -> bool:
        """Create a mountpoint directory.

        Returns:
            False if the directory already existed.
        """
        try:
            await asyncio.to_thread(os.makedirs, path, 0o755)
        except FileExistsError:
            return False
        except OSError as e:
            raise MountpointError(f"creating mountpoint {path}: {e}") from e
        return True

    async def remove_mountpoint(self, path: str) -> None:
        try:
            await asyncio.to_thread(os.rmdir, path)
        except OSError as e:
            raise MountpointError(f"removing mountpoint {path}: {e}") from e

    async def _remove_dir_quietly(self, path: str) -> None:
        try:
            await asyncio.to_thread(os.rmdir, path)
        except OSError as e:
            logger.warning(
                "Could not remove temporary directory",
                extra={"event": LogEvent.CLEANUP_FAILED, "path": path, "error": str(e)},
            )
