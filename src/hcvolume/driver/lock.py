"""Volume lock for lifecycle operations."""

import asyncio

_volume_locks: dict[str, asyncio.Lock] = {}


def get_volume_lock(name: str) -> asyncio.Lock:
    """Get or create a per-volume lock.

    Serializes create/remove/mount/unmount for one remote volume name so
    concurrent requests cannot interleave attach and detach calls.

    Keyed by the prefixed (remote) name.
    """
    if name not in _volume_locks:
        _volume_locks[name] = asyncio.Lock()
    return _volume_locks[name]
