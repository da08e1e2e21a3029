"""Driver singleton used by the API routes.

The driver is created once in the application lifespan and injected into
routes with ``Depends(get_driver)``. Tests replace it through
``app.dependency_overrides``.
"""

from hcvolume.config import PluginConfig
from hcvolume.driver import VolumeDriver
from hcvolume.infra import close_hcloud

_driver: VolumeDriver | None = None


def init_driver(config: PluginConfig) -> VolumeDriver:
    """Create the driver singleton."""
    global _driver
    if _driver is None:
        _driver = VolumeDriver(config)
    return _driver


def get_driver() -> VolumeDriver:
    """Get the driver singleton.

    Raises:
        RuntimeError: If init_driver() has not been called.
    """
    if _driver is None:
        raise RuntimeError("Volume driver not initialized. Call init_driver() first.")
    return _driver


async def close_driver() -> None:
    """Drop the driver and close the API client it uses."""
    global _driver
    _driver = None
    await close_hcloud()


def reset_driver() -> None:
    """Reset the driver singleton (for testing)."""
    global _driver
    _driver = None
