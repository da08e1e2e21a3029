"""API v1 module."""

from hcvolume.api.v1.volume_driver import router as volume_driver_router

__all__ = ["volume_driver_router"]
