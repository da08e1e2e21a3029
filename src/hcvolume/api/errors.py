"""Error handling module for hcvolume.

This module defines error codes, exception classes, and response models.

Error Response Format (Docker volume plugin protocol):
{
    "Err": "getting volume 'docker-data': Volume not found"
}

Usage:
    from hcvolume.api.errors import VolumeNotFoundError

    raise VolumeNotFoundError(f"volume {name!r} not found")

    # Add the failing phase while propagating
    raise exc.wrap("mounting 'docker-data'") from exc
"""

import copy
from enum import Enum

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Error codes for the volume driver."""

    # Validation
    INVALID_OPTION = "INVALID_OPTION"

    # Resolution
    VOLUME_NOT_FOUND = "VOLUME_NOT_FOUND"
    SERVER_NOT_FOUND = "SERVER_NOT_FOUND"

    # Remote calls
    CLOUD_API_ERROR = "CLOUD_API_ERROR"
    ACTION_FAILED = "ACTION_FAILED"
    ACTION_TIMEOUT = "ACTION_TIMEOUT"

    # Local OS
    FORMAT_FAILED = "FORMAT_FAILED"
    MOUNT_FAILED = "MOUNT_FAILED"
    OWNERSHIP_FAILED = "OWNERSHIP_FAILED"
    MOUNTPOINT_ERROR = "MOUNTPOINT_ERROR"

    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorResponse(BaseModel):
    """Error response format expected by the Docker daemon."""

    err: str = Field(serialization_alias="Err")


class PluginError(Exception):
    """Base exception for hcvolume.

    All driver-specific exceptions inherit from this class.
    This enables centralized exception handling in FastAPI.

    Attributes:
        code: The error code from ErrorCode enum.
        message: Human-readable error message.
        status_code: HTTP status code to return.
    """

    def __init__(self, code: ErrorCode, message: str, status_code: int) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    def wrap(self, context: str) -> "PluginError":
        """Return a copy of this error with ``context`` prepended to the message.

        The copy keeps the concrete class, code and status code, so callers
        can still match on the error type after wrapping.
        """
        wrapped = copy.copy(self)
        wrapped.message = f"{context}: {self.message}"
        wrapped.args = (wrapped.message,)
        return wrapped

    def to_response(self) -> ErrorResponse:
        """Convert exception to ErrorResponse model."""
        return ErrorResponse(err=self.message)


class InvalidOptionError(PluginError):
    """400 Bad Request - Malformed driver option or request field."""

    def __init__(self, message: str = "Invalid option") -> None:
        super().__init__(ErrorCode.INVALID_OPTION, message, 400)


class VolumeNotFoundError(PluginError):
    """404 Not Found - Volume does not exist in the cloud."""

    def __init__(self, message: str = "Volume not found") -> None:
        super().__init__(ErrorCode.VOLUME_NOT_FOUND, message, 404)


class ServerResolutionError(PluginError):
    """404 Not Found - Local hostname does not match a cloud server."""

    def __init__(self, message: str = "Could not resolve cloud server for this host") -> None:
        super().__init__(ErrorCode.SERVER_NOT_FOUND, message, 404)


class CloudAPIError(PluginError):
    """502 Bad Gateway - Control-plane request failed."""

    def __init__(self, message: str = "Cloud API request failed") -> None:
        super().__init__(ErrorCode.CLOUD_API_ERROR, message, 502)


class ActionFailedError(PluginError):
    """502 Bad Gateway - Remote action finished with an error."""

    def __init__(self, message: str = "Action failed") -> None:
        super().__init__(ErrorCode.ACTION_FAILED, message, 502)


class ActionTimeoutError(PluginError):
    """504 Gateway Timeout - Remote action did not finish in time."""

    def __init__(self, message: str = "Timed out waiting for action") -> None:
        super().__init__(ErrorCode.ACTION_TIMEOUT, message, 504)


class FormatError(PluginError):
    """500 Internal Server Error - mkfs failed."""

    def __init__(self, message: str = "Formatting failed") -> None:
        super().__init__(ErrorCode.FORMAT_FAILED, message, 500)


class MountError(PluginError):
    """500 Internal Server Error - mount/umount failed.

    Attributes:
        attempts: One ``(fstype, error)`` entry per filesystem type tried
            when the error aggregates a fallback mount.
    """

    def __init__(
        self,
        message: str = "Mount failed",
        attempts: list[tuple[str, "MountError"]] | None = None,
    ) -> None:
        self.attempts = attempts or []
        super().__init__(ErrorCode.MOUNT_FAILED, message, 500)


class OwnershipError(PluginError):
    """500 Internal Server Error - Ownership transfer failed."""

    def __init__(self, message: str = "Changing ownership failed") -> None:
        super().__init__(ErrorCode.OWNERSHIP_FAILED, message, 500)


class MountpointError(PluginError):
    """500 Internal Server Error - Mountpoint directory could not be managed."""

    def __init__(self, message: str = "Mountpoint error") -> None:
        super().__init__(ErrorCode.MOUNTPOINT_ERROR, message, 500)


class InternalError(PluginError):
    """500 Internal Server Error - Internal error."""

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(ErrorCode.INTERNAL_ERROR, message, 500)
