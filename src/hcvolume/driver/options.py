"""Driver option resolution.

Per-volume driver options (``docker volume create -o key=value``) take
precedence over the process-wide defaults in VolumeDefaults.
"""

import logging

from hcvolume.api.errors import InvalidOptionError
from hcvolume.config import SUPPORTED_FILESYSTEMS, VolumeDefaults
from hcvolume.logging_schema import LogEvent

logger = logging.getLogger(__name__)

# Options accepted per volume.
SUPPORTED_OPTIONS = frozenset({"size", "fstype", "uid", "gid"})


class OptionResolver:
    """Resolves option values with fallback to process-wide defaults."""

    def __init__(self, defaults: VolumeDefaults) -> None:
        self._defaults = defaults

    def default(self, key: str) -> str | None:
        value = getattr(self._defaults, key, None)
        if value is None:
            return None
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def resolve(self, key: str, options: dict[str, str] | None) -> str | None:
        """Return the per-request value if present, else the default."""
        if options and key in options:
            return options[key]
        return self.default(key)

    def resolve_int(self, key: str, options: dict[str, str] | None) -> int:
        raw = self.resolve(key, options)
        if raw is None:
            raise InvalidOptionError(f"option {key!r} is required")
        try:
            return int(str(raw).strip())
        except ValueError:
            raise InvalidOptionError(
                f"parsing {key} option value as integer: {raw!r}"
            ) from None

    def resolve_fstype(self, options: dict[str, str] | None) -> str:
        fstype = self.resolve("fstype", options) or ""
        if fstype not in SUPPORTED_FILESYSTEMS:
            raise InvalidOptionError(
                f"unsupported fstype {fstype!r} (expected one of {', '.join(SUPPORTED_FILESYSTEMS)})"
            )
        return fstype

    def validate(self, volume: str, options: dict[str, str] | None) -> list[str]:
        """Log and return a warning for every unsupported option key."""
        warnings = []
        for key in sorted(options or {}):
            if key in SUPPORTED_OPTIONS:
                continue
            message = f"unsupported driver_opt {key!r} for volume {volume}"
            logger.warning(
                message,
                extra={"event": LogEvent.UNSUPPORTED_OPTION, "volume": volume, "option": key},
            )
            warnings.append(message)
        return warnings
