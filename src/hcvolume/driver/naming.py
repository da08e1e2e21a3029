"""Volume naming utilities."""

# Maximum volume name length accepted by the control plane.
MAX_NAME_LENGTH = 64


class VolumeNaming:
    """Maps logical Docker volume names to prefixed cloud volume names.

    Volumes whose cloud name lacks the prefix belong to someone else and
    are never listed or touched.
    """

    def __init__(self, prefix: str) -> None:
        self._prefix = prefix

    @property
    def prefix(self) -> str:
        return self._prefix

    def prefixed_name(self, name: str) -> str:
        return f"{self._prefix}-{name}"[:MAX_NAME_LENGTH]

    def unprefixed_name(self, name: str) -> str:
        marker = f"{self._prefix}-"
        if name.startswith(marker):
            return name[len(marker) :]
        return name

    def has_prefix(self, name: str) -> bool:
        return name.startswith(f"{self._prefix}-")
