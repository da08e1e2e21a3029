"""Control-plane resource models.

Mirrors the subset of the Hetzner Cloud API schema the driver relies on.
Unknown fields in API payloads are ignored.
"""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class ActionStatus(StrEnum):
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


class ActionError(BaseModel):
    code: str = ""
    message: str = ""


class Action(BaseModel):
    """Asynchronous operation handle returned by mutating calls."""

    id: int
    command: str = ""
    status: ActionStatus = ActionStatus.RUNNING
    progress: int = 0
    error: ActionError | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status != ActionStatus.RUNNING


class Location(BaseModel):
    name: str


class Datacenter(BaseModel):
    name: str = ""
    location: Location


class Server(BaseModel):
    id: int
    name: str
    datacenter: Datacenter


class VolumeProtection(BaseModel):
    delete: bool = False


class Volume(BaseModel):
    id: int
    name: str
    size: int
    created: datetime
    server: int | None = None
    location: Location | None = None
    protection: VolumeProtection = Field(default_factory=VolumeProtection)
    linux_device: str = ""
    labels: dict[str, str] = {}
    format: str | None = None

    @property
    def is_attached(self) -> bool:
        return bool(self.server)


class VolumeCreateRequest(BaseModel):
    """Body for POST /volumes."""

    name: str
    size: int
    location: str
    labels: dict[str, str] = {}
    format: str | None = None
    automount: bool = False

    model_config = {"frozen": True}

    def to_api(self) -> dict:
        """Convert to API JSON format."""
        result: dict = {
            "name": self.name,
            "size": self.size,
            "location": self.location,
            "labels": self.labels,
            "automount": self.automount,
        }
        if self.format:
            result["format"] = self.format
        return result


class VolumeCreateResult(BaseModel):
    volume: Volume
    action: Action | None = None
    next_actions: list[Action] = []
