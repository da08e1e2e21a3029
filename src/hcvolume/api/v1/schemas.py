"""Request/response models of the Docker volume plugin protocol.

Field names on the wire are PascalCase; the models use snake_case with
aliases. Every driver response carries ``Err``, empty on success.
"""

from pydantic import BaseModel, ConfigDict, Field


class PluginModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# Requests
# =============================================================================


class CreateRequest(PluginModel):
    name: str = Field(alias="Name", min_length=1)
    opts: dict[str, str] | None = Field(default=None, alias="Opts")


class NameRequest(PluginModel):
    """Request carrying only a volume name (Get, Remove, Path)."""

    name: str = Field(alias="Name", min_length=1)


class MountRequest(PluginModel):
    """Mount/Unmount request. ``ID`` identifies the requesting container."""

    name: str = Field(alias="Name", min_length=1)
    id: str = Field(alias="ID")


# =============================================================================
# Responses
# =============================================================================


class ActivateResponse(PluginModel):
    implements: list[str] = Field(default_factory=lambda: ["VolumeDriver"], alias="Implements")


class ErrResponse(PluginModel):
    err: str = Field(default="", alias="Err")


class VolumeEntry(PluginModel):
    name: str = Field(alias="Name")
    mountpoint: str = Field(default="", alias="Mountpoint")


class VolumeDetail(VolumeEntry):
    created_at: str = Field(default="", alias="CreatedAt")
    status: dict = Field(default_factory=dict, alias="Status")


class GetResponse(ErrResponse):
    volume: VolumeDetail = Field(alias="Volume")


class ListResponse(ErrResponse):
    volumes: list[VolumeEntry] = Field(default_factory=list, alias="Volumes")


class MountpointResponse(ErrResponse):
    mountpoint: str = Field(default="", alias="Mountpoint")


class Capability(PluginModel):
    scope: str = Field(alias="Scope")


class CapabilitiesResponse(PluginModel):
    capabilities: Capability = Field(alias="Capabilities")
