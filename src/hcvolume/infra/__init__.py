"""Driver infrastructure layer."""

from hcvolume.infra.hcloud import (
    ActionAPI,
    HCloudAPIError,
    HCloudClient,
    ServerAPI,
    VolumeAPI,
    close_hcloud,
    get_hcloud_client,
)
from hcvolume.models import (
    Action,
    ActionError,
    ActionStatus,
    Datacenter,
    Location,
    Server,
    Volume,
    VolumeCreateRequest,
    VolumeCreateResult,
    VolumeProtection,
)

__all__ = [
    # Client
    "ActionAPI",
    "HCloudAPIError",
    "HCloudClient",
    "ServerAPI",
    "VolumeAPI",
    "close_hcloud",
    "get_hcloud_client",
    # Models
    "Action",
    "ActionError",
    "ActionStatus",
    "Datacenter",
    "Location",
    "Server",
    "Volume",
    "VolumeCreateRequest",
    "VolumeCreateResult",
    "VolumeProtection",
]
