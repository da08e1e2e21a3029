"""Volume driver core: lifecycle controller and its collaborators."""

from hcvolume.driver.controller import SCOPE_GLOBAL, VolumeDriver, VolumeInfo
from hcvolume.driver.lock import get_volume_lock
from hcvolume.driver.mounts import CommandResult, CommandRunner, MountManager, chown_if_empty
from hcvolume.driver.naming import VolumeNaming
from hcvolume.driver.options import OptionResolver
from hcvolume.driver.result import OperationResult, StepResult, StepStatus
from hcvolume.driver.waiter import ActionWaiter

__all__ = [
    # Controller
    "SCOPE_GLOBAL",
    "VolumeDriver",
    "VolumeInfo",
    # Collaborators
    "ActionWaiter",
    "CommandResult",
    "CommandRunner",
    "MountManager",
    "OptionResolver",
    "VolumeNaming",
    "chown_if_empty",
    "get_volume_lock",
    # Results
    "OperationResult",
    "StepResult",
    "StepStatus",
]
