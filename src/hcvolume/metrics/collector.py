"""Prometheus metrics definitions for the volume driver.

Tracks the two systems every lifecycle operation coordinates:
- Lifecycle operations (create, mount, ...) end to end
- Control-plane action waits (create_volume, attach_volume, ...)
"""

from prometheus_client import Counter, Histogram

# =============================================================================
# Histogram Buckets
# =============================================================================
# Remote actions and mkfs are slow (1s ~ 5min)
_BUCKETS_SLOW = (
    0.1, 0.25, 0.5, 1, 2.5,
    5, 10, 20, 40, 80,
    160, 300,
)  # 12 buckets

# =============================================================================
# Lifecycle Operation Metrics
# =============================================================================

HCVOLUME_OPERATION_DURATION = Histogram(
    "hcvolume_operation_duration_seconds",
    "Duration of volume lifecycle operations",
    ["operation"],  # create, get, list, remove, path, mount, unmount
    buckets=_BUCKETS_SLOW,
)

HCVOLUME_OPERATION_ERRORS = Counter(
    "hcvolume_operation_errors_total",
    "Total volume lifecycle operation errors",
    ["operation", "error_code"],  # error_code: ErrorCode value
)

# =============================================================================
# Action Wait Metrics
# =============================================================================

HCVOLUME_ACTION_WAIT_DURATION = Histogram(
    "hcvolume_action_wait_duration_seconds",
    "Time spent waiting for control-plane actions",
    ["command"],  # create_volume, attach_volume, detach_volume, change_protection
    buckets=_BUCKETS_SLOW,
)

OPERATIONS = ("create", "get", "list", "remove", "path", "mount", "unmount")


def _init_metrics() -> None:
    """Initialize labeled metrics with zero values."""
    for op in OPERATIONS:
        HCVOLUME_OPERATION_DURATION.labels(operation=op)


_init_metrics()
