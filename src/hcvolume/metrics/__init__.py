"""Prometheus metrics for the volume driver."""

from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest
from starlette.responses import Response

from hcvolume.metrics.collector import (
    HCVOLUME_ACTION_WAIT_DURATION,
    HCVOLUME_OPERATION_DURATION,
    HCVOLUME_OPERATION_ERRORS,
)

__all__ = [
    "HCVOLUME_ACTION_WAIT_DURATION",
    "HCVOLUME_OPERATION_DURATION",
    "HCVOLUME_OPERATION_ERRORS",
    "get_metrics_response",
]


def get_metrics_response() -> Response:
    """Render the default registry in Prometheus text format.

    The plugin runs as a single process, so no multiprocess aggregation.
    """
    return Response(
        content=generate_latest(REGISTRY),
        media_type=CONTENT_TYPE_LATEST,
    )
