"""Request logging middleware.

Provides one canonical log line per plugin request.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from hcvolume.logging_schema import LogEvent

logger = logging.getLogger(__name__)

# Polled by monitoring, not by Docker
_SKIP_PATHS = ("/health", "/metrics")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status and duration of every request.

    Successful requests are logged at DEBUG since Docker calls
    VolumeDriver.List/Get frequently; error responses at WARNING.

    Usage:
        app.add_middleware(LoggingMiddleware)
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start = time.monotonic()
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.monotonic() - start) * 1000
            logger.error(
                "Request failed",
                extra={
                    "event": LogEvent.REQUEST_FAILED,
                    "method": request.method,
                    "path": request.url.path,
                    "duration_ms": duration_ms,
                },
            )
            raise

        if request.url.path in _SKIP_PATHS:
            return response

        duration_ms = (time.monotonic() - start) * 1000
        level = logging.WARNING if response.status_code >= 400 else logging.DEBUG
        logger.log(
            level,
            "Request completed",
            extra={
                "event": LogEvent.REQUEST_COMPLETE,
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        return response
