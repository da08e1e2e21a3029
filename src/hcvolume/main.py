"""FastAPI application entry point.

Serves the Docker volume plugin protocol on a Unix socket:

    hcvolume            # uses HCVOLUME_* environment variables
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from hcvolume import __version__
from hcvolume.api.dependencies import close_driver, init_driver
from hcvolume.api.errors import ErrorResponse, PluginError
from hcvolume.api.health import router as health_router
from hcvolume.api.middleware import LoggingMiddleware
from hcvolume.api.v1 import volume_driver_router
from hcvolume.config import get_plugin_config
from hcvolume.logging import setup_logging
from hcvolume.logging_schema import LogEvent
from hcvolume.metrics import get_metrics_response

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    config = get_plugin_config()
    if not config.cloud.token.strip():
        logger.warning("No API token configured (HCVOLUME_CLOUD_TOKEN); cloud calls will fail")

    init_driver(config)
    logger.info(
        "Starting volume driver",
        extra={
            "event": LogEvent.APP_STARTED,
            "version": __version__,
            "socket": config.server.socket_path,
            "prefix": config.volume.prefix,
        },
    )

    yield

    logger.info("Shutting down volume driver", extra={"event": LogEvent.APP_STOPPED})
    await close_driver()


app = FastAPI(title="hcvolume", version=__version__, lifespan=lifespan)
app.add_middleware(LoggingMiddleware)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(err=message).model_dump(by_alias=True),
    )


@app.exception_handler(PluginError)
async def plugin_error_handler(request: Request, exc: PluginError) -> JSONResponse:
    """Render PluginError as a protocol error response."""
    logger.error(
        exc.message,
        extra={"event": LogEvent.PLUGIN_ERROR, "path": request.url.path, "error_code": exc.code.value},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(by_alias=True),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are protocol errors, not 422 detail lists."""
    details = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'][1:]) or 'body'}: {err['msg']}" for err in exc.errors()
    )
    return _error_response(400, f"invalid request: {details}")


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled exception",
        extra={"event": LogEvent.UNHANDLED_EXCEPTION, "path": request.url.path},
    )
    return _error_response(500, "Internal server error")


app.include_router(health_router)
app.include_router(volume_driver_router)


@app.get("/metrics", include_in_schema=False)
async def metrics():
    """Prometheus metrics endpoint."""
    return get_metrics_response()


def main() -> None:
    """Run the plugin server on the configured Unix socket."""
    config = get_plugin_config()
    try:
        setup_logging(config.logging)
    except ValueError as e:
        print(f"hcvolume: {e}", file=sys.stderr)
        sys.exit(1)

    uvicorn.run(
        app,
        uds=config.server.socket_path,
        log_config=None,
        access_log=False,
    )


if __name__ == "__main__":
    main()
