"""Logging configuration for the volume driver.

Supports three formats:
- text: Human-readable for local development
- json: Structured logging for production (log aggregation)
- bare: Message only, for plugin output collected by the Docker daemon
"""

import logging
import sys
import time
from datetime import datetime, timezone
from typing import Any

from pythonjsonlogger import json as jsonlogger

from hcvolume.config import LoggingConfig

LOG_FORMATS = ("text", "json", "bare")


class RateLimitFilter(logging.Filter):
    """Filter to prevent log storms from repeated messages.

    Suppresses duplicate log messages within a time window.

    Args:
        rate_limit_seconds: Minimum seconds between identical messages (default: 5)
        max_cache_size: Maximum number of messages to track (default: 1000)
    """

    def __init__(
        self,
        rate_limit_seconds: float = 5.0,
        max_cache_size: int = 1000,
        name: str = "",
    ) -> None:
        super().__init__(name)
        self._rate_limit = rate_limit_seconds
        self._max_cache = max_cache_size
        self._last_log: dict[str, float] = {}

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter duplicate messages within the rate limit window."""
        # ERROR and above always pass through
        if record.levelno >= logging.ERROR:
            return True

        key = f"{record.name}:{record.lineno}:{record.getMessage()}"

        now = time.monotonic()
        last_time = self._last_log.get(key)

        if last_time is not None and now - last_time < self._rate_limit:
            return False

        self._last_log[key] = now

        if len(self._last_log) > self._max_cache:
            oldest_keys = sorted(self._last_log, key=self._last_log.get)[:100]  # type: ignore[arg-type]
            for old_key in oldest_keys:
                del self._last_log[old_key]

        return True


class PluginJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter with standard fields for log aggregation.

    Adds:
    - timestamp: ISO 8601 format with timezone
    - level: Log level name
    - logger: Logger name
    - service: Service identifier
    - pid: Process ID
    """

    def __init__(self, config: LoggingConfig, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._service = config.service_name

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.fromtimestamp(
            record.created, tz=timezone.utc
        ).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["service"] = self._service
        log_record["pid"] = record.process

        log_record["filename"] = record.filename
        log_record["lineno"] = record.lineno

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        log_record.pop("color_message", None)


def parse_level(level: str) -> int:
    """Translate a level name into a logging level.

    Raises:
        ValueError: If the name is not a known logging level.
    """
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"could not parse log level {level!r}")
    return value


def setup_logging(config: LoggingConfig) -> None:
    """Configure logging for the application.

    Args:
        config: Logging configuration settings.

    Raises:
        ValueError: On an unknown level or format. Callers treat this as fatal.
    """
    level = parse_level(config.level)

    if config.format == "json":
        formatter: logging.Formatter = PluginJsonFormatter(config)
    elif config.format == "text":
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
    elif config.format == "bare":
        formatter = logging.Formatter("%(message)s")
    else:
        raise ValueError(
            f"unknown log format {config.format!r} (expected one of {', '.join(LOG_FORMATS)})"
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.addFilter(RateLimitFilter(rate_limit_seconds=5.0))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in ("uvicorn", "uvicorn.error"):
        uv_logger = logging.getLogger(name)
        uv_logger.handlers.clear()
        uv_logger.propagate = False
        uv_logger.addHandler(handler)

    # Docker polls the plugin constantly; access logs are noise
    logging.getLogger("uvicorn.access").disabled = True

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
