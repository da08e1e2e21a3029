"""Unit tests for logging setup."""

import json
import logging

import pytest

from hcvolume.config import LoggingConfig
from hcvolume.logging import PluginJsonFormatter, RateLimitFilter, parse_level, setup_logging
from hcvolume.logging_schema import LogEvent


@pytest.fixture
def restore_root_logger():
    """Undo setup_logging() changes to the root logger."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestParseLevel:
    @pytest.mark.parametrize(
        "name,expected",
        [("debug", logging.DEBUG), ("INFO", logging.INFO), (" warning ", logging.WARNING)],
    )
    def test_known_levels(self, name: str, expected: int) -> None:
        assert parse_level(name) == expected

    def test_unknown_level(self) -> None:
        with pytest.raises(ValueError):
            parse_level("verbose")


class TestSetupLogging:
    def test_unknown_format(self, restore_root_logger) -> None:
        with pytest.raises(ValueError):
            setup_logging(LoggingConfig(level="INFO", format="xml"))

    def test_unknown_level_is_fatal(self, restore_root_logger) -> None:
        with pytest.raises(ValueError):
            setup_logging(LoggingConfig(level="loud", format="bare"))

    def test_json_format(self, restore_root_logger) -> None:
        setup_logging(LoggingConfig(level="DEBUG", format="json"))

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, PluginJsonFormatter)

    def test_bare_format(self, restore_root_logger) -> None:
        setup_logging(LoggingConfig(level="INFO", format="bare"))

        record = logging.LogRecord("test", logging.INFO, __file__, 1, "mounted %s", ("data",), None)
        assert logging.getLogger().handlers[0].formatter.format(record) == "mounted data"


class TestPluginJsonFormatter:
    def test_standard_fields(self) -> None:
        formatter = PluginJsonFormatter(LoggingConfig(service_name="hcvolume-test"))
        record = logging.LogRecord("hcvolume.driver", logging.INFO, __file__, 10, "attached", (), None)
        record.event = LogEvent.VOLUME_ATTACHED

        data = json.loads(formatter.format(record))

        assert data["message"] == "attached"
        assert data["level"] == "INFO"
        assert data["logger"] == "hcvolume.driver"
        assert data["service"] == "hcvolume-test"
        assert data["event"] == "volume_attached"


class TestRateLimitFilter:
    def _record(self, msg: str, level: int = logging.INFO) -> logging.LogRecord:
        return logging.LogRecord("test", level, __file__, 1, msg, (), None)

    def test_suppresses_duplicates(self) -> None:
        rate_filter = RateLimitFilter(rate_limit_seconds=60)

        assert rate_filter.filter(self._record("same"))
        assert not rate_filter.filter(self._record("same"))
        assert rate_filter.filter(self._record("different"))

    def test_errors_always_pass(self) -> None:
        rate_filter = RateLimitFilter(rate_limit_seconds=60)

        assert rate_filter.filter(self._record("fail", logging.ERROR))
        assert rate_filter.filter(self._record("fail", logging.ERROR))
