"""
Unit tests for structured logging.
"""
import json
import logging
import sys

import pytest

from eventgrid.utils.logger import (
    JSONFormatter,
    PerformanceLogger,
    _parse_size,
    get_logger,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Keep root logger handlers intact across tests."""
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    for handler in root_logger.handlers:
        if handler not in handlers:
            handler.close()
    root_logger.handlers = handlers
    root_logger.setLevel(level)


def make_record(msg="Events published", **extra):
    record = logging.LogRecord(
        name="eventgrid.publisher",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Test JSON log output."""

    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(make_record()))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "eventgrid.publisher"
        assert entry["message"] == "Events published"
        assert "timestamp" in entry

    def test_extra_fields(self):
        entry = json.loads(JSONFormatter().format(make_record(event_count=2, event_ids=["evt-1", "evt-2"])))

        assert entry["event_count"] == 2
        assert entry["event_ids"] == ["evt-1", "evt-2"]

    def test_unserializable_extra_is_stringified(self):
        entry = json.loads(JSONFormatter().format(make_record(session=object())))

        assert isinstance(entry["session"], str)

    def test_exception_info(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = make_record()
            record.exc_info = sys.exc_info()

        entry = json.loads(JSONFormatter().format(record))

        assert entry["exception"]["type"] == "ValueError"
        assert entry["exception"]["message"] == "boom"


class TestSetupLogging:
    """Test logging configuration."""

    def test_console_only(self):
        setup_logging(log_level="DEBUG", log_format="text")

        root_logger = logging.getLogger()
        assert root_logger.level == logging.DEBUG
        assert len(root_logger.handlers) == 1

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "eventgrid.log"

        setup_logging(log_level="INFO", log_file=str(log_file), enable_console=False)
        logging.getLogger("eventgrid.test").info("written", extra={"event_count": 1})
        for handler in logging.getLogger().handlers:
            handler.flush()

        entry = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert entry["message"] == "written"
        assert entry["event_count"] == 1

    @pytest.mark.parametrize("size,expected", [
        ("10MB", 10 * 1024 * 1024),
        ("512KB", 512 * 1024),
        ("1GB", 1024 ** 3),
        ("2048", 2048),
        ("garbage", 10 * 1024 * 1024),
    ])
    def test_parse_size(self, size, expected):
        assert _parse_size(size) == expected


class TestContextLogging:
    """Test bound logger context and timing."""

    def test_get_logger_merges_context(self, caplog):
        logger = get_logger("eventgrid.test", topic_endpoint="https://cars.example.com/api/events")

        with caplog.at_level(logging.INFO, logger="eventgrid.test"):
            logger.info("Publishing batch", extra={"event_count": 3})

        record = caplog.records[-1]
        assert record.topic_endpoint == "https://cars.example.com/api/events"
        assert record.event_count == 3

    def test_performance_logger(self, caplog):
        logger = logging.getLogger("eventgrid.test")

        with caplog.at_level(logging.DEBUG, logger="eventgrid.test"):
            with PerformanceLogger("publish_attempt", logger, attempt=1) as perf:
                pass

        assert perf.duration_ms is not None
        record = caplog.records[-1]
        assert record.operation == "publish_attempt"
        assert record.success is True
        assert record.attempt == 1

    def test_performance_logger_does_not_suppress(self, caplog):
        logger = logging.getLogger("eventgrid.test")

        with caplog.at_level(logging.DEBUG, logger="eventgrid.test"):
            with pytest.raises(RuntimeError):
                with PerformanceLogger("publish_attempt", logger):
                    raise RuntimeError("network down")

        assert caplog.records[-1].success is False
        assert caplog.records[-1].error_type == "RuntimeError"
