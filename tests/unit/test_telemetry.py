"""Unit tests for telemetry module."""

import asyncio
import json
import logging
import sys

import pytest

from envelope_images.commons.telemetry.decorators import LogContext, timed
from envelope_images.commons.telemetry.logger import (
    JsonFormatter,
    TextFormatter,
    build_formatter,
    clear_log_context,
    configure_logging,
    get_correlation_id,
    get_log_context,
    set_correlation_id,
    set_log_context,
)


def _record(msg: str = "Test", level: int = logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="test.logger",
        level=level,
        pathname="/test/file.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestCorrelationId:
    """Tests for correlation ID management."""

    def test_set_and_get_correlation_id(self):
        cid = set_correlation_id("test-123")
        assert cid == "test-123"
        assert get_correlation_id() == "test-123"

    def test_auto_generate_correlation_id(self):
        cid = set_correlation_id()
        assert cid is not None
        assert len(cid) == 36  # UUID format

    def test_correlation_id_isolation(self):
        """Test that correlation IDs are isolated per context."""
        set_correlation_id("main-context")

        async def async_task():
            set_correlation_id("async-context")
            return get_correlation_id()

        result = asyncio.run(async_task())
        assert result == "async-context"


class TestLogContext:
    """Tests for logging context management."""

    def setup_method(self):
        clear_log_context()

    def teardown_method(self):
        clear_log_context()

    def test_set_and_get_context(self):
        set_log_context(envelope_id=7, operation="put")
        ctx = get_log_context()
        assert ctx["envelope_id"] == 7
        assert ctx["operation"] == "put"

    def test_clear_context(self):
        set_log_context(key="value")
        clear_log_context()
        assert get_log_context() == {}

    def test_context_is_copied(self):
        set_log_context(key="value")
        ctx = get_log_context()
        ctx["new_key"] = "new_value"
        assert "new_key" not in get_log_context()


class TestJsonFormatter:
    """Tests for JSON log formatter."""

    def teardown_method(self):
        clear_log_context()

    def test_basic_format(self):
        data = json.loads(JsonFormatter().format(_record("Test message")))

        assert data["level"] == "INFO"
        assert data["logger"] == "test.logger"
        assert data["message"] == "Test message"
        assert "timestamp" in data
        assert "/test/file.py:42" in data["path"]

    def test_service_name(self):
        data = json.loads(JsonFormatter(service="envelope-images").format(_record()))
        assert data["service"] == "envelope-images"

    def test_format_with_correlation_id(self):
        set_correlation_id("test-cid")
        data = json.loads(JsonFormatter().format(_record()))
        assert data["correlation_id"] == "test-cid"

    def test_format_with_context(self):
        set_log_context(envelope_id=7)
        data = json.loads(JsonFormatter().format(_record()))
        assert data["context"]["envelope_id"] == 7

    def test_extra_fields_are_included(self):
        data = json.loads(
            JsonFormatter().format(_record(blob_handle="abc", size_bytes=500))
        )
        assert data["blob_handle"] == "abc"
        assert data["size_bytes"] == 500

    def test_format_with_exception(self):
        formatter = JsonFormatter()
        try:
            raise ValueError("Test error")
        except ValueError:
            record = _record("Error occurred", logging.ERROR)
            record.exc_info = sys.exc_info()
            data = json.loads(formatter.format(record))

        assert "exception" in data
        assert "ValueError" in data["exception"]


class TestTextFormatter:
    """Tests for text log formatter."""

    def teardown_method(self):
        clear_log_context()

    def test_basic_format(self):
        output = TextFormatter().format(_record("Test message"))
        assert "INFO" in output
        assert "[test.logger]" in output
        assert "Test message" in output

    def test_envelope_context(self):
        set_log_context(envelope_id=42)
        output = TextFormatter().format(_record())
        assert "(envelope=42)" in output


class TestConfigureLogging:
    """Tests for logger configuration."""

    def test_configure_json_logger(self):
        logger = configure_logging(
            level="DEBUG", format_type="json", logger_name="test.json"
        )
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, JsonFormatter)

    def test_configure_text_logger(self):
        logger = configure_logging(
            level="INFO", format_type="text", logger_name="test.text"
        )
        assert logger.level == logging.INFO
        assert isinstance(logger.handlers[0].formatter, TextFormatter)

    def test_reconfigure_replaces_handlers(self):
        configure_logging(format_type="json", logger_name="test.reconfigure")
        logger = configure_logging(format_type="text", logger_name="test.reconfigure")
        assert len(logger.handlers) == 1

    def test_build_formatter(self):
        assert isinstance(build_formatter("json"), JsonFormatter)
        assert isinstance(build_formatter("text"), TextFormatter)


class TestTimedDecorator:
    """Tests for @timed decorator."""

    @pytest.fixture
    def timed_logger(self):
        logger = logging.getLogger("test.timed")
        logger.propagate = True
        return logger

    def test_timed_sync_function(self, caplog, timed_logger):
        @timed(logger=timed_logger)
        def work():
            return "done"

        with caplog.at_level(logging.DEBUG, logger="test.timed"):
            result = work()

        assert result == "done"
        assert any("completed" in r.getMessage() for r in caplog.records)
        assert all(hasattr(r, "duration_ms") for r in caplog.records)

    def test_timed_async_function(self, caplog, timed_logger):
        @timed(logger=timed_logger)
        async def async_work():
            await asyncio.sleep(0.01)
            return "async done"

        with caplog.at_level(logging.DEBUG, logger="test.timed"):
            result = asyncio.run(async_work())

        assert result == "async done"
        assert any("async_work completed" in r.getMessage() for r in caplog.records)

    def test_timed_reports_failure(self, caplog, timed_logger):
        @timed(logger=timed_logger)
        def failing():
            raise ValueError("boom")

        with pytest.raises(ValueError), caplog.at_level(logging.DEBUG, logger="test.timed"):
            failing()

        assert any("failed" in r.getMessage() for r in caplog.records)

    def test_timed_with_threshold(self, caplog, timed_logger):
        @timed(logger=timed_logger, threshold_ms=1000)
        def fast_function():
            return "fast"

        with caplog.at_level(logging.DEBUG, logger="test.timed"):
            result = fast_function()

        assert result == "fast"
        assert caplog.records == []

    def test_timed_without_parentheses(self):
        @timed
        def plain(x):
            return x + 1

        assert plain(1) == 2
        assert plain.__name__ == "plain"


class TestLogContextManager:
    """Tests for LogContext context manager."""

    def setup_method(self):
        clear_log_context()

    def teardown_method(self):
        clear_log_context()

    def test_context_manager_adds_context(self):
        with LogContext(envelope_id=7, operation="put"):
            ctx = get_log_context()
            assert ctx["envelope_id"] == 7
            assert ctx["operation"] == "put"

    def test_context_manager_restores_previous(self):
        set_log_context(request="outer")
        with LogContext(envelope_id=1):
            assert get_log_context() == {"request": "outer", "envelope_id": 1}
        assert get_log_context() == {"request": "outer"}
