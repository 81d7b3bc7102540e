"""Tests for structured logging configuration."""

import json
import logging
import sys
from unittest.mock import patch

from studio.app.core.logging import (
    ContextFilter,
    JSONFormatter,
    get_log_context,
    get_logger,
    get_logging_config,
)


def make_record(msg="Test message", level=logging.INFO, exc_info=None):
    return logging.LogRecord(
        name="test",
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


class TestJSONFormatter:
    """Test JSON formatter for structured logging."""

    def test_basic_json_format(self):
        data = json.loads(JSONFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "test"
        assert data["message"] == "Test message"
        assert "timestamp" in data
        assert data["source"]["file"] == "test.py"
        assert data["source"]["line"] == 1
        assert "extra" not in data

    def test_json_format_with_context(self):
        record = make_record("Rate limit exceeded")
        record.client_id = "203.0.113.7-curl"
        record.rate_class = "writing"
        record.duration_ms = 12.5

        data = json.loads(JSONFormatter().format(record))

        assert data["client_id"] == "203.0.113.7-curl"
        assert data["rate_class"] == "writing"
        assert data["duration_ms"] == 12.5

    def test_json_format_with_extra_fields(self):
        record = make_record("Custom event")
        record.retry_after_ms = 3600000

        data = json.loads(JSONFormatter().format(record))

        assert data["extra"]["retry_after_ms"] == 3600000

    def test_json_format_with_exception(self):
        try:
            raise ValueError("Test error")
        except ValueError:
            record = make_record("Error occurred", logging.ERROR, sys.exc_info())

        data = json.loads(JSONFormatter().format(record))

        exception_text = "".join(data["exception"])
        assert "ValueError" in exception_text
        assert "Test error" in exception_text

    def test_filtered_record_omits_empty_context(self):
        record = make_record()
        ContextFilter().filter(record)

        data = json.loads(JSONFormatter().format(record))

        assert "client_id" not in data
        assert "extra" not in data


class TestContextFilter:
    """Test context filter for adding default fields."""

    def test_adds_default_fields(self):
        record = make_record()

        assert ContextFilter().filter(record) is True
        for field in JSONFormatter.CONTEXT_FIELDS:
            assert hasattr(record, field)

    def test_preserves_existing_values(self):
        record = make_record()
        record.rate_class = "image"

        ContextFilter().filter(record)

        assert record.rate_class == "image"


class TestLoggingConfig:
    """Test dictConfig generation."""

    def test_default_text_format(self):
        with patch("studio.app.core.logging.settings") as mock_settings:
            mock_settings.log_format = "text"
            mock_settings.log_level = "debug"
            config = get_logging_config()

        assert config["handlers"]["console"]["formatter"] == "standard"
        assert config["loggers"]["studio"]["level"] == "DEBUG"

    def test_json_format(self):
        with patch("studio.app.core.logging.settings") as mock_settings:
            mock_settings.log_format = "JSON"
            mock_settings.log_level = "INFO"
            config = get_logging_config()

        assert config["handlers"]["console"]["formatter"] == "json"
        assert config["formatters"]["json"]["()"] == "studio.app.core.logging.JSONFormatter"

    def test_structured_format(self):
        with patch("studio.app.core.logging.settings") as mock_settings:
            mock_settings.log_format = "structured"
            mock_settings.log_level = "INFO"
            config = get_logging_config()

        assert "rate_class" in config["formatters"]["structured"]["format"]
        assert config["handlers"]["console"]["formatter"] == "structured"


class TestHelpers:
    def test_get_logger(self):
        assert get_logger().name == "studio"
        assert get_logger("studio.app.test").name == "studio.app.test"

    def test_get_log_context_drops_none(self):
        assert get_log_context(client_id="c", rate_class=None, retry_after_ms=5) == {
            "client_id": "c",
            "retry_after_ms": 5,
        }
