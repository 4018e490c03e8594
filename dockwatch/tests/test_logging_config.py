"""Tests for logging configuration (logging_config.py).

This module tests:
- JSONFormatter log output format
- TextFormatter log output format
- setup_logging() function configuration
"""
from __future__ import annotations

import json
import logging
import sys

import pytest

from dockwatch.logging_config import JSONFormatter, TextFormatter, setup_logging


def make_record(msg="Test message", level=logging.INFO, name="test", exc_info=None):
    return logging.LogRecord(
        name=name,
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


class TestJSONFormatter:
    """Tests for JSONFormatter class."""

    def setup_method(self):
        """Set up test fixtures."""
        self.formatter = JSONFormatter()

    def test_format_includes_required_fields(self):
        """Test that formatted output includes all required fields."""
        record = make_record("Warning message", logging.WARNING, "test.module")
        parsed = json.loads(self.formatter.format(record))

        assert parsed["level"] == "WARNING"
        assert parsed["logger"] == "test.module"
        assert parsed["message"] == "Warning message"
        assert parsed["service"] == "dockwatch"
        assert "T" in parsed["timestamp"]

    def test_format_includes_extra_fields(self):
        """Test that fields passed via extra= land under "extra"."""
        record = make_record()
        record.container_id = "c1"
        record.unserializable = object()
        parsed = json.loads(self.formatter.format(record))

        assert parsed["extra"]["container_id"] == "c1"
        assert isinstance(parsed["extra"]["unserializable"], str)

    def test_format_omits_extra_when_empty(self):
        parsed = json.loads(self.formatter.format(make_record()))
        assert "extra" not in parsed

    def test_format_includes_exception_info(self):
        """Test that exception info is included when present."""
        try:
            raise ValueError("Test error")
        except ValueError:
            record = make_record(level=logging.ERROR, exc_info=sys.exc_info())

        parsed = json.loads(self.formatter.format(record))

        assert "ValueError: Test error" in parsed["exception"]


class TestTextFormatter:
    """Tests for TextFormatter class."""

    def test_format_contains_level_logger_and_message(self):
        output = TextFormatter().format(make_record("hello", logging.INFO, "dockwatch.events"))

        assert "INFO" in output
        assert "dockwatch.events: hello" in output


class TestSetupLogging:
    """Tests for setup_logging()."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers = root.handlers[:]
        level = root.level
        yield
        root.handlers = handlers
        root.setLevel(level)

    @pytest.mark.parametrize("log_format,formatter_cls", [("json", JSONFormatter), ("text", TextFormatter)])
    def test_uses_configured_format(self, monkeypatch, log_format, formatter_cls):
        monkeypatch.setattr("dockwatch.logging_config.settings.log_format", log_format)

        setup_logging()

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, formatter_cls)

    def test_uses_configured_level(self, monkeypatch):
        monkeypatch.setattr("dockwatch.logging_config.settings.log_level", "debug")

        setup_logging()

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("docker").level == logging.WARNING
