"""Tests for logging setup."""

import json
import logging
import sys

import pytest

from relaycore.logging import JsonFormatter, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


class TestJsonFormatter:
    """Test structured log output."""

    def test_includes_extra_fields(self):
        record = logging.LogRecord("correlation.test", logging.INFO, __file__, 1, "Stored %s", ("req-1",), None)
        record.request_id = "req-1"
        record.ttl = 60

        entry = json.loads(JsonFormatter().format(record))

        assert entry["message"] == "Stored req-1"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "correlation.test"
        assert entry["request_id"] == "req-1"
        assert entry["ttl"] == 60
        assert "timestamp" in entry

    def test_includes_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("t", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

        entry = json.loads(JsonFormatter().format(record))

        assert "RuntimeError: boom" in entry["exc_info"]


class TestSetupLogging:
    """Test root logger configuration."""

    def test_idempotent(self, restore_root_logger):
        setup_logging("INFO", "json")
        setup_logging("DEBUG", "text")

        named = [h for h in restore_root_logger.handlers if h.get_name() == "correlay"]
        assert len(named) == 1
        assert not isinstance(named[0].formatter, JsonFormatter)
        assert restore_root_logger.level == logging.DEBUG

    def test_defaults_from_settings(self, restore_root_logger, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        monkeypatch.setenv("LOG_FORMAT", "json")

        setup_logging()

        (handler,) = [h for h in restore_root_logger.handlers if h.get_name() == "correlay"]
        assert isinstance(handler.formatter, JsonFormatter)
        assert restore_root_logger.level == logging.WARNING
