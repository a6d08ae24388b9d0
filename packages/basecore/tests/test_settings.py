"""
Tests for settings and logging setup.
"""

import json
import logging

import pytest

from basecore.logging import JsonFormatter, setup_logging
from basecore.settings import ConfigurationError, load_settings


class TestSettings:
    """Tests for environment-driven configuration."""

    def test_defaults(self, monkeypatch):
        monkeypatch.setenv("REDIS_URL", "redis://cache:6379/1")
        settings = load_settings()

        assert settings.REDIS_URL == "redis://cache:6379/1"
        assert settings.POLL_BATCH_SIZE == 10
        assert settings.POLL_WAIT_SECONDS == 20
        assert settings.LEASE_SECONDS == 30
        assert settings.RECEIVE_ERROR_BACKOFF_SECONDS == 5.0
        assert settings.HEALTH_PORT == 8083
        assert settings.MAX_RECEIVE_COUNT == 0

    def test_missing_redis_url(self, monkeypatch, tmp_path):
        """Test that a missing broker URL is a ConfigurationError."""
        monkeypatch.delenv("REDIS_URL", raising=False)
        monkeypatch.chdir(tmp_path)

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings()
        assert "REDIS_URL" in str(exc_info.value)

    def test_invalid_value(self, monkeypatch):
        monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/0")
        monkeypatch.setenv("POLL_BATCH_SIZE", "many")

        with pytest.raises(ConfigurationError):
            load_settings()

    def test_queue_from_environment(self, monkeypatch):
        monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/0")
        monkeypatch.setenv("EXPENSE_EVENTS_QUEUE", "expense-events-queue")

        assert load_settings().EXPENSE_EVENTS_QUEUE == "expense-events-queue"


class TestLogging:
    """Tests for the JSON log format."""

    def test_json_includes_extra(self):
        record = logging.LogRecord("eventbus.publisher", logging.INFO, __file__, 1, "Published %s", ("x",), None)
        record.event_type = "expense.created"

        entry = json.loads(JsonFormatter().format(record))

        assert entry["message"] == "Published x"
        assert entry["level"] == "INFO"
        assert entry["event_type"] == "expense.created"

    def test_setup_logging_text(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging("DEBUG", "text")
            assert root.level == logging.DEBUG
            assert not isinstance(root.handlers[-1].formatter, JsonFormatter)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
