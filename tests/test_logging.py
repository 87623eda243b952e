"""
Tests for logging setup.
"""

import json
import logging

import pytest
import structlog
from rich.logging import RichHandler

from mpv_session.utils.config import LoggingConfig
from mpv_session.utils.logging import JSONFormatter, get_logger, setup_logging


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    structlog.reset_defaults()


class TestSetupLogging:
    """Test handler installation."""

    def test_console_handler(self, restore_logging):
        result = setup_logging(log_level="debug", rich_tracebacks=False)

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert any(isinstance(h, RichHandler) for h in root.handlers)
        assert result["log_dir"] is None
        assert set(result["loggers"]) >= {"main", "process", "connection"}

    def test_file_handler(self, restore_logging, temp_dir):
        log_dir = temp_dir / "logs"
        setup_logging(app_name="player-test", log_dir=log_dir, rich_tracebacks=False)

        get_logger("player-test.process").info("player_spawned", pid=123)
        for handler in logging.getLogger().handlers:
            handler.flush()

        log_file = log_dir / "player-test.log"
        assert log_file.exists()
        lines = [json.loads(line) for line in log_file.read_text().splitlines()]
        assert any("player_spawned" in line["message"] for line in lines)

    def test_from_logging_config(self, restore_logging, temp_dir):
        config = LoggingConfig(level="debug", format="json", directory=temp_dir / "logs")

        result = setup_logging(app_name="player-test", rich_tracebacks=False, config=config)
        get_logger("player-test.connection").debug("connected")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert logging.getLogger().level == logging.DEBUG
        assert result["log_dir"] == temp_dir / "logs"
        assert result["config"]["enable_json"] is True
        assert (temp_dir / "logs" / "player-test.log").exists()


class TestJSONFormatter:
    """Test JSON rendering of stdlib records."""

    def test_extra_fields(self):
        record = logging.LogRecord(
            "mpv-session.connection", logging.WARNING, __file__, 10,
            "connection_lost", None, None
        )
        record.endpoint = "/tmp/sock"
        record.unserializable = object()

        data = json.loads(JSONFormatter().format(record))

        assert data["level"] == "WARNING"
        assert data["logger"] == "mpv-session.connection"
        assert data["message"] == "connection_lost"
        assert data["endpoint"] == "/tmp/sock"
        assert isinstance(data["unserializable"], str)
