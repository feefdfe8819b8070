"""Tests for logger.py -- setup_logging() and JsonFormatter.

Strategy: Mock logging.basicConfig to verify setup_logging passes correct args,
since pytest's log capture plugin interferes with actual basicConfig calls.
"""

import json
import logging
import sys
from unittest.mock import patch

from sheet_relay.logger import JsonFormatter, setup_logging


class TestSetupLogging:
    """Tests for setup_logging()."""

    @patch("sheet_relay.logger.logging.basicConfig")
    def test_cli_mode_logs_to_stderr(self, mock_basic):
        """CLI mode passes StreamHandler(stderr) to basicConfig."""
        setup_logging(mode="cli")

        handlers = mock_basic.call_args[1]["handlers"]
        assert len(handlers) == 1
        assert handlers[0].stream is sys.stderr
        assert mock_basic.call_args[1]["level"] == logging.INFO

    @patch("sheet_relay.logger.logging.basicConfig")
    def test_cli_mode_with_log_file(self, mock_basic, tmp_path):
        """A log file adds a FileHandler next to stderr."""
        setup_logging(mode="cli", log_file=str(tmp_path / "relay.log"))

        handlers = mock_basic.call_args[1]["handlers"]
        assert isinstance(handlers[1], logging.FileHandler)
        for handler in handlers:
            handler.close()

    @patch("sheet_relay.logger.logging.basicConfig")
    def test_service_mode_logs_to_file(self, mock_basic, tmp_path):
        """Service mode writes to a file and defaults to WARNING."""
        log_file = tmp_path / "service.log"
        setup_logging(mode="service", log_file=str(log_file))

        kwargs = mock_basic.call_args[1]
        handler = kwargs["handlers"][0]
        assert isinstance(handler, logging.FileHandler)
        assert handler.baseFilename == str(log_file)
        assert kwargs["level"] == logging.WARNING
        handler.close()

    @patch("sheet_relay.logger.logging.basicConfig")
    def test_env_log_level_honored(self, mock_basic, monkeypatch):
        """LOG_LEVEL env var is reflected in basicConfig level."""
        monkeypatch.setenv("LOG_LEVEL", "error")
        setup_logging(mode="cli")
        assert mock_basic.call_args[1]["level"] == logging.ERROR

    @patch("sheet_relay.logger.logging.basicConfig")
    def test_configured_level_used_without_env(self, mock_basic):
        """A configured level replaces the mode default."""
        setup_logging(mode="cli", level="warning")
        assert mock_basic.call_args[1]["level"] == logging.WARNING

    @patch("sheet_relay.logger.logging.basicConfig")
    def test_env_beats_configured_level(self, mock_basic, monkeypatch):
        """LOG_LEVEL env var wins over the configured level."""
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        setup_logging(mode="cli", level="DEBUG")
        assert mock_basic.call_args[1]["level"] == logging.ERROR

    @patch("sheet_relay.logger.logging.basicConfig")
    def test_debug_beats_env(self, mock_basic, monkeypatch):
        """debug=True overrides LOG_LEVEL env var."""
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        setup_logging(mode="cli", debug=True)
        assert mock_basic.call_args[1]["level"] == logging.DEBUG

    @patch("sheet_relay.logger.logging.basicConfig")
    def test_filelock_silenced_unless_debug(self, mock_basic):
        """filelock chatter is raised to WARNING outside debug mode."""
        setup_logging(mode="cli")
        assert logging.getLogger("filelock").level == logging.WARNING

    @patch("sheet_relay.logger.logging.basicConfig")
    def test_json_format_selected(self, mock_basic):
        setup_logging(mode="cli", debug_format="json")
        handler = mock_basic.call_args[1]["handlers"][0]
        assert isinstance(handler.formatter, JsonFormatter)


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_single_line_json(self):
        record = logging.LogRecord(
            "sheet_relay.relay.engine", logging.INFO, __file__, 1,
            "Transferred %s", ("Acme",), None,
        )
        data = json.loads(JsonFormatter().format(record))
        assert data["level"] == "INFO"
        assert data["logger"] == "sheet_relay.relay.engine"
        assert data["msg"] == "Transferred Acme"
        assert "exc" not in data

    def test_exception_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord(
                "x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
            )
        data = json.loads(JsonFormatter().format(record))
        assert "RuntimeError: boom" in data["exc"]
