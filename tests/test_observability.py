"""
Tests for observability — logging setup and level resolution.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from mirrorpub.core.observability.logging_config import (
    ENV_LOG_LEVEL,
    parse_level,
    resolve_level,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestResolveLevel:
    def test_flag_precedence(self):
        assert resolve_level(debug=True, verbose=True, quiet=True) == "DEBUG"
        assert resolve_level(verbose=True, quiet=True) == "INFO"
        assert resolve_level(quiet=True) == "ERROR"

    def test_env(self, monkeypatch):
        monkeypatch.setenv(ENV_LOG_LEVEL, "INFO")
        assert resolve_level() == "INFO"
        assert resolve_level(quiet=True) == "ERROR"

    def test_default(self, monkeypatch):
        monkeypatch.delenv(ENV_LOG_LEVEL, raising=False)
        assert resolve_level() == "WARNING"
        assert resolve_level(default="INFO") == "INFO"


class TestParseLevel:
    def test_names(self):
        assert parse_level("debug") == logging.DEBUG
        assert parse_level("ERROR") == logging.ERROR

    def test_unknown_falls_back(self):
        assert parse_level("chatty") == logging.WARNING
        assert parse_level(None) == logging.WARNING
        assert parse_level("") == logging.WARNING


class TestSetupLogging:
    def test_console_level(self):
        setup_logging("INFO")
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        assert logging.getLogger("werkzeug").level == logging.WARNING

    def test_file_handler(self, tmp_path: Path):
        log_file = tmp_path / "mirrorpub.log"
        setup_logging("WARNING", log_file=str(log_file), log_file_level="DEBUG")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2

        logging.getLogger("mirrorpub.test").debug("selected %d mirrors", 3)
        for handler in root.handlers:
            handler.flush()
        assert "selected 3 mirrors" in log_file.read_text()

    def test_repeated_setup_replaces_handlers(self):
        setup_logging("INFO")
        setup_logging("DEBUG")
        assert len(logging.getLogger().handlers) == 1
