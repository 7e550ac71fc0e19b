"""Tests for settings and logging setup."""

import logging
from pathlib import Path

import pytest

from tasktrack.config import load_settings
from tasktrack.logging_setup import setup_logging


class TestSettings:
    """Tests for load_settings."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in ("TASK_DB_PATH", "TASK_HISTORY_LIMIT", "TASK_LOG_LEVEL", "TASK_LOG_FILE"):
            monkeypatch.delenv(name, raising=False)

    def test_defaults(self):
        """Test the defaults with an empty environment."""
        settings = load_settings()

        assert settings.db_path == Path("tasks.json")
        assert settings.history_limit == 50
        assert settings.log_level == "WARNING"
        assert settings.log_file is None

    def test_values_from_environment(self, monkeypatch, tmp_path):
        """Test that every variable is honored."""
        monkeypatch.setenv("TASK_DB_PATH", str(tmp_path / "db.json"))
        monkeypatch.setenv("TASK_HISTORY_LIMIT", "10")
        monkeypatch.setenv("TASK_LOG_LEVEL", "debug")
        monkeypatch.setenv("TASK_LOG_FILE", str(tmp_path / "task.log"))

        settings = load_settings()

        assert settings.db_path == tmp_path / "db.json"
        assert settings.history_limit == 10
        assert settings.log_level == "DEBUG"
        assert settings.log_file == tmp_path / "task.log"

    @pytest.mark.parametrize("raw", ["abc", "0", "-5", " "])
    def test_invalid_history_limit_uses_default(self, monkeypatch, raw):
        """Test that unusable limits fall back to 50."""
        monkeypatch.setenv("TASK_HISTORY_LIMIT", raw)
        assert load_settings().history_limit == 50


class TestSetupLogging:
    """Tests for setup_logging."""

    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        for h in list(root.handlers):
            root.removeHandler(h)
            h.close()
        for h in handlers:
            root.addHandler(h)
        root.setLevel(level)

    def test_replaces_handlers(self):
        """Test that repeated calls don't stack handlers."""
        setup_logging("INFO")
        setup_logging("INFO")
        assert len(logging.getLogger().handlers) == 1
        assert logging.getLogger().level == logging.INFO

    def test_unknown_level_name(self):
        """Test that a bogus level name falls back to WARNING."""
        setup_logging("LOUD")
        assert logging.getLogger().handlers[0].level == logging.WARNING

    def test_file_handler(self, tmp_path):
        """Test that the log file receives debug records."""
        log_file = tmp_path / "logs" / "task.log"
        setup_logging("ERROR", log_file)

        logging.getLogger("tasktrack.test").debug("hello file")
        for h in logging.getLogger().handlers:
            h.flush()

        assert "hello file" in log_file.read_text(encoding="utf-8")
