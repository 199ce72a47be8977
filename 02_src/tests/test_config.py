"""Tests for settings and structured logging."""

import json
import logging

from blisscore.config import PROJECT_ROOT, Settings, load_settings, resolve_db_path
from blisscore.logging_config import JSONFormatter


class TestSettings:
    """Tests for load_settings()."""

    def test_defaults(self, monkeypatch):
        """Test defaults when nothing is configured."""
        monkeypatch.delenv("BLISS_HISTORY_WINDOW", raising=False)
        monkeypatch.delenv("API_PORT", raising=False)

        settings = load_settings()

        assert settings.history_window == 2
        assert settings.api_port == 8000
        assert settings.persistence_retry_attempts == Settings().persistence_retry_attempts

    def test_environment_overrides(self, monkeypatch):
        """Test values read from the environment."""
        monkeypatch.setenv("BLISS_HISTORY_WINDOW", "4")
        monkeypatch.setenv("BLISS_GENERATION_TIMEOUT", "12.5")
        monkeypatch.setenv("BLISS_MIN_TRANSCRIPTION_CONFIDENCE", "0.6")
        monkeypatch.setenv("API_PORT", "9001")

        settings = load_settings()

        assert settings.history_window == 4
        assert settings.generation_timeout == 12.5
        assert settings.min_transcription_confidence == 0.6
        assert settings.api_port == 9001


class TestResolveDbPath:
    """Tests for resolve_db_path()."""

    def test_memory(self):
        assert resolve_db_path(":memory:") == ":memory:"

    def test_relative_path_is_under_project_root(self):
        assert resolve_db_path("03_data/test.db") == PROJECT_ROOT / "03_data" / "test.db"


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_format_includes_context(self):
        """Test that turn context is emitted as a JSON field."""
        record = logging.LogRecord(
            name="blisscore.orchestrator",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="Turn complete",
            args=(),
            exc_info=None,
        )
        record.context = {"turn_id": "t1", "session_id": 3}

        data = json.loads(JSONFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["logger"] == "blisscore.orchestrator"
        assert data["message"] == "Turn complete"
        assert data["context"] == {"turn_id": "t1", "session_id": 3}
