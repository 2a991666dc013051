"""Tests for settings, logging setup, the session journal and errors."""

import logging
import os

import pytest
from pydantic import ValidationError

from movement_engine.core.config import (
    EngineSettings, HistoryConfig, ValidityConfig, load_settings,
)
from movement_engine.core.data_types import BodySegment
from movement_engine.helpers.exceptions import (
    MovementEngineError, ProfileConfigurationError, UnknownExerciseError,
)
from movement_engine.utils.logger import LogCategory, LogLevel, SessionLogger, configure_logging


class TestSettings:

    def test_defaults(self):
        settings = EngineSettings()
        assert settings.validity.threshold_for(BodySegment.HEAD) == 0.7
        assert settings.validity.threshold_for(BodySegment.CORE) == 0.5
        assert settings.history.capacity == 30
        assert settings.tracking.subject_loss_frames == 30

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("MOVEMENT_ENGINE_HISTORY__CAPACITY", "12")
        monkeypatch.setenv("MOVEMENT_ENGINE_VALIDITY__SUPPRESS_ON_BAD_DISTANCE", "false")
        settings = EngineSettings()
        assert settings.history.capacity == 12
        assert settings.validity.suppress_on_bad_distance is False

    def test_load_settings_reads_env_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("MOVEMENT_ENGINE_JOURNAL_SIZE", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("MOVEMENT_ENGINE_JOURNAL_SIZE=42\n", encoding="utf-8")
        assert load_settings(str(env_file)).JOURNAL_SIZE == 42
        assert "MOVEMENT_ENGINE_JOURNAL_SIZE" not in os.environ
        assert EngineSettings().JOURNAL_SIZE == 500

    def test_explicit_overrides_win(self):
        settings = load_settings(history=HistoryConfig(capacity=5))
        assert settings.history.capacity == 5

    def test_invalid_distance_bounds(self):
        with pytest.raises(ValidationError):
            ValidityConfig(too_far_span=0.9, too_close_span=0.5)

    def test_invalid_capacity(self):
        with pytest.raises(ValidationError):
            HistoryConfig(capacity=1)


class TestLogging:

    def test_configure_from_file(self):
        configure_logging(EngineSettings().LOGGING_CONFIG_FILE)
        assert logging.getLogger("movement_engine").level == logging.INFO

    def test_configure_without_file(self, tmp_path):
        configure_logging(str(tmp_path / "missing.ini"))

    def test_journal_is_bounded(self):
        journal = SessionLogger(session_id="abc", max_entries=3)
        for i in range(5):
            journal.info(LogCategory.SYSTEM, f"entry {i}")
        assert len(journal.entries) == 3
        assert journal.entries[0].message == "entry 2"

    def test_journal_filter_and_summary(self):
        journal = SessionLogger(session_id="abc")
        journal.info(LogCategory.REP, "rep 1", {"rep_number": 1})
        journal.warning(LogCategory.VALIDITY, "subject lost")
        assert [e.message for e in journal.filter(level=LogLevel.WARNING)] == ["subject lost"]
        summary = journal.summary()
        assert summary["total_entries"] == 2
        assert summary["by_category"] == {"rep": 1, "validity": 1}

    def test_journal_mirrors_to_logging(self, caplog):
        journal = SessionLogger(session_id="abcdef123456")
        with caplog.at_level(logging.INFO, logger="movement_engine"):
            journal.info(LogCategory.PHASE, "squat matched")
        assert "[abcdef12] [PHASE] squat matched" in caplog.text


class TestErrors:

    def test_error_codes(self):
        assert UnknownExerciseError("x").to_dict() == {"code": "101", "message": "x"}
        assert ProfileConfigurationError().code == "100"
        assert isinstance(UnknownExerciseError(), MovementEngineError)
