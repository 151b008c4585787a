"""Tests for load generator configuration."""

import pytest
from pydantic import ValidationError

from loadgen.config import PacingConfig, Settings


class TestSettings:
    def test_default_settings(self):
        settings = Settings()
        assert settings.app_name == "booking-loadgen"
        assert settings.backend_url == "http://127.0.0.1:8080"
        assert settings.scenario == "normal"
        assert settings.duration_minutes == 60
        assert settings.seed is None
        assert settings.results_file is None

    def test_settings_from_env(self, monkeypatch):
        monkeypatch.setenv("BACKEND_URL", "http://api.test:9000")
        monkeypatch.setenv("SCENARIO", "heavy")
        monkeypatch.setenv("DURATION_MINUTES", "2.5")
        monkeypatch.setenv("SEED", "99")
        settings = Settings()
        assert settings.backend_url == "http://api.test:9000"
        assert settings.scenario == "heavy"
        assert settings.duration_minutes == 2.5
        assert settings.duration_seconds == 150
        assert settings.seed == 99

    def test_zero_duration_is_allowed(self):
        assert Settings(duration_minutes=0).duration_seconds == 0

    def test_negative_duration_rejected(self):
        with pytest.raises(ValidationError):
            Settings(duration_minutes=-1)

    def test_delay_range_must_be_ordered(self, monkeypatch):
        monkeypatch.setenv("ACTION_DELAY_MIN_SECONDS", "5")
        monkeypatch.setenv("ACTION_DELAY_MAX_SECONDS", "1")
        with pytest.raises(ValidationError, match="ACTION_DELAY_MIN_SECONDS"):
            Settings()

    def test_pacing(self):
        settings = Settings(
            action_delay_min_seconds=1,
            action_delay_max_seconds=2,
            session_delay_min_seconds=3,
            session_delay_max_seconds=5,
            report_interval_seconds=10,
        )
        pacing = settings.pacing()
        assert pacing.action_delay == (1, 2)
        assert pacing.session_delay == (3, 5)
        assert pacing.report_interval_seconds == 10
        assert pacing.mean_action_delay == 1.5
        assert pacing.mean_session_delay == 4


class TestPacingConfig:
    def test_defaults(self):
        pacing = PacingConfig()
        assert pacing.action_delay == (0.5, 3.0)
        assert pacing.session_delay == (1.0, 10.0)
        assert pacing.stop_grace_seconds == 2.0
        assert pacing.report_interval_seconds == 30.0
