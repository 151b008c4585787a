"""Load generator configuration via environment variables."""

from dataclasses import dataclass

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "booking-loadgen"

    backend_url: str = "http://127.0.0.1:8080"
    scenario: str = "normal"
    duration_minutes: float = Field(default=60.0, ge=0)
    log_level: str = "info"
    log_format: str = "console"

    request_timeout_seconds: float = Field(default=10.0, gt=0)
    health_timeout_seconds: float = Field(default=5.0, gt=0)
    preload_limit: int = Field(default=50, gt=0)

    # Pacing
    report_interval_seconds: float = Field(default=30.0, gt=0)
    stop_grace_seconds: float = Field(default=2.0, ge=0)
    worker_error_backoff_seconds: float = Field(default=5.0, ge=0)
    action_delay_min_seconds: float = Field(default=0.5, ge=0)
    action_delay_max_seconds: float = Field(default=3.0, ge=0)
    session_delay_min_seconds: float = Field(default=1.0, ge=0)
    session_delay_max_seconds: float = Field(default=10.0, ge=0)

    seed: int | None = None
    scenario_file: str | None = None
    results_file: str | None = None

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}

    @model_validator(mode="after")
    def _check_delay_ranges(self) -> "Settings":
        if self.action_delay_min_seconds > self.action_delay_max_seconds:
            raise ValueError("ACTION_DELAY_MIN_SECONDS must not exceed ACTION_DELAY_MAX_SECONDS")
        if self.session_delay_min_seconds > self.session_delay_max_seconds:
            raise ValueError(
                "SESSION_DELAY_MIN_SECONDS must not exceed SESSION_DELAY_MAX_SECONDS"
            )
        return self

    @property
    def duration_seconds(self) -> float:
        return self.duration_minutes * 60.0

    def pacing(self) -> "PacingConfig":
        return PacingConfig(
            action_delay=(self.action_delay_min_seconds, self.action_delay_max_seconds),
            session_delay=(self.session_delay_min_seconds, self.session_delay_max_seconds),
            error_backoff_seconds=self.worker_error_backoff_seconds,
            report_interval_seconds=self.report_interval_seconds,
            stop_grace_seconds=self.stop_grace_seconds,
        )


@dataclass(frozen=True)
class PacingConfig:
    """Delay ranges and timers that shape the soft request rate."""

    # Uniform pause between two calls of one session
    action_delay: tuple[float, float] = (0.5, 3.0)
    # Uniform pause between two sessions of one worker
    session_delay: tuple[float, float] = (1.0, 10.0)
    error_backoff_seconds: float = 5.0
    report_interval_seconds: float = 30.0
    stop_grace_seconds: float = 2.0

    @property
    def mean_action_delay(self) -> float:
        return sum(self.action_delay) / 2

    @property
    def mean_session_delay(self) -> float:
        return sum(self.session_delay) / 2
