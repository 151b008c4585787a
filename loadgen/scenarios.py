"""Named load profiles, from light browsing traffic up to a stress test."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, Field, ValidationError

from loadgen.config import PacingConfig
from loadgen.errors import ConfigError

logger = structlog.get_logger()

DEFAULT_SCENARIO = "normal"

# Probabilities of the session actions that do not depend on the profile
HEALTH_CHECK_PROBABILITY = 0.01
LISTING_PROBABILITY = 0.7
DETAIL_PROBABILITY = 0.4


class ScenarioProfile(BaseModel):
    model_config = {"frozen": True}

    name: str
    title: str = ""
    description: str = ""
    concurrency: int = Field(gt=0)
    target_requests_per_minute: int = Field(gt=0)
    booking_probability: float = Field(ge=0.0, le=1.0)


BUILTIN_SCENARIOS: dict[str, ScenarioProfile] = {
    "light": ScenarioProfile(
        name="light",
        title="Light Load",
        description="Simulates 10-20 concurrent users",
        concurrency=15,
        target_requests_per_minute=30,
        booking_probability=0.10,
    ),
    "normal": ScenarioProfile(
        name="normal",
        title="Normal Load",
        description="Simulates 50-100 concurrent users",
        concurrency=75,
        target_requests_per_minute=150,
        booking_probability=0.15,
    ),
    "heavy": ScenarioProfile(
        name="heavy",
        title="Heavy Load",
        description="Simulates 200-300 concurrent users",
        concurrency=250,
        target_requests_per_minute=500,
        booking_probability=0.20,
    ),
    "stress": ScenarioProfile(
        name="stress",
        title="Stress Test",
        description="Maximum load test with 500+ concurrent users",
        concurrency=500,
        target_requests_per_minute=1000,
        booking_probability=0.25,
    ),
}


class ScenarioCatalog:
    """Lookup table of scenario profiles keyed by lower-case name."""

    def __init__(self, profiles: dict[str, ScenarioProfile] | None = None) -> None:
        source = BUILTIN_SCENARIOS if profiles is None else profiles
        self._profiles = {name.lower(): profile for name, profile in source.items()}
        if DEFAULT_SCENARIO not in self._profiles:
            raise ConfigError(f"scenario catalog must define '{DEFAULT_SCENARIO}'")

    def names(self) -> list[str]:
        return list(self._profiles)

    def get(self, name: str) -> ScenarioProfile:
        """Strict lookup; raises ``ConfigError`` for unknown names."""
        try:
            return self._profiles[name.strip().lower()]
        except KeyError:
            raise ConfigError(
                f"unknown scenario '{name}', expected one of: {', '.join(self._profiles)}"
            ) from None

    def resolve(self, name: str) -> ScenarioProfile:
        """Forgiving lookup: unknown names fall back to the default profile."""
        try:
            return self.get(name)
        except ConfigError as exc:
            logger.warning(
                "unknown_scenario_fallback",
                requested=name,
                fallback=DEFAULT_SCENARIO,
                error=str(exc),
            )
            return self._profiles[DEFAULT_SCENARIO]


def resolve(name: str) -> ScenarioProfile:
    return ScenarioCatalog().resolve(name)


def load_catalog(path: str | Path | None) -> ScenarioCatalog:
    """Build a catalog from the built-ins plus an optional YAML override file.

    The file maps scenario names to profile fields. Fields left out of an
    entry that names a built-in scenario keep the built-in value::

        heavy:
          concurrency: 300
        soak:
          concurrency: 40
          target_requests_per_minute: 80
          booking_probability: 0.1
    """
    profiles = dict(BUILTIN_SCENARIOS)
    if path is None:
        return ScenarioCatalog(profiles)

    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"cannot read scenario file {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"scenario file {path} must contain a mapping of scenarios")

    for name, fields in raw.items():
        key = str(name).lower()
        if not isinstance(fields, dict):
            raise ConfigError(f"scenario '{name}' in {path} must be a mapping")
        base: dict[str, Any] = profiles[key].model_dump() if key in profiles else {}
        base.update(fields)
        base["name"] = key
        try:
            profiles[key] = ScenarioProfile(**base)
        except ValidationError as exc:
            raise ConfigError(f"invalid scenario '{name}' in {path}: {exc}") from exc

    logger.info("scenario_file_loaded", path=str(path), scenarios=sorted(raw))
    return ScenarioCatalog(profiles)


def expected_calls_per_session(profile: ScenarioProfile, has_references: bool) -> float:
    calls = HEALTH_CHECK_PROBABILITY + LISTING_PROBABILITY
    if has_references:
        calls += DETAIL_PROBABILITY + profile.booking_probability
    return calls


def estimate_requests_per_minute(
    profile: ScenarioProfile,
    pacing: PacingConfig,
    has_references: bool = True,
    latency_seconds: float = 0.0,
) -> float:
    """Expected aggregate rate of the sleep-based pacing model.

    Each worker spends one action pause (plus the call latency) per emitted
    call and one session pause per session. The target rate is never enforced,
    so this is the number to compare it against.
    """
    calls = expected_calls_per_session(profile, has_references)
    session_seconds = calls * (pacing.mean_action_delay + latency_seconds) + pacing.mean_session_delay
    if session_seconds <= 0:
        return 0.0
    return profile.concurrency * calls * 60.0 / session_seconds
