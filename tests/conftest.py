"""Shared test fixtures for the load generator tests."""

import random
from collections.abc import Callable

import httpx
import pytest

from loadgen.config import PacingConfig
from loadgen.stats import StatsAggregator

LOADGEN_ENV_VARS = (
    "BACKEND_URL",
    "SCENARIO",
    "DURATION_MINUTES",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "SEED",
    "SCENARIO_FILE",
    "RESULTS_FILE",
    "REQUEST_TIMEOUT_SECONDS",
    "HEALTH_TIMEOUT_SECONDS",
    "PRELOAD_LIMIT",
    "REPORT_INTERVAL_SECONDS",
    "STOP_GRACE_SECONDS",
    "WORKER_ERROR_BACKOFF_SECONDS",
    "ACTION_DELAY_MIN_SECONDS",
    "ACTION_DELAY_MAX_SECONDS",
    "SESSION_DELAY_MIN_SECONDS",
    "SESSION_DELAY_MAX_SECONDS",
)

SAMPLE_DOCTORS = [
    {
        "id": "0b6f3c1e-8d2a-4f57-9a0e-3c1d2b4a5e61",
        "name": "Dr. Sarah Chen",
        "specialty": "Cardiologist",
        "location": "New York, NY",
        "rating": 4.8,
    },
    {
        "id": "2b77a9d4-51c3-4e0f-8b6a-7d9e0f1a2b3c",
        "name": "Dr. Hugo Martin",
        "specialty": "Dermatologist",
        "location": "Chicago, IL",
        "rating": 4.5,
    },
    {
        "id": "9f1c4e2a-3b5d-4c6e-8f70-a1b2c3d4e5f6",
        "name": "Dr. Priya Patel",
        "specialty": "Pediatrician",
        "location": "Houston, TX",
        "rating": 4.9,
    },
]


class ScriptedRandom(random.Random):
    """Random source whose ``random()`` draws come from a script.

    Once the script runs out it falls back to the seeded generator. Pauses
    always take the lower bound so scripted draws are not consumed by them.
    """

    def __init__(self, script: list[float], seed: int = 0) -> None:
        super().__init__(seed)
        self.script = list(script)

    def random(self) -> float:
        if self.script:
            return self.script.pop(0)
        return super().random()

    def getrandbits(self, k: int) -> int:
        # Keeps choice/randint on getrandbits so they do not consume the script
        return super().getrandbits(k)

    def uniform(self, a: float, b: float) -> float:
        return a


@pytest.fixture(autouse=True)
def _clean_loadgen_env(monkeypatch):
    for name in LOADGEN_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def stats() -> StatsAggregator:
    return StatsAggregator()


@pytest.fixture
def fast_pacing() -> PacingConfig:
    return PacingConfig(
        action_delay=(0.0, 0.0),
        session_delay=(0.0, 0.0),
        error_backoff_seconds=0.01,
        report_interval_seconds=0.02,
        stop_grace_seconds=1.0,
    )


@pytest.fixture
def scripted_random() -> Callable[[list[float]], ScriptedRandom]:
    return ScriptedRandom


@pytest.fixture
def sample_doctors() -> list[dict]:
    return [dict(row) for row in SAMPLE_DOCTORS]


@pytest.fixture
def booking_api(sample_doctors) -> Callable[[httpx.Request], httpx.Response]:
    """Handler for ``httpx.MockTransport`` emulating a healthy booking API."""

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/api/v1/health":
            return httpx.Response(200, json={"status": "healthy"})
        if path == "/api/v1/doctors":
            return httpx.Response(200, json=sample_doctors)
        if path.startswith("/api/v1/doctors/"):
            doctor_id = path.rsplit("/", 1)[-1]
            for row in sample_doctors:
                if row["id"] == doctor_id:
                    return httpx.Response(200, json=row)
            return httpx.Response(404, json={"error": "Doctor not found"})
        if path == "/api/v1/appointments" and request.method == "POST":
            return httpx.Response(201, json={"id": "appt-1", "status": "confirmed"})
        return httpx.Response(404, json={"error": "not found"})

    return handler
