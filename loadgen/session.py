"""Simulated user sessions against the booking API.

A session walks a fixed probabilistic action model: an occasional health
check, a doctor search, a doctor detail view and possibly a booking. Every
decision is drawn from an injected ``random.Random`` so tests and seeded runs
are reproducible.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from loadgen.executor import RequestExecutor
from loadgen.scenarios import (
    DETAIL_PROBABILITY,
    HEALTH_CHECK_PROBABILITY,
    LISTING_PROBABILITY,
    ScenarioProfile,
)
from loadgen.stats import RequestOutcome
from loadgen.utils.names import random_email, random_name

HEALTH_PATH = "/api/v1/health"
DOCTORS_PATH = "/api/v1/doctors"
DOCTOR_DETAIL_PATH = "/api/v1/doctors/{id}"
APPOINTMENTS_PATH = "/api/v1/appointments"

# (specialty, location); empty strings leave the filter out
SEARCH_PATTERNS: list[tuple[str, str]] = [
    ("Cardiologist", "New York, NY"),
    ("General Practitioner", "Los Angeles, CA"),
    ("Dermatologist", "Chicago, IL"),
    ("Pediatrician", "Houston, TX"),
    ("", "San Francisco, CA"),
    ("Psychiatrist", ""),
    ("", ""),
]

BOOKING_DAYS_AHEAD = (1, 14)
BOOKING_DURATIONS = (30, 60)

Sleep = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class ReferenceEntity:
    """Cached doctor row used to build detail and booking requests."""

    id: str
    name: str = ""
    specialty: str = ""
    location: str = ""

    @classmethod
    def from_api(cls, row: dict[str, Any]) -> ReferenceEntity | None:
        entity_id = row.get("id")
        if entity_id in (None, ""):
            return None
        return cls(
            id=str(entity_id),
            name=str(row.get("name") or ""),
            specialty=str(row.get("specialty") or ""),
            location=str(row.get("location") or ""),
        )


def parse_reference_entities(rows: Sequence[Any]) -> tuple[ReferenceEntity, ...]:
    entities = []
    for row in rows:
        if isinstance(row, dict) and (entity := ReferenceEntity.from_api(row)) is not None:
            entities.append(entity)
    return tuple(entities)


def search_params(specialty: str, location: str) -> dict[str, str]:
    params = {}
    if specialty:
        params["specialty"] = specialty
    if location:
        params["location"] = location
    return params


class SessionSimulator:
    """Runs one simulated user's actions sequentially through the executor."""

    def __init__(
        self,
        executor: RequestExecutor,
        references: Sequence[ReferenceEntity],
        rng: random.Random | None = None,
        action_delay: tuple[float, float] = (0.5, 3.0),
        sleep: Sleep = asyncio.sleep,
        now: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self.executor = executor
        self.references = tuple(references)
        self.rng = rng or random.Random()
        self.action_delay = action_delay
        self._sleep = sleep
        self._now = now

    def pick_reference(self) -> ReferenceEntity | None:
        if not self.references:
            return None
        return self.rng.choice(self.references)

    def booking_payload(self) -> dict[str, Any] | None:
        """Synthesize an appointment request for a random reference doctor."""
        doctor = self.pick_reference()
        if doctor is None:
            return None
        first, last = random_name(self.rng)
        when = self._now() + timedelta(days=self.rng.randint(*BOOKING_DAYS_AHEAD))
        return {
            "doctor_id": doctor.id,
            "patient_name": f"{first} {last}",
            "patient_email": random_email(first, last, self.rng),
            "date_time": when.astimezone(UTC).isoformat(),
            "duration_minutes": self.rng.choice(BOOKING_DURATIONS),
        }

    async def _call(
        self,
        outcomes: list[RequestOutcome],
        endpoint: str,
        method: str = "GET",
        payload: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
        path_params: dict[str, str] | None = None,
    ) -> None:
        outcome = await self.executor.execute(
            endpoint, method, payload=payload, params=params, path_params=path_params
        )
        outcomes.append(outcome)
        await self._sleep(self.rng.uniform(*self.action_delay))

    async def run_session(self, profile: ScenarioProfile) -> list[RequestOutcome]:
        """Play one session and return the outcomes it produced (possibly none)."""
        outcomes: list[RequestOutcome] = []

        if self.rng.random() < HEALTH_CHECK_PROBABILITY:
            await self._call(outcomes, HEALTH_PATH)

        if self.rng.random() < LISTING_PROBABILITY:
            specialty, location = self.rng.choice(SEARCH_PATTERNS)
            await self._call(outcomes, DOCTORS_PATH, params=search_params(specialty, location))

        if self.rng.random() < DETAIL_PROBABILITY and self.references:
            doctor = self.pick_reference()
            await self._call(outcomes, DOCTOR_DETAIL_PATH, path_params={"id": doctor.id})

        if self.rng.random() < profile.booking_probability:
            payload = self.booking_payload()
            if payload is not None:
                await self._call(outcomes, APPOINTMENTS_PATH, "POST", payload=payload)

        return outcomes
