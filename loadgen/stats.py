"""Request outcome aggregation with percentile summaries.

Every request issued by a worker produces one ``RequestOutcome``. The
``StatsAggregator`` folds outcomes into counters under a single lock and hands
out immutable ``AggregateSnapshot`` objects for the periodic and final reports.
"""

from __future__ import annotations

import re
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

ID_PLACEHOLDER = "{id}"

PERCENTILES: tuple[float, ...] = (0.50, 0.95, 0.99)

_VERSION_SEGMENT = re.compile(r"^v\d+$")
_IDENTIFIER_SEGMENT = re.compile(r"^[A-Za-z0-9_\-.]*\d[A-Za-z0-9_\-.]*$")


def normalize_endpoint(path: str) -> str:
    """Collapse identifier path segments so detail calls share one key.

    ``/api/v1/doctors/9f1c2d`` and ``/api/v1/doctors/42`` both become
    ``/api/v1/doctors/{id}``. The query string is dropped. A segment counts as
    an identifier when it contains a digit and is not an API version marker.
    """
    path = path.split("?", 1)[0].split("#", 1)[0]
    segments = path.split("/")
    for i, segment in enumerate(segments):
        if not segment or segment == ID_PLACEHOLDER or _VERSION_SEGMENT.match(segment):
            continue
        if _IDENTIFIER_SEGMENT.match(segment):
            segments[i] = ID_PLACEHOLDER
    return "/".join(segments) or "/"


def percentile(sorted_samples: Sequence[float], pct: float) -> float:
    """Nearest-rank percentile at index ``floor(n * pct)`` clamped to the data."""
    n = len(sorted_samples)
    if n == 0:
        return 0.0
    index = min(max(int(n * pct), 0), n - 1)
    return sorted_samples[index]


@dataclass(frozen=True)
class RequestOutcome:
    """Result of one HTTP call as seen by the executor."""

    endpoint_key: str
    method: str
    success: bool
    latency_ms: float
    status_code: int | None = None
    error_code: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class EndpointStats:
    requests: int = 0
    successes: int = 0
    avg_latency_ms: float = 0.0

    @property
    def success_rate(self) -> float:
        if self.requests == 0:
            return 0.0
        return self.successes / self.requests


@dataclass
class _EndpointCounter:
    requests: int = 0
    successes: int = 0
    avg_latency_ms: float = 0.0


@dataclass(frozen=True)
class AggregateSnapshot:
    """Point-in-time copy of the aggregated statistics."""

    total_requests: int
    success_count: int
    failure_count: int
    error_histogram: dict[str, int]
    per_endpoint: dict[str, EndpointStats]
    latency_samples: tuple[float, ...]
    elapsed_seconds: float

    @classmethod
    def empty(cls) -> AggregateSnapshot:
        return cls(0, 0, 0, {}, {}, (), 0.0)

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.success_count / self.total_requests

    @property
    def requests_per_minute(self) -> float:
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.total_requests / (self.elapsed_seconds / 60.0)

    @property
    def average_latency_ms(self) -> float:
        if not self.latency_samples:
            return 0.0
        return sum(self.latency_samples) / len(self.latency_samples)

    @property
    def p50(self) -> float:
        return percentile(self.latency_samples, 0.50)

    @property
    def p95(self) -> float:
        return percentile(self.latency_samples, 0.95)

    @property
    def p99(self) -> float:
        return percentile(self.latency_samples, 0.99)

    def to_dict(self) -> dict[str, Any]:
        """JSON-serialisable summary (raw latency samples are not included)."""
        return {
            "runtime_seconds": round(self.elapsed_seconds, 3),
            "total_requests": self.total_requests,
            "successful": self.success_count,
            "failed": self.failure_count,
            "success_rate": round(self.success_rate, 4),
            "requests_per_minute": round(self.requests_per_minute, 2),
            "latency_ms": {
                "average": round(self.average_latency_ms, 2),
                "p50": round(self.p50, 2),
                "p95": round(self.p95, 2),
                "p99": round(self.p99, 2),
                "count": len(self.latency_samples),
            },
            "endpoints": {
                key: {
                    "requests": ep.requests,
                    "successes": ep.successes,
                    "success_rate": round(ep.success_rate, 4),
                    "avg_latency_ms": round(ep.avg_latency_ms, 2),
                }
                for key, ep in self.per_endpoint.items()
            },
            "errors": dict(self.error_histogram),
        }


class StatsAggregator:
    """Lock-protected accumulator shared by all workers and the reporter.

    Latency samples are kept for successful requests only; they feed the
    overall average and the percentiles.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._started_at = clock()
        self._total = 0
        self._successes = 0
        self._failures = 0
        self._errors: dict[str, int] = {}
        self._endpoints: dict[str, _EndpointCounter] = {}
        self._latencies: list[float] = []

    def record(self, outcome: RequestOutcome) -> None:
        with self._lock:
            self._total += 1
            counter = self._endpoints.setdefault(outcome.endpoint_key, _EndpointCounter())
            counter.requests += 1
            if outcome.success:
                self._successes += 1
                counter.successes += 1
                counter.avg_latency_ms = (
                    counter.avg_latency_ms * (counter.successes - 1) + outcome.latency_ms
                ) / counter.successes
                self._latencies.append(outcome.latency_ms)
            else:
                self._failures += 1
                code = outcome.error_code or "unknown"
                self._errors[code] = self._errors.get(code, 0) + 1

    def snapshot(self) -> AggregateSnapshot:
        with self._lock:
            per_endpoint = {
                key: EndpointStats(c.requests, c.successes, c.avg_latency_ms)
                for key, c in self._endpoints.items()
            }
            return AggregateSnapshot(
                total_requests=self._total,
                success_count=self._successes,
                failure_count=self._failures,
                error_histogram=dict(self._errors),
                per_endpoint=per_endpoint,
                latency_samples=tuple(sorted(self._latencies)),
                elapsed_seconds=max(0.0, self._clock() - self._started_at),
            )
