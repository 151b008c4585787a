"""Worker pool that keeps simulated users running for the length of a test.

Lifecycle::

    CREATED --start()--> RUNNING --stop()--> STOPPING --> STOPPED

Each worker loops ``run_session(); pause(session_delay)`` until the pool stops.
Pacing is soft: the target rate only shapes the profile, no global limiter
caps the actual throughput. A reporter task prints a snapshot on a fixed
cadence, and ``stop()`` prints the final one.
"""

from __future__ import annotations

import asyncio
import contextlib
import random
from collections.abc import Callable, Sequence
from enum import StrEnum
from typing import Protocol

import structlog

from loadgen.config import PacingConfig
from loadgen.executor import RequestExecutor
from loadgen.report import print_report
from loadgen.scenarios import ScenarioProfile
from loadgen.session import ReferenceEntity, SessionSimulator
from loadgen.stats import AggregateSnapshot, RequestOutcome, StatsAggregator

logger = structlog.get_logger()


class PoolState(StrEnum):
    CREATED = "created"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class Session(Protocol):
    async def run_session(self, profile: ScenarioProfile) -> list[RequestOutcome]: ...


class WorkerPool:
    def __init__(
        self,
        profile: ScenarioProfile,
        executor: RequestExecutor,
        references: Sequence[ReferenceEntity],
        stats: StatsAggregator,
        pacing: PacingConfig | None = None,
        seed: int | None = None,
        report: Callable[[AggregateSnapshot, bool], None] = print_report,
        simulator_factory: Callable[[int], Session] | None = None,
    ) -> None:
        self.profile = profile
        self.executor = executor
        self.references = tuple(references)
        self.stats = stats
        self.pacing = pacing or PacingConfig()
        self.seed = seed
        self._report = report
        self._simulator_factory = simulator_factory or self._default_simulator

        self.state = PoolState.CREATED
        self.running = False
        self.sessions_started = 0
        self.last_snapshot: AggregateSnapshot | None = None
        self.final_snapshot: AggregateSnapshot | None = None

        self._stop_event = asyncio.Event()
        self._workers: list[asyncio.Task[None]] = []
        self._reporter: asyncio.Task[None] | None = None

    @property
    def worker_count(self) -> int:
        return len(self._workers)

    def _worker_rng(self, worker_id: int, stream: str) -> random.Random:
        if self.seed is None:
            return random.Random()
        return random.Random(f"{self.seed}:{worker_id}:{stream}")

    def _default_simulator(self, worker_id: int) -> Session:
        return SessionSimulator(
            self.executor,
            self.references,
            rng=self._worker_rng(worker_id, "session"),
            action_delay=self.pacing.action_delay,
            sleep=self.pause,
        )

    async def pause(self, seconds: float) -> None:
        """Sleep that returns early once the pool starts stopping."""
        if seconds <= 0 or self._stop_event.is_set():
            await asyncio.sleep(0)
            return
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)

    # ---- lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        if self.state is not PoolState.CREATED:
            raise RuntimeError(f"cannot start a pool in state {self.state}")
        self.state = PoolState.RUNNING
        self.running = True

        logger.info(
            "pool_starting",
            scenario=self.profile.name,
            workers=self.profile.concurrency,
            target_rpm=self.profile.target_requests_per_minute,
        )
        for worker_id in range(1, self.profile.concurrency + 1):
            simulator = self._simulator_factory(worker_id)
            task = asyncio.create_task(
                self._worker(worker_id, simulator), name=f"loadgen-worker-{worker_id}"
            )
            self._workers.append(task)
        self._reporter = asyncio.create_task(self._report_loop(), name="loadgen-reporter")
        # Let every worker enter its first session before control returns
        await asyncio.sleep(0)

    async def _worker(self, worker_id: int, simulator: Session) -> None:
        rng = self._worker_rng(worker_id, "pacing")
        while self.running:
            self.sessions_started += 1
            try:
                await simulator.run_session(self.profile)
                await self.pause(rng.uniform(*self.pacing.session_delay))
            except Exception:
                logger.exception("worker_error", worker_id=worker_id)
                await self.pause(self.pacing.error_backoff_seconds)
        logger.debug("worker_exited", worker_id=worker_id)

    async def _report_loop(self) -> None:
        while self.running:
            await self.pause(self.pacing.report_interval_seconds)
            if not self.running:
                break
            snapshot = self.stats.snapshot()
            self.last_snapshot = snapshot
            self._emit(snapshot, final=False)

    def _emit(self, snapshot: AggregateSnapshot, final: bool) -> None:
        try:
            self._report(snapshot, final)
        except Exception:
            logger.exception("report_failed", final=final)

    async def stop(self) -> AggregateSnapshot | None:
        """Stop the pool once; later calls are no-ops until it has stopped.

        Workers finish the session they are in (their pauses end at once).
        They get the request timeout plus ``stop_grace_seconds`` so an
        in-flight call can only end by response or by its own timeout, then
        stragglers are cancelled. Returns the final snapshot, or None for a
        repeated call made while the first one is still stopping.
        """
        if self.state is PoolState.STOPPED:
            return self.final_snapshot
        if self.state is PoolState.STOPPING:
            logger.info("pool_already_stopping")
            return None
        if self.state is PoolState.CREATED:
            self.state = PoolState.STOPPED
            self.final_snapshot = self.stats.snapshot()
            return self.final_snapshot

        self.state = PoolState.STOPPING
        self.running = False
        self._stop_event.set()
        drain_seconds = self.executor.timeout_seconds + self.pacing.stop_grace_seconds
        logger.info("pool_stopping", drain_seconds=drain_seconds)

        if self._reporter is not None:
            self._reporter.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reporter

        pending: set[asyncio.Task[None]] = set()
        if self._workers:
            _, pending = await asyncio.wait(self._workers, timeout=drain_seconds)
        for task in pending:
            task.cancel()
        if pending:
            logger.info("workers_cancelled_after_grace", count=len(pending))
            await asyncio.gather(*pending, return_exceptions=True)

        self.final_snapshot = self.stats.snapshot()
        self.state = PoolState.STOPPED
        self._emit(self.final_snapshot, final=True)
        logger.info(
            "pool_stopped",
            total_requests=self.final_snapshot.total_requests,
            sessions=self.sessions_started,
        )
        return self.final_snapshot
