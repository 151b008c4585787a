"""Run orchestration: verify the target, preload doctors, drive the pool.

The driver refuses to start against a target it cannot verify. Once the pool
is running, the configured duration and SIGINT/SIGTERM both end the run through
the same ``WorkerPool.stop()`` call.
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
from collections.abc import Callable

import httpx
import structlog

from loadgen import __version__
from loadgen.config import Settings
from loadgen.errors import StartupError
from loadgen.executor import RequestExecutor
from loadgen.pool import WorkerPool
from loadgen.report import print_report, write_results
from loadgen.scenarios import ScenarioCatalog, estimate_requests_per_minute, load_catalog
from loadgen.session import DOCTORS_PATH, HEALTH_PATH, ReferenceEntity, parse_reference_entities
from loadgen.stats import AggregateSnapshot, StatsAggregator

logger = structlog.get_logger()

USER_AGENT = f"booking-loadgen/{__version__}"
STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class LoadDriver:
    def __init__(
        self,
        settings: Settings,
        catalog: ScenarioCatalog | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        report: Callable[[AggregateSnapshot, bool], None] = print_report,
    ) -> None:
        self.settings = settings
        self.catalog = catalog or load_catalog(settings.scenario_file)
        self.transport = transport
        self.report = report
        self.pool: WorkerPool | None = None
        self.references: tuple[ReferenceEntity, ...] = ()
        self._stop_requested = asyncio.Event()

    # ---- startup verification -----------------------------------------------

    async def verify_target(self, client: httpx.AsyncClient) -> None:
        """Fail fast unless the health endpoint answers with a 2xx."""
        try:
            response = await client.get(HEALTH_PATH, timeout=self.settings.health_timeout_seconds)
        except httpx.HTTPError as exc:
            raise StartupError(
                f"target API unreachable at {self.settings.backend_url}: {exc!r}"
            ) from exc
        if not response.is_success:
            raise StartupError(f"health check returned HTTP {response.status_code}")
        logger.info("target_healthy", url=self.settings.backend_url)

    async def preload_references(self, client: httpx.AsyncClient) -> tuple[ReferenceEntity, ...]:
        """Load a sample of doctors used by detail and booking actions."""
        try:
            response = await client.get(
                DOCTORS_PATH,
                params={"limit": str(self.settings.preload_limit)},
                timeout=self.settings.request_timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise StartupError(f"doctor preload failed: {exc!r}") from exc
        if not response.is_success:
            raise StartupError(f"doctor preload returned HTTP {response.status_code}")
        try:
            rows = response.json()
        except ValueError as exc:
            raise StartupError("doctor preload returned invalid JSON") from exc
        if rows is None:
            rows = []
        if not isinstance(rows, list):
            raise StartupError(
                f"doctor preload expected a JSON array, got {type(rows).__name__}"
            )

        references = parse_reference_entities(rows)
        if references:
            logger.info("references_loaded", count=len(references))
        else:
            logger.warning("no_references_loaded", detail="detail and booking actions disabled")
        return references

    # ---- stop handling -------------------------------------------------------

    def request_stop(self, reason: str = "requested") -> None:
        """Ask the running pool to stop; repeated requests are ignored."""
        if self._stop_requested.is_set():
            logger.info("stop_already_in_progress", reason=reason)
            return
        logger.info("stop_requested", reason=reason)
        self._stop_requested.set()

    def _install_signal_handlers(self) -> list[signal.Signals]:
        loop = asyncio.get_running_loop()
        installed = []
        for sig in STOP_SIGNALS:
            # Not available on every platform (e.g. Windows event loops)
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(sig, self.request_stop, sig.name)
                installed.append(sig)
        return installed

    @staticmethod
    def _remove_signal_handlers(installed: list[signal.Signals]) -> None:
        loop = asyncio.get_running_loop()
        for sig in installed:
            loop.remove_signal_handler(sig)

    # ---- main run ------------------------------------------------------------

    async def run(self) -> AggregateSnapshot:
        settings = self.settings
        profile = self.catalog.resolve(settings.scenario)
        pacing = settings.pacing()

        logger.info(
            "loadgen_starting",
            version=__version__,
            scenario=profile.name,
            title=profile.title,
            description=profile.description,
            available=self.catalog.names(),
            target_rpm=profile.target_requests_per_minute,
            concurrency=profile.concurrency,
            duration_minutes=settings.duration_minutes,
            api=settings.backend_url,
        )

        async with httpx.AsyncClient(
            base_url=settings.backend_url,
            headers={"User-Agent": USER_AGENT},
            timeout=httpx.Timeout(settings.request_timeout_seconds),
            transport=self.transport,
        ) as client:
            await self.verify_target(client)
            self.references = await self.preload_references(client)

            stats = StatsAggregator()
            executor = RequestExecutor(
                client, stats, timeout_seconds=settings.request_timeout_seconds
            )
            pool = WorkerPool(
                profile,
                executor,
                self.references,
                stats,
                pacing=pacing,
                seed=settings.seed,
                report=self.report,
            )
            self.pool = pool
            logger.info(
                "pacing_estimate",
                target_rpm=profile.target_requests_per_minute,
                estimated_rpm=round(
                    estimate_requests_per_minute(profile, pacing, bool(self.references)), 1
                ),
            )

            installed = self._install_signal_handlers()
            try:
                await pool.start()
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(
                        self._stop_requested.wait(), timeout=settings.duration_seconds
                    )
                if not self._stop_requested.is_set():
                    self.request_stop("duration_elapsed")
            finally:
                await pool.stop()
                self._remove_signal_handlers(installed)

        snapshot = pool.final_snapshot or stats.snapshot()
        if settings.results_file:
            path = write_results(
                snapshot,
                settings.results_file,
                scenario=profile.name,
                base_url=settings.backend_url,
                duration_minutes=settings.duration_minutes,
                seed=settings.seed,
            )
            logger.info("results_written", path=str(path))
        logger.info("loadgen_completed", total_requests=snapshot.total_requests)
        return snapshot
