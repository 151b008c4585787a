"""Timed HTTP execution that turns every call into a recorded outcome."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import Any
from urllib.parse import quote

import httpx
import structlog

from loadgen.stats import RequestOutcome, StatsAggregator, normalize_endpoint

logger = structlog.get_logger()

ERROR_TIMEOUT = "timeout"
ERROR_CONNECT = "connect_error"
ERROR_NETWORK = "network_error"
ERROR_UNKNOWN = "unknown"
ERROR_CANCELLED = "cancelled"


def classify_exception(exc: BaseException) -> str:
    """Map a transport-level failure onto a stable error code."""
    if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
        return ERROR_TIMEOUT
    if isinstance(exc, httpx.ConnectError):
        return ERROR_CONNECT
    if isinstance(exc, httpx.TransportError):
        return ERROR_NETWORK
    return ERROR_UNKNOWN


class RequestExecutor:
    """Issues single requests against the target API.

    ``execute`` never raises: transport faults, timeouts and non-2xx responses
    are classified and recorded like any other outcome. A call cancelled from
    outside is recorded as ``cancelled`` before the cancellation propagates.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        stats: StatsAggregator,
        timeout_seconds: float = 10.0,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.client = client
        self.stats = stats
        self.timeout_seconds = timeout_seconds
        self._clock = clock

    async def execute(
        self,
        endpoint: str,
        method: str = "GET",
        payload: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
        path_params: dict[str, str] | None = None,
    ) -> RequestOutcome:
        # Templates such as /api/v1/doctors/{id} are their own aggregation key
        endpoint_key = normalize_endpoint(endpoint)
        url = endpoint
        if path_params:
            quoted = {k: quote(str(v), safe="") for k, v in path_params.items()}
            url = endpoint.format_map(quoted)
        status_code: int | None = None
        error_code: str | None = None

        t0 = self._clock()
        try:
            async with asyncio.timeout(self.timeout_seconds):
                response = await self.client.request(
                    method,
                    url,
                    params=params or None,
                    json=payload if method in ("POST", "PUT", "PATCH") else None,
                    timeout=self.timeout_seconds,
                )
            status_code = response.status_code
            if not response.is_success:
                error_code = str(status_code)
        except asyncio.CancelledError:
            # Cancelled by the pool at shutdown; the call still counts once
            self._finish(endpoint_key, method, url, t0, None, ERROR_CANCELLED)
            raise
        except Exception as exc:
            error_code = classify_exception(exc)
        return self._finish(endpoint_key, method, url, t0, status_code, error_code)

    def _finish(
        self,
        endpoint_key: str,
        method: str,
        url: str,
        t0: float,
        status_code: int | None,
        error_code: str | None,
    ) -> RequestOutcome:
        latency_ms = (self._clock() - t0) * 1000.0
        outcome = RequestOutcome(
            endpoint_key=endpoint_key,
            method=method,
            success=error_code is None,
            latency_ms=latency_ms,
            status_code=status_code,
            error_code=error_code,
        )
        self.stats.record(outcome)

        if outcome.success:
            logger.debug(
                "request_succeeded",
                method=method,
                endpoint=url,
                status=status_code,
                latency_ms=round(latency_ms, 1),
            )
        else:
            logger.info(
                "request_failed",
                method=method,
                endpoint=url,
                error=error_code,
                latency_ms=round(latency_ms, 1),
            )
        return outcome
