"""
Request-level performance telemetry.

The monitor keeps running totals for every orchestrated request: latency,
failures, fastest/slowest request and histograms by status code and host.
Updates happen under a lock so interleaved batch fetches never lose a
read-modify-write. The numbers are best-effort telemetry, not a ledger.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional
from urllib.parse import urlparse

import structlog

from sitesift.observability.metrics import METRICS
from sitesift.protocols import FetchResult, PerformanceSnapshot, RequestTiming, utc_now

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RequestToken:
    """Handle returned by ``start_request`` and consumed by ``end_request``."""

    url: str
    started: float = field(default_factory=time.perf_counter)


class PerformanceMonitor:
    """Aggregates latency and outcome statistics across requests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reset_counters()

    def _reset_counters(self) -> None:
        self._requests = 0
        self._failures = 0
        self._total_time_ms = 0.0
        self._avg_response_time_ms = 0.0
        self._fastest: Optional[RequestTiming] = None
        self._slowest: Optional[RequestTiming] = None
        self._status_codes: Dict[int, int] = {}
        self._domains: Dict[str, int] = {}
        self._start_time: datetime = utc_now()
        self._start_clock = time.monotonic()

    def start_request(self, url: str) -> RequestToken:
        return RequestToken(url=url)

    def end_request(
        self,
        token: RequestToken,
        result: Optional[FetchResult],
        error: Optional[BaseException] = None,
    ) -> float:
        """Record the outcome of a request and return its duration in ms."""
        duration_ms = (time.perf_counter() - token.started) * 1000.0
        failed = error is not None or result is None

        with self._lock:
            self._requests += 1
            self._total_time_ms += duration_ms
            self._avg_response_time_ms = self._total_time_ms / self._requests

            if failed:
                self._failures += 1
            else:
                assert result is not None
                self._status_codes[result.status_code] = self._status_codes.get(result.status_code, 0) + 1
                host = urlparse(token.url).hostname or ""
                self._domains[host] = self._domains.get(host, 0) + 1

            if self._fastest is None or duration_ms < self._fastest.duration_ms:
                self._fastest = RequestTiming(url=token.url, duration_ms=duration_ms)
            if self._slowest is None or duration_ms > self._slowest.duration_ms:
                self._slowest = RequestTiming(url=token.url, duration_ms=duration_ms)

        METRICS["request_duration_seconds"].observe(duration_ms / 1000.0)
        METRICS["pages_crawled_total"].labels(outcome="failure" if failed else "success").inc()
        return duration_ms

    def get_stats(self) -> PerformanceSnapshot:
        with self._lock:
            uptime = time.monotonic() - self._start_clock
            if self._requests:
                success_rate = round((self._requests - self._failures) / self._requests * 100, 2)
                rps = round(self._requests / uptime, 2) if uptime > 0 else 0.0
            else:
                success_rate = 0.0
                rps = 0.0

            return PerformanceSnapshot(
                requests=self._requests,
                failures=self._failures,
                total_time_ms=self._total_time_ms,
                avg_response_time_ms=self._avg_response_time_ms,
                fastest_request=self._fastest,
                slowest_request=self._slowest,
                status_codes=dict(self._status_codes),
                domains=dict(self._domains),
                start_time=self._start_time,
                uptime_seconds=uptime,
                success_rate=success_rate,
                requests_per_second=rps,
            )

    def reset(self) -> None:
        """Zero every counter and restart the uptime clock."""
        with self._lock:
            self._reset_counters()
        logger.info("Performance statistics reset")
