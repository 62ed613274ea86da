"""
Defines and manages Prometheus metrics for the application.
"""

from __future__ import annotations

from typing import Any, Dict

from prometheus_client import REGISTRY as _PROM_REGISTRY
from prometheus_client import Counter as _OrigCounter
from prometheus_client import Gauge as _OrigGauge
from prometheus_client import Histogram as _OrigHistogram
from prometheus_client import start_http_server

# ---------------------------------------------------------------------------
# Duplicate-safe Prometheus metric wrappers
# ---------------------------------------------------------------------------
# Re-importing this module (e.g. via importlib.reload in tests) must not try
# to register the same collector names a second time.


def _duplicate_safe_factory(metric_cls):
    """Return a factory that reuses an existing collector if already present."""

    def _factory(name: str, documentation: str, *args, **kwargs):  # type: ignore[override]
        existing = _PROM_REGISTRY._names_to_collectors.get(name)
        if existing is not None:
            return existing  # type: ignore[return-value]

        try:
            return metric_cls(name, documentation, *args, **kwargs)  # type: ignore[call-arg]
        except ValueError:
            # Registration lost the race, fall back to the now-existing collector.
            return _PROM_REGISTRY._names_to_collectors[name]  # type: ignore[return-value]

    return _factory


Counter = _duplicate_safe_factory(_OrigCounter)  # type: ignore[assignment]
Gauge = _duplicate_safe_factory(_OrigGauge)  # type: ignore[assignment]
Histogram = _duplicate_safe_factory(_OrigHistogram)  # type: ignore[assignment]


def _create_metrics() -> Dict[str, Any]:
    """Create all SiteSift collectors, using a 'sitesift' prefix."""
    return {
        # Fetch engine
        "crawler_fetch_latency_seconds": Histogram(
            "sitesift_crawler_fetch_latency_seconds",
            "Time taken to fetch a URL including retries",
            buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
        ),
        "crawler_responses_total": Counter(
            "sitesift_crawler_responses_total", "Total number of HTTP responses by status class", ["status_class"]
        ),
        "crawler_in_flight_requests": Gauge(
            "sitesift_crawler_in_flight_requests",
            "Number of HTTP requests currently in flight",
        ),
        "crawler_retries_total": Counter(
            "sitesift_crawler_retries_total",
            "Total number of retried fetch attempts",
        ),
        "crawler_fetch_failures_total": Counter(
            "sitesift_crawler_fetch_failures_total",
            "Total number of fetches that exhausted their retries",
        ),
        "crawler_cache_hits_total": Counter(
            "sitesift_crawler_cache_hits_total",
            "Total number of fetches served from the response cache",
        ),
        "crawler_robots_blocked_total": Counter(
            "sitesift_crawler_robots_blocked_total",
            "Total number of URLs refused by robots.txt",
        ),
        # Orchestrator
        "pages_crawled_total": Counter(
            "sitesift_pages_crawled_total",
            "Total number of pages crawled by outcome",
            ["outcome"],
        ),
        "request_duration_seconds": Histogram(
            "sitesift_request_duration_seconds",
            "Duration of orchestrated page requests",
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
        ),
        "duplicates_found_total": Counter(
            "sitesift_duplicates_found_total",
            "Total number of duplicate pairs reported",
            ["kind"],
        ),
        # Quality
        "quality_score": Histogram(
            "sitesift_quality_score",
            "Distribution of overall page quality scores",
            buckets=[10, 20, 30, 40, 50, 60, 70, 80, 90, 100],
        ),
    }


METRICS: Dict[str, Any] = _create_metrics()


def start_metrics_server(port: int) -> None:
    """Expose the default registry over HTTP on ``port``."""
    start_http_server(port)
