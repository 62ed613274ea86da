"""Logging, Prometheus metrics and request performance telemetry."""

from __future__ import annotations

from .logging import configure_logging
from .metrics import METRICS, start_metrics_server
from .performance import PerformanceMonitor, RequestToken

__all__ = ["configure_logging", "METRICS", "start_metrics_server", "PerformanceMonitor", "RequestToken"]
