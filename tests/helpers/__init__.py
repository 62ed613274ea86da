"""Shared helpers for the SiteSift test suite."""

from .metric_delta import histogram_observes, metric_delta
from .pages import build_fetch, html_page

__all__ = ["build_fetch", "histogram_observes", "html_page", "metric_delta"]
