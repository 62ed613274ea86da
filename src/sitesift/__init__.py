"""
SiteSift - Polite web crawling with page quality, change and duplicate analytics.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config import CrawlConfig, Settings
from .crawler import CrawlOrchestrator, HttpClient

__all__ = ["__version__", "CrawlConfig", "CrawlOrchestrator", "HttpClient", "Settings"]
