"""
SiteSift Crawler Module - Polite Fetching and Site Discovery

Key Features:
- Retries with linear backoff for transport failures
- Charset resolution from headers and <meta> tags
- Per-host robots.txt policy caching
- TTL response cache shared across orchestrators
- Windowed batch crawling and breadth-first discovery
- Periodic change monitoring
"""

from .cache import ResponseCache
from .frontier import Frontier
from .http_client import HttpClient
from .orchestrator import CrawlOrchestrator
from .robots_parser import RobotsCache
from .watcher import ChangeWatcher, compare_snapshots

__all__ = [
    "ChangeWatcher",
    "CrawlOrchestrator",
    "Frontier",
    "HttpClient",
    "ResponseCache",
    "RobotsCache",
    "compare_snapshots",
]
