"""
Shared fixtures for the SiteSift test suite.

HTTP traffic is mocked with aioresponses; no test touches the network.
"""

from typing import AsyncGenerator, Callable
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
import structlog

from sitesift.config import CrawlConfig
from sitesift.crawler.http_client import HttpClient
from sitesift.crawler.orchestrator import CrawlOrchestrator
from sitesift.protocols import PageReport
from tests.helpers import build_fetch

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and route structlog through stdlib logging."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.KeyValueRenderer(key_order=["event"]),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


# ============================================================================
# Core Test Fixtures
# ============================================================================


@pytest.fixture
def crawl_config() -> CrawlConfig:
    """Crawl options tuned for fast, robots-free unit tests."""
    return CrawlConfig(
        timeout=5.0,
        retries=3,
        respect_robots=False,
        user_agent="TestBot/1.0",
    )


@pytest.fixture
def no_backoff(monkeypatch):
    """Make retry backoff instantaneous; returns the mock to inspect attempts."""
    backoff = AsyncMock(return_value=0.0)
    monkeypatch.setattr(HttpClient, "_calculate_backoff_delay", backoff)
    return backoff


@pytest_asyncio.fixture
async def http_client(crawl_config) -> AsyncGenerator[HttpClient, None]:
    """Create and initialize an HTTP client for testing."""
    async with HttpClient(crawl_config) as client:
        yield client


@pytest_asyncio.fixture
async def orchestrator(crawl_config) -> AsyncGenerator[CrawlOrchestrator, None]:
    async with CrawlOrchestrator(crawl_config) as instance:
        yield instance


# ============================================================================
# Sample Documents
# ============================================================================


SAMPLE_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Practical Guide to Brewing Better Coffee at Home</title>
  <meta name="description" content="{description}">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <meta property="og:title" content="Brewing Better Coffee">
  <meta name="twitter:card" content="summary">
  <link rel="canonical" href="https://example.com/coffee">
  <script type="application/ld+json">{{"@type": "Article", "headline": "Coffee"}}</script>
</head>
<body>
  <header><nav><a href="/home">Home</a></nav></header>
  <h1>Brewing Better Coffee</h1>
  <p>Good coffee starts with fresh beans. Grind them just before you brew.</p>
  <h2>Water</h2>
  <p>Use filtered water. Heat it to just below boiling.</p>
  <h2>Ratio</h2>
  <p>Use about one gram of coffee for every sixteen grams of water.</p>
  <img src="/img/beans.jpg" alt="Coffee beans">
  <a href="https://example.com/tea" title="Tea">Read about tea</a>
  <form action="/subscribe" method="post">
    <input type="email" name="email" placeholder="you@example.com" required>
  </form>
  <footer>Copyright</footer>
</body>
</html>
""".format(
    description="A practical guide to brewing better coffee at home: beans, grind size, water temperature and "
    "ratios for a consistently great cup."
)


@pytest.fixture
def sample_html() -> str:
    return SAMPLE_HTML


@pytest.fixture
def make_report() -> Callable[..., PageReport]:
    """Run the analysis pipeline over an in-memory document."""
    analyser = CrawlOrchestrator(CrawlConfig(respect_robots=False))

    def _make(url: str, html: str, status: int = 200) -> PageReport:
        return analyser._analyse(build_fetch(url, html, status))

    return _make
