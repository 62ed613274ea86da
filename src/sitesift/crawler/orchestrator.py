"""
Crawl orchestration: single pages, batches, site discovery and the
analytics built on top of them.

Every page goes through the same pipeline: fetch, DOM extraction, text
analysis, quality scoring, and optionally the similarity log. Each
orchestrated fetch is recorded in the performance monitor.
"""

from __future__ import annotations

import asyncio
import re
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Sequence, Union
from uuid import uuid4

import structlog

from sitesift.analysis.comparison import (
    COMPARISON_METRICS,
    average_quality,
    best_performers,
    compare_readability,
    compare_sentiment,
    comparison_recommendations,
    find_common_keywords,
    metric_score,
    validate_metrics,
)
from sitesift.analysis.technology import detect_technology
from sitesift.analysis.text import analyze_readability, analyze_sentiment, detect_language, extract_keywords
from sitesift.config import CrawlConfig
from sitesift.crawler.cache import ResponseCache
from sitesift.crawler.frontier import Frontier, normalize_url
from sitesift.crawler.http_client import HttpClient
from sitesift.crawler.patterns import categorize_urls
from sitesift.crawler.robots_parser import RobotsCache
from sitesift.crawler.watcher import ChangeCallback, ChangeWatcher
from sitesift.dataset.exporter import get_exporter, render_sitemap
from sitesift.dedup.similarity import DEFAULT_THRESHOLD, SimilarityLog
from sitesift.exceptions import CrawlFailed, SiteSiftError
from sitesift.extractor.dom_extractor import extract_page
from sitesift.extractor.smart_extractor import extract_smart_content
from sitesift.observability.performance import PerformanceMonitor
from sitesift.protocols import (
    CompetitorAnalysis,
    DiscoveryResult,
    DiscoveryStats,
    DuplicatePair,
    FailedPage,
    FetchResult,
    LinkStatus,
    PageComparison,
    PageInsight,
    PageReport,
    PageSignals,
    PerformanceSnapshot,
    SimilarityRecord,
    Sitemap,
    SitemapEntry,
    TechnologyReport,
)
from sitesift.quality.scorer import QualityScorer

logger = structlog.get_logger(__name__)

BatchResult = Union[PageReport, FailedPage]

CHANGE_FREQUENCIES = (
    ("daily", re.compile(r"news|blog|article", re.IGNORECASE)),
    ("weekly", re.compile(r"product|shop|store", re.IGNORECASE)),
    ("monthly", re.compile(r"about|contact|service", re.IGNORECASE)),
    ("yearly", re.compile(r"privacy|terms|legal", re.IGNORECASE)),
)
DEFAULT_CHANGE_FREQUENCY = "monthly"


@contextmanager
def _crawl_context() -> Iterator[str]:
    """Bind a fresh crawl_id to every log line emitted inside a multi-page run."""
    crawl_id = uuid4().hex[:12]
    with structlog.contextvars.bound_contextvars(crawl_id=crawl_id):
        yield crawl_id


def estimate_change_frequency(url: str) -> str:
    for frequency, pattern in CHANGE_FREQUENCIES:
        if pattern.search(url):
            return frequency
    return DEFAULT_CHANGE_FREQUENCY


def sitemap_priority(url: str, base_url: str) -> str:
    """Priority from path depth; the base URL itself ranks highest."""
    if url == normalize_url(base_url):
        return "1.0"
    depth = len(url.split("/")) - 3
    if depth <= 1:
        return "0.8"
    if depth <= 2:
        return "0.6"
    if depth <= 3:
        return "0.4"
    return "0.2"


class CrawlOrchestrator:
    """
    High-level entry point tying the fetch engine to the analysis pipeline.

    The response cache, robots cache, performance monitor and similarity log
    are owned by the orchestrator but may be injected so that several
    orchestrators share or isolate them deliberately. Per-call keyword
    overrides are merged onto ``config`` field by field.
    """

    def __init__(
        self,
        config: Optional[CrawlConfig] = None,
        *,
        client: Optional[HttpClient] = None,
        cache: Optional[ResponseCache] = None,
        robots: Optional[RobotsCache] = None,
        monitor: Optional[PerformanceMonitor] = None,
        scorer: Optional[QualityScorer] = None,
        similarity_log: Optional[SimilarityLog] = None,
    ):
        self.config = config or CrawlConfig()
        self.client = client or HttpClient(self.config, cache=cache, robots=robots)
        self.monitor = monitor or PerformanceMonitor()
        self.scorer = scorer or QualityScorer()
        self.similarity_log = similarity_log if similarity_log is not None else SimilarityLog()
        self._watchers: List[ChangeWatcher] = []

    async def __aenter__(self) -> "CrawlOrchestrator":
        await self.client.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Stop all watchers and release the HTTP session."""
        for watcher in self._watchers:
            watcher.stop()
        for watcher in self._watchers:
            await watcher.wait_stopped()
        self._watchers.clear()
        await self.client.close()

    # ------------------------------------------------------------------
    # Single page pipeline
    # ------------------------------------------------------------------

    def _analyse(self, fetch: FetchResult) -> PageReport:
        page = extract_page(fetch.text, fetch.final_url or fetch.url)
        body_text = page.text.full_text
        quality = self.scorer.score(
            PageSignals(
                page=page,
                html=fetch.text,
                size=fetch.size,
                status_code=fetch.status_code,
                url=fetch.url,
                encoding=fetch.encoding,
            )
        )
        return PageReport(
            fetch=fetch,
            page=page,
            sentiment=analyze_sentiment(body_text),
            keywords=extract_keywords(body_text),
            language=detect_language(body_text),
            readability=analyze_readability(body_text),
            quality=quality,
            smart=extract_smart_content(fetch.text),
        )

    async def _crawl(self, url: str, config: CrawlConfig, track_similarity: bool = False) -> PageReport:
        await self.client.initialize()
        token = self.monitor.start_request(url)
        fetch: Optional[FetchResult] = None
        error: Optional[BaseException] = None
        try:
            fetch = await self.client.fetch(url, config)
            report = self._analyse(fetch)
        except SiteSiftError as e:
            error = e
            raise CrawlFailed(url, e) from e
        except Exception as e:
            error = e
            logger.error("Page analysis failed", url=url, error=str(e), exc_info=True)
            raise CrawlFailed(url, e) from e
        finally:
            self.monitor.end_request(token, fetch if error is None else None, error)

        if track_similarity:
            self.similarity_log.append(
                SimilarityRecord(url=report.url, text=report.page.text.full_text, timestamp=report.timestamp)
            )
        return report

    async def crawl(self, url: str, *, track_similarity: bool = False, **overrides: Any) -> PageReport:
        """
        Fetch, extract, analyse and score one page.

        Raises:
            CrawlFailed: wrapping the underlying fetch error.
        """
        return await self._crawl(url, self.config.merged(**overrides), track_similarity)

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    async def _crawl_or_fail(self, url: str, config: CrawlConfig, track_similarity: bool) -> BatchResult:
        try:
            return await self._crawl(url, config, track_similarity)
        except CrawlFailed as e:
            logger.warning("Batch page failed", url=url, error=str(e.cause))
            return FailedPage(url=url, error=str(e))

    async def crawl_many(
        self,
        urls: Sequence[str],
        *,
        track_similarity: bool = False,
        **overrides: Any,
    ) -> List[BatchResult]:
        """
        Crawl ``urls`` in windows of ``concurrency``.

        Window i+1 starts only after window i completed. Results keep the
        input order; failed URLs become ``FailedPage`` entries.
        """
        config = self.config.merged(**overrides)
        results: List[BatchResult] = []
        window_size = config.concurrency

        with _crawl_context():
            logger.info("Starting batch crawl", urls=len(urls), concurrency=window_size)
            for start in range(0, len(urls), window_size):
                window = urls[start : start + window_size]
                logger.debug("Crawling batch window", window=start // window_size + 1, size=len(window))
                results.extend(
                    await asyncio.gather(*(self._crawl_or_fail(url, config, track_similarity) for url in window))
                )
                if config.batch_delay_ms > 0 and start + window_size < len(urls):
                    await asyncio.sleep(config.batch_delay_ms / 1000.0)

            failed = sum(1 for result in results if isinstance(result, FailedPage))
            logger.info("Batch crawl finished", total=len(results), failed=failed)
        return results

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def discover(self, seed: str, **overrides: Any) -> DiscoveryResult:
        """
        Breadth-first site discovery from ``seed``.

        Pages are crawled one at a time. Links of a page at depth ``d`` are
        followed only while ``d + 1 <= max_depth``; discovery stops when the
        queue drains or ``max_urls`` URLs were discovered.
        """
        config = self.config.merged(**overrides)
        frontier = Frontier(seed, config.max_depth, config.max_urls, config.url_pattern)

        with _crawl_context():
            logger.info("Starting discovery", seed=seed, max_depth=config.max_depth, max_urls=config.max_urls)
            pages = await self._drain_frontier(frontier, config)

            stats = DiscoveryStats(
                total_urls=len(frontier.discovered),
                crawled=len(frontier.visited),
                failed=len(frontier.visited) - len(pages),
            )
            logger.info("Discovery finished", seed=seed, discovered=stats.total_urls, crawled=stats.crawled)
        return DiscoveryResult(discovered_urls=frontier.discovered_urls, pages=pages, stats=stats)

    async def _drain_frontier(self, frontier: Frontier, config: CrawlConfig) -> List[PageReport]:
        pages: List[PageReport] = []
        while frontier.has_work():
            entry = frontier.next()
            if entry is None:
                break
            url, depth = entry

            try:
                report = await self._crawl(url, config)
            except CrawlFailed as e:
                logger.warning("Skipping page during discovery", url=url, depth=depth, error=str(e.cause))
                continue

            pages.append(report)
            frontier.add_links([link.url for link in report.page.links], depth)
        return pages

    async def build_sitemap(
        self,
        base_url: str,
        *,
        max_depth: int = 3,
        max_urls: int = 1000,
        url_pattern: Optional[str] = None,
    ) -> Sitemap:
        """Discover ``base_url`` and render the crawled pages as a sitemap."""
        discovery = await self.discover(base_url, max_depth=max_depth, max_urls=max_urls, url_pattern=url_pattern)
        entries = [
            SitemapEntry(
                url=report.url,
                last_modified=report.timestamp,
                change_freq=estimate_change_frequency(report.url),
                priority=sitemap_priority(report.url, base_url),
                status=report.status_code,
                title=report.page.metadata.title,
                description=report.page.metadata.description,
            )
            for report in discovery.pages
        ]
        return Sitemap(entries=entries, xml=render_sitemap(entries), stats=discovery.stats)

    # ------------------------------------------------------------------
    # Link audit, technology, change monitoring
    # ------------------------------------------------------------------

    async def check_links(self, urls: Sequence[str], **overrides: Any) -> List[LinkStatus]:
        """HEAD-check ``urls`` in windows of ``concurrency``; never raises per link."""
        config = self.config.merged(**overrides)
        await self.client.initialize()

        statuses: List[LinkStatus] = []
        for start in range(0, len(urls), config.concurrency):
            window = urls[start : start + config.concurrency]
            statuses.extend(await asyncio.gather(*(self.client.check_link_status(url, config) for url in window)))

        broken = sum(1 for status in statuses if status.is_broken)
        logger.info("Link check finished", links=len(statuses), broken=broken)
        return statuses

    async def detect_technology(self, url: str, **overrides: Any) -> TechnologyReport:
        report = await self.crawl(url, **overrides)
        return detect_technology(url, report.fetch.text, report.fetch.headers)

    def watch(self, url: str, interval: float, callback: ChangeCallback) -> ChangeWatcher:
        """
        Start monitoring ``url`` for changes every ``interval`` seconds.

        Checks always bypass the response cache. The returned watcher is
        stopped with ``stop()`` or when the orchestrator closes.
        """
        config = self.config.merged(cache_enabled=False)

        async def crawl_fresh(target: str) -> PageReport:
            return await self._crawl(target, config)

        watcher = ChangeWatcher(crawl_fresh, url, interval, callback)
        self._watchers.append(watcher)
        return watcher.start()

    # ------------------------------------------------------------------
    # Similarity, performance and export
    # ------------------------------------------------------------------

    def find_duplicates(self, threshold: float = DEFAULT_THRESHOLD) -> List[DuplicatePair]:
        return self.similarity_log.find_duplicates(threshold)

    def clear_similarity_log(self) -> None:
        self.similarity_log.clear()

    def get_performance_stats(self) -> PerformanceSnapshot:
        return self.monitor.get_stats()

    def reset_performance_stats(self) -> None:
        self.monitor.reset()

    def export(self, format_name: str = "json") -> str:
        """Render the similarity log and performance snapshot as json, csv or xml."""
        exporter = get_exporter(format_name)
        return exporter.render(self.similarity_log.records(), self.monitor.get_stats())

    # ------------------------------------------------------------------
    # Competitor analysis, page comparison and insight
    # ------------------------------------------------------------------

    async def analyze_competitors(self, urls: Sequence[str], **overrides: Any) -> CompetitorAnalysis:
        """
        Crawl competing pages with similarity tracking and summarise them.

        Average quality counts failed pages as zero. Duplicates are reported
        over the whole similarity log, including pages tracked earlier.
        """
        results = await self.crawl_many(urls, track_similarity=True, **overrides)
        analysis = CompetitorAnalysis(
            pages=results,
            average_quality=average_quality(results),
            common_keywords=find_common_keywords(results),
            duplicates=self.find_duplicates(),
            performance=self.get_performance_stats(),
            url_patterns=categorize_urls(result.url for result in results),
            sentiment=compare_sentiment(results),
            readability=compare_readability(results),
        )
        logger.info(
            "Competitor analysis finished",
            pages=len(results),
            average_quality=round(analysis.average_quality, 2),
            duplicates=len(analysis.duplicates),
        )
        return analysis

    async def compare_pages(
        self,
        urls: Sequence[str],
        metrics: Sequence[str] = COMPARISON_METRICS,
        **overrides: Any,
    ) -> PageComparison:
        """
        Score each page on ``metrics`` (quality, performance, seo) and pick a winner per metric.

        Raises:
            ValueError: for an unknown metric name, before anything is fetched.
        """
        validate_metrics(metrics)

        results = await self.crawl_many(urls, **overrides)
        scores = {metric: {result.url: metric_score(result, metric) for result in results} for metric in metrics}
        return PageComparison(
            scores=scores,
            winners=best_performers(scores),
            recommendations=comparison_recommendations(results),
            pages=results,
        )

    async def insight(self, url: str, **overrides: Any) -> PageInsight:
        """Crawl ``url`` and condense the report into headline facts."""
        report = await self.crawl(url, **overrides)
        metadata = report.page.metadata
        return PageInsight(
            url=report.url,
            status_code=report.status_code,
            fetched_at=report.timestamp,
            size=report.size,
            title=metadata.title,
            description=metadata.description,
            word_count=report.page.text.word_count,
            link_count=len(report.page.links),
            image_count=len(report.page.images),
            has_schema=bool(report.page.schema),
            mobile_friendly="width=device-width" in metadata.viewport,
            has_open_graph=bool(metadata.og.title),
            has_twitter_card=bool(metadata.twitter.card),
            quality=report.quality.overall,
            sentiment=report.sentiment.sentiment,
        )
