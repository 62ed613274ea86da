"""
HTTP fetch engine with robots.txt compliance, response caching, and observability.
"""

from __future__ import annotations

import asyncio
import time
from typing import Optional, Tuple
from urllib.parse import urlparse

import aiohttp
import structlog
from multidict import CIMultiDict, CIMultiDictProxy

from sitesift.config import CrawlConfig
from sitesift.crawler.cache import ResponseCache
from sitesift.crawler.encoding import decode_body, detect_charset
from sitesift.crawler.headers import build_headers
from sitesift.crawler.robots_parser import RobotsCache
from sitesift.exceptions import FetchFailed, InvalidUrl, RobotsDisallowed, TransportFailure
from sitesift.observability.metrics import METRICS
from sitesift.protocols import FetchResult, LinkStatus

logger = structlog.get_logger(__name__)

_RawResponse = Tuple[int, CIMultiDictProxy[str], bytes, str]


def validate_url(url: str) -> str:
    """
    Ensure ``url`` is an absolute http(s) URL.

    Raises:
        InvalidUrl: for any other scheme, a missing host or an unparsable URL.
    """
    try:
        parsed = urlparse(url)
        host = parsed.hostname
    except (ValueError, AttributeError, TypeError) as e:
        raise InvalidUrl(f"Invalid URL provided: {url!r} ({e})", url=str(url)) from e

    if parsed.scheme.lower() not in ("http", "https") or not host:
        raise InvalidUrl(f"Invalid URL provided: {url!r}", url=url)
    return url


class HttpClient:
    """
    Fetches single URLs with retries, politeness and charset handling.

    The response cache and robots cache are injectable so that several
    clients can share them deliberately. The client owns its aiohttp session
    and must be initialized before use, either explicitly or as an async
    context manager.
    """

    def __init__(
        self,
        config: Optional[CrawlConfig] = None,
        *,
        cache: Optional[ResponseCache] = None,
        robots: Optional[RobotsCache] = None,
    ):
        self.config = config or CrawlConfig()
        self.cache = cache if cache is not None else ResponseCache()
        self.robots = robots if robots is not None else RobotsCache()

        # Session will be initialized in initialize()
        self.session: Optional[aiohttp.ClientSession] = None
        self._is_initialized = False
        self._in_flight_requests = 0

        logger.info(
            "HTTP client initialized",
            retries=self.config.retries,
            user_agent=self.config.user_agent,
            respect_robots=self.config.respect_robots,
        )

    async def initialize(self) -> None:
        """Initialize the HTTP client session."""
        if self.session is None:
            # Global TCP connector with connection pooling
            connector = aiohttp.TCPConnector(
                limit=0,
                ttl_dns_cache=30,
                use_dns_cache=True,
                keepalive_timeout=30,
            )
            self.session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
            )
            self._is_initialized = True
            logger.info("HTTP client session initialized")

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        if self.session:
            await self.session.close()
            self.session = None
        self._is_initialized = False
        logger.info("HTTP client closed")

    async def __aenter__(self) -> "HttpClient":
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    def _require_session(self) -> aiohttp.ClientSession:
        if not self._is_initialized or self.session is None:
            raise RuntimeError("HTTP client not initialized. Call initialize() first.")
        return self.session

    def _set_in_flight(self, delta: int) -> None:
        self._in_flight_requests += delta
        METRICS["crawler_in_flight_requests"].set(self._in_flight_requests)

    async def _check_robots_txt(self, url: str, config: CrawlConfig) -> bool:
        """Check if URL is allowed by robots.txt."""
        session = self._require_session()
        return await self.robots.is_allowed(session, url, config.user_agent, timeout=config.robots_timeout)

    async def _perform_request(self, url: str, config: CrawlConfig) -> _RawResponse:
        """
        Perform one GET attempt.

        Statuses below 500 are returned as-is; everything else raises
        ``TransportFailure``.
        """
        session = self._require_session()
        try:
            async with session.get(
                url,
                headers=build_headers(config.user_agent, url),
                timeout=aiohttp.ClientTimeout(total=config.timeout),
                allow_redirects=config.max_redirects > 0,
                max_redirects=config.max_redirects,
            ) as response:
                body = await response.read()
                if response.status >= 500:
                    raise TransportFailure(
                        f"Server responded with status {response.status}",
                        url=url,
                        status=response.status,
                    )
                headers = CIMultiDictProxy(CIMultiDict(response.headers))
                return response.status, headers, body, str(response.url)
        except asyncio.TimeoutError as e:
            raise TransportFailure(f"Request timed out after {config.timeout}s", url=url) from e
        except aiohttp.ClientError as e:
            raise TransportFailure(f"{type(e).__name__}: {e}", url=url) from e

    async def _calculate_backoff_delay(self, attempt: int) -> float:
        """Linear backoff: one second per failed attempt."""
        return attempt * 1.0

    async def _request_with_retries(self, url: str, config: CrawlConfig) -> Tuple[_RawResponse, int]:
        last_error: Optional[TransportFailure] = None

        for attempt in range(1, config.retries + 1):
            try:
                return await self._perform_request(url, config), attempt
            except TransportFailure as e:
                last_error = e
                if attempt < config.retries:
                    delay = await self._calculate_backoff_delay(attempt)
                    logger.warning(
                        "Request failed, retrying",
                        url=url,
                        attempt=attempt,
                        retries=config.retries,
                        delay=delay,
                        error=str(e),
                    )
                    METRICS["crawler_retries_total"].inc()
                    await asyncio.sleep(delay)

        assert last_error is not None
        METRICS["crawler_fetch_failures_total"].inc()
        logger.error("All attempts exhausted", url=url, attempts=config.retries, error=str(last_error))
        raise FetchFailed(url, last_error, config.retries)

    async def fetch(self, url: str, config: Optional[CrawlConfig] = None) -> FetchResult:
        """
        Fetch URL with robots.txt compliance, caching, retries, and observability.

        Args:
            url: Absolute http(s) URL to fetch.
            config: Effective options for this call (defaults to the client's).

        Returns:
            The fetched and decoded ``FetchResult``.

        Raises:
            InvalidUrl: ``url`` is not an absolute http(s) URL.
            RobotsDisallowed: robots.txt forbids the URL for the user agent.
            FetchFailed: every attempt failed.
        """
        config = config or self.config
        validate_url(url)

        if config.cache_enabled:
            cached = self.cache.get(url)
            if cached is not None:
                METRICS["crawler_cache_hits_total"].inc()
                logger.debug("Serving cached response", url=url)
                return cached

        if config.respect_robots and not await self._check_robots_txt(url, config):
            METRICS["crawler_robots_blocked_total"].inc()
            logger.info("Blocked by robots.txt", url=url)
            raise RobotsDisallowed(url, config.user_agent)

        if config.delay_ms > 0:
            await asyncio.sleep(config.delay_ms / 1000.0)

        start_time = time.perf_counter()
        self._set_in_flight(1)
        try:
            (status, headers, body, final_url), attempts = await self._request_with_retries(url, config)
        finally:
            self._set_in_flight(-1)

        METRICS["crawler_responses_total"].labels(status_class=f"{status // 100}xx").inc()
        METRICS["crawler_fetch_latency_seconds"].observe(time.perf_counter() - start_time)

        encoding = detect_charset(headers, body) or config.encoding
        result = FetchResult(
            url=url,
            status_code=status,
            headers=headers,
            content_type=headers.get("Content-Type", ""),
            encoding=encoding,
            body=body,
            text=decode_body(body, encoding),
            size=len(body),
            final_url=final_url,
            attempts=attempts,
        )

        if config.cache_enabled:
            self.cache.set(url, result)

        logger.debug("Fetched URL", url=url, status=status, size=result.size, attempts=attempts)
        return result

    async def check_link_status(self, url: str, config: Optional[CrawlConfig] = None) -> LinkStatus:
        """
        Check ``url`` with a single HEAD request.

        Statuses 200-499 are reported as-is. Anything else, including
        network errors and invalid URLs, yields a ``LinkStatus`` with
        ``error=True``. Never raises.
        """
        config = config or self.config
        try:
            validate_url(url)
            session = self._require_session()
            async with session.head(
                url,
                headers=build_headers(config.user_agent, url),
                timeout=aiohttp.ClientTimeout(total=config.timeout),
                allow_redirects=config.max_redirects > 0,
                max_redirects=config.max_redirects,
            ) as response:
                if not 200 <= response.status < 500:
                    return LinkStatus(
                        url=url,
                        status_code=response.status,
                        status_text=f"Request failed with status code {response.status}",
                        error=True,
                    )
                length = response.headers.get("Content-Length", "")
                return LinkStatus(
                    url=url,
                    status_code=response.status,
                    status_text=response.reason or "",
                    content_type=response.headers.get("Content-Type", ""),
                    size=int(length) if length.isdigit() else 0,
                )
        except (InvalidUrl, RuntimeError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug("Link check failed", url=url, error=str(e))
            message = str(e) or type(e).__name__
            return LinkStatus(url=url, status_code=0, status_text=message, error=True)
