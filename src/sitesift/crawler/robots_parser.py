"""
Implements a per-host cache of parsed robots.txt policies.
"""

from __future__ import annotations

import asyncio
from typing import Dict
from urllib.parse import urlparse
from urllib.robotparser import RobotFileParser

import aiohttp
import structlog

from sitesift.crawler.headers import origin_of

logger = structlog.get_logger(__name__)

# Guard against excessively large robots.txt files (1MB).
MAX_ROBOTS_BYTES = 1_000_000


def _allow_all(robots_url: str) -> RobotFileParser:
    parser = RobotFileParser(robots_url)
    parser.allow_all = True
    return parser


class RobotsCache:
    """
    Manages fetching, parsing, and caching of robots.txt files.

    One compiled policy is kept per ``scheme://host`` for the lifetime of the
    cache. The first lookup for a host fetches ``/robots.txt`` under a
    per-host lock, so concurrent fetches to the same host trigger a single
    download. Any failure to obtain the file compiles to "allow everything"
    and is cached like a real policy.
    """

    def __init__(self) -> None:
        self._policies: Dict[str, RobotFileParser] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._policies)

    def __contains__(self, origin: object) -> bool:
        return origin in self._policies

    async def _fetch_policy(self, session: aiohttp.ClientSession, origin: str, timeout: float) -> RobotFileParser:
        """
        Download and compile robots.txt for ``origin``.

        Args:
            session: Session used for the download.
            origin: ``scheme://host`` of the site.
            timeout: Total timeout for the request in seconds.

        Returns:
            The compiled policy, permissive when the file is unavailable.
        """
        robots_url = f"{origin}/robots.txt"
        try:
            async with session.get(robots_url, timeout=aiohttp.ClientTimeout(total=timeout)) as response:
                if response.status != 200:
                    # Common case (404) means allow all, so we log at a debug level
                    logger.debug("No robots.txt found", origin=origin, status=response.status)
                    return _allow_all(robots_url)

                content = await response.read()
                if len(content) > MAX_ROBOTS_BYTES:
                    logger.warning("robots.txt is larger than 1MB, ignoring", origin=origin)
                    return _allow_all(robots_url)

                parser = RobotFileParser(robots_url)
                parser.parse(content.decode("utf-8", errors="replace").splitlines())
                parser.modified()
                return parser
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("Failed to fetch robots.txt, allowing all", origin=origin, error=str(e))
            return _allow_all(robots_url)

    async def get_policy(self, session: aiohttp.ClientSession, url: str, timeout: float = 5.0) -> RobotFileParser:
        origin = origin_of(url)
        policy = self._policies.get(origin)
        if policy is not None:
            return policy

        lock = self._locks.setdefault(origin, asyncio.Lock())
        async with lock:
            # Double-check if it was fetched while waiting for the lock
            policy = self._policies.get(origin)
            if policy is None:
                policy = await self._fetch_policy(session, origin, timeout)
                self._policies[origin] = policy
                logger.debug("Cached robots.txt policy", origin=origin)
        return policy

    async def is_allowed(
        self,
        session: aiohttp.ClientSession,
        url: str,
        user_agent: str,
        timeout: float = 5.0,
    ) -> bool:
        """
        Checks if a user-agent is allowed to crawl a given URL.

        Args:
            session: Session used to download robots.txt on first use.
            url: The full URL to check.
            user_agent: The user-agent string to check against.
            timeout: Timeout for the robots.txt download in seconds.

        Returns:
            True if crawling is allowed, False otherwise.
        """
        if not urlparse(url).netloc:
            return True
        policy = await self.get_policy(session, url, timeout)
        return policy.can_fetch(user_agent, url)

    def clear(self) -> None:
        self._policies.clear()
        self._locks.clear()
