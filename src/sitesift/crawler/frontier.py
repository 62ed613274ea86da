"""
Breadth-first frontier for a single discovery run.
"""

from __future__ import annotations

from collections import deque
from typing import Deque, List, Optional, Set, Tuple
from urllib.parse import urldefrag, urlparse, urlunparse

from sitesift.crawler.patterns import matches_pattern


def is_crawlable(url: str) -> bool:
    """Only absolute http(s) links are ever enqueued."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def normalize_url(url: str) -> str:
    """Drop the fragment and give a bare host the root path."""
    url, _ = urldefrag(url)
    try:
        parsed = urlparse(url)
    except ValueError:
        return url
    if parsed.netloc and not parsed.path:
        return urlunparse(parsed._replace(path="/"))
    return url


class Frontier:
    """
    Visited set, discovered set and FIFO queue of ``(url, depth)`` pairs.

    A URL enters ``discovered`` and the queue at most once; ``visited`` only
    grows, and a URL is moved out of the queue before it is marked visited.
    ``discovered`` never grows beyond ``max_urls``.
    """

    def __init__(self, seed: str, max_depth: int, max_urls: int, url_pattern: Optional[str] = None):
        self.seed = normalize_url(seed)
        self.max_depth = max_depth
        self.max_urls = max_urls
        self.url_pattern = url_pattern
        self.visited: Set[str] = set()
        self.discovered: Set[str] = set()
        self._order: List[str] = []
        self._queue: Deque[Tuple[str, int]] = deque([(self.seed, 0)])

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def queued(self) -> List[str]:
        return [url for url, _ in self._queue]

    @property
    def discovered_urls(self) -> List[str]:
        """Discovered URLs in the order they were first seen."""
        return list(self._order)

    def has_work(self) -> bool:
        return bool(self._queue) and len(self.discovered) < self.max_urls

    def next(self) -> Optional[Tuple[str, int]]:
        """Pop the next unvisited entry and mark it visited, or None when drained."""
        while self._queue:
            url, depth = self._queue.popleft()
            if url in self.visited:
                continue
            self.visited.add(url)
            return url, depth
        return None

    def add_links(self, links: List[str], parent_depth: int) -> int:
        """
        Enqueue the outbound links of a page crawled at ``parent_depth``.

        Returns the number of URLs newly discovered.
        """
        depth = parent_depth + 1
        if depth > self.max_depth:
            return 0

        added = 0
        for link in links:
            if len(self.discovered) >= self.max_urls:
                break
            url = normalize_url(link)
            if not is_crawlable(url) or url in self.visited or url in self.discovered:
                continue
            if not matches_pattern(url, self.url_pattern):
                continue
            self.discovered.add(url)
            self._order.append(url)
            self._queue.append((url, depth))
            added += 1
        return added
