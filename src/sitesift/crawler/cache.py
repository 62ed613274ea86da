"""
In-memory TTL cache for fetch results.
"""

from __future__ import annotations

import dataclasses
import time
from collections import OrderedDict
from typing import Callable, Optional, Tuple

import structlog

from sitesift.protocols import FetchResult

logger = structlog.get_logger(__name__)


class ResponseCache:
    """
    Maps a URL to its most recent ``FetchResult`` for ``ttl_seconds``.

    Last write wins. Lookups hand out copies so callers can never alias the
    cached value. When ``max_entries`` is set the oldest insert is evicted
    first.
    """

    def __init__(
        self,
        ttl_seconds: float = 3600.0,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, Tuple[float, FetchResult]] = OrderedDict()

    def get(self, url: str) -> Optional[FetchResult]:
        entry = self._entries.get(url)
        if entry is None:
            return None

        stored_at, result = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._entries[url]
            return None
        return dataclasses.replace(result)

    def set(self, url: str, result: FetchResult) -> None:
        self._entries.pop(url, None)
        self._entries[url] = (self._clock(), result)

        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted cached response", url=evicted)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, url: object) -> bool:
        return isinstance(url, str) and self.get(url) is not None
