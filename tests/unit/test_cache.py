"""
Tests for the in-memory response cache.
"""

import pytest

from sitesift.crawler.cache import ResponseCache
from tests.helpers import build_fetch


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.mark.unit
class TestResponseCache:
    def test_get_returns_equal_copy(self):
        cache = ResponseCache()
        result = build_fetch("https://a.test/", "<p>hi</p>")
        cache.set(result.url, result)

        cached = cache.get(result.url)

        assert cached == result
        assert cached is not result

    def test_entries_expire_after_ttl(self):
        clock = FakeClock()
        cache = ResponseCache(ttl_seconds=10, clock=clock)
        cache.set("https://a.test/", build_fetch("https://a.test/", "x"))

        clock.now += 9
        assert cache.get("https://a.test/") is not None

        clock.now += 1
        assert cache.get("https://a.test/") is None
        assert len(cache) == 0

    def test_last_write_wins(self):
        cache = ResponseCache()
        cache.set("https://a.test/", build_fetch("https://a.test/", "old"))
        cache.set("https://a.test/", build_fetch("https://a.test/", "new"))

        assert cache.get("https://a.test/").text == "new"
        assert len(cache) == 1

    def test_oldest_entry_is_evicted(self):
        cache = ResponseCache(max_entries=2)
        for name in ("a", "b", "c"):
            cache.set(f"https://{name}.test/", build_fetch(f"https://{name}.test/", name))

        assert "https://a.test/" not in cache
        assert "https://b.test/" in cache
        assert "https://c.test/" in cache

    def test_clear(self):
        cache = ResponseCache()
        cache.set("https://a.test/", build_fetch("https://a.test/", "x"))

        cache.clear()

        assert len(cache) == 0
        assert cache.get("https://a.test/") is None
