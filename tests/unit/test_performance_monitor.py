"""
Tests for the request performance monitor.
"""

import threading
import time

import pytest

from sitesift.observability.performance import PerformanceMonitor, RequestToken
from tests.helpers import build_fetch


def token(url: str, duration_ms: float) -> RequestToken:
    return RequestToken(url=url, started=time.perf_counter() - duration_ms / 1000.0)


@pytest.mark.unit
class TestPerformanceMonitor:
    def test_empty_snapshot(self):
        stats = PerformanceMonitor().get_stats()

        assert stats.requests == 0
        assert stats.failures == 0
        assert stats.success_rate == 0.0
        assert stats.requests_per_second == 0.0
        assert stats.fastest_request is None
        assert stats.slowest_request is None

    def test_successes_and_failures(self):
        monitor = PerformanceMonitor()
        monitor.end_request(token("https://a.test/1", 10), build_fetch("https://a.test/1", "x"))
        monitor.end_request(token("https://a.test/2", 200), build_fetch("https://a.test/2", "x", status=404))
        monitor.end_request(token("https://b.test/3", 50), None, RuntimeError("boom"))

        stats = monitor.get_stats()

        assert stats.requests == 3
        assert stats.failures == 1
        assert stats.success_rate == pytest.approx(66.67)
        assert stats.status_codes == {200: 1, 404: 1}
        assert stats.domains == {"a.test": 2}
        assert stats.fastest_request.url == "https://a.test/1"
        assert stats.slowest_request.url == "https://a.test/2"
        assert stats.avg_response_time_ms == pytest.approx(stats.total_time_ms / 3)

    def test_end_request_returns_duration(self):
        monitor = PerformanceMonitor()

        duration = monitor.end_request(token("https://a.test/", 25), build_fetch("https://a.test/", "x"))

        assert duration >= 25
        assert monitor.get_stats().total_time_ms == pytest.approx(duration)

    def test_start_request_captures_url(self):
        assert PerformanceMonitor().start_request("https://a.test/").url == "https://a.test/"

    def test_snapshot_is_detached(self):
        monitor = PerformanceMonitor()
        monitor.end_request(token("https://a.test/", 1), build_fetch("https://a.test/", "x"))

        stats = monitor.get_stats()
        stats.status_codes[500] = 99

        assert monitor.get_stats().status_codes == {200: 1}

    def test_reset(self):
        monitor = PerformanceMonitor()
        monitor.end_request(token("https://a.test/", 1), build_fetch("https://a.test/", "x"))
        started = monitor.get_stats().start_time

        monitor.reset()
        stats = monitor.get_stats()

        assert stats.requests == 0
        assert stats.status_codes == {}
        assert stats.start_time >= started

    def test_concurrent_updates_are_not_lost(self):
        monitor = PerformanceMonitor()
        fetch = build_fetch("https://a.test/", "x")

        def worker():
            for _ in range(250):
                monitor.end_request(monitor.start_request("https://a.test/"), fetch)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        stats = monitor.get_stats()
        assert stats.requests == 2000
        assert stats.status_codes == {200: 2000}
        assert stats.success_rate == 100.0
