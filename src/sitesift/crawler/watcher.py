"""
Periodic change monitoring for a single URL.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Awaitable, Callable, Optional, Union

import structlog

from sitesift.dedup.similarity import cosine_similarity
from sitesift.exceptions import SiteSiftError
from sitesift.protocols import ChangeReport, PageReport

logger = structlog.get_logger(__name__)

CHANGE_THRESHOLD = 0.95
SIZE_CHANGE_BYTES = 1000

ChangeCallback = Callable[[ChangeReport], Union[None, Awaitable[None]]]


def compare_snapshots(previous: PageReport, current: PageReport) -> ChangeReport:
    """Compare two crawls of the same URL."""
    similarity = cosine_similarity(previous.page.text.full_text, current.page.text.full_text)
    return ChangeReport(
        url=current.url,
        similarity=similarity,
        changed=similarity < CHANGE_THRESHOLD,
        title_changed=previous.page.metadata.title != current.page.metadata.title,
        links_changed=len(previous.page.links) != len(current.page.links),
        size_changed=abs(previous.size - current.size) > SIZE_CHANGE_BYTES,
        previous=previous,
        current=current,
    )


class ChangeWatcher:
    """
    Re-crawls ``url`` every ``interval`` seconds and reports differences.

    The first successful crawl only establishes a baseline. Every later
    crawl is compared against the previous one and the ``ChangeReport`` is
    handed to ``callback``; a failed crawl is reported with ``error`` set and
    does not replace the baseline. The watcher runs until ``stop()``.
    """

    def __init__(
        self,
        crawl: Callable[[str], Awaitable[PageReport]],
        url: str,
        interval: float,
        callback: ChangeCallback,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.url = url
        self.interval = interval
        self.previous: Optional[PageReport] = None
        self.checks = 0
        self._crawl = crawl
        self._callback = callback
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> "ChangeWatcher":
        if self.running:
            return self
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"watch:{self.url}")
        logger.info("Started watching for changes", url=self.url, interval=self.interval)
        return self

    def stop(self) -> None:
        """Cancel the watch loop. Safe to call more than once."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            logger.info("Stopped watching for changes", url=self.url, checks=self.checks)

    async def wait_stopped(self) -> None:
        """Wait until the watch loop has fully exited."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error("Watch loop exited with an error", url=self.url, error=str(e))

    async def check_once(self) -> Optional[ChangeReport]:
        """Run one check; returns the report handed to the callback, if any."""
        self.checks += 1
        try:
            current = await self._crawl(self.url)
        except SiteSiftError as e:
            logger.warning("Change check failed", url=self.url, error=str(e))
            return await self._report_failure(e)
        except Exception as e:
            logger.error("Change check raised unexpectedly", url=self.url, error=str(e), exc_info=True)
            return await self._report_failure(e)

        report = None
        if self.previous is not None:
            report = compare_snapshots(self.previous, current)
            await self._notify(report)
        self.previous = current
        return report

    async def _report_failure(self, error: Exception) -> ChangeReport:
        report = ChangeReport(url=self.url, error=str(error) or type(error).__name__)
        await self._notify(report)
        return report

    async def _notify(self, report: ChangeReport) -> None:
        try:
            outcome = self._callback(report)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.error("Change callback raised", url=self.url, error=str(e), exc_info=True)

    async def _run(self) -> None:
        while True:
            await self.check_once()
            await asyncio.sleep(self.interval)
