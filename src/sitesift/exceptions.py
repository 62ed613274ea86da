"""
Exception hierarchy for SiteSift.

Fetch-level errors carry the URL they were raised for so that callers of a
single fetch always see the target and the underlying cause.
"""

from __future__ import annotations

from typing import Optional


class SiteSiftError(Exception):
    """Base class for all SiteSift errors."""

    def __init__(self, message: str, *, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class InvalidUrl(SiteSiftError, ValueError):
    """Raised for malformed URLs or schemes other than http/https."""


class RobotsDisallowed(SiteSiftError):
    """Raised when robots.txt forbids fetching a URL."""

    def __init__(self, url: str, user_agent: str):
        super().__init__(f"Blocked by robots.txt: {url}", url=url)
        self.user_agent = user_agent


class TransportFailure(SiteSiftError):
    """A single failed attempt: timeout, connection error or 5xx status."""

    def __init__(self, message: str, *, url: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message, url=url)
        self.status = status


class FetchFailed(SiteSiftError):
    """Raised when every attempt for a URL failed."""

    def __init__(self, url: str, cause: BaseException, attempts: int):
        super().__init__(f"Fetching {url} failed after {attempts} attempt(s): {cause}", url=url)
        self.cause = cause
        self.attempts = attempts


class CrawlFailed(SiteSiftError):
    """Raised by the orchestrator when a single page could not be crawled."""

    def __init__(self, url: str, cause: BaseException):
        super().__init__(f"Crawling failed for {url}: {cause}", url=url)
        self.cause = cause
