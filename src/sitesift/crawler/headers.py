"""
Request header construction for polite, browser-like fetches.
"""

from __future__ import annotations

from typing import Dict
from urllib.parse import urlparse

DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
DEFAULT_ACCEPT_LANGUAGE = "en-US,en;q=0.9"


def origin_of(url: str) -> str:
    """Return ``scheme://host[:port]`` for ``url``."""
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def build_headers(user_agent: str, url: str) -> Dict[str, str]:
    """Headers sent with every fetch of ``url``."""
    return {
        "User-Agent": user_agent,
        "Accept": DEFAULT_ACCEPT,
        "Accept-Language": DEFAULT_ACCEPT_LANGUAGE,
        "Accept-Encoding": "gzip, deflate",
        "Referer": origin_of(url) + "/",
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
    }
