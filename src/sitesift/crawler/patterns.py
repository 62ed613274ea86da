"""
URL pattern utilities: glob matching, categorisation and query parsing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Pattern
from urllib.parse import parse_qsl, urlparse

_GLOB_SPECIALS = re.compile(r"[.+^${}()|\[\]\\]")

URL_CATEGORIES: Dict[str, Pattern[str]] = {
    "images": re.compile(r"\.(jpg|jpeg|png|gif|webp|svg|bmp|ico)$", re.IGNORECASE),
    "documents": re.compile(r"\.(pdf|doc|docx|xls|xlsx|ppt|pptx|txt)$", re.IGNORECASE),
    "videos": re.compile(r"\.(mp4|avi|mov|wmv|flv|webm|mkv)$", re.IGNORECASE),
    "audio": re.compile(r"\.(mp3|wav|flac|aac|ogg|wma)$", re.IGNORECASE),
    "archives": re.compile(r"\.(zip|rar|tar|gz|7z|bz2)$", re.IGNORECASE),
    "social": re.compile(r"\b(facebook|twitter|instagram|linkedin|youtube|tiktok|pinterest)\.", re.IGNORECASE),
    "ecommerce": re.compile(r"\b(shop|store|buy|cart|checkout|product)\b", re.IGNORECASE),
    "blog": re.compile(r"\b(blog|post|article|news)\b", re.IGNORECASE),
}


@lru_cache(maxsize=256)
def glob_to_regex(pattern: str) -> Pattern[str]:
    """
    Compile a glob-like URL pattern.

    ``*`` matches any run of characters and ``?`` exactly one; every other
    regex metacharacter is literal. The match is whole-string and
    case-insensitive.
    """
    escaped = _GLOB_SPECIALS.sub(lambda m: "\\" + m.group(0), pattern)
    escaped = escaped.replace("*", ".*").replace("?", ".")
    return re.compile(f"^{escaped}$", re.IGNORECASE | re.DOTALL)


def matches_pattern(url: str, pattern: Optional[str]) -> bool:
    """True when ``pattern`` is unset or ``url`` matches it."""
    if not pattern:
        return True
    return glob_to_regex(pattern).match(url) is not None


def match_patterns(urls: Iterable[str], patterns: Iterable[str]) -> Dict[str, List[str]]:
    """Group ``urls`` by each glob pattern they match."""
    url_list = list(urls)
    return {pattern: [url for url in url_list if matches_pattern(url, pattern)] for pattern in patterns}


def categorize_urls(urls: Iterable[str]) -> Dict[str, List[str]]:
    """Bucket URLs by resource type; a URL may land in several buckets."""
    url_list = list(urls)
    results = {name: [url for url in url_list if regex.search(url)] for name, regex in URL_CATEGORIES.items()}
    results["uncategorized"] = [
        url for url in url_list if not any(regex.search(url) for regex in URL_CATEGORIES.values())
    ]
    return results


@dataclass(frozen=True)
class UrlParameters:
    base: str
    parameters: Dict[str, str] = field(default_factory=dict)
    fragment: str = ""
    query: str = ""


def extract_url_parameters(url: str) -> Optional[UrlParameters]:
    """Split ``url`` into base, query parameters and fragment; None if unparsable."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None

    return UrlParameters(
        base=f"{parsed.scheme}://{parsed.netloc}{parsed.path or '/'}",
        # Later duplicates win, like a plain mapping assignment
        parameters=dict(parse_qsl(parsed.query, keep_blank_values=True)),
        fragment=f"#{parsed.fragment}" if parsed.fragment else "",
        query=f"?{parsed.query}" if parsed.query else "",
    )
