"""
Charset resolution and tolerant decoding of response bodies.
"""

from __future__ import annotations

import codecs
import re
from typing import Mapping, Optional

import structlog

logger = structlog.get_logger(__name__)

_HEADER_CHARSET = re.compile(r"charset=([^;]+)", re.IGNORECASE)
_META_CHARSET = re.compile(r"""<meta[^>]+charset=["']?([^"'>\s]+)""", re.IGNORECASE)

# Bytes of the body scanned for a <meta charset> declaration.
META_SNIFF_BYTES = 1024


def detect_charset(headers: Mapping[str, str], body: bytes) -> Optional[str]:
    """
    Find the declared charset of a response.

    The ``charset`` parameter of Content-Type wins; otherwise the first
    kilobyte of the body is searched for a ``<meta ... charset>`` tag.
    """
    content_type = headers.get("Content-Type") or headers.get("content-type") or ""
    match = _HEADER_CHARSET.search(content_type)
    if match:
        charset = match.group(1).strip().strip("\"'")
        if charset:
            return charset

    head = body[:META_SNIFF_BYTES].decode("ascii", errors="ignore")
    match = _META_CHARSET.search(head)
    if match:
        return match.group(1)
    return None


def decode_body(body: bytes, encoding: str) -> str:
    """Decode ``body`` with ``encoding``, falling back to permissive UTF-8."""
    try:
        codecs.lookup(encoding)
        return body.decode(encoding)
    except (LookupError, UnicodeDecodeError) as e:
        logger.debug("Falling back to utf-8 decoding", encoding=encoding, error=str(e))
        return body.decode("utf-8", errors="replace")
