"""
Tests for charset detection, tolerant decoding and request headers.
"""

import pytest
from multidict import CIMultiDict

from sitesift.crawler.encoding import decode_body, detect_charset
from sitesift.crawler.headers import build_headers, origin_of


@pytest.mark.unit
class TestDetectCharset:
    def test_content_type_parameter(self):
        headers = CIMultiDict({"content-type": "text/html; charset=ISO-8859-1"})
        assert detect_charset(headers, b"") == "ISO-8859-1"

    def test_quoted_parameter(self):
        headers = {"Content-Type": 'text/html; charset="utf-8"'}
        assert detect_charset(headers, b"") == "utf-8"

    def test_header_wins_over_meta(self):
        headers = {"Content-Type": "text/html; charset=utf-8"}
        assert detect_charset(headers, b'<meta charset="latin-1">') == "utf-8"

    def test_meta_charset(self):
        assert detect_charset({}, b'<html><head><meta charset="shift_jis"></head>') == "shift_jis"

    def test_http_equiv_meta(self):
        body = b'<meta http-equiv="Content-Type" content="text/html; charset=euc-kr">'
        assert detect_charset({}, body) == "euc-kr"

    def test_meta_outside_sniff_window_is_ignored(self):
        body = b" " * 2000 + b'<meta charset="latin-1">'
        assert detect_charset({}, body) is None

    def test_nothing_declared(self):
        assert detect_charset({"Content-Type": "text/html"}, b"<html></html>") is None


@pytest.mark.unit
class TestDecodeBody:
    def test_declared_codec(self):
        assert decode_body("über".encode("latin-1"), "latin-1") == "über"

    def test_unknown_codec_falls_back_to_utf8(self):
        assert decode_body("über".encode(), "x-unknown") == "über"

    def test_invalid_bytes_are_replaced(self):
        assert decode_body(b"ok\xff", "utf-8") == "ok�"


@pytest.mark.unit
class TestHeaders:
    def test_origin(self):
        assert origin_of("https://example.com:8443/a/b?c=d") == "https://example.com:8443"

    def test_build_headers(self):
        headers = build_headers("Bot/1.0", "http://example.com/page")

        assert headers["User-Agent"] == "Bot/1.0"
        assert headers["Referer"] == "http://example.com/"
        assert headers["Accept-Language"] == "en-US,en;q=0.9"
        assert "text/html" in headers["Accept"]
