"""
Tests for DOM extraction with selectolax.
"""

import pytest
from selectolax.lexbor import LexborHTMLParser

from sitesift.extractor.dom_extractor import (
    extract_forms,
    extract_images,
    extract_links,
    extract_metadata,
    extract_page,
    extract_schema,
    extract_text,
)

BASE = "https://example.com/coffee"


@pytest.mark.unit
class TestMetadata:
    def test_head_fields(self, sample_html):
        metadata = extract_metadata(sample_html)

        assert metadata.title == "Practical Guide to Brewing Better Coffee at Home"
        assert metadata.description.startswith("A practical guide")
        assert metadata.canonical == "https://example.com/coffee"
        assert metadata.viewport == "width=device-width, initial-scale=1"
        assert metadata.language == "en"
        assert metadata.og.title == "Brewing Better Coffee"
        assert metadata.twitter.card == "summary"

    def test_og_description_fallback(self):
        html = '<html><head><meta property="og:description" content="From OG"></head></html>'
        assert extract_metadata(html).description == "From OG"

    def test_missing_everything(self):
        metadata = extract_metadata("<html><body></body></html>")

        assert metadata.title == ""
        assert metadata.description == ""
        assert metadata.og.title == ""


@pytest.mark.unit
class TestLinksAndImages:
    def test_links_are_absolute(self, sample_html):
        links = extract_links(sample_html, BASE)

        assert [link.url for link in links] == ["https://example.com/home", "https://example.com/tea"]
        assert links[1].text == "Read about tea"
        assert links[1].title == "Tea"

    def test_relative_resolution(self):
        html = '<a href="next">n</a><a href="../up">u</a><a href="#frag">f</a><a>no href</a>'
        urls = [link.url for link in extract_links(html, "https://example.com/a/b")]

        assert urls == ["https://example.com/a/next", "https://example.com/up", "https://example.com/a/b#frag"]

    def test_images(self, sample_html):
        (image,) = extract_images(sample_html, BASE)

        assert image.url == "https://example.com/img/beans.jpg"
        assert image.alt == "Coffee beans"


@pytest.mark.unit
class TestText:
    def test_excluded_regions_are_dropped(self, sample_html):
        text = extract_text(sample_html)

        assert "Good coffee starts with fresh beans." in text.full_text
        assert "Home" not in text.full_text
        assert "Copyright" not in text.full_text
        assert "@type" not in text.full_text

    def test_headings_in_document_order(self, sample_html):
        headings = extract_text(sample_html).headings

        assert [(h.level, h.text) for h in headings] == [
            ("h1", "Brewing Better Coffee"),
            ("h2", "Water"),
            ("h2", "Ratio"),
        ]

    def test_paragraphs_and_word_count(self):
        text = extract_text("<html><body><p>one two</p><p>  </p><p>three</p></body></html>")

        assert text.paragraphs == ["one two", "three"]
        assert text.word_count == 3

    def test_whitespace_is_collapsed(self):
        text = extract_text("<html><body><p>spread\n\n   over\tlines</p></body></html>")

        assert text.full_text == "spread over lines"

    def test_empty_document(self):
        text = extract_text("")

        assert text.full_text == ""
        assert text.word_count == 0

    def test_parsed_tree_is_not_mutated(self, sample_html):
        tree = LexborHTMLParser(sample_html)

        extract_text(tree)

        assert tree.css_first("footer") is not None
        assert tree.css_first("nav") is not None

    def test_custom_exclusions(self):
        html = "<html><body><aside>side</aside><p>main</p><footer>foot</footer></body></html>"

        assert extract_text(html, exclude=("aside",)).full_text == "main foot"


@pytest.mark.unit
class TestSchemaAndForms:
    def test_json_ld_blocks(self):
        html = """<script type="application/ld+json">{"@type": "Article"}</script>
        <script type="application/ld+json">{not json}</script>
        <script type="application/ld+json">[{"@type": "Person"}]</script>"""

        assert extract_schema(html) == [{"@type": "Article"}, [{"@type": "Person"}]]

    def test_forms(self):
        html = """<form action="/login" method="post" enctype="multipart/form-data">
          <input type="text" name="user" placeholder="Username" required>
          <input type="password" name="pass">
          <textarea name="note"></textarea>
          <select name="choice"><option>1</option></select>
        </form><form></form>"""

        first, second = extract_forms(html)

        assert (first.action, first.method, first.enctype) == ("/login", "post", "multipart/form-data")
        assert [(f.name, f.type, f.required) for f in first.fields] == [
            ("user", "text", True),
            ("pass", "password", False),
            ("note", "textarea", False),
            ("choice", "select", False),
        ]
        assert first.fields[0].placeholder == "Username"
        assert second.method == "GET"
        assert second.fields == []


@pytest.mark.unit
class TestExtractPage:
    def test_bundles_every_extractor(self, sample_html):
        page = extract_page(sample_html, BASE)

        assert page.metadata.title
        assert len(page.links) == 2
        assert len(page.images) == 1
        assert page.schema == [{"@type": "Article", "headline": "Coffee"}]
        assert page.forms[0].fields[0].name == "email"
        assert page.text.word_count > 10
