"""
Structured field extraction from HTML using selectolax.

Every function accepts either raw HTML or an already parsed lexbor tree
and never mutates a tree handed in by the caller.
"""

from __future__ import annotations

import json
from typing import Any, Iterator, List, Optional, Union
from urllib.parse import urljoin

import structlog
from selectolax.lexbor import LexborHTMLParser, LexborNode

from sitesift.protocols import (
    Form,
    FormField,
    Heading,
    Image,
    Link,
    OpenGraph,
    PageMetadata,
    PageRecord,
    TextContent,
    TwitterCard,
)

logger = structlog.get_logger(__name__)

HtmlSource = Union[str, LexborHTMLParser]

EXCLUDED_TEXT_TAGS = ("script", "style", "nav", "footer", "header")
HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})
FORM_FIELD_TAGS = frozenset({"input", "textarea", "select"})


def parse_html(source: HtmlSource) -> LexborHTMLParser:
    return source if isinstance(source, LexborHTMLParser) else LexborHTMLParser(source)


def _collapse(value: str) -> str:
    return " ".join(value.split())


def node_text(node: LexborNode) -> str:
    return _collapse(node.text(deep=True, separator=" "))


def node_attr(node: Optional[LexborNode], name: str) -> str:
    if node is None:
        return ""
    return node.attributes.get(name) or ""


def _content(tree: LexborHTMLParser, selector: str) -> str:
    return node_attr(tree.css_first(selector), "content")


def _descendants(node: LexborNode, tags: frozenset) -> Iterator[LexborNode]:
    """Elements under ``node`` with a tag in ``tags``, in document order."""
    for child in node.traverse(include_text=False):
        if child.tag in tags:
            yield child


def _absolute(base_url: str, href: str) -> Optional[str]:
    try:
        return urljoin(base_url, href.strip())
    except ValueError:
        return None


def extract_metadata(source: HtmlSource) -> PageMetadata:
    """Title, meta tags, canonical link, language, Open Graph and Twitter card."""
    tree = parse_html(source)

    title_node = tree.css_first("title")
    description = _content(tree, 'meta[name="description"]') or _content(tree, 'meta[property="og:description"]')
    language = node_attr(tree.css_first("html"), "lang") or _content(tree, 'meta[http-equiv="content-language"]')

    og = OpenGraph(
        title=_content(tree, 'meta[property="og:title"]'),
        description=_content(tree, 'meta[property="og:description"]'),
        image=_content(tree, 'meta[property="og:image"]'),
        url=_content(tree, 'meta[property="og:url"]'),
        type=_content(tree, 'meta[property="og:type"]'),
        site_name=_content(tree, 'meta[property="og:site_name"]'),
    )
    twitter = TwitterCard(
        card=_content(tree, 'meta[name="twitter:card"]'),
        site=_content(tree, 'meta[name="twitter:site"]'),
        creator=_content(tree, 'meta[name="twitter:creator"]'),
        title=_content(tree, 'meta[name="twitter:title"]'),
        description=_content(tree, 'meta[name="twitter:description"]'),
        image=_content(tree, 'meta[name="twitter:image"]'),
    )

    return PageMetadata(
        title=title_node.text(strip=True) if title_node is not None else "",
        description=description,
        keywords=_content(tree, 'meta[name="keywords"]'),
        author=_content(tree, 'meta[name="author"]'),
        canonical=node_attr(tree.css_first('link[rel="canonical"]'), "href"),
        robots=_content(tree, 'meta[name="robots"]'),
        viewport=_content(tree, 'meta[name="viewport"]'),
        language=language,
        og=og,
        twitter=twitter,
    )


def extract_links(source: HtmlSource, base_url: str) -> List[Link]:
    """All ``a[href]`` targets resolved against ``base_url``."""
    links: List[Link] = []
    for node in parse_html(source).css("a[href]"):
        url = _absolute(base_url, node_attr(node, "href"))
        if url is None:
            continue
        links.append(
            Link(
                url=url,
                text=node_text(node),
                title=node_attr(node, "title"),
                rel=node_attr(node, "rel"),
                target=node_attr(node, "target"),
            )
        )
    return links


def extract_images(source: HtmlSource, base_url: str) -> List[Image]:
    """All ``img[src]`` sources resolved against ``base_url``."""
    images: List[Image] = []
    for node in parse_html(source).css("img[src]"):
        url = _absolute(base_url, node_attr(node, "src"))
        if url is None:
            continue
        images.append(
            Image(
                url=url,
                alt=node_attr(node, "alt"),
                title=node_attr(node, "title"),
                width=node_attr(node, "width"),
                height=node_attr(node, "height"),
            )
        )
    return images


def extract_text(source: HtmlSource, exclude: tuple = EXCLUDED_TEXT_TAGS) -> TextContent:
    """
    Visible body text with headings and paragraphs.

    Elements in ``exclude`` are dropped from a private copy of the tree
    before any text is collected.
    """
    tree = LexborHTMLParser(source.html or "") if isinstance(source, LexborHTMLParser) else LexborHTMLParser(source)
    for node in tree.css(", ".join(exclude)):
        node.decompose()

    body = tree.body
    full_text = node_text(body) if body is not None else ""

    headings: List[Heading] = []
    if tree.root is not None:
        headings = [Heading(level=node.tag, text=node_text(node)) for node in _descendants(tree.root, HEADING_TAGS)]

    paragraphs = [text for text in (node_text(node) for node in tree.css("p")) if text]

    return TextContent(
        full_text=full_text,
        headings=headings,
        word_count=len(full_text.split()),
        paragraphs=paragraphs,
    )


def extract_schema(source: HtmlSource) -> List[Any]:
    """Parsed JSON-LD blocks; invalid blocks are skipped."""
    schemas: List[Any] = []
    for node in parse_html(source).css('script[type="application/ld+json"]'):
        raw = node.text(deep=True)
        try:
            schemas.append(json.loads(raw))
        except ValueError:
            logger.debug("Skipping invalid JSON-LD block", length=len(raw))
    return schemas


def extract_forms(source: HtmlSource) -> List[Form]:
    forms: List[Form] = []
    for form_node in parse_html(source).css("form"):
        fields = [
            FormField(
                name=node_attr(field, "name"),
                type=node_attr(field, "type") or (field.tag or ""),
                value=node_attr(field, "value"),
                placeholder=node_attr(field, "placeholder"),
                required="required" in field.attributes,
            )
            for field in _descendants(form_node, FORM_FIELD_TAGS)
        ]
        forms.append(
            Form(
                action=node_attr(form_node, "action"),
                method=node_attr(form_node, "method") or "GET",
                enctype=node_attr(form_node, "enctype"),
                fields=fields,
            )
        )
    return forms


def extract_page(html: str, base_url: str) -> PageRecord:
    """Run every extractor over ``html`` and bundle the results."""
    tree = LexborHTMLParser(html)
    return PageRecord(
        metadata=extract_metadata(tree),
        links=extract_links(tree, base_url),
        images=extract_images(tree, base_url),
        text=extract_text(html),
        schema=extract_schema(tree),
        forms=extract_forms(tree),
    )
