"""
Heuristic extraction of contacts, prices, dates, breadcrumbs and reviews.

These extractors work on common markup conventions rather than on any
particular site's structure, so results are best-effort.
"""

from __future__ import annotations

import re
from typing import Dict, Iterator, List, Optional

import structlog
from selectolax.lexbor import LexborHTMLParser, LexborNode

from sitesift.extractor.dom_extractor import HtmlSource, node_attr, node_text, parse_html
from sitesift.protocols import BreadcrumbItem, ContactInfo, DateMention, PriceMention, Review, SmartContent

logger = structlog.get_logger(__name__)

EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
PHONE_RE = re.compile(r"(?:\+?\d{1,4}[-.\s]?)?\(?\d{1,4}\)?[-.\s]?\d{1,4}[-.\s]?\d{1,9}")
PRICE_RE = re.compile(r"\$\d+(?:\.\d{2})?|\d+(?:\.\d{2})?\s*(?:USD|EUR|GBP|IDR)", re.IGNORECASE)
DATE_RE = re.compile(r"\b\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}\b|\b\d{4}[/\-.]\d{1,2}[/\-.]\d{1,2}\b")
NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")

MIN_PHONE_DIGITS = 7
PRICE_CONTEXT_CHARS = 100
MIN_REVIEW_CHARS = 20
REVIEW_TEXT_CHARS = 500

SOCIAL_SELECTORS = {
    "facebook": 'a[href*="facebook.com"]',
    "twitter": 'a[href*="twitter.com"], a[href*="x.com"]',
    "instagram": 'a[href*="instagram.com"]',
    "linkedin": 'a[href*="linkedin.com"]',
    "youtube": 'a[href*="youtube.com"]',
    "tiktok": 'a[href*="tiktok.com"]',
}
BREADCRUMB_SELECTORS = (
    ".breadcrumb, .breadcrumbs",
    '[class*="breadcrumb"]',
    "nav ol, nav ul",
    ".navigation ol, .navigation ul",
)
BREADCRUMB_SEPARATORS = frozenset({">", "»", "/", "|"})
REVIEW_CLASS_MARKERS = ("review", "rating", "testimonial")
AUTHOR_SELECTORS = (".author", ".name", ".user", ".reviewer")
DATE_SELECTORS = ("time", ".date", ".published", "[datetime]")
PRICE_SKIP_TAGS = frozenset({"script", "style", "noscript", "template"})


def _body_text(tree: LexborHTMLParser) -> str:
    body = tree.body
    return node_text(body) if body is not None else ""


def _unique(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))


def extract_contacts(source: HtmlSource) -> ContactInfo:
    """E-mail addresses and phone numbers in the body text plus social profile links."""
    tree = parse_html(source)
    text = _body_text(tree)

    phones = [
        match.group(0).strip()
        for match in PHONE_RE.finditer(text)
        if sum(ch.isdigit() for ch in match.group(0)) >= MIN_PHONE_DIGITS
    ]

    social: Dict[str, str] = {}
    for platform, selector in SOCIAL_SELECTORS.items():
        href = node_attr(tree.css_first(selector), "href")
        if href:
            social[platform] = href

    return ContactInfo(emails=_unique(EMAIL_RE.findall(text)), phones=_unique(phones), social_media=social)


def extract_prices(source: HtmlSource) -> List[PriceMention]:
    """
    Price mentions with the text of the element they appear in.

    Only an element's own text is searched, so a price is attributed to
    the innermost element holding it rather than to every ancestor.
    """
    tree = parse_html(source)
    root = tree.body
    if root is None:
        return []

    prices: List[PriceMention] = []
    for node in root.traverse(include_text=False):
        if node.tag in PRICE_SKIP_TAGS:
            continue
        own_text = node.text(deep=False)
        if not own_text:
            continue
        context = node_text(node)[:PRICE_CONTEXT_CHARS]
        for match in PRICE_RE.finditer(own_text):
            mention = PriceMention(price=match.group(0).strip(), context=context, element=node.tag or "")
            if mention not in prices:
                prices.append(mention)
    return prices


def _classes(node: LexborNode) -> List[str]:
    return (node.attributes.get("class") or "").split()


def _is_date_node(node: LexborNode) -> bool:
    classes = _classes(node)
    return node.tag == "time" or "date" in classes or "published" in classes or "datetime" in node.attributes


def _is_review_node(node: LexborNode) -> bool:
    class_attr = (node.attributes.get("class") or "").lower()
    return any(marker in class_attr for marker in REVIEW_CLASS_MARKERS)


def _elements(tree: LexborHTMLParser) -> Iterator[LexborNode]:
    root = tree.root
    if root is None:
        return iter(())
    return root.traverse(include_text=False)


def extract_dates(source: HtmlSource) -> List[DateMention]:
    """Dates from time-like markup first, then numeric dates found in the body text."""
    tree = parse_html(source)

    dates: List[DateMention] = []
    for node in filter(_is_date_node, _elements(tree)):
        value = node_attr(node, "datetime") or node_text(node)
        if value:
            dates.append(DateMention(date=value, type="structured", element=node.tag or ""))

    for match in DATE_RE.finditer(_body_text(tree)):
        dates.append(DateMention(date=match.group(0), type="extracted", element="text"))
    return dates


def extract_breadcrumbs(source: HtmlSource) -> List[List[BreadcrumbItem]]:
    """Breadcrumb trails with at least two items; a trail matched by several selectors is reported once."""
    tree = parse_html(source)

    trails: List[List[BreadcrumbItem]] = []
    for selector in BREADCRUMB_SELECTORS:
        for container in tree.css(selector):
            items: List[BreadcrumbItem] = []
            for item in container.css("a, span, li"):
                text = node_text(item)
                if text and text not in BREADCRUMB_SEPARATORS:
                    items.append(BreadcrumbItem(text=text, url=node_attr(item, "href") or None))
            if len(items) > 1 and items not in trails:
                trails.append(items)
    return trails


def _first_number(text: str) -> Optional[float]:
    match = NUMBER_RE.search(text)
    return float(match.group(0)) if match else None


def _review_rating(node: LexborNode) -> Optional[float]:
    text = " ".join(node_text(child) for child in node.css('[class*="star"], [class*="rating"]'))
    return _first_number(text)


def _review_author(node: LexborNode) -> Optional[str]:
    for selector in AUTHOR_SELECTORS:
        found = node.css_first(selector)
        if found is not None and node_text(found):
            return node_text(found)
    return None


def _review_date(node: LexborNode) -> Optional[str]:
    for selector in DATE_SELECTORS:
        found = node.css_first(selector)
        if found is None:
            continue
        value = node_attr(found, "datetime") or node_text(found)
        if value:
            return value
    return None


def extract_reviews(source: HtmlSource) -> List[Review]:
    """Review, rating and testimonial blocks with more than a few words of text."""
    reviews: List[Review] = []
    for node in filter(_is_review_node, _elements(parse_html(source))):
        text = node_text(node)
        if len(text) <= MIN_REVIEW_CHARS:
            continue
        reviews.append(
            Review(
                text=text[:REVIEW_TEXT_CHARS],
                rating=_review_rating(node),
                author=_review_author(node),
                date=_review_date(node),
                element=node.tag or "",
            )
        )
    return reviews


def extract_smart_content(html: str) -> SmartContent:
    tree = LexborHTMLParser(html)
    content = SmartContent(
        contacts=extract_contacts(tree),
        prices=extract_prices(tree),
        dates=extract_dates(tree),
        breadcrumbs=extract_breadcrumbs(tree),
        reviews=extract_reviews(tree),
    )
    logger.debug(
        "Smart content extracted",
        emails=len(content.contacts.emails),
        prices=len(content.prices),
        reviews=len(content.reviews),
    )
    return content
