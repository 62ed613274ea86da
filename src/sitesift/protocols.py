"""
Core dataclasses shared across SiteSift.

Architecture Overview:
- Fetch results are immutable values produced by the HTTP client
- Page records are produced by the DOM extractor from a fetch result
- Reports combine a fetch, its extracted record and the analysis on top
- Frontier, similarity and performance types back the crawl orchestrator
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from multidict import CIMultiDictProxy


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


# ============================================================================
# Enums
# ============================================================================


class Grade(Enum):
    """Letter grades for the overall quality score."""

    A_PLUS = "A+"
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


class DuplicateKind(Enum):
    """Classification of a reported duplicate pair."""

    EXACT = "exact"
    NEAR_DUPLICATE = "near-duplicate"


# ============================================================================
# Fetch Engine
# ============================================================================


@dataclass(frozen=True)
class FetchResult:
    """A completed HTTP retrieval. Immutable once produced."""

    url: str
    status_code: int
    headers: CIMultiDictProxy[str]
    content_type: str
    encoding: str
    body: bytes
    text: str
    size: int
    timestamp: datetime = field(default_factory=utc_now)
    final_url: str = ""
    attempts: int = 1


@dataclass(frozen=True)
class LinkStatus:
    """Outcome of a status-only check used for broken-link auditing."""

    url: str
    status_code: int
    status_text: str = ""
    content_type: str = ""
    size: int = 0
    error: bool = False

    @property
    def is_broken(self) -> bool:
        return self.error or self.status_code >= 400 or self.status_code == 0


# ============================================================================
# Extracted page structure
# ============================================================================


@dataclass
class OpenGraph:
    title: str = ""
    description: str = ""
    image: str = ""
    url: str = ""
    type: str = ""
    site_name: str = ""


@dataclass
class TwitterCard:
    card: str = ""
    site: str = ""
    creator: str = ""
    title: str = ""
    description: str = ""
    image: str = ""


@dataclass
class PageMetadata:
    """Head-level metadata of a document."""

    title: str = ""
    description: str = ""
    keywords: str = ""
    author: str = ""
    canonical: str = ""
    robots: str = ""
    viewport: str = ""
    language: str = ""
    og: OpenGraph = field(default_factory=OpenGraph)
    twitter: TwitterCard = field(default_factory=TwitterCard)


@dataclass
class Link:
    url: str
    text: str = ""
    title: str = ""
    rel: str = ""
    target: str = ""


@dataclass
class Image:
    url: str
    alt: str = ""
    title: str = ""
    width: str = ""
    height: str = ""


@dataclass
class Heading:
    level: str
    text: str


@dataclass
class TextContent:
    """Visible text of a document with its structural outline."""

    full_text: str = ""
    headings: List[Heading] = field(default_factory=list)
    word_count: int = 0
    paragraphs: List[str] = field(default_factory=list)


@dataclass
class FormField:
    name: str = ""
    type: str = ""
    value: str = ""
    placeholder: str = ""
    required: bool = False


@dataclass
class Form:
    action: str = ""
    method: str = "GET"
    enctype: str = ""
    fields: List[FormField] = field(default_factory=list)


@dataclass
class PageRecord:
    """Everything the DOM extractor pulls out of one document."""

    metadata: PageMetadata = field(default_factory=PageMetadata)
    links: List[Link] = field(default_factory=list)
    images: List[Image] = field(default_factory=list)
    text: TextContent = field(default_factory=TextContent)
    schema: List[Any] = field(default_factory=list)
    forms: List[Form] = field(default_factory=list)


# ============================================================================
# Smart extraction
# ============================================================================


@dataclass
class ContactInfo:
    emails: List[str] = field(default_factory=list)
    phones: List[str] = field(default_factory=list)
    social_media: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PriceMention:
    price: str
    context: str
    element: str


@dataclass(frozen=True)
class DateMention:
    """A date found in markup (``structured``) or in free text (``extracted``)."""

    date: str
    type: str
    element: str


@dataclass(frozen=True)
class BreadcrumbItem:
    text: str
    url: Optional[str] = None


@dataclass
class Review:
    text: str
    rating: Optional[float] = None
    author: Optional[str] = None
    date: Optional[str] = None
    element: str = ""


@dataclass
class SmartContent:
    """Contacts, prices, dates, breadcrumb trails and reviews found on a page."""

    contacts: ContactInfo = field(default_factory=ContactInfo)
    prices: List[PriceMention] = field(default_factory=list)
    dates: List[DateMention] = field(default_factory=list)
    breadcrumbs: List[List[BreadcrumbItem]] = field(default_factory=list)
    reviews: List[Review] = field(default_factory=list)


# ============================================================================
# Text analysis
# ============================================================================


@dataclass(frozen=True)
class SentimentResult:
    score: float
    sentiment: str
    positive: int
    negative: int
    total: int


@dataclass(frozen=True)
class Keyword:
    word: str
    count: int


@dataclass(frozen=True)
class LanguageGuess:
    language: str
    confidence: float
    full_name: str


@dataclass(frozen=True)
class ReadabilityResult:
    flesch_score: float
    reading_level: str
    sentences: int
    words: int
    avg_words_per_sentence: float
    avg_syllables_per_word: float


# ============================================================================
# Quality scoring
# ============================================================================


@dataclass
class PageSignals:
    """Input of the quality scorer: an extracted record plus raw attributes."""

    page: PageRecord
    html: str
    size: int
    status_code: int
    url: str
    encoding: str = ""


@dataclass
class QualityScore:
    overall: int
    breakdown: Dict[str, float]
    grade: Grade
    recommendations: List[str] = field(default_factory=list)


# ============================================================================
# Orchestrator outputs
# ============================================================================


@dataclass
class PageReport:
    """A crawled page with its extracted structure and analysis."""

    fetch: FetchResult
    page: PageRecord
    sentiment: SentimentResult
    keywords: List[Keyword]
    language: LanguageGuess
    readability: ReadabilityResult
    quality: QualityScore
    smart: SmartContent = field(default_factory=SmartContent)
    timestamp: datetime = field(default_factory=utc_now)

    @property
    def url(self) -> str:
        return self.fetch.url

    @property
    def status_code(self) -> int:
        return self.fetch.status_code

    @property
    def size(self) -> int:
        return self.fetch.size


@dataclass(frozen=True)
class FailedPage:
    """Stand-in for a page that could not be crawled inside a batch."""

    url: str
    error: str


@dataclass(frozen=True)
class SimilarityRecord:
    url: str
    text: str
    timestamp: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class DuplicatePair:
    url1: str
    url2: str
    similarity: float
    kind: DuplicateKind


@dataclass(frozen=True)
class DiscoveryStats:
    total_urls: int
    crawled: int
    failed: int


@dataclass
class DiscoveryResult:
    discovered_urls: List[str]
    pages: List[PageReport]
    stats: DiscoveryStats
    timestamp: datetime = field(default_factory=utc_now)


@dataclass
class ChangeReport:
    """Comparison of two snapshots of the same URL, or a failed check."""

    url: str
    similarity: float = 0.0
    changed: bool = False
    title_changed: bool = False
    links_changed: bool = False
    size_changed: bool = False
    previous: Optional[PageReport] = None
    current: Optional[PageReport] = None
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class SitemapEntry:
    url: str
    last_modified: datetime
    change_freq: str
    priority: str
    status: int
    title: str = ""
    description: str = ""


@dataclass
class Sitemap:
    entries: List[SitemapEntry]
    xml: str
    stats: DiscoveryStats
    timestamp: datetime = field(default_factory=utc_now)


@dataclass
class TechnologyReport:
    url: str
    cms: str
    frameworks: List[str]
    analytics: List[str]
    ecommerce: List[str]
    cdn: str
    server: str
    security: Dict[str, bool]
    confidence: int = 0
    recommendations: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class SentimentComparison:
    average: float
    distribution: Dict[str, int]


@dataclass(frozen=True)
class ReadabilityComparison:
    average_score: float
    levels: List[str]
    average_words_per_sentence: float


@dataclass
class CompetitorAnalysis:
    """Side-by-side analytics for a set of competing pages."""

    pages: List[Union[PageReport, FailedPage]]
    average_quality: float
    common_keywords: List[Keyword]
    duplicates: List[DuplicatePair]
    performance: PerformanceSnapshot
    url_patterns: Dict[str, List[str]]
    sentiment: SentimentComparison
    readability: ReadabilityComparison
    timestamp: datetime = field(default_factory=utc_now)


@dataclass
class PageComparison:
    """Per-metric scores keyed by URL, the best URL per metric and advice."""

    scores: Dict[str, Dict[str, float]]
    winners: Dict[str, Optional[str]]
    recommendations: List[str]
    pages: List[Union[PageReport, FailedPage]] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class PageInsight:
    """One-glance summary of a crawled page."""

    url: str
    status_code: int
    fetched_at: datetime
    size: int
    title: str
    description: str
    word_count: int
    link_count: int
    image_count: int
    has_schema: bool
    mobile_friendly: bool
    has_open_graph: bool
    has_twitter_card: bool
    quality: int
    sentiment: str


# ============================================================================
# Performance monitoring
# ============================================================================


@dataclass(frozen=True)
class RequestTiming:
    url: str
    duration_ms: float


@dataclass(frozen=True)
class PerformanceSnapshot:
    """Read-only view of the performance monitor's counters."""

    requests: int
    failures: int
    total_time_ms: float
    avg_response_time_ms: float
    fastest_request: Optional[RequestTiming]
    slowest_request: Optional[RequestTiming]
    status_codes: Dict[int, int]
    domains: Dict[str, int]
    start_time: datetime
    uptime_seconds: float
    success_rate: float
    requests_per_second: float
