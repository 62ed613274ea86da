"""
Multi-signal page quality scoring.

Five dimension scorers each produce a 0-100 score from ``PageSignals``. The
overall score is their plain mean, graded A+ to F, with one fixed
recommendation for every dimension that falls below 70.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Dict, List, Sequence

import structlog

from sitesift.analysis.text import analyze_readability
from sitesift.observability.metrics import METRICS
from sitesift.protocols import Grade, PageSignals, QualityScore

logger = structlog.get_logger(__name__)

_SCRIPT_OPEN = re.compile(r"<script")

RECOMMENDATION_THRESHOLD = 70

GRADE_FLOORS = (
    (90, Grade.A_PLUS),
    (80, Grade.A),
    (70, Grade.B),
    (60, Grade.C),
    (50, Grade.D),
)


@dataclass
class Score:
    """Score result from a dimension scorer."""

    name: str
    value: float


class SeoScorer:
    """Title, description, h1, canonical, Open Graph and structured data."""

    name = "seo"
    recommendation = "Improve SEO by adding proper title, meta description, and structured data"

    def __call__(self, signals: PageSignals) -> Score:
        metadata = signals.page.metadata
        title, description = metadata.title, metadata.description
        checks = (
            20 if title else 0,
            15 if title and 30 <= len(title) <= 60 else 0,
            15 if description else 0,
            10 if description and 120 <= len(description) <= 160 else 0,
            10 if any(h.level == "h1" for h in signals.page.text.headings) else 0,
            10 if metadata.canonical else 0,
            10 if metadata.og.title else 0,
            10 if signals.page.schema else 0,
        )
        return Score(self.name, float(sum(checks)))


class AccessibilityScorer:
    name = "accessibility"
    recommendation = "Enhance accessibility with alt texts, proper headings, and language attributes"

    def __call__(self, signals: PageSignals) -> Score:
        page = signals.page
        with_alt = sum(1 for image in page.images if image.alt)
        fields_labelled = all(f.name or f.placeholder for form in page.forms for f in form.fields)
        checks = (
            25.0 if page.metadata.language else 0.0,
            with_alt / max(len(page.images), 1) * 25,
            25.0 if page.text.headings else 0.0,
            25.0 if fields_labelled else 0.0,
        )
        return Score(self.name, sum(checks))


class PerformanceScorer:
    """Penalties for page weight, image count and blocking scripts."""

    name = "performance"
    recommendation = "Optimize page performance by reducing file sizes and script count"

    def __call__(self, signals: PageSignals) -> Score:
        score = 100
        if signals.size > 1_000_000:
            score -= 20
        elif signals.size > 500_000:
            score -= 10
        if len(signals.page.images) > 20:
            score -= 15
        if "document.write" in signals.html:
            score -= 10
        if len(_SCRIPT_OPEN.findall(signals.html)) > 10:
            score -= 10
        return Score(self.name, float(max(0, score)))


class ContentScorer:
    name = "content"
    recommendation = "Improve content quality with better structure and readability"

    def __call__(self, signals: PageSignals) -> Score:
        text = signals.page.text
        flesch = analyze_readability(text.full_text).flesch_score
        score = 0
        if text.word_count >= 300:
            score += 25
        elif text.word_count >= 150:
            score += 15
        if flesch >= 60:
            score += 25
        elif flesch >= 30:
            score += 15
        if len(text.headings) >= 3:
            score += 25
        if len(text.paragraphs) >= 3:
            score += 25
        return Score(self.name, float(score))


class TechnicalScorer:
    """Status, viewport, declared charset, HTTPS and mixed content."""

    name = "technical"
    recommendation = "Fix technical issues like HTTPS, viewport, and status codes"

    def __call__(self, signals: PageSignals) -> Score:
        url = signals.url
        checks = (
            20 if 200 <= signals.status_code < 300 else 0,
            20 if signals.page.metadata.viewport else 0,
            20 if signals.encoding else 0,
            20 if url.startswith("https://") else 0,
            20 if "http://" not in signals.html or url.startswith("http://") else 0,
        )
        return Score(self.name, float(sum(checks)))


ALL_DIMENSIONS = (SeoScorer, AccessibilityScorer, PerformanceScorer, ContentScorer, TechnicalScorer)


def grade_for(score: float) -> Grade:
    for floor, grade in GRADE_FLOORS:
        if score >= floor:
            return grade
    return Grade.F


class QualityScorer:
    """Runs every dimension scorer and aggregates the result."""

    def __init__(self, dimensions: Sequence[type] = ALL_DIMENSIONS):
        self.dimensions = [dimension() for dimension in dimensions]

    def score(self, signals: PageSignals) -> QualityScore:
        breakdown: Dict[str, float] = {}
        recommendations: List[str] = []

        for dimension in self.dimensions:
            result = dimension(signals)
            breakdown[result.name] = result.value
            if result.value < RECOMMENDATION_THRESHOLD:
                recommendations.append(dimension.recommendation)

        mean = sum(breakdown.values()) / len(breakdown) if breakdown else 0.0
        overall = int(math.floor(mean + 0.5))
        METRICS["quality_score"].observe(overall)

        logger.debug("Scored page", url=signals.url, overall=overall, **breakdown)
        return QualityScore(
            overall=overall,
            breakdown=breakdown,
            grade=grade_for(mean),
            recommendations=recommendations,
        )
