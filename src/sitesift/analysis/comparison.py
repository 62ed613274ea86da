"""
Aggregate analytics across several crawled pages.
"""

from __future__ import annotations

from collections import Counter
from typing import Dict, List, Optional, Sequence, Union

from sitesift.protocols import (
    FailedPage,
    Keyword,
    PageReport,
    ReadabilityComparison,
    SentimentComparison,
)

PageResult = Union[PageReport, FailedPage]

COMPARISON_METRICS = ("quality", "performance", "seo")
COMMON_KEYWORD_LIMIT = 10
QUALITY_TARGET = 70
LOW_QUALITY_THRESHOLD = 60


def successful(results: Sequence[PageResult]) -> List[PageReport]:
    return [result for result in results if isinstance(result, PageReport)]


def _quality(result: PageResult) -> int:
    return result.quality.overall if isinstance(result, PageReport) else 0


def average_quality(results: Sequence[PageResult]) -> float:
    """Mean overall quality where failed pages count as zero."""
    if not results:
        return 0.0
    return sum(_quality(result) for result in results) / len(results)


def find_common_keywords(results: Sequence[PageResult], limit: int = COMMON_KEYWORD_LIMIT) -> List[Keyword]:
    """Keyword counts summed over all pages, most frequent first."""
    totals: Counter = Counter()
    for report in successful(results):
        for keyword in report.keywords:
            totals[keyword.word] += keyword.count
    return [Keyword(word=word, count=count) for word, count in totals.most_common(limit)]


def compare_sentiment(results: Sequence[PageResult]) -> SentimentComparison:
    reports = successful(results)
    distribution = Counter(report.sentiment.sentiment for report in reports)
    average = sum(report.sentiment.score for report in reports) / len(reports) if reports else 0.0
    return SentimentComparison(
        average=average,
        distribution={label: distribution.get(label, 0) for label in ("positive", "neutral", "negative")},
    )


def compare_readability(results: Sequence[PageResult]) -> ReadabilityComparison:
    reports = successful(results)
    if not reports:
        return ReadabilityComparison(average_score=0.0, levels=[], average_words_per_sentence=0.0)
    return ReadabilityComparison(
        average_score=sum(r.readability.flesch_score for r in reports) / len(reports),
        levels=[r.readability.reading_level for r in reports],
        average_words_per_sentence=sum(r.readability.avg_words_per_sentence for r in reports) / len(reports),
    )


def page_weight_score(report: PageReport) -> int:
    """
    Coarse load-cost score out of 100 from document size and image count.

    Documents over 1 MB lose 30 points (over 500 KB, 15); more than 50
    images lose 20 (more than 20, 10).
    """
    score = 100
    if report.size > 1_000_000:
        score -= 30
    elif report.size > 500_000:
        score -= 15

    images = len(report.page.images)
    if images > 50:
        score -= 20
    elif images > 20:
        score -= 10
    return max(0, score)


def validate_metrics(metrics: Sequence[str]) -> None:
    unknown = [metric for metric in metrics if metric not in COMPARISON_METRICS]
    if unknown:
        raise ValueError(
            f"Unknown comparison metric(s): {', '.join(unknown)}. Choose from {', '.join(COMPARISON_METRICS)}"
        )


def metric_score(result: PageResult, metric: str) -> float:
    """Score of one page on ``metric``; failed pages score zero on every metric."""
    validate_metrics((metric,))
    if not isinstance(result, PageReport):
        return 0
    if metric == "quality":
        return result.quality.overall
    if metric == "performance":
        return page_weight_score(result)
    return result.quality.breakdown.get("seo", 0)


def best_performers(scores: Dict[str, Dict[str, float]]) -> Dict[str, Optional[str]]:
    """The highest scoring URL per metric; the earliest URL wins ties."""
    winners: Dict[str, Optional[str]] = {}
    for metric, by_url in scores.items():
        best: Optional[str] = None
        for url, score in by_url.items():
            if best is None or score > by_url[best]:
                best = url
        winners[metric] = best
    return winners


def comparison_recommendations(results: Sequence[PageResult]) -> List[str]:
    if not results:
        return []

    recommendations: List[str] = []
    if average_quality(results) < QUALITY_TARGET:
        recommendations.append("Overall quality needs improvement across all pages")

    low = sum(1 for result in results if _quality(result) < LOW_QUALITY_THRESHOLD)
    if low:
        recommendations.append(f"{low} pages need significant quality improvements")
    return recommendations
