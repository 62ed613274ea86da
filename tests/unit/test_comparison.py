"""
Tests for cross-page analytics: competitor analysis, page comparison and insight.
"""

from dataclasses import replace

import pytest
from aioresponses import aioresponses

from sitesift.analysis.comparison import (
    average_quality,
    best_performers,
    compare_readability,
    compare_sentiment,
    comparison_recommendations,
    find_common_keywords,
    metric_score,
    page_weight_score,
    validate_metrics,
)
from sitesift.protocols import FailedPage, Grade, Keyword, PageReport, QualityScore, SentimentResult

from tests.helpers import html_page

BASE = "https://site.test"


def mock_page(m: aioresponses, url: str, html: str) -> None:
    m.get(url, status=200, body=html, content_type="text/html; charset=utf-8")


def scored(report: PageReport, overall: int, seo: float = 50.0) -> PageReport:
    return replace(report, quality=QualityScore(overall=overall, breakdown={"seo": seo}, grade=Grade.C))


def with_sentiment(report: PageReport, score: float, label: str) -> PageReport:
    return replace(report, sentiment=SentimentResult(score=score, sentiment=label, positive=0, negative=0, total=0))


@pytest.fixture
def page(make_report):
    def _page(path: str, body: str = "Plain words for a plain page.") -> PageReport:
        return make_report(f"{BASE}{path}", html_page(path, body))

    return _page


@pytest.mark.unit
class TestAggregates:
    def test_common_keywords_are_summed_across_pages(self, page):
        a = replace(page("/a"), keywords=[Keyword("coffee", 3), Keyword("water", 1)])
        b = replace(page("/b"), keywords=[Keyword("water", 4), Keyword("grind", 2)])

        keywords = find_common_keywords([a, FailedPage(url="x", error="down"), b])

        assert keywords == [Keyword("water", 5), Keyword("coffee", 3), Keyword("grind", 2)]

    def test_common_keywords_limit(self, page):
        report = replace(page("/a"), keywords=[Keyword(f"w{i}", 20 - i) for i in range(15)])

        assert len(find_common_keywords([report])) == 10
        assert len(find_common_keywords([report], limit=3)) == 3

    def test_failed_pages_count_as_zero_quality(self, page):
        results = [scored(page("/a"), 80), FailedPage(url=f"{BASE}/b", error="down")]

        assert average_quality(results) == 40.0
        assert average_quality([]) == 0.0

    def test_sentiment_comparison(self, page):
        results = [
            with_sentiment(page("/a"), 0.5, "positive"),
            with_sentiment(page("/b"), -0.25, "negative"),
            FailedPage(url=f"{BASE}/c", error="down"),
        ]

        comparison = compare_sentiment(results)

        assert comparison.average == 0.125
        assert comparison.distribution == {"positive": 1, "neutral": 0, "negative": 1}

    def test_comparisons_without_successful_pages(self):
        failed = [FailedPage(url=f"{BASE}/a", error="down")]

        assert compare_sentiment(failed).average == 0.0
        readability = compare_readability(failed)
        assert readability.average_score == 0.0
        assert readability.levels == []

    def test_readability_levels_follow_page_order(self, page):
        a, b = page("/a"), page("/b")

        readability = compare_readability([a, b])

        assert readability.levels == [a.readability.reading_level, b.readability.reading_level]
        assert readability.average_score == pytest.approx(
            (a.readability.flesch_score + b.readability.flesch_score) / 2
        )


@pytest.mark.unit
class TestScoring:
    @pytest.mark.parametrize(
        "size, expected",
        [(10_000, 100), (500_001, 85), (1_000_001, 70)],
    )
    def test_page_weight_by_size(self, page, size, expected):
        report = page("/a")
        report = replace(report, fetch=replace(report.fetch, size=size))

        assert page_weight_score(report) == expected

    @pytest.mark.parametrize("count, expected", [(20, 100), (21, 90), (51, 80)])
    def test_page_weight_by_image_count(self, make_report, count, expected):
        images = "".join(f'<img src="/img/{i}.png" alt="image {i}">' for i in range(count))
        report = make_report(f"{BASE}/gallery", f"<html><body>{images}</body></html>")

        assert page_weight_score(report) == expected

    def test_metric_scores(self, page):
        report = scored(page("/a"), 77, seo=64.0)

        assert metric_score(report, "quality") == 77
        assert metric_score(report, "seo") == 64.0
        assert metric_score(report, "performance") == 100

    def test_failed_page_scores_zero(self):
        failed = FailedPage(url=f"{BASE}/a", error="down")

        assert [metric_score(failed, metric) for metric in ("quality", "performance", "seo")] == [0, 0, 0]

    def test_unknown_metric_is_rejected(self):
        with pytest.raises(ValueError, match="speed"):
            validate_metrics(["quality", "speed"])

    def test_best_performer_ties_go_to_first_url(self):
        scores = {
            "quality": {"a": 70, "b": 90, "c": 90},
            "seo": {"a": 50, "b": 50},
            "performance": {},
        }

        assert best_performers(scores) == {"quality": "b", "seo": "a", "performance": None}

    def test_recommendations(self, page):
        results = [scored(page("/a"), 90), scored(page("/b"), 50), FailedPage(url=f"{BASE}/c", error="down")]

        assert comparison_recommendations(results) == [
            "Overall quality needs improvement across all pages",
            "2 pages need significant quality improvements",
        ]

    def test_no_recommendations_for_strong_pages(self, page):
        assert comparison_recommendations([scored(page("/a"), 90), scored(page("/b"), 80)]) == []
        assert comparison_recommendations([]) == []


@pytest.mark.unit
class TestCompetitorAnalysis:
    @pytest.mark.asyncio
    async def test_summarises_competing_pages(self, orchestrator, no_backoff):
        text = " ".join(f"word{i}" for i in range(50))
        urls = [f"{BASE}/x", f"{BASE}/y", f"{BASE}/blog/z", f"{BASE}/down"]
        with aioresponses() as m:
            mock_page(m, urls[0], html_page("X", text))
            mock_page(m, urls[1], html_page("X", text))
            mock_page(m, urls[2], html_page("Z", "completely different content about brewing tea"))
            m.get(urls[3], status=503, repeat=True)

            analysis = await orchestrator.analyze_competitors(urls)

        assert [result.url for result in analysis.pages] == urls
        assert isinstance(analysis.pages[3], FailedPage)
        assert [(pair.url1, pair.url2) for pair in analysis.duplicates] == [(urls[0], urls[1])]
        assert analysis.performance.requests == 4
        assert analysis.performance.failures == 1
        assert analysis.average_quality == pytest.approx(
            sum(result.quality.overall for result in analysis.pages[:3]) / 4
        )
        assert analysis.common_keywords
        assert urls[2] in analysis.url_patterns["blog"]
        assert len(analysis.readability.levels) == 3
        assert sum(analysis.sentiment.distribution.values()) == 3


@pytest.mark.unit
class TestPageComparison:
    @pytest.mark.asyncio
    async def test_scores_and_winners(self, orchestrator, sample_html, no_backoff):
        urls = [f"{BASE}/thin", f"{BASE}/guide", f"{BASE}/gone"]
        with aioresponses() as m:
            mock_page(m, urls[0], html_page("", "hi"))
            mock_page(m, urls[1], sample_html)
            m.get(urls[2], status=503, repeat=True)

            comparison = await orchestrator.compare_pages(urls)

        assert set(comparison.scores) == {"quality", "performance", "seo"}
        for metric, by_url in comparison.scores.items():
            assert list(by_url) == urls
            assert by_url[urls[2]] == 0
            assert comparison.winners[metric] == max(by_url, key=by_url.get)
        assert comparison.winners["quality"] == urls[1]
        assert len(comparison.pages) == 3

    @pytest.mark.asyncio
    async def test_selected_metrics_only(self, orchestrator):
        with aioresponses() as m:
            mock_page(m, f"{BASE}/a", html_page("A", "alpha"))

            comparison = await orchestrator.compare_pages([f"{BASE}/a"], metrics=["seo"])

        assert list(comparison.scores) == ["seo"]
        assert comparison.winners == {"seo": f"{BASE}/a"}

    @pytest.mark.asyncio
    async def test_unknown_metric_fails_before_fetching(self, orchestrator):
        with aioresponses() as m:
            with pytest.raises(ValueError):
                await orchestrator.compare_pages([f"{BASE}/a"], metrics=["speed"])

            assert not m.requests


@pytest.mark.unit
class TestInsight:
    @pytest.mark.asyncio
    async def test_headline_facts(self, orchestrator, sample_html):
        with aioresponses() as m:
            mock_page(m, f"{BASE}/coffee", sample_html)

            insight = await orchestrator.insight(f"{BASE}/coffee")

        assert insight.url == f"{BASE}/coffee"
        assert insight.status_code == 200
        assert insight.title == "Practical Guide to Brewing Better Coffee at Home"
        assert insight.description.startswith("A practical guide")
        assert insight.size == len(sample_html.encode("utf-8"))
        assert insight.image_count == 1
        assert insight.link_count == 2
        assert insight.word_count > 0
        assert insight.has_schema
        assert insight.mobile_friendly
        assert insight.has_open_graph
        assert insight.has_twitter_card
        assert 0 <= insight.quality <= 100
        assert insight.sentiment in {"positive", "neutral", "negative"}

    @pytest.mark.asyncio
    async def test_bare_page_has_no_social_or_mobile_markers(self, orchestrator):
        with aioresponses() as m:
            mock_page(m, f"{BASE}/bare", html_page("Bare", "just text"))

            insight = await orchestrator.insight(f"{BASE}/bare")

        assert not insight.has_schema
        assert not insight.mobile_friendly
        assert not insight.has_open_graph
        assert not insight.has_twitter_card
        assert insight.link_count == 0
