"""
Tests for similarity measures, fingerprints and duplicate detection.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from sitesift.dedup.similarity import (
    SimilarityLog,
    _string_hash,
    classify,
    cosine_similarity,
    detect_duplicates,
    fingerprint,
    jaccard_similarity,
    tokenize,
)
from sitesift.protocols import DuplicateKind, SimilarityRecord

WORDS = st.sampled_from(["alpha", "beta", "gamma", "delta", "epsilon", "zeta", "eta", "theta"])
TEXTS = st.lists(WORDS, min_size=1, max_size=30).map(" ".join)

BASE_TEXT = " ".join(f"w{i}" for i in range(200))
EDITED_TEXT = " ".join(["edited"] * 5 + [f"w{i}" for i in range(5, 200)])


def record(url: str, text: str) -> SimilarityRecord:
    return SimilarityRecord(url=url, text=text)


@pytest.mark.unit
class TestMeasures:
    def test_tokenize_lowercases_and_drops_punctuation(self):
        assert tokenize("Hello, World! It's 2024.") == ["hello", "world", "it", "s", "2024"]

    def test_jaccard(self):
        assert jaccard_similarity("a b c", "b c d") == pytest.approx(0.5)
        assert jaccard_similarity("same words", "SAME words") == 1.0

    def test_jaccard_of_empty_texts_is_zero(self):
        assert jaccard_similarity("", "") == 0.0
        assert jaccard_similarity("...", "!!!") == 0.0

    def test_cosine(self):
        assert cosine_similarity("a a b", "a a b") == pytest.approx(1.0)
        assert cosine_similarity("a b", "c d") == 0.0
        assert cosine_similarity("", "anything") == 0.0

    @given(TEXTS)
    def test_cosine_of_text_with_itself_is_one(self, text):
        assert cosine_similarity(text, text) == pytest.approx(1.0)

    @given(TEXTS, TEXTS)
    def test_measures_are_symmetric_and_bounded(self, first, second):
        cosine = cosine_similarity(first, second)
        jaccard = jaccard_similarity(first, second)

        assert cosine == pytest.approx(cosine_similarity(second, first))
        assert jaccard == pytest.approx(jaccard_similarity(second, first))
        assert 0.0 <= cosine <= 1.0
        assert 0.0 <= jaccard <= 1.0


@pytest.mark.unit
class TestFingerprint:
    def test_string_hash_matches_31_multiplier_hash(self):
        assert _string_hash("") == 0
        assert _string_hash("abc") == 96354

    def test_string_hash_overflow_wraps_to_32_bits(self):
        # Wraps to exactly -2**31, whose magnitude is still reported.
        assert _string_hash("polygenelubricants") == 2**31

    def test_one_hash_per_three_word_shingle(self):
        hashes = fingerprint("one two three four five")

        assert len(hashes) == 3
        assert hashes[0] == _string_hash("one two three")
        assert fingerprint("One, two; THREE four five") == hashes

    def test_short_text_has_no_shingles(self):
        assert fingerprint("only two") == []


@pytest.mark.unit
class TestDuplicateDetection:
    def test_classification_boundary(self):
        assert classify(0.96) is DuplicateKind.EXACT
        assert classify(0.95) is DuplicateKind.NEAR_DUPLICATE

    def test_exact_and_near_duplicates_ranked(self):
        records = [
            record("https://a.test/1", BASE_TEXT),
            record("https://a.test/2", EDITED_TEXT),
            record("https://a.test/3", BASE_TEXT),
            record("https://a.test/4", "nothing in common at all"),
        ]

        pairs = detect_duplicates(records)

        assert [(p.url1, p.url2) for p in pairs] == [
            ("https://a.test/1", "https://a.test/3"),
            ("https://a.test/1", "https://a.test/2"),
            ("https://a.test/2", "https://a.test/3"),
        ]
        assert pairs[0].kind is DuplicateKind.EXACT
        assert pairs[0].similarity == 1.0
        assert pairs[1].kind is DuplicateKind.NEAR_DUPLICATE
        assert pairs[1].similarity == round(cosine_similarity(BASE_TEXT, EDITED_TEXT), 3)

    def test_threshold_is_inclusive(self):
        records = [record("u1", "a b c d"), record("u2", "a b e f")]

        assert len(detect_duplicates(records, threshold=0.5)) == 1
        assert detect_duplicates(records, threshold=0.51) == []

    @given(st.lists(TEXTS, min_size=2, max_size=5))
    def test_threshold_above_one_reports_nothing(self, texts):
        records = [record(f"u{i}", text) for i, text in enumerate(texts)]

        assert detect_duplicates(records, threshold=1.01) == []

    def test_fewer_than_two_records(self):
        assert detect_duplicates([]) == []
        assert detect_duplicates([record("u", "text")]) == []


@pytest.mark.unit
class TestSimilarityLog:
    def test_append_records_and_clear(self):
        log = SimilarityLog()
        log.append(record("u1", BASE_TEXT))
        log.append(record("u2", BASE_TEXT))

        assert len(log) == 2
        assert [r.url for r in log] == ["u1", "u2"]
        assert len(log.find_duplicates()) == 1

        snapshot = log.records()
        log.clear()
        assert len(log) == 0
        assert len(snapshot) == 2
