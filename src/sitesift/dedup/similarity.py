"""
Text similarity measures and pairwise duplicate detection.

All measures work on lower-cased word tokens (``\\b\\w+\\b``). Duplicate
detection compares every unordered pair of records with cosine similarity,
which is quadratic in the number of records and meant for the modest page
sets a single crawl produces.
"""

from __future__ import annotations

import math
import re
from collections import Counter
from itertools import combinations
from typing import Iterable, List, Sequence

import structlog

from sitesift.observability.metrics import METRICS
from sitesift.protocols import DuplicateKind, DuplicatePair, SimilarityRecord

logger = structlog.get_logger(__name__)

_WORD = re.compile(r"\b\w+\b")

DEFAULT_THRESHOLD = 0.8
EXACT_THRESHOLD = 0.95
SHINGLE_SIZE = 3


def tokenize(text: str) -> List[str]:
    return _WORD.findall(text.lower())


def jaccard_similarity(text1: str, text2: str) -> float:
    """|A ∩ B| / |A ∪ B| over word sets; 0.0 when both texts have no words."""
    words1 = set(tokenize(text1))
    words2 = set(tokenize(text2))
    union = words1 | words2
    if not union:
        return 0.0
    return len(words1 & words2) / len(union)


def cosine_similarity(text1: str, text2: str) -> float:
    """Cosine of the term-frequency vectors; 0.0 when either text has no words."""
    freq1 = Counter(tokenize(text1))
    freq2 = Counter(tokenize(text2))

    magnitude1 = math.sqrt(sum(count * count for count in freq1.values()))
    magnitude2 = math.sqrt(sum(count * count for count in freq2.values()))
    if magnitude1 == 0 or magnitude2 == 0:
        return 0.0

    dot_product = sum(count * freq2[word] for word, count in freq1.items())
    return min(1.0, dot_product / (magnitude1 * magnitude2))


def _string_hash(value: str) -> int:
    h = 0
    for char in value:
        h = (h * 31 + ord(char)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def fingerprint(text: str) -> List[int]:
    """Hashes of every overlapping 3-word shingle, in text order."""
    words = tokenize(text)
    shingles = (" ".join(words[i : i + SHINGLE_SIZE]) for i in range(len(words) - SHINGLE_SIZE + 1))
    return [_string_hash(shingle) for shingle in shingles]


def classify(similarity: float) -> DuplicateKind:
    return DuplicateKind.EXACT if similarity > EXACT_THRESHOLD else DuplicateKind.NEAR_DUPLICATE


def detect_duplicates(
    records: Sequence[SimilarityRecord],
    threshold: float = DEFAULT_THRESHOLD,
) -> List[DuplicatePair]:
    """
    Report every pair of records whose cosine similarity reaches ``threshold``.

    Pairs are ranked by similarity, highest first; the reported similarity is
    rounded to three decimals while classification uses the exact value.
    """
    pairs: List[DuplicatePair] = []
    for first, second in combinations(records, 2):
        similarity = cosine_similarity(first.text, second.text)
        if similarity >= threshold:
            kind = classify(similarity)
            pairs.append(
                DuplicatePair(
                    url1=first.url,
                    url2=second.url,
                    similarity=round(similarity, 3),
                    kind=kind,
                )
            )
            METRICS["duplicates_found_total"].labels(kind=kind.value).inc()

    pairs.sort(key=lambda pair: pair.similarity, reverse=True)
    logger.debug("Duplicate detection finished", records=len(records), pairs=len(pairs), threshold=threshold)
    return pairs


class SimilarityLog:
    """Append-only log of crawled page texts, cleared only explicitly."""

    def __init__(self, records: Iterable[SimilarityRecord] = ()):
        self._records: List[SimilarityRecord] = list(records)

    def append(self, record: SimilarityRecord) -> None:
        self._records.append(record)

    def records(self) -> List[SimilarityRecord]:
        return list(self._records)

    def clear(self) -> None:
        self._records.clear()

    def find_duplicates(self, threshold: float = DEFAULT_THRESHOLD) -> List[DuplicatePair]:
        return detect_duplicates(self._records, threshold)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(list(self._records))
