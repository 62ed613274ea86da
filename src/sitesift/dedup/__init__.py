"""Similarity measures and duplicate detection over crawled text."""

from __future__ import annotations

from .similarity import (
    SimilarityLog,
    cosine_similarity,
    detect_duplicates,
    fingerprint,
    jaccard_similarity,
)

__all__ = ["SimilarityLog", "cosine_similarity", "detect_duplicates", "fingerprint", "jaccard_similarity"]
