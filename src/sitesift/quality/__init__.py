"""Page quality assessment and scoring."""

from __future__ import annotations

from .scorer import ALL_DIMENSIONS, QualityScorer, Score, grade_for

__all__ = ["ALL_DIMENSIONS", "QualityScorer", "Score", "grade_for"]
