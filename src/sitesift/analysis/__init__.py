"""Heuristic text analysis and technology detection."""

from .technology import detect_technology
from .text import analyze_readability, analyze_sentiment, detect_language, extract_keywords

__all__ = ["analyze_readability", "analyze_sentiment", "detect_language", "detect_technology", "extract_keywords"]
