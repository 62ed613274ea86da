"""
Heuristic text analyzers: sentiment, keywords, language and readability.

These are word-list and formula based; they are cheap signals for scoring
and comparison, not linguistic models.
"""

from __future__ import annotations

import math
import re
from collections import Counter
from typing import Dict, FrozenSet, List

from sitesift.protocols import Keyword, LanguageGuess, ReadabilityResult, SentimentResult

_WORD = re.compile(r"\b\w+\b")
_NON_WORD = re.compile(r"[^\w\s]")
_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_SYLLABLE_SUFFIX = re.compile(r"(?:[^laeiouy]es|ed|[^laeiouy]e)$")
_VOWEL_GROUP = re.compile(r"[aeiouy]{1,2}")

POSITIVE_WORDS: FrozenSet[str] = frozenset(
    {
        "good", "great", "excellent", "amazing", "wonderful", "fantastic", "love",
        "best", "perfect", "awesome", "bagus", "hebat", "mantap", "keren",
    }
)  # fmt: skip
NEGATIVE_WORDS: FrozenSet[str] = frozenset(
    {
        "bad", "terrible", "awful", "hate", "worst", "horrible", "disgusting",
        "pathetic", "useless", "disappointing", "buruk", "jelek", "parah", "mengecewakan",
    }
)  # fmt: skip

STOP_WORDS: FrozenSet[str] = frozenset(
    """
    the a an and or but in on at to for of with by is are was were be been have has had
    do does did will would should could may might must can this that these those
    yang dan atau dengan untuk dari ke di pada oleh sebagai akan adalah ada tidak juga sudah telah
    """.split()
)

LANGUAGE_MARKERS: Dict[str, FrozenSet[str]] = {
    "en": frozenset(
        """
        the and for are but not you all can had her was one our out day get has him his
        how man new now old see two who boy did its let put say she too use
        """.split()
    ),
    "id": frozenset(
        """
        dan yang ini itu dari untuk pada dengan dalam atau akan juga ada adalah oleh telah
        sudah dapat harus bisa tidak karena saat waktu tahun bulan hari jam menit sebagai
        seperti sama lain banyak semua
        """.split()
    ),
    "es": frozenset(
        """
        que de no a la el es y en lo un por qué me una te los se con para mi está si bien
        pero yo eso las sí su tu aquí
        """.split()
    ),
}
LANGUAGE_NAMES = {"en": "English", "id": "Indonesian", "es": "Spanish"}

READING_LEVELS = (
    (90, "Very Easy"),
    (80, "Easy"),
    (70, "Fairly Easy"),
    (60, "Standard"),
    (50, "Fairly Difficult"),
    (30, "Difficult"),
)


def _words(text: str) -> List[str]:
    return _WORD.findall(text.lower())


def _round_half_up(value: float, digits: int = 0) -> float:
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def analyze_sentiment(text: str) -> SentimentResult:
    words = _words(text)
    positive = sum(1 for word in words if word in POSITIVE_WORDS)
    negative = sum(1 for word in words if word in NEGATIVE_WORDS)
    raw = (positive - negative) / len(words) if words else 0.0

    if raw > 0.01:
        label = "positive"
    elif raw < -0.01:
        label = "negative"
    else:
        label = "neutral"

    return SentimentResult(
        score=max(-1.0, min(1.0, raw * 10)),
        sentiment=label,
        positive=positive,
        negative=negative,
        total=len(words),
    )


def extract_keywords(text: str, limit: int = 10) -> List[Keyword]:
    """Most frequent words longer than three characters, stop words excluded."""
    words = [
        word for word in _NON_WORD.sub("", text.lower()).split() if len(word) > 3 and word not in STOP_WORDS
    ]
    return [Keyword(word=word, count=count) for word, count in Counter(words).most_common(limit)]


def detect_language(text: str) -> LanguageGuess:
    """Guess among English, Indonesian and Spanish by marker-word hits."""
    words = _words(text)
    scores = {lang: sum(1 for word in words if word in markers) for lang, markers in LANGUAGE_MARKERS.items()}
    best = max(scores, key=lambda lang: scores[lang])

    if not words or scores[best] == 0:
        return LanguageGuess(language="unknown", confidence=0.0, full_name="Unknown")
    return LanguageGuess(
        language=best,
        confidence=scores[best] / len(words),
        full_name=LANGUAGE_NAMES[best],
    )


def count_syllables(word: str) -> int:
    word = word.lower()
    if len(word) <= 3:
        return 1
    word = _SYLLABLE_SUFFIX.sub("", word, count=1)
    if word.startswith("y"):
        word = word[1:]
    return len(_VOWEL_GROUP.findall(word)) or 1


def analyze_readability(text: str) -> ReadabilityResult:
    """Flesch reading ease with sentence and word statistics."""
    sentences = [s for s in _SENTENCE_SPLIT.split(text) if s.strip()]
    words = _WORD.findall(text)

    if not sentences or not words:
        return ReadabilityResult(
            flesch_score=0,
            reading_level="No content",
            sentences=0,
            words=0,
            avg_words_per_sentence=0,
            avg_syllables_per_word=0,
        )

    syllables = sum(count_syllables(word) for word in words)
    avg_words_per_sentence = len(words) / len(sentences)
    avg_syllables_per_word = syllables / len(words)
    flesch = 206.835 - 1.015 * avg_words_per_sentence - 84.6 * avg_syllables_per_word

    reading_level = "Very Difficult"
    for floor, label in READING_LEVELS:
        if flesch >= floor:
            reading_level = label
            break

    return ReadabilityResult(
        flesch_score=max(0, _round_half_up(flesch)),
        reading_level=reading_level,
        sentences=len(sentences),
        words=len(words),
        avg_words_per_sentence=_round_half_up(avg_words_per_sentence, 1),
        avg_syllables_per_word=_round_half_up(avg_syllables_per_word, 1),
    )
