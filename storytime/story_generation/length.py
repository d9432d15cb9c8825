"""
Word budgeting helpers that turn a requested reading time into length targets.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

WORDS_PER_MINUTE = 160
MIN_EXTRAPOLATED_WORDS = 500
MAX_EXTRAPOLATED_WORDS = 4000

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class WordTargets:
    """
    Target, minimum and maximum word counts for one story.
    """

    target: int
    min: int
    max: int

    def as_dict(self) -> dict[str, int]:
        return {"target": self.target, "min": self.min, "max": self.max}


def _round(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: int) -> int:
    return max(MIN_EXTRAPOLATED_WORDS, min(MAX_EXTRAPOLATED_WORDS, value))


def get_word_targets(length_minutes: float) -> WordTargets:
    """
    Map a requested reading time (minutes) to word-count targets.

    Short, medium and long bedtime reads use fixed tiers. Anything longer is
    extrapolated at ``WORDS_PER_MINUTE`` and clamped to a sane band.
    """
    if length_minutes <= 5:
        return WordTargets(target=825, min=700, max=950)
    if length_minutes <= 10:
        return WordTargets(target=1500, min=1300, max=1700)
    if length_minutes <= 20:
        return WordTargets(target=3000, min=2600, max=3400)

    target = _clamp(_round(length_minutes * WORDS_PER_MINUTE))
    return WordTargets(
        target=target,
        min=_clamp(_round(target * 0.85)),
        max=_clamp(_round(target * 1.15)),
    )


def word_targets_for_length(length_words: int) -> WordTargets:
    """
    Build a band around an explicit word count using the same 0.85/1.15 spread.
    """
    return WordTargets(
        target=length_words,
        min=_round(length_words * 0.85),
        max=_round(length_words * 1.15),
    )


def count_words(text: str) -> int:
    normalized = text.strip()
    if not normalized:
        return 0
    return len(_WHITESPACE.split(normalized))


def get_paragraph_guidance(length_minutes: float) -> str:
    if length_minutes <= 5:
        return "Use 8-12 short paragraphs."
    if length_minutes <= 10:
        return "Use 10-18 short paragraphs."
    if length_minutes <= 20:
        return "Use 18-30 short paragraphs."
    return "Use many short paragraphs with a clear beginning, middle, and satisfying ending."
