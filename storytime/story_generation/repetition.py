"""
Post-generation checks for repeated phrasing and duplicated paragraphs.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

REPETITION_THRESHOLD = 0.02
MIN_WORDS_FOR_TRIGRAMS = 6
MAX_TRIGRAM_EXAMPLES = 5

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_NON_WORD = re.compile(r"[^a-z0-9']")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class RepetitionReport:
    """
    Machine-checkable summary of repetition in a finished piece of prose.

    Attributes
    ----------
    trigram_repeat_ratio:
        Share of trigram positions that repeat an earlier trigram, in [0, 1].
    repeated_paragraph_count:
        Number of paragraphs that duplicate an earlier paragraph.
    repeated_trigram_examples:
        Up to five repeated trigrams, in order of first appearance.
    """

    trigram_repeat_ratio: float
    repeated_paragraph_count: int
    repeated_trigram_examples: tuple[str, ...] = field(default_factory=tuple)

    @property
    def has_problem(self) -> bool:
        return (
            self.trigram_repeat_ratio > REPETITION_THRESHOLD
            or self.repeated_paragraph_count > 0
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "trigram_repeat_ratio": round(self.trigram_repeat_ratio, 4),
            "repeated_paragraph_count": self.repeated_paragraph_count,
            "repeated_trigram_examples": list(self.repeated_trigram_examples),
            "has_problem": self.has_problem,
        }


def split_paragraphs(text: str) -> list[str]:
    normalized = text.replace("\r\n", "\n").strip()
    if not normalized:
        return []
    return [part.strip() for part in _PARAGRAPH_BREAK.split(normalized) if part.strip()]


def _normalize_paragraph(paragraph: str) -> str:
    return _WHITESPACE.sub(" ", paragraph).strip().lower()


def _tokenize_words(text: str) -> list[str]:
    words = (_NON_WORD.sub("", raw.lower()) for raw in text.split())
    return [word for word in words if word]


def _repeated_trigrams(text: str) -> tuple[float, tuple[str, ...]]:
    words = _tokenize_words(text)
    if len(words) < MIN_WORDS_FOR_TRIGRAMS:
        return 0.0, ()

    counts: Counter[str] = Counter(
        " ".join(words[index : index + 3]) for index in range(len(words) - 2)
    )
    repeats = [(trigram, count) for trigram, count in counts.items() if count >= 2]
    repeated_occurrences = sum(count - 1 for _, count in repeats)
    total = max(1, len(words) - 2)
    examples = tuple(trigram for trigram, _ in repeats[:MAX_TRIGRAM_EXAMPLES])
    return repeated_occurrences / total, examples


def _repeated_paragraph_count(text: str) -> int:
    seen: set[str] = set()
    duplicates = 0
    for paragraph in split_paragraphs(text):
        key = _normalize_paragraph(paragraph)
        if key in seen:
            duplicates += 1
        else:
            seen.add(key)
    return duplicates


def detect_repetition(text: str) -> RepetitionReport:
    """
    Measure phrase-level and paragraph-level repetition in ``text``.
    """
    ratio, examples = _repeated_trigrams(text)
    return RepetitionReport(
        trigram_repeat_ratio=ratio,
        repeated_paragraph_count=_repeated_paragraph_count(text),
        repeated_trigram_examples=examples,
    )


def cleanup_trailing_duplicate_ending_paragraphs(text: str) -> str:
    """
    Collapse a trailing run of identical closing paragraphs into one.

    Repeated paragraphs earlier in the story are left alone; they may be a refrain.
    Paragraphs are re-joined with a single blank line.
    """
    paragraphs = split_paragraphs(text)
    if len(paragraphs) < 2:
        return "\n\n".join(paragraphs)

    ending = _normalize_paragraph(paragraphs[-1])
    run_length = 1
    for paragraph in reversed(paragraphs[:-1]):
        if _normalize_paragraph(paragraph) != ending:
            break
        run_length += 1

    if run_length < 2:
        return "\n\n".join(paragraphs)

    kept = paragraphs[: len(paragraphs) - run_length] + [paragraphs[-1]]
    return "\n\n".join(kept)
