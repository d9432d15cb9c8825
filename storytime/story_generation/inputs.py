"""
Structured representations of the story request gathered from the caller.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from storytime.common.errors import StoryInputError

from .length import WORDS_PER_MINUTE, WordTargets, get_word_targets, word_targets_for_length

MIN_LENGTH_WORDS = 120
MAX_LENGTH_WORDS = 6000
MIN_LENGTH_MINUTES = 1
MAX_LENGTH_MINUTES = 60


class AgeRange(str, Enum):
    AGES_3_4 = "3-4"
    AGES_5_6 = "5-6"
    AGES_7_8 = "7-8"
    AGES_9_10 = "9-10"


class StoryStyle(str, Enum):
    PLAIN = "Plain & Clear"
    PLAYFUL = "A Little Playful"
    POETIC = "Poetic"


class StoryPhase(str, Enum):
    OUTLINE = "outline"
    DRAFT = "draft"
    FINAL = "final"


def _coerce_age_range(value: Any) -> AgeRange:
    if isinstance(value, AgeRange):
        return value
    text = re.sub(r"^ages?\s*", "", str(value or "").strip().lower())
    text = re.sub(r"\s*(?:-|–|to)\s*", "-", text)
    try:
        return AgeRange(text)
    except ValueError as exc:
        allowed = ", ".join(item.value for item in AgeRange)
        raise StoryInputError(f"age_range must be one of {allowed}, got {value!r}.") from exc


def _coerce_style(value: Any) -> StoryStyle:
    if isinstance(value, StoryStyle):
        return value
    text = " ".join(str(value or "").split()).lower()
    for style in StoryStyle:
        if text in {style.value.lower(), style.name.lower()}:
            return style
    allowed = ", ".join(item.value for item in StoryStyle)
    raise StoryInputError(f"style must be one of {allowed}, got {value!r}.")


def _coerce_required_text(value: Any, field_name: str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise StoryInputError(f"{field_name} must be a non-empty string.")
    return text


def _lookup(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _coerce_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise StoryInputError(f"{field_name} must be an integer, got {value!r}.")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise StoryInputError(f"{field_name} must be an integer, got {value!r}.") from exc
    if not number.is_integer():
        raise StoryInputError(f"{field_name} must be a whole number, got {value!r}.")
    return int(number)


@dataclass(frozen=True)
class StructuredStoryInput:
    """
    Canonical, validated story request.

    Attributes
    ----------
    age_range:
        Audience age band; drives the sentence-length ceiling.
    main_character:
        Name of the hero of the story.
    setting:
        Where the story takes place.
    length_words:
        Requested length in words (120-6000).
    style:
        One of the three supported prose styles.
    length_minutes:
        Optional reading time the length was derived from. When present,
        ``length_words`` must equal the tier target for those minutes, and
        word targets and paragraph guidance follow the minutes tiers.
    """

    age_range: AgeRange
    main_character: str
    setting: str
    length_words: int
    style: StoryStyle
    length_minutes: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "age_range", _coerce_age_range(self.age_range))
        object.__setattr__(self, "style", _coerce_style(self.style))
        object.__setattr__(
            self, "main_character", _coerce_required_text(self.main_character, "main_character")
        )
        object.__setattr__(self, "setting", _coerce_required_text(self.setting, "setting"))

        length_words = _coerce_int(self.length_words, "length_words")
        if not MIN_LENGTH_WORDS <= length_words <= MAX_LENGTH_WORDS:
            raise StoryInputError(
                f"length_words must fall between {MIN_LENGTH_WORDS} and {MAX_LENGTH_WORDS}, "
                f"received {length_words}."
            )
        object.__setattr__(self, "length_words", length_words)

        if self.length_minutes is not None:
            minutes = _coerce_int(self.length_minutes, "length_minutes")
            if not MIN_LENGTH_MINUTES <= minutes <= MAX_LENGTH_MINUTES:
                raise StoryInputError(
                    f"length_minutes must fall between {MIN_LENGTH_MINUTES} and "
                    f"{MAX_LENGTH_MINUTES}, received {minutes}."
                )
            expected_words = get_word_targets(minutes).target
            if length_words != expected_words:
                raise StoryInputError(
                    f"length_words ({length_words}) conflicts with length_minutes ({minutes}), "
                    f"which implies {expected_words} words. Give one or make them agree."
                )
            object.__setattr__(self, "length_minutes", minutes)

    @classmethod
    def from_minutes(
        cls,
        *,
        age_range: AgeRange | str,
        main_character: str,
        setting: str,
        length_minutes: int,
        style: StoryStyle | str,
    ) -> "StructuredStoryInput":
        """
        Build an input whose word length is derived from a reading time.
        """
        minutes = _coerce_int(length_minutes, "length_minutes")
        if not MIN_LENGTH_MINUTES <= minutes <= MAX_LENGTH_MINUTES:
            raise StoryInputError(
                f"length_minutes must fall between {MIN_LENGTH_MINUTES} and "
                f"{MAX_LENGTH_MINUTES}, received {minutes}."
            )
        return cls(
            age_range=age_range,
            main_character=main_character,
            setting=setting,
            length_words=get_word_targets(minutes).target,
            style=style,
            length_minutes=minutes,
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "StructuredStoryInput":
        """
        Build an input from a dict-like object (e.g., parsed JSON/YAML).
        """
        age_range = _lookup(data, "age_range", "ageRange", "age")
        main_character = _lookup(data, "main_character", "mainCharacter", "hero")
        setting = _lookup(data, "setting")
        style = _lookup(data, "style", "tone")
        length_words = _lookup(data, "length_words", "lengthWords")
        length_minutes = _lookup(data, "length_minutes", "lengthMinutes")

        if length_words is None and length_minutes is None:
            raise StoryInputError("Story input must include 'length_words' or 'length_minutes'.")

        if length_words is None:
            return cls.from_minutes(
                age_range=age_range,
                main_character=main_character,
                setting=setting,
                length_minutes=length_minutes,
                style=style,
            )

        return cls(
            age_range=age_range,
            main_character=main_character,
            setting=setting,
            length_words=length_words,
            style=style,
            length_minutes=length_minutes,
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "age_range": self.age_range.value,
            "main_character": self.main_character,
            "setting": self.setting,
            "length_words": self.length_words,
            "style": self.style.value,
            "length_minutes": self.length_minutes,
        }


def word_targets_for_input(story_input: StructuredStoryInput) -> WordTargets:
    """
    Resolve the word budget for a request, preferring the minutes tiers when known.
    """
    if story_input.length_minutes is not None:
        return get_word_targets(story_input.length_minutes)
    return word_targets_for_length(story_input.length_words)


def reading_minutes_for_input(story_input: StructuredStoryInput) -> float:
    if story_input.length_minutes is not None:
        return float(story_input.length_minutes)
    return story_input.length_words / WORDS_PER_MINUTE
