"""
Structural contracts for the story beat sheet and narrative outline.

Validation never raises on bad data. Callers receive a :class:`SchemaValidation`
holding either the typed model or the list of field-level issues.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

SCENE_COUNT = 6

STORY_BEATS: tuple[str, ...] = (
    "Hook",
    "Goal",
    "Obstacle",
    "Attempt1",
    "Attempt2",
    "Climax + Resolution",
)

OUTLINE_TONES: tuple[str, ...] = ("calm bedtime", "silly", "adventurous")

NonBlankStr = Annotated[str, Field(min_length=1)]

ModelT = TypeVar("ModelT", bound=BaseModel)


class _StrictModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        frozen=True,
    )


class OutlineCharacter(_StrictModel):
    name: NonBlankStr
    traits: tuple[NonBlankStr, ...] = Field(..., min_length=1)
    relationship: NonBlankStr


class OutlineScene(_StrictModel):
    scene_id: NonBlankStr
    scene_goal: NonBlankStr
    new_event: NonBlankStr
    new_detail: NonBlankStr
    conflict_turn: NonBlankStr
    mini_payoff: NonBlankStr


class Outline(_StrictModel):
    """
    The validated story plan consumed by the draft and final phases.
    """

    title: str = Field(..., min_length=1, max_length=180)
    target_audience_age: NonBlankStr
    tone: Literal["calm bedtime", "silly", "adventurous"]
    characters: tuple[OutlineCharacter, ...] = Field(..., min_length=1)
    setting: NonBlankStr
    scenes: tuple[OutlineScene, ...] = Field(..., min_length=SCENE_COUNT, max_length=SCENE_COUNT)
    ending_payoff: NonBlankStr
    theme: NonBlankStr


class StoryBeat(_StrictModel):
    beat: NonBlankStr
    summary: NonBlankStr


class BeatSheet(_StrictModel):
    """
    Six narrative beats in their fixed order.
    """

    beats: tuple[StoryBeat, ...] = Field(..., min_length=SCENE_COUNT, max_length=SCENE_COUNT)

    @field_validator("beats")
    @classmethod
    def check_beat_order(cls, value: tuple[StoryBeat, ...]) -> tuple[StoryBeat, ...]:
        names = [_normalize_beat_name(item.beat) for item in value]
        expected = [_normalize_beat_name(name) for name in STORY_BEATS]
        if names != expected:
            raise ValueError(f"beats must appear in this order: {', '.join(STORY_BEATS)}")
        return tuple(
            StoryBeat(beat=canonical, summary=item.summary)
            for canonical, item in zip(STORY_BEATS, value)
        )


def _normalize_beat_name(name: str) -> str:
    return "".join(ch for ch in name.lower() if ch.isalnum())


@dataclass(frozen=True)
class SchemaIssue:
    """
    One field-level validation problem.
    """

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path or '<root>'}: {self.message}"


@dataclass(frozen=True)
class SchemaValidation(Generic[ModelT]):
    """
    Tagged validation result: ``value`` when valid, ``issues`` otherwise.
    """

    value: ModelT | None
    issues: tuple[SchemaIssue, ...] = ()

    @property
    def ok(self) -> bool:
        return self.value is not None

    def describe_issues(self) -> str:
        return " | ".join(str(issue) for issue in self.issues)


def _validate_model(model_cls: type[ModelT], data: Any) -> SchemaValidation[ModelT]:
    if not isinstance(data, dict):
        return SchemaValidation(
            value=None,
            issues=(SchemaIssue(path="", message=f"expected an object, got {type(data).__name__}"),),
        )
    try:
        return SchemaValidation(value=model_cls.model_validate(data))
    except ValidationError as exc:
        issues = tuple(
            SchemaIssue(
                path=".".join(str(part) for part in error["loc"]),
                message=error["msg"],
            )
            for error in exc.errors()
        )
        return SchemaValidation(value=None, issues=issues)


def validate_outline(data: Any) -> SchemaValidation[Outline]:
    """
    Check a parsed payload against the outline contract.
    """
    return _validate_model(Outline, data)


def validate_beat_sheet(data: Any) -> SchemaValidation[BeatSheet]:
    """
    Check a parsed payload against the beat sheet contract.

    The model may answer with a bare array of beats or wrap it under
    ``OUTLINE_BEATS`` (or ``beats``); both shapes are accepted.
    """
    if isinstance(data, list):
        data = {"beats": data}
    elif isinstance(data, dict) and len(data) == 1:
        key = next(iter(data))
        if key in {"OUTLINE_BEATS", "outline_beats"}:
            data = {"beats": data[key]}
    return _validate_model(BeatSheet, data)


def outline_to_payload(outline: Outline) -> dict[str, Any]:
    return outline.model_dump(mode="json")


OUTLINE_SCHEMA_DESCRIPTION = "\n".join(
    [
        "{",
        '  "title": string,',
        '  "target_audience_age": string,',
        '  "tone": "calm bedtime" | "silly" | "adventurous",',
        '  "characters": [{ "name": string, "traits": string[], "relationship": string }],',
        '  "setting": string,',
        f'  "scenes": [exactly {SCENE_COUNT} of {{',
        '    "scene_id": string, "scene_goal": string, "new_event": string, "new_detail": string,',
        '    "conflict_turn": string, "mini_payoff": string',
        "  }],",
        '  "ending_payoff": string,',
        '  "theme": string',
        "}",
    ]
)

BEAT_SHEET_SCHEMA_DESCRIPTION = "\n".join(
    [
        "[",
        f"  exactly {SCENE_COUNT} of {{ \"beat\": string, \"summary\": string }}",
        f"  in this order: {', '.join(STORY_BEATS)}",
        "]",
    ]
)
