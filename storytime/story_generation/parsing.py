"""
Turn raw model text into validated structured data, with a single repair pass.

The flow is a two-step state machine::

    parse -> [fail] -> repair -> parse -> [fail] -> OutlineParseError

Near-miss syntax (unquoted keys, trailing commas, markdown fences, chatter
around the payload) is tolerated before the repair callback is spent.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Generic, Protocol, TypeVar

import yaml

from storytime.common.errors import OutlineParseError

from .outline import (
    BeatSheet,
    Outline,
    SchemaValidation,
    validate_beat_sheet,
    validate_outline,
)

OUTLINE_REPAIR_WARNING = "Outline JSON was repaired after parse/validation failure."
BEAT_SHEET_REPAIR_WARNING = "Outline beats were repaired after parse/validation failure."

_FENCE = re.compile(r"^```[a-zA-Z0-9_-]*\s*|\s*```$")
_CLOSERS = {"{": "}", "[": "]"}

logger = logging.getLogger(__name__)

ValueT = TypeVar("ValueT")


class RepairCallable(Protocol):
    def __call__(self, invalid_text: str, *, reason: str) -> str: ...


class StructuredPayloadError(ValueError):
    """
    Raised when text cannot be read as a JSON-like object or array.
    """


@dataclass(frozen=True)
class ParseResult(Generic[ValueT]):
    """
    Validated structure plus non-fatal warnings.

    ``warnings`` is empty on a clean first pass and non-empty whenever the
    repair callback was used.
    """

    outline: ValueT
    warnings: tuple[str, ...] = ()


def _strip_fences(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = _FENCE.sub("", stripped).strip()
    return stripped


def _candidate_blocks(text: str, openers: str) -> list[str]:
    blocks: list[str] = []
    for opener in openers:
        end = text.rfind(_CLOSERS[opener])
        start = text.find(opener)
        while start != -1 and start < end:
            blocks.append(text[start : end + 1])
            start = text.find(opener, start + 1)
    return blocks


def load_structured_payload(raw_text: str, *, openers: str = "{[") -> Any:
    """
    Read a JSON object/array from model output, tolerating common near-misses.

    Strict JSON is tried first, then every span that opens with one of
    ``openers`` and runs to the last matching closer, so bracketed chatter
    ahead of the payload is skipped. The last fallback reads those spans as
    YAML flow collections, which accepts unquoted keys and trailing commas.
    """
    text = _strip_fences(raw_text)
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = None
    if isinstance(data, (dict, list)):
        return data

    candidates = _candidate_blocks(text, openers)
    if not candidates:
        raise StructuredPayloadError("No JSON object or array found in model output.")

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, (dict, list)):
            return data

    error: yaml.YAMLError | None = None
    for candidate in candidates:
        try:
            data = yaml.safe_load(candidate.expandtabs(2))
        except yaml.YAMLError as exc:
            error = error or exc
            continue
        if isinstance(data, (dict, list)):
            return data

    if error is not None:
        raise StructuredPayloadError(f"Model output is not well-formed JSON: {error}") from error
    raise StructuredPayloadError("Model output did not contain a JSON object or array.")


def _attempt(
    text: str,
    validator: Callable[[Any], SchemaValidation[ValueT]],
    openers: str,
) -> tuple[SchemaValidation[ValueT] | None, str]:
    try:
        data = load_structured_payload(text, openers=openers)
    except StructuredPayloadError as exc:
        return None, f"Syntax error: {exc}"

    validation = validator(data)
    if validation.ok:
        return validation, ""
    return validation, f"Schema validation failed: {validation.describe_issues()}"


def parse_with_single_repair(
    raw_text: str,
    *,
    validator: Callable[[Any], SchemaValidation[ValueT]],
    repair_fn: RepairCallable,
    repair_warning: str,
    label: str = "outline",
    openers: str = "{[",
) -> ParseResult[ValueT]:
    """
    Validate ``raw_text``; on failure call ``repair_fn`` once and validate its answer.
    """
    validation, reason = _attempt(raw_text, validator, openers)
    if validation is not None and validation.ok:
        return ParseResult(outline=validation.value)

    logger.warning("Requesting %s repair: %s", label, reason)
    repaired_text = repair_fn(raw_text, reason=reason)

    repaired, repaired_reason = _attempt(repaired_text, validator, openers)
    if repaired is None:
        raise OutlineParseError(
            f"{label.capitalize()} repair output is still not well-formed: {repaired_reason}",
            stage="syntax",
            text=repaired_text,
        )
    if not repaired.ok:
        raise OutlineParseError(
            f"{label.capitalize()} JSON repair failed schema validation: {repaired.describe_issues()}",
            stage="schema",
            text=repaired_text,
            issues=repaired.issues,
        )

    return ParseResult(outline=repaired.value, warnings=(repair_warning,))


def parse_outline_strict(raw_text: str, *, repair_fn: RepairCallable) -> ParseResult[Outline]:
    """
    Parse and validate the scene outline, repairing it at most once.
    """
    return parse_with_single_repair(
        raw_text,
        validator=validate_outline,
        repair_fn=repair_fn,
        repair_warning=OUTLINE_REPAIR_WARNING,
        label="outline",
        openers="{",
    )


def parse_beat_sheet_strict(raw_text: str, *, repair_fn: RepairCallable) -> ParseResult[BeatSheet]:
    """
    Parse and validate the six outline beats, repairing them at most once.
    """
    return parse_with_single_repair(
        raw_text,
        validator=validate_beat_sheet,
        repair_fn=repair_fn,
        repair_warning=BEAT_SHEET_REPAIR_WARNING,
        label="beat sheet",
        openers="[{",
    )


def extract_labeled_story(text: str, label: str) -> str:
    """
    Strip a leading phase label (e.g. ``DRAFT_STORY:``) and markdown fences from prose.
    """
    body = _strip_fences(text.replace("\r\n", "\n"))
    prefix = re.compile(rf"^\s*\**{re.escape(label)}\**\s*", re.IGNORECASE)
    return prefix.sub("", body, count=1).strip()
