"""
Exception types raised by the Storytime generation core.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from storytime.story_generation.outline import SchemaIssue


class StoryGenerationError(RuntimeError):
    """
    Base class for terminal failures of a generation phase.
    """


class LLMTransportError(StoryGenerationError):
    """
    Raised when the LLM call fails or returns no content.
    """


class OutlineParseError(StoryGenerationError, ValueError):
    """
    Raised when structured model output stays invalid after the single repair pass.

    Attributes
    ----------
    stage:
        ``"syntax"`` when the text could not be read as structured data,
        ``"schema"`` when it was readable but structurally invalid.
    text:
        The offending text (the repaired payload, since that is what failed last).
    issues:
        Field-level schema issues, empty for syntax failures.
    reason:
        Human-readable summary of the failure.
    """

    def __init__(
        self,
        reason: str,
        *,
        stage: str,
        text: str,
        issues: Sequence["SchemaIssue"] = (),
    ) -> None:
        super().__init__(reason)
        self.reason = reason
        self.stage = stage
        self.text = text
        self.issues = tuple(issues)


class StoryInputError(ValueError):
    """
    Raised when caller-supplied story input is out of range.
    """
