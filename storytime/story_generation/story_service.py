"""
Service layer that runs each generation phase against a LiteLLM-compatible model.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import partial

from storytime.common import (
    CompletionCallable,
    StoryGenerationError,
    call_chat_completion,
    generate_text,
)

from .inputs import StructuredStoryInput
from .length import WordTargets, count_words
from .outline import (
    BEAT_SHEET_SCHEMA_DESCRIPTION,
    OUTLINE_SCHEMA_DESCRIPTION,
    BeatSheet,
    Outline,
)
from .parsing import (
    ParseResult,
    extract_labeled_story,
    parse_beat_sheet_strict,
    parse_outline_strict,
)
from .prompting import (
    DRAFT_LABEL,
    FINAL_LABEL,
    StoryPrompt,
    build_beat_sheet_prompt,
    build_draft_prompt,
    build_final_prompt,
    build_repair_prompt,
    build_scene_outline_prompt,
)

DEFAULT_MODEL = "gpt-4.1-mini"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SamplingParams:
    temperature: float
    presence_penalty: float
    frequency_penalty: float
    max_tokens: int


@dataclass(frozen=True)
class PhaseSampling:
    """
    Sampling parameters for each kind of call the pipeline makes.
    """

    outline: SamplingParams = field(default_factory=lambda: SamplingParams(0.8, 0.7, 0.7, 2200))
    draft: SamplingParams = field(default_factory=lambda: SamplingParams(0.95, 0.8, 0.8, 6000))
    final: SamplingParams = field(default_factory=lambda: SamplingParams(0.85, 0.75, 0.85, 6500))
    repair: SamplingParams = field(default_factory=lambda: SamplingParams(0.2, 0.0, 0.0, 2500))


class StoryPhaseGenerator:
    """
    Runs the outline, draft and final phases, one LLM round trip per call.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        repair_model: str | None = None,
        completion_fn: CompletionCallable | None = None,
        sampling: PhaseSampling | None = None,
    ) -> None:
        self._api_key = api_key or os.getenv("OPENAI_API_KEY") or os.getenv("LITELLM_API_KEY")
        self._model = (
            model
            or os.getenv("STORYTIME_STORY_MODEL")
            or os.getenv("LITELLM_STORY_MODEL")
            or os.getenv("LITELLM_MODEL")
            or DEFAULT_MODEL
        )
        self._repair_model = repair_model or os.getenv("STORYTIME_REPAIR_MODEL") or self._model
        self._completion_fn: CompletionCallable = completion_fn or call_chat_completion
        self._sampling = sampling or PhaseSampling()

    @property
    def model(self) -> str:
        """Return the model identifier in use."""
        return self._model

    @property
    def repair_model(self) -> str:
        return self._repair_model

    def _run(self, prompt: StoryPrompt, params: SamplingParams, *, model: str | None = None) -> str:
        return generate_text(
            system=prompt.system,
            messages=[{"role": "user", "content": prompt.user}],
            model=model or self._model,
            completion_fn=self._completion_fn,
            temperature=params.temperature,
            presence_penalty=params.presence_penalty,
            frequency_penalty=params.frequency_penalty,
            max_tokens=params.max_tokens,
            api_key=self._api_key,
        )

    def repair_structured_output(
        self,
        invalid_text: str,
        *,
        reason: str,
        schema_description: str = OUTLINE_SCHEMA_DESCRIPTION,
    ) -> str:
        """
        Ask the model once to turn ``invalid_text`` into schema-valid JSON.
        """
        prompt = build_repair_prompt(
            invalid_text,
            reason=reason,
            schema_description=schema_description,
        )
        return self._run(prompt, self._sampling.repair, model=self._repair_model)

    def generate_beat_sheet(self, story_input: StructuredStoryInput) -> ParseResult[BeatSheet]:
        raw = self._run(build_beat_sheet_prompt(story_input), self._sampling.outline)
        return parse_beat_sheet_strict(
            raw,
            repair_fn=partial(
                self.repair_structured_output,
                schema_description=BEAT_SHEET_SCHEMA_DESCRIPTION,
            ),
        )

    def generate_outline(
        self,
        story_input: StructuredStoryInput,
        beat_sheet: BeatSheet,
        targets: WordTargets,
    ) -> ParseResult[Outline]:
        prompt = build_scene_outline_prompt(story_input, beat_sheet, targets)
        raw = self._run(prompt, self._sampling.outline)
        return parse_outline_strict(
            raw,
            repair_fn=partial(
                self.repair_structured_output,
                schema_description=OUTLINE_SCHEMA_DESCRIPTION,
            ),
        )

    def generate_draft(
        self,
        story_input: StructuredStoryInput,
        outline: Outline,
        targets: WordTargets,
    ) -> str:
        """
        Produce the draft prose with its ``DRAFT_STORY:`` label removed.
        """
        raw = self._run(build_draft_prompt(story_input, outline, targets), self._sampling.draft)
        draft = extract_labeled_story(raw, DRAFT_LABEL)
        if not draft:
            raise StoryGenerationError("Draft phase returned a label but no story text.")
        logger.info("Draft phase returned %d words.", count_words(draft))
        return draft

    def generate_final(
        self,
        story_input: StructuredStoryInput,
        outline: Outline,
        draft: str,
        targets: WordTargets,
        *,
        paragraph_guidance: str,
        editor_notes: str | None = None,
    ) -> str:
        """
        Produce the polished manuscript with its ``FINAL_STORY:`` label removed.
        """
        prompt = build_final_prompt(
            story_input,
            outline,
            draft,
            targets,
            paragraph_guidance=paragraph_guidance,
            editor_notes=editor_notes,
        )
        raw = self._run(prompt, self._sampling.final)
        final = extract_labeled_story(raw, FINAL_LABEL)
        if not final:
            raise StoryGenerationError("Final phase returned a label but no story text.")
        logger.info("Final phase returned %d words.", count_words(final))
        return final
