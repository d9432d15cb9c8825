"""
Orchestrates the full Storytime pipeline from story request to finished manuscript.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping

import yaml

from storytime.common import CompletionCallable
from storytime.story_generation import (
    BeatSheet,
    Outline,
    RepetitionReport,
    StoryPhaseGenerator,
    StructuredStoryInput,
    WordTargets,
    cleanup_trailing_duplicate_ending_paragraphs,
    count_words,
    detect_repetition,
    get_paragraph_guidance,
    reading_minutes_for_input,
    word_targets_for_input,
)

ProgressCallback = Callable[[str, dict[str, Any]], None]

OVERLENGTH_FACTOR = 1.2

logger = logging.getLogger(__name__)


@dataclass
class StoryManuscript:
    """Aggregated output of one generation run."""

    story_input: StructuredStoryInput
    word_targets: WordTargets
    beat_sheet: BeatSheet
    outline: Outline
    raw_draft: str
    draft: str
    draft_report: RepetitionReport
    final_story: str
    final_report: RepetitionReport
    warnings: list[str]

    @property
    def title(self) -> str:
        return self.outline.title

    @property
    def word_count(self) -> int:
        return count_words(self.final_story)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "story_input": self.story_input.as_dict(),
            "word_targets": self.word_targets.as_dict(),
            "word_count": self.word_count,
            "scene_count": len(self.outline.scenes),
            "beat_sheet": self.beat_sheet.model_dump(mode="json")["beats"],
            "outline": self.outline.model_dump(mode="json"),
            "raw_draft": self.raw_draft,
            "draft": self.draft,
            "draft_repetition": self.draft_report.as_dict(),
            "final_story": self.final_story,
            "final_repetition": self.final_report.as_dict(),
            "warnings": list(self.warnings),
        }

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False, allow_unicode=True)


class BedtimeStoryOrchestrator:
    """
    High-level coordinator that chains the outline, draft and final phases.
    """

    def __init__(
        self,
        *,
        phase_generator: StoryPhaseGenerator | None = None,
        model: str | None = None,
        api_key: str | None = None,
        completion_fn: CompletionCallable | None = None,
        always_polish: bool = True,
        max_edit_passes: int = 1,
    ) -> None:
        self._phases = phase_generator or StoryPhaseGenerator(
            api_key=api_key,
            model=model,
            completion_fn=completion_fn,
        )
        self._always_polish = always_polish
        self._max_edit_passes = max(0, max_edit_passes)

    @property
    def model(self) -> str:
        return self._phases.model

    def run_from_mapping(
        self,
        data: Mapping[str, Any],
        *,
        progress_callback: ProgressCallback | None = None,
    ) -> StoryManuscript:
        """
        Validate a raw request mapping and run the pipeline.
        """
        self._notify(progress_callback, "input:parsing", source="mapping")
        story_input = StructuredStoryInput.from_mapping(data)
        return self.generate(story_input, progress_callback=progress_callback)

    def run_from_file(
        self,
        input_path: Path | str,
        *,
        progress_callback: ProgressCallback | None = None,
    ) -> StoryManuscript:
        """
        Load request data from a YAML or JSON file and run the pipeline.
        """
        input_path = Path(input_path)
        self._notify(progress_callback, "input:parsing", source=str(input_path))
        story_input = StructuredStoryInput.from_mapping(load_mapping_file(input_path))
        return self.generate(story_input, progress_callback=progress_callback)

    def generate(
        self,
        story_input: StructuredStoryInput,
        *,
        progress_callback: ProgressCallback | None = None,
    ) -> StoryManuscript:
        warnings: list[str] = []
        targets = word_targets_for_input(story_input)
        paragraph_guidance = get_paragraph_guidance(reading_minutes_for_input(story_input))
        self._notify(
            progress_callback,
            "input:ready",
            main_character=story_input.main_character,
            target_words=targets.target,
        )

        self._notify(progress_callback, "beats:generating")
        beats_result = self._phases.generate_beat_sheet(story_input)
        beat_sheet = beats_result.outline
        warnings.extend(beats_result.warnings)
        self._notify(progress_callback, "beats:ready", repaired=bool(beats_result.warnings))

        self._notify(progress_callback, "outline:generating")
        outline_result = self._phases.generate_outline(story_input, beat_sheet, targets)
        outline = outline_result.outline
        warnings.extend(outline_result.warnings)
        self._notify(
            progress_callback,
            "outline:ready",
            title=outline.title,
            scene_count=len(outline.scenes),
            repaired=bool(outline_result.warnings),
        )

        self._notify(progress_callback, "draft:generating")
        raw_draft = self._phases.generate_draft(story_input, outline, targets)
        draft = cleanup_trailing_duplicate_ending_paragraphs(raw_draft)
        draft_report = detect_repetition(draft)
        self._notify(
            progress_callback,
            "draft:ready",
            word_count=count_words(draft),
            trigram_repeat_ratio=draft_report.trigram_repeat_ratio,
        )

        final_story = draft
        final_report = draft_report
        if self._always_polish or draft_report.has_problem:
            if draft_report.has_problem:
                warnings.append(_describe_repetition(draft_report))
            final_story, final_report = self._polish(
                story_input,
                outline,
                draft,
                targets,
                paragraph_guidance=paragraph_guidance,
                warnings=warnings,
                progress_callback=progress_callback,
            )

        word_count = count_words(final_story)
        if word_count < targets.min:
            warnings.append(
                f"Final story still below minimum words ({word_count} < {targets.min})."
            )
        if word_count > targets.max * OVERLENGTH_FACTOR:
            warnings.append(
                f"Final story significantly above max words ({word_count} > {targets.max})."
            )

        logger.info(
            "Story %r finished: words=%d target=%d-%d scenes=%d warnings=%d",
            outline.title,
            word_count,
            targets.min,
            targets.max,
            len(outline.scenes),
            len(warnings),
        )

        manuscript = StoryManuscript(
            story_input=story_input,
            word_targets=targets,
            beat_sheet=beat_sheet,
            outline=outline,
            raw_draft=raw_draft,
            draft=draft,
            draft_report=draft_report,
            final_story=final_story,
            final_report=final_report,
            warnings=warnings,
        )

        self._notify(
            progress_callback,
            "pipeline:complete",
            title=outline.title,
            word_count=word_count,
        )
        return manuscript

    def _polish(
        self,
        story_input: StructuredStoryInput,
        outline: Outline,
        draft: str,
        targets: WordTargets,
        *,
        paragraph_guidance: str,
        warnings: list[str],
        progress_callback: ProgressCallback | None,
    ) -> tuple[str, RepetitionReport]:
        self._notify(progress_callback, "final:generating", edit_pass=0)
        final_story = cleanup_trailing_duplicate_ending_paragraphs(
            self._phases.generate_final(
                story_input,
                outline,
                draft,
                targets,
                paragraph_guidance=paragraph_guidance,
            )
        )
        report = detect_repetition(final_story)

        for edit_pass in range(1, self._max_edit_passes + 1):
            if not report.has_problem:
                break
            warnings.append(_describe_repetition(report))
            self._notify(progress_callback, "final:generating", edit_pass=edit_pass)
            final_story = cleanup_trailing_duplicate_ending_paragraphs(
                self._phases.generate_final(
                    story_input,
                    outline,
                    final_story,
                    targets,
                    paragraph_guidance=paragraph_guidance,
                    editor_notes=_editor_notes(report),
                )
            )
            report = detect_repetition(final_story)

        if report.has_problem:
            logger.warning("Repetition remained after edit passes: %s", report.as_dict())
            warnings.append("Repetition remained after the final edit pass.")

        self._notify(
            progress_callback,
            "final:ready",
            word_count=count_words(final_story),
            trigram_repeat_ratio=report.trigram_repeat_ratio,
        )
        return final_story, report

    @staticmethod
    def _notify(
        callback: ProgressCallback | None,
        stage: str,
        **payload: Any,
    ) -> None:
        if callback is not None:
            callback(stage, payload)


def _describe_repetition(report: RepetitionReport) -> str:
    return (
        f"Repetition detected (ratio={report.trigram_repeat_ratio:.3f}, "
        f"repeatedParagraphs={report.repeated_paragraph_count})"
    )


def _editor_notes(report: RepetitionReport) -> str:
    notes = "Eliminate trigram repetition and any repeated paragraphs."
    if report.repeated_trigram_examples:
        examples = ", ".join(f'"{item}"' for item in report.repeated_trigram_examples)
        notes += f" Repeated phrases to vary: {examples}."
    return notes


def load_mapping_file(path: Path) -> Mapping[str, Any]:
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    elif suffix == ".json":
        data = json.loads(path.read_text(encoding="utf-8"))
    else:
        raise ValueError("Unsupported story input file format. Use YAML or JSON.")

    if not isinstance(data, Mapping):
        raise ValueError("Story input file must deserialize to a mapping.")
    return data
