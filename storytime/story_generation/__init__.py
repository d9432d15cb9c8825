"""
Story generation utilities for the three-phase bedtime story workflow.
"""

from .inputs import (
    AgeRange,
    StoryPhase,
    StoryStyle,
    StructuredStoryInput,
    reading_minutes_for_input,
    word_targets_for_input,
)
from .length import WordTargets, count_words, get_paragraph_guidance, get_word_targets
from .outline import (
    SCENE_COUNT,
    STORY_BEATS,
    BeatSheet,
    Outline,
    OutlineCharacter,
    OutlineScene,
    SchemaIssue,
    SchemaValidation,
    StoryBeat,
    validate_beat_sheet,
    validate_outline,
)
from .parsing import ParseResult, parse_beat_sheet_strict, parse_outline_strict
from .prompting import StoryPrompt, build_phase_prompt, max_words_per_sentence
from .repetition import (
    REPETITION_THRESHOLD,
    RepetitionReport,
    cleanup_trailing_duplicate_ending_paragraphs,
    detect_repetition,
)
from .story_service import PhaseSampling, SamplingParams, StoryPhaseGenerator

__all__ = [
    "AgeRange",
    "StoryPhase",
    "StoryStyle",
    "StructuredStoryInput",
    "reading_minutes_for_input",
    "word_targets_for_input",
    "WordTargets",
    "count_words",
    "get_paragraph_guidance",
    "get_word_targets",
    "SCENE_COUNT",
    "STORY_BEATS",
    "BeatSheet",
    "Outline",
    "OutlineCharacter",
    "OutlineScene",
    "SchemaIssue",
    "SchemaValidation",
    "StoryBeat",
    "validate_beat_sheet",
    "validate_outline",
    "ParseResult",
    "parse_beat_sheet_strict",
    "parse_outline_strict",
    "StoryPrompt",
    "build_phase_prompt",
    "max_words_per_sentence",
    "REPETITION_THRESHOLD",
    "RepetitionReport",
    "cleanup_trailing_duplicate_ending_paragraphs",
    "detect_repetition",
    "PhaseSampling",
    "SamplingParams",
    "StoryPhaseGenerator",
]
