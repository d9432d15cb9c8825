"""
Prompt construction utilities for the three-phase bedtime story workflow.
"""

from __future__ import annotations

import json
from dataclasses import dataclass

from .inputs import AgeRange, StoryPhase, StoryStyle, StructuredStoryInput
from .length import WordTargets
from .outline import (
    OUTLINE_TONES,
    SCENE_COUNT,
    STORY_BEATS,
    BeatSheet,
    Outline,
    outline_to_payload,
)

DRAFT_LABEL = "DRAFT_STORY:"
FINAL_LABEL = "FINAL_STORY:"

_MAX_WORDS_PER_SENTENCE: dict[AgeRange, int] = {
    AgeRange.AGES_3_4: 12,
    AgeRange.AGES_5_6: 16,
    AgeRange.AGES_7_8: 20,
    AgeRange.AGES_9_10: 24,
}

_STYLE_RULES: dict[StoryStyle, str] = {
    StoryStyle.PLAIN: "- Style: Plain & Clear. Avoid alliteration and poetic devices.",
    StoryStyle.PLAYFUL: (
        "- Style: A Little Playful. Occasional fun language is allowed, but avoid overuse."
    ),
    StoryStyle.POETIC: (
        "- Style: Poetic. Allow only light alliteration, max 1 cluster per 200 words."
    ),
}

_TONE_GUIDANCE: dict[str, str] = {
    "calm bedtime": "calm bedtime: soothing, safe, gentle emotional arc",
    "silly": "silly: playful, funny, kind",
    "adventurous": "adventurous: exciting but kid-safe and not scary",
}


@dataclass(frozen=True)
class StoryPrompt:
    """
    Container for the system and user prompts passed to the LLM.
    """

    system: str
    user: str


def max_words_per_sentence(age_range: AgeRange) -> int:
    return _MAX_WORDS_PER_SENTENCE[AgeRange(age_range)]


def _base_rules_block(story_input: StructuredStoryInput) -> str:
    sentence_max = max_words_per_sentence(story_input.age_range)
    return "\n".join(
        [
            "You are a children's story generation assistant.",
            "Follow the rules exactly and produce structured outputs.",
            "",
            "INPUT VARIABLES:",
            f"- AGE_RANGE: {story_input.age_range.value}",
            f"- MAIN_CHARACTER: {story_input.main_character}",
            f"- SETTING: {story_input.setting}",
            f"- LENGTH_WORDS: ~{story_input.length_words}",
            f"- STYLE: {story_input.style.value}",
            "",
            "GLOBAL RULES:",
            "- Story must include clear goal, obstacle, and satisfying resolution.",
            "- Tie up every introduced element by the end.",
            f"- Maximum {sentence_max} words per sentence.",
            "- Keep vocabulary age-appropriate.",
            "- No semicolons. Minimal commas.",
            "- Keep content safe and kid-appropriate.",
        ]
    )


def _phase_rules(phase: StoryPhase) -> str:
    if phase is StoryPhase.OUTLINE:
        order = ", ".join(f"{index}) {beat}" for index, beat in enumerate(STORY_BEATS, start=1))
        return "\n".join(
            [
                "PHASE 1 - OUTLINE_BEATS (JSON):",
                "- Output valid JSON only.",
                f"- Output a single top-level array of exactly {SCENE_COUNT} objects.",
                "- Beats must be in this exact order:",
                f"  {order}",
                '- Each object must include keys: "beat", "summary".',
                "- No markdown fences. No commentary.",
            ]
        )

    if phase is StoryPhase.DRAFT:
        return "\n".join(
            [
                "PHASE 2 - DRAFT_STORY:",
                f'- Output must start with the label exactly: "{DRAFT_LABEL}"',
                f"- Write one paragraph per beat in order ({SCENE_COUNT} paragraphs total).",
                "- Use simple clear prose matching the age range.",
                "- Keep total length near LENGTH_WORDS.",
                "- Output only the DRAFT_STORY phase content.",
            ]
        )

    return "\n".join(
        [
            "PHASE 3 - FINAL_STORY:",
            f'- Output must start with the label exactly: "{FINAL_LABEL}"',
            "- Polish the draft while preserving plot and structure.",
            "- Reduce repetition, improve rhythm, and keep clarity for the age range.",
            "- Keep all plot threads resolved.",
            "- Output only the FINAL_STORY phase content.",
        ]
    )


def build_phase_prompt(story_input: StructuredStoryInput, phase: StoryPhase | str) -> str:
    """
    Build the instruction text for one phase of the generation run.
    """
    return "\n".join(
        [
            _base_rules_block(story_input),
            _STYLE_RULES[story_input.style],
            "",
            _phase_rules(StoryPhase(phase)),
        ]
    )


def _outline_json(outline: Outline) -> str:
    return json.dumps(outline_to_payload(outline), ensure_ascii=False)


def build_beat_sheet_prompt(story_input: StructuredStoryInput) -> StoryPrompt:
    user_prompt = (
        f"Plan a bedtime story starring {story_input.main_character} in {story_input.setting}.\n"
        f"Return the {SCENE_COUNT} OUTLINE_BEATS now."
    )
    return StoryPrompt(system=build_phase_prompt(story_input, StoryPhase.OUTLINE), user=user_prompt)


def build_scene_outline_prompt(
    story_input: StructuredStoryInput,
    beat_sheet: BeatSheet,
    targets: WordTargets,
) -> StoryPrompt:
    """
    Ask the model to expand the approved beats into the full outline object.
    """
    beats = "\n".join(
        f"{index}) {item.beat}: {item.summary}"
        for index, item in enumerate(beat_sheet.beats, start=1)
    )
    tones = " | ".join(f'"{tone}"' for tone in OUTLINE_TONES)

    system_prompt = (
        "You are an expert children's story architect. "
        "Output strictly valid JSON only, no markdown."
    )

    user_prompt = "\n".join(
        [
            "Create a coherent children's story outline from these approved beats:",
            beats,
            "",
            f"Audience: ages {story_input.age_range.value}.",
            f"Main character: {story_input.main_character}.",
            f"Setting: {story_input.setting}.",
            f"Style: {story_input.style.value}.",
            f"Planned length: {targets.min}-{targets.max} words.",
            f"Create exactly {SCENE_COUNT} scenes, one per beat, in beat order.",
            "Each scene must include one genuinely new event and one new sensory detail.",
            "conflict_turn MUST NOT be empty.",
            "If a scene has no conflict, write a gentle micro-conflict "
            "(example: 'A small challenge arises, so they pause and solve it together.').",
            f"tone must be one of: {tones}.",
            "Output ONLY JSON. No markdown fences. No commentary.",
            "All keys must be double-quoted. No trailing commas. No comments.",
            "Output JSON only with keys:",
            "title, target_audience_age, tone, characters, setting, scenes, ending_payoff, theme",
            "Character keys: name, traits, relationship",
            "Scene keys: scene_id, scene_goal, new_event, new_detail, conflict_turn, mini_payoff",
        ]
    )

    return StoryPrompt(system=system_prompt, user=user_prompt)


def build_draft_prompt(
    story_input: StructuredStoryInput,
    outline: Outline,
    targets: WordTargets,
) -> StoryPrompt:
    per_scene_max = max(90, targets.max // len(outline.scenes))
    sentence_limit = max_words_per_sentence(story_input.age_range)

    user_prompt = "\n".join(
        [
            "Write the full story from this outline.",
            f"Required word count: between {targets.min} and {targets.max} words. "
            f"Never fewer than {targets.min}.",
            f"Per scene max: about {per_scene_max} words.",
            f"Sentence limit: keep every sentence at or below {sentence_limit} words.",
            f"Tone guidance: {_TONE_GUIDANCE[outline.tone]}.",
            "For EACH scene include:",
            "- one new event",
            "- one new sensory detail",
            "- one line of dialogue",
            "No bullet lists. Narrative prose only.",
            "Do not reuse any sentence verbatim.",
            "Avoid repetitive openers like 'and then' or repeated catchphrases.",
            "Finish with an emotionally satisfying payoff and calm closing beat.",
            "Outline JSON:",
            _outline_json(outline),
        ]
    )

    return StoryPrompt(system=build_phase_prompt(story_input, StoryPhase.DRAFT), user=user_prompt)


def build_final_prompt(
    story_input: StructuredStoryInput,
    outline: Outline,
    draft: str,
    targets: WordTargets,
    *,
    paragraph_guidance: str,
    editor_notes: str | None = None,
) -> StoryPrompt:
    lines = [
        "You are editing a children's story for quality.",
        f"Target words: {targets.min}-{targets.max}.",
        f"Paragraphs: {paragraph_guidance}",
        "Rewrite rules:",
        "- preserve core plot and ending payoff from the outline",
        "- reduce repeated phrases and vary sentence openings",
        "- no scary violence, no gore, no explicit content",
        "- narrative prose only",
        "- do NOT add filler to reach length",
        "- ensure the ending paragraph is unique and appears exactly once",
    ]
    if editor_notes:
        lines.append(f"Additional fix: {editor_notes}")
    lines.extend(["Outline JSON:", _outline_json(outline), "Draft story:", draft])

    return StoryPrompt(
        system=build_phase_prompt(story_input, StoryPhase.FINAL),
        user="\n".join(lines),
    )


def build_repair_prompt(invalid_text: str, *, reason: str, schema_description: str) -> StoryPrompt:
    """
    Build the one-shot request asking the model to fix its own structured output.
    """
    user_prompt = "\n".join(
        [
            "Fix this into valid JSON that matches the schema exactly.",
            "Output ONLY JSON.",
            "Preserve the existing structure and values whenever possible.",
            "Only fill or correct missing/empty required fields; do not invent unrelated new content.",
            "Requirements:",
            "- double-quoted keys and string values",
            "- no trailing commas",
            "- no comments",
            "- no markdown fences",
            "",
            f"Reason for repair: {reason}",
            "",
            "Schema:",
            schema_description,
            "",
            "Invalid input:",
            invalid_text,
        ]
    )
    return StoryPrompt(system="You are a JSON repair tool.", user=user_prompt)
