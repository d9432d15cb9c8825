from __future__ import annotations

import copy
import json
from typing import Any

import pytest

from storytime.common import ChatResult
from storytime.story_generation import STORY_BEATS, StructuredStoryInput

_SCENES = [
    {
        "scene_id": "s1",
        "scene_goal": "find clue",
        "new_event": "a map appears",
        "new_detail": "it smells like pine",
        "conflict_turn": "the wind snatches a corner",
        "mini_payoff": "they hold it together",
    },
    {
        "scene_id": "s2",
        "scene_goal": "cross bridge",
        "new_event": "a lantern lights itself",
        "new_detail": "water sounds soft",
        "conflict_turn": "bridge creaks",
        "mini_payoff": "they cross safely",
    },
    {
        "scene_id": "s3",
        "scene_goal": "ask for help",
        "new_event": "an owl gives directions",
        "new_detail": "feathers glow silver",
        "conflict_turn": "path splits",
        "mini_payoff": "they choose the north trail",
    },
    {
        "scene_id": "s4",
        "scene_goal": "solve riddle",
        "new_event": "stones whisper clues",
        "new_detail": "air feels warm",
        "conflict_turn": "answer seems wrong",
        "mini_payoff": "Nana spots the pattern",
    },
    {
        "scene_id": "s5",
        "scene_goal": "find final key",
        "new_event": "key appears under moss",
        "new_detail": "moss is velvet-soft",
        "conflict_turn": "it slips away",
        "mini_payoff": "Milo catches it",
    },
    {
        "scene_id": "s6",
        "scene_goal": "return home",
        "new_event": "door opens at dawn",
        "new_detail": "kitchen smells like toast",
        "conflict_turn": "they fear they are late",
        "mini_payoff": "everyone is waiting with smiles",
    },
]

OUTLINE_PAYLOAD: dict[str, Any] = {
    "title": "The Night Compass",
    "target_audience_age": "ages 4-7",
    "tone": "calm bedtime",
    "characters": [{"name": "Milo", "traits": ["curious", "kind"], "relationship": "brother"}],
    "setting": "Moonlight Meadow",
    "scenes": _SCENES,
    "ending_payoff": "The family laughs and settles into calm sleep.",
    "theme": "Kind teamwork brings gentle courage.",
}

BEATS_PAYLOAD: list[dict[str, str]] = [
    {"beat": beat, "summary": summary}
    for beat, summary in zip(
        STORY_BEATS,
        [
            "Milo finds a humming brass compass on the windowsill.",
            "He wants to follow it to the moonlight meadow and back before dawn.",
            "A fog rolls over the garden path and hides the way.",
            "Milo asks a sleepy owl, who points toward the old bridge.",
            "Nana June helps him read the riddle carved on the stones.",
            "They find the last clue, come home, and fall asleep smiling.",
        ],
    )
]

GOLDEN_STORY = "\n\n".join(
    [
        "Moonlight spilled across the floor as Milo opened the tiny brass compass and heard it hum.",
        'Nana June smiled and whispered, "Let the gentle clues guide us, one step at a time."',
        "Outside, the garden smelled like warm mint, and each lantern flicker pointed toward a new surprise.",
        "They crossed a wooden bridge, solved a riddle about kindness, and tucked the answer in their pockets.",
        "By the time the stars softened, they found the last clue and carried it home in grateful silence.",
        "Under blankets, they retold the adventure and drifted to sleep with calm hearts and bright dreams.",
    ]
)

REPETITIVE_STORY = "\n\n".join(
    ["Milo ran through the woods and then he ran through the woods again."] * 3
)


class ScriptedCompletion:
    """
    Completion callable that replays canned replies and records every call.
    """

    def __init__(self, replies: list[str]) -> None:
        self._replies = list(replies)
        self.calls: list[dict[str, Any]] = []

    def __call__(self, **kwargs: Any) -> ChatResult:
        self.calls.append(kwargs)
        if not self._replies:
            raise AssertionError("Unexpected extra LLM call.")
        text = self._replies.pop(0)
        return ChatResult(text=text, raw={"text": text})

    @property
    def remaining(self) -> int:
        return len(self._replies)

    def user_prompt(self, index: int) -> str:
        return self.calls[index]["messages"][-1]["content"]

    def system_prompt(self, index: int) -> str:
        return self.calls[index]["messages"][0]["content"]


@pytest.fixture
def outline_payload() -> dict[str, Any]:
    return copy.deepcopy(OUTLINE_PAYLOAD)


@pytest.fixture
def outline_json(outline_payload: dict[str, Any]) -> str:
    return json.dumps(outline_payload)


@pytest.fixture
def beats_payload() -> list[dict[str, str]]:
    return copy.deepcopy(BEATS_PAYLOAD)


@pytest.fixture
def story_input() -> StructuredStoryInput:
    return StructuredStoryInput(
        age_range="5-6",
        main_character="Milo",
        setting="Moonlight Meadow",
        length_words=800,
        style="Plain & Clear",
    )


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "STORYTIME_STORY_MODEL",
        "LITELLM_STORY_MODEL",
        "LITELLM_MODEL",
        "STORYTIME_REPAIR_MODEL",
        "OPENAI_API_KEY",
        "LITELLM_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def golden_story() -> str:
    return GOLDEN_STORY


@pytest.fixture
def repetitive_story() -> str:
    return REPETITIVE_STORY


@pytest.fixture
def scripted_completion() -> type[ScriptedCompletion]:
    return ScriptedCompletion
