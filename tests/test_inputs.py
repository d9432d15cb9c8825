import pytest

from storytime.common import StoryInputError
from storytime.story_generation import (
    AgeRange,
    StoryStyle,
    StructuredStoryInput,
    WordTargets,
    reading_minutes_for_input,
    word_targets_for_input,
)


def _request(**overrides):
    data = {
        "age_range": "5-6",
        "main_character": "Milo",
        "setting": "Moonlight Meadow",
        "length_words": 800,
        "style": "Plain & Clear",
    }
    data.update(overrides)
    return data


def test_from_mapping_normalizes_enum_spelling():
    story_input = StructuredStoryInput.from_mapping(
        _request(age_range="Ages 7 to 8", style="a little playful")
    )
    assert story_input.age_range is AgeRange.AGES_7_8
    assert story_input.style is StoryStyle.PLAYFUL
    assert story_input.length_minutes is None


def test_from_mapping_accepts_camel_case_keys():
    story_input = StructuredStoryInput.from_mapping(
        {
            "ageRange": "3–4",
            "mainCharacter": "  Ari  ",
            "setting": "Willow Hill",
            "lengthWords": "600",
            "style": "POETIC",
        }
    )
    assert story_input.age_range is AgeRange.AGES_3_4
    assert story_input.main_character == "Ari"
    assert story_input.length_words == 600
    assert story_input.style is StoryStyle.POETIC


def test_minutes_only_request_derives_length_from_tiers():
    data = _request()
    del data["length_words"]
    data["length_minutes"] = 8

    story_input = StructuredStoryInput.from_mapping(data)

    assert story_input.length_words == 1500
    assert story_input.length_minutes == 8
    assert word_targets_for_input(story_input) == WordTargets(1500, 1300, 1700)
    assert reading_minutes_for_input(story_input) == 8.0


def test_word_driven_request_uses_band_around_length():
    story_input = StructuredStoryInput.from_mapping(_request(length_words=1000))
    assert word_targets_for_input(story_input) == WordTargets(1000, 850, 1150)
    assert reading_minutes_for_input(story_input) == pytest.approx(6.25)


@pytest.mark.parametrize(
    "overrides",
    [
        {"age_range": "11-12"},
        {"style": "Gothic"},
        {"main_character": "   "},
        {"setting": None},
        {"length_words": 50},
        {"length_words": 7000},
        {"length_words": 500.5},
        {"length_words": True},
        {"length_words": "lots"},
        {"length_minutes": 90},
    ],
)
def test_invalid_requests_are_rejected(overrides):
    with pytest.raises(StoryInputError):
        StructuredStoryInput.from_mapping(_request(**overrides))


def test_missing_length_is_rejected():
    data = _request()
    del data["length_words"]
    with pytest.raises(StoryInputError, match="length_words"):
        StructuredStoryInput.from_mapping(data)


def test_input_errors_are_value_errors():
    with pytest.raises(ValueError):
        StructuredStoryInput.from_minutes(
            age_range="5-6",
            main_character="Milo",
            setting="Meadow",
            length_minutes=0,
            style="Poetic",
        )


def test_as_dict_uses_display_values(story_input):
    assert story_input.as_dict() == {
        "age_range": "5-6",
        "main_character": "Milo",
        "setting": "Moonlight Meadow",
        "length_words": 800,
        "style": "Plain & Clear",
        "length_minutes": None,
    }


def test_conflicting_words_and_minutes_are_rejected():
    with pytest.raises(StoryInputError, match="conflicts with length_minutes"):
        StructuredStoryInput.from_mapping(_request(length_words=400, length_minutes=15))


def test_agreeing_words_and_minutes_are_accepted():
    story_input = StructuredStoryInput.from_mapping(_request(length_words=3000, length_minutes=15))
    assert word_targets_for_input(story_input) == WordTargets(3000, 2600, 3400)


@pytest.mark.parametrize("key", ["length_words", "lengthWords"])
def test_zero_length_reports_range_error(key):
    data = _request()
    del data["length_words"]
    data[key] = 0
    with pytest.raises(StoryInputError, match="must fall between"):
        StructuredStoryInput.from_mapping(data)
