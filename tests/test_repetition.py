import pytest

from storytime.story_generation.repetition import (
    REPETITION_THRESHOLD,
    cleanup_trailing_duplicate_ending_paragraphs,
    detect_repetition,
    split_paragraphs,
)

ENDING = "At home, everyone curled under warm blankets and felt proud of their teamwork."


def test_golden_sample_stays_under_threshold(golden_story):
    report = detect_repetition(golden_story)

    assert report.trigram_repeat_ratio <= REPETITION_THRESHOLD
    assert report.repeated_paragraph_count == 0
    assert not report.has_problem


def test_repetitive_text_is_flagged(repetitive_story):
    report = detect_repetition(repetitive_story)

    assert report.has_problem
    assert report.trigram_repeat_ratio > 0
    assert report.repeated_paragraph_count == 2
    assert report.repeated_trigram_examples[0] == "milo ran through"
    assert len(report.repeated_trigram_examples) <= 5


def test_varied_prose_passes():
    varied = "\n\n".join(
        [
            "At dusk, the window glowed like honey and Milo noticed a folded map.",
            'Nana June touched the paper and laughed softly, "This looks like a moonlight puzzle."',
            "They followed the silver path past sleepy flowers and listened for the gentle river.",
        ]
    )
    report = detect_repetition(varied)

    assert report.has_problem is False
    assert report.as_dict()["repeated_trigram_examples"] == []


def test_trigram_ratio_counts_extra_occurrences():
    # trigrams: abc, bca, cab, abc -> one extra occurrence in four positions
    report = detect_repetition("a b c a b c")
    assert report.trigram_repeat_ratio == pytest.approx(0.25)


def test_short_text_has_zero_ratio():
    assert detect_repetition("the the the").trigram_repeat_ratio == 0.0
    assert detect_repetition("").repeated_paragraph_count == 0


def test_paragraph_comparison_ignores_case_and_spacing():
    text = "The moon rose.\n\nthe   MOON rose.\n\nA new day."
    assert detect_repetition(text).repeated_paragraph_count == 1


def test_split_paragraphs_handles_crlf_and_blank_runs():
    text = "One.\r\n\r\nTwo.\n   \n\nThree."
    assert split_paragraphs(text) == ["One.", "Two.", "Three."]


def test_cleanup_collapses_trailing_duplicate_run():
    text = "\n\n".join(
        [
            "Milo and Nana followed the lantern path through the quiet garden.",
            "They solved each clue by listening, sharing, and being patient.",
            ENDING,
            ENDING,
            ENDING,
        ]
    )

    cleaned = cleanup_trailing_duplicate_ending_paragraphs(text)
    paragraphs = split_paragraphs(cleaned)

    assert len(paragraphs) == 3
    assert paragraphs[2] == ENDING
    assert cleanup_trailing_duplicate_ending_paragraphs(cleaned) == cleaned


def test_cleanup_leaves_mid_story_refrain_alone():
    text = "\n\n".join(["Hush now.", "The owl sang.", "The owl sang.", "Goodnight, moon."])
    assert cleanup_trailing_duplicate_ending_paragraphs(text) == text


def test_cleanup_treats_near_identical_endings_as_duplicates():
    text = "Start.\n\nThe End.\n\n  the end.  "
    assert cleanup_trailing_duplicate_ending_paragraphs(text) == "Start.\n\nthe end."


@pytest.mark.parametrize("text", ["", "Only one paragraph."])
def test_cleanup_on_trivial_input(text):
    assert cleanup_trailing_duplicate_ending_paragraphs(text) == text
