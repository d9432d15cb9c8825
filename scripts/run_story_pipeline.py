"""
CLI example to run the complete Storytime pipeline end-to-end.

Usage:
    python scripts/run_story_pipeline.py \
        --input story_request.yaml \
        --output manuscript.yaml

Environment variables:
    OPENAI_API_KEY / LITELLM_API_KEY  - credentials forwarded to LiteLLM
    STORYTIME_STORY_MODEL             - optional model override
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict

from tqdm.auto import tqdm

# Ensure project root is on the Python path when running as a script.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from storytime import BedtimeStoryOrchestrator
from storytime.common import StoryGenerationError, StoryInputError

_STAGES = ("beats", "outline", "draft", "final")


class ProgressTracker:
    """
    Provides user-friendly command-line progress updates for the Storytime pipeline.
    """

    def __init__(self) -> None:
        self._bar: tqdm | None = None
        self.phases_done = 0

    def __call__(self, stage: str, payload: Dict[str, Any]) -> None:
        match stage:
            case "input:parsing":
                source = payload.get("source")
                self._write("Loading story request" + (f" from {source!s}..." if source else "..."))
            case "input:ready":
                name = payload.get("main_character", "the hero")
                target = payload.get("target_words")
                self._write(f"Story request ready for {name} (~{target} words).")
                self._bar = tqdm(total=len(_STAGES), desc="Phases", unit="phase")
            case "beats:generating":
                self._describe("Planning story beats")
            case "outline:generating":
                self._describe("Expanding beats into scenes")
            case "outline:ready":
                title = payload.get("title") or ""
                self._write(f"Outline ready: {title}")
                self._advance()
            case "draft:generating":
                self._describe("Writing draft")
            case "final:generating":
                edit_pass = payload.get("edit_pass", 0)
                self._describe("Polishing final story" if not edit_pass else f"Edit pass {edit_pass}")
            case "beats:ready" | "draft:ready" | "final:ready":
                self._advance()
            case "pipeline:complete":
                word_count = payload.get("word_count")
                self._write(f"Pipeline complete (~{word_count} words).")
                # quick mode may skip the final phase
                self._advance(len(_STAGES) - self.phases_done)
                self.close()

    def _advance(self, count: int = 1) -> None:
        if count <= 0:
            return
        self.phases_done += count
        if self._bar is not None:
            self._bar.update(count)

    def _describe(self, text: str) -> None:
        if self._bar is not None:
            self._bar.set_description(text)

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None

    @staticmethod
    def _write(message: str) -> None:
        tqdm.write(message)


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a bedtime story manuscript.")
    parser.add_argument(
        "--input",
        required=True,
        help="Path to the story request YAML/JSON file.",
    )
    parser.add_argument(
        "--output",
        default="storytime_manuscript.yaml",
        help="Output YAML file to store the outline, draft and final story.",
    )
    parser.add_argument(
        "--model",
        default=None,
        help="Optional LiteLLM model identifier override.",
    )
    parser.add_argument(
        "--quick",
        dest="always_polish",
        action="store_false",
        help="Skip the final polish pass unless the draft shows repetition.",
    )
    parser.add_argument(
        "--edit-passes",
        type=int,
        default=1,
        help="Extra edit passes allowed when the final story still repeats itself.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    return parser.parse_args(argv)


def main(argv: list[str]) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    orchestrator = BedtimeStoryOrchestrator(
        model=args.model,
        always_polish=args.always_polish,
        max_edit_passes=args.edit_passes,
    )
    tracker = ProgressTracker()

    try:
        manuscript = orchestrator.run_from_file(args.input, progress_callback=tracker)
    except StoryInputError as exc:
        tqdm.write(f"Invalid story request: {exc}")
        return 2
    except StoryGenerationError as exc:
        tqdm.write(f"Story generation failed: {exc}")
        return 1
    finally:
        tracker.close()

    for warning in manuscript.warnings:
        tqdm.write(f"warning: {warning}")

    output_path = Path(args.output)
    output_path.write_text(manuscript.to_yaml(), encoding="utf-8")
    print(f"Saved manuscript to {output_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
