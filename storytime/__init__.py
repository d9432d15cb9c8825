"""
Storytime package exposing the bedtime story generation pipeline.
"""

from .pipeline import BedtimeStoryOrchestrator, StoryManuscript
from .story_generation import StructuredStoryInput

__all__ = [
    "BedtimeStoryOrchestrator",
    "StoryManuscript",
    "StructuredStoryInput",
]
