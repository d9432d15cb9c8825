"""
End-to-end orchestration for Storytime story generation.
"""

from .pipeline import (
    BedtimeStoryOrchestrator,
    ProgressCallback,
    StoryManuscript,
    load_mapping_file,
)

__all__ = [
    "BedtimeStoryOrchestrator",
    "ProgressCallback",
    "StoryManuscript",
    "load_mapping_file",
]
