"""
Common utilities shared across Storytime modules.
"""

from .errors import (
    LLMTransportError,
    OutlineParseError,
    StoryGenerationError,
    StoryInputError,
)
from .llm import ChatResult, CompletionCallable, call_chat_completion, generate_text

__all__ = [
    "ChatResult",
    "CompletionCallable",
    "call_chat_completion",
    "generate_text",
    "LLMTransportError",
    "OutlineParseError",
    "StoryGenerationError",
    "StoryInputError",
]
