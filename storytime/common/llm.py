"""
LiteLLM-powered chat completion helper utilities.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, MutableMapping, Sequence

from litellm import completion

from .errors import LLMTransportError

ChatMessage = Mapping[str, Any]

logger = logging.getLogger(__name__)


@dataclass
class ChatResult:
    """
    Structured response returned from an LLM chat completion.
    """

    text: str
    raw: Any


CompletionCallable = Callable[..., ChatResult]


def call_chat_completion(
    *,
    model: str,
    messages: Sequence[ChatMessage],
    temperature: float | None = None,
    max_tokens: int | None = None,
    api_key: str | None = None,
    **extra_kwargs: Any,
) -> ChatResult:
    """
    Invoke LiteLLM's `completion` API and return the consolidated text.
    """
    payload: MutableMapping[str, Any] = {
        "model": model,
        "messages": list(messages),
    }

    if temperature is not None:
        payload["temperature"] = temperature

    if max_tokens is not None:
        payload["max_tokens"] = max_tokens

    if api_key is not None:
        payload["api_key"] = api_key

    payload.update(extra_kwargs)

    response = completion(**payload)

    try:
        message = response["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise RuntimeError("Unexpected LiteLLM response format.") from exc

    text = str(message).strip() if message is not None else ""
    return ChatResult(text=text, raw=response)


def generate_text(
    *,
    system: str,
    messages: Sequence[ChatMessage],
    model: str,
    completion_fn: CompletionCallable | None = None,
    temperature: float | None = None,
    presence_penalty: float | None = None,
    frequency_penalty: float | None = None,
    max_tokens: int | None = None,
    response_format: Mapping[str, Any] | None = None,
    api_key: str | None = None,
) -> str:
    """
    Run one system + messages exchange and return the trimmed assistant text.

    Any failure of the underlying call, and an empty reply, surface as
    :class:`LLMTransportError`. Nothing is retried here.
    """
    call = completion_fn or call_chat_completion

    extra: dict[str, Any] = {}
    if presence_penalty is not None:
        extra["presence_penalty"] = presence_penalty
    if frequency_penalty is not None:
        extra["frequency_penalty"] = frequency_penalty
    if response_format is not None:
        extra["response_format"] = dict(response_format)

    full_messages = [{"role": "system", "content": system}, *messages]

    try:
        result = call(
            model=model,
            messages=full_messages,
            temperature=temperature,
            max_tokens=max_tokens,
            api_key=api_key,
            **extra,
        )
    except Exception as exc:
        logger.error("LLM call to %s failed: %s", model, exc)
        raise LLMTransportError(f"LLM call failed: {exc}") from exc

    text = (result.text or "").strip()
    if not text:
        raise LLMTransportError("LLM returned empty content.")
    return text
