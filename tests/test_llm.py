import pytest

from storytime.common import ChatResult, LLMTransportError, StoryGenerationError, generate_text
from storytime.common import llm as llm_module


def test_generate_text_prepends_system_and_forwards_params(scripted_completion):
    completion = scripted_completion(["  Once upon a time.  "])

    text = generate_text(
        system="You are a storyteller.",
        messages=[{"role": "user", "content": "Tell me a story."}],
        model="gpt-test",
        completion_fn=completion,
        temperature=0.5,
        presence_penalty=0.7,
        frequency_penalty=0.8,
        max_tokens=100,
        response_format={"type": "json_object"},
    )

    assert text == "Once upon a time."
    call = completion.calls[0]
    assert call["model"] == "gpt-test"
    assert call["messages"] == [
        {"role": "system", "content": "You are a storyteller."},
        {"role": "user", "content": "Tell me a story."},
    ]
    assert call["temperature"] == 0.5
    assert call["presence_penalty"] == 0.7
    assert call["frequency_penalty"] == 0.8
    assert call["max_tokens"] == 100
    assert call["response_format"] == {"type": "json_object"}


def test_generate_text_omits_unset_penalties(scripted_completion):
    completion = scripted_completion(["ok"])

    generate_text(system="s", messages=[], model="m", completion_fn=completion)

    assert "presence_penalty" not in completion.calls[0]
    assert "response_format" not in completion.calls[0]


def test_empty_reply_is_a_transport_error(scripted_completion):
    with pytest.raises(LLMTransportError, match="empty content"):
        generate_text(
            system="s",
            messages=[],
            model="m",
            completion_fn=scripted_completion(["   "]),
        )


def test_failed_call_is_a_transport_error():
    def broken(**_kwargs):
        raise ConnectionError("socket closed")

    with pytest.raises(LLMTransportError) as excinfo:
        generate_text(system="s", messages=[], model="m", completion_fn=broken)

    assert isinstance(excinfo.value, StoryGenerationError)
    assert isinstance(excinfo.value.__cause__, ConnectionError)


def test_call_chat_completion_reads_litellm_response(monkeypatch):
    captured = {}

    def fake_completion(**kwargs):
        captured.update(kwargs)
        return {"choices": [{"message": {"content": " Hello there. "}}]}

    monkeypatch.setattr(llm_module, "completion", fake_completion)

    result = llm_module.call_chat_completion(
        model="gpt-test",
        messages=[{"role": "user", "content": "hi"}],
        temperature=0.2,
        api_key="sk-test",
        presence_penalty=0.1,
    )

    assert isinstance(result, ChatResult)
    assert result.text == "Hello there."
    assert captured["api_key"] == "sk-test"
    assert captured["presence_penalty"] == 0.1
    assert "max_tokens" not in captured


def test_call_chat_completion_rejects_unexpected_shape(monkeypatch):
    monkeypatch.setattr(llm_module, "completion", lambda **_kwargs: {"choices": []})

    with pytest.raises(RuntimeError, match="Unexpected LiteLLM response format"):
        llm_module.call_chat_completion(model="m", messages=[])


def test_default_completion_failure_surfaces_as_transport_error(monkeypatch):
    monkeypatch.setattr(llm_module, "completion", lambda **_kwargs: {"choices": []})

    with pytest.raises(LLMTransportError):
        generate_text(system="s", messages=[], model="m")
