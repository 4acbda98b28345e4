from __future__ import annotations

import openai
import pytest

from fixtures import FakeOpenAI, completion

from study_tutor import config as config_mod
from study_tutor import llm
from study_tutor.core import ai
from study_tutor.core.errors import UpstreamUnavailable


def _client(fake: FakeOpenAI) -> llm.OpenAITutorClient:
    return llm.OpenAITutorClient(
        chat_model="chat-model",
        quiz_model="quiz-model",
        temperature=0.7,
        max_output_tokens=1500,
        request_timeout=60,
        client=fake,
    )


def test_complete_sends_system_prompt_and_returns_text():
    fake = FakeOpenAI(completion("  Gravity is a force.  "))

    reply = _client(fake).complete("Explain gravity", context="s1")

    assert reply == "Gravity is a force."
    call = fake.calls[0]
    assert call["model"] == "chat-model"
    assert call["messages"][0] == {
        "role": "system",
        "content": llm.CHAT_SYSTEM_PROMPT,
    }
    assert call["messages"][1] == {"role": "user", "content": "Explain gravity"}
    assert call["temperature"] == 0.7
    assert call["max_tokens"] == 1500
    assert call["timeout"] == 60


def test_complete_substitutes_apology_for_empty_content():
    fake = FakeOpenAI(completion(None), completion("   "))
    client = _client(fake)
    assert client.complete("hi", context="s") == llm.EMPTY_COMPLETION_TEXT
    assert client.complete("hi", context="s") == llm.EMPTY_COMPLETION_TEXT


def test_request_quiz_uses_quiz_model_and_topic_prompt():
    fake = FakeOpenAI(completion('{"questions": []}'))

    raw = _client(fake).request_quiz("Photosynthesis")

    assert raw == '{"questions": []}'
    call = fake.calls[0]
    assert call["model"] == "quiz-model"
    assert call["messages"][0]["content"] == llm.QUIZ_SYSTEM_PROMPT
    assert call["messages"][1]["content"] == (
        "Create a quiz about: Photosynthesis"
    )


def test_sdk_errors_become_upstream_unavailable():
    fake = FakeOpenAI(openai.OpenAIError("connection reset"))
    with pytest.raises(UpstreamUnavailable):
        _client(fake).complete("hi", context="s")


def test_response_without_choices_is_upstream_failure():
    from types import SimpleNamespace

    fake = FakeOpenAI(SimpleNamespace(choices=[]))
    with pytest.raises(UpstreamUnavailable):
        _client(fake).request_quiz("Cells")


def test_build_model_client_uses_settings():
    settings = config_mod.ModelConfig(
        api_base=None,
        api_key_env="GROQ_API_KEY",
        chat_model="llama-chat",
        quiz_model="llama-quiz",
        temperature=0.2,
        max_output_tokens=500,
        request_timeout_seconds=10,
    )
    fake = FakeOpenAI(completion("ok"))
    client = llm.build_model_client(settings, client=fake)
    client.complete("hi", context="s")
    assert fake.calls[0]["model"] == "llama-chat"
    assert fake.calls[0]["max_tokens"] == 500


def test_load_client_requires_api_key(monkeypatch):
    monkeypatch.setattr(ai, "load_dotenv", lambda: False)
    with pytest.raises(ai.MissingApiKeyError) as exc:
        ai.load_client(env={})
    assert "GROQ_API_KEY" in str(exc.value)


def test_load_client_passes_base_url_and_timeout(monkeypatch):
    captured = {}

    class RecordingOpenAI:
        def __init__(self, **kwargs):
            captured.update(kwargs)

    monkeypatch.setattr(ai, "load_dotenv", lambda: False)
    monkeypatch.setattr(ai, "OpenAI", RecordingOpenAI)

    client = ai.load_client(
        api_key_env="TUTOR_KEY",
        api_base="https://api.groq.com/openai/v1",
        timeout=30.0,
        env={"TUTOR_KEY": " secret "},
    )

    assert isinstance(client, RecordingOpenAI)
    assert captured == {
        "api_key": "secret",
        "base_url": "https://api.groq.com/openai/v1",
        "timeout": 30.0,
    }
