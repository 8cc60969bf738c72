"""Tests for the litellm-backed model adapter."""

from types import SimpleNamespace
from unittest.mock import patch

import pytest

from agentcrew.llm import DEFAULT_SYSTEM_PROMPT, LLMAdapter


def _response(content):
    message = SimpleNamespace(content=content)
    usage = SimpleNamespace(prompt_tokens=10, completion_tokens=3)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)], usage=usage)


class TestLLMAdapter:
    def test_complete_passes_settings(self):
        adapter = LLMAdapter(
            model="openai/model", temperature=0.2, max_tokens=256,
            api_base="http://localhost:8080/v1", api_key="secret",
        )
        with patch("agentcrew.llm.litellm.completion", return_value=_response("hi")) as completion:
            assert adapter.complete("Say hi") == "hi"

        kwargs = completion.call_args.kwargs
        assert kwargs["model"] == "openai/model"
        assert kwargs["temperature"] == 0.2
        assert kwargs["max_tokens"] == 256
        assert kwargs["api_base"] == "http://localhost:8080/v1"
        assert kwargs["api_key"] == "secret"
        assert kwargs["messages"] == [
            {"role": "system", "content": DEFAULT_SYSTEM_PROMPT},
            {"role": "user", "content": "Say hi"},
        ]

    def test_optional_settings_are_omitted(self):
        adapter = LLMAdapter(model="openai/gpt-4o-mini", system_prompt=None)
        with patch("agentcrew.llm.litellm.completion", return_value=_response(None)) as completion:
            assert adapter.complete("x") == ""
        kwargs = completion.call_args.kwargs
        assert "api_base" not in kwargs and "api_key" not in kwargs
        assert kwargs["messages"] == [{"role": "user", "content": "x"}]

    def test_backend_errors_become_connection_errors(self):
        adapter = LLMAdapter(model="openai/model")
        with patch("agentcrew.llm.litellm.completion", side_effect=RuntimeError("boom")):
            with pytest.raises(ConnectionError, match="LLM error: RuntimeError: boom"):
                adapter.complete("x")
