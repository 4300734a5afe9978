"""Tests for LLM providers with mocked SDK calls."""

from __future__ import annotations

import os
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from nativeplan.config.settings import NativeplanSettings
from nativeplan.llm import create_provider
from nativeplan.llm.base import (
    LLMProvider,
    LLMResponse,
    MaterializeResult,
    Materializer,
    Message,
    Usage,
)
from nativeplan.llm.providers.anthropic import AnthropicProvider, _split_messages
from nativeplan.llm.providers.openai import OpenAIProvider


def _settings(**overrides: object) -> NativeplanSettings:
    with patch.dict(os.environ, {}, clear=True):
        return NativeplanSettings(_env_file=None, **overrides)  # type: ignore[call-arg,arg-type]


class TestMessageModel:
    def test_user_message(self) -> None:
        msg = Message(role="user", content="Hello")
        assert msg.role == "user"
        assert msg.content == "Hello"


class TestLLMResponse:
    def test_text_response(self) -> None:
        r = LLMResponse(content="Hello!", usage=Usage(input_tokens=10, output_tokens=5))
        assert r.content == "Hello!"
        assert r.usage.input_tokens == 10
        assert r.usage.cache_read_tokens == 0

    def test_materialize_result_defaults(self) -> None:
        r = MaterializeResult()
        assert r.session_id == ""
        assert r.cost_usd == 0.0
        assert r.usage.output_tokens == 0


class TestProtocols:
    def test_providers_satisfy_protocol(self) -> None:
        assert isinstance(AnthropicProvider(api_key="test"), LLMProvider)
        assert isinstance(OpenAIProvider(api_key="test"), LLMProvider)

    def test_materializer_protocol(self) -> None:
        class Agent:
            async def materialize(
                self, prompt: str, system_prompt: str, workdir: Path, session_id: str = ""
            ) -> MaterializeResult:
                return MaterializeResult()

        assert isinstance(Agent(), Materializer)
        assert not isinstance(object(), Materializer)


class TestCreateProvider:
    def test_anthropic_by_default(self) -> None:
        provider = create_provider(_settings(anthropic_api_key="a-key"))
        assert isinstance(provider, AnthropicProvider)

    def test_openai_when_only_openai_key(self) -> None:
        provider = create_provider(_settings(openai_api_key="o-key", default_model="gpt-4o"))
        assert isinstance(provider, OpenAIProvider)
        assert provider.model == "gpt-4o"

    def test_missing_key_names_variable(self) -> None:
        with pytest.raises(ValueError, match="NATIVEPLAN_ANTHROPIC_API_KEY"):
            create_provider(_settings())

    def test_explicit_provider_needs_its_key(self) -> None:
        with pytest.raises(ValueError, match="NATIVEPLAN_OPENAI_API_KEY"):
            create_provider(_settings(anthropic_api_key="a-key", default_provider="openai"))


class TestAnthropicProvider:
    def test_split_messages(self) -> None:
        system, rest = _split_messages(
            [
                Message(role="system", content="rules"),
                Message(role="user", content="hi"),
                Message(role="assistant", content="{}"),
            ]
        )
        assert system == "rules"
        assert rest == [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "{}"}]

    @pytest.mark.asyncio
    async def test_complete(self) -> None:
        provider = AnthropicProvider(api_key="test", model="claude-test")
        response = SimpleNamespace(
            content=[SimpleNamespace(type="text", text='{"operation": "build"}')],
            usage=SimpleNamespace(input_tokens=12, output_tokens=4, cache_read_input_tokens=None),
            stop_reason="end_turn",
        )
        create = AsyncMock(return_value=response)
        with patch.object(provider._client.messages, "create", create):
            result = await provider.complete(
                [Message(role="system", content="route"), Message(role="user", content="app")]
            )
        assert result.content == '{"operation": "build"}'
        assert result.usage.input_tokens == 12
        assert result.usage.cache_read_tokens == 0
        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "claude-test"
        assert kwargs["system"] == "route"


class TestOpenAIProvider:
    @pytest.mark.asyncio
    async def test_complete_json_mode(self) -> None:
        provider = OpenAIProvider(api_key="test")
        response = SimpleNamespace(
            choices=[
                SimpleNamespace(message=SimpleNamespace(content="{}"), finish_reason="stop")
            ],
            usage=SimpleNamespace(prompt_tokens=20, completion_tokens=2, prompt_tokens_details=None),
        )
        create = AsyncMock(return_value=response)
        with patch.object(provider._client.chat.completions, "create", create):
            result = await provider.complete([Message(role="user", content="x")], json_mode=True)
        assert result.content == "{}"
        assert result.usage.input_tokens == 20
        assert result.stop_reason == "stop"
        assert create.call_args.kwargs["response_format"] == {"type": "json_object"}
