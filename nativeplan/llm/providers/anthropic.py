"""Anthropic Claude provider."""

from __future__ import annotations

from typing import Any

import anthropic

from nativeplan.llm.base import LLMResponse, Message, Usage

DEFAULT_MODEL = "claude-haiku-4-5-20251001"


class AnthropicProvider:
    """LLM provider using the Anthropic SDK."""

    def __init__(self, api_key: str, model: str | None = None) -> None:
        self._client = anthropic.AsyncAnthropic(api_key=api_key)
        self._default_model = model or DEFAULT_MODEL

    @property
    def model(self) -> str:
        return self._default_model

    async def complete(
        self,
        messages: list[Message],
        model: str | None = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        system_msg, api_messages = _split_messages(messages)

        kwargs: dict[str, Any] = {
            "model": model or self._default_model,
            "max_tokens": 1024,
            "messages": api_messages,
        }
        if system_msg:
            kwargs["system"] = system_msg

        response = await self._client.messages.create(**kwargs)

        content = "".join(block.text for block in response.content if block.type == "text")
        usage = response.usage
        return LLMResponse(
            content=content,
            usage=Usage(
                input_tokens=usage.input_tokens,
                output_tokens=usage.output_tokens,
                cache_read_tokens=getattr(usage, "cache_read_input_tokens", None) or 0,
                cache_creation_tokens=getattr(usage, "cache_creation_input_tokens", None) or 0,
            ),
            stop_reason=response.stop_reason or "",
        )


def _split_messages(messages: list[Message]) -> tuple[str, list[dict[str, Any]]]:
    """Split system message from conversation messages for Anthropic API."""
    system = ""
    api_messages: list[dict[str, Any]] = []
    for msg in messages:
        if msg.role == "system":
            system += msg.content + "\n"
        else:
            api_messages.append({"role": msg.role, "content": msg.content})
    return system.strip(), api_messages
