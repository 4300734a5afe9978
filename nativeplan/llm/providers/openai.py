"""OpenAI provider."""

from __future__ import annotations

from typing import Any

import openai

from nativeplan.llm.base import LLMResponse, Message, Usage

DEFAULT_MODEL = "gpt-4o-mini"


class OpenAIProvider:
    """LLM provider using the OpenAI SDK."""

    def __init__(self, api_key: str, model: str | None = None) -> None:
        self._client = openai.AsyncOpenAI(api_key=api_key)
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
        kwargs: dict[str, Any] = {
            "model": model or self._default_model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = await self._client.chat.completions.create(**kwargs)
        choice = response.choices[0]

        usage = Usage()
        if response.usage:
            cached = 0
            details = getattr(response.usage, "prompt_tokens_details", None)
            if details is not None:
                cached = getattr(details, "cached_tokens", None) or 0
            usage = Usage(
                input_tokens=response.usage.prompt_tokens,
                output_tokens=response.usage.completion_tokens,
                cache_read_tokens=cached,
            )

        return LLMResponse(
            content=choice.message.content or "",
            usage=usage,
            stop_reason=choice.finish_reason or "",
        )
