"""Ask the routing model for an intent decision."""

from __future__ import annotations

from typing import TYPE_CHECKING

from nativeplan.errors import MalformedIntentError
from nativeplan.intent.models import IntentDecision
from nativeplan.intent.normalizer import finalize_intent_decision, parse_intent_decision
from nativeplan.llm.base import LLMProvider, Message
from nativeplan.prompts import INTENT_ROUTER_SYSTEM_PROMPT, format_intent_hints

if TYPE_CHECKING:
    from nativeplan.phases import TokenTracker


async def route_intent(
    request: str,
    provider: LLMProvider,
    fallback: IntentDecision | None = None,
    tokens: TokenTracker | None = None,
    model: str | None = None,
) -> IntentDecision:
    """Classify ``request`` with the routing model and finalize the result."""
    messages = [
        Message(role="system", content=INTENT_ROUTER_SYSTEM_PROMPT),
        Message(role="user", content=format_intent_hints(request)),
    ]

    max_retries = 2
    last_error: Exception | None = None

    for attempt in range(max_retries + 1):
        response = await provider.complete(messages, model=model, json_mode=True)
        if tokens:
            tokens.add(response.usage)
        if not response.content.strip():
            raise MalformedIntentError("intent router returned empty response")
        try:
            parsed = parse_intent_decision(response.content)
        except MalformedIntentError as e:
            last_error = e
            if attempt < max_retries:
                messages.append(Message(role="assistant", content=response.content))
                messages.append(
                    Message(
                        role="user",
                        content=f"Your response was not valid JSON. Error: {e}. Please try again with valid JSON only.",
                    )
                )
            continue
        parsed.used_llm = True
        return finalize_intent_decision(parsed, fallback)

    raise MalformedIntentError(
        f"Failed to get a valid intent decision after {max_retries + 1} attempts: {last_error}"
    )
