"""Collaborator protocols: the routing model and the file-materializing agent."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Protocol, runtime_checkable


@dataclass
class Message:
    """A chat message."""

    role: Literal["system", "user", "assistant"]
    content: str = ""


@dataclass
class Usage:
    """Token usage."""

    input_tokens: int = 0
    output_tokens: int = 0
    cache_read_tokens: int = 0
    cache_creation_tokens: int = 0


@dataclass
class LLMResponse:
    """Response from a non-streaming LLM call."""

    content: str = ""
    usage: Usage = field(default_factory=Usage)
    stop_reason: str = ""


@dataclass
class MaterializeResult:
    """What the agent reports back after writing files into a project."""

    session_id: str = ""
    usage: Usage = field(default_factory=Usage)
    cost_usd: float = 0.0
    summary: str = ""


@runtime_checkable
class LLMProvider(Protocol):
    """Protocol for LLM providers."""

    async def complete(
        self,
        messages: list[Message],
        model: str | None = None,
        json_mode: bool = False,
    ) -> LLMResponse: ...


@runtime_checkable
class Materializer(Protocol):
    """Protocol for the agent that writes planned files into the project directory.

    ``session_id`` is empty on the first pass; later passes pass back the
    identifier from the previous result so the agent can resume its session.
    """

    async def materialize(
        self,
        prompt: str,
        system_prompt: str,
        workdir: Path,
        session_id: str = "",
    ) -> MaterializeResult: ...
