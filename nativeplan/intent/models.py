"""Build intent decision model."""

from __future__ import annotations

from pydantic import BaseModel


class IntentDecision(BaseModel):
    """Routing decision for a user request: what to do and for which platform."""

    operation: str = ""
    platform_hint: str = ""
    platform_hints: list[str] = []
    device_family_hint: str = ""
    watch_project_shape_hint: str = ""
    confidence: float = 0.0
    reason: str = ""
    used_llm: bool = False
