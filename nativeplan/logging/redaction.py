"""Scrub API keys and private keys from anything written to the run log."""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

MASK = "[REDACTED]"

# Keeps the key name, masks the value: ANTHROPIC_API_KEY=..., "api_key": "...".
_KEY_ASSIGNMENT = re.compile(
    r"""(?ix)
    (\b[\w-]*(?:api[_-]?key|secret|token|password)\b["']?\s*[:=]\s*)
    (?:"[^"\n]*"|'[^'\n]*'|[^\s,;]+)
    """
)

_BEARER = re.compile(r"(?i)(\b(?:authorization|x-api-key)\b\s*[:=]\s*)(?:bearer\s+)?[^\s,;]+")

# sk-ant- must run before the generic sk- pattern.
_VENDOR_TOKENS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\bsk-ant-[A-Za-z0-9_\-]{20,}"),
    re.compile(r"\bsk-(?:proj-)?[A-Za-z0-9_\-]{20,}"),
)

_PRIVATE_KEY = re.compile(
    r"-----BEGIN [A-Z ]*PRIVATE KEY-----[\s\S]+?-----END [A-Z ]*PRIVATE KEY-----"
)


def redact_text(text: str, secrets: Iterable[str] = ()) -> str:
    """Mask known secret values first, then anything that looks like a credential."""
    for value in sorted((s for s in secrets if s), key=len, reverse=True):
        text = text.replace(value, MASK)
    text = _PRIVATE_KEY.sub(MASK, text)
    for pattern in _VENDOR_TOKENS:
        text = pattern.sub(MASK, text)
    text = _BEARER.sub(rf"\1{MASK}", text)
    return _KEY_ASSIGNMENT.sub(rf"\1{MASK}", text)


def redact_payload(data: Any, secrets: Iterable[str] = ()) -> Any:
    """Apply :func:`redact_text` to every string inside a JSON-like payload."""
    secrets = tuple(secrets)
    if isinstance(data, str):
        return redact_text(data, secrets)
    if isinstance(data, dict):
        return {k: redact_payload(v, secrets) for k, v in data.items()}
    if isinstance(data, list | tuple):
        return [redact_payload(item, secrets) for item in data]
    return data
