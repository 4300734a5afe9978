"""Pull a JSON object out of free-form model output."""

from __future__ import annotations

import json
from typing import Any


def extract_json(text: str) -> str:
    """Return the JSON object text inside ``text``.

    Handles a markdown code fence anywhere in the text and prose before or
    after the object. When no braces are found the stripped text is returned
    unchanged so the decoder reports the real syntax error.
    """
    s = text.strip()

    fence = s.find("```")
    if fence >= 0:
        line_end = s.find("\n", fence)
        if line_end >= 0:
            body = s[line_end + 1 :]
            closing = body.find("```")
            s = body[:closing] if closing >= 0 else body

    start = s.find("{")
    end = s.rfind("}")
    if start >= 0 and end > start:
        return s[start : end + 1]
    return s.strip()


def decode_json_object(text: str, label: str) -> dict[str, Any]:
    """Strictly decode a JSON object, raising ValueError on bad syntax or shape."""
    raw = extract_json(text)
    if not raw:
        raise ValueError(f"{label} response is empty")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"{label} response is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"{label} response must be a JSON object, got {type(data).__name__}")
    return data
