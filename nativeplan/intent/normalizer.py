"""Two-stage intent decoding: strict JSON decode, then total field coercion.

The router model is an untrusted producer. Syntax errors are surfaced as
MalformedIntentError; every other irregularity is mapped to a documented
default so downstream code only ever sees values from the closed enums.
"""

from __future__ import annotations

import math
from typing import Any

from nativeplan.decoding import decode_json_object
from nativeplan.errors import MalformedIntentError
from nativeplan.intent.models import IntentDecision
from nativeplan.platforms import (
    DEVICE_FAMILY_VALUES,
    OPERATION_VALUES,
    PLATFORM_VALUES,
    WATCH_SHAPE_VALUES,
    DeviceFamily,
    Operation,
    Platform,
    WatchShape,
    validate_platforms,
)

DEFAULT_REASON = "Default build path (iOS/iPhone) until stronger intent signals are found"


def default_intent_decision() -> IntentDecision:
    return IntentDecision(
        operation=Operation.BUILD.value,
        platform_hint=Platform.IOS.value,
        device_family_hint=DeviceFamily.IPHONE.value,
        confidence=0.25,
        reason=DEFAULT_REASON,
    )


def clamp_confidence(value: Any) -> float:
    """Clamp to [0, 1]. Non-numeric input (including NaN and bools) becomes 0.0."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return 0.0
    if not isinstance(value, int | float) or math.isnan(value):
        return 0.0
    return min(1.0, max(0.0, float(value)))


def _text(value: Any) -> str:
    if value is None or isinstance(value, dict | list):
        return ""
    return str(value).strip()


def _enum_or_empty(value: Any, allowed: frozenset[str]) -> str:
    text = _text(value).lower()
    return text if text in allowed else ""


def coerce_intent_fields(raw: dict[str, Any]) -> IntentDecision:
    """Map a decoded router payload onto an IntentDecision. Never raises."""
    operation = _text(raw.get("operation")).lower()
    if operation not in OPERATION_VALUES:
        operation = Operation.BUILD.value

    hints_raw = raw.get("platform_hints")
    if isinstance(hints_raw, str):
        hints_raw = [hints_raw]
    hints = validate_platforms(hints_raw) if isinstance(hints_raw, list) else []

    platform = _text(raw.get("platform_hint")).lower()
    if not platform and hints:
        platform = hints[0]
    if platform not in PLATFORM_VALUES:
        platform = Platform.IOS.value

    return IntentDecision(
        operation=operation,
        platform_hint=platform,
        platform_hints=hints,
        device_family_hint=_enum_or_empty(raw.get("device_family_hint"), DEVICE_FAMILY_VALUES),
        watch_project_shape_hint=_enum_or_empty(
            raw.get("watch_project_shape_hint"), WATCH_SHAPE_VALUES
        ),
        confidence=clamp_confidence(raw.get("confidence")),
        reason=_text(raw.get("reason")),
    )


def parse_intent_decision(text: str) -> IntentDecision:
    """Decode router output. Raises MalformedIntentError on invalid JSON."""
    try:
        raw = decode_json_object(text, "intent decision")
    except ValueError as e:
        raise MalformedIntentError(str(e)) from e
    return coerce_intent_fields(raw)


def enforce_hint_consistency(decision: IntentDecision) -> IntentDecision:
    """Clear hints that are meaningless for the decided platform."""
    out = decision.model_copy(deep=True)
    if out.platform_hint == Platform.WATCHOS:
        out.device_family_hint = ""
        if not out.watch_project_shape_hint:
            out.watch_project_shape_hint = WatchShape.STANDALONE.value
        return out

    out.watch_project_shape_hint = ""
    if out.platform_hint != Platform.IOS:
        out.device_family_hint = ""
    return out


def finalize_intent_decision(
    parsed: IntentDecision | None, fallback: IntentDecision | None = None
) -> IntentDecision:
    """Merge a parsed decision with a caller-supplied default, then run the consistency pass."""
    if fallback is None:
        fallback = default_intent_decision()
    if parsed is None:
        return enforce_hint_consistency(fallback)

    out = parsed.model_copy(deep=True)
    if not out.operation:
        out.operation = fallback.operation or Operation.BUILD.value
    if not out.platform_hint:
        out.platform_hint = fallback.platform_hint
    if out.platform_hints:
        out.platform_hint = out.platform_hints[0]
    if out.confidence <= 0:
        out.confidence = fallback.confidence
    if not out.reason:
        out.reason = fallback.reason
    if out.platform_hint == Platform.IOS and not out.device_family_hint:
        out.device_family_hint = fallback.device_family_hint
    return enforce_hint_consistency(out)
