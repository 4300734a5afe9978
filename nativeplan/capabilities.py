"""Platform capability matrix: which rule keys and extension kinds each platform supports."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

from nativeplan.errors import CapabilityTableError, UnsupportedExtensionError
from nativeplan.platforms import Platform, display_name


class PlatformCapabilities(BaseModel):
    """What one platform cannot do, or does differently."""

    model_config = ConfigDict(frozen=True)

    unsupported_keys: frozenset[str] = frozenset()
    conditional_keys: dict[str, str] = {}  # rule key -> caveat
    unsupported_extensions: frozenset[str] = frozenset()
    supported_note: str = ""


class CapabilityTable:
    """Per-platform capability records, looked up by platform value."""

    def __init__(self, records: Mapping[str, PlatformCapabilities] | None = None) -> None:
        self._records: dict[str, PlatformCapabilities] = dict(records or {})

    def get(self, platform: str) -> PlatformCapabilities | None:
        return self._records.get(platform)

    def platforms(self) -> list[str]:
        return list(self._records)

    def supports_key(self, platform: str, key: str) -> bool:
        record = self.get(platform)
        return record is None or key not in record.unsupported_keys

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CapabilityTable:
        records = {
            str(platform).strip().lower(): PlatformCapabilities.model_validate(raw or {})
            for platform, raw in data.items()
        }
        return cls(records)

    @classmethod
    def from_file(cls, path: Path) -> CapabilityTable:
        """Load a capability matrix from a YAML or JSON file.

        Raises CapabilityTableError naming the file when it cannot be read,
        decoded or validated.
        """
        try:
            text = path.read_text(encoding="utf-8")
            data = json.loads(text) if path.suffix == ".json" else yaml.safe_load(text)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise CapabilityTableError(f"Cannot load capability table {path}: {e}") from e
        if not isinstance(data, dict):
            raise CapabilityTableError(
                f"Capability table {path} must be a mapping of platform to record"
            )
        try:
            return cls.from_dict(data)
        except ValidationError as e:
            raise CapabilityTableError(f"Invalid capability table {path}: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        return {
            platform: {
                "unsupported_keys": sorted(record.unsupported_keys),
                "conditional_keys": dict(record.conditional_keys),
                "unsupported_extensions": sorted(record.unsupported_extensions),
                "supported_note": record.supported_note,
            }
            for platform, record in self._records.items()
        }


DEFAULT_CAPABILITY_TABLE = CapabilityTable(
    {
        Platform.WATCHOS: PlatformCapabilities(
            unsupported_keys=frozenset(
                {
                    "camera",
                    "foundation-models",
                    "apple-translation",
                    "adaptive-layout",
                    "liquid-glass",
                    "speech",
                    "app-review",
                }
            ),
            conditional_keys={
                "haptics": "watchOS uses WKInterfaceDevice.default().play(.click) "
                "instead of UIFeedbackGenerator/CoreHaptics",
                "biometrics": "watchOS uses wrist detection and optic ID instead of Face ID/Touch ID",
            },
            unsupported_extensions=frozenset(
                {"live_activity", "share", "notification_service", "safari", "app_clip"}
            ),
            supported_note="only widget is supported",
        ),
        Platform.TVOS: PlatformCapabilities(
            unsupported_keys=frozenset(
                {
                    "camera",
                    "biometrics",
                    "healthkit",
                    "haptics",
                    "maps",
                    "speech",
                    "apple-translation",
                }
            ),
            conditional_keys={
                "gestures": "tvOS uses Siri Remote input (onMoveCommand, onPlayPauseCommand, "
                "onExitCommand) instead of touch gestures",
                "animations": "tvOS animations should account for focus transitions "
                "and Siri Remote parallax effects",
            },
            unsupported_extensions=frozenset(
                {"live_activity", "share", "notification_service", "safari", "app_clip", "widget"}
            ),
            supported_note="only tv_top_shelf is supported",
        ),
        Platform.VISIONOS: PlatformCapabilities(
            unsupported_keys=frozenset(
                {"camera", "healthkit", "haptics", "maps", "speech", "app-review", "dark-mode"}
            ),
            conditional_keys={
                "biometrics": "visionOS uses Optic ID instead of Face ID/Touch ID",
                "gestures": "visionOS uses spatial gestures, eye tracking, and hand pinch "
                "instead of touch",
            },
            unsupported_extensions=frozenset(
                {"live_activity", "share", "notification_service", "safari", "app_clip"}
            ),
            supported_note="only widget is supported",
        ),
        Platform.MACOS: PlatformCapabilities(
            unsupported_keys=frozenset({"healthkit", "haptics", "speech"}),
            conditional_keys={
                "biometrics": "macOS uses Touch ID (on compatible keyboards) instead of Face ID",
                "gestures": "macOS uses trackpad, mouse, and keyboard input instead of touch",
                "camera": "macOS has FaceTime camera only; no rear camera, no LiDAR, "
                "no portrait mode",
            },
            unsupported_extensions=frozenset({"live_activity", "app_clip", "safari"}),
            supported_note="widget, share, and notification_service are supported",
        ),
    }
)


def load_capability_table(path: Path | None) -> CapabilityTable:
    """Return the table at ``path``, or the built-in matrix when no path is configured."""
    if path is None:
        return DEFAULT_CAPABILITY_TABLE
    return CapabilityTable.from_file(path)


def filter_capabilities(
    platform: str,
    keys: Iterable[str],
    table: CapabilityTable = DEFAULT_CAPABILITY_TABLE,
) -> tuple[list[str], list[str]]:
    """Drop rule keys the platform cannot support.

    Returns the surviving keys in input order and a list of warnings: one per
    removed key, and one advisory per kept key whose behaviour differs on the
    platform. Platforms without a record (iOS) pass through untouched.
    """
    keys = list(keys)
    record = table.get(platform)
    if record is None:
        return keys, []

    name = display_name(platform)
    filtered: list[str] = []
    warnings: list[str] = []
    for key in keys:
        if key in record.unsupported_keys:
            warnings.append(f'rule_key "{key}" is not supported on {name} and was removed')
            continue
        caveat = record.conditional_keys.get(key)
        if caveat:
            warnings.append(f'rule_key "{key}" on {name}: {caveat}')
        filtered.append(key)
    return filtered, warnings


def validate_extensions(
    platform: str,
    kinds: Iterable[str],
    table: CapabilityTable = DEFAULT_CAPABILITY_TABLE,
) -> None:
    """Raise UnsupportedExtensionError naming every kind the platform rejects."""
    record = table.get(platform)
    if record is None:
        return
    offending = [kind for kind in kinds if kind in record.unsupported_extensions]
    if offending:
        raise UnsupportedExtensionError(display_name(platform), offending, record.supported_note)
