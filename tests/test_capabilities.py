"""Tests for the platform capability matrix."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from nativeplan.capabilities import (
    DEFAULT_CAPABILITY_TABLE,
    CapabilityTable,
    filter_capabilities,
    load_capability_table,
    validate_extensions,
)
from nativeplan.errors import (
    CapabilityTableError,
    PlanValidationError,
    UnsupportedExtensionError,
)


class TestFilterCapabilities:
    def test_ios_passes_everything_through(self) -> None:
        keys = ["camera", "haptics", "dark-mode"]
        filtered, warnings = filter_capabilities("ios", keys)
        assert filtered == keys
        assert warnings == []

    def test_watch_removes_unsupported_keys(self) -> None:
        filtered, warnings = filter_capabilities("watchos", ["camera", "charts", "speech"])
        assert filtered == ["charts"]
        assert 'rule_key "camera" is not supported on watchOS and was removed' in warnings
        assert len(warnings) == 2

    def test_conditional_key_kept_with_caveat(self) -> None:
        filtered, warnings = filter_capabilities("watchos", ["haptics"])
        assert filtered == ["haptics"]
        assert len(warnings) == 1
        assert warnings[0].startswith('rule_key "haptics" on watchOS:')

    @pytest.mark.parametrize("platform", ["watchos", "tvos", "visionos", "macos"])
    def test_filtered_never_contains_unsupported(self, platform: str) -> None:
        record = DEFAULT_CAPABILITY_TABLE.get(platform)
        assert record is not None
        keys = sorted(record.unsupported_keys) + ["charts", "gestures", "biometrics"]
        filtered, warnings = filter_capabilities(platform, keys)
        assert not set(filtered) & record.unsupported_keys
        assert len(warnings) >= len(keys) - len(filtered)

    def test_preserves_input_order(self) -> None:
        filtered, _ = filter_capabilities("tvos", ["charts", "camera", "animations", "storage"])
        assert filtered == ["charts", "animations", "storage"]


class TestValidateExtensions:
    def test_watch_widget_allowed(self) -> None:
        validate_extensions("watchos", ["widget"])

    def test_unsupported_kind_names_the_kind(self) -> None:
        with pytest.raises(UnsupportedExtensionError, match="share") as exc_info:
            validate_extensions("watchos", ["widget", "share"])
        assert exc_info.value.kinds == ["share"]
        assert "only widget is supported" in str(exc_info.value)

    def test_is_plan_validation_error(self) -> None:
        with pytest.raises(PlanValidationError):
            validate_extensions("tvos", ["widget"])

    def test_tv_top_shelf_on_tvos(self) -> None:
        validate_extensions("tvos", ["tv_top_shelf"])

    def test_ios_accepts_every_kind(self) -> None:
        validate_extensions("ios", ["widget", "live_activity", "share", "app_clip", "safari"])


class TestCapabilityTableLoading:
    def test_default_when_no_path(self) -> None:
        assert load_capability_table(None) is DEFAULT_CAPABILITY_TABLE

    def test_yaml_file(self, tmp_path: Path) -> None:
        path = tmp_path / "caps.yml"
        path.write_text(
            "watchos:\n"
            "  unsupported_keys: [maps]\n"
            "  unsupported_extensions: [widget]\n"
            "  supported_note: no extensions\n",
            encoding="utf-8",
        )
        table = load_capability_table(path)
        filtered, _ = filter_capabilities("watchos", ["maps", "camera"], table)
        assert filtered == ["camera"]
        with pytest.raises(UnsupportedExtensionError, match="no extensions"):
            validate_extensions("watchos", ["widget"], table)

    def test_json_round_trips_default(self, tmp_path: Path) -> None:
        path = tmp_path / "caps.json"
        path.write_text(json.dumps(DEFAULT_CAPABILITY_TABLE.to_dict()), encoding="utf-8")
        table = CapabilityTable.from_file(path)
        assert table.to_dict() == DEFAULT_CAPABILITY_TABLE.to_dict()

    def test_non_mapping_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "caps.yml"
        path.write_text("- watchos\n", encoding="utf-8")
        with pytest.raises(CapabilityTableError, match="mapping"):
            CapabilityTable.from_file(path)

    def test_invalid_record_names_file(self, tmp_path: Path) -> None:
        path = tmp_path / "caps.yml"
        path.write_text("watchos: [1, 2]\n", encoding="utf-8")
        with pytest.raises(CapabilityTableError, match="caps.yml"):
            load_capability_table(path)

    def test_unparseable_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "caps.yml"
        path.write_text("watchos: [unclosed\n", encoding="utf-8")
        with pytest.raises(CapabilityTableError, match="Cannot load"):
            load_capability_table(path)

    def test_unparseable_json(self, tmp_path: Path) -> None:
        path = tmp_path / "caps.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(CapabilityTableError, match="caps.json"):
            load_capability_table(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(CapabilityTableError, match="missing.yml"):
            load_capability_table(tmp_path / "missing.yml")
