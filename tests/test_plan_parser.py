"""Tests for build plan decoding and preparation."""

from __future__ import annotations

import json
from typing import Any

import pytest

from nativeplan.descriptor.compiler import compile_project
from nativeplan.errors import MalformedPlanError, PlanValidationError, UnsupportedExtensionError
from nativeplan.intent.models import IntentDecision
from nativeplan.planning.models import BuildPlan
from nativeplan.planning.parser import apply_intent_hints, parse_plan, prepare_plan

_FILE = {"path": "App/MyApp.swift", "type_name": "MyApp"}


def _plan(**fields: Any) -> BuildPlan:
    data: dict[str, Any] = {"files": [_FILE]}
    data.update(fields)
    return BuildPlan.model_validate(data)


class TestParsePlan:
    def test_components_accept_string_or_array(self) -> None:
        plan = parse_plan(
            json.dumps(
                {
                    "files": [
                        {"path": "A.swift", "components": "Button", "depends_on": "B.swift"},
                        {"path": "B.swift", "components": ["List", "Text"]},
                    ]
                }
            )
        )
        assert plan.files[0].components == ["Button"]
        assert plan.files[0].depends_on == ["B.swift"]
        assert plan.files[1].components == ["List", "Text"]

    def test_nulls_fall_back_to_defaults(self) -> None:
        plan = parse_plan('{"platform": null, "files": [{"path": "A.swift", "purpose": null}]}')
        assert plan.platform == ""
        assert plan.files[0].purpose == ""

    def test_property_defaults_stringified(self) -> None:
        plan = parse_plan(
            json.dumps(
                {
                    "models": [
                        {
                            "name": "Note",
                            "properties": [
                                {"name": "pinned", "type": "Bool", "default_value": False},
                                {"name": "count", "type": "Int", "default_value": 0},
                            ],
                        }
                    ]
                }
            )
        )
        assert [p.default_value for p in plan.models[0].properties] == ["false", "0"]

    def test_extension_trees_and_settings(self) -> None:
        plan = parse_plan(
            json.dumps(
                {
                    "extensions": [
                        {
                            "kind": "widget",
                            "settings": {"ENABLE_BITCODE": False, "SWIFT_VERSION": 6},
                            "info_plist": {"NSExtension": {"Nested": [1, "two", True]}},
                        }
                    ]
                }
            )
        )
        ext = plan.extensions[0]
        assert ext.settings == {"ENABLE_BITCODE": "NO", "SWIFT_VERSION": "6"}
        assert ext.info_plist["NSExtension"]["Nested"] == [1, "two", True]

    def test_malformed_json_raises(self) -> None:
        with pytest.raises(MalformedPlanError):
            parse_plan("{not json")

    def test_schema_mismatch_raises(self) -> None:
        with pytest.raises(MalformedPlanError, match="schema"):
            parse_plan('{"files": [{"type_name": "MissingPath"}]}')

    def test_fenced_output(self) -> None:
        plan = parse_plan('```json\n{"platform": "tvos", "files": []}\n```')
        assert plan.platform == "tvos"


class TestPreparePlan:
    def test_defaults_to_ios(self) -> None:
        prepared = prepare_plan(_plan())
        assert prepared.plan.platform == "ios"
        assert prepared.warnings == []

    def test_unknown_platform_warns(self) -> None:
        prepared = prepare_plan(_plan(platform="android"))
        assert prepared.plan.platform == "ios"
        assert any("android" in w for w in prepared.warnings)

    def test_first_valid_multi_platform_entry_is_primary(self) -> None:
        prepared = prepare_plan(_plan(platforms=["bogus", "tvos", "ios", "tvos"]))
        assert prepared.plan.platform == "tvos"
        assert prepared.plan.platforms == ["tvos", "ios"]
        assert prepared.plan.is_multi_platform()

    def test_watch_without_shape_defaults_to_standalone(self) -> None:
        prepared = prepare_plan(_plan(platform="watchos", device_family="iphone"))
        assert prepared.plan.get_watch_project_shape() == "watch_only"
        assert prepared.plan.device_family == ""

    def test_multi_with_watch_defaults_to_paired(self) -> None:
        prepared = prepare_plan(_plan(platforms=["ios", "watchos"]))
        assert prepared.plan.watch_project_shape == "paired_ios_watch"

    def test_shape_on_phone_plan_switches_to_watch(self) -> None:
        prepared = prepare_plan(_plan(platform="ios", watch_project_shape="paired_ios_watch"))
        assert prepared.plan.platform == "watchos"

    def test_shape_with_phone_platform_list_compiles_paired(self) -> None:
        prepared = prepare_plan(
            _plan(platforms=["ios"], watch_project_shape="paired_ios_watch"), app_name="Demo"
        )
        plan = prepared.plan
        assert plan.platform == "watchos"
        assert plan.get_platforms() == ["watchos"]
        assert plan.get_watch_project_shape() == "paired_ios_watch"

        descriptor = compile_project("Demo", plan)
        assert [(t.name, t.type.value) for t in descriptor.targets] == [
            ("Demo", "application"),
            ("DemoWatch", "application.watchapp2"),
            ("DemoWatchExtension", "watchkit2-extension"),
        ]

    def test_invalid_watch_shape_raises(self) -> None:
        with pytest.raises(PlanValidationError, match="watch_project_shape"):
            prepare_plan(_plan(platform="watchos", watch_project_shape="companion"))

    def test_rule_keys_filtered_with_warnings(self) -> None:
        prepared = prepare_plan(_plan(platform="tvos", rule_keys=["camera", "charts"]))
        assert prepared.plan.rule_keys == ["charts"]
        assert len(prepared.warnings) == 1

    def test_multi_platform_keeps_keys_supported_anywhere(self) -> None:
        prepared = prepare_plan(
            _plan(platforms=["tvos", "ios"], rule_keys=["camera", "haptics", "charts"])
        )
        assert prepared.plan.rule_keys == ["camera", "haptics", "charts"]
        assert prepared.warnings

    def test_unsupported_extension_raises(self) -> None:
        with pytest.raises(UnsupportedExtensionError, match="live_activity"):
            prepare_plan(_plan(platform="watchos", extensions=[{"kind": "live_activity"}]))

    def test_multi_platform_extension_checked_against_its_platform(self) -> None:
        prepare_plan(
            _plan(platforms=["ios", "tvos"], extensions=[{"kind": "share"}])
        )
        with pytest.raises(UnsupportedExtensionError, match="share"):
            prepare_plan(
                _plan(platforms=["ios", "tvos"], extensions=[{"kind": "share", "platform": "tvos"}])
            )

    def test_extension_platform_outside_plan_raises(self) -> None:
        with pytest.raises(PlanValidationError, match="macos"):
            prepare_plan(
                _plan(platforms=["ios", "tvos"], extensions=[{"kind": "widget", "platform": "macos"}])
            )

    def test_empty_extension_kind_tolerated(self) -> None:
        prepared = prepare_plan(_plan(extensions=[{"kind": "  ", "name": "Helper"}]))
        assert prepared.plan.extensions[0].kind == ""

    def test_duplicate_unnamed_extensions_raise(self) -> None:
        plan = _plan(extensions=[{"kind": "widget"}, {"kind": "widget"}])
        with pytest.raises(PlanValidationError, match="DemoWidget"):
            prepare_plan(plan, app_name="Demo")

    def test_extension_named_like_app_raises(self) -> None:
        plan = _plan(extensions=[{"kind": "share", "name": "Demo"}])
        with pytest.raises(PlanValidationError, match="collides"):
            prepare_plan(plan, app_name="Demo")

    def test_extension_named_like_watch_target_raises(self) -> None:
        plan = _plan(platform="watchos", extensions=[{"kind": "widget", "name": "DemoWatchExtension"}])
        with pytest.raises(PlanValidationError, match="DemoWatchExtension"):
            prepare_plan(plan, app_name="Demo")

    def test_extension_named_like_platform_app_raises(self) -> None:
        plan = _plan(platforms=["ios", "tvos"], extensions=[{"kind": "widget", "name": "DemoTV"}])
        with pytest.raises(PlanValidationError, match="DemoTV"):
            prepare_plan(plan, app_name="Demo")

    def test_distinct_extension_names_compile(self) -> None:
        plan = _plan(extensions=[{"kind": "widget"}, {"kind": "widget", "name": "DemoClock"}])
        prepared = prepare_plan(plan, app_name="Demo")
        descriptor = compile_project("Demo", prepared.plan)
        assert [t.name for t in descriptor.targets] == ["Demo", "DemoWidget", "DemoClock"]

    def test_watch_names_free_on_phone_plans(self) -> None:
        prepare_plan(_plan(extensions=[{"kind": "widget", "name": "DemoWatch"}]), app_name="Demo")

    def test_no_files_raises(self) -> None:
        with pytest.raises(PlanValidationError, match="no files"):
            prepare_plan(BuildPlan())

    def test_packages_deduped(self) -> None:
        prepared = prepare_plan(
            _plan(packages=[{"name": "Lottie"}, {"name": " Lottie "}, {"name": ""}, {"name": "Kingfisher"}])
        )
        assert [p.name for p in prepared.plan.packages] == ["Lottie", "Kingfisher"]

    def test_input_plan_not_mutated(self) -> None:
        plan = _plan(platform="WatchOS", rule_keys=["camera"])
        prepare_plan(plan)
        assert plan.platform == "WatchOS"
        assert plan.rule_keys == ["camera"]


class TestApplyIntentHints:
    def test_fills_blank_platform_fields(self) -> None:
        decision = IntentDecision(platform_hint="ios", device_family_hint="ipad")
        plan = apply_intent_hints(_plan(), decision)
        assert plan.platform == "ios"
        assert plan.device_family == "ipad"

    def test_plan_values_win(self) -> None:
        decision = IntentDecision(platform_hint="watchos", watch_project_shape_hint="watch_only")
        plan = apply_intent_hints(_plan(platform="ios", device_family="universal"), decision)
        assert plan.platform == "ios"
        assert plan.device_family == "universal"
        assert plan.watch_project_shape == ""

    def test_multi_platform_hints(self) -> None:
        decision = IntentDecision(platform_hint="ios", platform_hints=["ios", "watchos"])
        plan = apply_intent_hints(_plan(), decision)
        assert plan.platforms == ["ios", "watchos"]
