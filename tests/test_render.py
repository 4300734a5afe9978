"""Tests for project.yml rendering and project file output."""

from __future__ import annotations

import json
from pathlib import Path

import yaml

from nativeplan.config.settings import NativeplanSettings
from nativeplan.descriptor.compiler import compile_project
from nativeplan.descriptor.render import project_config, render_project_yaml, write_project_files
from nativeplan.planning.models import BuildPlan
from nativeplan.planning.parser import prepare_plan


def _prepared(data: dict) -> BuildPlan:
    return prepare_plan(BuildPlan.model_validate(data)).plan


class TestRenderProjectYaml:
    def test_top_level_layout(self, simple_plan: BuildPlan) -> None:
        plan = prepare_plan(simple_plan).plan
        text = render_project_yaml(compile_project("NotesApp", plan))
        doc = yaml.safe_load(text)
        assert list(doc) == ["name", "options", "targets"]
        assert doc["name"] == "NotesApp"
        assert doc["options"]["bundleIdPrefix"] == "com.app"
        assert doc["options"]["deploymentTarget"] == {"iOS": "26.0"}
        assert doc["options"]["xcodeVersion"] == "16.0"
        target = doc["targets"]["NotesApp"]
        assert target["type"] == "application"
        assert target["sources"] == [{"path": "NotesApp", "type": "syncedFolder"}]
        assert target["settings"]["base"]["INFOPLIST_KEY_NSCameraUsageDescription"] == "Scan documents"

    def test_no_anchors_or_aliases(self) -> None:
        plan = _prepared(
            {
                "platforms": ["ios", "watchos"],
                "extensions": [{"kind": "widget"}, {"kind": "share"}],
                "files": [{"path": "A.swift"}],
            }
        )
        text = render_project_yaml(compile_project("Trips", plan))
        assert "&id" not in text
        assert "*id" not in text

    def test_target_order_preserved(self) -> None:
        plan = _prepared({"platforms": ["ios", "tvos"], "files": [{"path": "A.swift"}]})
        doc = yaml.safe_load(render_project_yaml(compile_project("Trips", plan)))
        assert list(doc["targets"]) == ["Trips", "TripsTV"]
        assert doc["schemes"]["TripsTV"] == {
            "build": {"targets": {"TripsTV": "all"}},
            "run": {"executable": "TripsTV"},
        }

    def test_embed_dependencies_rendered(self) -> None:
        plan = _prepared({"platform": "watchos", "files": [{"path": "A.swift"}]})
        doc = yaml.safe_load(render_project_yaml(compile_project("Pulse", plan)))
        assert doc["targets"]["Pulse"]["dependencies"] == [{"target": "PulseWatch", "embed": True}]
        assert doc["targets"]["PulseWatch"]["type"] == "application.watchapp2"


class TestProjectConfig:
    def test_fields(self, simple_plan: BuildPlan) -> None:
        plan = prepare_plan(simple_plan).plan
        config = project_config("NotesApp", plan, compile_project("NotesApp", plan))
        assert config["app_name"] == "NotesApp"
        assert config["bundle_id"] == "com.app.notesapp"
        assert config["platform"] == "ios"
        assert config["platforms"] == ["ios"]
        assert config["device_family"] == "iphone"
        assert config["watch_project_shape"] == ""
        assert config["targets"] == ["NotesApp"]
        assert config["schemes"] == []
        assert config["permissions"][0]["key"] == "NSCameraUsageDescription"

    def test_watch_has_no_device_family(self) -> None:
        plan = _prepared({"platform": "watchos", "files": [{"path": "A.swift"}]})
        config = project_config("Pulse", plan, compile_project("Pulse", plan))
        assert config["device_family"] == ""
        assert config["watch_project_shape"] == "watch_only"

    def test_extension_entries(self) -> None:
        plan = _prepared(
            {"extensions": [{"kind": "widget", "purpose": "Glance"}], "files": [{"path": "A.swift"}]}
        )
        config = project_config("Notes", plan, compile_project("Notes", plan))
        assert config["extensions"] == [
            {"kind": "widget", "name": "NotesWidget", "platform": "ios", "purpose": "Glance"}
        ]


class TestWriteProjectFiles:
    def test_writes_both_files(self, simple_plan: BuildPlan, tmp_path: Path) -> None:
        plan = prepare_plan(simple_plan).plan
        descriptor = compile_project("NotesApp", plan)
        target = tmp_path / "out" / "NotesApp"

        paths = write_project_files(target, "NotesApp", plan, descriptor)

        assert [p.name for p in paths] == ["project.yml", "project_config.json"]
        assert paths[0].read_text(encoding="utf-8") == render_project_yaml(descriptor)
        text = paths[1].read_text(encoding="utf-8")
        assert text.endswith("\n")
        assert json.loads(text)["app_name"] == "NotesApp"

    def test_filenames_from_settings(self, simple_plan: BuildPlan, tmp_path: Path) -> None:
        plan = prepare_plan(simple_plan).plan
        settings = NativeplanSettings(
            _env_file=None,  # type: ignore[call-arg]
            descriptor_filename="xcodegen.yml",
            project_config_filename="config.json",
        )
        paths = write_project_files(
            tmp_path, "NotesApp", plan, compile_project("NotesApp", plan), settings
        )
        assert [p.name for p in paths] == ["xcodegen.yml", "config.json"]
        assert all(p.exists() for p in paths)

    def test_rewrite_is_identical(self, simple_plan: BuildPlan, tmp_path: Path) -> None:
        plan = prepare_plan(simple_plan).plan
        first = write_project_files(tmp_path, "NotesApp", plan, compile_project("NotesApp", plan))
        before = [p.read_bytes() for p in first]
        second = write_project_files(tmp_path, "NotesApp", plan, compile_project("NotesApp", plan))
        assert [p.read_bytes() for p in second] == before
