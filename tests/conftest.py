"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from nativeplan.logging.events import EventLog, RunDir
from nativeplan.planning.models import BuildPlan


@pytest.fixture
def run_dir(tmp_path: Path) -> RunDir:
    """Create a temporary run directory."""
    return RunDir(base=tmp_path / "runs")


@pytest.fixture
def event_log(run_dir: RunDir) -> Iterator[EventLog]:
    """Create an event log in a temporary run directory."""
    log = EventLog(run_dir)
    yield log
    log.close()


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Create an empty project directory."""
    d = tmp_path / "project"
    d.mkdir()
    return d


@pytest.fixture
def simple_plan_data() -> dict[str, Any]:
    """A single-platform iPhone plan with two files."""
    return {
        "platform": "ios",
        "device_family": "iphone",
        "design": {"navigation": "tab", "palette": {"primary": "#000000"}},
        "files": [
            {
                "path": "App/NotesApp.swift",
                "type_name": "NotesApp",
                "purpose": "App entry point",
                "components": "WindowGroup",
            },
            {
                "path": "Features/NoteList/NoteListView.swift",
                "type_name": "NoteListView",
                "purpose": "List of notes",
                "components": ["List", "NavigationStack"],
            },
        ],
        "permissions": [
            {
                "key": "NSCameraUsageDescription",
                "description": "Scan documents",
                "framework": "AVFoundation",
            }
        ],
        "localizations": ["en"],
        "build_order": ["App/NotesApp.swift", "Features/NoteList/NoteListView.swift"],
    }


@pytest.fixture
def simple_plan(simple_plan_data: dict[str, Any]) -> BuildPlan:
    return BuildPlan.model_validate(simple_plan_data)


@pytest.fixture
def write_file(project_dir: Path) -> Callable[[str, str], Path]:
    """Write a file relative to the project directory."""

    def _write(rel: str, content: str) -> Path:
        path = project_dir / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write
