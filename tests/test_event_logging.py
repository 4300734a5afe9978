"""Tests for the JSONL event log and run directory."""

from __future__ import annotations

import json
import os
import re
from pathlib import Path

from nativeplan.completion import FileCompletionReport
from nativeplan.logging.events import EventLog, RunDir


class TestRunDir:
    def test_layout(self, tmp_path: Path) -> None:
        rd = RunDir(base=tmp_path, run_id="test-run")
        assert rd.path == tmp_path / "test-run"
        assert rd.path.is_dir()
        assert rd.events_path.name == "events.jsonl"
        assert rd.intent_path.name == "intent.json"
        assert rd.plan_path.name == "plan.json"
        assert rd.report_path.name == "report.json"

    def test_generated_run_id(self, tmp_path: Path) -> None:
        rd = RunDir(base=tmp_path)
        assert re.fullmatch(r"\d{8}T\d{4}Z_[0-9a-f]{8}", rd.run_id)

    def test_save_model(self, run_dir: RunDir) -> None:
        report = FileCompletionReport(total_planned=2, valid_count=2, complete=True)
        path = run_dir.save_model(run_dir.report_path, report)
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["complete"] is True
        assert os.stat(path).st_mode & 0o777 == 0o600


class TestEventLog:
    def test_emit_writes_sequenced_lines(self, run_dir: RunDir, event_log: EventLog) -> None:
        event_log.emit(phase="COMPILE", event_type="phase.start", summary="start")
        event_log.emit(
            phase="COMPILE",
            event_type="phase.complete",
            summary="done",
            data={"targets": ["A"]},
            result={"ok": True},
        )
        lines = run_dir.events_path.read_text(encoding="utf-8").splitlines()
        events = [json.loads(line) for line in lines]
        assert [e["seq"] for e in events] == [1, 2]
        assert events[0]["run_id"] == run_dir.run_id
        assert "result" not in events[0]
        assert events[1]["data"] == {"targets": ["A"]}
        assert events[1]["result"] == {"ok": True}

    def test_redacts_payload(self, run_dir: RunDir) -> None:
        log = EventLog(run_dir, secrets=["hunter2-very-secret"])
        event = log.emit(
            phase="INIT",
            event_type="run.start",
            summary="key hunter2-very-secret",
            data={"env": "ANTHROPIC_API_KEY=abc123", "nested": ["sk-ant-" + "a" * 30]},
        )
        log.close()
        assert event["summary"] == "key [REDACTED]"
        assert event["data"]["env"] == "ANTHROPIC_API_KEY=[REDACTED]"
        assert event["data"]["nested"] == ["[REDACTED]"]
        assert "hunter2" not in run_dir.events_path.read_text(encoding="utf-8")

    def test_non_json_values_stringified(self, run_dir: RunDir, event_log: EventLog) -> None:
        event_log.emit(phase="X", event_type="t", summary="s", data={"path": Path("/tmp/a")})
        line = run_dir.events_path.read_text(encoding="utf-8").strip()
        assert json.loads(line)["data"]["path"] == "/tmp/a"

    def test_owner_only_permissions(self, run_dir: RunDir, event_log: EventLog) -> None:
        event_log.emit(phase="X", event_type="t", summary="s")
        assert os.stat(run_dir.events_path).st_mode & 0o777 == 0o600

    def test_close_is_idempotent(self, run_dir: RunDir) -> None:
        log = EventLog(run_dir)
        log.close()
        log.close()
