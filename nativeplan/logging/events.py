"""JSONL event log and run directory management."""

from __future__ import annotations

import json
import os
import uuid
from collections.abc import Iterable
from contextlib import suppress
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from nativeplan.logging.redaction import redact_payload

DEFAULT_RUNS_DIR = Path(".nativeplan/runs")


def _generate_run_id() -> str:
    """Generate a run ID in format YYYYMMDDTHHMMZ_<8hex>."""
    ts = datetime.now(UTC).strftime("%Y%m%dT%H%MZ")
    return f"{ts}_{uuid.uuid4().hex[:8]}"


def _write_private(path: Path, text: str) -> None:
    fd = os.open(path, os.O_CREAT | os.O_TRUNC | os.O_WRONLY, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(text)
    with suppress(OSError):
        os.chmod(path, 0o600)


class RunDir:
    """Manages the .nativeplan/runs/<run_id>/ directory structure."""

    def __init__(self, base: Path | None = None, run_id: str | None = None) -> None:
        self.run_id = run_id or _generate_run_id()
        self.path = (base or DEFAULT_RUNS_DIR) / self.run_id
        self.path.mkdir(parents=True, exist_ok=True)

    @property
    def events_path(self) -> Path:
        return self.path / "events.jsonl"

    @property
    def intent_path(self) -> Path:
        return self.path / "intent.json"

    @property
    def plan_path(self) -> Path:
        return self.path / "plan.json"

    @property
    def report_path(self) -> Path:
        return self.path / "report.json"

    def save_model(self, path: Path, model: BaseModel) -> Path:
        """Persist a pydantic model as indented JSON, owner-readable only."""
        _write_private(path, model.model_dump_json(indent=2) + "\n")
        return path


class EventLog:
    """Append-only JSONL event log.

    Every string in an event is passed through secret redaction before it is
    written; ``secrets`` adds known values (configured API keys) to mask verbatim.
    """

    def __init__(self, run_dir: RunDir, secrets: Iterable[str] = ()) -> None:
        self.run_dir = run_dir
        self._secrets = tuple(s for s in secrets if s)
        self._seq = 0
        fd = os.open(run_dir.events_path, os.O_APPEND | os.O_CREAT | os.O_WRONLY, 0o600)
        self._file = os.fdopen(fd, "a", encoding="utf-8")
        with suppress(OSError):
            os.chmod(run_dir.events_path, 0o600)

    def emit(
        self,
        phase: str,
        event_type: str,
        summary: str,
        data: dict[str, Any] | None = None,
        result: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Append an event to the log. Returns the event dict."""
        self._seq += 1
        event: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(),
            "run_id": self.run_dir.run_id,
            "phase": phase,
            "seq": self._seq,
            "type": event_type,
            "summary": redact_payload(summary, self._secrets),
            "data": redact_payload(data or {}, self._secrets),
        }
        if result is not None:
            event["result"] = redact_payload(result, self._secrets)

        self._file.write(json.dumps(event, default=str) + "\n")
        self._file.flush()
        return event

    def close(self) -> None:
        """Flush and close the log file."""
        if self._file.closed:
            return
        self._file.flush()
        self._file.close()
