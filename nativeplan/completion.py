"""Check that every planned source file was materialized with real content."""

from __future__ import annotations

from pathlib import Path, PurePosixPath

from pydantic import BaseModel

from nativeplan.errors import CompletionError
from nativeplan.planning.models import BuildPlan
from nativeplan.platforms import Platform, source_dir

PLACEHOLDER_BODIES = frozenset(
    {
        "// Placeholder \u2014 replaced by generated code\nimport Foundation",
        "// Placeholder - replaced by generated code\nimport Foundation",
    }
)

_DECLARATION_MARKERS = ("struct ", "class ", "enum ", "protocol ", "extension ", "actor ", "@main")

_ROOT_DIRS = ("Targets", "Shared")

OUTSIDE_PROJECT_REASON = "path resolves outside the project directory"


class PlannedFileStatus(BaseModel):
    planned_path: str
    resolved_path: str
    expected_type: str = ""
    exists: bool = False
    valid: bool = False
    reason: str = ""


class FileCompletionReport(BaseModel):
    total_planned: int = 0
    valid_count: int = 0
    missing: list[PlannedFileStatus] = []
    invalid: list[PlannedFileStatus] = []
    complete: bool = False


def resolve_planned_path(project_dir: Path, app_name: str, planned_path: str, platform: str = "") -> Path:
    """Map a planner path to its location on disk.

    Paths that already exist under the project root, or that start with
    ``Targets``, ``Shared`` or a platform source directory, are taken
    literally. Anything else lives under the platform's source directory.
    """
    root = Path(project_dir)
    clean = PurePosixPath(planned_path.replace("\\", "/").strip("/"))
    literal = root.joinpath(*clean.parts)
    if literal.exists():
        return literal

    first = clean.parts[0] if clean.parts else ""
    known = {*_ROOT_DIRS, *(source_dir(app_name, p) for p in Platform)}
    if first in known:
        return literal
    return root / source_dir(app_name, platform or Platform.IOS.value) / Path(*clean.parts)


def is_placeholder_only(content: str) -> bool:
    trimmed = content.replace("\r\n", "\n").strip()
    if trimmed in PLACEHOLDER_BODIES:
        return True
    if "placeholder" in trimmed.lower():
        return not any(marker in trimmed for marker in _DECLARATION_MARKERS)
    return False


def _within(root: Path, path: Path) -> bool:
    return path.resolve().is_relative_to(root.resolve())


def _check_file(status: PlannedFileStatus, root: Path) -> None:
    path = Path(status.resolved_path)
    if not _within(root, path):
        status.reason = OUTSIDE_PROJECT_REASON
        return
    try:
        is_dir = path.is_dir()
        exists = is_dir or path.exists()
    except OSError as e:
        status.exists = True
        status.reason = f"unable to stat file: {e}"
        return
    if not exists:
        status.reason = "file does not exist"
        return

    status.exists = True
    if is_dir:
        status.reason = "path resolves to a directory, expected a file"
        return

    try:
        content = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        status.reason = f"failed to read file: {e}"
        return

    if not content.strip():
        status.reason = "file is empty"
    elif is_placeholder_only(content):
        status.reason = "placeholder-only content"
    elif status.expected_type and status.expected_type not in content:
        status.reason = f"missing expected type '{status.expected_type}'"
    else:
        status.valid = True


def verify_planned_files(project_dir: Path, app_name: str, plan: BuildPlan | None) -> FileCompletionReport:
    """Produce a fresh completion report for ``plan`` against ``project_dir``."""
    if plan is None:
        raise ValueError("cannot verify file completion without a build plan")

    report = FileCompletionReport(total_planned=len(plan.files))
    for planned in plan.files:
        status = PlannedFileStatus(
            planned_path=planned.path,
            resolved_path=str(
                resolve_planned_path(
                    project_dir, app_name, planned.path, planned.platform or plan.get_platform()
                )
            ),
            expected_type=planned.type_name.strip(),
        )
        _check_file(status, Path(project_dir))
        if status.valid:
            report.valid_count += 1
        elif status.exists or status.reason == OUTSIDE_PROJECT_REASON:
            report.invalid.append(status)
        else:
            report.missing.append(status)

    report.missing.sort(key=lambda s: s.planned_path)
    report.invalid.sort(key=lambda s: s.planned_path)
    report.complete = (
        report.valid_count == report.total_planned and not report.missing and not report.invalid
    )
    return report


def unresolved_statuses(report: FileCompletionReport | None) -> list[PlannedFileStatus]:
    if report is None:
        return []
    return sorted([*report.missing, *report.invalid], key=lambda s: s.planned_path)


def format_incomplete_report(report: FileCompletionReport | None) -> str:
    if report is None:
        return "no completion report available"
    lines: list[str] = []
    for title, statuses in (("Missing files:", report.missing), ("Invalid files:", report.invalid)):
        if statuses:
            lines.append(title)
            lines.extend(f"- {s.planned_path} ({s.reason})" for s in statuses)
    return "\n".join(lines) if lines else "all files are complete"


def should_retry(report: FileCompletionReport | None, pass_number: int, max_passes: int) -> bool:
    """Decide whether another materialization pass is needed.

    Raises CompletionError when the report is missing or when the pass
    budget is spent with files still unresolved.
    """
    if report is None:
        raise CompletionError("file completion check failed: missing verification report")
    if report.complete:
        return False
    if pass_number >= max_passes:
        summary = format_incomplete_report(report)
        raise CompletionError(
            f"file completion check failed after {pass_number} passes:\n{summary}",
            report=report,
            passes=pass_number,
            summary=summary,
        )
    return True
