"""Phase implementations: INTENT, COMPILE, COMPLETE."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING

from nativeplan.capabilities import CapabilityTable
from nativeplan.completion import (
    FileCompletionReport,
    format_incomplete_report,
    should_retry,
    verify_planned_files,
)
from nativeplan.config.settings import NativeplanSettings
from nativeplan.descriptor.compiler import CompileOptions, compile_project
from nativeplan.descriptor.models import ProjectDescriptor
from nativeplan.descriptor.render import write_project_files
from nativeplan.errors import CompletionError
from nativeplan.intent.models import IntentDecision
from nativeplan.intent.normalizer import finalize_intent_decision
from nativeplan.intent.router import route_intent
from nativeplan.llm.base import LLMProvider, Materializer, Usage
from nativeplan.logging.events import EventLog
from nativeplan.planning.models import BuildPlan
from nativeplan.planning.parser import prepare_plan
from nativeplan.prompts import build_prompts, recovery_prompts

if TYPE_CHECKING:
    from nativeplan.ui.console import ConsoleUI


class Phase(StrEnum):
    INTENT = "INTENT"
    COMPILE = "COMPILE"
    COMPLETE = "COMPLETE"


class TokenTracker:
    """Accumulates token usage and cost across all model and agent calls."""

    def __init__(self) -> None:
        self.input_tokens = 0
        self.output_tokens = 0
        self.cache_read_tokens = 0
        self.cache_creation_tokens = 0
        self.cost_usd = 0.0

    def add(self, usage: Usage, cost_usd: float = 0.0) -> None:
        self.input_tokens += usage.input_tokens
        self.output_tokens += usage.output_tokens
        self.cache_read_tokens += usage.cache_read_tokens
        self.cache_creation_tokens += usage.cache_creation_tokens
        self.cost_usd += cost_usd


class IntentPhase:
    """Route the user request, or fall back to the default decision without a provider."""

    async def run(
        self,
        request: str,
        event_log: EventLog,
        provider: LLMProvider | None = None,
        fallback: IntentDecision | None = None,
        tokens: TokenTracker | None = None,
        model: str | None = None,
    ) -> IntentDecision:
        event_log.emit(
            phase=Phase.INTENT.value,
            event_type="phase.start",
            summary="Starting INTENT phase",
            data={"used_llm": provider is not None},
        )

        if provider is None:
            decision = finalize_intent_decision(None, fallback)
        else:
            decision = await route_intent(
                request, provider, fallback=fallback, tokens=tokens, model=model
            )

        event_log.emit(
            phase=Phase.INTENT.value,
            event_type="phase.complete",
            summary=f"Intent: {decision.operation} on {decision.platform_hint}",
            data=decision.model_dump(),
        )
        return decision


@dataclass
class CompiledProject:
    plan: BuildPlan
    descriptor: ProjectDescriptor
    warnings: list[str] = field(default_factory=list)
    written: list[Path] = field(default_factory=list)


class CompilePhase:
    """Prepare the plan, compile the target graph and write project.yml."""

    async def run(
        self,
        app_name: str,
        plan: BuildPlan,
        project_dir: Path,
        settings: NativeplanSettings,
        table: CapabilityTable,
        event_log: EventLog,
        ui: ConsoleUI | None = None,
    ) -> CompiledProject:
        event_log.emit(
            phase=Phase.COMPILE.value,
            event_type="phase.start",
            summary=f"Compiling project for {app_name}",
            data={"platforms": plan.get_platforms(), "files": len(plan.files)},
        )

        prepared = prepare_plan(plan, table, app_name=app_name)
        for warning in prepared.warnings:
            event_log.emit(
                phase=Phase.COMPILE.value,
                event_type="capability.warning",
                summary=warning,
            )
        if ui and prepared.warnings:
            ui.warnings(prepared.warnings)

        descriptor = compile_project(app_name, prepared.plan, CompileOptions.from_settings(settings))
        written = write_project_files(project_dir, app_name, prepared.plan, descriptor, settings)
        if ui:
            ui.target_table(descriptor)

        event_log.emit(
            phase=Phase.COMPILE.value,
            event_type="phase.complete",
            summary=f"Compiled {len(descriptor.targets)} targets",
            data={
                "targets": descriptor.target_names(),
                "edges": [list(edge) for edge in descriptor.embed_edges()],
                "written": [str(p) for p in written],
            },
        )
        return CompiledProject(
            plan=prepared.plan,
            descriptor=descriptor,
            warnings=prepared.warnings,
            written=written,
        )


@dataclass
class CompletionOutcome:
    report: FileCompletionReport
    passes: int
    session_id: str = ""


class CompletionPhase:
    """Drive the materializer until every planned file verifies.

    Pass 1 sends the full build prompt; later passes send a recovery prompt
    naming only unresolved files. A retry pass that does not raise the valid
    count stops the loop early.
    """

    async def run(
        self,
        app_name: str,
        plan: BuildPlan,
        project_dir: Path,
        materializer: Materializer,
        event_log: EventLog,
        max_passes: int,
        ui: ConsoleUI | None = None,
        tokens: TokenTracker | None = None,
        description: str = "",
    ) -> CompletionOutcome:
        event_log.emit(
            phase=Phase.COMPLETE.value,
            event_type="phase.start",
            summary=f"Materializing {len(plan.files)} planned files",
            data={"max_passes": max_passes},
        )

        session_id = ""
        report: FileCompletionReport | None = None
        previous_valid = -1
        pass_number = 0

        while True:
            pass_number += 1
            if report is None:
                system_prompt, prompt = build_prompts(app_name, plan, description)
            else:
                system_prompt, prompt = recovery_prompts(app_name, project_dir, plan, report)

            result = await materializer.materialize(
                prompt, system_prompt, project_dir, session_id=session_id
            )
            session_id = result.session_id or session_id
            if tokens:
                tokens.add(result.usage, result.cost_usd)

            report = verify_planned_files(project_dir, app_name, plan)
            event_log.emit(
                phase=Phase.COMPLETE.value,
                event_type="completion.pass",
                summary=f"Pass {pass_number}: {report.valid_count}/{report.total_planned} files valid",
                data={
                    "pass": pass_number,
                    "session_id": session_id,
                    "missing": [s.planned_path for s in report.missing],
                    "invalid": [s.planned_path for s in report.invalid],
                },
                result={"complete": report.complete, "valid": report.valid_count},
            )
            if ui:
                ui.completion_table(report, pass_number)

            if not should_retry(report, pass_number, max_passes):
                break
            if pass_number > 1 and report.valid_count <= previous_valid:
                summary = format_incomplete_report(report)
                raise CompletionError(
                    f"file completion stalled at pass {pass_number} "
                    f"({report.valid_count}/{report.total_planned} valid):\n{summary}",
                    report=report,
                    passes=pass_number,
                    summary=summary,
                )
            previous_valid = report.valid_count

        event_log.emit(
            phase=Phase.COMPLETE.value,
            event_type="phase.complete",
            summary=f"All {report.total_planned} planned files complete after {pass_number} passes",
            data={"passes": pass_number, "session_id": session_id},
        )
        return CompletionOutcome(report=report, passes=pass_number, session_id=session_id)
