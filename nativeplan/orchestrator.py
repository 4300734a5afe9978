"""Main orchestrator: wires the INTENT, COMPILE and COMPLETE phases together."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from rich.console import Console

from nativeplan.capabilities import load_capability_table
from nativeplan.config.settings import NativeplanSettings
from nativeplan.intent.models import IntentDecision
from nativeplan.llm.base import LLMProvider, Materializer
from nativeplan.logging.events import EventLog, RunDir
from nativeplan.phases import (
    CompilePhase,
    CompletionPhase,
    IntentPhase,
    Phase,
    TokenTracker,
)
from nativeplan.planning.models import BuildPlan
from nativeplan.planning.parser import apply_intent_hints
from nativeplan.ui.console import ConsoleUI


@dataclass
class BuildResult:
    """Outcome of a successful run."""

    app_name: str
    project_dir: Path
    bundle_id: str
    planned_files: int
    completed_files: int
    passes: int
    session_id: str
    input_tokens: int
    output_tokens: int
    cost_usd: float
    run_dir: Path
    complete: bool = True


class Orchestrator:
    """Runs one plan through intent routing, project compilation and file completion."""

    def __init__(
        self,
        settings: NativeplanSettings,
        materializer: Materializer,
        provider: LLMProvider | None = None,
        console: Console | None = None,
    ) -> None:
        self.settings = settings
        self.materializer = materializer
        self.provider = provider
        self.ui = ConsoleUI(console)

    async def run(
        self,
        app_name: str,
        plan: BuildPlan,
        project_dir: Path,
        request: str = "",
        intent: IntentDecision | None = None,
    ) -> BuildResult:
        """Execute a full run. Returns the BuildResult; errors are logged and re-raised."""
        tokens = TokenTracker()
        project_dir = Path(project_dir).resolve()
        run_dir = RunDir(self.settings.runs_dir)
        event_log = EventLog(run_dir, secrets=_runtime_secrets(self.settings))

        event_log.emit(
            phase="INIT",
            event_type="run.start",
            summary=f"Starting run: {app_name}",
            data={"project_dir": str(project_dir), "request": request},
        )
        self.ui.header(app_name, plan.get_platforms())

        try:
            if request or intent is not None:
                self.ui.phase_banner(Phase.INTENT, "Routing request...")
                decision = await IntentPhase().run(
                    request,
                    event_log,
                    provider=self.provider,
                    fallback=intent,
                    tokens=tokens,
                    model=self.settings.default_model,
                )
                run_dir.save_model(run_dir.intent_path, decision)
                plan = apply_intent_hints(plan, decision)

            self.ui.phase_banner(Phase.COMPILE, "Generating Xcode project...")
            table = load_capability_table(self.settings.capability_table)
            compiled = await CompilePhase().run(
                app_name, plan, project_dir, self.settings, table, event_log, ui=self.ui
            )
            run_dir.save_model(run_dir.plan_path, compiled.plan)

            self.ui.phase_banner(Phase.COMPLETE, "Materializing planned files...")
            outcome = await CompletionPhase().run(
                app_name,
                compiled.plan,
                project_dir,
                self.materializer,
                event_log,
                self.settings.max_completion_passes,
                ui=self.ui,
                tokens=tokens,
                description=request,
            )
            run_dir.save_model(run_dir.report_path, outcome.report)

        except Exception as e:
            report = getattr(e, "report", None)
            if report is not None:
                run_dir.save_model(run_dir.report_path, report)
            event_log.emit(
                phase="ERROR",
                event_type="run.error",
                summary=f"Run error: {e}",
                data={"error": str(e), "type": type(e).__name__},
            )
            event_log.close()
            self.ui.final_summary(None, run_dir.path, error=str(e))
            raise

        result = BuildResult(
            app_name=app_name,
            project_dir=project_dir,
            bundle_id=compiled.descriptor.targets[0].bundle_id,
            planned_files=outcome.report.total_planned,
            completed_files=outcome.report.valid_count,
            passes=outcome.passes,
            session_id=outcome.session_id,
            input_tokens=tokens.input_tokens,
            output_tokens=tokens.output_tokens,
            cost_usd=tokens.cost_usd,
            run_dir=run_dir.path,
            complete=outcome.report.complete,
        )
        event_log.emit(
            phase="DONE",
            event_type="run.complete",
            summary="Run complete",
            data={
                "run_dir": str(run_dir.path),
                "passes": result.passes,
                "input_tokens": tokens.input_tokens,
                "output_tokens": tokens.output_tokens,
                "cost_usd": tokens.cost_usd,
            },
        )
        event_log.close()
        self.ui.final_summary(result, run_dir.path)
        return result


def _runtime_secrets(settings: NativeplanSettings) -> list[str]:
    """Known runtime secrets, masked verbatim in the event log."""
    return [key for key in (settings.anthropic_api_key, settings.openai_api_key) if key]
