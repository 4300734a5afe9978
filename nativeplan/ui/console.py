"""Rich console output for nativeplan."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from nativeplan import __version__
from nativeplan.platforms import display_name

if TYPE_CHECKING:
    from nativeplan.completion import FileCompletionReport
    from nativeplan.descriptor.models import ProjectDescriptor
    from nativeplan.intent.models import IntentDecision
    from nativeplan.orchestrator import BuildResult
    from nativeplan.phases import Phase

# Pricing per million tokens (input, output)
MODEL_PRICING: dict[str, tuple[float, float]] = {
    "claude-sonnet-4-20250514": (3.0, 15.0),
    "claude-haiku-4-5-20251001": (1.0, 5.0),
    "gpt-4o": (2.50, 10.0),
    "gpt-4o-mini": (0.15, 0.60),
}


def estimate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    input_price, output_price = MODEL_PRICING.get(model, (3.0, 15.0))
    return input_tokens / 1_000_000 * input_price + output_tokens / 1_000_000 * output_price


class ConsoleUI:
    """Rich-powered console output for nativeplan runs."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def header(self, app_name: str, platforms: list[str]) -> None:
        names = ", ".join(display_name(p) for p in platforms) or "iOS"
        self.console.print(
            Panel(
                f"[bold white]{app_name}[/bold white]\nPlatforms: [cyan]{names}[/cyan]",
                title=f"[bold blue]nativeplan[/bold blue] v{__version__}",
                border_style="blue",
            )
        )

    def phase_banner(self, phase: Phase, message: str) -> None:
        colors = {"INTENT": "cyan", "COMPILE": "yellow", "COMPLETE": "green"}
        color = colors.get(phase.value, "white")
        self.console.print(f"\n[{color} bold]▶ [{phase.value}][/{color} bold] {message}")

    def warnings(self, warnings: list[str]) -> None:
        for warning in warnings:
            self.console.print(f"  [yellow]![/yellow] [dim]{warning}[/dim]")

    def error(self, message: str) -> None:
        self.console.print(f"[red]Error:[/red] {escape(message)}")

    def intent_decision(self, decision: IntentDecision) -> None:
        table = Table(title="Intent Decision", show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        table.add_row("Operation", decision.operation)
        table.add_row("Platform", decision.platform_hint)
        if decision.platform_hints:
            table.add_row("Platforms", ", ".join(decision.platform_hints))
        if decision.device_family_hint:
            table.add_row("Device family", decision.device_family_hint)
        if decision.watch_project_shape_hint:
            table.add_row("Watch shape", decision.watch_project_shape_hint)
        table.add_row("Confidence", f"{decision.confidence:.2f}")
        table.add_row("Reason", decision.reason)
        table.add_row("Source", "model" if decision.used_llm else "default")
        self.console.print(table)

    def target_table(self, descriptor: ProjectDescriptor) -> None:
        table = Table(title=f"Targets ({descriptor.name})", show_header=True, header_style="bold")
        table.add_column("Target", style="cyan")
        table.add_column("Type")
        table.add_column("Platform")
        table.add_column("Bundle ID")
        table.add_column("Embeds", style="dim")

        for t in descriptor.targets:
            embeds = ", ".join(d.target for d in t.dependencies)
            table.add_row(t.name, t.type.value, t.platform, t.bundle_id, embeds)

        self.console.print(table)

    def completion_table(self, report: FileCompletionReport, pass_number: int) -> None:
        title = f"Completion pass {pass_number}: {report.valid_count}/{report.total_planned} valid"
        if report.complete:
            self.console.print(f"  [green]✓[/green] {title}")
            return

        table = Table(title=title, show_header=True, header_style="bold")
        table.add_column("Planned path", style="cyan")
        table.add_column("Status", justify="center")
        table.add_column("Reason")
        for status in report.missing:
            table.add_row(status.planned_path, "[red]missing[/red]", status.reason)
        for status in report.invalid:
            table.add_row(status.planned_path, "[yellow]invalid[/yellow]", status.reason)
        self.console.print(table)

    def cost_summary(self, input_tokens: int, output_tokens: int, provider: str, model: str) -> None:
        """Show estimated cost of a routing call."""
        cost = estimate_cost(model, input_tokens, output_tokens)
        self.console.print(
            f"\n  [dim]Tokens: {input_tokens:,} in / {output_tokens:,} out "
            f"| Estimated cost: ${cost:.4f} ({provider}/{model})[/dim]"
        )

    def final_summary(
        self, result: BuildResult | None, run_dir: Path, error: str = ""
    ) -> None:
        """Show the run summary, on success and on failure."""
        if result is not None and result.complete:
            status = "[bold green]COMPLETE[/bold green]"
            border = "green"
        else:
            status = "[bold red]INCOMPLETE[/bold red]"
            border = "red"

        lines = [f"  Status:      {status}"]
        if result is not None:
            lines += [
                f"  App:         [bold]{result.app_name}[/bold]",
                f"  Bundle ID:   {result.bundle_id}",
                f"  Files:       {result.completed_files}/{result.planned_files} valid",
                f"  Passes:      {result.passes}",
            ]
            if result.session_id:
                lines.append(f"  Session:     {result.session_id}")
        if error:
            lines.append(f"  Error:       {error.splitlines()[0][:100]}")

        lines.append("")
        if result is not None:
            lines.append(f"  Project:     [cyan]{result.project_dir}[/cyan]")
        lines.append(f"  Event log:   [cyan]{run_dir / 'events.jsonl'}[/cyan]")
        if result is not None:
            lines.append(
                f"  Cost:        ${result.cost_usd:.4f} "
                f"({result.input_tokens:,} in / {result.output_tokens:,} out)"
            )

        title = result.app_name if result is not None else "run"
        self.console.print(
            Panel(
                "\n".join(lines),
                title=f"[bold]nativeplan: {title}[/bold]",
                border_style=border,
                padding=(1, 2),
            )
        )
