"""CLI entry point using Typer."""

from __future__ import annotations

import asyncio
import json
import shutil
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console

from nativeplan import __version__

if TYPE_CHECKING:
    from nativeplan.config.settings import NativeplanSettings
    from nativeplan.planning.models import BuildPlan

app = typer.Typer(
    name="nativeplan",
    help="Turn build plans into XcodeGen projects and verify generated sources",
    no_args_is_help=True,
)
console = Console()

EXIT_RETRY = 2


def _load_settings(**overrides: object) -> NativeplanSettings:
    from nativeplan.config.settings import load_settings

    try:
        return load_settings(**overrides)
    except ValueError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1) from None


def _read_plan(path: Path) -> BuildPlan:
    from nativeplan.errors import MalformedPlanError
    from nativeplan.planning.parser import parse_plan

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        console.print(f"[red]Cannot read plan:[/red] {e}")
        raise typer.Exit(1) from None
    try:
        return parse_plan(text)
    except MalformedPlanError as e:
        console.print(f"[red]Malformed plan:[/red] {e}")
        raise typer.Exit(1) from None


@app.command()
def intent(
    file: Path = typer.Argument(..., help="File holding the router's JSON decision"),
    default_platform: str = typer.Option(
        None, "--default-platform", help="Platform used when the decision names none"
    ),
) -> None:
    """Normalize an intent decision produced by a routing model."""
    from nativeplan.errors import MalformedIntentError
    from nativeplan.intent.normalizer import (
        default_intent_decision,
        finalize_intent_decision,
        parse_intent_decision,
    )
    from nativeplan.platforms import PLATFORM_VALUES
    from nativeplan.ui.console import ConsoleUI

    fallback = default_intent_decision()
    if default_platform:
        platform = default_platform.strip().lower()
        if platform not in PLATFORM_VALUES:
            console.print(f"[red]Unknown platform:[/red] {default_platform}")
            raise typer.Exit(1)
        fallback.platform_hint = platform

    try:
        parsed = parse_intent_decision(file.read_text(encoding="utf-8"))
    except OSError as e:
        console.print(f"[red]Cannot read decision:[/red] {e}")
        raise typer.Exit(1) from None
    except MalformedIntentError as e:
        console.print(f"[red]Malformed intent:[/red] {e}")
        raise typer.Exit(1) from None

    decision = finalize_intent_decision(parsed, fallback)
    ConsoleUI(console).intent_decision(decision)
    console.print_json(decision.model_dump_json())


@app.command()
def route(
    request: str = typer.Argument(..., help="The user's app request"),
    provider: str = typer.Option(None, "--provider", "-p", help="LLM provider (anthropic|openai)"),
    model: str = typer.Option(None, "--model", "-m", help="LLM model override"),
) -> None:
    """Ask the configured model to classify an app request."""
    from nativeplan.errors import MalformedIntentError
    from nativeplan.intent.router import route_intent
    from nativeplan.llm import create_provider
    from nativeplan.phases import TokenTracker
    from nativeplan.ui.console import ConsoleUI

    settings = _load_settings(default_provider=provider, default_model=model)
    try:
        llm = create_provider(settings)
    except ValueError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1) from None

    tokens = TokenTracker()
    try:
        decision = asyncio.run(route_intent(request, llm, tokens=tokens, model=settings.default_model))
    except MalformedIntentError as e:
        console.print(f"[red]Intent routing failed:[/red] {e}")
        raise typer.Exit(1) from None

    ui = ConsoleUI(console)
    ui.intent_decision(decision)
    ui.cost_summary(
        tokens.input_tokens,
        tokens.output_tokens,
        settings.default_provider or type(llm).__name__.removesuffix("Provider").lower(),
        getattr(llm, "model", settings.default_model or ""),
    )


@app.command(name="compile")
def compile_(
    plan: Path = typer.Option(..., "--plan", help="Path to the build plan JSON"),
    app_name: str = typer.Option(..., "--app-name", "-n", help="Application name"),
    dir: Path = typer.Option(Path("."), "--dir", "-d", help="Project directory to write into"),
    bundle_prefix: str = typer.Option(None, "--bundle-prefix", help="Bundle identifier prefix"),
) -> None:
    """Compile a build plan into project.yml and project_config.json."""
    from nativeplan.capabilities import load_capability_table
    from nativeplan.descriptor.compiler import CompileOptions, compile_project
    from nativeplan.descriptor.render import write_project_files
    from nativeplan.errors import NativeplanError
    from nativeplan.planning.parser import prepare_plan
    from nativeplan.ui.console import ConsoleUI

    settings = _load_settings(bundle_id_prefix=bundle_prefix)
    build_plan = _read_plan(plan)
    ui = ConsoleUI(console)

    try:
        table = load_capability_table(settings.capability_table)
        prepared = prepare_plan(build_plan, table, app_name=app_name)
        descriptor = compile_project(app_name, prepared.plan, CompileOptions.from_settings(settings))
        written = write_project_files(dir, app_name, prepared.plan, descriptor, settings)
    except (NativeplanError, OSError) as e:
        ui.error(str(e))
        raise typer.Exit(1) from None

    ui.warnings(prepared.warnings)
    ui.target_table(descriptor)
    for path in written:
        console.print(f"[green]Wrote {path}[/green]")


@app.command()
def verify(
    plan: Path = typer.Option(..., "--plan", help="Path to the build plan JSON"),
    app_name: str = typer.Option(..., "--app-name", "-n", help="Application name"),
    dir: Path = typer.Option(Path("."), "--dir", "-d", help="Project directory"),
    pass_number: int = typer.Option(1, "--pass", help="Current completion pass"),
    max_passes: int = typer.Option(None, "--max-passes", help="Pass budget"),
) -> None:
    """Check planned files. Exit 0 when complete, 2 when another pass is due, 1 on failure."""
    from nativeplan.capabilities import load_capability_table
    from nativeplan.completion import format_incomplete_report, should_retry, verify_planned_files
    from nativeplan.errors import CompletionError, NativeplanError
    from nativeplan.planning.parser import prepare_plan
    from nativeplan.ui.console import ConsoleUI

    settings = _load_settings(max_completion_passes=max_passes)
    ui = ConsoleUI(console)

    try:
        table = load_capability_table(settings.capability_table)
        prepared = prepare_plan(_read_plan(plan), table, app_name=app_name)
    except NativeplanError as e:
        ui.error(str(e))
        raise typer.Exit(1) from None

    report = verify_planned_files(dir, app_name, prepared.plan)
    ui.completion_table(report, pass_number)

    try:
        retry = should_retry(report, pass_number, settings.max_completion_passes)
    except CompletionError as e:
        ui.error(str(e))
        raise typer.Exit(1) from None

    if retry:
        console.print(format_incomplete_report(report))
        raise typer.Exit(EXIT_RETRY)
    console.print("[green]All planned files are complete.[/green]")


PLAN_TEMPLATE = {
    "platform": "ios",
    "device_family": "iphone",
    "design": {
        "navigation": "tab",
        "palette": {
            "primary": "#3B82F6",
            "secondary": "#6366F1",
            "accent": "#F59E0B",
            "background": "#F8FAFC",
            "surface": "#FFFFFF",
        },
        "font_design": "rounded",
        "corner_radius": 12,
        "density": "comfortable",
        "surfaces": "cards",
        "app_mood": "calm",
    },
    "files": [
        {
            "path": "App/MyApp.swift",
            "type_name": "MyApp",
            "purpose": "App entry point",
            "components": ["WindowGroup"],
        },
        {
            "path": "Features/Home/HomeView.swift",
            "type_name": "HomeView",
            "purpose": "Main screen",
            "components": ["List", "NavigationStack"],
        },
    ],
    "models": [],
    "permissions": [],
    "extensions": [],
    "localizations": ["en"],
    "rule_keys": [],
    "build_order": ["App/MyApp.swift", "Features/Home/HomeView.swift"],
    "packages": [],
}


@app.command()
def init() -> None:
    """Create a build plan template."""
    path = Path("plan.json")
    if path.exists():
        for i in range(1, 100):
            path = Path(f"plan-{i}.json")
            if not path.exists():
                break

    path.write_text(json.dumps(PLAN_TEMPLATE, indent=2) + "\n", encoding="utf-8")
    console.print(
        f"[green]Created {path}[/green]; edit it and run: "
        f"nativeplan compile --plan {path} --app-name MyApp"
    )


@app.command()
def doctor() -> None:
    """Check environment for nativeplan requirements."""
    console.print(f"[bold]nativeplan doctor[/bold] v{__version__}\n")

    checks: list[tuple[str, bool, str, bool]] = []

    v = sys.version_info
    checks.append(("Python ≥ 3.12", v >= (3, 12), f"{v.major}.{v.minor}.{v.micro}", True))

    for tool in ("xcodegen", "xcodebuild"):
        found = shutil.which(tool)
        checks.append((tool, found is not None, found or "not found", True))

    import os

    from dotenv import load_dotenv

    load_dotenv()
    has_anthropic = bool(
        os.environ.get("NATIVEPLAN_ANTHROPIC_API_KEY") or os.environ.get("ANTHROPIC_API_KEY")
    )
    has_openai = bool(os.environ.get("NATIVEPLAN_OPENAI_API_KEY") or os.environ.get("OPENAI_API_KEY"))
    checks.append(("Anthropic API key (route)", has_anthropic, "set" if has_anthropic else "not set", False))
    checks.append(("OpenAI API key (route)", has_openai, "set" if has_openai else "not set", False))

    from nativeplan.config.settings import load_settings

    try:
        settings = load_settings()
        checks.append(("Settings", True, f"bundle prefix {settings.bundle_id_prefix}", True))
    except ValueError as e:
        checks.append(("Settings", False, str(e).splitlines()[0], True))

    for name, ok, detail, _required in checks:
        icon = "[green]✓[/green]" if ok else "[red]✗[/red]"
        detail_str = f" ({detail})" if detail else ""
        console.print(f"  {icon} {name}{detail_str}")

    all_ok = all(ok for _, ok, _, required in checks if required)
    console.print()
    if all_ok:
        console.print("[green]All checks passed![/green]")
    else:
        console.print("[yellow]Some checks failed. Fix the issues above.[/yellow]")


def main() -> None:
    app()
