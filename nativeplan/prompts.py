"""Prompt text for the intent router and the file-materializing agent."""

from __future__ import annotations

from pathlib import Path

from nativeplan.completion import FileCompletionReport, unresolved_statuses
from nativeplan.descriptor.extensions import extension_target_name
from nativeplan.planning.models import BuildPlan, FilePlan
from nativeplan.platforms import (
    Platform,
    build_destination,
    display_name,
    source_dir,
)

INTENT_ROUTER_SYSTEM_PROMPT = """\
You are an intent router for a native app generation pipeline.
Hints are advisory only and must reflect explicit user wording.

Classify the user's request and return a JSON object matching this schema:

{
  "operation": "build|edit|fix",
  "platform_hint": "ios|watchos|tvos|visionos|macos",
  "platform_hints": ["ios", "watchos"],
  "device_family_hint": "iphone|ipad|universal",
  "watch_project_shape_hint": "watch_only|paired_ios_watch",
  "confidence": 0.0,
  "reason": "one sentence"
}

Rules:
- Default to "build" and "ios" when the request does not say otherwise.
- Only fill platform_hints when the user explicitly asks for more than one platform.
- device_family_hint applies to ios only; leave it empty for other platforms.
- watch_project_shape_hint applies to watchos only. Use "paired_ios_watch" when the
  user mentions a companion iPhone app, otherwise "watch_only".
- confidence is a number between 0 and 1.

Respond ONLY with the JSON object, no markdown fences or explanation.
"""

BUILDER_SYSTEM_PROMPT = """\
You are a senior Apple platform engineer writing a SwiftUI app into an existing
XcodeGen project. The project file is already generated; do not edit project.yml
by hand. Write every planned file with real, compiling Swift code.
"""

RECOVERY_SYSTEM_SUFFIX = """
## Completion Recovery Mode
Only complete the unresolved planned files listed in the user message.
Do not mark work done until every listed file exists, contains its expected type, and the build succeeds.
"""


def format_intent_hints(request: str) -> str:
    return f"User request:\n{request.strip()}"


def appearance_description(plan: BuildPlan) -> str:
    if plan.has_rule_key("dark-mode"):
        return "adaptive (light/dark/system via user preference, use Color(.label) for text)"
    return "locked to Light (use Color(.label) for text, system chrome is light)"


def _file_entry(f: FilePlan) -> str:
    tag = f" [{f.platform}]" if f.platform else ""
    components = ", ".join(f.components) or "-"
    return (
        f"- {f.path} ({f.type_name}){tag}: {f.purpose}\n"
        f"  Components: {components}\n"
        f"  Data access: {f.data_access or '-'}\n"
    )


def files_in_build_order(plan: BuildPlan) -> list[FilePlan]:
    """Files listed in ``build_order`` first, then the rest in plan order."""
    by_path = {f.path: f for f in plan.files}
    ordered: list[FilePlan] = []
    seen: set[str] = set()
    for path in plan.build_order:
        if path in by_path and path not in seen:
            ordered.append(by_path[path])
            seen.add(path)
    ordered.extend(f for f in plan.files if f.path not in seen)
    return ordered


def scheme_for_platform(app_name: str, platform: str) -> str:
    if platform in (Platform.IOS, Platform.WATCHOS):
        return app_name
    return source_dir(app_name, platform)


def build_commands(app_name: str, plan: BuildPlan) -> list[str]:
    """One xcodebuild invocation per scheme that has to compile."""
    if not plan.is_multi_platform():
        destination = build_destination(plan.get_platform(), plan.get_watch_project_shape())
        return [_xcodebuild(app_name, app_name, destination)]

    commands: list[str] = []
    seen: set[str] = set()
    for platform in plan.get_platforms():
        scheme = scheme_for_platform(app_name, platform)
        if scheme in seen:
            continue
        seen.add(scheme)
        target_platform = Platform.IOS.value if platform == Platform.WATCHOS else platform
        commands.append(_xcodebuild(app_name, scheme, build_destination(target_platform)))
    return commands


def _xcodebuild(app_name: str, scheme: str, destination: str) -> str:
    return f"xcodebuild -project {app_name}.xcodeproj -scheme {scheme} -destination '{destination}' -quiet build"


def _numbered(lines: list[str], start: int) -> str:
    return "".join(f"{i}. {line}\n" for i, line in enumerate(lines, start=start))


def build_plan_section(app_name: str, plan: BuildPlan) -> str:
    """The plan summary appended to the agent's system prompt."""
    d = plan.design
    p = d.palette
    parts = [
        "<build-plan>\n",
        "## Design\n",
        f"Navigation: {d.navigation}\n",
        f"Palette: primary={p.primary}, secondary={p.secondary}, accent={p.accent}, "
        f"background={p.background}, surface={p.surface}\n",
        f"Appearance: {appearance_description(plan)}\n",
        f"Font: {d.font_design}, Corner radius: {d.corner_radius}, Density: {d.density}, "
        f"Surfaces: {d.surfaces}, Mood: {d.app_mood}\n",
    ]

    if plan.models:
        parts.append("\n### Models\n")
        for m in plan.models:
            parts.append(f"- {m.name} ({m.storage}):\n")
            for prop in m.properties:
                default = f" = {prop.default_value}" if prop.default_value else ""
                parts.append(f"  - {prop.name}: {prop.type}{default}\n")

    parts.append("\n## Files (build in this order)\n")
    parts.extend(_file_entry(f) for f in files_in_build_order(plan))

    if plan.permissions:
        parts.append("\n### Permissions\n")
        for perm in plan.permissions:
            parts.append(f'- {perm.key}: "{perm.description}" (framework: {perm.framework})\n')

    if plan.extensions:
        parts.append("\n### Extensions\n")
        for ext in plan.extensions:
            name = extension_target_name(ext, app_name)
            parts.append(
                f"- {name} (kind: {ext.kind}): {ext.purpose}\n  Source path: Targets/{name}/\n"
            )

    if plan.localizations:
        parts.append(f"\n### Localizations: {', '.join(plan.localizations)}\n")

    if plan.packages:
        parts.append("\n### Swift Packages\n")
        for pkg in plan.packages:
            where = f" {pkg.url}" if pkg.url else ""
            version = f" ({pkg.version})" if pkg.version else ""
            parts.append(f"- {pkg.name}{where}{version}: {pkg.reason}\n")

    parts.append("</build-plan>\n")
    return "".join(parts)


def build_prompts(app_name: str, plan: BuildPlan, description: str = "") -> tuple[str, str]:
    """System and user prompt for the first materialization pass."""
    system = BUILDER_SYSTEM_PROMPT + "\n" + build_plan_section(app_name, plan)
    commands = build_commands(app_name, plan)

    header = f"Build the {app_name} app following the plan in the system prompt.\n"
    if description.strip():
        header += f"\nApp description: {description.strip()}\n"

    before = (
        "\nBEFORE WRITING CODE:\n"
        "1. List all files in the project directory to understand the existing structure\n"
        "2. Read project_config.json to understand the project configuration\n"
        "Then proceed with writing code.\n"
    )

    if plan.is_multi_platform():
        dirs = "".join(
            f'- {source_dir(app_name, p)}/ holds {display_name(p)} sources (files with platform "{p}")\n'
            for p in plan.get_platforms()
        )
        dirs += '- Shared/ holds cross-platform code (files without a platform)\n'
        steps = [
            "The Xcode project is already configured with targets for all platforms.",
            "Write ALL Swift files under the correct platform source directory based on the file's platform tag.",
            "Extension files go under Targets/{ExtensionName}/.",
            "Shared cross-platform types go under Shared/.",
            "After writing ALL files for ALL platforms, build each scheme in sequence:\n"
            + "".join(f"   - {cmd}\n" for cmd in commands).rstrip("\n"),
            "If any build fails, read the errors, fix the Swift code, and rebuild.",
            "Repeat until all builds succeed.",
            f"If Xcode says a scheme is missing, run: xcodebuild -list -project {app_name}.xcodeproj and use the listed schemes.",
        ]
        body = f"\nMULTI-PLATFORM SOURCE DIRECTORIES:\n{dirs}\nINSTRUCTIONS:\n{_numbered(steps, 1)}"
    else:
        steps = [
            f"The Xcode project is already configured. Write ALL Swift files under "
            f"{source_dir(app_name, plan.get_platform())}/ following the plan file paths exactly.",
            "Extension files go under Targets/{ExtensionName}/.",
            "Shared types go under Shared/.",
            f"After writing ALL files, run: {commands[0]}",
            "If the build fails, read the errors, fix the Swift code, and rebuild.",
            "Repeat until the build succeeds.",
            f"If Xcode says the scheme is missing, run: xcodebuild -list -project {app_name}.xcodeproj and use the listed app scheme.",
        ]
        body = f"\nINSTRUCTIONS:\n{_numbered(steps, 1)}"

    footer = (
        "\nIMPORTANT:\n"
        "- Write files in the build order specified in the plan\n"
        "- Use the exact type names and file paths from the plan\n"
        "- Every View must have a #Preview block\n"
    )
    return system, header + before + body + footer


def recovery_prompts(
    app_name: str, project_dir: Path, plan: BuildPlan, report: FileCompletionReport
) -> tuple[str, str]:
    """System and user prompt targeting only the unresolved planned files."""
    system = BUILDER_SYSTEM_PROMPT + RECOVERY_SYSTEM_SUFFIX
    planned = {f.path: f for f in plan.files}
    root = Path(project_dir)

    entries: list[str] = []
    for status in unresolved_statuses(report):
        f = planned.get(status.planned_path)
        disk = Path(status.resolved_path)
        try:
            disk_path = disk.relative_to(root).as_posix()
        except ValueError:
            disk_path = disk.as_posix()
        lines = [f"- Planned path: {status.planned_path}", f"  Disk path: {disk_path}"]
        if f is not None and f.platform:
            lines.append(f"  Platform: {f.platform}")
        if status.expected_type:
            lines.append(f"  Expected type: {status.expected_type}")
        if f is not None and f.purpose:
            lines.append(f"  Purpose: {f.purpose}")
        if status.reason:
            lines.append(f"  Current issue: {status.reason}")
        entries.append("\n".join(lines) + "\n")

    commands = build_commands(app_name, plan)
    if plan.is_multi_platform():
        steps = [
            "Create/fix ONLY the unresolved files listed above.",
            "Ensure each file contains the expected type name exactly.",
            "Place files in the correct platform source directory based on the Platform field.",
            "Keep existing already-valid files unchanged unless required for imports/signatures.",
            "Build each scheme in sequence:\n"
            + "".join(f"   - {cmd}\n" for cmd in commands).rstrip("\n"),
            "If any build fails, fix issues and rebuild.",
            f"If a scheme is missing, run: xcodebuild -list -project {app_name}.xcodeproj and use the listed schemes.",
            "Stop only when every unresolved file is complete and all builds succeed.",
        ]
    else:
        steps = [
            "Create/fix ONLY the unresolved files listed above.",
            "Ensure each file contains the expected type name exactly.",
            "Keep existing already-valid files unchanged unless required for imports/signatures.",
            f"Run: {commands[0]}",
            "If build fails, fix issues and rebuild.",
            f"If the scheme is missing, run: xcodebuild -list -project {app_name}.xcodeproj and use the listed app scheme.",
            "Stop only when every unresolved file is complete and the build succeeds.",
        ]

    user = (
        "Complete the unresolved files from the original build plan.\n\n"
        f"Unresolved files:\n{''.join(entries)}\n"
        f"Required process:\n{_numbered(steps, 1)}"
    )
    return system, user
