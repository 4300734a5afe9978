"""Render a ProjectDescriptor to project.yml and write the project files."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from nativeplan.descriptor.compiler import app_bundle_id
from nativeplan.descriptor.extensions import extension_target_name
from nativeplan.descriptor.models import ProjectDescriptor
from nativeplan.planning.models import BuildPlan

if TYPE_CHECKING:
    from nativeplan.config.settings import NativeplanSettings


class _NoAliasDumper(yaml.SafeDumper):
    """SafeDumper that never emits anchors for repeated values."""

    def ignore_aliases(self, data: Any) -> bool:
        return True


def render_project_yaml(descriptor: ProjectDescriptor) -> str:
    """XcodeGen YAML in construction order. Same descriptor, same text."""
    return yaml.dump(
        descriptor.to_dict(),
        Dumper=_NoAliasDumper,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
        width=4096,
    )


def project_config(
    app_name: str, plan: BuildPlan, descriptor: ProjectDescriptor
) -> dict[str, Any]:
    """Editable summary of the generated project, stored next to project.yml."""
    main = descriptor.targets[0] if descriptor.targets else None
    return {
        "app_name": app_name,
        "bundle_id": main.bundle_id
        if main
        else app_bundle_id(descriptor.bundle_id_prefix, app_name),
        "platform": plan.get_platform(),
        "platforms": plan.get_platforms(),
        "watch_project_shape": plan.get_watch_project_shape(),
        "device_family": plan.get_device_family()
        if plan.get_platform() == "ios" or plan.is_multi_platform()
        else "",
        "deployment_targets": dict(descriptor.deployment_targets),
        "permissions": [p.model_dump() for p in plan.permissions],
        "extensions": [
            {
                "kind": ext.kind,
                "name": extension_target_name(ext, app_name),
                "platform": plan.extension_platform(ext),
                "purpose": ext.purpose,
            }
            for ext in plan.extensions
        ],
        "localizations": list(plan.localizations),
        "targets": descriptor.target_names(),
        "schemes": [s.name for s in descriptor.schemes],
    }


def _write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def write_project_files(
    project_dir: Path,
    app_name: str,
    plan: BuildPlan,
    descriptor: ProjectDescriptor,
    settings: NativeplanSettings | None = None,
) -> list[Path]:
    """Write project.yml and project_config.json; return the written paths."""
    descriptor_name = settings.descriptor_filename if settings else "project.yml"
    config_name = settings.project_config_filename if settings else "project_config.json"

    project_dir = Path(project_dir)
    project_dir.mkdir(parents=True, exist_ok=True)

    yml_path = project_dir / descriptor_name
    _write_text(yml_path, render_project_yaml(descriptor))

    config_path = project_dir / config_name
    config = project_config(app_name, plan, descriptor)
    _write_text(config_path, json.dumps(config, indent=2) + "\n")

    return [yml_path, config_path]
