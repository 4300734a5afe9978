"""Application settings via Pydantic BaseSettings."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings

_BUNDLE_PREFIX = re.compile(r"^[A-Za-z][A-Za-z0-9-]*(\.[A-Za-z0-9][A-Za-z0-9-]*)+$")


class NativeplanSettings(BaseSettings):
    """nativeplan configuration from environment variables and .env files."""

    model_config = {"env_prefix": "NATIVEPLAN_", "env_file": ".env", "extra": "ignore"}

    bundle_id_prefix: str = "com.app"
    deployment_target: str = "26.0"
    xcode_version: str = "16.0"
    swift_version: str = "6.0"
    max_completion_passes: int = 3
    descriptor_filename: str = "project.yml"
    project_config_filename: str = "project_config.json"
    capability_table: Path | None = None
    runs_dir: Path = Path(".nativeplan/runs")

    anthropic_api_key: str | None = None
    openai_api_key: str | None = None
    default_provider: Literal["anthropic", "openai"] | None = None
    default_model: str | None = None

    @model_validator(mode="after")
    def check_values(self) -> NativeplanSettings:
        if not _BUNDLE_PREFIX.match(self.bundle_id_prefix):
            raise ValueError(
                f"bundle_id_prefix {self.bundle_id_prefix!r} must be a reverse-DNS prefix "
                "such as 'com.example'"
            )
        if self.max_completion_passes < 1:
            raise ValueError("max_completion_passes must be at least 1")

        # Also accept standard env vars without NATIVEPLAN_ prefix as fallback
        if not self.anthropic_api_key:
            self.anthropic_api_key = os.environ.get("ANTHROPIC_API_KEY")
        if not self.openai_api_key:
            self.openai_api_key = os.environ.get("OPENAI_API_KEY")
        return self


def load_settings(**overrides: object) -> NativeplanSettings:
    """Load settings with optional overrides (useful for CLI args)."""
    return NativeplanSettings(**{k: v for k, v in overrides.items() if v is not None})  # type: ignore[arg-type]
