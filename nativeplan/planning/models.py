"""Build plan models produced by the external planning step."""

from __future__ import annotations

from typing import Any

from typing_extensions import TypeAliasType

from pydantic import BaseModel, field_validator, model_validator

from nativeplan.platforms import (
    DEVICE_FAMILY_VALUES,
    DeviceFamily,
    Platform,
    WatchShape,
    validate_platforms,
)

PropertyValue = TypeAliasType(
    "PropertyValue",
    "bool | int | float | str | list[PropertyValue] | dict[str, PropertyValue]",
)
"""A manifest or entitlement value: scalar, ordered list, or nested mapping."""


def _as_string_list(value: Any) -> list[str]:
    """Accept a single string or an array of strings; drop blanks."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list | tuple):
        return [str(item) for item in value if item is not None and str(item).strip()]
    return [str(value)]


class _Lenient(BaseModel):
    """Base for plan models: JSON nulls fall back to field defaults."""

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class Palette(_Lenient):
    primary: str = ""
    secondary: str = ""
    accent: str = ""
    background: str = ""
    surface: str = ""


class DesignSystem(_Lenient):
    navigation: str = ""
    palette: Palette = Palette()
    font_design: str = ""
    corner_radius: int = 0
    density: str = ""
    surfaces: str = ""
    app_mood: str = ""


class FilePlan(_Lenient):
    """A single source file the agent must produce."""

    path: str
    type_name: str = ""
    purpose: str = ""
    components: list[str] = []
    data_access: str = ""
    depends_on: list[str] = []
    platform: str = ""

    @field_validator("components", "depends_on", mode="before")
    @classmethod
    def _normalize_list(cls, value: Any) -> list[str]:
        return _as_string_list(value)


class PropertyPlan(_Lenient):
    name: str
    type: str = ""
    default_value: str = ""

    @field_validator("default_value", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)


class ModelPlan(_Lenient):
    name: str
    storage: str = ""
    properties: list[PropertyPlan] = []


class PermissionPlan(_Lenient):
    """An Info.plist usage-description key."""

    key: str
    description: str = ""
    framework: str = ""


class ExtensionPlan(_Lenient):
    """A secondary target such as a widget or share extension."""

    kind: str = ""
    name: str = ""
    purpose: str = ""
    platform: str = ""
    settings: dict[str, str] = {}
    info_plist: dict[str, PropertyValue] = {}
    entitlements: dict[str, PropertyValue] = {}

    @field_validator("settings", mode="before")
    @classmethod
    def _stringify_settings(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(k): "YES" if v is True else "NO" if v is False else str(v) for k, v in value.items()}
        return value


class PackagePlan(_Lenient):
    """A third-party Swift package approved by the planner."""

    name: str = ""
    reason: str = ""
    url: str = ""
    version: str = ""
    products: list[str] = []

    @field_validator("products", mode="before")
    @classmethod
    def _normalize_products(cls, value: Any) -> list[str]:
        return _as_string_list(value)


class MonetizationProduct(_Lenient):
    identifier: str
    type: str = ""
    display_price: str = ""
    duration: str = ""


class MonetizationPlan(_Lenient):
    products: list[MonetizationProduct] = []
    entitlement: str = ""
    free_credits: int = 0


class BuildPlan(_Lenient):
    """Full file-level plan for one application."""

    platform: str = ""
    platforms: list[str] = []
    device_family: str = ""
    watch_project_shape: str = ""
    design: DesignSystem = DesignSystem()
    files: list[FilePlan] = []
    models: list[ModelPlan] = []
    permissions: list[PermissionPlan] = []
    extensions: list[ExtensionPlan] = []
    localizations: list[str] = []
    rule_keys: list[str] = []
    build_order: list[str] = []
    packages: list[PackagePlan] = []
    monetization: MonetizationPlan | None = None

    @field_validator("platforms", "localizations", "rule_keys", "build_order", mode="before")
    @classmethod
    def _normalize_list(cls, value: Any) -> list[str]:
        return _as_string_list(value)

    def get_platform(self) -> str:
        return self.platform or Platform.IOS.value

    def get_platforms(self) -> list[str]:
        """All target platforms; a single-platform plan yields its one platform."""
        valid = validate_platforms(self.platforms)
        return valid or [self.get_platform()]

    def is_multi_platform(self) -> bool:
        return len(validate_platforms(self.platforms)) > 1

    def get_device_family(self) -> str:
        if self.device_family in DEVICE_FAMILY_VALUES:
            return self.device_family
        return DeviceFamily.IPHONE.value

    def get_watch_project_shape(self) -> str:
        """The wearable shape, defaulted: standalone for watch-only plans, paired when mixed."""
        platforms = self.get_platforms()
        if Platform.WATCHOS not in platforms:
            return ""
        if self.watch_project_shape:
            return self.watch_project_shape
        if len(platforms) > 1:
            return WatchShape.PAIRED.value
        return WatchShape.STANDALONE.value

    def has_rule_key(self, key: str) -> bool:
        return key in self.rule_keys

    def has_extension(self, kind: str) -> bool:
        return any(ext.kind == kind for ext in self.extensions)

    def extension_platform(self, ext: ExtensionPlan) -> str:
        """Platform an extension is built for and embedded into.

        Single-platform plans ignore the per-extension value. Multi-platform
        plans default untagged extensions to iOS when an iOS host exists,
        otherwise to the primary platform.
        """
        if not self.is_multi_platform():
            return self.get_platform()
        if ext.platform:
            return ext.platform
        platforms = self.get_platforms()
        if Platform.IOS in platforms or Platform.WATCHOS in platforms:
            return Platform.IOS.value
        return platforms[0]
