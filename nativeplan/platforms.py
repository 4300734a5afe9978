"""Platform, shape and extension-kind enumerations with per-platform lookups."""

from __future__ import annotations

from enum import StrEnum

from nativeplan.errors import PlanValidationError


class Platform(StrEnum):
    IOS = "ios"
    WATCHOS = "watchos"
    TVOS = "tvos"
    VISIONOS = "visionos"
    MACOS = "macos"


class Operation(StrEnum):
    BUILD = "build"
    EDIT = "edit"
    FIX = "fix"


class DeviceFamily(StrEnum):
    IPHONE = "iphone"
    IPAD = "ipad"
    UNIVERSAL = "universal"


class WatchShape(StrEnum):
    STANDALONE = "watch_only"
    PAIRED = "paired_ios_watch"


class ExtensionKind(StrEnum):
    WIDGET = "widget"
    LIVE_ACTIVITY = "live_activity"
    SHARE = "share"
    NOTIFICATION_SERVICE = "notification_service"
    SAFARI = "safari"
    APP_CLIP = "app_clip"
    TV_TOP_SHELF = "tv_top_shelf"


PLATFORM_VALUES: frozenset[str] = frozenset(p.value for p in Platform)
OPERATION_VALUES: frozenset[str] = frozenset(o.value for o in Operation)
DEVICE_FAMILY_VALUES: frozenset[str] = frozenset(d.value for d in DeviceFamily)
WATCH_SHAPE_VALUES: frozenset[str] = frozenset(s.value for s in WatchShape)

_DISPLAY_NAMES: dict[str, str] = {
    Platform.IOS: "iOS",
    Platform.WATCHOS: "watchOS",
    Platform.TVOS: "tvOS",
    Platform.VISIONOS: "visionOS",
    Platform.MACOS: "macOS",
}

_SOURCE_DIR_SUFFIXES: dict[str, str] = {
    Platform.IOS: "",
    Platform.WATCHOS: "Watch",
    Platform.TVOS: "TV",
    Platform.VISIONOS: "Vision",
    Platform.MACOS: "Mac",
}

_BUNDLE_SUFFIXES: dict[str, str] = {
    Platform.TVOS: "tv",
    Platform.VISIONOS: "vision",
    Platform.MACOS: "mac",
}


def validate_platform(platform: str) -> None:
    """Raise if the platform string is not a known value. Empty is allowed."""
    if platform == "" or platform in PLATFORM_VALUES:
        return
    allowed = ", ".join(repr(p.value) for p in Platform)
    raise PlanValidationError(f"unsupported platform {platform!r}: must be one of {allowed}")


def validate_platforms(platforms: list[str]) -> list[str]:
    """Return only valid platforms, lower-cased and de-duplicated in first-seen order."""
    valid: list[str] = []
    for raw in platforms:
        if not isinstance(raw, str):
            continue
        p = raw.strip().lower()
        if not p or p not in PLATFORM_VALUES or p in valid:
            continue
        valid.append(p)
    return valid


def validate_watch_shape(shape: str) -> None:
    if shape == "" or shape in WATCH_SHAPE_VALUES:
        return
    raise PlanValidationError(
        f"unsupported watch_project_shape {shape!r}: "
        f"must be {WatchShape.STANDALONE.value!r} or {WatchShape.PAIRED.value!r}"
    )


def display_name(platform: str) -> str:
    return _DISPLAY_NAMES.get(platform, "iOS")


def xcodegen_platform(platform: str) -> str:
    """XcodeGen `platform:` and deploymentTarget key for a platform."""
    return _DISPLAY_NAMES.get(platform, "iOS")


def source_dir_suffix(platform: str) -> str:
    """Source directory suffix: ``<AppName><suffix>`` holds the platform's sources."""
    return _SOURCE_DIR_SUFFIXES.get(platform, "")


def source_dir(app_name: str, platform: str) -> str:
    return app_name + source_dir_suffix(platform)


def bundle_suffix(platform: str) -> str:
    """Bundle id qualifier for an additional top-level platform app."""
    return _BUNDLE_SUFFIXES.get(platform, "")


def build_destination(platform: str, watch_shape: str = "") -> str:
    """xcodebuild destination for the platform's primary scheme."""
    if platform == Platform.WATCHOS and watch_shape == WatchShape.PAIRED:
        return "generic/platform=iOS Simulator"
    if platform == Platform.MACOS:
        return "generic/platform=macOS"
    return f"generic/platform={display_name(platform)} Simulator"
