"""Compile a prepared BuildPlan into an XcodeGen ProjectDescriptor.

Compilation is a pure function of the app name, the plan and the options:
no I/O, no clock, no randomness. Every call returns a fresh descriptor.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from nativeplan.descriptor.extensions import (
    app_group_id,
    extension_kind_token,
    extension_target_name,
    merge_entitlements,
    merge_info_plist,
    needs_app_group,
    sanitize_identifier,
    target_type_for_kind,
)
from nativeplan.descriptor.models import (
    ProjectDescriptor,
    PropertyFile,
    Scheme,
    SourceEntry,
    Target,
    TargetType,
)
from nativeplan.planning.models import BuildPlan, ExtensionPlan
from nativeplan.platforms import (
    DeviceFamily,
    ExtensionKind,
    Platform,
    WatchShape,
    bundle_suffix,
    source_dir,
    xcodegen_platform,
)

if TYPE_CHECKING:
    from nativeplan.config.settings import NativeplanSettings

SHARED_DIR = "Shared"
TARGETS_DIR = "Targets"

IPHONE_ORIENTATIONS = "UIInterfaceOrientationPortrait"
IPAD_ORIENTATIONS = (
    "UIInterfaceOrientationPortrait UIInterfaceOrientationPortraitUpsideDown "
    "UIInterfaceOrientationLandscapeLeft UIInterfaceOrientationLandscapeRight"
)
_IPHONE_KEY = "INFOPLIST_KEY_UISupportedInterfaceOrientations_iPhone"
_IPAD_KEY = "INFOPLIST_KEY_UISupportedInterfaceOrientations_iPad"

# device family -> (TARGETED_DEVICE_FAMILY, orientation settings, destination filter devices)
_DEVICE_FAMILY_LAYOUT: dict[str, tuple[str, dict[str, str], list[str]]] = {
    DeviceFamily.IPHONE: ("1", {_IPHONE_KEY: IPHONE_ORIENTATIONS}, ["iPhone"]),
    DeviceFamily.IPAD: ("2", {_IPAD_KEY: IPAD_ORIENTATIONS}, ["iPad"]),
    DeviceFamily.UNIVERSAL: (
        "1,2",
        {_IPHONE_KEY: IPHONE_ORIENTATIONS, _IPAD_KEY: IPAD_ORIENTATIONS},
        ["iPhone", "iPad"],
    ),
}

_PLATFORM_ORDER = [xcodegen_platform(p) for p in Platform]

_APP_SOURCE_EXCLUDES = ["**/*.swift", "*.plist", "*.entitlements"]
_RUNTIME_SOURCE_EXCLUDES = ["*.plist", "*.entitlements"]

_CONCURRENCY_SETTINGS = {
    "SWIFT_APPROACHABLE_CONCURRENCY": "YES",
    "SWIFT_DEFAULT_ACTOR_ISOLATION": "MainActor",
}
_ASSET_SETTINGS = {
    "ASSETCATALOG_COMPILER_APPICON_NAME": "AppIcon",
    "ASSETCATALOG_COMPILER_GLOBAL_ACCENT_COLOR_NAME": "AccentColor",
    "ENABLE_PREVIEWS": "YES",
    "SWIFT_EMIT_LOC_STRINGS": "YES",
}


@dataclass(frozen=True)
class CompileOptions:
    bundle_id_prefix: str = "com.app"
    deployment_target: str = "26.0"
    xcode_version: str = "16.0"
    swift_version: str = "6.0"

    @classmethod
    def from_settings(cls, settings: NativeplanSettings) -> CompileOptions:
        return cls(
            bundle_id_prefix=settings.bundle_id_prefix,
            deployment_target=settings.deployment_target,
            xcode_version=settings.xcode_version,
            swift_version=settings.swift_version,
        )


def app_bundle_id(prefix: str, app_name: str) -> str:
    """``<prefix>.<lower-alphanumeric app name>``; ``app`` when nothing survives sanitizing."""
    return f"{prefix}.{sanitize_identifier(app_name) or 'app'}"


def watch_app_target_name(app_name: str) -> str:
    return app_name + "Watch"


def watch_extension_target_name(app_name: str) -> str:
    return app_name + "WatchExtension"


def compile_project(
    app_name: str, plan: BuildPlan, options: CompileOptions | None = None
) -> ProjectDescriptor:
    """Build the target graph for ``plan``. The plan should already be prepared."""
    return _Compiler(app_name, plan, options or CompileOptions()).compile()


@dataclass
class _Host:
    target: Target
    source: str


class _Compiler:
    def __init__(self, app_name: str, plan: BuildPlan, options: CompileOptions) -> None:
        self.app = app_name
        self.plan = plan
        self.options = options
        self.bundle_id = app_bundle_id(options.bundle_id_prefix, app_name)
        self.targets: list[Target] = []
        self.hosts: dict[str, _Host] = {}
        self.top_level: list[Target] = []

    def compile(self) -> ProjectDescriptor:
        plan = self.plan
        with_schemes = bool(plan.extensions)

        if plan.is_multi_platform():
            self._multi_platform(plan.get_platforms())
            with_schemes = True
        elif plan.get_platform() == Platform.WATCHOS:
            if plan.get_watch_project_shape() == WatchShape.PAIRED:
                self._paired_watch()
            else:
                self._standalone_watch()
            with_schemes = True
        else:
            platform = plan.get_platform()
            target = self._app_target(
                self.app,
                platform,
                source_dir(self.app, platform),
                self.bundle_id,
                include_shared=bool(plan.extensions),
            )
            self._add_top_level(target, platform, source_dir(self.app, platform))

        for ext in plan.extensions:
            self._extension_target(ext)

        descriptor = ProjectDescriptor(
            name=self.app,
            bundle_id_prefix=self.options.bundle_id_prefix,
            deployment_targets=self._deployment_targets(),
            xcode_version=self.options.xcode_version,
            known_regions=list(plan.localizations),
            targets=self.targets,
            schemes=self._schemes() if with_schemes else [],
        )
        descriptor.validate_graph()
        return descriptor

    # -- shapes ------------------------------------------------------------

    def _standalone_watch(self) -> None:
        watch_dir = source_dir(self.app, Platform.WATCHOS)
        container = Target(
            name=self.app,
            type=TargetType.WATCH_CONTAINER,
            platform=xcodegen_platform(Platform.WATCHOS),
            bundle_id=self.bundle_id,
            sources=[SourceEntry(watch_dir, excludes=list(_APP_SOURCE_EXCLUDES))],
            settings=self._base_settings(self.bundle_id) | self._permission_settings(),
            entitlements=PropertyFile(f"{watch_dir}/{self.app}.entitlements"),
        )
        self.targets.append(container)
        self.top_level.append(container)
        self.hosts[Platform.WATCHOS] = _Host(container, watch_dir)
        self._watch_chain(container, companion_bundle_id=None)

    def _paired_watch(self) -> None:
        host = self._app_target(
            self.app,
            Platform.IOS,
            source_dir(self.app, Platform.IOS),
            self.bundle_id,
            include_shared=bool(self.plan.extensions),
        )
        self._add_top_level(host, Platform.IOS, source_dir(self.app, Platform.IOS))
        self._watch_chain(host, companion_bundle_id=self.bundle_id)

    def _multi_platform(self, platforms: list[str]) -> None:
        if Platform.IOS in platforms or Platform.WATCHOS in platforms:
            host = self._app_target(
                self.app,
                Platform.IOS,
                source_dir(self.app, Platform.IOS),
                self.bundle_id,
                include_shared=True,
            )
            self._add_top_level(host, Platform.IOS, source_dir(self.app, Platform.IOS))
            if Platform.WATCHOS in platforms:
                self._watch_chain(host, companion_bundle_id=self.bundle_id)

        for platform in platforms:
            if platform in (Platform.IOS, Platform.WATCHOS):
                continue
            name = source_dir(self.app, platform)
            target = self._app_target(
                name,
                platform,
                name,
                f"{self.bundle_id}.{bundle_suffix(platform)}",
                include_shared=True,
            )
            self._add_top_level(target, platform, name)

    def _add_top_level(self, target: Target, platform: str, source: str) -> None:
        self.targets.append(target)
        self.top_level.append(target)
        self.hosts[platform] = _Host(target, source)

    # -- targets -----------------------------------------------------------

    def _base_settings(self, bundle_id: str) -> dict[str, Any]:
        return {
            "SWIFT_VERSION": self.options.swift_version,
            "PRODUCT_BUNDLE_IDENTIFIER": bundle_id,
            "CODE_SIGN_STYLE": "Automatic",
            "CURRENT_PROJECT_VERSION": 1,
            "MARKETING_VERSION": "1.0",
            "GENERATE_INFOPLIST_FILE": "YES",
        }

    def _permission_settings(self) -> dict[str, Any]:
        return {
            f"INFOPLIST_KEY_{perm.key}": perm.description
            for perm in self.plan.permissions
            if perm.key.strip()
        }

    def _sources(self, path: str, include_shared: bool, excludes: list[str] | None = None) -> list[SourceEntry]:
        sources = [SourceEntry(path, excludes=list(excludes or []))]
        if include_shared:
            sources.append(SourceEntry(SHARED_DIR, optional=True))
        return sources

    def _app_target(
        self, name: str, platform: str, source: str, bundle_id: str, include_shared: bool
    ) -> Target:
        xcode_platform = xcodegen_platform(platform)
        target = Target(
            name=name,
            type=TargetType.APPLICATION,
            platform=xcode_platform,
            bundle_id=bundle_id,
            supported_destinations=[xcode_platform],
            sources=self._sources(source, include_shared),
            entitlements=PropertyFile(f"{source}/{name}.entitlements"),
        )

        settings = self._base_settings(bundle_id)
        if platform == Platform.IOS:
            settings["INFOPLIST_KEY_UIApplicationSceneManifest_Generation"] = "YES"
            settings["INFOPLIST_KEY_UIApplicationSupportsIndirectInputEvents"] = "YES"
            settings["INFOPLIST_KEY_UILaunchScreen_Generation"] = "YES"
            family, orientations, devices = _DEVICE_FAMILY_LAYOUT[self.plan.get_device_family()]
            settings["TARGETED_DEVICE_FAMILY"] = family
            settings.update(orientations)
            target.destination_filters = [{"device": device} for device in devices]
        elif platform == Platform.TVOS:
            settings["TARGETED_DEVICE_FAMILY"] = "3"
        elif platform == Platform.VISIONOS:
            settings["TARGETED_DEVICE_FAMILY"] = "7"

        settings.update(_ASSET_SETTINGS)
        if platform == Platform.MACOS:
            settings["COMBINE_HIDPI_IMAGES"] = "YES"
            settings["LD_RUNPATH_SEARCH_PATHS"] = ["$(inherited)", "@executable_path/../Frameworks"]
        else:
            settings["LD_RUNPATH_SEARCH_PATHS"] = ["$(inherited)", "@executable_path/Frameworks"]
        settings.update(_CONCURRENCY_SETTINGS)

        if platform in (Platform.IOS, Platform.TVOS) and not self.plan.has_rule_key("dark-mode"):
            settings["INFOPLIST_KEY_UIUserInterfaceStyle"] = "Light"
        settings.update(self._permission_settings())

        target.settings = settings
        return target

    def _watch_chain(self, embedder: Target, companion_bundle_id: str | None) -> None:
        """Watch app plus its runtime extension, embedded by ``embedder``."""
        watch_dir = source_dir(self.app, Platform.WATCHOS)
        watch_name = watch_app_target_name(self.app)
        ext_name = watch_extension_target_name(self.app)
        watch_bundle = f"{self.bundle_id}.watchkitapp"
        ext_bundle = f"{watch_bundle}.watchkitextension"
        platform = xcodegen_platform(Platform.WATCHOS)

        if companion_bundle_id is None:
            info = PropertyFile(
                f"{watch_dir}/WatchApp-Info.plist",
                {"WKWatchOnly": True, "WKRunsIndependentlyOfCompanionApp": True},
            )
        else:
            info = PropertyFile(
                f"{watch_dir}/Info.plist",
                {
                    "WKCompanionAppBundleIdentifier": companion_bundle_id,
                    "WKRunsIndependentlyOfCompanionApp": True,
                },
            )

        watch_app = Target(
            name=watch_name,
            type=TargetType.WATCH_APP,
            platform=platform,
            bundle_id=watch_bundle,
            sources=self._sources(watch_dir, False, _APP_SOURCE_EXCLUDES),
            settings=self._base_settings(watch_bundle) | _ASSET_SETTINGS | _CONCURRENCY_SETTINGS,
            info=info,
            entitlements=PropertyFile(f"{watch_dir}/{watch_name}.entitlements"),
        )
        runtime = Target(
            name=ext_name,
            type=TargetType.WATCH_EXTENSION,
            platform=platform,
            bundle_id=ext_bundle,
            sources=self._sources(
                watch_dir,
                bool(self.plan.extensions) or self.plan.is_multi_platform(),
                _RUNTIME_SOURCE_EXCLUDES,
            ),
            settings={
                "PRODUCT_BUNDLE_IDENTIFIER": ext_bundle,
                "CODE_SIGN_STYLE": "Automatic",
                "SWIFT_VERSION": self.options.swift_version,
                "GENERATE_INFOPLIST_FILE": "YES",
                "SKIP_INSTALL": "YES",
                "CURRENT_PROJECT_VERSION": 1,
                "MARKETING_VERSION": "1.0",
            }
            | _CONCURRENCY_SETTINGS,
            info=PropertyFile(
                f"{watch_dir}/WatchExtension-Info.plist",
                {
                    "NSExtension": {
                        "NSExtensionPointIdentifier": "com.apple.watchkit",
                        "NSExtensionAttributes": {"WKAppBundleIdentifier": watch_bundle},
                    }
                },
            ),
            entitlements=PropertyFile(f"{watch_dir}/{ext_name}.entitlements"),
        )

        embedder.embeds(watch_name)
        watch_app.embeds(ext_name)
        self.targets.extend([watch_app, runtime])
        if companion_bundle_id is not None:
            self.hosts[Platform.WATCHOS] = _Host(watch_app, watch_dir)

    def _extension_target(self, ext: ExtensionPlan) -> None:
        platform = self.plan.extension_platform(ext)
        host = self.hosts.get(platform) or self.hosts[next(iter(self.hosts))]
        host_bundle = host.target.bundle_id

        name = extension_target_name(ext, self.app)
        source = f"{TARGETS_DIR}/{name}"
        bundle_id = f"{host_bundle}.{extension_kind_token(ext, self.app)}"

        settings: dict[str, Any] = {
            "PRODUCT_BUNDLE_IDENTIFIER": bundle_id,
            "CODE_SIGN_STYLE": "Automatic",
            "SWIFT_VERSION": self.options.swift_version,
            "GENERATE_INFOPLIST_FILE": "YES",
            "SKIP_INSTALL": "YES",
            "DEAD_CODE_STRIPPING": "NO",
            "CURRENT_PROJECT_VERSION": 1,
            "MARKETING_VERSION": "1.0",
        }
        settings.update(_CONCURRENCY_SETTINGS)
        settings.update(ext.settings)

        info = merge_info_plist(ext.kind, ext.info_plist)
        entitlements = merge_entitlements(ext.kind, ext.entitlements, host_bundle)
        target = Target(
            name=name,
            type=target_type_for_kind(ext.kind),
            platform=host.target.platform,
            bundle_id=bundle_id,
            sources=self._sources(source, True),
            settings=settings,
            info=PropertyFile(f"{source}/Info.plist", info) if info else None,
            entitlements=PropertyFile(f"{source}/{name}.entitlements", entitlements)
            if entitlements
            else None,
        )
        self.targets.append(target)
        host.target.embeds(name)

        if needs_app_group(ext.kind):
            self._add_app_group(host)
        if ext.kind == ExtensionKind.LIVE_ACTIVITY and host.target.platform == "iOS":
            if host.target.info is None:
                host.target.info = PropertyFile(f"{host.source}/Info.plist")
            host.target.info.properties["NSSupportsLiveActivities"] = True

    def _add_app_group(self, host: _Host) -> None:
        if host.target.entitlements is None:
            host.target.entitlements = PropertyFile(
                f"{host.source}/{host.target.name}.entitlements"
            )
        groups = host.target.entitlements.properties.setdefault(
            "com.apple.security.application-groups", []
        )
        group = app_group_id(host.target.bundle_id)
        if group not in groups:
            groups.append(group)

    # -- project -----------------------------------------------------------

    def _deployment_targets(self) -> dict[str, str]:
        used = {t.platform for t in self.targets}
        return {p: self.options.deployment_target for p in _PLATFORM_ORDER if p in used}

    def _schemes(self) -> list[Scheme]:
        by_name = {t.name: t for t in self.targets}
        schemes: list[Scheme] = []
        for top in self.top_level:
            members = {top.name}
            stack = [top.name]
            while stack:
                for dep in by_name[stack.pop()].dependencies:
                    if dep.target not in members:
                        members.add(dep.target)
                        stack.append(dep.target)
            ordered = [t.name for t in self.targets if t.name in members]
            schemes.append(Scheme(name=top.name, build_targets=ordered, executable=top.name))
        return schemes
