"""Decode planner output and normalize it into a compile-ready BuildPlan."""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import ValidationError

from nativeplan.capabilities import (
    DEFAULT_CAPABILITY_TABLE,
    CapabilityTable,
    filter_capabilities,
    validate_extensions,
)
from nativeplan.decoding import decode_json_object
from nativeplan.descriptor.compiler import watch_app_target_name, watch_extension_target_name
from nativeplan.descriptor.extensions import extension_target_name
from nativeplan.errors import MalformedPlanError, PlanValidationError
from nativeplan.intent.models import IntentDecision
from nativeplan.planning.models import BuildPlan, PackagePlan
from nativeplan.platforms import (
    PLATFORM_VALUES,
    Platform,
    WatchShape,
    source_dir,
    validate_platforms,
    validate_watch_shape,
)


@dataclass
class PreparedPlan:
    """A normalized plan plus the advisory warnings produced along the way."""

    plan: BuildPlan
    warnings: list[str] = field(default_factory=list)


def parse_plan(text: str) -> BuildPlan:
    """Strictly decode planner output into a BuildPlan."""
    try:
        data = decode_json_object(text, "plan")
    except ValueError as e:
        raise MalformedPlanError(str(e)) from e
    try:
        return BuildPlan.model_validate(data)
    except ValidationError as e:
        raise MalformedPlanError(f"plan does not match the expected schema: {e}") from e


def prepare_plan(
    plan: BuildPlan,
    table: CapabilityTable = DEFAULT_CAPABILITY_TABLE,
    app_name: str | None = None,
) -> PreparedPlan:
    """Return a normalized, validated copy of ``plan``.

    Out-of-domain platform values are corrected with a warning. An invalid
    wearable shape literal, an unsupported extension kind, or a plan without
    files raises PlanValidationError. When ``app_name`` is given, extension
    target names that collide with each other or with the generated app and
    watch targets raise PlanValidationError too.
    """
    plan = plan.model_copy(deep=True)
    warnings: list[str] = []

    platform = plan.platform.strip().lower()
    plan.platforms = validate_platforms(plan.platforms)
    if plan.platforms:
        platform = plan.platforms[0]
    if platform and platform not in PLATFORM_VALUES:
        warnings.append(f'platform "{platform}" is not recognized; defaulting to ios')
        platform = ""
    plan.platform = platform or Platform.IOS.value

    plan.watch_project_shape = plan.watch_project_shape.strip()
    validate_watch_shape(plan.watch_project_shape)

    multi = plan.is_multi_platform()
    if plan.watch_project_shape and not multi:
        plan.platform = Platform.WATCHOS.value
        plan.platforms = []
    if multi and not plan.watch_project_shape and Platform.WATCHOS in plan.platforms:
        plan.watch_project_shape = WatchShape.PAIRED.value
    if not multi and plan.platform == Platform.WATCHOS:
        plan.device_family = ""
    plan.device_family = plan.device_family.strip().lower()

    for file in plan.files:
        if file.platform and file.platform not in PLATFORM_VALUES:
            file.platform = ""
    for ext in plan.extensions:
        ext.kind = ext.kind.strip()
        if ext.platform and ext.platform not in PLATFORM_VALUES:
            ext.platform = ""

    if multi:
        supported: set[str] = set()
        for p in plan.platforms:
            kept, key_warnings = filter_capabilities(p, plan.rule_keys, table)
            supported.update(kept)
            warnings.extend(key_warnings)
        plan.rule_keys = [k for k in plan.rule_keys if k in supported]
        hosts = set(plan.platforms)
        if Platform.WATCHOS in hosts:
            hosts.add(Platform.IOS.value)
        for ext in plan.extensions:
            ext_platform = plan.extension_platform(ext)
            if ext_platform not in hosts:
                raise PlanValidationError(
                    f'extension "{ext.name or ext.kind}" targets {ext_platform}, '
                    f"which is not one of the plan platforms: {', '.join(plan.platforms)}"
                )
            validate_extensions(ext_platform, [ext.kind], table)
    else:
        plan.rule_keys, key_warnings = filter_capabilities(plan.platform, plan.rule_keys, table)
        warnings.extend(key_warnings)
        validate_extensions(plan.platform, [ext.kind for ext in plan.extensions], table)

    if app_name is not None:
        _check_target_names(plan, app_name)

    plan.packages = _dedupe_packages(plan.packages)

    if not plan.files:
        raise PlanValidationError("plan has no files")

    return PreparedPlan(plan=plan, warnings=warnings)


def _check_target_names(plan: BuildPlan, app_name: str) -> None:
    platforms = plan.get_platforms()
    reserved = {app_name}
    reserved.update(source_dir(app_name, p) for p in platforms)
    if Platform.WATCHOS in platforms:
        reserved.update(
            {watch_app_target_name(app_name), watch_extension_target_name(app_name)}
        )
    seen: set[str] = set()
    for ext in plan.extensions:
        name = extension_target_name(ext, app_name)
        if name in reserved:
            raise PlanValidationError(
                f'extension target name "{name}" collides with a generated app target'
            )
        if name in seen:
            raise PlanValidationError(
                f'duplicate extension target name "{name}"; give each extension a distinct name'
            )
        seen.add(name)


def _dedupe_packages(packages: list[PackagePlan]) -> list[PackagePlan]:
    seen: set[str] = set()
    kept: list[PackagePlan] = []
    for pkg in packages:
        name = pkg.name.strip()
        if not name or name in seen:
            continue
        seen.add(name)
        kept.append(pkg.model_copy(update={"name": name}))
    return kept


def apply_intent_hints(plan: BuildPlan, decision: IntentDecision) -> BuildPlan:
    """Fill platform fields the plan left blank from the routing decision.

    Values the plan already sets always win.
    """
    plan = plan.model_copy(deep=True)
    if not plan.platform.strip() and not plan.platforms:
        plan.platform = decision.platform_hint
        if len(decision.platform_hints) > 1:
            plan.platforms = list(decision.platform_hints)
    if not plan.device_family.strip() and plan.get_platform() == Platform.IOS:
        plan.device_family = decision.device_family_hint
    if not plan.watch_project_shape.strip() and Platform.WATCHOS in plan.get_platforms():
        plan.watch_project_shape = decision.watch_project_shape_hint
    return plan
