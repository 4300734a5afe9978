"""Per-kind defaults for extension targets."""

from __future__ import annotations

import copy
from typing import Any

from nativeplan.descriptor.models import TargetType
from nativeplan.planning.models import ExtensionPlan
from nativeplan.platforms import ExtensionKind

APP_GROUP_KINDS = frozenset(
    {ExtensionKind.WIDGET, ExtensionKind.LIVE_ACTIVITY, ExtensionKind.SHARE}
)

_INFO_DEFAULTS: dict[str, dict[str, Any]] = {
    ExtensionKind.WIDGET: {
        "NSExtension": {"NSExtensionPointIdentifier": "com.apple.widgetkit-extension"},
    },
    ExtensionKind.LIVE_ACTIVITY: {
        "NSExtension": {"NSExtensionPointIdentifier": "com.apple.widgetkit-extension"},
    },
    ExtensionKind.SHARE: {
        "NSExtension": {
            "NSExtensionPointIdentifier": "com.apple.share-services",
            "NSExtensionPrincipalClass": "$(PRODUCT_MODULE_NAME).ShareViewController",
            "NSExtensionAttributes": {
                "NSExtensionActivationSupportsWebURLWithMaxCount": 1,
                "NSExtensionActivationSupportsText": True,
            },
        },
    },
    ExtensionKind.NOTIFICATION_SERVICE: {
        "NSExtension": {
            "NSExtensionPointIdentifier": "com.apple.usernotifications.service",
            "NSExtensionPrincipalClass": "$(PRODUCT_MODULE_NAME).NotificationService",
        },
    },
    ExtensionKind.SAFARI: {
        "NSExtension": {
            "NSExtensionPointIdentifier": "com.apple.Safari.web-extension",
            "NSExtensionPrincipalClass": "$(PRODUCT_MODULE_NAME).SafariWebExtensionHandler",
        },
    },
    ExtensionKind.APP_CLIP: {
        "NSAppClip": {
            "NSAppClipRequestEphemeralUserNotification": False,
            "NSAppClipRequestLocationConfirmation": False,
        },
    },
    ExtensionKind.TV_TOP_SHELF: {
        "NSExtension": {
            "NSExtensionPointIdentifier": "com.apple.tv-top-shelf",
            "NSExtensionPrincipalClass": "$(PRODUCT_MODULE_NAME).ContentProvider",
        },
    },
}


def sanitize_identifier(value: str) -> str:
    """Lower-case ASCII letters and digits only, as allowed in a bundle id segment."""
    return "".join(ch for ch in value.lower() if ch.isascii() and ch.isalnum())


def extension_target_name(ext: ExtensionPlan, app_name: str) -> str:
    """The plan's name, else ``<App><PascalKind>``, else ``<App>Extension``."""
    if ext.name.strip():
        return ext.name.strip()
    pascal = "".join(part[:1].upper() + part[1:] for part in ext.kind.split("_") if part)
    return app_name + (pascal or "Extension")


def extension_kind_token(ext: ExtensionPlan, app_name: str) -> str:
    """Bundle id segment for an extension. Never empty."""
    return (
        sanitize_identifier(ext.kind)
        or sanitize_identifier(extension_target_name(ext, app_name))
        or "extension"
    )


def target_type_for_kind(kind: str) -> TargetType:
    if kind == ExtensionKind.APP_CLIP:
        return TargetType.APP_CLIP
    return TargetType.APP_EXTENSION


def needs_app_group(kind: str) -> bool:
    return kind in APP_GROUP_KINDS


def app_group_id(host_bundle_id: str) -> str:
    return f"group.{host_bundle_id}"


def merge_info_plist(kind: str, overrides: dict[str, Any]) -> dict[str, Any]:
    """Kind defaults with plan overrides applied on top, key by key."""
    merged = copy.deepcopy(_INFO_DEFAULTS.get(kind, {}))
    merged.update(copy.deepcopy(overrides))
    return merged


def merge_entitlements(kind: str, overrides: dict[str, Any], host_bundle_id: str) -> dict[str, Any]:
    merged: dict[str, Any] = {}
    if needs_app_group(kind):
        merged["com.apple.security.application-groups"] = [app_group_id(host_bundle_id)]
    elif kind == ExtensionKind.APP_CLIP:
        merged["com.apple.developer.parent-application-identifiers"] = [
            f"$(AppIdentifierPrefix){host_bundle_id}"
        ]
        merged["com.apple.developer.associated-domains"] = [f"appclips:{host_bundle_id}"]
    merged.update(copy.deepcopy(overrides))
    return merged
