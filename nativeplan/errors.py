"""Error taxonomy for intent, plan, descriptor and completion failures."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from nativeplan.completion import FileCompletionReport


class NativeplanError(ValueError):
    """Base class for all nativeplan errors."""


class MalformedIntentError(NativeplanError):
    """The intent router payload is not a syntactically valid JSON object."""


class MalformedPlanError(NativeplanError):
    """The build plan payload cannot be decoded into a BuildPlan."""


class PlanValidationError(NativeplanError):
    """The build plan is well-formed but invalid for its platform."""


class UnsupportedExtensionError(PlanValidationError):
    """One or more extension kinds are unavailable on the target platform."""

    def __init__(self, platform: str, kinds: list[str], supported_note: str) -> None:
        self.platform = platform
        self.kinds = kinds
        self.supported_note = supported_note
        note = f" ({supported_note})" if supported_note else ""
        super().__init__(
            f"{platform} does not support extension kinds: {', '.join(kinds)}{note}"
        )


class CapabilityTableError(NativeplanError):
    """A configured capability table cannot be read or does not match the record schema."""


class DescriptorGraphError(NativeplanError):
    """Embed edges reference unknown targets or form a cycle."""


class CompletionError(NativeplanError):
    """Planned files are still missing or invalid after the pass budget."""

    def __init__(
        self,
        message: str,
        report: FileCompletionReport | None = None,
        passes: int = 0,
        summary: str = "",
    ) -> None:
        super().__init__(message)
        self.report = report
        self.passes = passes
        self.summary = summary
