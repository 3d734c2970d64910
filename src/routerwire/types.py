"""Shared value types: literals, reporting values, and resolved reasoning config."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

Effort = Literal["minimal", "low", "medium", "high", "none"]
ControlMode = Literal["disabled", "effort", "max_tokens", "auto"]
ResolvedControlMode = Literal["disabled", "effort", "max_tokens"]
Verbosity = Literal["low", "medium", "high"]

WarningType = Literal["clipped", "ignored", "fallback", "unsupported"]

Visibility = Literal["yes", "no", "unknown"]
ReasoningClass = Literal["A", "B", "C"]
MaxTokensPolicy = Literal["bounded-1024-32000", "effort-hint", "none"]

#: Partial request body; merged flatly into the outgoing request.
RequestFragment = dict[str, Any]


@dataclass(frozen=True)
class AdapterWarning:
    """Non-fatal note about how a requested value was adapted."""

    type: WarningType
    message: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class IgnoredParameter:
    """A requested key that was not sent to the model."""

    key: str
    reason: str


@dataclass(frozen=True)
class ReasoningResolvedConfig:
    """Reasoning intent after ``auto`` has been resolved to a concrete mode."""

    control_mode: ResolvedControlMode = "effort"
    effort: Effort | None = None
    max_reasoning_tokens: int | None = None
    max_completion_tokens: int | None = None
    show_reasoning_content: bool = False


@dataclass(frozen=True)
class AdapterOutput:
    """What one sub-adapter contributes to a request."""

    fragment: RequestFragment = field(default_factory=dict)
    warnings: tuple[AdapterWarning, ...] = ()
    ignored: tuple[IgnoredParameter, ...] = ()


@dataclass(frozen=True)
class EncodeResult:
    """Merged request fragment plus everything reported while encoding it."""

    request_fragment: RequestFragment
    warnings: tuple[AdapterWarning, ...] = ()
    ignored_parameters: tuple[IgnoredParameter, ...] = ()

    def warnings_of(self, kind: WarningType) -> list[AdapterWarning]:
        return [w for w in self.warnings if w.type == kind]

    def ignored_keys(self) -> list[str]:
        return [p.key for p in self.ignored_parameters]
