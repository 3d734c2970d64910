"""Reasoning sub-adapter: class-aware encoding of the reasoning intent.

Class A models take a hard token budget clamped into the configured window
(``[1024, 32000]`` by default) and need the outer ``max_tokens`` to stay
strictly above that budget. Class B models only understand effort; a token
value is forwarded as a soft hint and clamped solely to the model's own
completion ceiling. Class C models get no reasoning object at all.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Any

from routerwire.config import AdapterSettings
from routerwire.sampling import clamp
from routerwire.types import AdapterOutput, AdapterWarning

if TYPE_CHECKING:
    from routerwire.capabilities import ModelGenerationCapability
    from routerwire.types import ReasoningResolvedConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReasoningOutput(AdapterOutput):
    #: Outer ``max_tokens`` the length adapter must use, when set.
    length_ceiling: int | None = None


def encode_reasoning(
    capability: ModelGenerationCapability | None,
    resolved: ReasoningResolvedConfig,
    *,
    requested_length: int | None = None,
    settings: AdapterSettings | None = None,
) -> ReasoningOutput:
    """Encode *resolved* for the model's reasoning class.

    Args:
        capability: Model capability; ``None`` is treated as class C.
        resolved: Reasoning config with a concrete control mode.
        requested_length: Caller's own completion length, if any. Class A
            overrides it when it does not exceed the reasoning budget.
        settings: Budget window and completion margin.

    Returns:
        The ``reasoning`` fragment (plus ``include_reasoning`` when the model
        declares it), warnings, and the outer length ceiling for class A.
    """
    settings = settings or AdapterSettings()
    reasoning_class = (
        capability.reasoning.reasoning_class
        if capability is not None and capability.reasoning.supports_reasoning_param
        else "C"
    )

    if capability is None or reasoning_class == "C":
        return ReasoningOutput(
            warnings=(
                AdapterWarning(
                    type="unsupported",
                    message="Model does not accept reasoning parameters; reasoning config not sent",
                    details={
                        "model_id": capability.model_id if capability else None,
                        "control_mode": resolved.control_mode,
                    },
                ),
            )
        )

    reasoning: dict[str, Any] = {}
    warnings: list[AdapterWarning] = []
    length_ceiling: int | None = None

    mode = resolved.control_mode
    budget = resolved.max_reasoning_tokens
    if mode == "max_tokens" and (budget is None or budget <= 0):
        warnings.append(
            AdapterWarning(
                type="fallback",
                message="max_tokens mode needs a positive reasoning budget; using effort instead",
                details={"max_reasoning_tokens": budget},
            )
        )
        mode = "effort"

    match mode:
        case "disabled":
            reasoning["effort"] = "none"
        case "effort":
            reasoning["effort"] = resolved.effort or settings.default_effort
        case "max_tokens" if reasoning_class == "A":
            length_ceiling = _encode_bounded_budget(
                capability, budget, requested_length, settings, reasoning, warnings
            )
        case "max_tokens":
            _encode_budget_hint(capability, budget, reasoning, warnings)

    show = resolved.show_reasoning_content
    reasoning["exclude"] = not show
    fragment: dict[str, Any] = {"reasoning": reasoning}
    if capability.reasoning.supports_include_reasoning:
        fragment["include_reasoning"] = show

    if capability.reasoning.returns_visible_reasoning == "no":
        warnings.append(
            AdapterWarning(
                type="ignored",
                message="Model does not return reasoning text; the visibility setting has no effect",
                details={"model_id": capability.model_id, "show_reasoning_content": show},
            )
        )

    logger.debug(
        "Encoded reasoning for %s (class %s, mode %s)",
        capability.model_id,
        reasoning_class,
        mode,
    )
    return ReasoningOutput(
        fragment=fragment, warnings=tuple(warnings), length_ceiling=length_ceiling
    )


def _encode_bounded_budget(
    capability: ModelGenerationCapability,
    budget: int,
    requested_length: int | None,
    settings: AdapterSettings,
    reasoning: dict[str, Any],
    warnings: list[AdapterWarning],
) -> int:
    """Class A: clamp the budget and return an outer ceiling above it."""
    low, high = settings.reasoning_budget_min, settings.reasoning_budget_max
    clipped = int(clamp(budget, low, high))
    if clipped != budget:
        warnings.append(
            AdapterWarning(
                type="clipped",
                message=f"reasoning.max_tokens clipped from {budget} to {clipped}",
                details={
                    "parameter": "reasoning.max_tokens",
                    "original": budget,
                    "clipped": clipped,
                    "range": [low, high],
                },
            )
        )
    reasoning["max_tokens"] = clipped

    minimum = clipped + settings.completion_margin
    if requested_length is None:
        ceiling = minimum
    elif requested_length <= clipped:
        ceiling = minimum
        warnings.append(
            AdapterWarning(
                type="fallback",
                message=(
                    f"max_tokens auto-adjusted from {requested_length} to {minimum} "
                    f"to stay above the reasoning budget {clipped}"
                ),
                details={
                    "parameter": "max_tokens",
                    "original": requested_length,
                    "adjusted": minimum,
                    "reasoning_budget": clipped,
                },
            )
        )
    else:
        ceiling = requested_length

    model_ceiling = capability.length.max_completion_tokens
    if model_ceiling is not None and ceiling > model_ceiling:
        if model_ceiling > clipped:
            warnings.append(
                AdapterWarning(
                    type="clipped",
                    message=f"max_tokens clipped from {ceiling} to model ceiling {model_ceiling}",
                    details={
                        "parameter": "max_tokens",
                        "original": ceiling,
                        "clipped": model_ceiling,
                        "reason": "model ceiling",
                    },
                )
            )
            ceiling = model_ceiling
        else:
            warnings.append(
                AdapterWarning(
                    type="fallback",
                    message=(
                        f"Model ceiling {model_ceiling} does not exceed the reasoning "
                        f"budget {clipped}; sending max_tokens={ceiling}"
                    ),
                    details={
                        "parameter": "max_tokens",
                        "model_ceiling": model_ceiling,
                        "reasoning_budget": clipped,
                        "sent": ceiling,
                    },
                )
            )
    return ceiling


def _encode_budget_hint(
    capability: ModelGenerationCapability,
    budget: int,
    reasoning: dict[str, Any],
    warnings: list[AdapterWarning],
) -> None:
    """Class B: forward the budget as a hint, clamped only to the model ceiling."""
    model_ceiling = capability.length.max_completion_tokens
    hint = budget
    if model_ceiling is not None and budget > model_ceiling:
        hint = model_ceiling
        warnings.append(
            AdapterWarning(
                type="clipped",
                message=f"reasoning.max_tokens hint clipped from {budget} to model ceiling {model_ceiling}",
                details={
                    "parameter": "reasoning.max_tokens",
                    "original": budget,
                    "clipped": model_ceiling,
                    "reason": "model ceiling",
                },
            )
        )
    reasoning["max_tokens"] = hint
