"""Length sub-adapter: outgoing ``max_tokens``, ``stop`` and ``verbosity``."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from routerwire.types import AdapterOutput, AdapterWarning, IgnoredParameter

if TYPE_CHECKING:
    from routerwire.capabilities import ModelGenerationCapability
    from routerwire.generation import LengthConfig


def encode_length(
    length: LengthConfig | None,
    capability: ModelGenerationCapability | None,
    *,
    requested_length: int | None = None,
    reasoning_ceiling: int | None = None,
) -> AdapterOutput:
    """Resolve the outgoing length fields.

    ``max_tokens`` resolution order:

    1. *reasoning_ceiling* (set by the reasoning adapter) wins outright.
    2. Otherwise the caller's length, clamped to the model's completion
       ceiling. *requested_length* is the caller's effective length when the
       encoder has one (``reasoning.max_completion_tokens`` first); it falls
       back to ``length.max_tokens``.
    3. Otherwise the key is omitted and the upstream default applies.

    Every path requires the ``max_tokens`` capability flag.
    """
    fragment: dict[str, Any] = {}
    warnings: list[AdapterWarning] = []
    ignored: list[IgnoredParameter] = []

    supports_max_tokens = capability is not None and capability.length.max_tokens
    requested = requested_length
    if requested is None and length is not None:
        requested = length.max_tokens

    if reasoning_ceiling is not None:
        if supports_max_tokens:
            fragment["max_tokens"] = reasoning_ceiling
        else:
            warnings.append(
                AdapterWarning(
                    type="fallback",
                    message=(
                        f"Reasoning-derived max_tokens {reasoning_ceiling} not sent: "
                        "model does not accept max_tokens"
                    ),
                    details={"parameter": "max_tokens", "reasoning_ceiling": reasoning_ceiling},
                )
            )
            if requested is not None:
                ignored.append(IgnoredParameter(key="max_tokens", reason="not supported"))
    elif requested is not None:
        if not supports_max_tokens:
            ignored.append(IgnoredParameter(key="max_tokens", reason="not supported"))
        elif requested <= 0:
            warnings.append(
                AdapterWarning(
                    type="ignored",
                    message=f"max_tokens discarded: {requested} is not positive",
                    details={"parameter": "max_tokens", "value": requested},
                )
            )
        else:
            ceiling = capability.length.max_completion_tokens if capability else None
            value = requested
            if ceiling is not None and requested > ceiling:
                value = ceiling
                warnings.append(
                    AdapterWarning(
                        type="clipped",
                        message=f"max_tokens clipped from {requested} to model ceiling {ceiling}",
                        details={
                            "parameter": "max_tokens",
                            "original": requested,
                            "clipped": ceiling,
                            "reason": "model ceiling",
                        },
                    )
                )
            fragment["max_tokens"] = value

    if length is not None and length.stop:
        if capability is not None and capability.length.stop:
            fragment["stop"] = list(length.stop)
        else:
            ignored.append(IgnoredParameter(key="stop", reason="not supported"))

    if length is not None and length.verbosity is not None:
        if capability is not None and capability.length.verbosity:
            fragment["verbosity"] = length.verbosity
        else:
            ignored.append(IgnoredParameter(key="verbosity", reason="not supported"))

    return AdapterOutput(
        fragment=fragment, warnings=tuple(warnings), ignored=tuple(ignored)
    )
