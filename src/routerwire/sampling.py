"""Sampling sub-adapter: capability gating and range clamping."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

from routerwire.config import AdapterSettings
from routerwire.types import AdapterOutput, AdapterWarning, IgnoredParameter

if TYPE_CHECKING:
    from routerwire.capabilities import ModelGenerationCapability
    from routerwire.generation import SamplingConfig

# Inclusive clamp window per key; keys absent here pass through unclamped.
SAMPLING_RANGES: dict[str, tuple[float, float]] = {
    "temperature": (0.0, 2.0),
    "top_p": (0.0, 1.0),
    "min_p": (0.0, 1.0),
    "top_a": (0.0, 1.0),
    "frequency_penalty": (-2.0, 2.0),
    "presence_penalty": (-2.0, 2.0),
    "repetition_penalty": (0.0, 2.0),
}

# Keys that shape the same token distribution and can interfere when stacked.
INTERFERING_KEYS: tuple[str, ...] = ("temperature", "top_p", "top_k", "min_p", "top_a")

_NUMERIC_KEYS = frozenset(SAMPLING_RANGES) | {"top_k", "seed"}


def _is_finite_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def encode_sampling(
    sampling: SamplingConfig | None,
    capability: ModelGenerationCapability | None,
    *,
    settings: AdapterSettings | None = None,
) -> AdapterOutput:
    """Turn sampling intent into request keys the model accepts.

    Unsupported keys become ``IgnoredParameter`` entries, non-finite values
    are dropped with an ``ignored`` warning, and out-of-range values are
    clamped with a ``clipped`` warning.
    """
    if sampling is None:
        return AdapterOutput()
    settings = settings or AdapterSettings()

    fragment: dict[str, Any] = {}
    warnings: list[AdapterWarning] = []
    ignored: list[IgnoredParameter] = []

    for key, value in sampling.present().items():
        if capability is None or not capability.sampling.supports(key):
            ignored.append(IgnoredParameter(key=key, reason="not supported"))
            continue

        if key in _NUMERIC_KEYS and not _is_finite_number(value):
            warnings.append(
                AdapterWarning(
                    type="ignored",
                    message=f"{key} discarded: {value!r} is not a finite number",
                    details={"parameter": key, "value": repr(value)},
                )
            )
            continue

        bounds = SAMPLING_RANGES.get(key)
        if bounds is not None:
            clipped = clamp(value, *bounds)
            if clipped != value:
                warnings.append(
                    AdapterWarning(
                        type="clipped",
                        message=f"{key} clipped from {value} to {clipped}",
                        details={"parameter": key, "original": value, "clipped": clipped},
                    )
                )
            value = clipped
        fragment[key] = value

    for key in sampling.unknown_keys():
        ignored.append(IgnoredParameter(key=key, reason="unknown parameter"))

    active = [key for key in INTERFERING_KEYS if key in fragment]
    if len(active) > settings.sampling_interference_threshold:
        warnings.append(
            AdapterWarning(
                type="fallback",
                message=(
                    f"{len(active)} sampling parameters set together "
                    f"({', '.join(active)}); they may interfere with each other"
                ),
                details={"active": active},
            )
        )

    return AdapterOutput(
        fragment=fragment, warnings=tuple(warnings), ignored=tuple(ignored)
    )
