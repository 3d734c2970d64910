"""Configuration: frozen adapter settings with env-driven tunables."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import math
import os
from typing import TYPE_CHECKING, get_args

from dotenv import load_dotenv

from routerwire.errors import ConfigurationError
from routerwire.types import Effort

if TYPE_CHECKING:
    from collections.abc import Mapping

load_dotenv()

logger = logging.getLogger(__name__)

ENV_PREFIX = "ROUTERWIRE_"

# Environment variable suffix -> AdapterSettings field
_ENV_FIELDS: dict[str, str] = {
    "SAMPLING_INTERFERENCE_THRESHOLD": "sampling_interference_threshold",
    "REASONING_BUDGET_MIN": "reasoning_budget_min",
    "REASONING_BUDGET_MAX": "reasoning_budget_max",
    "COMPLETION_MARGIN": "completion_margin",
    "DEFAULT_EFFORT": "default_effort",
}

_INT_FIELDS = frozenset(
    {
        "sampling_interference_threshold",
        "reasoning_budget_min",
        "reasoning_budget_max",
        "completion_margin",
    }
)


@dataclass(frozen=True)
class AdapterSettings:
    """Immutable tunables for request encoding.

    The defaults match the upstream protocol's documented behavior; override
    them only when a deployment has a reason to diverge.

    Example:
        settings = AdapterSettings(sampling_interference_threshold=3)
        result = encode_request(model_id, capability, config, settings=settings)
    """

    #: Warn when more than this many of the interfering sampling keys are set.
    sampling_interference_threshold: int = 2
    #: Hard clamp window for class-A reasoning budgets.
    reasoning_budget_min: int = 1024
    reasoning_budget_max: int = 32000
    #: Outer ``max_tokens`` is forced to at least budget + margin for class A.
    completion_margin: int = 1024
    #: Effort sent when effort mode is requested without a level.
    default_effort: Effort = "medium"

    def __post_init__(self) -> None:
        """Validate tunables."""
        if self.sampling_interference_threshold < 0:
            raise ConfigurationError(
                "sampling_interference_threshold must be ≥ 0, "
                f"got {self.sampling_interference_threshold}",
                hint="This is the number of interfering sampling keys tolerated before warning.",
            )
        if self.reasoning_budget_min < 1:
            raise ConfigurationError(
                f"reasoning_budget_min must be ≥ 1, got {self.reasoning_budget_min}",
                hint="Class-A reasoning budgets are positive token counts.",
            )
        if self.reasoning_budget_max < self.reasoning_budget_min:
            raise ConfigurationError(
                "reasoning_budget_max must be ≥ reasoning_budget_min, got "
                f"{self.reasoning_budget_max} < {self.reasoning_budget_min}",
                hint="The class-A clamp window is [reasoning_budget_min, reasoning_budget_max].",
            )
        if self.completion_margin < 1:
            raise ConfigurationError(
                f"completion_margin must be ≥ 1, got {self.completion_margin}",
                hint="max_tokens must stay strictly greater than the reasoning budget.",
            )
        if self.default_effort not in get_args(Effort):
            raise ConfigurationError(
                f"Unknown default_effort: {self.default_effort!r}",
                hint=f"Supported efforts: {', '.join(get_args(Effort))}",
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AdapterSettings:
        """Build settings from ``ROUTERWIRE_*`` environment variables.

        Unset variables keep their defaults. Malformed integers raise
        ``ConfigurationError`` naming the offending variable.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        for suffix, field_name in _ENV_FIELDS.items():
            raw = env.get(ENV_PREFIX + suffix)
            if raw is None or not raw.strip():
                continue
            raw = raw.strip()
            if field_name in _INT_FIELDS:
                values[field_name] = _parse_int(ENV_PREFIX + suffix, raw)
            else:
                values[field_name] = raw.lower()
        if values:
            logger.debug("Adapter settings overridden from environment: %s", sorted(values))
        return cls(**values)  # type: ignore[arg-type]


def _parse_int(name: str, raw: str) -> int:
    try:
        value = float(raw)
    except ValueError:
        value = math.nan
    if not math.isfinite(value) or value != int(value):
        raise ConfigurationError(
            f"{name} must be an integer, got {raw!r}",
            hint=f"Unset {name} to use the default.",
        )
    return int(value)
