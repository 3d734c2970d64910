"""Pre-flight checks on a generation config, for display next to the inputs.

The encoder clamps and drops bad values on its own; these checks exist so a
settings screen can point at the offending field before a request is sent.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from routerwire.generation import GenerationConfig
from routerwire.sampling import SAMPLING_RANGES

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True)
class ValidationIssue:
    field: str
    message: str


def _schema_issues(error: ValidationError) -> list[ValidationIssue]:
    return [
        ValidationIssue(
            field=".".join(str(part) for part in err.get("loc", ())) or "<root>",
            message=err.get("msg", "invalid value"),
        )
        for err in error.errors()
    ]


def _positive(value: Any, field: str) -> list[ValidationIssue]:
    if value is not None and value <= 0:
        return [ValidationIssue(field, f"must be > 0, got {value}")]
    return []


def validate_generation_config(
    config: GenerationConfig | Mapping[str, Any] | None,
) -> list[ValidationIssue]:
    """Return every problem found in *config*; an empty list means valid.

    Never raises: schema failures are reported as issues too.
    """
    if config is None:
        return []
    if not isinstance(config, GenerationConfig):
        try:
            config = GenerationConfig.model_validate(dict(config))
        except ValidationError as e:
            return _schema_issues(e)

    issues: list[ValidationIssue] = []

    sampling = config.sampling
    if sampling is not None:
        for key, value in sampling.present().items():
            field = f"sampling.{key}"
            if key == "logit_bias":
                continue
            if not math.isfinite(value):
                issues.append(ValidationIssue(field, f"must be a finite number, got {value}"))
                continue
            bounds = SAMPLING_RANGES.get(key)
            if bounds is not None and not bounds[0] <= value <= bounds[1]:
                issues.append(
                    ValidationIssue(
                        field, f"out of range [{bounds[0]:g}, {bounds[1]:g}]: {value}"
                    )
                )
            if key == "top_k" and value < 0:
                issues.append(ValidationIssue(field, "must be >= 0"))
        issues.extend(
            ValidationIssue(f"sampling.{key}", "unknown parameter")
            for key in sampling.unknown_keys()
        )

    if config.length is not None:
        issues.extend(_positive(config.length.max_tokens, "length.max_tokens"))

    reasoning = config.reasoning
    if reasoning is not None:
        issues.extend(
            _positive(reasoning.max_reasoning_tokens, "reasoning.max_reasoning_tokens")
        )
        issues.extend(
            _positive(reasoning.max_completion_tokens, "reasoning.max_completion_tokens")
        )
        if reasoning.control_mode == "max_tokens" and reasoning.max_reasoning_tokens is None:
            issues.append(
                ValidationIssue(
                    "reasoning.max_reasoning_tokens",
                    "required when control_mode is 'max_tokens'",
                )
            )

    return issues
