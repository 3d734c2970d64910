"""Abstract generation config schema (pydantic wall).

Callers hand over plain mappings from storage or a UI; everything entering
the encoder flows through these models first. Both snake_case keys and the
legacy camelCase spellings (``controlMode``, ``maxReasoningTokens``) are
accepted. Unknown sampling keys are preserved so the encoder can report them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from routerwire.errors import ConfigurationError
from routerwire.types import ControlMode, Effort, Verbosity

if TYPE_CHECKING:
    from collections.abc import Mapping

# Order is the order keys are written into the request fragment.
SAMPLING_KEYS: tuple[str, ...] = (
    "temperature",
    "top_p",
    "top_k",
    "min_p",
    "top_a",
    "frequency_penalty",
    "presence_penalty",
    "repetition_penalty",
    "seed",
    "logit_bias",
)


class _Section(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class SamplingConfig(_Section):
    """Sampling intent. Every field is optional; unset means "do not send"."""

    model_config = ConfigDict(extra="allow")

    temperature: float | None = None
    top_p: float | None = None
    top_k: int | float | None = None
    min_p: float | None = None
    top_a: float | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    repetition_penalty: float | None = None
    seed: int | float | None = None
    logit_bias: dict[str, float] | None = None

    def present(self) -> dict[str, Any]:
        """Return the known keys that carry a value, in wire order."""
        return {
            key: getattr(self, key)
            for key in SAMPLING_KEYS
            if getattr(self, key) is not None
        }

    def unknown_keys(self) -> list[str]:
        return sorted(k for k, v in (self.model_extra or {}).items() if v is not None)


class LengthConfig(_Section):
    """Length and truncation intent."""

    max_tokens: int | None = None
    stop: list[str] | None = None
    verbosity: Verbosity | None = None

    @field_validator("stop", mode="before")
    @classmethod
    def normalize_stop(cls, v: Any) -> Any:
        """Accept a single stop string as a one-element list."""
        if isinstance(v, str):
            return [v]
        return v


class ReasoningConfig(_Section):
    """Reasoning intent, possibly still in ``auto`` mode."""

    control_mode: ControlMode | None = None
    effort: Effort | None = None
    max_reasoning_tokens: int | None = None
    max_completion_tokens: int | None = None
    show_reasoning_content: bool | None = None


class GenerationConfig(_Section):
    """Provider-agnostic generation config with three optional sections."""

    sampling: SamplingConfig | None = None
    length: LengthConfig | None = None
    reasoning: ReasoningConfig | None = None

    @classmethod
    def from_mapping(
        cls, data: Mapping[str, Any] | GenerationConfig | None
    ) -> GenerationConfig:
        """Validate *data* into a GenerationConfig.

        Raises:
            ConfigurationError: When a field has the wrong type or an
                unknown literal value.
        """
        if data is None:
            return cls()
        if isinstance(data, GenerationConfig):
            return data
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            err = e.errors()[0]
            loc = ".".join(str(part) for part in err.get("loc", ()))
            msg = err.get("msg", "invalid value")
            raise ConfigurationError(
                f"Generation config validation failed at {loc or '<root>'}: {msg}",
                hint="Check the sampling / length / reasoning sections for typos or wrong types.",
            ) from e

    def to_mapping(self) -> dict[str, Any]:
        """Dump set values only, by field name."""
        return self.model_dump(exclude_none=True)
