"""Per-model capability table and reasoning classification.

A capability describes which request parameters a model accepts. It is built
from one entry of the upstream ``/models`` catalog and stays immutable until
the next catalog sync swaps the whole registry snapshot.

Classification only reads upstream-declared fields:

- ``supported_parameters`` decides every boolean flag.
- ``top_provider.max_completion_tokens`` is the absolute completion ceiling.
- ``pricing.internal_reasoning`` is recorded for diagnostics.
- The model id's provider prefix picks the family; a family on
  ``BOUNDED_BUDGET_FAMILIES`` turns a reasoning-capable model into class A.

Visibility of reasoning text comes from an exact-id table. Anything not in the
table stays ``"unknown"``, which only collapses to "not visible" inside
``treats_reasoning_as_visible``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
import logging
import math
import threading
from typing import TYPE_CHECKING, Any

from routerwire.errors import CapabilityError
from routerwire.generation import SAMPLING_KEYS

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from routerwire.types import MaxTokensPolicy, ReasoningClass, Visibility

logger = logging.getLogger(__name__)

# Families whose reasoning budget is a hard, bounded token budget.
BOUNDED_BUDGET_FAMILIES: frozenset[str] = frozenset({"anthropic", "gemini", "qwen"})

# Provider prefix of the model id -> family
_FAMILY_BY_PREFIX: dict[str, str] = {
    "anthropic": "anthropic",
    "google": "gemini",
    "openai": "openai",
    "x-ai": "xai",
    "qwen": "qwen",
    "deepseek": "deepseek",
}

# Reviewed per-model table: does the model return reasoning text at all?
VISIBLE_REASONING: dict[str, Visibility] = {
    "anthropic/claude-3.7-sonnet": "yes",
    "anthropic/claude-sonnet-4": "yes",
    "anthropic/claude-4.1-sonnet": "yes",
    "google/gemini-2.0-flash-thinking-exp": "no",
    "google/gemini-2.0-flash-thinking-exp-1219": "no",
    "google/gemini-exp-1206": "yes",
    "openai/o1-preview": "no",
    "openai/o1-mini": "no",
    "openai/o1": "yes",
    "openai/o3-mini": "yes",
    "deepseek/deepseek-r1": "yes",
    "deepseek/deepseek-reasoner": "yes",
    "x-ai/grok-2-1212-reasoning": "yes",
    "x-ai/grok-reasoning": "yes",
    "qwen/qwq-32b-preview": "yes",
    "qwen/qwen-2.5-coder-32b-thinking": "yes",
}

_POLICY_BY_CLASS: dict[ReasoningClass, MaxTokensPolicy] = {
    "A": "bounded-1024-32000",
    "B": "effort-hint",
    "C": "none",
}


@dataclass(frozen=True)
class SamplingSupport:
    temperature: bool = False
    top_p: bool = False
    top_k: bool = False
    min_p: bool = False
    top_a: bool = False
    frequency_penalty: bool = False
    presence_penalty: bool = False
    repetition_penalty: bool = False
    seed: bool = False
    logit_bias: bool = False

    def supports(self, key: str) -> bool:
        return key in SAMPLING_KEYS and bool(getattr(self, key))


@dataclass(frozen=True)
class LengthSupport:
    max_tokens: bool = False
    stop: bool = False
    verbosity: bool = False
    #: Absolute completion-token ceiling declared by the top provider.
    max_completion_tokens: int | None = None


@dataclass(frozen=True)
class ReasoningSupport:
    """How a model treats the ``reasoning`` request object."""

    supports_reasoning_param: bool = False
    #: Model declares the legacy ``include_reasoning`` flag.
    supports_include_reasoning: bool = False
    supports_max_reasoning_tokens: bool = False
    returns_visible_reasoning: Visibility = "unknown"
    reasoning_class: ReasoningClass = "C"
    max_tokens_policy: MaxTokensPolicy = "none"
    family: str = "other"
    max_completion_tokens: int | None = None
    internal_reasoning_price: float | None = None


@dataclass(frozen=True)
class OtherSupport:
    tools: bool = False
    response_format: bool = False
    structured_outputs: bool = False
    logprobs: bool = False
    top_logprobs: bool = False
    parallel_tool_calls: bool = False


@dataclass(frozen=True)
class ModelGenerationCapability:
    """Static description of what one model accepts.

    The defaults describe a model that accepts nothing optional; see
    ``unknown_capability``.
    """

    model_id: str
    sampling: SamplingSupport = field(default_factory=SamplingSupport)
    length: LengthSupport = field(default_factory=LengthSupport)
    reasoning: ReasoningSupport = field(default_factory=ReasoningSupport)
    other: OtherSupport = field(default_factory=OtherSupport)
    raw_supported_parameters: frozenset[str] = frozenset()
    #: ``architecture.input_modalities`` / ``output_modalities`` as declared.
    input_modalities: tuple[str, ...] = ()
    output_modalities: tuple[str, ...] = ()

    @property
    def outputs_images(self) -> bool:
        return "image" in self.output_modalities


def unknown_capability(model_id: str) -> ModelGenerationCapability:
    """Capability for a model missing from the table: every flag false."""
    return ModelGenerationCapability(model_id=model_id)


# --- Classification helpers ---


def detect_family(model_id: str) -> str:
    """Map the provider prefix of *model_id* to a family name."""
    prefix, sep, _ = model_id.strip().lower().partition("/")
    if not sep:
        return "other"
    return _FAMILY_BY_PREFIX.get(prefix, "other")


def detect_visible_reasoning(model_id: str) -> Visibility:
    return VISIBLE_REASONING.get(model_id, "unknown")


def classify_reasoning(supports_reasoning_param: bool, family: str) -> ReasoningClass:
    if not supports_reasoning_param:
        return "C"
    return "A" if family in BOUNDED_BUDGET_FAMILIES else "B"


def treats_reasoning_as_visible(capability: ModelGenerationCapability | None) -> bool:
    """Binary visibility decision; ``unknown`` counts as not visible."""
    if capability is None:
        return False
    return capability.reasoning.returns_visible_reasoning == "yes"


def visibility_label(capability: ModelGenerationCapability | None) -> str:
    """Human-readable visibility for diagnostics, keeping "unknown" distinct."""
    state = "unknown" if capability is None else capability.reasoning.returns_visible_reasoning
    return {"yes": "visible", "no": "not supported"}.get(state, "not verified")


def supported_parameters(capability: ModelGenerationCapability) -> list[str]:
    """Sorted list of request keys the capability allows."""
    keys = [k for k in SAMPLING_KEYS if capability.sampling.supports(k)]
    keys.extend(
        name
        for name in ("max_tokens", "stop", "verbosity")
        if getattr(capability.length, name)
    )
    if capability.reasoning.supports_reasoning_param:
        keys.append("reasoning")
    if capability.reasoning.supports_include_reasoning:
        keys.append("include_reasoning")
    keys.extend(f.name for f in fields(OtherSupport) if getattr(capability.other, f.name))
    return sorted(keys)


def capability_summary(capability: ModelGenerationCapability) -> dict[str, Any]:
    """Flat, log-friendly summary of a capability."""
    reasoning = capability.reasoning
    return {
        "model_id": capability.model_id,
        "family": reasoning.family,
        "reasoning_class": reasoning.reasoning_class,
        "max_tokens_policy": reasoning.max_tokens_policy,
        "visible_reasoning": visibility_label(capability),
        "max_completion_tokens": capability.length.max_completion_tokens,
        "output_modalities": list(capability.output_modalities),
        "supported_parameters": supported_parameters(capability),
    }


# --- Catalog builders ---


def _positive_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int) and value > 0:
        return value
    if isinstance(value, float) and math.isfinite(value) and value > 0 and value.is_integer():
        return int(value)
    return None


def _price(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str) and value.strip():
        try:
            parsed = float(value)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def _declared_parameters(entry: Mapping[str, Any]) -> frozenset[str]:
    params = entry.get("supported_parameters")
    if not isinstance(params, (list, tuple)):
        return frozenset()
    return frozenset(p for p in params if isinstance(p, str))


def _modalities(entry: Mapping[str, Any], key: str) -> tuple[str, ...]:
    architecture = entry.get("architecture")
    if not isinstance(architecture, dict):
        return ()
    values = architecture.get(key)
    if not isinstance(values, (list, tuple)):
        return ()
    cleaned = (v.strip().lower() for v in values if isinstance(v, str) and v.strip())
    return tuple(dict.fromkeys(cleaned))


def build_model_capability(entry: Mapping[str, Any]) -> ModelGenerationCapability:
    """Build a capability from one ``/models`` catalog entry.

    Raises:
        CapabilityError: When the entry has no string ``id``.
    """
    model_id = entry.get("id")
    if not isinstance(model_id, str) or not model_id.strip():
        raise CapabilityError(
            "Catalog entry has no model id",
            hint="Each entry under 'data' needs a non-empty string 'id'.",
        )

    params = _declared_parameters(entry)
    top_provider = entry.get("top_provider")
    ceiling = (
        _positive_int(top_provider.get("max_completion_tokens"))
        if isinstance(top_provider, dict)
        else None
    )
    pricing = entry.get("pricing")
    price = _price(pricing.get("internal_reasoning")) if isinstance(pricing, dict) else None

    family = detect_family(model_id)
    supports_param = "reasoning" in params
    reasoning_class = classify_reasoning(supports_param, family)

    return ModelGenerationCapability(
        model_id=model_id,
        sampling=SamplingSupport(**{key: key in params for key in SAMPLING_KEYS}),
        length=LengthSupport(
            max_tokens="max_tokens" in params,
            stop="stop" in params,
            verbosity="verbosity" in params,
            max_completion_tokens=ceiling,
        ),
        reasoning=ReasoningSupport(
            supports_reasoning_param=supports_param,
            supports_include_reasoning="include_reasoning" in params,
            supports_max_reasoning_tokens=reasoning_class == "A",
            returns_visible_reasoning=detect_visible_reasoning(model_id),
            reasoning_class=reasoning_class,
            max_tokens_policy=_POLICY_BY_CLASS[reasoning_class],
            family=family,
            max_completion_tokens=ceiling,
            internal_reasoning_price=price,
        ),
        other=OtherSupport(**{f.name: f.name in params for f in fields(OtherSupport)}),
        raw_supported_parameters=params,
        input_modalities=_modalities(entry, "input_modalities"),
        output_modalities=_modalities(entry, "output_modalities"),
    )


def build_capability_map(catalog: Any) -> dict[str, ModelGenerationCapability]:
    """Build capabilities for every usable entry of a ``/models`` response.

    Accepts either the full response (``{"data": [...]}``) or the bare entry
    list. Malformed entries are skipped with a warning; a catalog whose
    top-level shape is wrong raises.

    Raises:
        CapabilityError: When *catalog* is not a list of entries or a mapping
            with a ``data`` list.
    """
    if isinstance(catalog, dict):
        entries = catalog.get("data")
    else:
        entries = catalog
    if not isinstance(entries, (list, tuple)):
        raise CapabilityError(
            f"Capability catalog has unexpected shape: {type(catalog).__name__}",
            hint="Pass the /models response ({'data': [...]}) or its 'data' list.",
        )

    result: dict[str, ModelGenerationCapability] = {}
    for idx, entry in enumerate(entries):
        if not isinstance(entry, dict):
            logger.warning("Skipping catalog entry %d: not a mapping", idx)
            continue
        model_id = entry.get("id")
        if not isinstance(model_id, str) or not model_id.strip():
            logger.warning("Skipping catalog entry %d: missing model id", idx)
            continue
        result[model_id] = build_model_capability(entry)
    logger.debug("Built %d capabilities from %d catalog entries", len(result), len(entries))
    return result


class CapabilityRegistry:
    """Read-mostly snapshot of capabilities, swapped whole on each sync.

    Readers never lock: ``replace_all`` rebinds the snapshot reference, so a
    lookup sees either the old table or the new one.
    """

    def __init__(self, capabilities: Iterable[ModelGenerationCapability] = ()) -> None:
        self._snapshot: dict[str, ModelGenerationCapability] = {
            cap.model_id: cap for cap in capabilities
        }
        self._write_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._snapshot)

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._snapshot

    def register(self, capability: ModelGenerationCapability) -> None:
        """Add or replace one capability."""
        with self._write_lock:
            updated = dict(self._snapshot)
            updated[capability.model_id] = capability
            self._snapshot = updated

    def replace_all(
        self, capabilities: Mapping[str, ModelGenerationCapability]
    ) -> None:
        """Swap in a new snapshot produced by a catalog sync."""
        with self._write_lock:
            self._snapshot = dict(capabilities)
        logger.debug("Capability snapshot replaced (%d models)", len(capabilities))

    def get_capability(self, model_id: str) -> ModelGenerationCapability | None:
        return self._snapshot.get(model_id)

    def capability_for(self, model_id: str) -> ModelGenerationCapability:
        """Lookup that fails closed: a miss yields ``unknown_capability``."""
        capability = self._snapshot.get(model_id)
        if capability is None:
            logger.debug("No capability for %s; denying optional parameters", model_id)
            return unknown_capability(model_id)
        return capability
