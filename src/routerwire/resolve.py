"""Layered generation config resolution.

Precedence, lowest to highest: defaults → global → model → conversation →
request. Unset values never override; nested sections merge key-wise.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Any, Literal

from routerwire.config import AdapterSettings
from routerwire.generation import GenerationConfig, ReasoningConfig
from routerwire.types import ReasoningResolvedConfig

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

LayerSource = Literal["default", "global", "model", "conversation", "request"]

DEFAULT_GENERATION_CONFIG = GenerationConfig(
    reasoning=ReasoningConfig(
        control_mode="effort",
        effort="medium",
        show_reasoning_content=False,
    )
)


@dataclass(frozen=True)
class ConfigLayer:
    source: LayerSource
    config: GenerationConfig


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def merge_configs(
    *configs: GenerationConfig | Mapping[str, Any] | None,
) -> GenerationConfig:
    """Merge configs left to right; later values win, unset values are skipped.

    Raises:
        ConfigurationError: When a mapping layer fails validation.
    """
    merged: dict[str, Any] = {}
    for config in configs:
        if config is None:
            continue
        merged = _deep_merge(merged, GenerationConfig.from_mapping(config).to_mapping())
    return GenerationConfig.from_mapping(merged)


def resolve_reasoning_config(
    reasoning: ReasoningConfig | None,
    settings: AdapterSettings | None = None,
) -> ReasoningResolvedConfig:
    """Resolve ``auto`` (and a missing mode) into a concrete control mode.

    ``auto`` picks ``max_tokens`` when a positive budget is present and
    ``effort`` otherwise. ``disabled`` always carries effort ``none``.
    """
    settings = settings or AdapterSettings()
    reasoning = reasoning or ReasoningConfig()
    mode = reasoning.control_mode or "effort"
    show = bool(reasoning.show_reasoning_content)
    budget = reasoning.max_reasoning_tokens

    if mode == "auto":
        mode = "max_tokens" if budget is not None and budget > 0 else "effort"
        logger.debug("Resolved reasoning mode 'auto' to %r", mode)

    match mode:
        case "disabled":
            return ReasoningResolvedConfig(
                control_mode="disabled",
                effort="none",
                max_completion_tokens=reasoning.max_completion_tokens,
                show_reasoning_content=show,
            )
        case "max_tokens":
            return ReasoningResolvedConfig(
                control_mode="max_tokens",
                effort=reasoning.effort,
                max_reasoning_tokens=budget,
                max_completion_tokens=reasoning.max_completion_tokens,
                show_reasoning_content=show,
            )
        case _:
            return ReasoningResolvedConfig(
                control_mode="effort",
                effort=reasoning.effort or settings.default_effort,
                max_completion_tokens=reasoning.max_completion_tokens,
                show_reasoning_content=show,
            )


class ConfigResolver:
    """In-memory override layers producing one effective config per request.

    Persistence of the layers belongs to the caller; this class only merges.

    Example:
        resolver = ConfigResolver()
        resolver.set_model("anthropic/claude-sonnet-4", {"sampling": {"temperature": 0.3}})
        config = resolver.effective_config("anthropic/claude-sonnet-4")
    """

    def __init__(self, defaults: GenerationConfig | Mapping[str, Any] | None = None) -> None:
        self._defaults = (
            DEFAULT_GENERATION_CONFIG
            if defaults is None
            else GenerationConfig.from_mapping(defaults)
        )
        self._global: GenerationConfig | None = None
        self._models: dict[str, GenerationConfig] = {}
        self._conversations: dict[str, GenerationConfig] = {}

    def set_global(self, config: GenerationConfig | Mapping[str, Any] | None) -> None:
        self._global = None if config is None else GenerationConfig.from_mapping(config)

    def set_model(
        self, model_id: str, config: GenerationConfig | Mapping[str, Any] | None
    ) -> None:
        if config is None:
            self._models.pop(model_id, None)
        else:
            self._models[model_id] = GenerationConfig.from_mapping(config)

    def set_conversation(
        self, conversation_id: str, config: GenerationConfig | Mapping[str, Any] | None
    ) -> None:
        if config is None:
            self._conversations.pop(conversation_id, None)
        else:
            self._conversations[conversation_id] = GenerationConfig.from_mapping(config)

    def config_stack(
        self,
        model_id: str | None = None,
        conversation_id: str | None = None,
        request_override: GenerationConfig | Mapping[str, Any] | None = None,
    ) -> list[ConfigLayer]:
        """Return the non-empty layers that apply, lowest precedence first."""
        candidates: list[tuple[LayerSource, GenerationConfig | None]] = [
            ("default", self._defaults),
            ("global", self._global),
            ("model", self._models.get(model_id) if model_id else None),
            (
                "conversation",
                self._conversations.get(conversation_id) if conversation_id else None,
            ),
            (
                "request",
                None
                if request_override is None
                else GenerationConfig.from_mapping(request_override),
            ),
        ]
        return [
            ConfigLayer(source=source, config=config)
            for source, config in candidates
            if config is not None and config.to_mapping()
        ]

    def effective_config(
        self,
        model_id: str | None = None,
        conversation_id: str | None = None,
        request_override: GenerationConfig | Mapping[str, Any] | None = None,
    ) -> GenerationConfig:
        stack = self.config_stack(model_id, conversation_id, request_override)
        logger.debug(
            "Resolving generation config from layers: %s",
            [layer.source for layer in stack],
        )
        return merge_configs(*(layer.config for layer in stack))
