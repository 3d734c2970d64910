"""Config layering and reasoning-mode resolution tests."""

from __future__ import annotations

import pytest

from routerwire.config import AdapterSettings
from routerwire.errors import ConfigurationError
from routerwire.generation import GenerationConfig, ReasoningConfig
from routerwire.resolve import (
    DEFAULT_GENERATION_CONFIG,
    ConfigResolver,
    merge_configs,
    resolve_reasoning_config,
)
from routerwire.types import ReasoningResolvedConfig

pytestmark = pytest.mark.unit

MODEL = "anthropic/claude-sonnet-4"


# =============================================================================
# merge_configs
# =============================================================================


def test_later_layers_win() -> None:
    merged = merge_configs(
        {"sampling": {"temperature": 0.2}},
        {"sampling": {"temperature": 0.9}},
    )

    assert merged.sampling is not None
    assert merged.sampling.temperature == 0.9


def test_unset_values_do_not_override() -> None:
    merged = merge_configs(
        {"sampling": {"temperature": 0.2, "top_p": 0.5}},
        {"sampling": {"temperature": None}},
        GenerationConfig(),
    )

    assert merged.sampling is not None
    assert merged.sampling.temperature == 0.2
    assert merged.sampling.top_p == 0.5


def test_sections_merge_key_wise() -> None:
    merged = merge_configs(
        {"reasoning": {"control_mode": "max_tokens", "max_reasoning_tokens": 4000}},
        {"reasoning": {"showReasoningContent": True}},
        {"length": {"max_tokens": 100}},
    )

    assert merged.to_mapping() == {
        "reasoning": {
            "control_mode": "max_tokens",
            "max_reasoning_tokens": 4000,
            "show_reasoning_content": True,
        },
        "length": {"max_tokens": 100},
    }


def test_lists_are_replaced_not_concatenated() -> None:
    merged = merge_configs({"length": {"stop": ["a"]}}, {"length": {"stop": ["b"]}})

    assert merged.length is not None
    assert merged.length.stop == ["b"]


def test_unknown_sampling_keys_survive_merge() -> None:
    merged = merge_configs({"sampling": {"mirostat_tau": 5.0}})

    assert merged.sampling is not None
    assert merged.sampling.unknown_keys() == ["mirostat_tau"]


def test_merge_with_no_layers_is_empty() -> None:
    assert merge_configs().to_mapping() == {}
    assert merge_configs(None, None).to_mapping() == {}


def test_invalid_layer_raises_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="sampling.temperature"):
        merge_configs({"sampling": {"temperature": "hot"}})


# =============================================================================
# ConfigResolver
# =============================================================================


def test_precedence_default_global_model_conversation_request() -> None:
    resolver = ConfigResolver()
    resolver.set_global({"sampling": {"temperature": 0.1, "top_p": 0.1, "seed": 1}})
    resolver.set_model(MODEL, {"sampling": {"temperature": 0.2, "top_p": 0.2}})
    resolver.set_conversation("c1", {"sampling": {"temperature": 0.3}})

    effective = resolver.effective_config(
        MODEL, "c1", {"reasoning": {"effort": "high"}}
    )

    assert effective.sampling is not None
    assert effective.sampling.temperature == 0.3
    assert effective.sampling.top_p == 0.2
    assert effective.sampling.seed == 1
    assert effective.reasoning == ReasoningConfig(
        control_mode="effort", effort="high", show_reasoning_content=False
    )


def test_defaults_apply_when_nothing_is_set() -> None:
    effective = ConfigResolver().effective_config(MODEL)

    assert effective == DEFAULT_GENERATION_CONFIG


def test_model_layer_only_applies_to_its_model() -> None:
    resolver = ConfigResolver()
    resolver.set_model(MODEL, {"length": {"max_tokens": 500}})

    assert resolver.effective_config("openai/o3-mini").length is None
    assert resolver.effective_config(MODEL).length is not None


def test_config_stack_lists_non_empty_layers_in_order() -> None:
    resolver = ConfigResolver()
    resolver.set_global({})
    resolver.set_model(MODEL, {"sampling": {"temperature": 0.5}})
    resolver.set_conversation("c1", {"length": {"max_tokens": 10}})

    stack = resolver.config_stack(MODEL, "c1", {"length": {"stop": ["x"]}})

    assert [layer.source for layer in stack] == ["default", "model", "conversation", "request"]


def test_clearing_a_layer_removes_it() -> None:
    resolver = ConfigResolver()
    resolver.set_model(MODEL, {"sampling": {"temperature": 0.5}})
    resolver.set_conversation("c1", {"sampling": {"top_p": 0.5}})
    resolver.set_global({"length": {"max_tokens": 10}})

    resolver.set_model(MODEL, None)
    resolver.set_conversation("c1", None)
    resolver.set_global(None)

    assert [layer.source for layer in resolver.config_stack(MODEL, "c1")] == ["default"]


def test_custom_defaults() -> None:
    resolver = ConfigResolver(defaults={"reasoning": {"control_mode": "disabled"}})

    effective = resolver.effective_config()

    assert effective.reasoning is not None
    assert effective.reasoning.control_mode == "disabled"


def test_invalid_layer_is_rejected_on_set() -> None:
    resolver = ConfigResolver()

    with pytest.raises(ConfigurationError):
        resolver.set_model(MODEL, {"reasoning": {"effort": "extreme"}})


# =============================================================================
# resolve_reasoning_config
# =============================================================================


@pytest.mark.parametrize(
    ("reasoning", "expected"),
    [
        (
            ReasoningConfig(control_mode="auto", max_reasoning_tokens=2048),
            ReasoningResolvedConfig(control_mode="max_tokens", max_reasoning_tokens=2048),
        ),
        (
            ReasoningConfig(control_mode="auto"),
            ReasoningResolvedConfig(control_mode="effort", effort="medium"),
        ),
        (
            ReasoningConfig(control_mode="auto", max_reasoning_tokens=0, effort="low"),
            ReasoningResolvedConfig(control_mode="effort", effort="low"),
        ),
        (
            ReasoningConfig(control_mode="disabled", effort="high"),
            ReasoningResolvedConfig(control_mode="disabled", effort="none"),
        ),
        (
            ReasoningConfig(show_reasoning_content=True),
            ReasoningResolvedConfig(
                control_mode="effort", effort="medium", show_reasoning_content=True
            ),
        ),
    ],
)
def test_resolve_reasoning_modes(
    reasoning: ReasoningConfig, expected: ReasoningResolvedConfig
) -> None:
    assert resolve_reasoning_config(reasoning) == expected


def test_missing_reasoning_resolves_to_default_effort() -> None:
    resolved = resolve_reasoning_config(None, AdapterSettings(default_effort="high"))

    assert resolved == ReasoningResolvedConfig(control_mode="effort", effort="high")


def test_max_completion_tokens_is_carried_through() -> None:
    resolved = resolve_reasoning_config(
        ReasoningConfig(
            control_mode="max_tokens",
            max_reasoning_tokens=8000,
            max_completion_tokens=12000,
        )
    )

    assert resolved.max_completion_tokens == 12000
    assert resolved.max_reasoning_tokens == 8000
