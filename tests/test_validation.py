"""Pre-flight config validation tests."""

from __future__ import annotations

import math

import pytest

from routerwire.generation import GenerationConfig
from routerwire.validation import ValidationIssue, validate_generation_config

pytestmark = pytest.mark.unit


def _fields(issues: list[ValidationIssue]) -> list[str]:
    return [issue.field for issue in issues]


@pytest.mark.parametrize(
    "config",
    [
        None,
        {},
        GenerationConfig(),
        {
            "sampling": {"temperature": 1.0, "top_k": 40, "logit_bias": {"1": -5}},
            "length": {"max_tokens": 256, "stop": "END"},
            "reasoning": {"control_mode": "max_tokens", "max_reasoning_tokens": 2048},
        },
    ],
)
def test_valid_configs_have_no_issues(config: object) -> None:
    assert validate_generation_config(config) == []  # type: ignore[arg-type]


def test_out_of_range_sampling_is_reported() -> None:
    issues = validate_generation_config(
        {"sampling": {"temperature": 2.5, "top_p": -0.1, "repetition_penalty": 1.0}}
    )

    assert _fields(issues) == ["sampling.temperature", "sampling.top_p"]
    assert issues[0].message == "out of range [0, 2]: 2.5"


def test_non_finite_sampling_is_reported() -> None:
    issues = validate_generation_config({"sampling": {"min_p": math.inf}})

    assert _fields(issues) == ["sampling.min_p"]
    assert "finite" in issues[0].message


def test_negative_top_k_is_reported() -> None:
    issues = validate_generation_config({"sampling": {"top_k": -1}})

    assert issues == [ValidationIssue("sampling.top_k", "must be >= 0")]


def test_unknown_sampling_keys_are_reported() -> None:
    issues = validate_generation_config({"sampling": {"typical_p": 0.9}})

    assert issues == [ValidationIssue("sampling.typical_p", "unknown parameter")]


@pytest.mark.parametrize(
    ("config", "field"),
    [
        ({"length": {"max_tokens": 0}}, "length.max_tokens"),
        ({"reasoning": {"max_reasoning_tokens": -5}}, "reasoning.max_reasoning_tokens"),
        ({"reasoning": {"max_completion_tokens": 0}}, "reasoning.max_completion_tokens"),
    ],
)
def test_non_positive_token_counts_are_reported(config: dict, field: str) -> None:
    issues = validate_generation_config(config)

    assert _fields(issues) == [field]
    assert issues[0].message.startswith("must be > 0")


def test_budget_required_in_max_tokens_mode() -> None:
    issues = validate_generation_config({"reasoning": {"controlMode": "max_tokens"}})

    assert issues == [
        ValidationIssue(
            "reasoning.max_reasoning_tokens", "required when control_mode is 'max_tokens'"
        )
    ]


def test_schema_errors_are_reported_not_raised() -> None:
    issues = validate_generation_config(
        {"reasoning": {"effort": "extreme"}, "length": {"stop": 5}}
    )

    assert sorted(_fields(issues)) == ["length.stop", "reasoning.effort"]
