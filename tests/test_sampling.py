"""Sampling sub-adapter tests: gating, clamping, and interference warnings."""

from __future__ import annotations

import math

from hypothesis import given, settings
from hypothesis import strategies as st
import pytest

from routerwire.capabilities import ModelGenerationCapability, SamplingSupport
from routerwire.config import AdapterSettings
from routerwire.generation import SAMPLING_KEYS, SamplingConfig
from routerwire.sampling import SAMPLING_RANGES, encode_sampling

pytestmark = pytest.mark.unit

ALL_SAMPLING = ModelGenerationCapability(
    model_id="test/all-sampling",
    sampling=SamplingSupport(**dict.fromkeys(SAMPLING_KEYS, True)),
)


def _cap(**flags: bool) -> ModelGenerationCapability:
    return ModelGenerationCapability(model_id="test/model", sampling=SamplingSupport(**flags))


def test_unsupported_key_is_ignored_not_sent() -> None:
    out = encode_sampling(SamplingConfig(temperature=0.5, top_k=5), _cap(temperature=True))

    assert out.fragment == {"temperature": 0.5}
    assert [(p.key, p.reason) for p in out.ignored] == [("top_k", "not supported")]
    assert out.warnings == ()


def test_missing_capability_denies_every_key() -> None:
    out = encode_sampling(SamplingConfig(temperature=0.5, seed=7), None)

    assert out.fragment == {}
    assert sorted(p.key for p in out.ignored) == ["seed", "temperature"]


@pytest.mark.parametrize(
    ("key", "value", "expected"),
    [
        ("temperature", 2.5, 2.0),
        ("temperature", -0.1, 0.0),
        ("top_p", 1.2, 1.0),
        ("min_p", -1.0, 0.0),
        ("top_a", 3.0, 1.0),
        ("frequency_penalty", -3.0, -2.0),
        ("presence_penalty", 2.5, 2.0),
        ("repetition_penalty", 2.1, 2.0),
    ],
)
def test_out_of_range_values_are_clipped(key: str, value: float, expected: float) -> None:
    out = encode_sampling(SamplingConfig(**{key: value}), ALL_SAMPLING)

    assert out.fragment == {key: expected}
    assert len(out.warnings) == 1
    warning = out.warnings[0]
    assert warning.type == "clipped"
    assert key in warning.message
    assert warning.details == {"parameter": key, "original": value, "clipped": expected}


@pytest.mark.parametrize("value", [math.inf, -math.inf, math.nan])
def test_non_finite_values_are_discarded(value: float) -> None:
    out = encode_sampling(SamplingConfig(temperature=value), ALL_SAMPLING)

    assert out.fragment == {}
    assert [w.type for w in out.warnings] == ["ignored"]
    assert out.ignored == ()


def test_top_k_seed_and_logit_bias_pass_through() -> None:
    out = encode_sampling(
        SamplingConfig(top_k=400, seed=42, logit_bias={"50256": -100}), ALL_SAMPLING
    )

    assert out.fragment == {"top_k": 400, "seed": 42, "logit_bias": {"50256": -100.0}}
    assert out.warnings == ()


def test_unknown_keys_are_reported() -> None:
    sampling = SamplingConfig.model_validate({"temperature": 1.0, "mirostat_tau": 5.0})

    out = encode_sampling(sampling, ALL_SAMPLING)

    assert out.fragment == {"temperature": 1.0}
    assert [(p.key, p.reason) for p in out.ignored] == [("mirostat_tau", "unknown parameter")]


def test_interference_warning_above_threshold_still_sends_values() -> None:
    out = encode_sampling(
        SamplingConfig(temperature=0.7, top_p=0.9, top_k=40), ALL_SAMPLING
    )

    assert out.fragment == {"temperature": 0.7, "top_p": 0.9, "top_k": 40}
    fallback = [w for w in out.warnings if w.type == "fallback"]
    assert len(fallback) == 1
    assert fallback[0].details == {"active": ["temperature", "top_p", "top_k"]}


def test_no_interference_warning_at_threshold() -> None:
    out = encode_sampling(SamplingConfig(temperature=0.7, top_p=0.9), ALL_SAMPLING)

    assert out.warnings == ()


def test_interference_threshold_is_tunable() -> None:
    sampling = SamplingConfig(temperature=0.7, top_p=0.9, top_k=40)

    out = encode_sampling(
        sampling, ALL_SAMPLING, settings=AdapterSettings(sampling_interference_threshold=3)
    )

    assert out.warnings == ()


def test_ignored_keys_do_not_count_towards_interference() -> None:
    out = encode_sampling(
        SamplingConfig(temperature=0.7, top_p=0.9, top_k=40),
        _cap(temperature=True, top_p=True),
    )

    assert [w.type for w in out.warnings] == []
    assert [p.key for p in out.ignored] == ["top_k"]


def test_camel_case_aliases_are_accepted() -> None:
    sampling = SamplingConfig.model_validate({"topP": 0.5, "frequencyPenalty": 0.1})

    out = encode_sampling(sampling, ALL_SAMPLING)

    assert out.fragment == {"top_p": 0.5, "frequency_penalty": 0.1}


@given(
    key=st.sampled_from(sorted(SAMPLING_RANGES)),
    data=st.data(),
)
@settings(max_examples=25, deadline=None, derandomize=True)
def test_in_range_values_are_sent_unchanged(key: str, data: st.DataObject) -> None:
    """Property: an in-range supported value is sent verbatim with no reports."""
    low, high = SAMPLING_RANGES[key]
    value = data.draw(st.floats(min_value=low, max_value=high, allow_nan=False))

    out = encode_sampling(SamplingConfig(**{key: value}), ALL_SAMPLING)

    assert out.fragment == {key: value}
    assert out.warnings == ()
    assert out.ignored == ()


@given(keys=st.sets(st.sampled_from(SAMPLING_KEYS), min_size=1))
@settings(max_examples=20, deadline=None, derandomize=True)
def test_unsupported_keys_never_reach_the_fragment(keys: set[str]) -> None:
    """Property: each unsupported key is absent and ignored exactly once."""
    values = {k: ({"1": 1.0} if k == "logit_bias" else 1) for k in keys}

    out = encode_sampling(SamplingConfig(**values), _cap())

    assert out.fragment == {}
    assert sorted(p.key for p in out.ignored) == sorted(keys)
