"""Pytest configuration and fixtures.

Provides environment isolation, logging configuration, marker registration,
and shared capability fixtures. Fixtures in the isolation section are autouse.
"""

from __future__ import annotations

from contextlib import suppress
import logging
import os

import pytest

from routerwire.capabilities import ModelGenerationCapability, build_model_capability
from tests.helpers import catalog_entry

# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_routerwire_env(request, monkeypatch):
    """Ensure a clean ROUTERWIRE_* environment for each test.

    Opt-out: @pytest.mark.allow_env_pollution
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return

    for key in list(os.environ.keys()):
        if key.startswith("ROUTERWIRE_"):
            monkeypatch.delenv(key, raising=False)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    logging.getLogger("hypothesis").setLevel(logging.WARNING)


# =============================================================================
# Capability Fixtures
# =============================================================================


@pytest.fixture
def class_a_capability() -> ModelGenerationCapability:
    """Anthropic reasoning model: bounded budget, visible reasoning."""
    return build_model_capability(
        catalog_entry(
            "anthropic/claude-sonnet-4",
            "reasoning",
            "include_reasoning",
            "max_tokens",
            "temperature",
            "top_p",
            "top_k",
            "stop",
            max_completion_tokens=64000,
        )
    )


@pytest.fixture
def class_b_capability() -> ModelGenerationCapability:
    """OpenAI reasoning model: effort only, no include_reasoning flag."""
    return build_model_capability(
        catalog_entry(
            "openai/o3-mini",
            "reasoning",
            "max_tokens",
            "seed",
            max_completion_tokens=100000,
        )
    )


@pytest.fixture
def class_c_capability() -> ModelGenerationCapability:
    """Plain chat model without a reasoning parameter."""
    return build_model_capability(
        catalog_entry(
            "mistralai/mistral-small",
            "max_tokens",
            "temperature",
            "top_p",
            "stop",
            max_completion_tokens=8192,
        )
    )
