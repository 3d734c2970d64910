"""Request encoding: sampling → reasoning → length into one request fragment."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from routerwire.capabilities import supported_parameters
from routerwire.config import AdapterSettings
from routerwire.errors import InternalError
from routerwire.generation import GenerationConfig
from routerwire.length import encode_length
from routerwire.reasoning import encode_reasoning
from routerwire.resolve import resolve_reasoning_config
from routerwire.sampling import encode_sampling
from routerwire.types import EncodeResult

if TYPE_CHECKING:
    from collections.abc import Mapping

    from routerwire.capabilities import ModelGenerationCapability


logger = logging.getLogger(__name__)


def encode_request(
    model_id: str,
    capability: ModelGenerationCapability | None,
    effective_config: GenerationConfig | Mapping[str, Any] | None,
    *,
    settings: AdapterSettings | None = None,
) -> EncodeResult:
    """Translate an effective generation config into wire request keys.

    A missing *capability* denies every optional parameter. Unsupported or
    out-of-range values are reported on the result, never raised.

    Args:
        model_id: Model the request targets (used for reporting).
        capability: The model's capability, or ``None`` when unknown.
        effective_config: Already-merged config, as a model or a mapping.
        settings: Encoding tunables; defaults apply when omitted.

    Returns:
        EncodeResult with the request fragment, warnings and ignored keys.

    Raises:
        ConfigurationError: When a mapping config fails schema validation.

    Example:
        result = encode_request(
            "anthropic/claude-sonnet-4",
            registry.get_capability("anthropic/claude-sonnet-4"),
            {"sampling": {"temperature": 0.7}, "reasoning": {"control_mode": "effort"}},
        )
        body = {"model": "anthropic/claude-sonnet-4", "messages": messages}
        body.update(result.request_fragment)
    """
    settings = settings or AdapterSettings()
    config = GenerationConfig.from_mapping(effective_config)
    if capability is None:
        logger.debug("No capability for %s; all optional parameters denied", model_id)

    sampling = encode_sampling(config.sampling, capability, settings=settings)

    requested_length = None
    if config.reasoning is not None and config.reasoning.max_completion_tokens is not None:
        requested_length = config.reasoning.max_completion_tokens
    elif config.length is not None:
        requested_length = config.length.max_tokens

    reasoning = encode_reasoning(
        capability,
        resolve_reasoning_config(config.reasoning, settings),
        requested_length=requested_length,
        settings=settings,
    )
    length = encode_length(
        config.length,
        capability,
        requested_length=requested_length,
        reasoning_ceiling=reasoning.length_ceiling,
    )

    fragment: dict[str, Any] = {}
    for part in (sampling, reasoning, length):
        fragment.update(part.fragment)

    check_fragment_keys(fragment, capability)
    result = EncodeResult(
        request_fragment=fragment,
        warnings=sampling.warnings + reasoning.warnings + length.warnings,
        ignored_parameters=sampling.ignored + reasoning.ignored + length.ignored,
    )
    logger.debug(
        "Encoded request for %s: sent=%s ignored=%s warnings=%d",
        model_id,
        sorted(fragment),
        result.ignored_keys(),
        len(result.warnings),
    )
    return result


def check_fragment_keys(
    fragment: Mapping[str, Any], capability: ModelGenerationCapability | None
) -> None:
    """Raise when *fragment* carries a key the capability does not allow.

    Raises:
        InternalError: A sub-adapter wrote an unsupported key.
    """
    allowed = set(supported_parameters(capability)) if capability is not None else set()
    leaked = sorted(set(fragment) - allowed)
    if leaked:
        raise InternalError(
            f"Request fragment contains unsupported keys: {', '.join(leaked)}",
            hint="This is a routerwire bug; please report it with the model id.",
        )
