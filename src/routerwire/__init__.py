"""routerwire: generation protocol adapter for multi-model completion APIs.

Public API:
    - encode_request(): Abstract generation config -> wire request fragment
    - decode_line(): One event-stream line -> typed stream events
    - normalize_usage(): Heterogeneous usage object -> UsageMetrics
    - build_usage_log_payload(): Persistable usage record
    - CapabilityRegistry / build_capability_map(): Per-model capability table
    - ConfigResolver: Layered generation config merge
    - AdapterSettings: Encoding tunables
"""

from __future__ import annotations

import logging

from routerwire.aggregate import StreamAccumulator
from routerwire.capabilities import (
    CapabilityRegistry,
    ModelGenerationCapability,
    build_capability_map,
    build_model_capability,
    capability_summary,
    treats_reasoning_as_visible,
    unknown_capability,
    visibility_label,
)
from routerwire.config import AdapterSettings
from routerwire.encode import encode_request
from routerwire.errors import (
    CapabilityError,
    ConfigurationError,
    DecodeError,
    InternalError,
    RouterwireError,
)
from routerwire.generation import (
    GenerationConfig,
    LengthConfig,
    ReasoningConfig,
    SamplingConfig,
)
from routerwire.resolve import ConfigResolver, merge_configs, resolve_reasoning_config
from routerwire.stream import (
    DecodeResult,
    ErrorEvent,
    ImageEvent,
    ReasoningDetailEvent,
    ReasoningTextEvent,
    StreamEvent,
    TextEvent,
    UsageEvent,
    decode_chunk,
    decode_line,
    iter_events,
    normalize_image,
)
from routerwire.types import (
    AdapterWarning,
    EncodeResult,
    IgnoredParameter,
    ReasoningResolvedConfig,
)
from routerwire.usage import (
    UsageLogOptions,
    UsageLogPayload,
    UsageMetrics,
    build_usage_log_payload,
    normalize_usage,
)
from routerwire.validation import ValidationIssue, validate_generation_config

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("routerwire")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("routerwire").addHandler(logging.NullHandler())

__all__ = [
    "AdapterSettings",
    "AdapterWarning",
    "CapabilityError",
    "CapabilityRegistry",
    "ConfigResolver",
    "ConfigurationError",
    "DecodeError",
    "DecodeResult",
    "EncodeResult",
    "ErrorEvent",
    "GenerationConfig",
    "IgnoredParameter",
    "ImageEvent",
    "InternalError",
    "LengthConfig",
    "ModelGenerationCapability",
    "ReasoningConfig",
    "ReasoningDetailEvent",
    "ReasoningResolvedConfig",
    "ReasoningTextEvent",
    "RouterwireError",
    "SamplingConfig",
    "StreamAccumulator",
    "StreamEvent",
    "TextEvent",
    "UsageEvent",
    "UsageLogOptions",
    "UsageLogPayload",
    "UsageMetrics",
    "ValidationIssue",
    "build_capability_map",
    "build_model_capability",
    "build_usage_log_payload",
    "capability_summary",
    "decode_chunk",
    "decode_line",
    "encode_request",
    "iter_events",
    "merge_configs",
    "normalize_image",
    "normalize_usage",
    "resolve_reasoning_config",
    "treats_reasoning_as_visible",
    "unknown_capability",
    "validate_generation_config",
    "visibility_label",
]
