"""Usage normalization and persistable usage log records."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
import math
from typing import TYPE_CHECKING, Any, Literal, TypedDict

if TYPE_CHECKING:
    from collections.abc import Mapping

UsageStatus = Literal["success", "error", "canceled"]

# Candidate paths per metric; the first present value wins. A path is either
# a flat key or a (details_key, inner_key) pair.
_PROMPT_KEYS: tuple[str | tuple[str, str], ...] = (
    "prompt_tokens",
    "promptTokens",
    "input_tokens",
)
_COMPLETION_KEYS: tuple[str | tuple[str, str], ...] = (
    "completion_tokens",
    "completionTokens",
    "output_tokens",
)
_TOTAL_KEYS: tuple[str | tuple[str, str], ...] = ("total_tokens", "totalTokens")
_CACHED_KEYS: tuple[str | tuple[str, str], ...] = (
    "cached_tokens",
    "cachedTokens",
    ("prompt_tokens_details", "cached_tokens"),
    ("promptTokensDetails", "cachedTokens"),
)
_REASONING_KEYS: tuple[str | tuple[str, str], ...] = (
    "reasoning_tokens",
    "reasoningTokens",
    ("completion_tokens_details", "reasoning_tokens"),
    ("completionTokensDetails", "reasoningTokens"),
)
_COST_KEYS: tuple[str | tuple[str, str], ...] = (
    "cost",
    "cost_credits",
    "total_cost",
    "totalCost",
)


@dataclass(frozen=True)
class UsageMetrics:
    """Canonical usage. ``None`` means the upstream did not report the value."""

    prompt_tokens: float | None = None
    completion_tokens: float | None = None
    total_tokens: float | None = None
    cached_tokens: float | None = None
    reasoning_tokens: float | None = None
    cost: float | None = None
    cost_details: dict[str, float] | None = None
    #: Deep copy of the payload the metrics were read from.
    raw: dict[str, Any] = field(default_factory=dict, compare=False)


class UsageLogPayload(TypedDict):
    """Persistable usage record handed to an external store."""

    project_id: str | None
    convo_id: str | None
    provider: str
    model: str
    tokens_input: float
    tokens_output: float
    tokens_cached: float
    tokens_reasoning: float
    cost: float
    request_id: str | None
    attempt: int
    duration_ms: float
    ttft_ms: float | None
    #: Start time, in the caller's clock units (milliseconds since epoch).
    timestamp: float
    status: UsageStatus
    error_code: str | None
    meta: dict[str, Any] | None


@dataclass(frozen=True)
class UsageReconciliation:
    """Outcome of fetching authoritative usage after the stream ended."""

    status: Literal["fetched", "failed"]
    source: str | None = None
    error: str | None = None

    def as_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"status": self.status}
        if self.source is not None:
            out["source"] = self.source
        if self.error is not None:
            out["error"] = self.error
        return out


@dataclass(frozen=True)
class UsageLogOptions:
    """Inputs for ``build_usage_log_payload``. Times are in milliseconds."""

    provider: str
    model: str
    started_at: float
    ended_at: float
    status: UsageStatus
    project_id: str | None = None
    convo_id: str | None = None
    first_token_at: float | None = None
    error_code: str | None = None
    usage: UsageMetrics | None = None
    raw_usage: Mapping[str, Any] | None = None
    request_id: str | None = None
    attempt: int | None = None
    meta: Mapping[str, Any] | None = None
    reconciliation: UsageReconciliation | None = None
    aborted: bool | None = None


def coerce_number(value: Any) -> float | None:
    """Return a finite number from a number or numeric string, else None.

    Booleans are not numbers here.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            parsed = float(text)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def _first_present(payload: Mapping[str, Any], paths: tuple[str | tuple[str, str], ...]) -> Any:
    for path in paths:
        if isinstance(path, tuple):
            outer, inner = path
            nested = payload.get(outer)
            value = nested.get(inner) if isinstance(nested, dict) else None
        else:
            value = payload.get(path)
        if value is not None:
            return value
    return None


def _cost_details(raw: Any) -> dict[str, float] | None:
    if not isinstance(raw, dict):
        return None
    details = {
        str(key): number
        for key, value in raw.items()
        if (number := coerce_number(value)) is not None
    }
    return details or None


def normalize_usage(payload: Any) -> UsageMetrics | None:
    """Read a heterogeneous usage object into ``UsageMetrics``.

    Totals are never derived by summing. Returns None when the payload carries
    neither a primary metric (prompt, completion or total tokens, cost) nor a
    secondary one (cached or reasoning tokens, cost details).

    Example:
        normalize_usage({"prompt_tokens": 10, "completion_tokens": 5})
        # UsageMetrics(prompt_tokens=10, completion_tokens=5, total_tokens=None, ...)
    """
    if not isinstance(payload, dict):
        return None

    metrics = UsageMetrics(
        prompt_tokens=coerce_number(_first_present(payload, _PROMPT_KEYS)),
        completion_tokens=coerce_number(_first_present(payload, _COMPLETION_KEYS)),
        total_tokens=coerce_number(_first_present(payload, _TOTAL_KEYS)),
        cached_tokens=coerce_number(_first_present(payload, _CACHED_KEYS)),
        reasoning_tokens=coerce_number(_first_present(payload, _REASONING_KEYS)),
        cost=coerce_number(_first_present(payload, _COST_KEYS)),
        cost_details=_cost_details(payload.get("cost_details")),
        raw=copy.deepcopy(payload),
    )

    has_primary = any(
        v is not None
        for v in (
            metrics.prompt_tokens,
            metrics.completion_tokens,
            metrics.total_tokens,
            metrics.cost,
        )
    )
    has_secondary = (
        metrics.cached_tokens is not None
        or metrics.reasoning_tokens is not None
        or bool(metrics.cost_details)
    )
    if not has_primary and not has_secondary:
        return None
    return metrics


def _non_negative_diff(end: float, start: float) -> float:
    delta = end - start
    return delta if delta >= 0 else 0


def build_usage_log_payload(options: UsageLogOptions) -> UsageLogPayload:
    """Compose the persistable usage record for one generation attempt.

    Durations are clamped to non-negative to tolerate clock skew. Missing
    metrics are recorded as 0 and flagged with ``meta["usage_missing"]``.
    """
    usage = options.usage
    payload: UsageLogPayload = {
        "project_id": options.project_id,
        "convo_id": options.convo_id,
        "provider": options.provider,
        "model": options.model,
        "tokens_input": (usage.prompt_tokens if usage else None) or 0,
        "tokens_output": (usage.completion_tokens if usage else None) or 0,
        "tokens_cached": (usage.cached_tokens if usage else None) or 0,
        "tokens_reasoning": (usage.reasoning_tokens if usage else None) or 0,
        "cost": (usage.cost if usage else None) or 0,
        "request_id": options.request_id,
        "attempt": options.attempt if options.attempt is not None else 1,
        "duration_ms": _non_negative_diff(options.ended_at, options.started_at),
        "ttft_ms": (
            _non_negative_diff(options.first_token_at, options.started_at)
            if options.first_token_at is not None
            else None
        ),
        "timestamp": options.started_at,
        "status": options.status,
        "error_code": options.error_code,
        "meta": None,
    }

    meta: dict[str, Any] = dict(options.meta or {})
    if usage is None:
        meta["usage_missing"] = True
    if options.raw_usage:
        meta["usage_raw"] = copy.deepcopy(dict(options.raw_usage))
    if options.request_id:
        meta["request_id"] = options.request_id
    if options.attempt is not None:
        meta["attempt"] = options.attempt
    if options.reconciliation is not None:
        meta["usage_reconciliation"] = options.reconciliation.as_dict()
    if options.aborted is not None:
        meta["aborted"] = options.aborted

    if meta:
        payload["meta"] = meta
    return payload
