"""Small HTTP-related constants shared across routerwire.

This module is intentionally tiny to avoid circular imports and drift.
"""

from __future__ import annotations

# Status codes an upstream error event may carry that a caller can retry.
RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({408, 409, 429, 500, 502, 503, 504})


def coerce_status_code(value: object) -> int | None:
    """Return *value* as an HTTP status code, or None when it is not one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int) and 100 <= value <= 599:
        return value
    if isinstance(value, str) and value.strip().isdecimal():
        code = int(value.strip())
        if 100 <= code <= 599:
            return code
    return None


def is_retryable_status(status_code: int | None) -> bool:
    return status_code is not None and status_code in RETRYABLE_STATUS_CODES
