"""Exception hierarchy for routerwire.

Only unrecoverable configuration problems cross the public boundary as
exceptions. Domain outcomes (unsupported parameters, clamped values, upstream
errors, missing usage) are returned as values.
"""

from __future__ import annotations


class RouterwireError(Exception):
    """Base exception for all routerwire errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(RouterwireError):
    """Adapter settings or generation config input could not be used."""


class CapabilityError(RouterwireError):
    """The capability catalog is structurally broken."""


class DecodeError(RouterwireError):
    """A stream line payload could not be parsed.

    Returned on ``DecodeResult.error``; the decoder never raises it.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        line: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.line = line


class InternalError(RouterwireError):
    """A routerwire internal error (bug) or invariant violation."""
