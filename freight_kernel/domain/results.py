"""
Result value objects returned by rule functions instead of raising.

``GuardResult`` answers "may this happen" with a reason on denial;
``ValidationResult`` answers "is this input acceptable" with a message on
rejection.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class GuardResult:
    """Outcome of evaluating a guard: allowed, or denied with a reason."""
    allowed: bool
    reason: str | None = None

    @classmethod
    def allow(cls) -> GuardResult:
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> GuardResult:
        return cls(allowed=False, reason=reason)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a user-input check: valid, or invalid with a message."""
    is_valid: bool
    error: str | None = None

    @classmethod
    def ok(cls) -> ValidationResult:
        return cls(is_valid=True)

    @classmethod
    def fail(cls, error: str) -> ValidationResult:
        return cls(is_valid=False, error=error)
