from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Base exception for business rule violations.

    Every subclass carries a machine-readable ``code`` and a ``details`` dict
    (offending id, field, amounts) so callers can render a specific message
    without parsing text.
    """

    code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message, "details": dict(self.details)}


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "VALIDATION_ERROR"


class InvalidAmountError(ValidationError):
    """Non-positive or out-of-range advance/pay amount."""

    code = "INVALID_AMOUNT"


class NotFoundError(DomainError):
    """Unknown (or inactive) employee, payment, advance or attendance id."""

    code = "NOT_FOUND"


class DuplicateRecordError(DomainError):
    """A record already exists for the same natural key."""

    code = "DUPLICATE_RECORD"


class InsufficientEarningsError(DomainError):
    """Net pay would be negative after deductions."""

    code = "INSUFFICIENT_EARNINGS"


class AuthorizationError(DomainError):
    """Raised when the caller may not perform payroll operations."""

    code = "PERMISSION_DENIED"


class ConcurrentModificationError(DomainError):
    """The advance set changed between read and consume."""

    code = "CONCURRENT_MODIFICATION"


class RequestInProgressError(ConcurrentModificationError):
    """An identical pay or advance request is still being processed."""

    code = "REQUEST_IN_PROGRESS"
