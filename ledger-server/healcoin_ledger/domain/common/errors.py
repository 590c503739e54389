"""Ledger error taxonomy.

Every rejection the ledger can produce is a :class:`LedgerError` with a stable
``code`` callers branch on and a human-readable ``message`` that is shown to the
end user unchanged. Only :class:`StorageConflict` is retried internally.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class LedgerError(Exception):
    """Base class for ledger domain errors."""

    code = "LEDGER_ERROR"

    def __init__(self, message: str, *, context: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.context = context or {}
        super().__init__(message)


class ValidationError(LedgerError):
    """Malformed input such as a non-positive amount."""

    code = "VALIDATION_ERROR"


class CapExceeded(LedgerError):
    """A daily or monthly usage ceiling would be breached."""

    code = "CAP_EXCEEDED"


class DuplicateDetected(LedgerError):
    """The same action was committed recently."""

    code = "DUPLICATE_DETECTED"


class SuspiciousActivity(LedgerError):
    """A fraud signal tripped and the deployment blocks on fraud signals."""

    code = "SUSPICIOUS_ACTIVITY"


class InsufficientBalance(LedgerError):
    code = "INSUFFICIENT_BALANCE"


class OutOfStock(LedgerError):
    code = "OUT_OF_STOCK"


class AccountInactive(LedgerError):
    code = "ACCOUNT_INACTIVE"


class NotFound(LedgerError):
    """Referenced account, reward or audit entry is missing."""

    code = "NOT_FOUND"


class NotReversible(LedgerError):
    code = "NOT_REVERSIBLE"


class StorageConflict(LedgerError):
    """Concurrent write collision on an account; retried by the ledger."""

    code = "STORAGE_CONFLICT"


class StorageUnavailable(LedgerError):
    """Persistence failed after retries; the operation was not applied."""

    code = "STORAGE_UNAVAILABLE"


__all__ = [
    "LedgerError",
    "ValidationError",
    "CapExceeded",
    "DuplicateDetected",
    "SuspiciousActivity",
    "InsufficientBalance",
    "OutOfStock",
    "AccountInactive",
    "NotFound",
    "NotReversible",
    "StorageConflict",
    "StorageUnavailable",
]
