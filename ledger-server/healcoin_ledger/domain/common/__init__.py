"""Shared abstractions used across domain modules."""

from .errors import (
    AccountInactive,
    CapExceeded,
    DuplicateDetected,
    InsufficientBalance,
    LedgerError,
    NotFound,
    NotReversible,
    OutOfStock,
    StorageConflict,
    StorageUnavailable,
    SuspiciousActivity,
    ValidationError,
)
from .models import Page, page_offset
from .repository import AsyncRepository

__all__ = [
    "AsyncRepository",
    "Page",
    "page_offset",
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
