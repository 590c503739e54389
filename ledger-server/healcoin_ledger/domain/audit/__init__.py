"""Audit trail domain exports.

The service lives in :mod:`healcoin_ledger.domain.audit.service`.
"""

from .models import (
    WALLET_REVERSAL,
    WALLET_UPDATE,
    AuditEntry,
    AuditFilters,
    IntegrityReport,
    ReversalResult,
)

__all__ = [
    "WALLET_REVERSAL",
    "WALLET_UPDATE",
    "AuditEntry",
    "AuditFilters",
    "IntegrityReport",
    "ReversalResult",
]
