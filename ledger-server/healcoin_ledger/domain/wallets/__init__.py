"""Wallet domain exports.

The ledger service lives in :mod:`healcoin_ledger.domain.wallets.service`; it
depends on the limits, fraud and audit domains, which in turn use these models.
"""

from .models import (
    BONUS,
    CREDIT_TYPES,
    EARN,
    REDEEM,
    REFUND,
    REVERSAL,
    LedgerReceipt,
    WalletSnapshot,
    WalletTransactionRecord,
)

__all__ = [
    "BONUS",
    "CREDIT_TYPES",
    "EARN",
    "REDEEM",
    "REFUND",
    "REVERSAL",
    "LedgerReceipt",
    "WalletSnapshot",
    "WalletTransactionRecord",
]
