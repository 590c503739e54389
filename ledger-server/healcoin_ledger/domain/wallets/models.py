"""Domain models for wallet operations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from healcoin_ledger.core.clock import ensure_utc

EARN = "earn"
REDEEM = "redeem"
REFUND = "refund"
BONUS = "bonus"
REVERSAL = "reversal"

CREDIT_TYPES = (EARN, BONUS, REFUND)


@dataclass(slots=True)
class WalletSnapshot:
    account_id: str
    heal_coin_balance: int
    inr_balance: int
    total_earned: int
    total_redeemed: int
    is_active: bool
    last_transaction_at: Optional[datetime]
    version: int = 0

    def to_audit_dict(self) -> Dict[str, Any]:
        """JSON-safe state captured in audit entries (the version is not state)."""
        return {
            "account_id": self.account_id,
            "heal_coin_balance": self.heal_coin_balance,
            "inr_balance": self.inr_balance,
            "total_earned": self.total_earned,
            "total_redeemed": self.total_redeemed,
            "is_active": self.is_active,
            "last_transaction_at": self.last_transaction_at.isoformat() if self.last_transaction_at else None,
        }

    @classmethod
    def from_audit_dict(cls, data: Dict[str, Any], *, version: int = 0) -> "WalletSnapshot":
        last = data.get("last_transaction_at")
        return cls(
            account_id=data["account_id"],
            heal_coin_balance=int(data.get("heal_coin_balance", 0)),
            inr_balance=int(data.get("inr_balance", 0)),
            total_earned=int(data.get("total_earned", 0)),
            total_redeemed=int(data.get("total_redeemed", 0)),
            is_active=bool(data.get("is_active", True)),
            last_transaction_at=ensure_utc(datetime.fromisoformat(last)) if last else None,
            version=version,
        )


@dataclass(slots=True)
class WalletTransactionRecord:
    id: str
    account_id: str
    type: str
    amount: int
    balance_delta: int
    source: str
    description: Optional[str]
    metadata: Dict[str, Any]
    idempotency_key: Optional[str]
    audit_log_id: Optional[str]
    created_at: datetime


@dataclass(slots=True)
class LedgerReceipt:
    """Outcome handed back to callers of earn / redeem / refund."""

    account: WalletSnapshot
    transaction_id: str
    replayed: bool = False

    @property
    def balance(self) -> int:
        return self.account.heal_coin_balance
