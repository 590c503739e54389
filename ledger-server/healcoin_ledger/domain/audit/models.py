"""Domain models for the audit trail."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from healcoin_ledger.domain.wallets.models import WalletSnapshot

WALLET_UPDATE = "walletUpdate"
WALLET_REVERSAL = "walletReversal"


@dataclass(slots=True)
class AuditEntry:
    id: str
    actor_id: str
    action_type: str
    entity_id: str
    sequence: int
    before: Optional[Dict[str, Any]]
    after: Optional[Dict[str, Any]]
    source: str
    hash: str
    previous_hash: Optional[str]
    reference_id: Optional[str]
    created_at: datetime


@dataclass(slots=True)
class AuditFilters:
    actor_id: Optional[str] = None
    action_type: Optional[str] = None
    entity_id: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None


@dataclass(slots=True)
class IntegrityReport:
    entity_id: str
    checked: int
    errors: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


@dataclass(slots=True)
class ReversalResult:
    account: WalletSnapshot
    reversal_entry_id: str
    reversed_entry_id: str
    transaction_id: Optional[str]
