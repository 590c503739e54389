"""Repository protocol for wallet operations."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, Sequence

from healcoin_ledger.db.models import Wallet as WalletModel, WalletTransaction as WalletTransactionModel


class WalletRepository(Protocol):
    async def get_wallet(self, account_id: str) -> WalletModel | None:
        ...

    async def create_wallet(self, account_id: str, now: datetime) -> WalletModel:
        ...

    async def compare_and_set(self, account_id: str, expected_version: int, **values: Any) -> WalletModel | None:
        """Apply ``values`` only if the stored version still equals ``expected_version``."""
        ...

    async def add_transaction(
        self,
        *,
        account_id: str,
        type: str,
        amount: int,
        balance_delta: int,
        source: str,
        description: str | None,
        metadata: dict[str, Any] | None,
        idempotency_key: str | None,
        audit_log_id: str | None,
        created_at: datetime,
    ) -> WalletTransactionModel:
        ...

    async def find_by_idempotency_key(self, account_id: str, idempotency_key: str) -> WalletTransactionModel | None:
        ...

    async def recent_transactions(
        self,
        account_id: str,
        *,
        types: Sequence[str],
        limit: int,
        source: str | None = None,
        amount: int | None = None,
    ) -> Sequence[WalletTransactionModel]:
        ...

    async def list_transactions(self, account_id: str, limit: int, offset: int) -> Sequence[WalletTransactionModel]:
        ...

    async def count_transactions(self, account_id: str) -> int:
        ...
