"""Read-only history the fraud heuristics evaluate."""

from __future__ import annotations

from typing import Protocol, Sequence

from healcoin_ledger.db.models import WalletTransaction as WalletTransactionModel


class TransactionHistory(Protocol):
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
