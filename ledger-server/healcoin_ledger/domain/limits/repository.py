"""Repository protocol for usage counters."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from healcoin_ledger.db.models import UsageCounter as UsageCounterModel


class UsageRepository(Protocol):
    async def get_counter(self, account_id: str) -> UsageCounterModel | None:
        ...

    async def save_counter(
        self,
        account_id: str,
        *,
        daily_earned: int,
        daily_redeemed: int,
        monthly_redeemed: int,
        period_anchor: datetime,
    ) -> UsageCounterModel:
        ...
