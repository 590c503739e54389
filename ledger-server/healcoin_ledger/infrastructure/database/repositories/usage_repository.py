"""SQLAlchemy implementation for usage counters."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from healcoin_ledger.db.models import UsageCounter
from healcoin_ledger.domain.common import AsyncRepository, StorageConflict


class SqlUsageRepository(AsyncRepository[UsageCounter]):
    async def get_counter(self, account_id: str) -> UsageCounter | None:
        stmt = select(UsageCounter).where(UsageCounter.account_id == account_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def save_counter(
        self,
        account_id: str,
        *,
        daily_earned: int,
        daily_redeemed: int,
        monthly_redeemed: int,
        period_anchor: datetime,
    ) -> UsageCounter:
        counter = await self.get_counter(account_id)
        if counter is None:
            counter = UsageCounter(account_id=account_id)
            self.session.add(counter)
        counter.daily_earned = daily_earned
        counter.daily_redeemed = daily_redeemed
        counter.monthly_redeemed = monthly_redeemed
        counter.period_anchor = period_anchor
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise StorageConflict(f"usage counter for {account_id} created concurrently") from exc
        return counter
