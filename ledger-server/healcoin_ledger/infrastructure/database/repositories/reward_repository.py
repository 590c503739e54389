"""SQLAlchemy implementation for the reward catalogue."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import select, update

from healcoin_ledger.core.clock import utcnow
from healcoin_ledger.db.models import Reward
from healcoin_ledger.domain.common import AsyncRepository


class SqlRewardRepository(AsyncRepository[Reward]):
    async def get_reward(self, reward_id: str) -> Reward | None:
        stmt = select(Reward).where(Reward.id == reward_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def create_reward(self, *, name: str, heal_coins_cost: int, stock: int, is_active: bool = True) -> Reward:
        reward = Reward(name=name, heal_coins_cost=heal_coins_cost, stock=stock, is_active=is_active)
        return await self.add(reward)

    async def decrement_stock(self, reward_id: str, now: Optional[datetime] = None) -> bool:
        stmt = (
            update(Reward)
            .where(Reward.id == reward_id, Reward.stock > 0)
            .values(stock=Reward.stock - 1, updated_at=now or utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1
