"""Reward catalogue lookup used by reward-backed redemptions."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from healcoin_ledger.db.models import Reward as RewardModel


class RewardCatalog(Protocol):
    async def get_reward(self, reward_id: str) -> RewardModel | None:
        ...

    async def decrement_stock(self, reward_id: str, now: Optional[datetime] = None) -> bool:
        """Take one unit of stock; False when none is left."""
        ...
