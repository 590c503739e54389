"""Domain models for usage caps."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(slots=True)
class UsageCounterState:
    """Counters as they apply at a given instant, after rollover."""

    account_id: str
    daily_earned: int
    daily_redeemed: int
    monthly_redeemed: int
    period_anchor: Optional[datetime]


@dataclass(slots=True)
class UsageSummary:
    account_id: str
    daily_earned: int
    daily_redeemed: int
    monthly_redeemed: int
    daily_earn_cap: int
    daily_redeem_cap: int
    monthly_redeem_cap: int

    @property
    def daily_earn_remaining(self) -> int:
        return max(self.daily_earn_cap - self.daily_earned, 0)

    @property
    def daily_redeem_remaining(self) -> int:
        return max(self.daily_redeem_cap - self.daily_redeemed, 0)

    @property
    def monthly_redeem_remaining(self) -> int:
        return max(self.monthly_redeem_cap - self.monthly_redeemed, 0)
