"""Daily and monthly usage caps per account."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from healcoin_ledger.core.clock import Clock, ensure_utc, utcnow
from healcoin_ledger.core.config import CapsSettings
from healcoin_ledger.domain.common import CapExceeded
from healcoin_ledger.infrastructure.database.repositories.usage_repository import SqlUsageRepository

from .models import UsageCounterState, UsageSummary
from .repository import UsageRepository

logger = logging.getLogger(__name__)


def _cap(override: Optional[int], configured: int) -> int:
    """A per-account override of 0 is a real limit, only None falls back."""
    return configured if override is None else override


@dataclass(slots=True)
class CapsLimitsTracker:
    """Tracks earn/redeem volume per account with calendar rollover.

    Reads apply the rollover virtually: a counter anchored on an earlier day
    reads as zero without being rewritten. The reset is persisted by the next
    :meth:`record_usage`, which only the ledger calls inside its atomic unit.
    Callers pass one ``now`` through a whole operation so the cap check and the
    commit agree on which day it is.
    """

    repository: UsageRepository
    caps: CapsSettings
    clock: Clock = utcnow

    @classmethod
    def with_session(cls, session: AsyncSession, caps: CapsSettings, clock: Clock = utcnow) -> "CapsLimitsTracker":
        return cls(SqlUsageRepository(session), caps, clock)

    async def current(self, account_id: str, now: Optional[datetime] = None) -> UsageCounterState:
        now = now or self.clock()
        counter = await self.repository.get_counter(account_id)
        if counter is None:
            return UsageCounterState(account_id, 0, 0, 0, None)

        state = UsageCounterState(
            account_id=account_id,
            daily_earned=counter.daily_earned,
            daily_redeemed=counter.daily_redeemed,
            monthly_redeemed=counter.monthly_redeemed,
            period_anchor=counter.period_anchor,
        )
        return self._rolled_over(state, now)

    async def daily_earned(self, account_id: str, now: Optional[datetime] = None) -> int:
        return (await self.current(account_id, now)).daily_earned

    async def daily_redeemed(self, account_id: str, now: Optional[datetime] = None) -> int:
        return (await self.current(account_id, now)).daily_redeemed

    async def monthly_redeemed(self, account_id: str, now: Optional[datetime] = None) -> int:
        return (await self.current(account_id, now)).monthly_redeemed

    async def check_earn(
        self, account_id: str, amount: int, now: datetime, daily_cap: Optional[int] = None
    ) -> UsageCounterState:
        """``daily_cap`` overrides the configured cap for this account when set."""
        state = await self.current(account_id, now)
        self._ensure_within("daily", state.daily_earned, amount, _cap(daily_cap, self.caps.daily_earn_cap), account_id)
        return state

    async def check_redeem(
        self, account_id: str, amount: int, now: datetime, monthly_cap: Optional[int] = None
    ) -> UsageCounterState:
        state = await self.current(account_id, now)
        self._ensure_within("daily", state.daily_redeemed, amount, self.caps.daily_redeem_cap, account_id)
        self._ensure_within(
            "monthly", state.monthly_redeemed, amount, _cap(monthly_cap, self.caps.monthly_redeem_cap), account_id
        )
        return state

    async def record_usage(
        self,
        account_id: str,
        earn_delta: int,
        redeem_delta: int,
        now: Optional[datetime] = None,
    ) -> UsageCounterState:
        now = now or self.clock()
        state = await self.current(account_id, now)
        counter = await self.repository.save_counter(
            account_id,
            daily_earned=state.daily_earned + earn_delta,
            daily_redeemed=state.daily_redeemed + redeem_delta,
            monthly_redeemed=state.monthly_redeemed + redeem_delta,
            period_anchor=now,
        )
        return UsageCounterState(
            account_id=account_id,
            daily_earned=counter.daily_earned,
            daily_redeemed=counter.daily_redeemed,
            monthly_redeemed=counter.monthly_redeemed,
            period_anchor=counter.period_anchor,
        )

    async def release_usage(
        self,
        account_id: str,
        earn_delta: int,
        redeem_delta: int,
        occurred_at: datetime,
        now: Optional[datetime] = None,
    ) -> UsageCounterState:
        """Give back allowance consumed at ``occurred_at``, e.g. by a reversed write.

        Only the periods that still contain ``occurred_at`` are reduced.
        """
        now = now or self.clock()
        state = await self.current(account_id, now)
        occurred, today = self._local(occurred_at), self._local(now)
        same_month = (occurred.year, occurred.month) == (today.year, today.month)
        same_day = same_month and occurred.day == today.day
        if not (same_day or (same_month and redeem_delta)):
            return state

        counter = await self.repository.save_counter(
            account_id,
            daily_earned=max(state.daily_earned - earn_delta, 0) if same_day else state.daily_earned,
            daily_redeemed=max(state.daily_redeemed - redeem_delta, 0) if same_day else state.daily_redeemed,
            monthly_redeemed=max(state.monthly_redeemed - redeem_delta, 0),
            period_anchor=now,
        )
        return UsageCounterState(
            account_id=account_id,
            daily_earned=counter.daily_earned,
            daily_redeemed=counter.daily_redeemed,
            monthly_redeemed=counter.monthly_redeemed,
            period_anchor=counter.period_anchor,
        )

    async def summary(
        self,
        account_id: str,
        now: Optional[datetime] = None,
        *,
        daily_cap: Optional[int] = None,
        monthly_cap: Optional[int] = None,
    ) -> UsageSummary:
        state = await self.current(account_id, now)
        return UsageSummary(
            account_id=account_id,
            daily_earned=state.daily_earned,
            daily_redeemed=state.daily_redeemed,
            monthly_redeemed=state.monthly_redeemed,
            daily_earn_cap=_cap(daily_cap, self.caps.daily_earn_cap),
            daily_redeem_cap=self.caps.daily_redeem_cap,
            monthly_redeem_cap=_cap(monthly_cap, self.caps.monthly_redeem_cap),
        )

    def _rolled_over(self, state: UsageCounterState, now: datetime) -> UsageCounterState:
        if state.period_anchor is None:
            return state
        anchor = self._local(state.period_anchor)
        today = self._local(now)
        if (anchor.year, anchor.month) != (today.year, today.month):
            state.monthly_redeemed = 0
            state.daily_earned = 0
            state.daily_redeemed = 0
        elif anchor.day != today.day:
            state.daily_earned = 0
            state.daily_redeemed = 0
        return state

    def _local(self, value: datetime) -> datetime:
        return ensure_utc(value).astimezone(ZoneInfo(self.caps.timezone))

    @staticmethod
    def _ensure_within(period: str, used: int, amount: int, cap: int, account_id: str) -> None:
        if used + amount > cap:
            logger.warning(
                "Cap rejected for %s: %s usage %s + %s exceeds %s", account_id, period, used, amount, cap
            )
            raise CapExceeded(
                f"Transaction would exceed {period} limit of {cap}",
                context={"period": period, "cap": cap, "used": used, "remaining": max(cap - used, 0)},
            )
