"""Rule-based fraud heuristics over recent account history."""

from __future__ import annotations

import logging
import statistics
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from healcoin_ledger.core.clock import Clock, utcnow
from healcoin_ledger.core.config import FraudSettings
from healcoin_ledger.domain.activity import ActivityRepository, LoginRecord
from healcoin_ledger.domain.wallets.models import CREDIT_TYPES, EARN, REDEEM
from healcoin_ledger.infrastructure.database.repositories.activity_repository import SqlActivityRepository
from healcoin_ledger.infrastructure.database.repositories.wallet_repository import SqlWalletRepository

from .models import ActionContext, EarnContext, FraudSignal, LoginCheck, LoginContext, RedeemContext
from .repository import TransactionHistory

logger = logging.getLogger(__name__)

RAPID_TRANSACTIONS = "Rapid successive transactions detected"
UNUSUAL_AMOUNT = "Unusual transaction amount detected"
MULTIPLE_DEVICES = "Multiple device logins detected"
GEOGRAPHIC_ANOMALY = "Geographic anomaly detected"


@dataclass(slots=True)
class FraudHeuristics:
    """Stateless checks; everything they look at is already stored by the
    ledger (transactions) or the activity history (logins, carbon logs, game
    scores).

    :meth:`is_suspicious_activity` is advisory. The ``is_duplicate_*`` checks
    are meant as hard rejects.
    """

    transactions: TransactionHistory
    activity: ActivityRepository
    settings: FraudSettings
    clock: Clock = utcnow

    @classmethod
    def with_session(
        cls, session: AsyncSession, settings: FraudSettings, clock: Clock = utcnow
    ) -> "FraudHeuristics":
        return cls(SqlWalletRepository(session), SqlActivityRepository(session), settings, clock)

    async def is_suspicious_activity(
        self, account_id: str, context: ActionContext, now: Optional[datetime] = None
    ) -> FraudSignal:
        now = now or self.clock()

        if isinstance(context, (EarnContext, RedeemContext)):
            if await self._rapid_transactions(account_id, now):
                return self._flagged(account_id, context, RAPID_TRANSACTIONS)

        if isinstance(context, EarnContext):
            if await self._unusual_amount(account_id, context.amount):
                return self._flagged(account_id, context, UNUSUAL_AMOUNT)

        if isinstance(context, LoginContext):
            recent = await self.activity.recent_logins(account_id, self.settings.device_sample)
            devices = {login.device_id for login in recent}
            if len(devices) >= self.settings.device_threshold and context.device_id not in devices:
                return self._flagged(account_id, context, MULTIPLE_DEVICES)

            # IP difference is a stand-in for real geolocation distance
            if context.ip_address and recent:
                last = recent[0]
                window = timedelta(minutes=self.settings.geo_window_minutes)
                if last.ip_address and last.ip_address != context.ip_address and now - last.created_at < window:
                    return self._flagged(account_id, context, GEOGRAPHIC_ANOMALY)

        return FraudSignal.clear()

    async def record_login(
        self,
        account_id: str,
        device_id: str,
        ip_address: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> LoginCheck:
        """Evaluate a login against prior logins, then store it."""
        now = now or self.clock()
        signal = await self.is_suspicious_activity(account_id, LoginContext(device_id, ip_address), now)
        login = await self.activity.add_login(
            account_id=account_id,
            device_id=device_id,
            ip_address=ip_address,
            created_at=now,
        )
        return LoginCheck(
            login=LoginRecord(
                id=login.id,
                account_id=login.account_id,
                device_id=login.device_id,
                ip_address=login.ip_address,
                created_at=login.created_at,
            ),
            signal=signal,
        )

    async def is_duplicate_redemption(
        self, account_id: str, reward_id: str, now: Optional[datetime] = None
    ) -> bool:
        rows = await self.transactions.recent_transactions(
            account_id,
            types=(REDEEM,),
            source=f"reward:{reward_id}",
            limit=self.settings.duplicate_sample,
        )
        return self._any_within_window((row.created_at for row in rows), now)

    async def is_duplicate_earning(
        self, account_id: str, source: str, amount: int, now: Optional[datetime] = None
    ) -> bool:
        rows = await self.transactions.recent_transactions(
            account_id,
            types=(EARN,),
            source=source,
            amount=amount,
            limit=self.settings.duplicate_sample,
        )
        return self._any_within_window((row.created_at for row in rows), now)

    async def is_duplicate_carbon_action(
        self, account_id: str, action: str, now: Optional[datetime] = None
    ) -> bool:
        rows = await self.activity.recent_carbon_actions(account_id, action, self.settings.duplicate_sample)
        return self._any_within_window((row.created_at for row in rows), now)

    async def is_duplicate_game_submission(
        self, account_id: str, game_id: str, now: Optional[datetime] = None
    ) -> bool:
        rows = await self.activity.recent_game_submissions(account_id, game_id, self.settings.duplicate_sample)
        return self._any_within_window((row.created_at for row in rows), now)

    async def _rapid_transactions(self, account_id: str, now: datetime) -> bool:
        rows = await self.transactions.recent_transactions(
            account_id,
            types=(EARN, REDEEM),
            limit=self.settings.velocity_sample,
        )
        cutoff = now - timedelta(seconds=self.settings.velocity_window_seconds)
        recent = sum(1 for row in rows if row.created_at > cutoff)
        return recent >= self.settings.velocity_threshold

    async def _unusual_amount(self, account_id: str, amount: int) -> bool:
        rows = await self.transactions.recent_transactions(
            account_id,
            types=CREDIT_TYPES,
            limit=self.settings.outlier_sample,
        )
        if not rows:
            return False
        amounts = [row.amount for row in rows]
        mean = statistics.fmean(amounts)
        stddev = statistics.pstdev(amounts)
        return amount > mean + self.settings.outlier_sigma * stddev and amount > self.settings.outlier_floor

    def _any_within_window(self, timestamps: Iterable[datetime], now: Optional[datetime]) -> bool:
        now = now or self.clock()
        cutoff = now - timedelta(minutes=self.settings.duplicate_window_minutes)
        return any(created_at > cutoff for created_at in timestamps)

    @staticmethod
    def _flagged(account_id: str, context: ActionContext, reason: str) -> FraudSignal:
        logger.warning("Fraud signal for %s on %s: %s", account_id, context.action, reason)
        return FraudSignal.flag(reason)
