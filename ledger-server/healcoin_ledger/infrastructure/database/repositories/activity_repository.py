"""SQLAlchemy implementation for activity history."""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from sqlalchemy import desc, select

from healcoin_ledger.db.models import CarbonLog, GameScore, UserLogin
from healcoin_ledger.domain.common import AsyncRepository


class SqlActivityRepository(AsyncRepository[UserLogin]):
    async def add_login(
        self, *, account_id: str, device_id: str, ip_address: str | None, created_at: datetime
    ) -> UserLogin:
        login = UserLogin(
            account_id=account_id,
            device_id=device_id,
            ip_address=ip_address,
            created_at=created_at,
        )
        return await self.add(login)

    async def add_carbon_action(
        self, *, account_id: str, action: str, co2_saved: int, created_at: datetime
    ) -> CarbonLog:
        log = CarbonLog(account_id=account_id, action=action, co2_saved=co2_saved, created_at=created_at)
        return await self.add(log)

    async def add_game_submission(
        self, *, account_id: str, game_id: str, score: int, play_time: int, created_at: datetime
    ) -> GameScore:
        submission = GameScore(
            account_id=account_id,
            game_id=game_id,
            score=score,
            play_time=play_time,
            created_at=created_at,
        )
        return await self.add(submission)

    async def recent_logins(self, account_id: str, limit: int) -> Sequence[UserLogin]:
        stmt = (
            select(UserLogin)
            .where(UserLogin.account_id == account_id)
            .order_by(desc(UserLogin.created_at))
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def recent_carbon_actions(self, account_id: str, action: str, limit: int) -> Sequence[CarbonLog]:
        stmt = (
            select(CarbonLog)
            .where(CarbonLog.account_id == account_id, CarbonLog.action == action)
            .order_by(desc(CarbonLog.created_at))
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def recent_game_submissions(self, account_id: str, game_id: str, limit: int) -> Sequence[GameScore]:
        stmt = (
            select(GameScore)
            .where(GameScore.account_id == account_id, GameScore.game_id == game_id)
            .order_by(desc(GameScore.created_at))
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()
