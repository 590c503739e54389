"""Repository protocol for login, carbon and game activity."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from healcoin_ledger.db.models import CarbonLog, GameScore, UserLogin


class ActivityRepository(Protocol):
    async def add_login(
        self, *, account_id: str, device_id: str, ip_address: str | None, created_at: datetime
    ) -> UserLogin:
        ...

    async def add_carbon_action(
        self, *, account_id: str, action: str, co2_saved: int, created_at: datetime
    ) -> CarbonLog:
        ...

    async def add_game_submission(
        self, *, account_id: str, game_id: str, score: int, play_time: int, created_at: datetime
    ) -> GameScore:
        ...

    async def recent_logins(self, account_id: str, limit: int) -> Sequence[UserLogin]:
        ...

    async def recent_carbon_actions(self, account_id: str, action: str, limit: int) -> Sequence[CarbonLog]:
        ...

    async def recent_game_submissions(self, account_id: str, game_id: str, limit: int) -> Sequence[GameScore]:
        ...
