"""Simple dependency container for wiring core services."""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from healcoin_ledger.core.clock import Clock, utcnow
from healcoin_ledger.core.config import Settings, get_settings
from healcoin_ledger.domain.wallets.service import WalletLedger
from healcoin_ledger.infrastructure.database.session import (
    build_engine,
    build_session_factory,
    init_db,
    session_scope,
)


@dataclass(slots=True)
class ApplicationContainer:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    ledger: WalletLedger
    clock: Clock = utcnow

    @classmethod
    def build(cls, settings: Settings | None = None, clock: Clock = utcnow) -> "ApplicationContainer":
        settings = settings or get_settings()
        engine = build_engine(settings)
        factory = build_session_factory(engine)
        return cls(
            settings=settings,
            engine=engine,
            session_factory=factory,
            ledger=WalletLedger(factory, settings, clock),
            clock=clock,
        )

    async def init_infrastructure(self) -> None:
        """Create tables when running without migrations (development, tests)."""
        await init_db(self.engine)

    def session(self) -> AbstractAsyncContextManager[AsyncSession]:
        return session_scope(self.session_factory)

    async def dispose(self) -> None:
        await self.engine.dispose()


__all__ = ["ApplicationContainer"]
