"""SQLAlchemy implementation for wallet domain"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import desc, func, select, update
from sqlalchemy.exc import IntegrityError

from healcoin_ledger.db.models import Wallet, WalletTransaction
from healcoin_ledger.domain.common import AsyncRepository, StorageConflict


class SqlWalletRepository(AsyncRepository[Wallet]):
    async def get_wallet(self, account_id: str) -> Wallet | None:
        stmt = select(Wallet).where(Wallet.account_id == account_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def create_wallet(self, account_id: str, now: datetime) -> Wallet:
        wallet = Wallet(
            account_id=account_id,
            heal_coin_balance=0,
            inr_balance=0,
            total_earned=0,
            total_redeemed=0,
            is_active=True,
            version=0,
            created_at=now,
            updated_at=now,
        )
        try:
            return await self.add(wallet)
        except IntegrityError as exc:
            # another writer created it first; the caller retries and reads theirs
            raise StorageConflict(f"wallet {account_id} created concurrently") from exc

    async def compare_and_set(self, account_id: str, expected_version: int, **values: Any) -> Wallet | None:
        stmt = (
            update(Wallet)
            .where(Wallet.account_id == account_id, Wallet.version == expected_version)
            .values(version=expected_version + 1, **values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount != 1:
            return None
        return await self.session.get(Wallet, account_id, populate_existing=True)

    async def add_transaction(
        self,
        *,
        account_id: str,
        type: str,
        amount: int,
        balance_delta: int,
        source: str,
        description: str | None,
        metadata: dict[str, Any] | None,
        idempotency_key: str | None,
        audit_log_id: str | None,
        created_at: datetime,
    ) -> WalletTransaction:
        tx = WalletTransaction(
            account_id=account_id,
            type=type,
            amount=amount,
            balance_delta=balance_delta,
            source=source,
            description=description,
            meta=metadata or {},
            idempotency_key=idempotency_key,
            audit_log_id=audit_log_id,
            created_at=created_at,
        )
        try:
            return await self.add(tx)
        except IntegrityError as exc:
            raise StorageConflict(f"idempotency key {idempotency_key!r} committed concurrently") from exc

    async def find_by_idempotency_key(self, account_id: str, idempotency_key: str) -> WalletTransaction | None:
        stmt = select(WalletTransaction).where(
            WalletTransaction.account_id == account_id,
            WalletTransaction.idempotency_key == idempotency_key,
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def recent_transactions(
        self,
        account_id: str,
        *,
        types: Sequence[str],
        limit: int,
        source: str | None = None,
        amount: int | None = None,
    ) -> Sequence[WalletTransaction]:
        stmt = select(WalletTransaction).where(
            WalletTransaction.account_id == account_id,
            WalletTransaction.type.in_(list(types)),
        )
        if source is not None:
            stmt = stmt.where(WalletTransaction.source == source)
        if amount is not None:
            stmt = stmt.where(WalletTransaction.amount == amount)
        stmt = stmt.order_by(desc(WalletTransaction.created_at)).limit(limit)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def list_transactions(self, account_id: str, limit: int, offset: int) -> Sequence[WalletTransaction]:
        stmt = (
            select(WalletTransaction)
            .where(WalletTransaction.account_id == account_id)
            .order_by(desc(WalletTransaction.created_at))
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def count_transactions(self, account_id: str) -> int:
        stmt = select(func.count()).select_from(WalletTransaction).where(WalletTransaction.account_id == account_id)
        result = await self.session.execute(stmt)
        return int(result.scalar_one())
