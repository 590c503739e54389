"""SQLAlchemy implementation for the audit trail."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import Select, asc, desc, func, select
from sqlalchemy.exc import IntegrityError

from healcoin_ledger.db.models import AuditLog
from healcoin_ledger.domain.audit.models import WALLET_REVERSAL, AuditFilters
from healcoin_ledger.domain.common import AsyncRepository, StorageConflict


class SqlAuditRepository(AsyncRepository[AuditLog]):
    async def add_entry(
        self,
        *,
        actor_id: str,
        action_type: str,
        entity_id: str,
        sequence: int,
        before: dict[str, Any] | None,
        after: dict[str, Any] | None,
        source: str,
        hash: str,
        previous_hash: str | None,
        reference_id: str | None,
        created_at: datetime,
    ) -> AuditLog:
        entry = AuditLog(
            actor_id=actor_id,
            action_type=action_type,
            entity_id=entity_id,
            sequence=sequence,
            before=before,
            after=after,
            source=source,
            hash=hash,
            previous_hash=previous_hash,
            reference_id=reference_id,
            created_at=created_at,
        )
        try:
            return await self.add(entry)
        except IntegrityError as exc:
            raise StorageConflict(f"audit chain for {entity_id} extended concurrently") from exc

    async def get_entry(self, entry_id: str) -> AuditLog | None:
        return await self.session.get(AuditLog, entry_id)

    async def latest_for_entity(self, entity_id: str) -> AuditLog | None:
        stmt = (
            select(AuditLog)
            .where(AuditLog.entity_id == entity_id)
            .order_by(desc(AuditLog.sequence))
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def find_reversal(self, entry_id: str) -> AuditLog | None:
        stmt = select(AuditLog).where(
            AuditLog.reference_id == entry_id,
            AuditLog.action_type == WALLET_REVERSAL,
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def chain_for_entity(self, entity_id: str) -> Sequence[AuditLog]:
        stmt = select(AuditLog).where(AuditLog.entity_id == entity_id).order_by(asc(AuditLog.sequence))
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def list_entries(self, filters: AuditFilters, limit: int, offset: int) -> Sequence[AuditLog]:
        stmt = (
            self._filtered(select(AuditLog), filters)
            .order_by(desc(AuditLog.created_at), desc(AuditLog.sequence))
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def count_entries(self, filters: AuditFilters) -> int:
        stmt = self._filtered(select(func.count()).select_from(AuditLog), filters)
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    @staticmethod
    def _filtered(stmt: Select, filters: AuditFilters) -> Select:
        if filters.actor_id:
            stmt = stmt.where(AuditLog.actor_id == filters.actor_id)
        if filters.action_type:
            stmt = stmt.where(AuditLog.action_type == filters.action_type)
        if filters.entity_id:
            stmt = stmt.where(AuditLog.entity_id == filters.entity_id)
        if filters.date_from:
            stmt = stmt.where(AuditLog.created_at >= filters.date_from)
        if filters.date_to:
            stmt = stmt.where(AuditLog.created_at <= filters.date_to)
        return stmt
