"""Repository protocol for audit entries."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, Sequence

from healcoin_ledger.db.models import AuditLog as AuditLogModel

from .models import AuditFilters


class AuditRepository(Protocol):
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
    ) -> AuditLogModel:
        ...

    async def get_entry(self, entry_id: str) -> AuditLogModel | None:
        ...

    async def latest_for_entity(self, entity_id: str) -> AuditLogModel | None:
        ...

    async def find_reversal(self, entry_id: str) -> AuditLogModel | None:
        ...

    async def chain_for_entity(self, entity_id: str) -> Sequence[AuditLogModel]:
        """All entries of one entity, oldest first."""
        ...

    async def list_entries(self, filters: AuditFilters, limit: int, offset: int) -> Sequence[AuditLogModel]:
        ...

    async def count_entries(self, filters: AuditFilters) -> int:
        ...
