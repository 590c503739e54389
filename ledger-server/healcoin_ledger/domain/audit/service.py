"""Append-only, hash-chained audit trail with administrative reversal."""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from healcoin_ledger.core.clock import Clock, ensure_utc, utcnow
from healcoin_ledger.db.models import AuditLog as AuditLogModel, Wallet as WalletModel
from healcoin_ledger.domain.common import NotFound, NotReversible, Page, StorageConflict, page_offset
from healcoin_ledger.domain.wallets.models import REVERSAL, WalletSnapshot
from healcoin_ledger.domain.wallets.repository import WalletRepository
from healcoin_ledger.infrastructure.database.repositories.audit_repository import SqlAuditRepository
from healcoin_ledger.infrastructure.database.repositories.wallet_repository import SqlWalletRepository

from .models import WALLET_REVERSAL, WALLET_UPDATE, AuditEntry, AuditFilters, IntegrityReport, ReversalResult
from .repository import AuditRepository

logger = logging.getLogger(__name__)


def compute_hash(
    *,
    actor_id: str,
    action_type: str,
    entity_id: str,
    before: Optional[Dict[str, Any]],
    after: Optional[Dict[str, Any]],
    source: str,
    created_at: datetime,
    previous_hash: Optional[str],
) -> str:
    """SHA-256 over the canonical JSON of an entry and its predecessor's hash."""
    payload = json.dumps(
        {
            "actor_id": actor_id,
            "action_type": action_type,
            "entity_id": entity_id,
            "before": before,
            "after": after,
            "source": source,
            "created_at": ensure_utc(created_at).isoformat(),
            "previous_hash": previous_hash,
        },
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def snapshot_of(model: WalletModel) -> WalletSnapshot:
    return WalletSnapshot(
        account_id=model.account_id,
        heal_coin_balance=model.heal_coin_balance,
        inr_balance=model.inr_balance,
        total_earned=model.total_earned,
        total_redeemed=model.total_redeemed,
        is_active=model.is_active,
        last_transaction_at=model.last_transaction_at,
        version=model.version,
    )


@dataclass(slots=True)
class AuditTrail:
    """Each entity (wallet) has its own chain: an entry stores the hash of the
    entity's previous entry and a sequence number one past it.
    """

    repository: AuditRepository
    wallets: WalletRepository
    clock: Clock = utcnow

    @classmethod
    def with_session(cls, session: AsyncSession, clock: Clock = utcnow) -> "AuditTrail":
        return cls(SqlAuditRepository(session), SqlWalletRepository(session), clock)

    async def append(
        self,
        actor_id: str,
        action_type: str,
        entity_id: str,
        before: Optional[Dict[str, Any]],
        after: Optional[Dict[str, Any]],
        source: str,
        *,
        reference_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AuditEntry:
        created_at = ensure_utc(now or self.clock())
        last = await self.repository.latest_for_entity(entity_id)
        previous_hash = last.hash if last else None
        sequence = last.sequence + 1 if last else 1

        digest = compute_hash(
            actor_id=actor_id,
            action_type=action_type,
            entity_id=entity_id,
            before=before,
            after=after,
            source=source,
            created_at=created_at,
            previous_hash=previous_hash,
        )
        model = await self.repository.add_entry(
            actor_id=actor_id,
            action_type=action_type,
            entity_id=entity_id,
            sequence=sequence,
            before=before,
            after=after,
            source=source,
            hash=digest,
            previous_hash=previous_hash,
            reference_id=reference_id,
            created_at=created_at,
        )
        logger.info("Audit logged: %s by %s on %s", action_type, actor_id, entity_id)
        return self._to_entry(model)

    async def get_entry(self, entry_id: str) -> AuditEntry:
        model = await self.repository.get_entry(entry_id)
        if model is None:
            raise NotFound(f"Audit log not found: {entry_id}")
        return self._to_entry(model)

    async def reverse(self, actor_id: str, audit_entry_id: str, now: Optional[datetime] = None) -> ReversalResult:
        """Put a wallet back to the ``before`` state of a ``walletUpdate`` entry.

        Runs inside the caller's transaction; the ledger wraps it with the
        account lock and retry policy.
        """
        now = now or self.clock()
        entry = await self.repository.get_entry(audit_entry_id)
        if entry is None:
            raise NotFound(f"Audit log not found: {audit_entry_id}")
        if entry.action_type != WALLET_UPDATE:
            raise NotReversible("Can only reverse wallet transactions", context={"action_type": entry.action_type})
        if await self.repository.find_reversal(entry.id) is not None:
            raise NotReversible("Audit entry has already been reversed", context={"entry_id": entry.id})

        wallet = await self.wallets.get_wallet(entry.entity_id)
        if wallet is None:
            raise NotFound(f"Wallet not found: {entry.entity_id}")
        current = snapshot_of(wallet)
        target = WalletSnapshot.from_audit_dict(entry.before or {"account_id": entry.entity_id})

        updated = await self.wallets.compare_and_set(
            entry.entity_id,
            current.version,
            heal_coin_balance=target.heal_coin_balance,
            inr_balance=target.inr_balance,
            total_earned=target.total_earned,
            total_redeemed=target.total_redeemed,
            is_active=target.is_active,
            last_transaction_at=target.last_transaction_at,
            updated_at=now,
        )
        if updated is None:
            raise StorageConflict(f"wallet {entry.entity_id} changed during reversal")

        reversal = await self.append(
            actor_id,
            WALLET_REVERSAL,
            entry.entity_id,
            entry.after,
            entry.before,
            "AuditTrail:reverse",
            reference_id=entry.id,
            now=now,
        )

        delta = target.heal_coin_balance - current.heal_coin_balance
        transaction_id = None
        if delta:
            tx = await self.wallets.add_transaction(
                account_id=entry.entity_id,
                type=REVERSAL,
                amount=abs(delta),
                balance_delta=delta,
                source=f"audit:{entry.id}",
                description=f"Reversal of audit entry {entry.id}",
                metadata={"reversed_entry_id": entry.id, "actor_id": actor_id},
                idempotency_key=None,
                audit_log_id=reversal.id,
                created_at=now,
            )
            transaction_id = tx.id

        logger.info("Reversed audit entry %s on %s by %s (delta %s)", entry.id, entry.entity_id, actor_id, delta)
        return ReversalResult(
            account=snapshot_of(updated),
            reversal_entry_id=reversal.id,
            reversed_entry_id=entry.id,
            transaction_id=transaction_id,
        )

    async def list_entries(
        self,
        filters: Optional[AuditFilters] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Page[AuditEntry]:
        filters = filters or AuditFilters()
        rows = await self.repository.list_entries(filters, limit, page_offset(page, limit))
        total = await self.repository.count_entries(filters)
        return Page(items=[self._to_entry(row) for row in rows], page=page, limit=limit, total=total)

    async def verify_integrity(self, entity_id: str) -> IntegrityReport:
        chain = await self.repository.chain_for_entity(entity_id)
        report = IntegrityReport(entity_id=entity_id, checked=len(chain))
        previous_hash: Optional[str] = None

        for position, entry in enumerate(chain):
            expected = compute_hash(
                actor_id=entry.actor_id,
                action_type=entry.action_type,
                entity_id=entry.entity_id,
                before=entry.before,
                after=entry.after,
                source=entry.source,
                created_at=entry.created_at,
                previous_hash=previous_hash,
            )
            if entry.hash != expected:
                report.errors.append(f"Hash mismatch for log {entry.id} at position {position}")
            if entry.previous_hash != previous_hash:
                report.errors.append(f"Previous hash mismatch for log {entry.id} at position {position}")
            previous_hash = entry.hash

        if not report.valid:
            logger.error("Audit chain for %s failed verification: %s", entity_id, report.errors)
        return report

    @staticmethod
    def _to_entry(model: AuditLogModel) -> AuditEntry:
        return AuditEntry(
            id=model.id,
            actor_id=model.actor_id,
            action_type=model.action_type,
            entity_id=model.entity_id,
            sequence=model.sequence,
            before=model.before,
            after=model.after,
            source=model.source,
            hash=model.hash,
            previous_hash=model.previous_hash,
            reference_id=model.reference_id,
            created_at=model.created_at,
        )
