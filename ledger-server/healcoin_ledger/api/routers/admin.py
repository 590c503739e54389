"""Administrative endpoints for the audit trail."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from healcoin_ledger.domain.audit import AuditFilters
from healcoin_ledger.domain.audit.service import AuditTrail
from healcoin_ledger.domain.wallets.service import WalletLedger
from healcoin_ledger.interfaces.http.deps import get_actor_id, get_db_session, get_ledger
from healcoin_ledger.schemas import (
    AuditEntryListResponse,
    AuditEntryResponse,
    IntegrityReportResponse,
    ReversalResponse,
    WalletSnapshotResponse,
)

router = APIRouter()


@router.get("/audit-logs", response_model=AuditEntryListResponse, summary="Search audit entries")
async def list_audit_logs(
    actor_id: Optional[str] = Query(None),
    action_type: Optional[str] = Query(None),
    entity_id: Optional[str] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session),
) -> AuditEntryListResponse:
    filters = AuditFilters(
        actor_id=actor_id,
        action_type=action_type,
        entity_id=entity_id,
        date_from=date_from,
        date_to=date_to,
    )
    result = await AuditTrail.with_session(db).list_entries(filters, page=page, limit=limit)
    return AuditEntryListResponse(
        entries=[AuditEntryResponse.model_validate(entry) for entry in result.items],
        page=result.page,
        limit=result.limit,
        total=result.total,
        has_next=result.has_next,
        has_prev=result.has_prev,
    )


@router.get("/audit-logs/verify", response_model=IntegrityReportResponse, summary="Verify an entity's hash chain")
async def verify_audit_chain(
    entity_id: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db_session),
) -> IntegrityReportResponse:
    report = await AuditTrail.with_session(db).verify_integrity(entity_id)
    return IntegrityReportResponse.model_validate(report)


@router.post(
    "/audit-logs/{entry_id}/reverse",
    response_model=ReversalResponse,
    summary="Restore a wallet to the state before an audited update",
)
async def reverse_audit_entry(
    entry_id: str = Path(...),
    actor_id: str = Depends(get_actor_id),
    ledger: WalletLedger = Depends(get_ledger),
) -> ReversalResponse:
    result = await ledger.reverse(actor_id, entry_id)
    return ReversalResponse(
        reversal_entry_id=result.reversal_entry_id,
        reversed_entry_id=result.reversed_entry_id,
        transaction_id=result.transaction_id,
        wallet=WalletSnapshotResponse.model_validate(result.account),
    )
