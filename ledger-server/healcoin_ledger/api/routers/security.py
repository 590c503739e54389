"""Login screening: record a login and report whether it looks suspicious."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from healcoin_ledger.core.container import ApplicationContainer
from healcoin_ledger.domain.fraud import FraudHeuristics
from healcoin_ledger.interfaces.http.deps import get_container, get_db_session
from healcoin_ledger.schemas import FraudSignalResponse, LoginEventRequest, LoginEventResponse

router = APIRouter()


@router.post("/{account_id}/logins", response_model=LoginEventResponse, summary="Record and screen a login")
async def record_login(
    payload: LoginEventRequest,
    account_id: str = Path(..., min_length=1, max_length=128),
    container: ApplicationContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db_session),
) -> LoginEventResponse:
    heuristics = FraudHeuristics.with_session(db, container.settings.fraud, container.clock)
    check = await heuristics.record_login(account_id, payload.device_id, payload.ip_address)
    await db.commit()
    return LoginEventResponse(
        login_id=check.login.id,
        signal=FraudSignalResponse.model_validate(check.signal),
    )
