"""Liveness probe."""
from fastapi import APIRouter, Depends

from healcoin_ledger import __version__
from healcoin_ledger.core.container import ApplicationContainer
from healcoin_ledger.interfaces.http.deps import get_container
from healcoin_ledger.schemas import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(container: ApplicationContainer = Depends(get_container)) -> HealthResponse:
    return HealthResponse(version=__version__, environment=container.settings.environment)
