from fastapi import APIRouter

from healcoin_ledger.api.routers import admin, health, security, wallet


def create_api_router(prefix: str = "") -> APIRouter:
    router = APIRouter(prefix=prefix)
    router.include_router(wallet.router, prefix="/wallet", tags=["wallet"])
    router.include_router(security.router, prefix="/security", tags=["security"])
    router.include_router(admin.router, prefix="/admin", tags=["admin"])
    router.include_router(health.router, tags=["health"])
    return router


__all__ = [
    "create_api_router",
]
