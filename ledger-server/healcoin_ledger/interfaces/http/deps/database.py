"""Container and session dependency providers."""

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from healcoin_ledger.core.container import ApplicationContainer


def get_container(request: Request) -> ApplicationContainer:
    return request.app.state.container


async def get_db_session(container: ApplicationContainer = Depends(get_container)) -> AsyncIterator[AsyncSession]:
    async with container.session() as session:
        yield session


__all__ = [
    "get_container",
    "get_db_session",
]
