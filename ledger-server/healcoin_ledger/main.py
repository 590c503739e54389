import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from healcoin_ledger import __version__
from healcoin_ledger.api import create_api_router
from healcoin_ledger.core.container import ApplicationContainer
from healcoin_ledger.core.config import get_settings
from healcoin_ledger.interfaces.http.errors import add_error_handlers

logger = logging.getLogger(__name__)


def create_app(container: Optional[ApplicationContainer] = None) -> FastAPI:
    container = container or ApplicationContainer.build(get_settings())
    settings = container.settings
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await container.init_infrastructure()
        logger.info("%s %s started (%s)", settings.project_name, __version__, settings.environment)
        yield
        await container.dispose()

    app = FastAPI(
        title=settings.project_name,
        description="HealCoin wallet ledger with caps, fraud heuristics and a hash-chained audit trail",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    add_error_handlers(app)
    app.include_router(create_api_router(settings.api_prefix))
    return app


app = create_app()
