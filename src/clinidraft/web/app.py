"""FastAPI application factory for Clinidraft.

The application wires one shared orchestrator for its lifetime:

    engine -> session factory -> SqlDraftStore
    ChatCompletionClient (opened for the app's lifetime)
    DraftOrchestrator(store, client, config.generation)

All of these are kept on ``app.state`` so routes (and tests) can reach them
without globals.

Example usage:
    >>> from clinidraft.config import ClinidraftConfig
    >>> from clinidraft.web.app import create_app
    >>>
    >>> app = create_app(ClinidraftConfig())
    >>> import uvicorn
    >>> uvicorn.run(app, host="0.0.0.0", port=8000)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clinidraft import __version__
from clinidraft.config import ClinidraftConfig
from clinidraft.database.connection import get_engine, get_session_factory
from clinidraft.generation.model import ChatCompletionClient
from clinidraft.generation.orchestrator import DraftOrchestrator
from clinidraft.logging import get_logger
from clinidraft.store import SqlDraftStore
from clinidraft.web.middleware import RequestLoggingMiddleware
from clinidraft.web.routes.drafts import create_drafts_router
from clinidraft.web.routes.health import create_health_router

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the database pool, model client and orchestrator.

    Args:
        app: FastAPI application instance

    Yields:
        None after startup; disposes resources on exit
    """
    config: ClinidraftConfig = app.state.config

    logger.info("app_startup_begin", host=config.web.host, port=config.web.port)

    engine = get_engine(config.database)
    session_factory = get_session_factory(engine)
    store = SqlDraftStore(session_factory)

    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.store = store

    async with ChatCompletionClient(config.model) as model:
        app.state.orchestrator = DraftOrchestrator(store, model, config.generation)
        logger.info(
            "app_startup_complete",
            model=config.model.model,
            eligible_service_types=config.generation.eligible_service_types,
        )

        yield

        logger.info("app_shutdown_begin")

    await engine.dispose()
    logger.info("database_pool_disposed")


def create_app(config: ClinidraftConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Optional configuration; defaults to ``ClinidraftConfig()``.

    Returns:
        Configured FastAPI application instance.
    """
    if config is None:
        config = ClinidraftConfig()

    app = FastAPI(
        title="Clinidraft",
        version=__version__,
        description="AI draft generation for clinical intake review",
        lifespan=lifespan,
    )
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.web.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(create_health_router())
    app.include_router(create_drafts_router())

    logger.info("app_created", cors_origins=config.web.cors_origins, version=__version__)

    return app
