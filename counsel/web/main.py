from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from counsel.infrastructure.config import DatabaseConfig, get_settings
from counsel.infrastructure.db import create_database_engine, create_session_factory, initialise_database
from counsel.infrastructure.logging import configure_logging, get_logger
from counsel.web.routes import api

logger = get_logger(__name__)


def open_database(app: FastAPI, config: DatabaseConfig) -> None:
    engine = create_database_engine(config)
    initialise_database(engine)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Runs once before the first request, so every request shares one engine.
    open_database(app, get_settings().database)
    logger.info("Database ready")
    try:
        yield
    finally:
        app.state.engine.dispose()


def create_application() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.logging)

    app = FastAPI(
        title=settings.app.title,
        version=settings.app.version,
        debug=settings.app.debug,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api.router)

    return app


app = create_application()
