"""DataNest API — application factory and ASGI entry point.

Invariants:
    - Routers are listed explicitly in ROUTERS; nothing is auto-discovered
    - Logging and the database engine are set up in lifespan, never at import
    - CORS origins come from settings

Design Decisions:
    - create_app() so tests and uvicorn share one construction path;
      `app` is the module-level instance uvicorn points at (datanest.main:app)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from datanest.api.error_handlers import register_error_handlers
from datanest.api.routes import (
    auth, datasets, health, messages, payments, proposals, requests, users,
)
from datanest.config import Settings, get_settings
from datanest.infrastructure import database
from datanest.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)

ROUTERS = (health, auth, users, datasets, requests, proposals, payments, messages)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    database.init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("Marketplace API ready", extra={"status": "started"})
    try:
        yield
    finally:
        if database.db_manager is not None:
            await database.db_manager.dispose()
        logger.info("Marketplace API stopped", extra={"status": "stopped"})


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    application = FastAPI(title="DataNest API", version="1.0.0", lifespan=lifespan)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    for module in ROUTERS:
        application.include_router(module.router)
    register_error_handlers(application)
    return application


app = create_app()
