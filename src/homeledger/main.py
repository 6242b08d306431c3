"""FastAPI application entry point for the home ledger service.

Lifecycle:
    1. Startup: Initialize logging and the database, create tables (dev mode).
    2. Running: Serve the REST API on a single Uvicorn process.
    3. Shutdown: Dispose of the database engine.

Run with:
    uvicorn homeledger.main:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from homeledger.config import get_settings
from homeledger.logging_config import get_logger, setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    settings = get_settings()

    # 1. Setup structured logging
    setup_logging(
        log_level=settings.app_log_level,
        json_logs=not settings.is_development,
        environment=settings.app_env,
        echo_sql=settings.db_echo_sql,
    )
    logger = get_logger(__name__)
    logger.info(
        "app.starting",
        env=settings.app_env,
        debug=settings.app_debug,
    )

    # 2. Initialize database
    from homeledger.infrastructure.database.engine import close_db, init_db

    await init_db()

    logger.info("app.started", host=settings.app_host, port=settings.app_port)

    yield

    # Shutdown
    logger.info("app.shutting_down")
    await close_db()
    logger.info("app.stopped")


def create_app() -> FastAPI:
    """Application factory — creates and configures the FastAPI app."""
    settings = get_settings()

    app = FastAPI(
        title="Home Ledger",
        description=(
            "Contractor work verification, homeowner/contractor connections "
            "and permanent home history."
        ),
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.app_debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # --- Middleware ---
    from homeledger.api.middleware import setup_middleware

    setup_middleware(app)

    # --- REST API Routes ---
    from homeledger.api.routes.connections import router as connections_router
    from homeledger.api.routes.health import router as health_router
    from homeledger.api.routes.homes import router as homes_router
    from homeledger.api.routes.invitations import router as invitations_router
    from homeledger.api.routes.work_records import router as work_records_router

    app.include_router(health_router)
    app.include_router(work_records_router)
    app.include_router(homes_router)
    app.include_router(invitations_router)
    app.include_router(connections_router)

    return app


# The app instance used by Uvicorn
app = create_app()
