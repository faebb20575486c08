"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures logging, storage selection, and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from accountflow.adapters.repository import InMemoryAccountStorage, PostgresAccountStorage, run_migrations
from accountflow.adapters.sessions.memory import InMemorySessionManager
from accountflow.api.dependencies import build_account_service, get_mail_sender
from accountflow.api.v1 import router as v1_router
from accountflow.config.settings import get_settings

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Account lifecycle API v1 - Sign up, verify, log in and manage credentials",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Selects the storage backend, creating the connection pool and running
      migrations for PostgreSQL
    - Builds the shared account service
    - Closes the connection pool on shutdown
    """
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)

    logger.info("Starting application...")

    pool = None
    if settings.storage_backend == "postgres":
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )
        logger.info("Running database migrations...")
        run_migrations(pool)
        storage = PostgresAccountStorage(pool)
    else:
        logger.info("Using in-memory account storage")
        storage = InMemoryAccountStorage()

    # Store collaborators in app state for dependency injection
    app.state.pool = pool
    app.state.storage = storage
    app.state.sessions = InMemorySessionManager()
    app.state.account_service = build_account_service(storage, app.state.sessions, get_mail_sender())

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="accountflow",
    description="Account lifecycle API - Enumeration-safe signup, verification and password reset",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint.

    Returns 200 OK if the application is up. With PostgreSQL storage the
    database is queried too, and a failing connection raises.
    """
    pool = request.app.state.pool
    if pool is not None:
        with pool.connection() as conn:
            conn.execute("SELECT 1")

    return {"status": "healthy"}
