"""
FastAPI Application Entry Point.

This is the main application file for the TravelLedger Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from travel_ledger.app.core.config import settings
from travel_ledger.app.api.v1.router import router as api_v1_router
from travel_ledger.app.core.observability import ObservabilityMiddleware, configure_logging
from travel_ledger.app.db.session import engine, Base, AsyncSessionLocal
from travel_ledger.app.db.unit_of_work import make_uow_factory
from travel_ledger.app.services.seeding import seed_database
from travel_ledger.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from travel_ledger.app.models.account import Account
from travel_ledger.app.models.voucher import Voucher
from travel_ledger.app.models.ledger_entry import LedgerEntry
from travel_ledger.app.models.app_config import AppConfig
from travel_ledger.app.models.audit_log import AuditLog


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Configures logging.
    2. Creates database tables on startup.
    3. Seeds the config row and the standard chart of accounts.
    """
    configure_logging(settings.log_level)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await seed_database(make_uow_factory(AsyncSessionLocal), with_chart=settings.seed_chart_of_accounts)
    yield
    await engine.dispose()

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Double-entry bookkeeping backend for a travel agency",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to TravelLedger Backend API",
        "docs": "/docs",
        "health": "/health",
    }
