"""
FastAPI Application Entry Point.

This is the main application file for the ERP Backend.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from erp_backend.app.core.config import settings
from erp_backend.app.core.logging_config import setup_logging
from erp_backend.app.core.observability import ObservabilityMiddleware
from erp_backend.app.core.redis_client import ping_redis
from erp_backend.app.api.v1.router import router as api_router
from erp_backend.app.db.seed import seed_database
from erp_backend.app.db.session import AsyncSessionLocal, engine, Base
from erp_backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from erp_backend.app.models.role import Role  # noqa: F401
from erp_backend.app.models.user import User  # noqa: F401
from erp_backend.app.models.audit_log import AuditLog  # noqa: F401
from erp_backend.app.models.account import Account  # noqa: F401
from erp_backend.app.models.invoice import Invoice  # noqa: F401
from erp_backend.app.models.transaction import Transaction  # noqa: F401
from erp_backend.app.models.category import Category  # noqa: F401
from erp_backend.app.models.supplier import Supplier  # noqa: F401
from erp_backend.app.models.product import Product  # noqa: F401
from erp_backend.app.models.movement import Movement  # noqa: F401
from erp_backend.app.models.inventory_alert import InventoryAlert  # noqa: F401

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    Creates database tables (and base data) on startup, disposes the
    engine on shutdown.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    if settings.seed_on_startup:
        async with AsyncSessionLocal() as session:
            await seed_database(session)
    logger.info("%s %s started", settings.app_name, settings.app_version)
    yield
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    description="ERP backend: accounting ledger, invoicing and inventory",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
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
        dict: Status, application information and Redis reachability
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "redis": "up" if await ping_redis() else "down",
    }


# Include API router
app.include_router(api_router, prefix=settings.api_prefix)
