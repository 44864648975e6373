"""
FastAPI Application Entry Point.

This is the main application file for the Fleet Operations Pricing Backend.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fleetops.app.core.config import settings
from fleetops.app.core.observability import ObservabilityMiddleware, setup_logging
from fleetops.app.api.v1.router import router as api_v1_router
from fleetops.app.db.session import engine, Base
from fleetops.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from fleetops.app.models.service_type import ServiceType
from fleetops.app.models.pricing_rule import PricingRule
from fleetops.app.models.rental_package import RentalPackage
from fleetops.app.models.booking import Booking
from fleetops.app.models.payment import Payment
from fleetops.app.models.audit_log import AuditLog

logger = logging.getLogger("fleetops")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Configures logging.
    2. Creates database tables on startup.
    """
    setup_logging(settings.log_level, settings.log_json)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s %s started", settings.app_name, settings.api_version)
    yield
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Fleet operations backend: pricing rules, fare quotes, bookings and payment reconciliation",
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
        "message": "Welcome to Fleet Operations Pricing Backend API",
        "docs": "/docs",
        "health": "/health",
    }
