"""
FastAPI Application Entry Point.

Back-office API for settlement review, order monitoring and moderation.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from opsdesk.app.core.config import settings
from opsdesk.app.api.v1.router import router as api_v1_router
from opsdesk.app.db.session import engine, Base
from opsdesk.app.core.observability import ObservabilityMiddleware, configure_logging
from opsdesk.app.core.redis_client import ping_redis
from opsdesk.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from opsdesk.app.models.admin import AdminProfile
from opsdesk.app.models.audit_log import AuditLog
from opsdesk.app.models.technician import City, Technician, TechnicianWorkSession
from opsdesk.app.models.customer import Customer
from opsdesk.app.models.order import Order
from opsdesk.app.models.settlement import OrderSettlement
from opsdesk.app.models.settlement_account import TechnicianSettlementAccount
from opsdesk.app.models.settlement_transaction import SettlementTransaction
from opsdesk.app.models.review import Review
from opsdesk.app.models.report import Report
from opsdesk.app.models.notification import Notification

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create database tables on startup."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Back-office API for finance, operations and moderation staff",
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
    
    Redis is reported but does not fail the check; token revocation
    degrades to "not revoked" while it is down.
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": "up" if await ping_redis() else "down",
    }


app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "Welcome to the Opsdesk back-office API",
        "docs": "/docs",
        "health": "/health",
    }
