"""
BizSuite - Main Application Entry Point
Multi-tenant business suite backend: tenant routing, authentication and billing
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from bizsuite.api import (
    platform_auth,
    platform_tenants,
    platform_users,
    subscriptions,
    tenant_auth,
    tenant_users,
)
from bizsuite.core.config import get_settings
from bizsuite.core.database import create_platform_engine, init_platform_db, init_tenant_store
from bizsuite.core.exceptions import CoreError
from bizsuite.core.logging import configure_logging
from bizsuite.core.pool_registry import ConnectionPoolRegistry
from bizsuite.repositories.platform import SqlPlatformStore
from bizsuite.repositories.tenant import SqlTenantStore
from bizsuite.services.billing import create_billing_provider

logger = structlog.get_logger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    configure_logging(settings.LOG_LEVEL)
    logger.info("Initializing BizSuite backend")

    platform_engine = create_platform_engine()
    app.state.platform_engine = platform_engine
    app.state.platform_store = SqlPlatformStore(platform_engine)
    app.state.pool_registry = ConnectionPoolRegistry()
    app.state.tenant_store_factory = SqlTenantStore
    app.state.billing_provider = create_billing_provider(settings)

    if settings.ENVIRONMENT == "development":
        await init_platform_db(platform_engine)
        await init_tenant_store(platform_engine)
    else:
        logger.info("Database managed by Alembic migrations")

    yield

    # Shutdown
    logger.info("Shutting down BizSuite backend")
    await app.state.pool_registry.dispose_all()
    await platform_engine.dispose()


async def core_error_handler(request: Request, exc: CoreError) -> JSONResponse:
    """Map core errors to their status and public detail; internals are only logged"""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.public_detail},
        headers=exc.headers or None,
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="BizSuite API",
        description="Multi-tenant business suite with per-tenant data stores",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(CoreError, core_error_handler)

    # Platform domain
    app.include_router(platform_auth.router, prefix="/api/platform/auth", tags=["platform-auth"])
    app.include_router(platform_tenants.router, prefix="/api/platform/tenants", tags=["platform-tenants"])
    app.include_router(platform_users.router, prefix="/api/platform/users", tags=["platform-users"])

    # Tenant domain
    app.include_router(tenant_auth.router, prefix="/api/tenant/{subdomain}/auth", tags=["tenant-auth"])
    app.include_router(tenant_users.router, prefix="/api/tenant/{subdomain}/users", tags=["tenant-users"])
    app.include_router(subscriptions.router, prefix="/api/tenant/{subdomain}/subscription", tags=["subscription"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "service": "bizsuite-api"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "bizsuite.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level="info",
    )
