"""
Database engine and session factories
"""

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
import structlog

from bizsuite.core.config import get_settings, to_async_url
from bizsuite.core.logging import mask_address
from bizsuite.models.platform import PlatformUser, Tenant
from bizsuite.models.tenant_user import TenantUser

logger = structlog.get_logger(__name__)
settings = get_settings()

PLATFORM_TABLES = [PlatformUser.__table__, Tenant.__table__]
TENANT_TABLES = [TenantUser.__table__]


def create_store_engine(address: str, pool_size: int) -> AsyncEngine:
    """Create a bounded async engine (no overflow beyond pool_size)"""
    return create_async_engine(
        to_async_url(address),
        pool_size=pool_size,
        max_overflow=0,
        pool_timeout=settings.POOL_TIMEOUT_SECONDS,
        pool_pre_ping=True,
        echo=settings.DEBUG,
    )


def create_platform_engine() -> AsyncEngine:
    return create_store_engine(settings.DATABASE_URL, settings.PLATFORM_POOL_SIZE)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_platform_db(engine: AsyncEngine) -> None:
    """Create platform tables (development only; production uses Alembic)"""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all, tables=PLATFORM_TABLES)
    logger.info(f"Platform tables ensured on {mask_address(str(engine.url))}")


async def init_tenant_store(engine: AsyncEngine) -> None:
    """Create tenant tables in a tenant store"""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all, tables=TENANT_TABLES)
    logger.info(f"Tenant tables ensured on {mask_address(str(engine.url))}")
