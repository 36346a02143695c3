"""
Tenant administration API endpoints
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
import structlog

from bizsuite.core.config import get_settings
from bizsuite.core.database import init_tenant_store
from bizsuite.core.dependencies import (
    get_platform_admin,
    get_platform_store,
    get_pool_registry,
    get_super_admin,
)
from bizsuite.core.logging import mask_address
from bizsuite.core.pool_registry import ConnectionPoolRegistry
from bizsuite.models.platform import Tenant, TenantStatus
from bizsuite.repositories.platform import PlatformStore
from bizsuite.schemas.platform import TenantCreate, TenantResponse, TenantUpdate
from bizsuite.services.identity import AuthContext

logger = structlog.get_logger(__name__)
router = APIRouter()
settings = get_settings()


@router.get("", response_model=List[TenantResponse])
async def list_tenants(
    context: AuthContext = Depends(get_platform_admin),
    store: PlatformStore = Depends(get_platform_store),
):
    """List all tenants"""
    return await store.list_tenants()


@router.post("", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
async def create_tenant(
    tenant_data: TenantCreate,
    context: AuthContext = Depends(get_platform_admin),
    store: PlatformStore = Depends(get_platform_store),
    registry: ConnectionPoolRegistry = Depends(get_pool_registry),
):
    """Create a tenant and provision its store schema"""
    subdomain = tenant_data.subdomain.lower()
    if await store.get_tenant_by_subdomain(subdomain):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Subdomain already exists"
        )

    address = tenant_data.store_address or settings.DATABASE_URL
    engine = await registry.get(address)
    await init_tenant_store(engine)

    tenant = Tenant(
        name=tenant_data.name,
        subdomain=subdomain,
        store_address=tenant_data.store_address,
        status=TenantStatus.ACTIVE.value,
        subscription_plan=tenant_data.subscription_plan.value,
        max_users=tenant_data.max_users,
    )
    tenant = await store.create_tenant(tenant)

    logger.info(f"Tenant created: {tenant.id} ({subdomain}) on {mask_address(address)}")
    return tenant


@router.put("/{tenant_id}", response_model=TenantResponse)
async def update_tenant(
    tenant_id: int,
    tenant_update: TenantUpdate,
    context: AuthContext = Depends(get_platform_admin),
    store: PlatformStore = Depends(get_platform_store),
):
    """Update tenant"""
    fields = {
        key: value
        for key, value in tenant_update.model_dump(exclude_unset=True).items()
        if value is not None or key == "store_address"  # None resets to the platform store
    }
    if "status" in fields:
        fields["status"] = fields["status"].value

    tenant = await store.update_tenant(tenant_id, fields)
    if not tenant:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Tenant not found"
        )

    logger.info(f"Tenant updated: {tenant_id} fields={sorted(fields)}")
    return tenant


@router.delete("/{tenant_id}")
async def delete_tenant(
    tenant_id: int,
    context: AuthContext = Depends(get_super_admin),
    store: PlatformStore = Depends(get_platform_store),
):
    """Delete tenant (super admin only)"""
    if not await store.delete_tenant(tenant_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Tenant not found"
        )

    logger.info(f"Tenant deleted: {tenant_id} by {context.principal.id}")
    return {"message": "Tenant deleted successfully"}
