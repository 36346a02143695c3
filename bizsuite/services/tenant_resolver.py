"""
Tenant resolution against the platform store

Lookups always hit the store: tenant status can change between requests, so
nothing here caches across requests.
"""

import structlog

from bizsuite.core.exceptions import TenantInactive, TenantNotFound
from bizsuite.models.platform import Tenant
from bizsuite.repositories.platform import PlatformStore

logger = structlog.get_logger(__name__)


class TenantResolver:
    """Maps a subdomain or tenant id to its Tenant record"""

    def __init__(self, store: PlatformStore):
        self._store = store

    async def resolve(self, subdomain: str) -> Tenant:
        tenant = await self._store.get_tenant_by_subdomain(subdomain.lower())
        if tenant is None:
            raise TenantNotFound(f"No tenant for subdomain {subdomain!r}")
        return tenant

    async def resolve_by_id(self, tenant_id: int) -> Tenant:
        tenant = await self._store.get_tenant(tenant_id)
        if tenant is None:
            raise TenantNotFound(f"No tenant with id {tenant_id}")
        return tenant

    @staticmethod
    def require_active(tenant: Tenant) -> Tenant:
        """Inactive and suspended tenants are rejected alike"""
        if not tenant.is_active:
            raise TenantInactive(f"Tenant {tenant.id} is {tenant.status}")
        return tenant
