"""
Authentication dependencies for FastAPI

Shared services live on ``app.state`` (built by the application lifespan);
the getters below expose them to routes so tests can swap them out.
"""

from datetime import timedelta
from typing import FrozenSet, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import structlog

from bizsuite.core.config import get_settings
from bizsuite.core.permissions import (
    PLATFORM_ADMINS,
    SUPER_ADMIN_ONLY,
    TENANT_ADMINS,
    TENANT_MANAGERS,
    TENANT_USERS,
    Domain,
)
from bizsuite.core.pool_registry import ConnectionPoolRegistry
from bizsuite.models.platform import PlatformRole
from bizsuite.models.tenant_user import TenantRole
from bizsuite.repositories.platform import PlatformStore
from bizsuite.repositories.tenant import SqlTenantStore
from bizsuite.services.billing import BillingProvider, plan_prices
from bizsuite.services.identity import (
    AuthContext,
    PlatformPrincipalLoader,
    TenantConnector,
    TenantPrincipalLoader,
    TenantStoreFactory,
    authorize,
)
from bizsuite.services.subscriptions import SubscriptionManager
from bizsuite.services.tenant_resolver import TenantResolver

logger = structlog.get_logger(__name__)
settings = get_settings()
security = HTTPBearer(auto_error=False)


def get_platform_store(request: Request) -> PlatformStore:
    return request.app.state.platform_store


def get_pool_registry(request: Request) -> ConnectionPoolRegistry:
    return request.app.state.pool_registry


def get_billing_provider(request: Request) -> Optional[BillingProvider]:
    return getattr(request.app.state, "billing_provider", None)


def get_tenant_store_factory(request: Request) -> TenantStoreFactory:
    return getattr(request.app.state, "tenant_store_factory", SqlTenantStore)


def get_tenant_resolver(store: PlatformStore = Depends(get_platform_store)) -> TenantResolver:
    return TenantResolver(store)


def get_tenant_connector(
    registry: ConnectionPoolRegistry = Depends(get_pool_registry),
    store_factory: TenantStoreFactory = Depends(get_tenant_store_factory),
) -> TenantConnector:
    return TenantConnector(registry, settings.DATABASE_URL, store_factory)


def get_subscription_manager(
    store: PlatformStore = Depends(get_platform_store),
    billing: Optional[BillingProvider] = Depends(get_billing_provider),
) -> SubscriptionManager:
    return SubscriptionManager(
        store,
        billing,
        plan_prices(settings),
        period=timedelta(days=settings.SUBSCRIPTION_PERIOD_DAYS),
    )


def extract_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
    cookie_name: str,
) -> Optional[str]:
    """Bearer header first, then the session cookie of the domain"""
    if credentials and credentials.scheme.lower() == "bearer" and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(cookie_name)


def require_platform_role(allowed_roles: FrozenSet[PlatformRole]):
    """Dependency factory guarding a platform route"""

    async def dependency(
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
        store: PlatformStore = Depends(get_platform_store),
    ) -> AuthContext:
        token = extract_token(request, credentials, settings.PLATFORM_TOKEN_COOKIE)
        context = await authorize(
            token,
            domain=Domain.PLATFORM,
            load_principal=PlatformPrincipalLoader(store),
            allowed_roles=allowed_roles,
        )
        request.state.auth = context
        logger.debug(f"Platform user authenticated: {context.principal.id}")
        return context

    return dependency


def require_tenant_role(allowed_roles: FrozenSet[TenantRole]):
    """Dependency factory guarding a route under /api/tenant/{subdomain}"""

    async def dependency(
        request: Request,
        subdomain: str,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
        resolver: TenantResolver = Depends(get_tenant_resolver),
        connector: TenantConnector = Depends(get_tenant_connector),
    ) -> AuthContext:
        token = extract_token(request, credentials, settings.TENANT_TOKEN_COOKIE)
        context = await authorize(
            token,
            domain=Domain.TENANT,
            load_principal=TenantPrincipalLoader(resolver, connector, subdomain),
            allowed_roles=allowed_roles,
        )
        request.state.auth = context
        logger.debug(f"Tenant user authenticated: {context.principal.id} on {context.tenant.subdomain}")
        return context

    return dependency


# Named gates
get_platform_admin = require_platform_role(PLATFORM_ADMINS)
get_super_admin = require_platform_role(SUPER_ADMIN_ONLY)

get_tenant_user = require_tenant_role(TENANT_USERS)
get_tenant_manager = require_tenant_role(TENANT_MANAGERS)
get_tenant_admin = require_tenant_role(TENANT_ADMINS)
