"""
Identity verification and RBAC guard

Both identity domains run the same sequence:

    token present -> token valid -> principal loaded -> role allowed

``authorize`` implements that sequence once. What differs per domain is the
principal loader (how a verified claim set becomes a principal plus its
context) and the allowed role set, both passed in by the caller.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Optional, Tuple, Union

from sqlalchemy.ext.asyncio import AsyncEngine
import structlog

from bizsuite.core.auth import verify_token
from bizsuite.core.exceptions import (
    AuthenticationError,
    InactivePrincipal,
    InsufficientRole,
    InvalidToken,
    MissingToken,
    TenantMismatch,
)
from bizsuite.core.permissions import Domain
from bizsuite.core.pool_registry import ConnectionPoolRegistry
from bizsuite.models.platform import PlatformRole, PlatformUser, Tenant
from bizsuite.models.tenant_user import TenantRole, TenantUser
from bizsuite.repositories.platform import PlatformStore
from bizsuite.repositories.tenant import SqlTenantStore, TenantStore
from bizsuite.services.tenant_resolver import TenantResolver

logger = structlog.get_logger(__name__)

TenantStoreFactory = Callable[[AsyncEngine], TenantStore]


@dataclass(frozen=True)
class SessionClaims:
    """Verified claim set of a session token"""
    principal_id: int
    domain: Domain
    role: str
    tenant_id: Optional[int]
    issued_at: int
    expires_at: int

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "SessionClaims":
        try:
            domain = Domain(payload["domain"])
            tenant_id = payload.get("tenant_id")
            claims = cls(
                principal_id=int(payload["sub"]),
                domain=domain,
                role=str(payload["role"]),
                tenant_id=int(tenant_id) if tenant_id is not None else None,
                issued_at=int(payload["iat"]),
                expires_at=int(payload["exp"]),
            )
        except (KeyError, ValueError, TypeError) as e:
            raise InvalidToken("Malformed claims") from e

        if claims.domain is Domain.TENANT and claims.tenant_id is None:
            raise InvalidToken("Tenant token without tenant_id")
        return claims


@dataclass
class AuthContext:
    """Per-request bundle handed to route handlers after authorization"""
    principal: Union[PlatformUser, TenantUser]
    role: Enum
    domain: Domain
    tenant: Optional[Tenant] = None
    tenant_engine: Optional[AsyncEngine] = None
    tenant_store: Optional[TenantStore] = None


PrincipalLoader = Callable[[SessionClaims], Awaitable[AuthContext]]


async def authorize(
    token: Optional[str],
    *,
    domain: Domain,
    load_principal: PrincipalLoader,
    allowed_roles: FrozenSet[Enum],
) -> AuthContext:
    """
    Authenticate a bearer token and check the principal's role.

    Every rejection is terminal and raised as a CoreError subclass; nothing
    is retried.
    """
    try:
        if not token:
            raise MissingToken()

        claims = SessionClaims.from_payload(verify_token(token))
        if claims.domain is not domain:
            raise InvalidToken(f"{claims.domain.value} token used on {domain.value} route")

        context = await load_principal(claims)
        if context.role not in allowed_roles:
            raise InsufficientRole(f"Role {context.role.value} not in {sorted(r.value for r in allowed_roles)}")
        return context

    except (AuthenticationError, InsufficientRole) as e:
        logger.warning(
            "Request rejected",
            security_event=True,
            domain=domain.value,
            reason=e.reason,
            detail=e.message,
        )
        raise


class TenantConnector:
    """Opens the tenant store for a resolved tenant through the pool registry"""

    def __init__(
        self,
        registry: ConnectionPoolRegistry,
        fallback_address: str,
        store_factory: TenantStoreFactory = SqlTenantStore,
    ):
        self._registry = registry
        self._fallback_address = fallback_address
        self._store_factory = store_factory

    def address_for(self, tenant: Tenant) -> str:
        return tenant.store_address or self._fallback_address

    async def open(self, tenant: Tenant) -> Tuple[AsyncEngine, TenantStore]:
        engine = await self._registry.get(self.address_for(tenant))
        return engine, self._store_factory(engine)


class PlatformPrincipalLoader:
    """Loads a platform operator from the platform store"""

    def __init__(self, store: PlatformStore):
        self._store = store

    async def __call__(self, claims: SessionClaims) -> AuthContext:
        user = await self._store.get_platform_user(claims.principal_id)
        if user is None or not user.is_active:
            raise InactivePrincipal(f"Platform user {claims.principal_id} missing or inactive")
        try:
            role = PlatformRole(user.role)
        except ValueError as e:
            raise InactivePrincipal(f"Platform user {user.id} has unknown role {user.role!r}") from e
        return AuthContext(principal=user, role=role, domain=Domain.PLATFORM)


class TenantPrincipalLoader:
    """
    Loads a tenant employee from the tenant's own store.

    When the route names a subdomain, that subdomain decides the tenant and
    the token must have been issued for it.
    """

    def __init__(
        self,
        resolver: TenantResolver,
        connector: TenantConnector,
        subdomain: Optional[str] = None,
    ):
        self._resolver = resolver
        self._connector = connector
        self._subdomain = subdomain

    async def __call__(self, claims: SessionClaims) -> AuthContext:
        if self._subdomain:
            tenant = await self._resolver.resolve(self._subdomain)
        else:
            tenant = await self._resolver.resolve_by_id(claims.tenant_id)
        self._resolver.require_active(tenant)

        if claims.tenant_id != tenant.id:
            raise TenantMismatch(f"Token for tenant {claims.tenant_id} presented to tenant {tenant.id}")

        engine, store = await self._connector.open(tenant)
        user = await store.get_user(claims.principal_id)
        if user is None or not user.is_active:
            raise InactivePrincipal(f"Tenant user {claims.principal_id} missing or inactive")
        if user.tenant_id != tenant.id:
            raise TenantMismatch(f"User {user.id} belongs to tenant {user.tenant_id}, not {tenant.id}")

        try:
            role = TenantRole(user.role)
        except ValueError as e:
            raise InactivePrincipal(f"Tenant user {user.id} has unknown role {user.role!r}") from e

        return AuthContext(
            principal=user,
            role=role,
            domain=Domain.TENANT,
            tenant=tenant,
            tenant_engine=engine,
            tenant_store=store,
        )
