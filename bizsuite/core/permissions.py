"""
RBAC role sets for the platform and tenant identity domains

Each domain has its own closed role enumeration. Endpoint gates are plain
frozensets of allowed roles; tenant gates are built from the role ordering so
"manager or above" always includes every more privileged role.
"""

from enum import Enum
from typing import FrozenSet

from bizsuite.models.platform import PlatformRole
from bizsuite.models.tenant_user import TenantRole


class Domain(str, Enum):
    """Identity domain a session token belongs to"""
    PLATFORM = "platform"
    TENANT = "tenant"


def tenant_roles_at_least(minimum: TenantRole) -> FrozenSet[TenantRole]:
    """All tenant roles with privilege >= minimum"""
    return frozenset(role for role in TenantRole if role.rank >= minimum.rank)


# Platform gates
PLATFORM_ADMINS: FrozenSet[PlatformRole] = frozenset(
    {PlatformRole.SUPER_ADMIN, PlatformRole.PRODUCT_OWNER}
)
SUPER_ADMIN_ONLY: FrozenSet[PlatformRole] = frozenset({PlatformRole.SUPER_ADMIN})

# Tenant gates
TENANT_USERS = tenant_roles_at_least(TenantRole.USER)
TENANT_MANAGERS = tenant_roles_at_least(TenantRole.MANAGER)
TENANT_ADMINS = tenant_roles_at_least(TenantRole.ADMIN)


def can_assign_tenant_role(actor: TenantRole, target: TenantRole) -> bool:
    """A tenant user may only grant roles up to their own privilege"""
    return target.rank <= actor.rank
