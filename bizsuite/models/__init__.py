from bizsuite.models.platform import (
    PlatformRole,
    PlatformUser,
    SubscriptionPlan,
    SubscriptionStatus,
    Tenant,
    TenantStatus,
)
from bizsuite.models.tenant_user import TenantRole, TenantUser
