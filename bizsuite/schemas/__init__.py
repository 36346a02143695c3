"""
Schemas for API responses and requests
"""

from bizsuite.schemas.platform import (
    PlatformUserCreate,
    PlatformUserResponse,
    TenantCreate,
    TenantResponse,
    TenantUpdate,
)
from bizsuite.schemas.subscription import (
    SubscriptionChangeResponse,
    SubscriptionResponse,
    SubscriptionUpgrade,
)
from bizsuite.schemas.token import LoginRequest, TokenResponse
from bizsuite.schemas.user import TenantUserCreate, TenantUserResponse, TenantUserUpdate

__all__ = [
    "LoginRequest",
    "PlatformUserCreate",
    "PlatformUserResponse",
    "SubscriptionChangeResponse",
    "SubscriptionResponse",
    "SubscriptionUpgrade",
    "TenantCreate",
    "TenantResponse",
    "TenantUpdate",
    "TenantUserCreate",
    "TenantUserResponse",
    "TenantUserUpdate",
    "TokenResponse",
]
