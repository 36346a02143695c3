"""
Pydantic schemas for platform operators and tenant administration
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from bizsuite.models.platform import PlatformRole, SubscriptionPlan, TenantStatus


class PlatformUserCreate(BaseModel):
    """Platform operator registration schema"""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=100)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    role: PlatformRole = Field(default=PlatformRole.PRODUCT_OWNER)


class PlatformUserResponse(BaseModel):
    id: int
    email: str
    first_name: Optional[str]
    last_name: Optional[str]
    role: PlatformRole
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class TenantCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    subdomain: str = Field(..., min_length=2, max_length=100, pattern=r"^[a-zA-Z0-9-]+$")
    store_address: Optional[str] = Field(
        default=None,
        description="Connection URL of a dedicated store; the platform store is used when omitted",
    )
    subscription_plan: SubscriptionPlan = Field(default=SubscriptionPlan.FREE)
    max_users: int = Field(default=10, ge=1)


class TenantUpdate(BaseModel):
    """Administrative tenant update; subscription fields change only through billing"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    status: Optional[TenantStatus] = None
    store_address: Optional[str] = None
    max_users: Optional[int] = Field(default=None, ge=1)


class TenantResponse(BaseModel):
    """Tenant as returned to platform operators; the store address is never exposed"""
    id: int
    name: str
    subdomain: str
    status: TenantStatus
    subscription_plan: SubscriptionPlan
    subscription_status: str
    subscription_ends_at: Optional[datetime]
    max_users: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
