"""
Platform store models: platform operators and registered tenants
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Column, String
from sqlmodel import Field, SQLModel


class PlatformRole(str, Enum):
    """Roles in the platform identity domain"""
    SUPER_ADMIN = "super_admin"
    PRODUCT_OWNER = "product_owner"


class TenantStatus(str, Enum):
    """Lifecycle status; anything but ACTIVE blocks tenant logins"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class SubscriptionPlan(str, Enum):
    FREE = "free"
    STANDARD = "standard"
    ENTERPRISE = "enterprise"

    @property
    def is_paid(self) -> bool:
        return self is not SubscriptionPlan.FREE


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    TRIAL = "trial"
    CANCELLED = "cancelled"


class PlatformUser(SQLModel, table=True):
    """Platform operator (super admin or product owner)"""

    __tablename__ = "platform_users"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(max_length=255, unique=True, index=True, nullable=False)
    password_hash: str = Field(nullable=False)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    role: str = Field(
        default=PlatformRole.PRODUCT_OWNER.value,
        sa_column=Column(String(20), nullable=False),
    )
    is_active: bool = Field(default=True, nullable=False)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Tenant(SQLModel, table=True):
    """Registered organization with its own data store and subscription"""

    __tablename__ = "tenants"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=255, nullable=False)
    subdomain: str = Field(
        max_length=100,
        unique=True,
        index=True,
        nullable=False,
        description="Routing key for tenant requests",
    )
    store_address: Optional[str] = Field(
        default=None,
        description="Connection URL of the tenant store; platform store when empty",
    )
    status: str = Field(
        default=TenantStatus.ACTIVE.value,
        sa_column=Column(String(20), nullable=False),
    )

    # Subscription
    subscription_plan: str = Field(
        default=SubscriptionPlan.FREE.value,
        sa_column=Column(String(50), nullable=False),
    )
    subscription_status: str = Field(
        default=SubscriptionStatus.ACTIVE.value,
        sa_column=Column(String(20), nullable=False),
    )
    subscription_ends_at: Optional[datetime] = None
    billing_customer_ref: Optional[str] = Field(default=None, max_length=255)
    billing_subscription_ref: Optional[str] = Field(default=None, max_length=255)
    max_users: int = Field(default=10, nullable=False)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_active(self) -> bool:
        return self.status == TenantStatus.ACTIVE.value
