"""
Tenant store models: employees of a single tenant

These rows live in the tenant's own store and are never joined across tenants.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Column, String
from sqlmodel import Field, SQLModel


class TenantRole(str, Enum):
    """Roles in the tenant identity domain, in increasing privilege"""
    USER = "user"
    MANAGER = "manager"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return _TENANT_ROLE_RANK[self]


_TENANT_ROLE_RANK = {
    TenantRole.USER: 0,
    TenantRole.MANAGER: 1,
    TenantRole.ADMIN: 2,
}


class TenantUser(SQLModel, table=True):
    """Employee identity scoped to exactly one tenant"""

    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(max_length=255, unique=True, index=True, nullable=False)
    password_hash: str = Field(nullable=False)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    employee_id: Optional[str] = Field(default=None, max_length=50, unique=True)
    department: Optional[str] = Field(default=None, max_length=100)
    designation: Optional[str] = Field(default=None, max_length=100)
    role: str = Field(
        default=TenantRole.USER.value,
        sa_column=Column(String(20), nullable=False),
    )
    is_active: bool = Field(default=True, nullable=False)
    tenant_id: int = Field(index=True, nullable=False, description="Owning tenant")

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def display_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)
