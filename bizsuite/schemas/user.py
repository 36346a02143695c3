"""
Pydantic schemas for tenant users
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from bizsuite.models.tenant_user import TenantRole


class TenantUserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=100)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    employee_id: Optional[str] = Field(default=None, max_length=50)
    department: Optional[str] = Field(default=None, max_length=100)
    designation: Optional[str] = Field(default=None, max_length=100)
    role: TenantRole = Field(default=TenantRole.USER)


class TenantUserUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    department: Optional[str] = Field(default=None, max_length=100)
    designation: Optional[str] = Field(default=None, max_length=100)
    role: Optional[TenantRole] = None
    is_active: Optional[bool] = None
    password: Optional[str] = Field(default=None, min_length=8, max_length=100)


class TenantUserResponse(BaseModel):
    """Tenant user response model"""
    id: int
    email: str
    first_name: Optional[str]
    last_name: Optional[str]
    employee_id: Optional[str]
    department: Optional[str]
    designation: Optional[str]
    role: TenantRole
    is_active: bool
    tenant_id: int
    created_at: datetime

    class Config:
        from_attributes = True
