"""
Tenant user management API endpoints (manager or above)
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
import structlog

from bizsuite.core.auth import hash_password_async
from bizsuite.core.dependencies import get_tenant_manager
from bizsuite.core.exceptions import InsufficientRole
from bizsuite.core.permissions import can_assign_tenant_role
from bizsuite.models.tenant_user import TenantRole, TenantUser
from bizsuite.schemas.user import TenantUserCreate, TenantUserResponse, TenantUserUpdate
from bizsuite.services.identity import AuthContext

logger = structlog.get_logger(__name__)
router = APIRouter()


async def _get_tenant_user_or_404(context: AuthContext, user_id: int) -> TenantUser:
    user = await context.tenant_store.get_user(user_id)
    if not user or user.tenant_id != context.tenant.id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user


def _check_can_manage(context: AuthContext, target: TenantUser) -> None:
    if not can_assign_tenant_role(context.role, TenantRole(target.role)):
        raise InsufficientRole(f"{context.role.value} cannot manage {target.role} user {target.id}")


@router.get("", response_model=List[TenantUserResponse])
async def list_users(context: AuthContext = Depends(get_tenant_manager)):
    """List users of the tenant"""
    return await context.tenant_store.list_users(context.tenant.id)


@router.post("", response_model=TenantUserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: TenantUserCreate,
    context: AuthContext = Depends(get_tenant_manager),
):
    """Create a tenant user within the tenant's seat limit"""
    store = context.tenant_store
    tenant = context.tenant

    if not can_assign_tenant_role(context.role, user_data.role):
        raise InsufficientRole(f"{context.role.value} cannot create {user_data.role.value} users")

    email = user_data.email.lower()
    if await store.get_user_by_email(email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    new_user = TenantUser(
        email=email,
        password_hash=await hash_password_async(user_data.password),
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        employee_id=user_data.employee_id,
        department=user_data.department,
        designation=user_data.designation,
        role=user_data.role.value,
        is_active=True,
        tenant_id=tenant.id,
    )
    new_user = await store.create_user(new_user, max_users=tenant.max_users)

    logger.info(f"Tenant user created: {new_user.id} on {tenant.subdomain} by {context.principal.id}")
    return new_user


@router.put("/{user_id}", response_model=TenantUserResponse)
async def update_user(
    user_id: int,
    user_update: TenantUserUpdate,
    context: AuthContext = Depends(get_tenant_manager),
):
    """Update a tenant user"""
    user = await _get_tenant_user_or_404(context, user_id)
    _check_can_manage(context, user)

    fields = {key: value for key, value in user_update.model_dump(exclude_unset=True).items() if value is not None}
    if "role" in fields:
        if not can_assign_tenant_role(context.role, fields["role"]):
            raise InsufficientRole(f"{context.role.value} cannot grant {fields['role'].value}")
        fields["role"] = fields["role"].value
    if "password" in fields:
        fields["password_hash"] = await hash_password_async(fields.pop("password"))

    user = await context.tenant_store.update_user(user_id, fields)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    logger.info(f"Tenant user updated: {user_id} fields={sorted(fields)}")
    return user


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    context: AuthContext = Depends(get_tenant_manager),
):
    """Delete a tenant user"""
    if user_id == context.principal.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete your own account"
        )

    user = await _get_tenant_user_or_404(context, user_id)
    _check_can_manage(context, user)

    await context.tenant_store.delete_user(user_id)

    logger.info(f"Tenant user deleted: {user_id} on {context.tenant.subdomain}")
    return {"message": "User deleted successfully"}
