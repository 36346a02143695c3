"""
Tenant user authentication API endpoints
"""

from fastapi import APIRouter, Depends, Response
import structlog

from bizsuite.api.cookies import clear_session_cookie, set_session_cookie
from bizsuite.core.auth import check_credentials, create_access_token
from bizsuite.core.config import get_settings
from bizsuite.core.dependencies import get_tenant_connector, get_tenant_resolver, get_tenant_user
from bizsuite.core.exceptions import InactivePrincipal, InvalidCredentials
from bizsuite.core.permissions import Domain
from bizsuite.schemas.token import LoginRequest, TokenResponse
from bizsuite.schemas.user import TenantUserResponse
from bizsuite.services.identity import AuthContext, TenantConnector
from bizsuite.services.tenant_resolver import TenantResolver

logger = structlog.get_logger(__name__)
router = APIRouter()
settings = get_settings()


@router.post("/login", response_model=TokenResponse)
async def login(
    subdomain: str,
    login_data: LoginRequest,
    response: Response,
    resolver: TenantResolver = Depends(get_tenant_resolver),
    connector: TenantConnector = Depends(get_tenant_connector),
):
    """Login tenant user against the tenant's own store"""
    tenant = resolver.require_active(await resolver.resolve(subdomain))
    _, store = await connector.open(tenant)

    user = await store.get_user_by_email(login_data.email.lower())
    digest = user.password_hash if user and user.tenant_id == tenant.id else None
    if not await check_credentials(login_data.password, digest):
        logger.warning(
            "Tenant login failed",
            security_event=True,
            tenant=tenant.subdomain,
            email=login_data.email,
        )
        raise InvalidCredentials(f"Bad credentials for {login_data.email} on {tenant.subdomain}")

    if not user.is_active:
        raise InactivePrincipal(f"Tenant user {user.id} is inactive")

    access_token = create_access_token(
        principal_id=user.id,
        domain=Domain.TENANT.value,
        role=user.role,
        tenant_id=tenant.id,
    )
    set_session_cookie(response, settings.TENANT_TOKEN_COOKIE, access_token)

    logger.info(f"Tenant user logged in: {user.id} on {tenant.subdomain}")

    return TokenResponse(
        access_token=access_token,
        user=TenantUserResponse.model_validate(user).model_dump(mode="json"),
    )


@router.get("/me")
async def get_current_user_info(context: AuthContext = Depends(get_tenant_user)):
    """Get current tenant user with their tenant"""
    tenant = context.tenant
    return {
        "user": TenantUserResponse.model_validate(context.principal).model_dump(mode="json"),
        "tenant": {
            "id": tenant.id,
            "name": tenant.name,
            "subdomain": tenant.subdomain,
            "subscription_plan": tenant.subscription_plan,
        },
    }


@router.post("/logout")
async def logout(response: Response):
    """Clear the tenant session cookie"""
    clear_session_cookie(response, settings.TENANT_TOKEN_COOKIE)
    return {"message": "Logged out successfully"}
