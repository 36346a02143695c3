"""
Platform authentication API endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, Response, status
import structlog

from bizsuite.api.cookies import clear_session_cookie, set_session_cookie
from bizsuite.core.auth import check_credentials, create_access_token, hash_password_async
from bizsuite.core.config import get_settings
from bizsuite.core.dependencies import get_platform_admin, get_platform_store, get_super_admin
from bizsuite.core.exceptions import InactivePrincipal, InvalidCredentials
from bizsuite.core.permissions import Domain
from bizsuite.models.platform import PlatformUser
from bizsuite.repositories.platform import PlatformStore
from bizsuite.schemas.platform import PlatformUserCreate, PlatformUserResponse
from bizsuite.schemas.token import LoginRequest, TokenResponse
from bizsuite.services.identity import AuthContext

logger = structlog.get_logger(__name__)
router = APIRouter()
settings = get_settings()


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    response: Response,
    store: PlatformStore = Depends(get_platform_store),
):
    """Login platform user"""
    user = await store.get_platform_user_by_email(login_data.email.lower())

    digest = user.password_hash if user else None
    if not await check_credentials(login_data.password, digest):
        logger.warning("Platform login failed", security_event=True, email=login_data.email)
        raise InvalidCredentials(f"Bad platform credentials for {login_data.email}")

    if not user.is_active:
        raise InactivePrincipal(f"Platform user {user.id} is inactive")

    access_token = create_access_token(
        principal_id=user.id,
        domain=Domain.PLATFORM.value,
        role=user.role,
    )
    set_session_cookie(response, settings.PLATFORM_TOKEN_COOKIE, access_token)

    logger.info(f"Platform user logged in: {user.id}")

    return TokenResponse(
        access_token=access_token,
        user=PlatformUserResponse.model_validate(user).model_dump(mode="json"),
    )


@router.post("/register", response_model=PlatformUserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: PlatformUserCreate,
    context: AuthContext = Depends(get_super_admin),
    store: PlatformStore = Depends(get_platform_store),
):
    """Register a new platform user (super admin only)"""
    email = user_data.email.lower()
    if await store.get_platform_user_by_email(email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    new_user = PlatformUser(
        email=email,
        password_hash=await hash_password_async(user_data.password),
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        role=user_data.role.value,
        is_active=True,
    )
    new_user = await store.create_platform_user(new_user)

    logger.info(f"Platform user registered: {new_user.id} by {context.principal.id}")
    return new_user


@router.get("/me", response_model=PlatformUserResponse)
async def get_current_user_info(context: AuthContext = Depends(get_platform_admin)):
    """Get current platform user info"""
    return context.principal


@router.post("/logout")
async def logout(response: Response):
    """Clear the platform session cookie"""
    clear_session_cookie(response, settings.PLATFORM_TOKEN_COOKIE)
    return {"message": "Logged out successfully"}
