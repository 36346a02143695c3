"""
Platform user administration API endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, status
import structlog

from bizsuite.core.dependencies import get_platform_store, get_super_admin
from bizsuite.repositories.platform import PlatformStore
from bizsuite.schemas.platform import PlatformUserResponse
from bizsuite.services.identity import AuthContext

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.put("/{user_id}/deactivate", response_model=PlatformUserResponse)
async def deactivate_platform_user(
    user_id: int,
    context: AuthContext = Depends(get_super_admin),
    store: PlatformStore = Depends(get_platform_store),
):
    """Deactivate a platform user; accounts are never deleted"""
    if user_id == context.principal.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot deactivate your own account"
        )

    user = await store.update_platform_user(user_id, {"is_active": False})
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    logger.info(f"Platform user deactivated: {user_id} by {context.principal.id}")
    return user
