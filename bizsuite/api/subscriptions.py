"""
Tenant subscription API endpoints
"""

from fastapi import APIRouter, Depends
import structlog

from bizsuite.core.dependencies import get_subscription_manager, get_tenant_admin, get_tenant_user
from bizsuite.models.platform import Tenant
from bizsuite.schemas.subscription import (
    SubscriptionChangeResponse,
    SubscriptionResponse,
    SubscriptionUpgrade,
)
from bizsuite.services.identity import AuthContext
from bizsuite.services.subscriptions import Payer, SubscriptionChange, SubscriptionManager

logger = structlog.get_logger(__name__)
router = APIRouter()


def _subscription_response(tenant: Tenant) -> SubscriptionResponse:
    state = SubscriptionManager.get_status(tenant)
    return SubscriptionResponse(
        plan=state.plan,
        status=state.status,
        ends_at=state.ends_at,
        has_billing_subscription=state.subscription_ref is not None,
    )


def _change_response(change: SubscriptionChange) -> SubscriptionChangeResponse:
    return SubscriptionChangeResponse(
        subscription=_subscription_response(change.tenant),
        changed=change.changed,
        pending_cancellation=change.pending_cancellation is not None,
    )


@router.get("", response_model=SubscriptionResponse)
async def get_subscription(context: AuthContext = Depends(get_tenant_user)):
    """Current subscription of the tenant"""
    return _subscription_response(context.tenant)


@router.post("/upgrade", response_model=SubscriptionChangeResponse)
async def upgrade_subscription(
    upgrade: SubscriptionUpgrade,
    context: AuthContext = Depends(get_tenant_admin),
    manager: SubscriptionManager = Depends(get_subscription_manager),
):
    """Change the tenant's plan (admin only)"""
    payer = Payer(
        email=context.principal.email,
        name=context.principal.display_name or context.tenant.name,
    )
    change = await manager.upgrade(context.tenant, upgrade.plan, payer)
    return _change_response(change)


@router.post("/cancel", response_model=SubscriptionChangeResponse)
async def cancel_subscription(
    context: AuthContext = Depends(get_tenant_admin),
    manager: SubscriptionManager = Depends(get_subscription_manager),
):
    """Cancel the tenant's subscription (admin only)"""
    change = await manager.cancel(context.tenant)
    return _change_response(change)
