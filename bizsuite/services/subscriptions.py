"""
Subscription lifecycle for tenants

Every transition calls the billing provider first and writes the tenant
record only after the provider succeeded. A failure on the provider side
leaves the stored subscription exactly as it was.

The write is conditional on the provider subscription the tenant tracked
when the transition started; a transition that loses a race releases what
it created and fails with RecordConflict.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

import structlog

from bizsuite.core.exceptions import BillingUnavailable, CoreError, RecordConflict, TenantNotFound
from bizsuite.models.platform import SubscriptionPlan, SubscriptionStatus, Tenant
from bizsuite.repositories.platform import PlatformStore
from bizsuite.services.billing import BillingProvider, PlanPrice

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Payer:
    """Who is billed when a tenant moves to a paid plan"""
    email: str
    name: str


@dataclass(frozen=True)
class SubscriptionState:
    plan: SubscriptionPlan
    status: SubscriptionStatus
    ends_at: Optional[datetime]
    customer_ref: Optional[str]
    subscription_ref: Optional[str]


@dataclass(frozen=True)
class SubscriptionChange:
    """
    Outcome of a transition.

    pending_cancellation holds a superseded provider subscription that could
    not be cancelled and has been logged for reconciliation.
    """
    tenant: Tenant
    changed: bool = True
    pending_cancellation: Optional[str] = None


class SubscriptionManager:
    """Drives tenant subscriptions in step with the billing provider"""

    def __init__(
        self,
        store: PlatformStore,
        billing: Optional[BillingProvider],
        prices: Dict[str, PlanPrice],
        period: timedelta = timedelta(days=30),
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self._store = store
        self._billing = billing
        self._prices = prices
        self._period = period
        self._clock = clock

    @staticmethod
    def get_status(tenant: Tenant) -> SubscriptionState:
        return SubscriptionState(
            plan=SubscriptionPlan(tenant.subscription_plan),
            status=SubscriptionStatus(tenant.subscription_status),
            ends_at=tenant.subscription_ends_at,
            customer_ref=tenant.billing_customer_ref,
            subscription_ref=tenant.billing_subscription_ref,
        )

    async def upgrade(self, tenant: Tenant, plan: SubscriptionPlan, payer: Payer) -> SubscriptionChange:
        """
        Move a tenant to ``plan``.

        Args:
            tenant: Tenant as currently stored
            plan: Target plan; FREE drops any provider subscription
            payer: Billing contact used when a provider customer must be created

        Returns:
            SubscriptionChange with the stored tenant after the write
        """
        if not plan.is_paid:
            if tenant.billing_subscription_ref:
                await self._provider().cancel_subscription(tenant.billing_subscription_ref)
            fields = {
                "subscription_plan": SubscriptionPlan.FREE.value,
                "subscription_status": SubscriptionStatus.ACTIVE.value,
                "billing_subscription_ref": None,
                "subscription_ends_at": None,
            }
            updated = await self._commit(tenant, fields, "downgrade")
            logger.info(f"Tenant {tenant.subdomain} moved to free plan")
            return SubscriptionChange(tenant=updated)

        billing = self._provider()
        price = self._prices[plan.value]

        customer_ref = tenant.billing_customer_ref
        new_customer = not customer_ref
        if new_customer:
            customer_ref = await billing.create_customer(
                payer.email,
                payer.name,
                {"tenant_id": str(tenant.id), "subdomain": tenant.subdomain},
            )

        try:
            subscription = await billing.create_subscription(customer_ref, price)
        except BillingUnavailable as e:
            if new_customer:
                self._orphaned_customer(tenant, customer_ref, e.message)
            raise
        superseded = tenant.billing_subscription_ref

        fields = {
            "subscription_plan": plan.value,
            "subscription_status": SubscriptionStatus.ACTIVE.value,
            "billing_customer_ref": customer_ref,
            "billing_subscription_ref": subscription.ref,
            "subscription_ends_at": self._clock() + self._period,
        }
        try:
            updated = await self._commit(tenant, fields, "upgrade", created_ref=subscription.ref)
        except RecordConflict as e:
            if new_customer:
                self._orphaned_customer(tenant, customer_ref, e.message)
            raise
        logger.info(f"Tenant {tenant.subdomain} upgraded to {plan.value}: {subscription.ref}")

        pending = None
        if superseded and superseded != subscription.ref:
            try:
                await billing.cancel_subscription(superseded)
            except BillingUnavailable as e:
                logger.error(
                    "Reconciliation required",
                    reconciliation=True,
                    tenant_id=tenant.id,
                    action="cancel_superseded_subscription",
                    subscription_ref=superseded,
                    error=e.message,
                )
                pending = superseded

        return SubscriptionChange(tenant=updated, pending_cancellation=pending)

    async def cancel(self, tenant: Tenant) -> SubscriptionChange:
        """Cancel the tenant's subscription; cancelling twice is a no-op"""
        ref = tenant.billing_subscription_ref
        if tenant.subscription_status == SubscriptionStatus.CANCELLED.value and not ref:
            logger.info(f"Tenant {tenant.subdomain} subscription already cancelled")
            return SubscriptionChange(tenant=tenant, changed=False)

        if ref:
            await self._provider().cancel_subscription(ref)

        fields = {
            "subscription_plan": SubscriptionPlan.FREE.value,
            "subscription_status": SubscriptionStatus.CANCELLED.value,
            "billing_subscription_ref": None,
            "subscription_ends_at": None,
        }
        updated = await self._commit(tenant, fields, "cancel")
        logger.info(f"Tenant {tenant.subdomain} subscription cancelled")
        return SubscriptionChange(tenant=updated)

    def _provider(self) -> BillingProvider:
        if self._billing is None:
            raise BillingUnavailable("No billing provider configured")
        return self._billing

    async def _commit(
        self,
        tenant: Tenant,
        fields: Dict[str, Any],
        action: str,
        created_ref: Optional[str] = None,
    ) -> Tenant:
        """
        Write subscription fields after the provider side already succeeded.

        The write only lands if the tenant still tracks the subscription it
        had when the transition started. When another request got there
        first, the subscription created by this one is released again and
        RecordConflict propagates.
        """
        try:
            updated = await self._store.update_tenant_subscription(
                tenant.id, fields, expected_ref=tenant.billing_subscription_ref
            )
        except RecordConflict:
            logger.warning(f"Concurrent subscription change on tenant {tenant.subdomain} during {action}")
            if created_ref:
                await self._release(tenant, created_ref)
            raise
        except CoreError as e:
            logger.error(
                "Reconciliation required",
                reconciliation=True,
                tenant_id=tenant.id,
                action=action,
                fields={key: str(value) for key, value in fields.items()},
                error=e.message,
            )
            raise

        if updated is None:
            logger.error(
                "Reconciliation required",
                reconciliation=True,
                tenant_id=tenant.id,
                action=action,
                error="tenant disappeared before write",
            )
            raise TenantNotFound(f"Tenant {tenant.id} vanished during {action}")
        return updated

    @staticmethod
    def _orphaned_customer(tenant: Tenant, customer_ref: str, error: str) -> None:
        logger.error(
            "Reconciliation required",
            reconciliation=True,
            tenant_id=tenant.id,
            action="orphaned_customer",
            customer_ref=customer_ref,
            error=error,
        )

    async def _release(self, tenant: Tenant, subscription_ref: str) -> None:
        """Cancel a provider subscription no tenant record points at"""
        try:
            await self._provider().cancel_subscription(subscription_ref)
        except BillingUnavailable as e:
            logger.error(
                "Reconciliation required",
                reconciliation=True,
                tenant_id=tenant.id,
                action="cancel_untracked_subscription",
                subscription_ref=subscription_ref,
                error=e.message,
            )
        else:
            logger.info(f"Released untracked subscription {subscription_ref} of tenant {tenant.subdomain}")
