"""
Unit tests for the subscription lifecycle
"""

import asyncio
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from structlog.testing import capture_logs

from bizsuite.core.exceptions import BillingError, BillingUnavailable, RecordConflict, StoreUnavailable
from bizsuite.models.platform import SubscriptionPlan, SubscriptionStatus, Tenant
from bizsuite.services.billing import PlanPrice
from bizsuite.services.subscriptions import Payer, SubscriptionManager

NOW = datetime(2026, 3, 1, 12, 0, 0)
PAYER = Payer(email="admin70@example.com", name="Admin Tester")
PRICES = {
    "standard": PlanPrice("standard", Decimal("15.00"), "USD"),
    "enterprise": PlanPrice("enterprise", Decimal("5.00"), "USD"),
}


@pytest.fixture
def manager(platform_store, billing):
    return SubscriptionManager(platform_store, billing, PRICES, period=timedelta(days=30), clock=lambda: NOW)


async def acme(platform_store):
    return await platform_store.get_tenant(7)


def reconciliation_items(logs, action):
    return [entry for entry in logs if entry.get("reconciliation") and entry["action"] == action]


class TestUpgrade:

    @pytest.mark.asyncio
    async def test_free_to_standard(self, manager, platform_store, billing):
        """Creates the customer, then the subscription, then writes the tenant"""
        change = await manager.upgrade(await acme(platform_store), SubscriptionPlan.STANDARD, PAYER)

        assert billing.methods_called() == ["create_customer", "create_subscription"]
        _, email, _, metadata = billing.calls[0]
        assert email == PAYER.email
        assert metadata == {"tenant_id": "7", "subdomain": "acme"}
        assert billing.calls[1][2].amount == Decimal("15.00")

        tenant = change.tenant
        assert tenant.subscription_plan == "standard"
        assert tenant.subscription_status == "active"
        assert tenant.billing_customer_ref == "cus_1"
        assert tenant.billing_subscription_ref == "sub_2"
        assert tenant.subscription_ends_at == NOW + timedelta(days=30)
        assert change.pending_cancellation is None

    @pytest.mark.asyncio
    async def test_existing_customer_is_reused(self, manager, platform_store, billing):
        await platform_store.update_tenant(7, {"billing_customer_ref": "cus_existing"})

        change = await manager.upgrade(await acme(platform_store), SubscriptionPlan.ENTERPRISE, PAYER)

        assert billing.methods_called() == ["create_subscription"]
        assert billing.calls[0][1] == "cus_existing"
        assert change.tenant.subscription_plan == "enterprise"

    @pytest.mark.asyncio
    async def test_billing_failure_leaves_tenant_unchanged(self, manager, platform_store, billing):
        """Provider rejects the subscription; the stored row is untouched"""
        billing.fail_on["create_subscription"] = BillingError("card declined", provider_status=400)
        before = dict(platform_store.tenants[7])

        with pytest.raises(BillingError):
            await manager.upgrade(await acme(platform_store), SubscriptionPlan.STANDARD, PAYER)

        assert platform_store.tenants[7] == before
        assert platform_store.subscription_writes == []

    @pytest.mark.asyncio
    async def test_customer_creation_failure_leaves_tenant_unchanged(self, manager, platform_store, billing, billing_down):
        billing.fail_on["create_customer"] = billing_down
        before = dict(platform_store.tenants[7])

        with pytest.raises(BillingUnavailable):
            await manager.upgrade(await acme(platform_store), SubscriptionPlan.STANDARD, PAYER)

        assert platform_store.tenants[7] == before
        assert "create_subscription" not in billing.methods_called()

    @pytest.mark.asyncio
    async def test_orphaned_customer_is_logged(self, manager, platform_store, billing, billing_down):
        """A customer created for a subscription that failed is queued for reconciliation"""
        billing.fail_on["create_subscription"] = billing_down

        with capture_logs() as logs:
            with pytest.raises(BillingUnavailable):
                await manager.upgrade(await acme(platform_store), SubscriptionPlan.STANDARD, PAYER)

        items = reconciliation_items(logs, "orphaned_customer")
        assert len(items) == 1
        assert items[0]["customer_ref"] == "cus_1"
        assert items[0]["log_level"] == "error"
        assert platform_store.tenants[7]["billing_customer_ref"] is None

    @pytest.mark.asyncio
    async def test_existing_customer_is_not_reported_on_failure(self, manager, platform_store, billing, billing_down):
        await platform_store.update_tenant(7, {"billing_customer_ref": "cus_existing"})
        billing.fail_on["create_subscription"] = billing_down

        with capture_logs() as logs:
            with pytest.raises(BillingUnavailable):
                await manager.upgrade(await acme(platform_store), SubscriptionPlan.STANDARD, PAYER)

        assert reconciliation_items(logs, "orphaned_customer") == []

    @pytest.mark.asyncio
    async def test_paid_to_paid_cancels_superseded_subscription(self, manager, platform_store, billing):
        await platform_store.update_tenant(7, {
            "subscription_plan": "standard",
            "billing_customer_ref": "cus_existing",
            "billing_subscription_ref": "sub_old",
        })

        change = await manager.upgrade(await acme(platform_store), SubscriptionPlan.ENTERPRISE, PAYER)

        assert billing.methods_called() == ["create_subscription", "cancel_subscription"]
        assert billing.calls[1] == ("cancel_subscription", "sub_old")
        assert change.tenant.billing_subscription_ref != "sub_old"
        assert change.pending_cancellation is None

    @pytest.mark.asyncio
    async def test_superseded_cancel_failure_is_reported(self, manager, platform_store, billing, billing_down):
        await platform_store.update_tenant(7, {
            "subscription_plan": "standard",
            "billing_customer_ref": "cus_existing",
            "billing_subscription_ref": "sub_old",
        })
        billing.fail_on["cancel_subscription"] = billing_down

        change = await manager.upgrade(await acme(platform_store), SubscriptionPlan.ENTERPRISE, PAYER)

        assert change.tenant.subscription_plan == "enterprise"
        assert change.pending_cancellation == "sub_old"

    @pytest.mark.asyncio
    async def test_local_write_failure_after_billing_is_raised(self, manager, platform_store, billing):
        platform_store.fail_subscription_writes = StoreUnavailable("platform store down")

        with pytest.raises(StoreUnavailable):
            await manager.upgrade(await acme(platform_store), SubscriptionPlan.STANDARD, PAYER)

        assert billing.methods_called() == ["create_customer", "create_subscription"]
        assert platform_store.tenants[7]["subscription_plan"] == "free"

    @pytest.mark.asyncio
    async def test_downgrade_to_free_cancels_external(self, manager, platform_store, billing):
        await platform_store.update_tenant(7, {
            "subscription_plan": "standard",
            "billing_subscription_ref": "sub_live",
            "subscription_ends_at": NOW,
        })

        change = await manager.upgrade(await acme(platform_store), SubscriptionPlan.FREE, PAYER)

        assert billing.calls == [("cancel_subscription", "sub_live")]
        assert change.tenant.subscription_plan == "free"
        assert change.tenant.subscription_status == "active"
        assert change.tenant.billing_subscription_ref is None
        assert change.tenant.subscription_ends_at is None

    @pytest.mark.asyncio
    async def test_free_to_free_makes_no_provider_call(self, manager, platform_store, billing):
        change = await manager.upgrade(await acme(platform_store), SubscriptionPlan.FREE, PAYER)

        assert billing.calls == []
        assert change.tenant.subscription_plan == "free"

    @pytest.mark.asyncio
    async def test_paid_plan_without_provider(self, platform_store):
        manager = SubscriptionManager(platform_store, None, PRICES)

        with pytest.raises(BillingUnavailable):
            await manager.upgrade(await acme(platform_store), SubscriptionPlan.STANDARD, PAYER)
        assert platform_store.subscription_writes == []


class TestCancel:

    @pytest.mark.asyncio
    async def test_cancel_paid_subscription(self, manager, platform_store, billing):
        await platform_store.update_tenant(7, {
            "subscription_plan": "enterprise",
            "billing_customer_ref": "cus_existing",
            "billing_subscription_ref": "sub_live",
            "subscription_ends_at": NOW,
        })

        change = await manager.cancel(await acme(platform_store))

        assert billing.calls == [("cancel_subscription", "sub_live")]
        tenant = change.tenant
        assert tenant.subscription_plan == "free"
        assert tenant.subscription_status == "cancelled"
        assert tenant.billing_subscription_ref is None
        assert tenant.subscription_ends_at is None
        assert tenant.billing_customer_ref == "cus_existing"

    @pytest.mark.asyncio
    async def test_second_cancel_is_a_no_op(self, manager, platform_store, billing):
        await platform_store.update_tenant(7, {"subscription_plan": "standard", "billing_subscription_ref": "sub_live"})

        await manager.cancel(await acme(platform_store))
        writes = len(platform_store.subscription_writes)
        second = await manager.cancel(await acme(platform_store))

        assert billing.methods_called() == ["cancel_subscription"]
        assert len(platform_store.subscription_writes) == writes
        assert second.changed is False

    @pytest.mark.asyncio
    async def test_cancel_failure_leaves_tenant_unchanged(self, manager, platform_store, billing, billing_down):
        await platform_store.update_tenant(7, {"subscription_plan": "standard", "billing_subscription_ref": "sub_live"})
        billing.fail_on["cancel_subscription"] = billing_down
        before = dict(platform_store.tenants[7])

        with pytest.raises(BillingUnavailable):
            await manager.cancel(await acme(platform_store))

        assert platform_store.tenants[7] == before

    @pytest.mark.asyncio
    async def test_cancel_free_tenant_needs_no_provider(self, platform_store):
        manager = SubscriptionManager(platform_store, None, PRICES)

        change = await manager.cancel(await acme(platform_store))

        assert change.tenant.subscription_status == "cancelled"


class TestConcurrentChanges:
    """Only one of several racing transitions lands; the rest release what they created"""

    @pytest.mark.asyncio
    async def test_concurrent_upgrades_leave_one_live_subscription(self, manager, platform_store, billing):
        billing.delay = 0.01
        tenant = await acme(platform_store)

        results = await asyncio.gather(
            manager.upgrade(tenant, SubscriptionPlan.STANDARD, PAYER),
            manager.upgrade(tenant, SubscriptionPlan.STANDARD, PAYER),
            return_exceptions=True,
        )

        conflicts = [result for result in results if isinstance(result, RecordConflict)]
        changes = [result for result in results if not isinstance(result, Exception)]
        assert len(conflicts) == 1
        assert len(changes) == 1
        assert conflicts[0].status_code == 409

        stored_ref = platform_store.tenants[7]["billing_subscription_ref"]
        assert stored_ref == changes[0].tenant.billing_subscription_ref

        created = billing.methods_called().count("create_subscription")
        cancelled = [call[1] for call in billing.calls if call[0] == "cancel_subscription"]
        assert created == 2
        assert len(cancelled) == 1
        assert stored_ref not in cancelled

    @pytest.mark.asyncio
    async def test_lost_race_with_unreachable_provider_is_logged(self, manager, platform_store, billing, billing_down):
        stale = await acme(platform_store)
        await platform_store.update_tenant(7, {
            "subscription_plan": "enterprise",
            "billing_customer_ref": "cus_other",
            "billing_subscription_ref": "sub_other",
        })
        billing.fail_on["cancel_subscription"] = billing_down

        with capture_logs() as logs:
            with pytest.raises(RecordConflict):
                await manager.upgrade(stale, SubscriptionPlan.STANDARD, PAYER)

        untracked = reconciliation_items(logs, "cancel_untracked_subscription")
        assert [item["subscription_ref"] for item in untracked] == ["sub_2"]
        assert [item["customer_ref"] for item in reconciliation_items(logs, "orphaned_customer")] == ["cus_1"]
        assert platform_store.tenants[7]["billing_subscription_ref"] == "sub_other"

    @pytest.mark.asyncio
    async def test_cancel_does_not_clear_a_newer_subscription(self, manager, platform_store, billing):
        await platform_store.update_tenant(7, {
            "subscription_plan": "standard",
            "billing_customer_ref": "cus_existing",
            "billing_subscription_ref": "sub_live",
        })
        stale = await acme(platform_store)
        upgraded = await manager.upgrade(await acme(platform_store), SubscriptionPlan.ENTERPRISE, PAYER)

        with pytest.raises(RecordConflict):
            await manager.cancel(stale)

        new_ref = upgraded.tenant.billing_subscription_ref
        assert platform_store.tenants[7]["billing_subscription_ref"] == new_ref
        assert platform_store.tenants[7]["subscription_plan"] == "enterprise"
        assert ("cancel_subscription", new_ref) not in billing.calls


def test_get_status_projects_stored_fields(platform_store):
    tenant = platform_store.add_tenant(
        Tenant(
            id=20, name="Hooli", subdomain="hooli", subscription_plan="standard",
            billing_subscription_ref="sub_9", subscription_ends_at=NOW,
        )
    )
    state = SubscriptionManager.get_status(tenant)

    assert state.plan is SubscriptionPlan.STANDARD
    assert state.status is SubscriptionStatus.ACTIVE
    assert state.ends_at == NOW
    assert state.subscription_ref == "sub_9"
