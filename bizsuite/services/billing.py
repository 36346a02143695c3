"""
Billing provider integration
Recurring tenant subscriptions through Mercado Pago preapprovals
"""

import asyncio
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Protocol

import mercadopago
import structlog

from bizsuite.core.config import Settings
from bizsuite.core.exceptions import BillingError, BillingUnavailable
from bizsuite.models.platform import SubscriptionPlan

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PlanPrice:
    """Monthly price of a paid plan"""
    plan: str
    amount: Decimal
    currency: str
    period_months: int = 1


@dataclass(frozen=True)
class BillingSubscription:
    ref: str
    status: str


class BillingProvider(Protocol):
    """External billing contract used by the subscription manager"""

    async def create_customer(self, email: str, name: str, metadata: Dict[str, str]) -> str: ...

    async def create_subscription(self, customer_ref: str, price: PlanPrice) -> BillingSubscription: ...

    async def cancel_subscription(self, subscription_ref: str) -> None: ...


class MercadoPagoBillingProvider:
    """Mercado Pago implementation of BillingProvider"""

    def __init__(self, settings: Settings, sdk: Optional[Any] = None):
        """
        Initialize the Mercado Pago provider

        Args:
            settings: Application settings (access token, timeout, back URL)
            sdk: Preconfigured SDK instance, built from the access token when omitted
        """
        if sdk is None:
            if not settings.MERCADOPAGO_ACCESS_TOKEN:
                raise ValueError("MERCADOPAGO_ACCESS_TOKEN is required")
            sdk = mercadopago.SDK(settings.MERCADOPAGO_ACCESS_TOKEN)

        self.sdk = sdk
        self.timeout = settings.BILLING_TIMEOUT_SECONDS
        self.back_url = settings.BILLING_BACK_URL

    async def create_customer(self, email: str, name: str, metadata: Dict[str, str]) -> str:
        """
        Create a Mercado Pago customer for a tenant

        Customers carry no free-form metadata, so the tenant reference is
        folded into the description.

        Returns:
            Customer id
        """
        first_name, _, last_name = name.partition(" ")
        customer_data = {
            "email": email,
            "first_name": first_name,
            "last_name": last_name,
            "description": " ".join(f"{key}={value}" for key, value in sorted(metadata.items())),
        }
        response = await self._call("create_customer", lambda: self.sdk.customer().create(customer_data))
        customer_id = str(response["id"])
        logger.info(f"Billing customer created: {customer_id}", **metadata)
        return customer_id

    async def create_subscription(self, customer_ref: str, price: PlanPrice) -> BillingSubscription:
        """
        Create a monthly recurring preapproval for the customer

        Args:
            customer_ref: Customer id returned by create_customer
            price: Plan price to charge every period

        Returns:
            BillingSubscription with the preapproval id
        """
        customer = await self._call("get_customer", lambda: self.sdk.customer().get(customer_ref))

        preapproval_data = {
            "reason": f"{price.plan.capitalize()} plan",
            "external_reference": customer_ref,
            "payer_email": customer.get("email"),
            "back_url": self.back_url,
            "status": "authorized",
            "auto_recurring": {
                "frequency": price.period_months,
                "frequency_type": "months",
                "transaction_amount": float(price.amount),
                "currency_id": price.currency,
            },
        }
        response = await self._call("create_subscription", lambda: self.sdk.preapproval().create(preapproval_data))

        subscription = BillingSubscription(ref=str(response["id"]), status=response.get("status", "authorized"))
        logger.info(f"Billing subscription created: {subscription.ref} ({price.plan})")
        return subscription

    async def cancel_subscription(self, subscription_ref: str) -> None:
        await self._call(
            "cancel_subscription",
            lambda: self.sdk.preapproval().update(subscription_ref, {"status": "cancelled"}),
        )
        logger.info(f"Billing subscription cancelled: {subscription_ref}")

    async def _call(self, operation: str, request: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
        """Run a blocking SDK request in a worker thread under the billing timeout"""
        try:
            result = await asyncio.wait_for(asyncio.to_thread(request), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Mercado Pago {operation} timed out after {self.timeout}s")
            raise BillingUnavailable(f"{operation} timed out") from e
        except (OSError, ValueError) as e:
            logger.error(f"Mercado Pago {operation} failed: {e}")
            raise BillingUnavailable(f"{operation} failed: {e}") from e

        status_code = result.get("status", 0)
        if not 200 <= status_code < 300:
            error = result.get("response", {})
            logger.error(f"Mercado Pago {operation} rejected: {status_code} {error}")
            raise BillingError(f"{operation} rejected: {error}", provider_status=status_code)
        return result["response"]


def plan_prices(settings: Settings) -> Dict[str, PlanPrice]:
    """Configured prices of the paid plans, keyed by plan value"""
    amounts = {
        SubscriptionPlan.STANDARD: settings.STANDARD_PLAN_PRICE,
        SubscriptionPlan.ENTERPRISE: settings.ENTERPRISE_PLAN_PRICE,
    }
    return {
        plan.value: PlanPrice(plan.value, amount, settings.BILLING_CURRENCY)
        for plan, amount in amounts.items()
    }


def create_billing_provider(settings: Settings) -> Optional[BillingProvider]:
    """Build the configured provider; None when no access token is set"""
    if not settings.MERCADOPAGO_ACCESS_TOKEN:
        logger.warning("MERCADOPAGO_ACCESS_TOKEN not set, paid plans are unavailable")
        return None
    return MercadoPagoBillingProvider(settings)
