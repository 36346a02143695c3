"""
Pydantic schemas for tenant subscriptions
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from bizsuite.models.platform import SubscriptionPlan, SubscriptionStatus


class SubscriptionResponse(BaseModel):
    plan: SubscriptionPlan
    status: SubscriptionStatus
    ends_at: Optional[datetime]
    has_billing_subscription: bool


class SubscriptionUpgrade(BaseModel):
    plan: SubscriptionPlan = Field(..., description="Target plan; free drops the paid subscription")


class SubscriptionChangeResponse(BaseModel):
    subscription: SubscriptionResponse
    changed: bool
    pending_cancellation: bool = False
