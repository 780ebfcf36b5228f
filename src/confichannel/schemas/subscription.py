"""Subscription-related Pydantic schemas."""

from pydantic import BaseModel


class SubscriptionCreated(BaseModel):
    id: str


class ActiveSubscription(BaseModel):
    """Active tier of the calling device; both fields are null without one."""

    active_subscription_id: str | None = None
    time_remaining: int | None = None
