"""Subscription endpoints for the device tier."""

from __future__ import annotations

from fastapi import APIRouter, status

from confichannel.api.v1.dependencies import (
    ERROR_EVENTS,
    CurrentDeviceDep,
    EventSinkDep,
    SessionDep,
)
from confichannel.schemas.subscription import ActiveSubscription, SubscriptionCreated
from confichannel.services.events import record_failures
from confichannel.services.subscriptions import SubscriptionService

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


@router.post("", response_model=SubscriptionCreated, status_code=status.HTTP_201_CREATED)
async def create_subscription(
    device_id: CurrentDeviceDep,
    db: SessionDep,
    events: EventSinkDep,
) -> SubscriptionCreated:
    """Start a subscription for the calling device."""
    with record_failures(events, ERROR_EVENTS["create_subscription"]):
        subscription = SubscriptionService(db, events).create_subscription(device_id)
    return SubscriptionCreated(id=subscription.id)


@router.get("/active", response_model=ActiveSubscription)
async def active_subscription(
    device_id: CurrentDeviceDep,
    db: SessionDep,
    events: EventSinkDep,
) -> ActiveSubscription:
    """Return the calling device's active subscription and its time left."""
    service = SubscriptionService(db, events)
    with record_failures(events, ERROR_EVENTS["active_subscription"]):
        subscription = service.get_active_subscription(device_id)
    if subscription is None:
        return ActiveSubscription()
    return ActiveSubscription(
        active_subscription_id=subscription.id,
        time_remaining=service.time_remaining(subscription),
    )
