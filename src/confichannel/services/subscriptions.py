"""Subscription tier lookup."""

from __future__ import annotations

import uuid

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from confichannel.core.settings import settings
from confichannel.db.time import epoch_seconds
from confichannel.models import Subscription
from confichannel.services.events import EventSink, get_event_sink


class SubscriptionService:
    """Resolve whether a device currently has a paid tier."""

    def __init__(self, db: Session, events: EventSink | None = None) -> None:
        self.db = db
        self.events = events or get_event_sink()

    def get_active_subscription(self, device_id: str, now: int | None = None) -> Subscription | None:
        """Return the device's active subscription, if any.

        A subscription created within the grace period counts as active so a
        payment that is still being confirmed does not block the device.
        """
        current = epoch_seconds() if now is None else now
        grace_start = current - settings.subscription_grace_seconds
        stmt = (
            select(Subscription)
            .where(Subscription.device_id == device_id)
            .where(
                or_(
                    Subscription.creation_timestamp >= grace_start,
                    Subscription.valid_until >= current,
                )
            )
            .limit(1)
        )
        return self.db.execute(stmt).scalars().first()

    def has_active_subscription(self, device_id: str) -> bool:
        return self.get_active_subscription(device_id) is not None

    @staticmethod
    def time_remaining(subscription: Subscription, now: int | None = None) -> int:
        """Seconds until the subscription stops counting as active.

        Whichever lasts longer of the grace period and ``valid_until`` wins,
        matching the lookup in :meth:`get_active_subscription`.
        """
        current = epoch_seconds() if now is None else now
        remaining = subscription.creation_timestamp + settings.subscription_grace_seconds - current
        if subscription.valid_until is not None:
            remaining = max(remaining, subscription.valid_until - current)
        return max(remaining, 0)

    def create_subscription(self, device_id: str, valid_until: int | None = None) -> Subscription:
        """Attach a new subscription to a device.

        Without ``valid_until`` the subscription is only active for the grace
        period, until a confirmed payment extends it.
        """
        now = epoch_seconds()
        subscription = Subscription(
            id=str(uuid.uuid4()),
            device_id=device_id,
            creation_timestamp=now,
            update_timestamp=now,
            valid_until=valid_until,
        )
        self.db.add(subscription)
        self.db.commit()
        self.events.record("subscription:created")
        return subscription
