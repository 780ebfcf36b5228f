"""Tests for the subscription tier lookup."""

from confichannel.models import Subscription
from confichannel.services.subscriptions import SubscriptionService

NOW = 1_700_000_000


def _subscription(db_session, created: int, valid_until: int | None) -> None:
    db_session.add(
        Subscription(
            id=f"sub-{created}-{valid_until}",
            device_id="device-a",
            creation_timestamp=created,
            update_timestamp=created,
            valid_until=valid_until,
        )
    )
    db_session.commit()


def test_no_subscription(db_session) -> None:
    assert SubscriptionService(db_session).get_active_subscription("device-a", now=NOW) is None


def test_recent_subscription_is_active_during_grace_period(db_session) -> None:
    _subscription(db_session, created=NOW - 60, valid_until=None)

    assert SubscriptionService(db_session).get_active_subscription("device-a", now=NOW) is not None


def test_unconfirmed_subscription_lapses_after_grace_period(db_session) -> None:
    _subscription(db_session, created=NOW - 600, valid_until=None)

    assert SubscriptionService(db_session).get_active_subscription("device-a", now=NOW) is None


def test_valid_until_in_future_is_active(db_session) -> None:
    _subscription(db_session, created=NOW - 86_400, valid_until=NOW + 3_600)

    service = SubscriptionService(db_session)
    assert service.get_active_subscription("device-a", now=NOW) is not None
    assert service.get_active_subscription("device-b", now=NOW) is None


def test_expired_subscription_is_inactive(db_session) -> None:
    _subscription(db_session, created=NOW - 86_400, valid_until=NOW - 1)

    assert SubscriptionService(db_session).get_active_subscription("device-a", now=NOW) is None


def _detached(created: int, valid_until: int | None) -> Subscription:
    return Subscription(
        id="sub",
        device_id="device-a",
        creation_timestamp=created,
        update_timestamp=created,
        valid_until=valid_until,
    )


def test_time_remaining_in_grace_period() -> None:
    assert SubscriptionService.time_remaining(_detached(NOW - 60, None), now=NOW) == 120


def test_time_remaining_uses_valid_until() -> None:
    assert SubscriptionService.time_remaining(_detached(NOW - 86_400, NOW + 3_600), now=NOW) == 3_600


def test_time_remaining_never_negative() -> None:
    assert SubscriptionService.time_remaining(_detached(NOW - 600, NOW - 10), now=NOW) == 0
