"""Notification dispatcher: quota gate, audience, fan-out, delivery records, status."""
from datetime import datetime, timezone

import pytest

from conftest import FakeTransport
from townhub.core.constants import (
    ROLE_BUSINESS_OWNER,
    ROLE_RESIDENT,
    ROLE_SUPER_ADMIN,
    ROLE_TOWN_ADMIN,
    STATUS_DRAFT,
    STATUS_FAILED,
    STATUS_SENT,
    TARGET_BUSINESS_SUBSCRIBERS,
    TARGET_PLACE_SUBSCRIBERS,
    TARGET_SEGMENT,
    TARGET_TOWN,
)
from townhub.core.errors import Forbidden, InvalidInput, QuotaExceeded
from townhub.models import DeviceToken, Notification, NotificationDelivery, QuotaCounter
from townhub.services import notification_service, subscription_service
from townhub.services.notification_service import AudienceScope, dispatch, estimate_audience, send_notification
from townhub.services.quota_service import resolve_owner_context
from townhub.services.subscription_service import TARGET_BUSINESS, TARGET_PLACE


@pytest.fixture
def shop(seed):
    """Starter-tier business with its owner and a restaurant place."""
    town = seed.town()
    owner = seed.profile(role=ROLE_BUSINESS_OWNER, town=town)
    place = seed.place(town=town, name="Seewirt", tags=["restaurant", "lake"])
    business = seed.business(owner=owner, town=town, place=place, tier="starter")
    return town, owner, place, business


def _subscriber(db, seed, business, town=None, prefs=None, devices=1):
    user = seed.profile(town=town, prefs=prefs)
    subscription_service.subscribe(db, user.id, business.id, TARGET_BUSINESS)
    for _ in range(devices):
        seed.device(user)
    return user


def _send(db, owner, business, transport, **overrides):
    kwargs = dict(
        title="Lunch special",
        body="Two courses for 15 EUR",
        notification_type="BUSINESS_PROMO",
        target_type=TARGET_BUSINESS_SUBSCRIBERS,
        business_id=business.id,
        transport=transport,
    )
    kwargs.update(overrides)
    return send_notification(db, owner, **kwargs)


def test_zero_audience_is_sent_with_no_deliveries(db, shop):
    _, owner, _, business = shop
    transport = FakeTransport()
    result = _send(db, owner, business, transport)

    assert result.to_dict() == {
        "success": True,
        "notificationId": result.notification_id,
        "delivered": 0,
        "failed": 0,
        "audienceCount": 0,
    }
    notification = db.get(Notification, result.notification_id)
    assert notification.status == STATUS_SENT
    assert notification.audience_count == 0
    assert notification.sent_at is not None
    assert transport.sent == []


def test_partial_delivery_counts_failures_per_device(db, seed, shop):
    _, owner, _, business = shop
    users = [_subscriber(db, seed, business) for _ in range(3)]
    transport = FakeTransport(failing=[_token_of(db, users[1])])

    result = _send(db, owner, business, transport)

    assert (result.delivered, result.failed, result.audience_count) == (2, 1, 3)
    deliveries = db.query(NotificationDelivery).filter(NotificationDelivery.notification_id == result.notification_id)
    assert {d.user_id for d in deliveries} == {users[0].id, users[2].id}
    notification = db.get(Notification, result.notification_id)
    assert notification.status == STATUS_SENT
    assert notification.delivery_count == 2
    assert len(transport.sent) == 3


def _token_of(db, user):
    return db.query(DeviceToken.token).filter(DeviceToken.user_id == user.id).scalar()


def test_transport_exception_only_fails_that_device(db, seed, shop):
    _, owner, _, business = shop
    good = _subscriber(db, seed, business)
    bad = _subscriber(db, seed, business)
    transport = FakeTransport(raising=[_token_of(db, bad)])

    result = _send(db, owner, business, transport)

    assert (result.delivered, result.failed) == (1, 1)
    rows = db.query(NotificationDelivery).all()
    assert [r.user_id for r in rows] == [good.id]


def test_one_delivery_row_per_user_with_several_devices(db, seed, shop):
    _, owner, _, business = shop
    user = _subscriber(db, seed, business, devices=2)
    result = _send(db, owner, business, FakeTransport())

    assert (result.delivered, result.failed, result.audience_count) == (2, 0, 2)
    rows = db.query(NotificationDelivery).all()
    assert [r.user_id for r in rows] == [user.id]


def test_quota_exceeded_leaves_notification_in_draft(db, seed):
    town = seed.town()
    owner = seed.profile(role=ROLE_BUSINESS_OWNER, town=town)
    business = seed.business(owner=owner, town=town, tier="free")
    _subscriber(db, seed, business)
    transport = FakeTransport()

    with pytest.raises(QuotaExceeded) as exc:
        _send(db, owner, business, transport)

    assert exc.value.quota["limit"] == 0
    notification = db.query(Notification).one()
    assert notification.status == STATUS_DRAFT
    assert notification.sent_at is None
    assert db.query(NotificationDelivery).count() == 0
    assert transport.sent == []


def test_each_send_spends_one_notification_unit(db, seed, shop):
    _, owner, _, business = shop
    _subscriber(db, seed, business, devices=2)
    _send(db, owner, business, FakeTransport())
    _send(db, owner, business, FakeTransport())
    assert db.query(QuotaCounter).one().used == 2


def test_audience_resolution_error_marks_notification_failed(db, seed):
    notification = Notification(
        title="Road closed",
        body="Seestrasse closed until 18:00",
        type="TOWN_ALERT",
        target_type="NOWHERE",
        payload={},
        status=STATUS_DRAFT,
    )
    db.add(notification)
    db.commit()

    with pytest.raises(InvalidInput):
        dispatch(db, notification, None, AudienceScope(target_type="NOWHERE"), transport=FakeTransport())

    db.expire_all()
    assert db.get(Notification, notification.id).status == STATUS_FAILED


def test_preferences_filter_recipients(db, seed, shop):
    _, owner, _, business = shop
    accepting = _subscriber(db, seed, business)
    _subscriber(db, seed, business, prefs={"globalEnabled": False, "categories": {}})
    _subscriber(
        db,
        seed,
        business,
        prefs={"globalEnabled": True, "categories": {}, "businessTypes": {"restaurant": False}},
    )
    _subscriber(db, seed, business, prefs={"businessAlerts": False, "townAlerts": True})
    transport = FakeTransport()

    result = _send(db, owner, business, transport)

    assert (result.delivered, result.audience_count) == (1, 1)
    assert [r.user_id for r in db.query(NotificationDelivery).all()] == [accepting.id]


def test_place_subscribers_of_owners_place(db, seed, shop):
    _, owner, place, business = shop
    fan = seed.profile()
    subscription_service.subscribe(db, fan.id, place.id, TARGET_PLACE)
    seed.device(fan)

    result = _send(db, owner, business, FakeTransport(), target_type=TARGET_PLACE_SUBSCRIBERS, business_id=None)
    assert result.delivered == 1


def test_town_alert_reaches_town_residents(db, seed):
    town = seed.town()
    other_town = seed.town(name="Gosau")
    admin = seed.profile(role=ROLE_TOWN_ADMIN, town=town)
    resident = seed.profile(town=town)
    outsider = seed.profile(town=other_town)
    seed.device(resident)
    seed.device(outsider)

    result = send_notification(
        db,
        admin,
        title="Road closed",
        body="Seestrasse closed until 18:00",
        notification_type="TOWN_ALERT",
        target_type=TARGET_TOWN,
        transport=FakeTransport(),
    )

    assert (result.delivered, result.audience_count) == (1, 1)
    assert db.query(QuotaCounter).one().owner_id == town.id


def test_segment_uses_segment_preference_category(db, seed):
    town = seed.town()
    admin = seed.profile(role=ROLE_TOWN_ADMIN, town=town)
    wants_weather = seed.profile(town=town)
    no_weather = seed.profile(town=town, prefs={"categories": {"weatherAlerts": False}})
    seed.device(wants_weather)
    seed.device(no_weather)

    result = send_notification(
        db,
        admin,
        title="Storm warning",
        body="Gusts up to 90 km/h tonight",
        notification_type="WEATHER_ALERT",
        target_type=TARGET_SEGMENT,
        segment="weather",
        transport=FakeTransport(),
    )
    assert result.delivered == 1


def test_resident_cannot_send(db, seed, shop):
    _, _, _, business = shop
    resident = seed.profile(role=ROLE_RESIDENT)
    with pytest.raises(Forbidden):
        _send(db, resident, business, FakeTransport())
    assert db.query(Notification).count() == 0


def test_business_owner_cannot_send_town_alerts(db, shop):
    _, owner, _, business = shop
    with pytest.raises(Forbidden):
        _send(db, owner, business, FakeTransport(), notification_type="TOWN_ALERT", target_type=TARGET_TOWN)


def test_business_types_cannot_target_a_town(db, seed):
    town = seed.town()
    admin = seed.profile(role=ROLE_SUPER_ADMIN, town=town)
    with pytest.raises(InvalidInput):
        send_notification(
            db,
            admin,
            title="Sale",
            body="Everything half price",
            notification_type="BUSINESS_PROMO",
            target_type=TARGET_TOWN,
            transport=FakeTransport(),
        )


def test_town_admin_cannot_target_another_town(db, seed):
    town = seed.town()
    other = seed.town(name="Gosau")
    admin = seed.profile(role=ROLE_TOWN_ADMIN, town=town)
    with pytest.raises(Forbidden):
        send_notification(
            db,
            admin,
            title="Road closed",
            body="Seestrasse closed",
            notification_type="TOWN_ALERT",
            target_type=TARGET_TOWN,
            town_id=other.id,
            transport=FakeTransport(),
        )


def test_missing_fields_are_invalid(db, shop):
    _, owner, _, business = shop
    with pytest.raises(InvalidInput):
        _send(db, owner, business, FakeTransport(), title="  ")


def test_business_owner_is_forced_to_own_business(db, seed, shop):
    _, owner, _, business = shop
    other = seed.business(name="Competitor")
    scope = notification_service.build_scope(
        db, owner, target_type=TARGET_BUSINESS_SUBSCRIBERS, business_id=other.id
    )
    assert scope.business_id == business.id
    assert scope.business_type == "restaurant"


def test_estimate_audience_breakdown(db, seed, shop, monkeypatch):
    _, owner, _, business = shop
    late_evening = datetime(2026, 10, 19, 23, 30, tzinfo=timezone.utc)
    monkeypatch.setattr(notification_service, "utcnow", lambda: late_evening)
    _subscriber(db, seed, business)
    _subscriber(db, seed, business, devices=0)
    _subscriber(db, seed, business, prefs={"globalEnabled": False})
    _subscriber(
        db,
        seed,
        business,
        prefs={"quietHours": {"enabled": True, "start": "22:00", "end": "08:00"}},
    )
    scope = notification_service.build_scope(db, owner, target_type=TARGET_BUSINESS_SUBSCRIBERS)
    estimate = estimate_audience(db, scope)

    assert estimate["estimatedAudience"] == 1
    breakdown = estimate["breakdown"]
    assert breakdown["total"] == 4
    assert breakdown["eligibleUsers"] == 1
    assert breakdown["blockedByPreferences"] == 1
    assert breakdown["blockedByQuietHours"] == 1
    assert breakdown["noDeviceToken"] == 1


def test_malformed_preferences_do_not_fail_a_town_alert(db, seed):
    town = seed.town()
    admin = seed.profile(role=ROLE_TOWN_ADMIN, town=town)
    seed.device(seed.profile(town=town))
    seed.device(seed.profile(town=town, prefs={"quietHours": {"enabled": True, "start": 2200}}))
    seed.device(seed.profile(town=town, prefs={"categories": ["townAlerts"]}))

    result = send_notification(
        db,
        admin,
        title="Road closed",
        body="Seestrasse closed until 18:00",
        notification_type="TOWN_ALERT",
        target_type=TARGET_TOWN,
        transport=FakeTransport(),
    )

    assert (result.delivered, result.failed, result.audience_count) == (3, 0, 3)
    assert db.get(Notification, result.notification_id).status == STATUS_SENT


def test_dispatch_rejects_an_already_sent_notification(db, seed, shop):
    town, owner, _, business = shop
    _subscriber(db, seed, business, town=town)
    transport = FakeTransport()
    result = _send(db, owner, business, transport)
    notification = db.get(Notification, result.notification_id)
    scope = notification_service.build_scope(db, owner, target_type=TARGET_BUSINESS_SUBSCRIBERS)

    with pytest.raises(InvalidInput):
        dispatch(db, notification, resolve_owner_context(db, owner), scope, transport=transport)

    assert db.query(QuotaCounter).one().used == 1
    assert db.query(NotificationDelivery).count() == 1
    assert len(transport.sent) == 1
    db.expire_all()
    assert db.get(Notification, result.notification_id).status == STATUS_SENT
