"""
Notification dispatcher: quota gate -> audience -> per-device fan-out -> delivery records.

A notification moves draft -> sending -> sent | failed:
  - QuotaExceeded at the gate: nothing is sent and the notification stays 'draft'.
  - Audience resolution error: 'failed' (no device was attempted).
  - Otherwise 'sent', whatever the per-device outcomes were; a fully failed fan-out is
    still 'sent' and is not retried here.

Devices are attempted concurrently on a bounded thread pool. A transport failure (False
or an exception) only counts against that device. One notification_deliveries row is
written per user with at least one accepted device; counts are per device.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.orm import Session

from townhub.config import settings
from townhub.core.constants import (
    NOTIFICATION_CATEGORY_BUSINESS,
    NOTIFICATION_CATEGORY_TOWN,
    NOTIFICATION_TYPES,
    OWNER_BUSINESS,
    OWNER_TOWN,
    RESOURCE_NOTIFICATION,
    ROLE_BUSINESS_OWNER,
    ROLE_SUPER_ADMIN,
    ROLE_TOWN_ADMIN,
    STATUS_DRAFT,
    STATUS_FAILED,
    STATUS_SENDING,
    STATUS_SENT,
    TARGET_BUSINESS_SUBSCRIBERS,
    TARGET_PLACE_SUBSCRIBERS,
    TARGET_SEGMENT,
    TARGET_TOWN,
    TARGET_TYPES,
)
from townhub.core.errors import Forbidden, InvalidInput, NotFound, QuotaExceeded
from townhub.models.business import Business
from townhub.models.notification import Notification
from townhub.models.notification_delivery import NotificationDelivery
from townhub.models.place import Place
from townhub.models.profile import Profile
from townhub.models.town import Town
from townhub.services import device_service, preferences, subscription_service
from townhub.services.push import PushMessage, PushTransport, get_transport
from townhub.services.quota_service import QuotaOwner, consume_quota
from townhub.utils.time import utcnow

logger = logging.getLogger(__name__)

# Delivery rows are committed in batches while the fan-out is still running
DELIVERY_COMMIT_BATCH = 200

# Town notification type -> preference category it is filtered by
_TYPE_CATEGORIES = {
    "TOWN_ALERT": "townAlerts",
    "WEATHER_ALERT": "weatherAlerts",
    "EVENT_ANNOUNCEMENT": "events",
    "EMERGENCY_ALERT": "emergencyAlerts",
}

_CATEGORY_TARGETS = {
    NOTIFICATION_CATEGORY_BUSINESS: (TARGET_BUSINESS_SUBSCRIBERS, TARGET_PLACE_SUBSCRIBERS),
    NOTIFICATION_CATEGORY_TOWN: (TARGET_TOWN, TARGET_SEGMENT),
}


@dataclass
class AudienceScope:
    """Who a notification goes to, and which preference switch they are filtered by."""

    target_type: str
    business_id: int | None = None
    place_id: int | None = None
    town_id: int | None = None
    business_type: str | None = None
    category: str | None = None


@dataclass
class AudienceResolution:
    user_ids: list[int] = field(default_factory=list)
    total: int = 0
    blocked_by_preferences: int = 0
    blocked_by_quiet_hours: int = 0


@dataclass
class DispatchResult:
    notification_id: int
    delivered: int
    failed: int
    audience_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "notificationId": self.notification_id,
            "delivered": self.delivered,
            "failed": self.failed,
            "audienceCount": self.audience_count,
        }


# --- Audience ---


def _business_type_for(db: Session, business_id: int | None, place_id: int | None) -> str | None:
    place = None
    if place_id is not None:
        place = db.get(Place, place_id)
    elif business_id is not None:
        business = db.get(Business, business_id)
        place = business.place if business else None
    return preferences.place_tags_to_business_type(place.tags if place else None)


def _candidate_user_ids(db: Session, scope: AudienceScope) -> list[int]:
    if scope.target_type == TARGET_BUSINESS_SUBSCRIBERS:
        return subscription_service.active_subscriber_ids(db, scope.business_id, subscription_service.TARGET_BUSINESS)
    if scope.target_type == TARGET_PLACE_SUBSCRIBERS:
        return subscription_service.active_subscriber_ids(db, scope.place_id, subscription_service.TARGET_PLACE)
    if scope.target_type in (TARGET_TOWN, TARGET_SEGMENT):
        return [pid for (pid,) in db.query(Profile.id).filter(Profile.town_id == scope.town_id).all()]
    raise InvalidInput(f"Unknown target type: {scope.target_type}")


def resolve_recipients(db: Session, scope: AudienceScope) -> AudienceResolution:
    """Users in scope who accept this notification right now (preferences, quiet hours)."""
    candidates = _candidate_user_ids(db, scope)
    resolution = AudienceResolution(total=len(candidates))
    if not candidates:
        return resolution
    rows = db.query(Profile.id, Profile.notification_preferences).filter(Profile.id.in_(candidates)).all()
    now = utcnow()
    for user_id, prefs in rows:
        reason = preferences.blocked_reason(
            prefs, business_type=scope.business_type, category=scope.category, now=now
        )
        if reason == preferences.BLOCKED_BY_PREFERENCES:
            resolution.blocked_by_preferences += 1
        elif reason == preferences.BLOCKED_BY_QUIET_HOURS:
            resolution.blocked_by_quiet_hours += 1
        else:
            resolution.user_ids.append(user_id)
    return resolution


def build_scope(
    db: Session,
    profile: Profile,
    *,
    target_type: str,
    category: str | None = None,
    notification_type: str | None = None,
    business_id: int | None = None,
    place_id: int | None = None,
    town_id: int | None = None,
    segment: str | None = None,
) -> AudienceScope:
    """Resolve the target ids for the caller. Business owners can only target their own business."""
    if target_type not in TARGET_TYPES:
        raise InvalidInput(f"Invalid target type: {target_type}")
    if category and target_type not in _CATEGORY_TARGETS[category]:
        raise InvalidInput(f"{category.capitalize()} notifications cannot target {target_type}")

    if target_type in (TARGET_BUSINESS_SUBSCRIBERS, TARGET_PLACE_SUBSCRIBERS):
        if profile.role == ROLE_BUSINESS_OWNER:
            own = db.query(Business).filter(Business.owner_id == profile.id).first()
            if own is None:
                raise NotFound("No business found for this account")
            business_id = own.id
            if target_type == TARGET_PLACE_SUBSCRIBERS:
                place_id = own.place_id
        if target_type == TARGET_BUSINESS_SUBSCRIBERS:
            if business_id is None:
                raise InvalidInput("businessId is required")
            if db.get(Business, business_id) is None:
                raise NotFound("Business not found")
        else:
            if place_id is None and business_id is not None:
                business = db.get(Business, business_id)
                place_id = business.place_id if business else None
            if place_id is None:
                raise InvalidInput("placeId is required")
            if db.get(Place, place_id) is None:
                raise NotFound("Place not found")
        return AudienceScope(
            target_type=target_type,
            business_id=business_id,
            place_id=place_id,
            business_type=_business_type_for(db, business_id, place_id),
        )

    town_id = town_id or profile.town_id
    if town_id is None and profile.role == ROLE_SUPER_ADMIN:
        first = db.query(Town).order_by(Town.id).first()
        town_id = first.id if first else None
    if town_id is None:
        raise InvalidInput("townId is required")
    if profile.role == ROLE_TOWN_ADMIN and town_id != profile.town_id:
        raise Forbidden("Town admins can only notify their own town")
    if db.get(Town, town_id) is None:
        raise NotFound("Town not found")
    if target_type == TARGET_SEGMENT:
        category_key = preferences.segment_category(segment)
    else:
        category_key = _TYPE_CATEGORIES.get(notification_type or "", "townAlerts")
    return AudienceScope(target_type=target_type, town_id=town_id, category=category_key)


def estimate_audience(db: Session, scope: AudienceScope) -> dict[str, Any]:
    resolution = resolve_recipients(db, scope)
    with_device = {d.user_id for d in device_service.resolve_audience(db, resolution.user_ids)}
    eligible = len(with_device)
    return {
        "estimatedAudience": eligible,
        "breakdown": {
            "total": resolution.total,
            "eligibleUsers": eligible,
            "blockedByPreferences": resolution.blocked_by_preferences,
            "blockedByQuietHours": resolution.blocked_by_quiet_hours,
            "noDeviceToken": len(resolution.user_ids) - eligible,
        },
    }


# --- Quota owner for a send ---


def quota_owner_for_send(db: Session, profile: Profile, category: str, scope: AudienceScope) -> QuotaOwner | None:
    """
    Business owners spend their business's notification quota, town admins their town's.
    Super admins spend the target town's quota for town notifications and nothing otherwise.
    """
    if profile.role == ROLE_BUSINESS_OWNER:
        business = db.get(Business, scope.business_id)
        return QuotaOwner(owner_id=business.id, owner_kind=OWNER_BUSINESS, name=business.name)
    if category == NOTIFICATION_CATEGORY_TOWN and scope.town_id is not None:
        town = db.get(Town, scope.town_id)
        return QuotaOwner(owner_id=town.id, owner_kind=OWNER_TOWN, name=town.name)
    return None


def authorize_type(profile: Profile, notification_type: str) -> str:
    """Returns the type's category. Business types need a business owner, town types a town admin."""
    category = NOTIFICATION_TYPES.get(notification_type or "")
    if category is None:
        raise InvalidInput("Invalid notification type")
    is_super = profile.role == ROLE_SUPER_ADMIN
    if category == NOTIFICATION_CATEGORY_BUSINESS and not (profile.role == ROLE_BUSINESS_OWNER or is_super):
        raise Forbidden("Business notification types require business owner or super admin role")
    if category == NOTIFICATION_CATEGORY_TOWN and not (profile.role == ROLE_TOWN_ADMIN or is_super):
        raise Forbidden("Town notification types require town admin or super admin role")
    return category


# --- Fan-out ---


def _send_one(transport: PushTransport, token: str, platform: str, message: PushMessage) -> bool:
    try:
        return bool(transport.send(token, platform, message))
    except Exception as e:
        logger.warning("Push to %s device %s... raised: %s", platform, token[:20], e)
        return False


def dispatch(
    db: Session,
    notification: Notification,
    owner: QuotaOwner | None,
    scope: AudienceScope,
    transport: PushTransport | None = None,
) -> DispatchResult:
    """
    Send a draft notification. Raises QuotaExceeded before any delivery attempt when the
    owner has no notification quota left. Returns per-device delivered/failed counts.
    """
    if notification.status != STATUS_DRAFT:
        raise InvalidInput("Notification has already been dispatched")
    try:
        consume_quota(db, owner, RESOURCE_NOTIFICATION)
    except QuotaExceeded:
        logger.info("Notification %s not sent: quota exceeded", notification.id)
        raise

    notification.status = STATUS_SENDING
    db.commit()

    try:
        recipients = resolve_recipients(db, scope)
        devices = device_service.resolve_audience(db, recipients.user_ids)
    except Exception:
        logger.exception("Audience resolution failed for notification %s", notification.id)
        db.rollback()
        notification.status = STATUS_FAILED
        db.commit()
        raise

    # Plain values only: ORM rows must not cross into worker threads
    targets = [(d.token, d.platform, d.user_id) for d in devices]
    message = PushMessage(
        title=notification.title,
        body=notification.body,
        data={"notificationId": notification.id, **(notification.payload or {})},
    )
    transport = transport or get_transport()
    delivered = 0
    failed = 0
    delivered_users: set[int] = set()
    pending = 0

    if targets:
        max_workers = max(1, min(len(targets), settings.push_max_workers))
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="push_fanout") as executor:
            future_to_target = {
                executor.submit(_send_one, transport, token, platform, message): (token, platform, user_id)
                for token, platform, user_id in targets
            }
            for future in as_completed(future_to_target):
                token, platform, user_id = future_to_target[future]
                if not future.result():
                    failed += 1
                    continue
                delivered += 1
                if user_id in delivered_users:
                    continue
                delivered_users.add(user_id)
                db.add(NotificationDelivery(notification_id=notification.id, user_id=user_id, sent_at=utcnow()))
                pending += 1
                if pending >= DELIVERY_COMMIT_BATCH:
                    db.commit()
                    pending = 0

    notification.status = STATUS_SENT
    notification.sent_at = utcnow()
    notification.audience_count = len(targets)
    notification.delivery_count = delivered
    db.commit()
    if failed:
        logger.warning(
            "Notification %s: %s delivered, %s failed of %s devices", notification.id, delivered, failed, len(targets)
        )
    else:
        logger.info("Notification %s: delivered to %s devices", notification.id, delivered)
    return DispatchResult(
        notification_id=notification.id,
        delivered=delivered,
        failed=failed,
        audience_count=len(targets),
    )


def send_notification(
    db: Session,
    profile: Profile,
    *,
    title: str | None,
    body: str | None,
    notification_type: str | None,
    target_type: str | None,
    business_id: int | None = None,
    place_id: int | None = None,
    town_id: int | None = None,
    segment: str | None = None,
    deeplink: str | None = None,
    image_url: str | None = None,
    transport: PushTransport | None = None,
) -> DispatchResult:
    """POST /notifications/send: validate, create the draft, then dispatch()."""
    title = (title or "").strip()
    body = (body or "").strip()
    if not title or not body or not notification_type or not target_type:
        raise InvalidInput("Missing required fields")
    category = authorize_type(profile, notification_type)
    scope = build_scope(
        db,
        profile,
        target_type=target_type,
        category=category,
        notification_type=notification_type,
        business_id=business_id,
        place_id=place_id,
        town_id=town_id,
        segment=segment,
    )
    owner = quota_owner_for_send(db, profile, category, scope)

    payload: dict[str, Any] = {"type": notification_type}
    if deeplink:
        payload["deeplink"] = deeplink
    if segment:
        payload["segment"] = segment
    notification = Notification(
        title=title,
        body=body,
        type=notification_type,
        target_type=target_type,
        image_url=image_url,
        payload=payload,
        status=STATUS_DRAFT,
        sender_id=profile.id,
        business_id=scope.business_id,
        town_id=scope.town_id,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return dispatch(db, notification, owner, scope, transport=transport)
