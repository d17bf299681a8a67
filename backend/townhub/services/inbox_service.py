"""
Recipient inbox: deliveries received by a user, and read (click) state.

Read state = clicked_at IS NOT NULL; it is set once, on the first open, and the
notification's click_count is bumped at the same time.
"""
from typing import Any

from sqlalchemy import update
from sqlalchemy.orm import Session

from townhub.core.constants import OWNER_BUSINESS, USER_NOTIFICATIONS_LIMIT
from townhub.core.errors import NotFound
from townhub.models.notification import Notification
from townhub.models.notification_delivery import NotificationDelivery
from townhub.services.quota_service import QuotaOwner
from townhub.utils.time import utcnow


def _iso(dt) -> str | None:
    return dt.isoformat() if dt else None


def list_user_notifications(db: Session, user_id: int, limit: int = USER_NOTIFICATIONS_LIMIT) -> dict[str, Any]:
    rows = (
        db.query(NotificationDelivery)
        .filter(NotificationDelivery.user_id == user_id)
        .order_by(NotificationDelivery.sent_at.desc(), NotificationDelivery.id.desc())
        .limit(limit)
        .all()
    )
    unread_count = (
        db.query(NotificationDelivery)
        .filter(NotificationDelivery.user_id == user_id, NotificationDelivery.clicked_at.is_(None))
        .count()
    )
    return {
        "notifications": [
            {
                "id": d.notification.id,
                "deliveryId": d.id,
                "title": d.notification.title,
                "body": d.notification.body,
                "type": d.notification.type,
                "imageUrl": d.notification.image_url,
                "data": d.notification.payload or {},
                "isRead": d.clicked_at is not None,
                "createdAt": _iso(d.notification.sent_at or d.notification.created_at),
                "businessId": d.notification.business_id,
                "townId": d.notification.town_id,
            }
            for d in rows
        ],
        "unreadCount": unread_count,
    }


def mark_read(db: Session, user_id: int, notification_id: int) -> NotificationDelivery:
    """Set clicked_at once. Conditional update, so two concurrent opens count one click."""
    delivery = (
        db.query(NotificationDelivery)
        .filter(NotificationDelivery.notification_id == notification_id, NotificationDelivery.user_id == user_id)
        .first()
    )
    if delivery is None:
        raise NotFound("Notification not found")
    result = db.execute(
        update(NotificationDelivery)
        .where(NotificationDelivery.id == delivery.id, NotificationDelivery.clicked_at.is_(None))
        .values(clicked_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        db.execute(
            update(Notification)
            .where(Notification.id == notification_id)
            .values(click_count=Notification.click_count + 1)
            .execution_options(synchronize_session=False)
        )
    db.commit()
    db.refresh(delivery)
    return delivery


def notification_history(db: Session, owner: QuotaOwner | None, limit: int = USER_NOTIFICATIONS_LIMIT) -> list[dict[str, Any]]:
    """Notifications sent on behalf of the owner, newest first (all of them for the unlimited context)."""
    q = db.query(Notification)
    if owner is not None:
        column = Notification.business_id if owner.owner_kind == OWNER_BUSINESS else Notification.town_id
        q = q.filter(column == owner.owner_id)
    rows = q.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()
    return [
        {
            "id": n.id,
            "title": n.title,
            "body": n.body,
            "type": n.type,
            "targetType": n.target_type,
            "status": n.status,
            "audienceCount": n.audience_count,
            "deliveryCount": n.delivery_count,
            "clickCount": n.click_count,
            "sentAt": _iso(n.sent_at),
            "createdAt": _iso(n.created_at),
        }
        for n in rows
    ]
