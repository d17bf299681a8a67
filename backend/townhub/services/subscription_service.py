"""
Subscription directory: users opting in to notifications from a business or a place.

Upsert keyed on (user_id, target): subscribing again reactivates the same row,
unsubscribing soft-deletes it (is_active=False). Rows whose target was deleted
(FK nulled) never show up in listings or audiences.
"""
import logging
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from townhub.core.errors import InvalidInput, NotFound
from townhub.models.business import Business
from townhub.models.place import Place
from townhub.models.subscription import BusinessSubscription, PlaceSubscription
from townhub.utils.time import utcnow

logger = logging.getLogger(__name__)

TARGET_BUSINESS = "business"
TARGET_PLACE = "place"

# target kind -> (subscription model, FK attribute name, target model)
_TARGETS = {
    TARGET_BUSINESS: (BusinessSubscription, "business_id", Business),
    TARGET_PLACE: (PlaceSubscription, "place_id", Place),
}


def _target(target_kind: str):
    try:
        return _TARGETS[target_kind]
    except KeyError:
        raise InvalidInput(f"Unknown subscription target: {target_kind}") from None


def get_subscription(db: Session, user_id: int, target_id: int, target_kind: str):
    model, fk, _ = _target(target_kind)
    return (
        db.query(model)
        .filter(model.user_id == user_id, getattr(model, fk) == target_id)
        .first()
    )


def subscribe(db: Session, user_id: int, target_id: int, target_kind: str):
    """Create or reactivate the user's subscription. Raises NotFound if the target does not exist."""
    model, fk, target_model = _target(target_kind)
    target = db.get(target_model, target_id)
    if target is None:
        raise NotFound(f"{target_kind.capitalize()} not found")
    for attempt in (1, 2):
        row = get_subscription(db, user_id, target_id, target_kind)
        if row is not None:
            row.is_active = True
            row.updated_at = utcnow()
            db.commit()
            db.refresh(row)
            return row
        row = model(user_id=user_id, is_active=True, **{fk: target_id})
        db.add(row)
        try:
            db.commit()
        except IntegrityError:
            # Concurrent first subscribe won the insert; reactivate that row instead
            db.rollback()
            if attempt == 2:
                raise
            continue
        db.refresh(row)
        logger.info("User %s subscribed to %s %s", user_id, target_kind, target_id)
        return row


def unsubscribe(db: Session, user_id: int, target_id: int, target_kind: str) -> None:
    """Soft-delete the subscription. Unsubscribing from something never subscribed is a no-op."""
    model, fk, _ = _target(target_kind)
    (
        db.query(model)
        .filter(model.user_id == user_id, getattr(model, fk) == target_id)
        .update({model.is_active: False, model.updated_at: utcnow()}, synchronize_session=False)
    )
    db.commit()


def subscription_status(db: Session, user_id: int | None, target_id: int, target_kind: str) -> dict[str, Any]:
    """Anonymous callers (no profile) are never subscribed."""
    if user_id is None:
        return {"subscribed": False, "subscriptionId": None}
    row = get_subscription(db, user_id, target_id, target_kind)
    return {"subscribed": bool(row and row.is_active), "subscriptionId": row.id if row else None}


def is_subscribed(db: Session, user_id: int | None, target_id: int, target_kind: str) -> bool:
    return subscription_status(db, user_id, target_id, target_kind)["subscribed"]


def active_subscriber_ids(db: Session, target_id: int, target_kind: str) -> list[int]:
    model, fk, _ = _target(target_kind)
    rows = (
        db.query(model.user_id)
        .filter(getattr(model, fk) == target_id, model.is_active.is_(True))
        .all()
    )
    return [user_id for (user_id,) in rows]


def list_active(db: Session, user_id: int) -> dict[str, list[dict[str, Any]]]:
    """Active subscriptions with target summaries, newest first."""
    business_rows = (
        db.query(BusinessSubscription, Business)
        .join(Business, BusinessSubscription.business_id == Business.id)
        .filter(BusinessSubscription.user_id == user_id, BusinessSubscription.is_active.is_(True))
        .order_by(BusinessSubscription.created_at.desc(), BusinessSubscription.id.desc())
        .all()
    )
    place_rows = (
        db.query(PlaceSubscription, Place)
        .join(Place, PlaceSubscription.place_id == Place.id)
        .filter(PlaceSubscription.user_id == user_id, PlaceSubscription.is_active.is_(True))
        .order_by(PlaceSubscription.created_at.desc(), PlaceSubscription.id.desc())
        .all()
    )
    return {
        "businesses": [
            {
                "subscriptionId": sub.id,
                "businessId": business.id,
                "businessName": business.name,
                "placeId": business.place.id if business.place else None,
                "placeName": business.place.name if business.place else None,
                "imageUrl": business.place.image_url if business.place else None,
                "tags": (business.place.tags or []) if business.place else [],
                "subscribedAt": sub.created_at.isoformat() if sub.created_at else None,
            }
            for sub, business in business_rows
        ],
        "places": [
            {
                "subscriptionId": sub.id,
                "placeId": place.id,
                "placeName": place.name,
                "imageUrl": place.image_url,
                "tags": place.tags or [],
                "subscribedAt": sub.created_at.isoformat() if sub.created_at else None,
            }
            for sub, place in place_rows
        ],
    }
