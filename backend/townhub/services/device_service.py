"""
Device registry: push endpoints per user.

Upsert keyed on the globally unique token. A token registered again (possibly by another
account after a reinstall) moves to the caller and is reactivated.
"""
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from townhub.core.constants import DEVICE_PLATFORMS
from townhub.core.errors import InvalidInput
from townhub.models.device_token import DeviceToken
from townhub.utils.time import utcnow

logger = logging.getLogger(__name__)


def register_device(db: Session, user_id: int, token: str | None, platform: str | None) -> DeviceToken:
    token = (token or "").strip()
    platform = (platform or "").strip().lower()
    if not token or not platform:
        raise InvalidInput("Missing token or platform")
    if platform not in DEVICE_PLATFORMS:
        raise InvalidInput("Invalid platform")
    for attempt in (1, 2):
        row = db.query(DeviceToken).filter(DeviceToken.token == token).first()
        if row is not None:
            if row.user_id != user_id:
                logger.info("Device token reassigned from user %s to user %s", row.user_id, user_id)
            row.user_id = user_id
            row.platform = platform
            row.is_active = True
            row.last_used_at = utcnow()
            db.commit()
            db.refresh(row)
            return row
        row = DeviceToken(token=token, user_id=user_id, platform=platform, is_active=True, last_used_at=utcnow())
        db.add(row)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if attempt == 2:
                raise
            continue
        db.refresh(row)
        logger.info("Registered device token for user %s platform=%s", user_id, platform)
        return row


def resolve_audience(db: Session, user_ids) -> list[DeviceToken]:
    """Active tokens for the given users. Users without an active device are simply absent."""
    ids = list({uid for uid in user_ids if uid is not None})
    if not ids:
        return []
    return (
        db.query(DeviceToken)
        .filter(DeviceToken.user_id.in_(ids), DeviceToken.is_active.is_(True))
        .order_by(DeviceToken.id)
        .all()
    )
