"""
Events published by businesses and towns. Each one spends one unit of the owner's event quota.
"""
import logging
from datetime import datetime

from sqlalchemy.orm import Session

from townhub.core.constants import OWNER_BUSINESS, OWNER_TOWN, RESOURCE_EVENT
from townhub.core.errors import InvalidInput
from townhub.models.event import Event
from townhub.models.profile import Profile
from townhub.services.quota_service import QuotaOwner, consume_quota

logger = logging.getLogger(__name__)


def create_event(
    db: Session,
    profile: Profile,
    owner: QuotaOwner | None,
    *,
    title: str | None,
    starts_at: datetime | None,
    ends_at: datetime | None = None,
    description: str | None = None,
    place_id: int | None = None,
) -> Event:
    """Raises QuotaExceeded (no event created) when the owner's monthly event quota is used up."""
    title = (title or "").strip()
    if not title or starts_at is None:
        raise InvalidInput("Missing title or startsAt")
    if ends_at is not None and ends_at < starts_at:
        raise InvalidInput("endsAt must not be before startsAt")
    consume_quota(db, owner, RESOURCE_EVENT)
    business_id = owner.owner_id if owner and owner.owner_kind == OWNER_BUSINESS else None
    town_id = owner.owner_id if owner and owner.owner_kind == OWNER_TOWN else None
    if owner is None:
        town_id = profile.town_id
    event = Event(
        title=title,
        description=description,
        starts_at=starts_at,
        ends_at=ends_at,
        place_id=place_id,
        created_by_id=profile.id,
        business_id=business_id,
        town_id=town_id,
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("Event %s created by profile %s", event.id, profile.id)
    return event
