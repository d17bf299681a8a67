"""Events API: publishing an event spends one unit of the owner's monthly event quota."""
import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from townhub.api.deps import AuthContext, require_auth
from townhub.db.session import get_db
from townhub.services import event_service
from townhub.services.quota_service import resolve_owner_context

router = APIRouter()
logger = logging.getLogger(__name__)


class CreateEventBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str | None = None
    description: str | None = None
    starts_at: datetime | None = Field(None, alias="startsAt")
    ends_at: datetime | None = Field(None, alias="endsAt")
    place_id: int | None = Field(None, alias="placeId")


@router.post("/events")
def create_event(
    body: CreateEventBody,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
) -> dict[str, Any]:
    owner = resolve_owner_context(db, auth.profile)
    event = event_service.create_event(
        db,
        auth.profile,
        owner,
        title=body.title,
        starts_at=body.starts_at,
        ends_at=body.ends_at,
        description=body.description,
        place_id=body.place_id,
    )
    return {
        "success": True,
        "event": {
            "id": event.id,
            "title": event.title,
            "startsAt": event.starts_at.isoformat(),
            "businessId": event.business_id,
            "townId": event.town_id,
        },
    }
