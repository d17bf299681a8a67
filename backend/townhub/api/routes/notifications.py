"""
Notifications API: send (quota-gated fan-out), audience estimate, device registration,
recipient inbox and read state, sender history.

Caller resolved from the bearer token (or X-Mock-User-Id with MOCK_AUTH=true).
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from townhub.api.deps import AuthContext, require_auth
from townhub.core.constants import (
    ROLE_BUSINESS_OWNER,
    ROLE_SUPER_ADMIN,
    ROLE_TOWN_ADMIN,
    USER_NOTIFICATIONS_LIMIT,
)
from townhub.core.errors import Forbidden
from townhub.db.session import get_db
from townhub.services import device_service, inbox_service, notification_service
from townhub.services.quota_service import resolve_owner_context

router = APIRouter()
logger = logging.getLogger(__name__)


# --- Send ---


class SendNotificationBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str | None = None
    body: str | None = None
    type: str | None = None
    target_type: str | None = Field(None, alias="targetType")
    business_id: int | None = Field(None, alias="businessId")
    place_id: int | None = Field(None, alias="placeId")
    town_id: int | None = Field(None, alias="townId")
    segment: str | None = None
    deeplink: str | None = None
    image_url: str | None = Field(None, alias="imageUrl")


@router.post("/notifications/send")
def send_notification(
    body: SendNotificationBody,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
) -> dict[str, Any]:
    """
    Send a push notification to the target audience. Consumes one unit of the sender's
    monthly notification quota first (403 with the quota status when exhausted).
    Per-device failures are reported in 'failed', not as an error.
    """
    result = notification_service.send_notification(
        db,
        auth.profile,
        title=body.title,
        body=body.body,
        notification_type=body.type,
        target_type=body.target_type,
        business_id=body.business_id,
        place_id=body.place_id,
        town_id=body.town_id,
        segment=body.segment,
        deeplink=body.deeplink,
        image_url=body.image_url,
    )
    return result.to_dict()


# --- Audience estimate ---


class AudienceEstimateBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_type: str = Field(..., alias="targetType")
    business_id: int | None = Field(None, alias="businessId")
    place_id: int | None = Field(None, alias="placeId")
    town_id: int | None = Field(None, alias="townId")
    segment: str | None = None
    type: str | None = None


@router.post("/notifications/audience-estimate")
def audience_estimate(
    body: AudienceEstimateBody,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
) -> dict[str, Any]:
    """How many users would receive a notification right now, and why the others would not."""
    if auth.profile.role not in (ROLE_SUPER_ADMIN, ROLE_TOWN_ADMIN, ROLE_BUSINESS_OWNER):
        raise Forbidden("Forbidden")
    scope = notification_service.build_scope(
        db,
        auth.profile,
        target_type=body.target_type,
        notification_type=body.type,
        business_id=body.business_id,
        place_id=body.place_id,
        town_id=body.town_id,
        segment=body.segment,
    )
    return notification_service.estimate_audience(db, scope)


# --- Devices ---


class RegisterDeviceBody(BaseModel):
    token: str | None = Field(None, max_length=256, description="Expo or APNs device token")
    platform: str | None = Field(None, description="ios | android | web")


@router.post("/notifications/register-device")
def register_device(
    body: RegisterDeviceBody,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
) -> dict[str, Any]:
    """
    Register (or refresh) a device for push. Idempotent: the same token is upserted,
    reactivated and moved to the caller if another account had it.
    """
    device_service.register_device(db, auth.profile.id, body.token, body.platform)
    return {"success": True}


# --- Inbox ---


@router.get("/notifications/user")
def list_user_notifications(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
    limit: int = Query(USER_NOTIFICATIONS_LIMIT, ge=1, le=200),
) -> dict[str, Any]:
    """Notifications delivered to the caller, newest first."""
    return inbox_service.list_user_notifications(db, auth.profile.id, limit=limit)


@router.post("/notifications/{notification_id}/read")
def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
) -> dict[str, Any]:
    delivery = inbox_service.mark_read(db, auth.profile.id, notification_id)
    return {"success": True, "id": notification_id, "readAt": delivery.clicked_at.isoformat()}


@router.get("/notifications/history")
def notification_history(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
    limit: int = Query(USER_NOTIFICATIONS_LIMIT, ge=1, le=200),
) -> dict[str, Any]:
    """Notifications sent by the caller's business or town."""
    owner = resolve_owner_context(db, auth.profile)
    return {"notifications": inbox_service.notification_history(db, owner, limit=limit)}
