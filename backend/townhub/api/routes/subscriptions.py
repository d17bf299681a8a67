"""
Business/place subscriptions for the current user.

GET is open to anonymous callers (always 'not subscribed'); POST/DELETE need a profile.
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from townhub.api.deps import AuthContext, get_auth_context, require_auth
from townhub.db.session import get_db
from townhub.services import subscription_service
from townhub.services.subscription_service import TARGET_BUSINESS, TARGET_PLACE

router = APIRouter()
logger = logging.getLogger(__name__)


def _status(db: Session, auth: AuthContext, target_id: int, target_kind: str) -> dict[str, Any]:
    user_id = auth.profile.id if auth.profile else None
    return subscription_service.subscription_status(db, user_id, target_id, target_kind)


# --- Businesses ---


@router.get("/businesses/{business_id}/subscribe")
def business_subscription_status(
    business_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
) -> dict[str, Any]:
    return _status(db, auth, business_id, TARGET_BUSINESS)


@router.post("/businesses/{business_id}/subscribe")
def subscribe_business(
    business_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
) -> dict[str, Any]:
    row = subscription_service.subscribe(db, auth.profile.id, business_id, TARGET_BUSINESS)
    return {"subscribed": True, "subscriptionId": row.id, "businessName": row.business.name}


@router.delete("/businesses/{business_id}/subscribe")
def unsubscribe_business(
    business_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
) -> dict[str, Any]:
    subscription_service.unsubscribe(db, auth.profile.id, business_id, TARGET_BUSINESS)
    return {"subscribed": False}


# --- Places ---


@router.get("/places/{place_id}/subscribe")
def place_subscription_status(
    place_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
) -> dict[str, Any]:
    return _status(db, auth, place_id, TARGET_PLACE)


@router.post("/places/{place_id}/subscribe")
def subscribe_place(
    place_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
) -> dict[str, Any]:
    row = subscription_service.subscribe(db, auth.profile.id, place_id, TARGET_PLACE)
    return {"subscribed": True, "subscriptionId": row.id, "placeName": row.place.name}


@router.delete("/places/{place_id}/subscribe")
def unsubscribe_place(
    place_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
) -> dict[str, Any]:
    subscription_service.unsubscribe(db, auth.profile.id, place_id, TARGET_PLACE)
    return {"subscribed": False}


# --- List ---


@router.get("/subscriptions")
def list_subscriptions(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
) -> dict[str, Any]:
    """All active subscriptions of the caller, newest first."""
    return subscription_service.list_active(db, auth.profile.id)
