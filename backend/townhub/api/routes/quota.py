"""Quota status for the caller's business or town, and the monthly reset trigger."""
import logging
from typing import Any

from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from townhub.api.deps import AuthContext, require_auth
from townhub.config import settings
from townhub.core.errors import Unauthorized
from townhub.db.session import get_db
from townhub.services.quota_service import quota_report, reset_monthly_quotas, resolve_owner_context

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/notifications/quota")
def get_quota(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
) -> dict[str, Any]:
    """Notification and event quota for the caller's business (owners) or town (admins)."""
    owner = resolve_owner_context(db, auth.profile)
    return quota_report(db, owner)


def _check_cron_secret(authorization: str | None = Header(None)) -> None:
    if settings.cron_secret and authorization != f"Bearer {settings.cron_secret}":
        raise Unauthorized()


@router.api_route("/cron/reset-quotas", methods=["GET", "POST"], dependencies=[Depends(_check_cron_secret)])
def reset_quotas(db: Session = Depends(get_db)) -> dict[str, Any]:
    """
    Reset monthly usage for every counter that is due. Call daily from an external cron
    with Authorization: Bearer CRON_SECRET. Per-counter failures are reported, not raised.
    """
    result = reset_monthly_quotas(db)
    return {"success": result.failed_count == 0, **result.to_dict()}
