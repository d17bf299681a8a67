"""
Request dependencies: resolve the caller's auth context (user + profile).

Bearer token: HS256 JWT from the auth provider, sub = external user id.
MOCK_AUTH=true: X-Mock-User-Id header selects a profile directly (demo/dev only).
Resolution never raises; routes that need a caller use require_auth.
"""
import logging
from dataclasses import dataclass

import jwt
from fastapi import Depends, Header
from sqlalchemy.orm import Session

from townhub.config import settings
from townhub.core.errors import Unauthorized
from townhub.db.session import get_db
from townhub.models.profile import Profile

logger = logging.getLogger(__name__)


@dataclass
class AuthContext:
    user_id: str | None
    profile: Profile | None


def _decode_bearer(authorization: str | None) -> str | None:
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    if not settings.auth_jwt_secret:
        return None
    token = authorization.split(" ", 1)[1].strip()
    try:
        claims = jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=["HS256"],
            options={"verify_aud": False},
        )
    except jwt.PyJWTError as e:
        logger.debug("Bearer token rejected: %s", e)
        return None
    sub = claims.get("sub")
    return str(sub) if sub else None


def get_auth_context(
    db: Session = Depends(get_db),
    authorization: str | None = Header(None),
    x_mock_user_id: str | None = Header(None, alias="X-Mock-User-Id"),
) -> AuthContext:
    user_id = None
    if settings.mock_auth and x_mock_user_id:
        user_id = x_mock_user_id.strip() or None
    if user_id is None:
        user_id = _decode_bearer(authorization)
    if user_id is None:
        return AuthContext(None, None)
    profile = db.query(Profile).filter(Profile.user_id == user_id).first()
    return AuthContext(user_id, profile)


def require_auth(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
    if auth.user_id is None or auth.profile is None:
        raise Unauthorized()
    return auth
