"""
Send push notifications via Apple Push Notification service (APNs).
Requires APNS_KEY_ID, APNS_TEAM_ID, APNS_BUNDLE_ID and APNS_KEY_P8_PATH in env.
If not configured, send() logs and returns False.
"""
import logging
import threading
import time
from pathlib import Path

import httpx
import jwt

from townhub.config import settings
from townhub.services.push.base import PushMessage

logger = logging.getLogger(__name__)

# APNs host: sandbox for dev builds, production for release
APNS_SANDBOX = "https://api.sandbox.push.apple.com"
APNS_PRODUCTION = "https://api.push.apple.com"

_JWT_EXPIRY_SECONDS = 55 * 60  # APNs accepts tokens with iat within the last hour


class ApnsTransport:
    provider_id = "apns"

    def __init__(self):
        # Provider token cache: (token_string, expiry_epoch); fan-out threads share it
        self._jwt_cache: tuple[str, float] | None = None
        self._lock = threading.Lock()

    def _load_p8_key(self) -> str | None:
        path = settings.apns_key_p8_path
        if not path or not Path(path).exists():
            return None
        try:
            return Path(path).read_text(encoding="utf-8")
        except OSError as e:
            logger.warning("APNS_KEY_P8_PATH read failed: %s", e)
            return None

    def _provider_token(self) -> str | None:
        if not settings.apns_key_id or not settings.apns_team_id:
            return None
        now = time.time()
        with self._lock:
            if self._jwt_cache and self._jwt_cache[1] > now:
                return self._jwt_cache[0]
            p8 = self._load_p8_key()
            if not p8:
                return None
            try:
                token = jwt.encode(
                    {"iss": settings.apns_team_id, "iat": int(now)},
                    p8,
                    algorithm="ES256",
                    headers={"alg": "ES256", "kid": settings.apns_key_id},
                )
            except Exception as e:
                logger.warning("APNs JWT build failed: %s", e, exc_info=True)
                return None
            self._jwt_cache = (token, now + _JWT_EXPIRY_SECONDS)
            return token

    def send(self, token: str, platform: str, message: PushMessage) -> bool:
        if platform != "ios":
            logger.debug("APNs transport skips %s device", platform)
            return False
        if not settings.apns_bundle_id:
            logger.debug("APNS_BUNDLE_ID not set; skipping push")
            return False
        jwt_token = self._provider_token()
        if not jwt_token:
            logger.debug("APNs not configured (key/team); skipping push")
            return False
        base_url = APNS_SANDBOX if settings.apns_use_sandbox else APNS_PRODUCTION
        headers = {
            "authorization": f"bearer {jwt_token}",
            "apns-topic": settings.apns_bundle_id,
            "apns-push-type": "alert",
            "apns-priority": "10",
        }
        payload = {
            "aps": {"alert": {"title": message.title, "body": message.body}, "sound": "default"},
            **message.data,
        }
        try:
            with httpx.Client(http2=True, timeout=settings.push_timeout_seconds) as client:
                resp = client.post(f"{base_url}/3/device/{token}", json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("APNs request failed: %s", e)
            return False
        if resp.status_code == 200:
            return True
        logger.warning("APNs returned %s for token %s...: %s", resp.status_code, token[:20], resp.text)
        return False
