"""
Send push notifications through the Expo push service (tokens look like ExponentPushToken[...]).
EXPO_ACCESS_TOKEN is optional (required only when enhanced push security is on).
"""
import logging

import httpx

from townhub.config import settings
from townhub.services.push.base import PushMessage

logger = logging.getLogger(__name__)


def is_expo_push_token(token: str) -> bool:
    return (
        (token.startswith("ExponentPushToken[") or token.startswith("ExpoPushToken["))
        and token.endswith("]")
    )


class ExpoTransport:
    provider_id = "expo"

    def __init__(
        self,
        url: str | None = None,
        access_token: str | None = None,
        client: httpx.Client | None = None,
    ):
        self.url = url or settings.expo_push_url
        self.access_token = access_token if access_token is not None else settings.expo_access_token
        # Shared by all fan-out workers
        self._client = client or httpx.Client(timeout=settings.push_timeout_seconds)

    def _headers(self) -> dict[str, str]:
        headers = {"accept": "application/json", "content-type": "application/json"}
        if self.access_token:
            headers["authorization"] = f"Bearer {self.access_token}"
        return headers

    def send(self, token: str, platform: str, message: PushMessage) -> bool:
        if not is_expo_push_token(token):
            logger.warning("Not an Expo push token: %s...", token[:20])
            return False
        payload = {
            "to": token,
            "title": message.title,
            "body": message.body,
            "data": message.data,
            "sound": "default",
        }
        try:
            resp = self._client.post(self.url, json=payload, headers=self._headers())
        except httpx.HTTPError as e:
            logger.warning("Expo push request failed: %s", e)
            return False
        if resp.status_code != 200:
            logger.warning("Expo returned %s for token %s...: %s", resp.status_code, token[:20], resp.text)
            return False
        ticket = (resp.json() or {}).get("data") or {}
        if isinstance(ticket, list):
            ticket = ticket[0] if ticket else {}
        if ticket.get("status") == "ok":
            return True
        logger.warning("Expo ticket error for token %s...: %s", token[:20], ticket.get("message") or ticket)
        return False

    def close(self) -> None:
        self._client.close()
