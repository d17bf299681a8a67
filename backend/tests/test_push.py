"""Push transports: Expo ticket handling, provider registry."""
import json

import httpx

from townhub.services.push import NullTransport, PushMessage, get_transport, set_transport
from townhub.services.push.expo import ExpoTransport, is_expo_push_token

MESSAGE = PushMessage(title="Storm warning", body="Gusts up to 90 km/h", data={"notificationId": 7})


def _expo(handler, access_token=""):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return ExpoTransport(url="https://expo.test/push", access_token=access_token, client=client)


def test_expo_token_shape():
    assert is_expo_push_token("ExponentPushToken[abc]")
    assert is_expo_push_token("ExpoPushToken[abc]")
    assert not is_expo_push_token("a1b2c3d4")


def test_expo_ok_ticket_is_delivered():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={"data": {"status": "ok", "id": "ticket-1"}})

    transport = _expo(handler, access_token="expo-secret")
    assert transport.send("ExponentPushToken[abc]", "ios", MESSAGE) is True
    assert seen["body"]["to"] == "ExponentPushToken[abc]"
    assert seen["body"]["data"] == {"notificationId": 7}
    assert seen["auth"] == "Bearer expo-secret"


def test_expo_error_ticket_is_a_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"data": [{"status": "error", "message": "DeviceNotRegistered"}]},
        )

    assert _expo(handler).send("ExponentPushToken[gone]", "android", MESSAGE) is False


def test_expo_http_error_is_a_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="unavailable")

    assert _expo(handler).send("ExponentPushToken[abc]", "ios", MESSAGE) is False


def test_expo_rejects_foreign_tokens_without_calling_out():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"data": {"status": "ok"}})

    assert _expo(handler).send("apns-device-token", "ios", MESSAGE) is False
    assert calls == []


def test_registry_builds_from_settings_and_accepts_override():
    set_transport(None)
    try:
        assert isinstance(get_transport(), NullTransport)
        assert get_transport().send("ExponentPushToken[abc]", "ios", MESSAGE) is False

        override = NullTransport()
        set_transport(override)
        assert get_transport() is override
    finally:
        set_transport(None)
