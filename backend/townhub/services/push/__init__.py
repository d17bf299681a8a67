"""
Push transports: Expo, APNs, none.
Each sends to one device and reports success as a bool, so fan-out stays provider-agnostic.
"""
from townhub.services.push.base import NullTransport, PushMessage, PushTransport
from townhub.services.push.registry import get_transport, set_transport

__all__ = [
    "NullTransport",
    "PushMessage",
    "PushTransport",
    "get_transport",
    "set_transport",
]
