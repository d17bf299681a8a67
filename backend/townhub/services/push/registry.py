"""Registry of push transports. The active one is chosen by PUSH_PROVIDER."""
import logging
from typing import Callable

from townhub.config import settings
from townhub.services.push.apns import ApnsTransport
from townhub.services.push.base import NullTransport, PushTransport
from townhub.services.push.expo import ExpoTransport

logger = logging.getLogger(__name__)

_factories: dict[str, Callable[[], PushTransport]] = {
    "expo": ExpoTransport,
    "apns": ApnsTransport,
    "none": NullTransport,
}
_active: PushTransport | None = None


def get_transport() -> PushTransport:
    """Transport for settings.push_provider (built once). Unknown provider -> NullTransport."""
    global _active
    if _active is None:
        factory = _factories.get(settings.push_provider)
        if factory is None:
            logger.warning("Unknown PUSH_PROVIDER %r; notifications will not be delivered", settings.push_provider)
            factory = NullTransport
        _active = factory()
        logger.info("Push transport: %s", _active.provider_id)
    return _active


def set_transport(transport: PushTransport | None) -> None:
    """Override the active transport (tests, scripts). None = rebuild from settings on next use."""
    global _active
    _active = transport
