"""Push transport contract. The dispatcher only sees a per-device True/False outcome."""
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PushMessage:
    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)


class PushTransport(Protocol):
    """Expo, APNs, ... Same contract; only the wire call differs."""

    @property
    def provider_id(self) -> str:
        ...

    def send(self, token: str, platform: str, message: PushMessage) -> bool:
        """Deliver to one device. True if the provider accepted it."""
        ...


class NullTransport:
    """push_provider=none: nothing is delivered, every attempt counts as failed."""

    provider_id = "none"

    def send(self, token: str, platform: str, message: PushMessage) -> bool:
        logger.debug("PUSH_PROVIDER=none; not delivering to %s device %s...", platform, token[:20])
        return False
