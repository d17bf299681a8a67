"""
Per-user notification preferences (profiles.notification_preferences JSON).

Shape:
  {
    "globalEnabled": bool,
    "categories": {"townAlerts", "weatherAlerts", "events", "emergencyAlerts"},
    "businessTypes": {"lodging", "restaurant", "attraction", "service"},
    "quietHours": {"enabled": bool, "start": "HH:MM", "end": "HH:MM"},
  }
NULL means the defaults. The old flat format ({"townAlerts", "weatherAlerts", "events",
"businessAlerts"}) is migrated on read.
"""
import copy
from datetime import datetime
from typing import Any

from townhub.utils.time import utcnow

DEFAULT_NOTIFICATION_PREFERENCES: dict[str, Any] = {
    "categories": {
        "townAlerts": True,
        "weatherAlerts": True,
        "events": True,
        "emergencyAlerts": True,
    },
    "businessTypes": {
        "lodging": True,
        "restaurant": True,
        "attraction": True,
        "service": True,
    },
    "globalEnabled": True,
    "quietHours": {"enabled": False, "start": "22:00", "end": "08:00"},
}

# Blocking reasons reported by audience estimates
BLOCKED_BY_PREFERENCES = "preferences"
BLOCKED_BY_QUIET_HOURS = "quiet_hours"

_TAG_BUSINESS_TYPES = (
    ("lodging", {"hotel", "guesthouse", "lodging", "accommodation"}),
    ("restaurant", {"restaurant", "cafe", "bar", "food"}),
    ("attraction", {"museum", "tour", "attraction", "activity"}),
    ("service", {"shop", "service", "store"}),
)

_PREFERENCE_KEYS = ("globalEnabled", "categories", "businessTypes", "quietHours")

_SEGMENT_CATEGORIES = {
    "weather": "weatherAlerts",
    "events": "events",
    "emergency": "emergencyAlerts",
}


def migrate_preferences(raw: dict[str, Any] | None) -> dict[str, Any]:
    """Stored JSON to the current shape; anything unreadable falls back to the defaults."""
    if not raw or not isinstance(raw, dict):
        return copy.deepcopy(DEFAULT_NOTIFICATION_PREFERENCES)
    if any(key in raw for key in _PREFERENCE_KEYS):
        prefs = copy.deepcopy(DEFAULT_NOTIFICATION_PREFERENCES)
        for key in ("categories", "businessTypes", "quietHours"):
            section = raw.get(key)
            if isinstance(section, dict):
                prefs[key].update(section)
        prefs["globalEnabled"] = bool(raw.get("globalEnabled", True))
        return prefs
    business = raw.get("businessAlerts", True)
    return {
        "categories": {
            "townAlerts": raw.get("townAlerts", True),
            "weatherAlerts": raw.get("weatherAlerts", True),
            "events": raw.get("events", True),
            "emergencyAlerts": True,
        },
        "businessTypes": {key: business for key in ("lodging", "restaurant", "attraction", "service")},
        "globalEnabled": True,
        "quietHours": copy.deepcopy(DEFAULT_NOTIFICATION_PREFERENCES["quietHours"]),
    }


def _minutes(hhmm: str) -> int:
    hours, minutes = (int(p) for p in hhmm.split(":", 1))
    return hours * 60 + minutes


def is_in_quiet_hours(quiet_hours: dict[str, Any], now: datetime | None = None) -> bool:
    """Overnight windows (start > end, e.g. 22:00-08:00) wrap past midnight."""
    if not isinstance(quiet_hours, dict) or not quiet_hours.get("enabled"):
        return False
    now = now or utcnow()
    current = now.hour * 60 + now.minute
    try:
        start = _minutes(quiet_hours.get("start") or "22:00")
        end = _minutes(quiet_hours.get("end") or "08:00")
    except (ValueError, TypeError, AttributeError):
        return False
    if start > end:
        return current >= start or current < end
    return start <= current < end


def place_tags_to_business_type(tags: list[str] | None) -> str | None:
    tag_set = {t.lower() for t in (tags or [])}
    for business_type, keys in _TAG_BUSINESS_TYPES:
        if tag_set & keys:
            return business_type
    return None


def segment_category(segment: str | None) -> str:
    return _SEGMENT_CATEGORIES.get((segment or "").lower(), "townAlerts")


def blocked_reason(
    raw: dict[str, Any] | None,
    *,
    business_type: str | None = None,
    category: str | None = None,
    now: datetime | None = None,
) -> str | None:
    """None when the user accepts this notification, else the blocking reason."""
    prefs = migrate_preferences(raw)
    if not prefs["globalEnabled"]:
        return BLOCKED_BY_PREFERENCES
    if business_type and not prefs["businessTypes"].get(business_type, True):
        return BLOCKED_BY_PREFERENCES
    if category and not prefs["categories"].get(category, True):
        return BLOCKED_BY_PREFERENCES
    if is_in_quiet_hours(prefs["quietHours"], now):
        return BLOCKED_BY_QUIET_HOURS
    return None
