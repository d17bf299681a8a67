"""Notification preferences: defaults, old-format migration, quiet hours, blocking."""
from datetime import datetime, timezone

import pytest

from townhub.services.preferences import (
    BLOCKED_BY_PREFERENCES,
    BLOCKED_BY_QUIET_HOURS,
    DEFAULT_NOTIFICATION_PREFERENCES,
    blocked_reason,
    is_in_quiet_hours,
    migrate_preferences,
    place_tags_to_business_type,
    segment_category,
)


def _at(hour, minute=0):
    return datetime(2026, 10, 19, hour, minute, tzinfo=timezone.utc)


def test_missing_preferences_are_the_defaults():
    assert migrate_preferences(None) == DEFAULT_NOTIFICATION_PREFERENCES
    prefs = migrate_preferences({})
    prefs["categories"]["townAlerts"] = False
    assert DEFAULT_NOTIFICATION_PREFERENCES["categories"]["townAlerts"] is True


def test_old_flat_format_is_migrated():
    prefs = migrate_preferences({"townAlerts": False, "weatherAlerts": True, "events": True, "businessAlerts": False})
    assert prefs["categories"]["townAlerts"] is False
    assert prefs["categories"]["emergencyAlerts"] is True
    assert set(prefs["businessTypes"].values()) == {False}
    assert prefs["globalEnabled"] is True


def test_partial_new_format_is_merged_with_defaults():
    prefs = migrate_preferences({"categories": {"events": False}})
    assert prefs["categories"]["events"] is False
    assert prefs["categories"]["townAlerts"] is True
    assert prefs["quietHours"]["enabled"] is False


@pytest.mark.parametrize(
    "start,end,now,expected",
    [
        ("22:00", "08:00", _at(23, 30), True),
        ("22:00", "08:00", _at(7, 59), True),
        ("22:00", "08:00", _at(8, 0), False),
        ("22:00", "08:00", _at(12, 0), False),
        ("12:00", "14:00", _at(13, 0), True),
        ("12:00", "14:00", _at(14, 0), False),
    ],
)
def test_quiet_hours_window(start, end, now, expected):
    assert is_in_quiet_hours({"enabled": True, "start": start, "end": end}, now) is expected


def test_disabled_or_malformed_quiet_hours_never_block():
    assert is_in_quiet_hours({"enabled": False, "start": "00:00", "end": "23:59"}, _at(12)) is False
    assert is_in_quiet_hours({"enabled": True, "start": "noon", "end": "08:00"}, _at(12)) is False


def test_place_tags_map_to_business_type():
    assert place_tags_to_business_type(["Hotel", "lake"]) == "lodging"
    assert place_tags_to_business_type(["cafe"]) == "restaurant"
    assert place_tags_to_business_type(["museum"]) == "attraction"
    assert place_tags_to_business_type(["store"]) == "service"
    assert place_tags_to_business_type(["viewpoint"]) is None
    assert place_tags_to_business_type(None) is None


def test_segment_category():
    assert segment_category("weather") == "weatherAlerts"
    assert segment_category("EMERGENCY") == "emergencyAlerts"
    assert segment_category(None) == "townAlerts"


def test_blocked_reason():
    assert blocked_reason(None, category="townAlerts", now=_at(12)) is None
    assert blocked_reason({"globalEnabled": False}, now=_at(12)) == BLOCKED_BY_PREFERENCES
    assert (
        blocked_reason({"businessTypes": {"lodging": False}}, business_type="lodging", now=_at(12))
        == BLOCKED_BY_PREFERENCES
    )
    assert blocked_reason({"categories": {"weatherAlerts": False}}, category="weatherAlerts", now=_at(12)) == (
        BLOCKED_BY_PREFERENCES
    )
    quiet = {"quietHours": {"enabled": True, "start": "22:00", "end": "08:00"}}
    assert blocked_reason(quiet, category="townAlerts", now=_at(23)) == BLOCKED_BY_QUIET_HOURS
    assert blocked_reason(quiet, category="townAlerts", now=_at(12)) is None


@pytest.mark.parametrize(
    "raw",
    [
        ["townAlerts"],
        "off",
        {"categories": ["events"], "businessTypes": "none", "quietHours": 1},
    ],
)
def test_malformed_preferences_fall_back_to_defaults(raw):
    assert migrate_preferences(raw) == DEFAULT_NOTIFICATION_PREFERENCES
    assert blocked_reason(raw, category="events", business_type="lodging", now=_at(23)) is None


def test_quiet_hours_with_wrong_types_never_block():
    assert is_in_quiet_hours({"enabled": True, "start": 2200, "end": "08:00"}, _at(23)) is False
    assert is_in_quiet_hours({"enabled": True, "start": "22:00", "end": ["08:00"]}, _at(23)) is False
    assert is_in_quiet_hours("22:00-08:00", _at(23)) is False
    assert blocked_reason({"quietHours": {"enabled": True, "start": 2200}}, now=_at(23)) is None
