"""
Single source of truth for database tables created by migration 001.

Use these names when writing raw SQL (e.g. TRUNCATE). Order is FK-safe for deletes
(children first).
"""
ALL_TABLE_NAMES = (
    "notification_deliveries",
    "notifications",
    "events",
    "device_tokens",
    "business_subscriptions",
    "place_subscriptions",
    "quota_counters",
    "businesses",
    "places",
    "profiles",
    "towns",
)

# Tables holding per-user notification state (cleared by scripts/clear_notification_state.py)
NOTIFICATION_TABLE_NAMES = (
    "notification_deliveries",
    "notifications",
)
