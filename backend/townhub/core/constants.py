"""
Centralized constants for quotas, notification types and scheduler jobs.

Change tier limits, job IDs or type categories here instead of scattering literals
across services and routes.
"""
# Roles (profiles.role)
ROLE_SUPER_ADMIN = "SUPER_ADMIN"
ROLE_TOWN_ADMIN = "TOWN_ADMIN"
ROLE_BUSINESS_OWNER = "BUSINESS_OWNER"
ROLE_RESIDENT = "RESIDENT"

# Quota owners and resources
OWNER_BUSINESS = "business"
OWNER_TOWN = "town"
RESOURCE_NOTIFICATION = "notification"
RESOURCE_EVENT = "event"
RESOURCE_KINDS = (RESOURCE_NOTIFICATION, RESOURCE_EVENT)

# Business subscription tiers: monthly limits per resource (None = unlimited)
BUSINESS_TIERS: dict[str, dict[str, int | None]] = {
    "free": {RESOURCE_NOTIFICATION: 0, RESOURCE_EVENT: 1},
    "starter": {RESOURCE_NOTIFICATION: 4, RESOURCE_EVENT: 3},
    "growth": {RESOURCE_NOTIFICATION: 12, RESOURCE_EVENT: 8},
    "premium": {RESOURCE_NOTIFICATION: 30, RESOURCE_EVENT: None},
}
DEFAULT_BUSINESS_TIER = "free"

# Town standard package; towns.monthly_*_limit override these when set
TOWN_TIER: dict[str, int | None] = {RESOURCE_NOTIFICATION: 50, RESOURCE_EVENT: 20}

# Notification types -> category ('business' | 'town')
NOTIFICATION_CATEGORY_BUSINESS = "business"
NOTIFICATION_CATEGORY_TOWN = "town"
NOTIFICATION_TYPES: dict[str, str] = {
    "BUSINESS_PROMO": NOTIFICATION_CATEGORY_BUSINESS,
    "BUSINESS_EVENT": NOTIFICATION_CATEGORY_BUSINESS,
    "BUSINESS_UPDATE": NOTIFICATION_CATEGORY_BUSINESS,
    "TOWN_ALERT": NOTIFICATION_CATEGORY_TOWN,
    "WEATHER_ALERT": NOTIFICATION_CATEGORY_TOWN,
    "EVENT_ANNOUNCEMENT": NOTIFICATION_CATEGORY_TOWN,
    "EMERGENCY_ALERT": NOTIFICATION_CATEGORY_TOWN,
}

# Audience targets
TARGET_BUSINESS_SUBSCRIBERS = "BUSINESS_SUBSCRIBERS"
TARGET_PLACE_SUBSCRIBERS = "PLACE_SUBSCRIBERS"
TARGET_TOWN = "TOWN"
TARGET_SEGMENT = "SEGMENT"
TARGET_TYPES = (TARGET_BUSINESS_SUBSCRIBERS, TARGET_PLACE_SUBSCRIBERS, TARGET_TOWN, TARGET_SEGMENT)

# Notification lifecycle
STATUS_DRAFT = "draft"
STATUS_SENDING = "sending"
STATUS_SENT = "sent"
STATUS_FAILED = "failed"

# Device platforms accepted by register-device
DEVICE_PLATFORMS = ("ios", "android", "web")

# Recipient inbox page size
USER_NOTIFICATIONS_LIMIT = 50

# Scheduler job IDs (must match ids used in main.py add_job)
QUOTA_RESET_JOB_ID = "quota_monthly_reset"
