from townhub.services.device_service import register_device, resolve_audience
from townhub.services.quota_service import check_quota, consume_quota, reset_monthly_quotas
from townhub.services.subscription_service import list_active, subscribe, unsubscribe
from townhub.services.notification_service import dispatch, send_notification

__all__ = [
    "check_quota",
    "consume_quota",
    "dispatch",
    "list_active",
    "register_device",
    "reset_monthly_quotas",
    "resolve_audience",
    "send_notification",
    "subscribe",
    "unsubscribe",
]
