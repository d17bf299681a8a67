from townhub.models.business import Business
from townhub.models.device_token import DeviceToken
from townhub.models.event import Event
from townhub.models.notification import Notification
from townhub.models.notification_delivery import NotificationDelivery
from townhub.models.place import Place
from townhub.models.profile import Profile
from townhub.models.quota_counter import QuotaCounter
from townhub.models.subscription import BusinessSubscription, PlaceSubscription
from townhub.models.town import Town

__all__ = [
    "Business",
    "BusinessSubscription",
    "DeviceToken",
    "Event",
    "Notification",
    "NotificationDelivery",
    "Place",
    "PlaceSubscription",
    "Profile",
    "QuotaCounter",
    "Town",
]
