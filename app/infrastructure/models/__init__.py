"""ORM models used by the application infrastructure."""

from .device_token import DeviceTokenModel, PushPreferenceModel
from .notification import NotificationModel
from .recipient_delivery import RecipientDeliveryModel
from .user import UserModel

__all__ = [
    "DeviceTokenModel",
    "PushPreferenceModel",
    "NotificationModel",
    "RecipientDeliveryModel",
    "UserModel",
]
