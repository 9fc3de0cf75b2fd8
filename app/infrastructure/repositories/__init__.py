"""Repository implementations for infrastructure layer."""

from .device_token_repository import DeviceTokenRepository
from .directory_repository import UserDirectory
from .notification_repository import NotificationRepository
from .push_preference_repository import PushPreferenceRepository

__all__ = [
    "DeviceTokenRepository",
    "UserDirectory",
    "NotificationRepository",
    "PushPreferenceRepository",
]
