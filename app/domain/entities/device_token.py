"""Domain entity representing a push-capable device registration."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

PLATFORM_ANDROID = "android"
PLATFORM_IOS = "ios"
PLATFORM_WEB = "web"
PLATFORMS = (PLATFORM_ANDROID, PLATFORM_IOS, PLATFORM_WEB)


@dataclass
class DeviceToken:
    """Opaque token of one installed app instance."""

    id: int | None
    user_id: int
    token: str
    platform: str
    registered_at: datetime | None = None
    last_seen_at: datetime | None = None
    valid: bool = True
    invalidated_at: datetime | None = None
    invalid_reason: str | None = None


__all__ = [
    "PLATFORM_ANDROID",
    "PLATFORM_IOS",
    "PLATFORM_WEB",
    "PLATFORMS",
    "DeviceToken",
]
