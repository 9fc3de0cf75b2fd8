"""Domain entities describing a notification and its per-recipient state."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

PRIORITY_LOW = "low"
PRIORITY_NORMAL = "normal"
PRIORITY_HIGH = "high"
PRIORITY_URGENT = "urgent"
PRIORITIES = (PRIORITY_LOW, PRIORITY_NORMAL, PRIORITY_HIGH, PRIORITY_URGENT)

CATEGORIES = ("announcement", "attendance", "assignment", "exam", "general")
DEFAULT_CATEGORY = "general"

TITLE_MAX_LENGTH = 100
MESSAGE_MAX_LENGTH = 500


@dataclass
class Notification:
    """Message sent once by a teacher or head of department to an audience."""

    id: int | None
    title: str
    message: str
    priority: str
    sender_id: int
    sender_name: str
    sender_role: str
    target_type: str
    target_value: str
    category: str = DEFAULT_CATEGORY
    push_enabled: bool = True
    created_at: datetime | None = None
    total_recipients: int = 0
    push_success_count: int = 0
    push_failure_count: int = 0
    clicks: int = 0

    def metadata(self) -> dict[str, object]:
        """Return the delivery/click counters in their published shape."""

        return {
            "category": self.category,
            "enablePush": self.push_enabled,
            "pushNotifications": {
                "successCount": self.push_success_count,
                "failureCount": self.push_failure_count,
            },
            "clicks": self.clicks,
        }


@dataclass
class RecipientDelivery:
    """Delivery, read and click state of one notification for one user."""

    notification_id: int
    user_id: int
    delivered: bool = False
    delivered_at: datetime | None = None
    read: bool = False
    read_at: datetime | None = None
    clicked: bool = False
    clicked_at: datetime | None = None
    created_at: datetime | None = None


@dataclass
class ReceivedNotification:
    """A notification as seen from a recipient's inbox."""

    notification: Notification
    delivery: RecipientDelivery

    @property
    def is_read(self) -> bool:
        return self.delivery.read


__all__ = [
    "PRIORITY_LOW",
    "PRIORITY_NORMAL",
    "PRIORITY_HIGH",
    "PRIORITY_URGENT",
    "PRIORITIES",
    "CATEGORIES",
    "DEFAULT_CATEGORY",
    "TITLE_MAX_LENGTH",
    "MESSAGE_MAX_LENGTH",
    "Notification",
    "RecipientDelivery",
    "ReceivedNotification",
]
