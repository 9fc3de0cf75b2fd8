"""Domain entities exposed by the application."""

from .device_token import PLATFORM_ANDROID, PLATFORM_IOS, PLATFORM_WEB, PLATFORMS, DeviceToken
from .identity import (
    ROLE_STUDENT,
    ROLE_SUPER_ADMIN,
    ROLE_TEACHER,
    Identity,
)
from .notification import (
    CATEGORIES,
    DEFAULT_CATEGORY,
    MESSAGE_MAX_LENGTH,
    PRIORITIES,
    PRIORITY_HIGH,
    PRIORITY_LOW,
    PRIORITY_NORMAL,
    PRIORITY_URGENT,
    TITLE_MAX_LENGTH,
    Notification,
    ReceivedNotification,
    RecipientDelivery,
)
from .push_job import PushJob, PushJobState
from .target_spec import (
    AllStudents,
    AllTeachers,
    HeadOfDepartment,
    SpecificSection,
    SpecificUsers,
    SpecificYear,
    TargetSpec,
    parse_target,
    to_wire,
)

__all__ = [
    "PLATFORM_ANDROID",
    "PLATFORM_IOS",
    "PLATFORM_WEB",
    "PLATFORMS",
    "DeviceToken",
    "ROLE_STUDENT",
    "ROLE_SUPER_ADMIN",
    "ROLE_TEACHER",
    "Identity",
    "CATEGORIES",
    "DEFAULT_CATEGORY",
    "MESSAGE_MAX_LENGTH",
    "PRIORITIES",
    "PRIORITY_HIGH",
    "PRIORITY_LOW",
    "PRIORITY_NORMAL",
    "PRIORITY_URGENT",
    "TITLE_MAX_LENGTH",
    "Notification",
    "ReceivedNotification",
    "RecipientDelivery",
    "PushJob",
    "PushJobState",
    "AllStudents",
    "AllTeachers",
    "HeadOfDepartment",
    "SpecificSection",
    "SpecificUsers",
    "SpecificYear",
    "TargetSpec",
    "parse_target",
    "to_wire",
]
