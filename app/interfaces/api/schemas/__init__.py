from .notification import (
    FcmTokenRequest,
    FcmTokenResponse,
    MarkAllReadResponse,
    MarkReadResponse,
    NotificationCreate,
    NotificationCreateResponse,
    NotificationMetadata,
    NotificationOptions,
    NotificationRead,
    NotificationStatsRead,
    Pagination,
    PushCounters,
    PushSettingsRequest,
    PushSettingsResponse,
    ReadStateEntry,
    ReadStateRequest,
    ReadStateResponse,
    ReceivedNotificationList,
    ReceivedNotificationRead,
    SentNotificationList,
    TrackClickRequest,
    TrackClickResponse,
    UnreadCountResponse,
)

__all__ = [
    "FcmTokenRequest",
    "FcmTokenResponse",
    "MarkAllReadResponse",
    "MarkReadResponse",
    "NotificationCreate",
    "NotificationCreateResponse",
    "NotificationMetadata",
    "NotificationOptions",
    "NotificationRead",
    "NotificationStatsRead",
    "Pagination",
    "PushCounters",
    "PushSettingsRequest",
    "PushSettingsResponse",
    "ReadStateEntry",
    "ReadStateRequest",
    "ReadStateResponse",
    "ReceivedNotificationList",
    "ReceivedNotificationRead",
    "SentNotificationList",
    "TrackClickRequest",
    "TrackClickResponse",
    "UnreadCountResponse",
]
