"""Pydantic models describing notification payloads.

Bodies use camelCase on the wire, matching the mobile and web clients.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.domain.entities import DEFAULT_CATEGORY, PRIORITY_NORMAL


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NotificationOptions(CamelModel):
    enable_push: bool = True
    category: str = DEFAULT_CATEGORY


class NotificationCreate(CamelModel):
    """Payload used to send a notification."""

    title: str
    message: str
    target_type: str
    target_value: str = ""
    priority: str = PRIORITY_NORMAL
    metadata: NotificationOptions = Field(default_factory=NotificationOptions)


class PushCounters(CamelModel):
    success_count: int = 0
    failure_count: int = 0


class NotificationMetadata(CamelModel):
    category: str
    enable_push: bool
    push_notifications: PushCounters
    clicks: int = 0


class NotificationRead(CamelModel):
    """Notification as exposed to senders and recipients."""

    id: int
    title: str
    message: str
    priority: str
    category: str
    sender_id: int
    sender_name: str
    sender_role: str
    target_type: str
    target_value: str
    created_at: datetime | None = None
    total_recipients: int = 0
    clicks: int = 0
    metadata: NotificationMetadata


class ReceivedNotificationRead(NotificationRead):
    is_read: bool
    read_at: datetime | None = None
    delivered: bool
    clicked: bool


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class ReceivedNotificationList(CamelModel):
    notifications: list[ReceivedNotificationRead]
    pagination: Pagination


class SentNotificationList(CamelModel):
    notifications: list[NotificationRead]
    pagination: Pagination


class NotificationCreateResponse(CamelModel):
    notification: NotificationRead
    recipient_count: int
    queued_push_jobs: int = 0


class MarkReadResponse(CamelModel):
    notification_id: int
    is_read: bool
    read_at: datetime | None = None


class MarkAllReadResponse(CamelModel):
    updated: int


class UnreadCountResponse(CamelModel):
    count: int


class ReadStateRequest(CamelModel):
    """Ids the client marked as read while offline."""

    read_ids: list[int] = Field(default_factory=list)


class ReadStateEntry(CamelModel):
    notification_id: int
    is_read: bool


class ReadStateResponse(CamelModel):
    states: list[ReadStateEntry]


class TrackClickRequest(CamelModel):
    notification_id: int


class TrackClickResponse(CamelModel):
    success: bool = True
    first_click: bool = False


class FcmTokenRequest(CamelModel):
    fcm_token: str = Field(..., min_length=1)
    platform: str | None = None


class FcmTokenResponse(CamelModel):
    success: bool = True
    platform: str


class PushSettingsRequest(CamelModel):
    enabled: bool


class PushSettingsResponse(CamelModel):
    enabled: bool


class DailyCount(CamelModel):
    date: str
    count: int


class NotificationStatsRead(CamelModel):
    total_sent: int
    total_recipients: int
    total_delivered: int
    total_read: int
    push_success: int
    push_failure: int
    clicks: int
    recent: list[DailyCount]


__all__ = [
    "NotificationOptions",
    "NotificationCreate",
    "PushCounters",
    "NotificationMetadata",
    "NotificationRead",
    "ReceivedNotificationRead",
    "Pagination",
    "ReceivedNotificationList",
    "SentNotificationList",
    "NotificationCreateResponse",
    "MarkReadResponse",
    "MarkAllReadResponse",
    "UnreadCountResponse",
    "ReadStateRequest",
    "ReadStateEntry",
    "ReadStateResponse",
    "TrackClickRequest",
    "TrackClickResponse",
    "FcmTokenRequest",
    "FcmTokenResponse",
    "PushSettingsRequest",
    "PushSettingsResponse",
    "DailyCount",
    "NotificationStatsRead",
]
