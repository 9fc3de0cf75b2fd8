"""Use cases of the notification engine."""

from .analytics import notification_stats, track_click
from .device_tokens import register_device_token, set_push_enabled
from .dispatch import DispatchResult, PushEnqueue, build_push_payload, send_notification
from .queries import Page, list_received_notifications, list_sent_notifications
from .read_state import (
    mark_all_notifications_read,
    mark_notification_read,
    reconcile_read_state,
    unread_count,
)
from .targeting import DirectoryQuery, resolve_targets

__all__ = [
    "notification_stats",
    "track_click",
    "register_device_token",
    "set_push_enabled",
    "DispatchResult",
    "PushEnqueue",
    "build_push_payload",
    "send_notification",
    "Page",
    "list_received_notifications",
    "list_sent_notifications",
    "mark_all_notifications_read",
    "mark_notification_read",
    "reconcile_read_state",
    "unread_count",
    "DirectoryQuery",
    "resolve_targets",
]
