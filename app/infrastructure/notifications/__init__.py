"""Realtime notification helpers for the infrastructure layer."""

from .inbox import InboxConnections, inbox_connections
from .publisher import (
    EVENT_NEW_NOTIFICATION,
    RealtimeNotificationPublisher,
    realtime_publisher,
    serialize_notification,
)

__all__ = [
    "InboxConnections",
    "inbox_connections",
    "EVENT_NEW_NOTIFICATION",
    "RealtimeNotificationPublisher",
    "realtime_publisher",
    "serialize_notification",
]
