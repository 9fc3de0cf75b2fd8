"""Broadcast freshly created notifications to connected recipients."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any

from anyio import from_thread

from app.domain.entities import Notification

from .inbox import InboxConnections, inbox_connections

EVENT_NEW_NOTIFICATION = "notification.new"


class RealtimeNotificationPublisher:
    """Serialize notifications and schedule their websocket delivery."""

    def __init__(self, connections: InboxConnections) -> None:
        self._connections = connections
        self._pending: set[asyncio.Task[int]] = set()

    def dispatch(self, notification: Notification, recipients: Iterable[int]) -> int:
        """Schedule ``notification`` for the online users among ``recipients``.

        Returns the number of users a message was scheduled for.
        """

        online = self._connections.online_among(recipients)
        if online:
            message = {
                "type": EVENT_NEW_NOTIFICATION,
                "data": serialize_notification(notification),
            }
            self._schedule_delivery(online, message)
        return len(online)

    def _schedule_delivery(self, user_ids: list[int], message: dict[str, Any]) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # Called from a request worker thread.
            from_thread.run_sync(self._create_delivery_task, user_ids, message)
        else:
            self._create_delivery_task(user_ids, message)

    def _create_delivery_task(self, user_ids: list[int], message: dict[str, Any]) -> None:
        task = asyncio.get_running_loop().create_task(
            self._connections.deliver(user_ids, message)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the websocket payload representation for ``notification``."""

    return {
        "id": notification.id,
        "title": notification.title,
        "message": notification.message,
        "priority": notification.priority,
        "category": notification.category,
        "senderName": notification.sender_name,
        "senderRole": notification.sender_role,
        "createdAt": notification.created_at.isoformat() if notification.created_at else None,
    }


realtime_publisher = RealtimeNotificationPublisher(inbox_connections)


__all__ = [
    "EVENT_NEW_NOTIFICATION",
    "RealtimeNotificationPublisher",
    "realtime_publisher",
    "serialize_notification",
]
