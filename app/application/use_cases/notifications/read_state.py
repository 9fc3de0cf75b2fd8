"""Use cases for the per-recipient read state."""

from collections.abc import Iterable

from sqlalchemy.orm import Session

from app.domain.entities import RecipientDelivery
from app.infrastructure.repositories import NotificationRepository


def mark_notification_read(
    session: Session, *, notification_id: int, user_id: int
) -> RecipientDelivery:
    """Mark the notification as read for ``user_id``.

    Repeated calls leave the first ``read_at`` untouched. Raises
    :class:`NotificationNotFound` when the user is not a recipient.
    """

    return NotificationRepository(session).mark_read(notification_id, user_id)


def mark_all_notifications_read(session: Session, *, user_id: int) -> int:
    """Mark every notification unread at call time as read; return the count."""

    return NotificationRepository(session).mark_all_read(user_id)


def unread_count(session: Session, *, user_id: int) -> int:
    return NotificationRepository(session).unread_count(user_id)


def reconcile_read_state(
    session: Session, *, user_id: int, client_read_ids: Iterable[int]
) -> dict[int, bool]:
    """Acknowledge reads made offline by the client and return server flags.

    The server state wins: reads only move forward, and ids the user never
    received are absent from the result.
    """

    ids = list(dict.fromkeys(int(notification_id) for notification_id in client_read_ids))
    if not ids:
        return {}
    repository = NotificationRepository(session)
    repository.mark_read_many(ids, user_id=user_id)
    return repository.read_flags(user_id, ids)


__all__ = [
    "mark_notification_read",
    "mark_all_notifications_read",
    "unread_count",
    "reconcile_read_state",
]
