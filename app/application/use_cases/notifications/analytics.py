"""Click tracking and aggregate delivery statistics."""

import logging
from datetime import timedelta

from sqlalchemy.orm import Session

from app.domain.errors import NotificationNotFound
from app.infrastructure.repositories import NotificationRepository
from app.utils import now_utc

logger = logging.getLogger(__name__)


def track_click(session: Session, *, notification_id: int, user_id: int | None = None) -> bool:
    """Record a click on ``notification_id``.

    The global counter grows on every call. The recipient row is flagged the
    first time a known recipient clicks; the return value tells whether that
    happened on this call.
    """

    repository = NotificationRepository(session)
    if not repository.increment_clicks(notification_id):
        raise NotificationNotFound(f"Notification {notification_id} not found")

    if user_id is None:
        return False
    first_click = repository.mark_clicked(notification_id, user_id)
    if first_click:
        logger.debug("User %s clicked notification %s", user_id, notification_id)
    return first_click


def notification_stats(session: Session, *, days: int = 7) -> dict[str, object]:
    """Return global totals and the number of sends per day for ``days`` days."""

    since = now_utc() - timedelta(days=days)
    return NotificationRepository(session).delivery_stats(since=since)


__all__ = ["track_click", "notification_stats"]
