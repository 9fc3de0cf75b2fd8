"""Paginated listings of received and sent notifications."""

from collections.abc import Sequence
from dataclasses import dataclass
from math import ceil
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from app.domain.entities import Notification, ReceivedNotification
from app.infrastructure.repositories import NotificationRepository

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    items: Sequence[T]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return ceil(self.total / self.limit) if self.limit else 0


def _normalize(page: int, limit: int, max_limit: int) -> tuple[int, int]:
    if page < 1:
        raise ValueError("page must be >= 1")
    if limit < 1:
        raise ValueError("limit must be >= 1")
    return page, min(limit, max_limit)


def list_received_notifications(
    session: Session,
    *,
    user_id: int,
    page: int = 1,
    limit: int = 20,
    read: bool | None = None,
    category: str | None = None,
    max_limit: int = 50,
) -> Page[ReceivedNotification]:
    """Return the user's notifications, newest first."""

    page, limit = _normalize(page, limit, max_limit)
    repository = NotificationRepository(session)
    items = repository.list_received(
        user_id, skip=(page - 1) * limit, limit=limit, read=read, category=category
    )
    total = repository.count_received(user_id, read=read, category=category)
    return Page(items=items, page=page, limit=limit, total=total)


def list_sent_notifications(
    session: Session,
    *,
    sender_id: int,
    page: int = 1,
    limit: int = 20,
    max_limit: int = 50,
) -> Page[Notification]:
    """Return notifications sent by ``sender_id`` with their counters."""

    page, limit = _normalize(page, limit, max_limit)
    repository = NotificationRepository(session)
    items = repository.list_sent(sender_id, skip=(page - 1) * limit, limit=limit)
    return Page(items=items, page=page, limit=limit, total=repository.count_sent(sender_id))


__all__ = ["Page", "list_received_notifications", "list_sent_notifications"]
