"""Persistence helpers for notifications and their per-recipient rows."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

import logging

from sqlalchemy import func, insert, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.entities import Notification, ReceivedNotification, RecipientDelivery
from app.domain.errors import NotificationNotFound, StorageFailure
from app.infrastructure.models import NotificationModel, RecipientDeliveryModel
from app.utils import ensure_naive_utc, ensure_utc, now_naive_utc

logger = logging.getLogger(__name__)

_IN_CLAUSE_CHUNK = 500


def _chunks(values: Sequence[int], size: int = _IN_CLAUSE_CHUNK) -> Iterable[Sequence[int]]:
    for start in range(0, len(values), size):
        yield values[start : start + size]


class NotificationRepository:
    """Own the ``notification`` and ``recipient_delivery`` tables."""

    def __init__(self, session: Session) -> None:
        self.session = session

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    def create(
        self,
        notification: Notification,
        recipient_ids: Iterable[int],
        *,
        pending_push_ids: Iterable[int] = (),
    ) -> Notification:
        """Persist ``notification`` and one delivery row per recipient atomically.

        Recipients listed in ``pending_push_ids`` start undelivered until the
        push pipeline confirms a send; everyone else is delivered in-app on
        creation. Either every row is committed or none is.
        """

        unique_ids = list(dict.fromkeys(int(user_id) for user_id in recipient_ids))
        pending = {int(user_id) for user_id in pending_push_ids}
        now = now_naive_utc()

        model = NotificationModel()
        self._apply_entity_to_model(model, notification)
        model.created_at = ensure_naive_utc(notification.created_at) or now
        model.total_recipients = len(unique_ids)
        model.push_success_count = 0
        model.push_failure_count = 0
        model.clicks = 0

        try:
            self.session.add(model)
            self.session.flush()
            if unique_ids:
                self.session.execute(
                    insert(RecipientDeliveryModel),
                    [
                        {
                            "notification_id": model.id,
                            "user_id": user_id,
                            "delivered": user_id not in pending,
                            "delivered_at": None if user_id in pending else now,
                            "read": False,
                            "clicked": False,
                            "created_at": now,
                        }
                        for user_id in unique_ids
                    ],
                )
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Fan-out transaction rolled back for '%s'", notification.title)
            raise StorageFailure("Could not persist the notification") from exc

        return self._to_entity(model)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, notification_id: int) -> Notification | None:
        model = (
            self.session.query(NotificationModel)
            .populate_existing()
            .filter(NotificationModel.id == notification_id)
            .one_or_none()
        )
        return self._to_entity(model) if model else None

    def get_delivery(self, notification_id: int, user_id: int) -> RecipientDelivery | None:
        model = self._get_delivery_model(notification_id, user_id)
        return self._delivery_to_entity(model) if model else None

    def list_delivery_rows(self, notification_id: int) -> list[RecipientDelivery]:
        query = (
            self.session.query(RecipientDeliveryModel)
            .populate_existing()
            .filter(RecipientDeliveryModel.notification_id == notification_id)
            .order_by(RecipientDeliveryModel.id)
        )
        return [self._delivery_to_entity(model) for model in query.all()]

    def list_received(
        self,
        user_id: int,
        *,
        skip: int = 0,
        limit: int | None = 20,
        read: bool | None = None,
        category: str | None = None,
    ) -> Sequence[ReceivedNotification]:
        query = self._received_query(user_id, read=read, category=category)
        query = query.order_by(
            NotificationModel.created_at.desc(), NotificationModel.id.desc()
        ).offset(skip)
        if limit is not None:
            query = query.limit(limit)
        return [
            ReceivedNotification(
                notification=self._to_entity(notification),
                delivery=self._delivery_to_entity(delivery),
            )
            for delivery, notification in query.all()
        ]

    def count_received(
        self, user_id: int, *, read: bool | None = None, category: str | None = None
    ) -> int:
        return self._received_query(user_id, read=read, category=category).count()

    def unread_count(self, user_id: int) -> int:
        return (
            self.session.query(func.count(RecipientDeliveryModel.id))
            .filter(RecipientDeliveryModel.user_id == user_id)
            .filter(RecipientDeliveryModel.read.is_(False))
            .scalar()
            or 0
        )

    def list_sent(
        self, sender_id: int, *, skip: int = 0, limit: int | None = 20
    ) -> Sequence[Notification]:
        query = (
            self.session.query(NotificationModel)
            .populate_existing()
            .filter(NotificationModel.sender_id == sender_id)
            .order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
            .offset(skip)
        )
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def count_sent(self, sender_id: int) -> int:
        return (
            self.session.query(func.count(NotificationModel.id))
            .filter(NotificationModel.sender_id == sender_id)
            .scalar()
            or 0
        )

    def read_flags(self, user_id: int, notification_ids: Sequence[int]) -> dict[int, bool]:
        """Return ``{notification_id: read}`` for the ids the user received."""

        flags: dict[int, bool] = {}
        for chunk in _chunks(list(notification_ids)):
            rows = (
                self.session.query(
                    RecipientDeliveryModel.notification_id, RecipientDeliveryModel.read
                )
                .filter(RecipientDeliveryModel.user_id == user_id)
                .filter(RecipientDeliveryModel.notification_id.in_(chunk))
                .all()
            )
            flags.update({notification_id: bool(read) for notification_id, read in rows})
        return flags

    # ------------------------------------------------------------------
    # Read state (read/clicked columns only)
    # ------------------------------------------------------------------

    def mark_read(self, notification_id: int, user_id: int) -> RecipientDelivery:
        """Mark one delivery as read; ``read_at`` is only set the first time."""

        self.session.execute(
            update(RecipientDeliveryModel)
            .where(
                RecipientDeliveryModel.notification_id == notification_id,
                RecipientDeliveryModel.user_id == user_id,
                RecipientDeliveryModel.read.is_(False),
            )
            .values(read=True, read_at=now_naive_utc())
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        model = self._get_delivery_model(notification_id, user_id)
        if model is None:
            raise NotificationNotFound(
                f"Notification {notification_id} was not delivered to user {user_id}"
            )
        return self._delivery_to_entity(model)

    def mark_read_many(self, notification_ids: Sequence[int], *, user_id: int) -> int:
        updated = 0
        now = now_naive_utc()
        for chunk in _chunks(list(notification_ids)):
            result = self.session.execute(
                update(RecipientDeliveryModel)
                .where(
                    RecipientDeliveryModel.user_id == user_id,
                    RecipientDeliveryModel.notification_id.in_(chunk),
                    RecipientDeliveryModel.read.is_(False),
                )
                .values(read=True, read_at=now)
                .execution_options(synchronize_session=False)
            )
            updated += result.rowcount or 0
        self.session.commit()
        return updated

    def mark_all_read(self, user_id: int) -> int:
        """Mark the rows unread at call time as read.

        Rows created after the snapshot below keep their unread state.
        """

        snapshot = self._unread_delivery_ids(user_id)
        if not snapshot:
            return 0

        updated = 0
        now = now_naive_utc()
        for chunk in _chunks(snapshot):
            result = self.session.execute(
                update(RecipientDeliveryModel)
                .where(
                    RecipientDeliveryModel.id.in_(chunk),
                    RecipientDeliveryModel.read.is_(False),
                )
                .values(read=True, read_at=now)
                .execution_options(synchronize_session=False)
            )
            updated += result.rowcount or 0
        self.session.commit()
        return updated

    def mark_clicked(self, notification_id: int, user_id: int) -> bool:
        result = self.session.execute(
            update(RecipientDeliveryModel)
            .where(
                RecipientDeliveryModel.notification_id == notification_id,
                RecipientDeliveryModel.user_id == user_id,
                RecipientDeliveryModel.clicked.is_(False),
            )
            .values(clicked=True, clicked_at=now_naive_utc())
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return bool(result.rowcount)

    # ------------------------------------------------------------------
    # Delivery state and counters (delivered column and notification counters)
    # ------------------------------------------------------------------

    def mark_delivered(self, notification_id: int, user_id: int) -> bool:
        result = self.session.execute(
            update(RecipientDeliveryModel)
            .where(
                RecipientDeliveryModel.notification_id == notification_id,
                RecipientDeliveryModel.user_id == user_id,
                RecipientDeliveryModel.delivered.is_(False),
            )
            .values(delivered=True, delivered_at=now_naive_utc())
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return bool(result.rowcount)

    def increment_push_counters(
        self, notification_id: int, *, success: int = 0, failure: int = 0
    ) -> None:
        if not success and not failure:
            return
        self.session.execute(
            update(NotificationModel)
            .where(NotificationModel.id == notification_id)
            .values(
                push_success_count=NotificationModel.push_success_count + success,
                push_failure_count=NotificationModel.push_failure_count + failure,
            )
            .execution_options(synchronize_session=False)
        )
        self.session.commit()

    def increment_clicks(self, notification_id: int) -> bool:
        result = self.session.execute(
            update(NotificationModel)
            .where(NotificationModel.id == notification_id)
            .values(clicks=NotificationModel.clicks + 1)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return bool(result.rowcount)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def delivery_stats(self, *, since: datetime) -> dict[str, object]:
        """Aggregate sent/read/push/click totals plus a per-day series since ``since``."""

        totals = self.session.query(
            func.count(NotificationModel.id),
            func.coalesce(func.sum(NotificationModel.total_recipients), 0),
            func.coalesce(func.sum(NotificationModel.push_success_count), 0),
            func.coalesce(func.sum(NotificationModel.push_failure_count), 0),
            func.coalesce(func.sum(NotificationModel.clicks), 0),
        ).one()
        total_read = (
            self.session.query(func.count(RecipientDeliveryModel.id))
            .filter(RecipientDeliveryModel.read.is_(True))
            .scalar()
            or 0
        )
        total_delivered = (
            self.session.query(func.count(RecipientDeliveryModel.id))
            .filter(RecipientDeliveryModel.delivered.is_(True))
            .scalar()
            or 0
        )

        created_rows = (
            self.session.query(NotificationModel.created_at)
            .filter(NotificationModel.created_at >= ensure_naive_utc(since))
            .all()
        )
        per_day: dict[str, int] = {}
        for (created_at,) in created_rows:
            day = created_at.date().isoformat()
            per_day[day] = per_day.get(day, 0) + 1

        total_sent, total_recipients, push_success, push_failure, clicks = totals
        return {
            "total_sent": int(total_sent),
            "total_recipients": int(total_recipients),
            "total_delivered": int(total_delivered),
            "total_read": int(total_read),
            "push_success": int(push_success),
            "push_failure": int(push_failure),
            "clicks": int(clicks),
            "recent": [{"date": day, "count": per_day[day]} for day in sorted(per_day)],
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _received_query(self, user_id: int, *, read: bool | None, category: str | None):
        query = (
            self.session.query(RecipientDeliveryModel, NotificationModel)
            .populate_existing()
            .join(NotificationModel, RecipientDeliveryModel.notification_id == NotificationModel.id)
            .filter(RecipientDeliveryModel.user_id == user_id)
        )
        if read is not None:
            query = query.filter(RecipientDeliveryModel.read.is_(read))
        if category:
            query = query.filter(NotificationModel.category == category)
        return query

    def _unread_delivery_ids(self, user_id: int) -> list[int]:
        rows = (
            self.session.query(RecipientDeliveryModel.id)
            .filter(RecipientDeliveryModel.user_id == user_id)
            .filter(RecipientDeliveryModel.read.is_(False))
            .all()
        )
        return [row_id for (row_id,) in rows]

    def _get_delivery_model(
        self, notification_id: int, user_id: int
    ) -> RecipientDeliveryModel | None:
        return (
            self.session.query(RecipientDeliveryModel)
            .populate_existing()
            .filter(RecipientDeliveryModel.notification_id == notification_id)
            .filter(RecipientDeliveryModel.user_id == user_id)
            .one_or_none()
        )

    @staticmethod
    def _apply_entity_to_model(model: NotificationModel, notification: Notification) -> None:
        model.title = notification.title
        model.message = notification.message
        model.priority = notification.priority
        model.category = notification.category
        model.sender_id = notification.sender_id
        model.sender_name = notification.sender_name
        model.sender_role = notification.sender_role
        model.target_type = notification.target_type
        model.target_value = notification.target_value
        model.push_enabled = notification.push_enabled

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            title=model.title,
            message=model.message,
            priority=model.priority,
            sender_id=model.sender_id,
            sender_name=model.sender_name,
            sender_role=model.sender_role,
            target_type=model.target_type,
            target_value=model.target_value,
            category=model.category,
            push_enabled=bool(model.push_enabled),
            created_at=ensure_utc(model.created_at),
            total_recipients=model.total_recipients,
            push_success_count=model.push_success_count,
            push_failure_count=model.push_failure_count,
            clicks=model.clicks,
        )

    @staticmethod
    def _delivery_to_entity(model: RecipientDeliveryModel) -> RecipientDelivery:
        return RecipientDelivery(
            notification_id=model.notification_id,
            user_id=model.user_id,
            delivered=bool(model.delivered),
            delivered_at=ensure_utc(model.delivered_at),
            read=bool(model.read),
            read_at=ensure_utc(model.read_at),
            clicked=bool(model.clicked),
            clicked_at=ensure_utc(model.clicked_at),
            created_at=ensure_utc(model.created_at),
        )


__all__ = ["NotificationRepository"]
