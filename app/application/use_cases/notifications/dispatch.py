"""Fan-out of a new notification to its resolved audience."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.domain.entities import (
    CATEGORIES,
    DEFAULT_CATEGORY,
    MESSAGE_MAX_LENGTH,
    PRIORITIES,
    PRIORITY_NORMAL,
    TITLE_MAX_LENGTH,
    DeviceToken,
    Identity,
    Notification,
    PushJob,
    TargetSpec,
    to_wire,
)
from app.domain.errors import InvalidNotification
from app.infrastructure.notifications import RealtimeNotificationPublisher
from app.infrastructure.repositories import (
    DeviceTokenRepository,
    NotificationRepository,
    PushPreferenceRepository,
    UserDirectory,
)

from .targeting import DirectoryQuery, resolve_targets

logger = logging.getLogger(__name__)

PushEnqueue = Callable[[PushJob], None]


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of a synchronous send."""

    notification: Notification
    recipient_count: int
    queued_push_jobs: int


def _validate_content(title: str, message: str, priority: str, category: str) -> tuple[str, str]:
    title = (title or "").strip()
    message = (message or "").strip()
    if not title:
        raise InvalidNotification("Title is required")
    if not message:
        raise InvalidNotification("Message is required")
    if len(title) > TITLE_MAX_LENGTH:
        raise InvalidNotification(f"Title must be at most {TITLE_MAX_LENGTH} characters")
    if len(message) > MESSAGE_MAX_LENGTH:
        raise InvalidNotification(f"Message must be at most {MESSAGE_MAX_LENGTH} characters")
    if priority not in PRIORITIES:
        raise InvalidNotification(f"Invalid priority '{priority}'")
    if category not in CATEGORIES:
        raise InvalidNotification(f"Invalid category '{category}'")
    return title, message


def _push_targets(
    session: Session, recipients: list[int]
) -> dict[int, list[DeviceToken]]:
    """Return the valid tokens of recipients that did not opt out of push."""

    tokens = DeviceTokenRepository(session).active_tokens_for_users(recipients)
    if not tokens:
        return {}
    disabled = PushPreferenceRepository(session).disabled_among(tokens.keys())
    return {
        user_id: user_tokens
        for user_id, user_tokens in tokens.items()
        if user_tokens and user_id not in disabled
    }


def build_push_payload(notification: Notification) -> dict[str, object]:
    """Data payload shared by every push job of ``notification``."""

    return {
        "type": "notification",
        "notificationId": str(notification.id),
        "title": notification.title,
        "body": notification.message,
        "senderId": str(notification.sender_id),
        "senderName": notification.sender_name,
        "senderRole": notification.sender_role,
        "targetType": notification.target_type,
        "priority": notification.priority,
        "category": notification.category,
    }


def send_notification(
    session: Session,
    *,
    sender: Identity,
    title: str,
    message: str,
    spec: TargetSpec,
    priority: str = PRIORITY_NORMAL,
    category: str = DEFAULT_CATEGORY,
    enable_push: bool = True,
    directory: DirectoryQuery | None = None,
    enqueue: PushEnqueue | None = None,
    realtime: RealtimeNotificationPublisher | None = None,
) -> DispatchResult:
    """Resolve ``spec``, persist the fan-out and queue push delivery.

    Resolution and storage errors propagate before anything is visible to
    recipients. Push and realtime problems are logged and never fail the send.
    Every call is a distinct send, even with identical arguments.
    """

    if not sender.can_send_notifications():
        raise PermissionError(f"Role '{sender.role}' cannot send notifications")
    title, message = _validate_content(title, message, priority, category)
    user_directory = UserDirectory(session)
    recipients = resolve_targets(
        spec, directory or user_directory, department_id=sender.department_id
    )

    push_targets: dict[int, list[DeviceToken]] = {}
    if enable_push and enqueue is not None and recipients:
        push_targets = _push_targets(session, recipients)

    target_type, target_value = to_wire(spec)
    sender_name = sender.name or user_directory.display_name(sender.user_id) or ""
    notification = NotificationRepository(session).create(
        Notification(
            id=None,
            title=title,
            message=message,
            priority=priority,
            sender_id=sender.user_id,
            sender_name=sender_name,
            sender_role=sender.role,
            target_type=target_type,
            target_value=target_value,
            category=category,
            push_enabled=enable_push,
        ),
        recipients,
        pending_push_ids=push_targets.keys(),
    )

    queued = _enqueue_push_jobs(session, notification, push_targets, enqueue)

    if realtime is not None and recipients:
        try:
            realtime.dispatch(notification, recipients)
        except RuntimeError as exc:
            logger.warning("Realtime broadcast skipped for notification %s: %s", notification.id, exc)

    logger.info(
        "Notification %s sent by user %s to %s recipients (%s push jobs, target=%s)",
        notification.id,
        sender.user_id,
        notification.total_recipients,
        queued,
        target_type,
    )
    return DispatchResult(
        notification=notification,
        recipient_count=notification.total_recipients,
        queued_push_jobs=queued,
    )


def _enqueue_push_jobs(
    session: Session,
    notification: Notification,
    push_targets: dict[int, list[DeviceToken]],
    enqueue: PushEnqueue | None,
) -> int:
    if enqueue is None or not push_targets or notification.id is None:
        return 0

    payload = build_push_payload(notification)
    queued = 0
    rejected = 0
    for user_id, tokens in push_targets.items():
        for device_token in tokens:
            job = PushJob(
                notification_id=notification.id,
                user_id=user_id,
                token=device_token.token,
                platform=device_token.platform,
                payload=dict(payload),
            )
            try:
                enqueue(job)
            except Exception:
                rejected += 1
                logger.exception(
                    "Could not queue push for notification %s to user %s",
                    notification.id,
                    user_id,
                )
            else:
                queued += 1

    if rejected:
        NotificationRepository(session).increment_push_counters(
            notification.id, failure=rejected
        )
    return queued


__all__ = ["DispatchResult", "PushEnqueue", "build_push_payload", "send_notification"]
