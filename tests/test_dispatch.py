"""Tests for the synchronous fan-out of a new notification."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from app.application.use_cases.notifications import send_notification
from app.domain.entities import (
    ROLE_STUDENT,
    HeadOfDepartment,
    Identity,
    SpecificSection,
    SpecificYear,
)
from app.domain.errors import InvalidNotification, NoHeadOfDepartment
from app.infrastructure.models import NotificationModel
from app.infrastructure.repositories import (
    DeviceTokenRepository,
    NotificationRepository,
    PushPreferenceRepository,
)

from support import add_user

SECTION = SpecificSection(year=2, section="A", academic_year_id="2024")


@pytest.fixture
def section_students(session):
    for user_id in range(1, 51):
        add_user(session, user_id, year=2, section="A", academic_year_id="2024")
    return list(range(1, 51))


def test_section_send_creates_fifty_unread_rows(session, teacher, section_students):
    queued = []

    result = send_notification(
        session,
        sender=teacher,
        title="Quiz tomorrow",
        message="Bring a calculator",
        spec=SECTION,
        enqueue=queued.append,
    )

    assert result.recipient_count == 50
    assert result.notification.total_recipients == 50
    repository = NotificationRepository(session)
    rows = repository.list_delivery_rows(result.notification.id)
    assert len(rows) == 50
    assert all(not row.read for row in rows)
    assert all(row.delivered for row in rows)
    assert queued == []
    assert result.notification.target_value == "2-A-2024"


def test_push_jobs_only_for_valid_tokens_of_opted_in_users(session, teacher, section_students):
    tokens = DeviceTokenRepository(session)
    for user_id in range(1, 31):
        tokens.register(user_id, f"tok-{user_id}", "android")
    tokens.register(1, "tok-1-tablet", "android")
    tokens.invalidate("tok-2", reason="UNREGISTERED")
    preferences = PushPreferenceRepository(session)
    for user_id in range(26, 31):
        preferences.set_enabled(user_id, False)
    queued = []

    result = send_notification(
        session,
        sender=teacher,
        title="Quiz tomorrow",
        message="Bring a calculator",
        spec=SECTION,
        priority="high",
        enqueue=queued.append,
    )

    assert result.queued_push_jobs == len(queued) == 25
    assert {job.user_id for job in queued} == set(range(1, 26)) - {2}
    assert "tok-2" not in {job.token for job in queued}
    job = queued[0]
    assert job.payload["notificationId"] == str(result.notification.id)
    assert job.payload["priority"] == "high"

    rows = NotificationRepository(session).list_delivery_rows(result.notification.id)
    pending = {row.user_id for row in rows if not row.delivered}
    assert pending == set(range(1, 26)) - {2}


def test_empty_section_is_a_successful_send(session, teacher, section_students):
    queued = []

    result = send_notification(
        session,
        sender=teacher,
        title="Room change",
        message="Moved to B12",
        spec=SpecificSection(year=4, section="Z", academic_year_id="2024"),
        enqueue=queued.append,
    )

    assert result.recipient_count == 0
    assert result.notification.id is not None
    assert queued == []


def test_identical_sends_are_distinct(session, teacher, section_students):
    kwargs = dict(sender=teacher, title="Reminder", message="Fees due", spec=SpecificYear(year=2))

    first = send_notification(session, **kwargs)
    second = send_notification(session, **kwargs)

    assert first.notification.id != second.notification.id
    assert NotificationRepository(session).unread_count(1) == 2


def test_concurrent_identical_sends_are_distinct(session, session_factory, teacher, section_students):
    barrier = threading.Barrier(2)

    def send():
        db = session_factory()
        try:
            barrier.wait(timeout=5)
            return send_notification(
                db, sender=teacher, title="Reminder", message="Fees due", spec=SECTION
            ).notification
        finally:
            db.close()

    with ThreadPoolExecutor(max_workers=2) as executor:
        futures = [executor.submit(send) for _ in range(2)]
        first, second = (future.result(timeout=30) for future in futures)

    assert first.id != second.id
    repository = NotificationRepository(session)
    for notification in (first, second):
        assert notification.total_recipients == 50
        assert repository.get(notification.id).total_recipients == 50
        assert len(repository.list_delivery_rows(notification.id)) == 50
    assert repository.unread_count(1) == 2


@pytest.mark.parametrize(
    ("title", "message", "priority", "category"),
    [
        ("", "body", "normal", "general"),
        ("x" * 101, "body", "normal", "general"),
        ("title", "x" * 501, "normal", "general"),
        ("title", "body", "critical", "general"),
        ("title", "body", "normal", "gossip"),
    ],
)
def test_invalid_content_stores_nothing(session, teacher, title, message, priority, category):
    with pytest.raises(InvalidNotification):
        send_notification(
            session,
            sender=teacher,
            title=title,
            message=message,
            priority=priority,
            category=category,
            spec=SpecificYear(year=2),
        )

    assert session.query(NotificationModel).count() == 0


def test_students_cannot_send(session, section_students):
    student = Identity(user_id=1, role=ROLE_STUDENT, department_id=1)

    with pytest.raises(PermissionError):
        send_notification(
            session, sender=student, title="Hi", message="All", spec=SpecificYear(year=2)
        )


def test_enqueue_failures_do_not_fail_the_send(session, teacher, section_students):
    DeviceTokenRepository(session).register(1, "tok-1", "android")

    def full_queue(job):
        raise RuntimeError("queue full")

    result = send_notification(
        session,
        sender=teacher,
        title="Quiz",
        message="Tomorrow",
        spec=SECTION,
        enqueue=full_queue,
    )

    assert result.queued_push_jobs == 0
    stored = NotificationRepository(session).get(result.notification.id)
    assert stored.push_failure_count == 1


def test_push_disabled_send_queues_nothing(session, teacher, section_students):
    DeviceTokenRepository(session).register(1, "tok-1", "android")
    queued = []

    result = send_notification(
        session,
        sender=teacher,
        title="Quiz",
        message="Tomorrow",
        spec=SECTION,
        enable_push=False,
        enqueue=queued.append,
    )

    assert queued == []
    assert result.notification.metadata()["enablePush"] is False


def test_head_of_department_target(session, teacher, hod):
    result = send_notification(
        session,
        sender=teacher,
        title="Leave request",
        message="Please approve",
        spec=HeadOfDepartment(),
    )

    assert result.recipient_count == 1
    assert NotificationRepository(session).unread_count(hod.user_id) == 1


def test_missing_head_of_department_fails_before_storing(session, teacher):
    with pytest.raises(NoHeadOfDepartment):
        send_notification(
            session, sender=teacher, title="Leave", message="Approve", spec=HeadOfDepartment()
        )

    assert session.query(NotificationModel).count() == 0
