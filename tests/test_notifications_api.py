"""Integration tests for the notification API endpoints."""

from __future__ import annotations

import pytest

pytest.importorskip("fastapi")
from fastapi.testclient import TestClient

from app.domain.entities import ROLE_STUDENT, ROLE_SUPER_ADMIN, ROLE_TEACHER, Identity
from app.infrastructure.models import RecipientDeliveryModel
from app.infrastructure.repositories import DeviceTokenRepository, NotificationRepository

from support import add_user, auth_headers

STUDENT = Identity(user_id=1, role=ROLE_STUDENT, department_id=1, name="Student One")


@pytest.fixture
def client(session_factory, pipeline):
    from main import create_app

    app = create_app(pipeline=pipeline, session_factory=session_factory)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def students(session):
    for user_id in range(1, 6):
        add_user(session, user_id, year=2, section="A", academic_year_id="2024")
    return list(range(1, 6))


def _send(client, identity, **overrides):
    payload = {
        "title": "Assignment due",
        "message": "Submit by Friday",
        "targetType": "specific_section",
        "targetValue": "2-A-2024",
        "priority": "normal",
        "metadata": {"enablePush": True, "category": "assignment"},
    }
    payload.update(overrides)
    return client.post("/notifications", json=payload, headers=auth_headers(identity))


def test_send_and_read_flow(client, teacher, students):
    response = _send(client, teacher)
    assert response.status_code == 201
    body = response.json()
    assert body["recipientCount"] == 5
    notification_id = body["notification"]["id"]
    assert body["notification"]["metadata"]["pushNotifications"] == {
        "successCount": 0,
        "failureCount": 0,
    }

    headers = auth_headers(STUDENT)
    listing = client.get("/notifications", headers=headers).json()
    assert listing["pagination"] == {"page": 1, "limit": 20, "total": 1, "pages": 1}
    assert listing["notifications"][0]["isRead"] is False
    assert client.get("/notifications/unread-count", headers=headers).json() == {"count": 1}

    read = client.put(f"/notifications/{notification_id}/read", headers=headers)
    assert read.status_code == 200
    assert read.json()["isRead"] is True
    assert client.get("/notifications/unread-count", headers=headers).json() == {"count": 0}

    unread_only = client.get("/notifications", params={"read": "false"}, headers=headers).json()
    assert unread_only["notifications"] == []


def test_push_is_delivered_by_the_pipeline(client, session, teacher, students, gateway, pipeline):
    DeviceTokenRepository(session).register(1, "tok-1", "android")

    response = _send(client, teacher)
    assert response.json()["queuedPushJobs"] == 1
    client.portal.call(pipeline.drain)

    notification_id = response.json()["notification"]["id"]
    stored = NotificationRepository(session).get(notification_id)
    assert stored.push_success_count == 1
    assert gateway.calls_for("tok-1") == 1
    assert gateway.sent[0][2]["title"] == "Assignment due"


def test_requests_use_the_application_session_factory(client, session, session_factory, teacher, students):
    assert client.app.state.session_factory is session_factory

    response = _send(client, teacher)

    notification_id = response.json()["notification"]["id"]
    assert NotificationRepository(session).get(notification_id).total_recipients == 5
    rows = session.query(RecipientDeliveryModel).filter_by(notification_id=notification_id).count()
    assert rows == 5


def test_sender_without_department_is_rejected(client, students):
    sender = Identity(user_id=900, role=ROLE_TEACHER, department_id=None)

    response = _send(client, sender, targetType="all_students", targetValue="")

    assert response.status_code == 400


def test_students_cannot_send_or_list_sent(client, students):
    headers = auth_headers(STUDENT)

    assert _send(client, STUDENT).status_code == 403
    assert client.get("/notifications/sent", headers=headers).status_code == 403


def test_sent_listing_exposes_counters(client, teacher, students):
    _send(client, teacher)

    response = client.get("/notifications/sent", headers=auth_headers(teacher))

    assert response.status_code == 200
    sent = response.json()["notifications"][0]
    assert sent["totalRecipients"] == 5
    assert sent["targetType"] == "specific_section"
    assert sent["targetValue"] == "2-A-2024"
    assert sent["clicks"] == 0


@pytest.mark.parametrize(
    ("overrides", "expected_status"),
    [
        ({"targetType": "specific_section", "targetValue": "2-A"}, 400),
        ({"title": ""}, 400),
        ({"targetType": "hod", "targetValue": "hod"}, 404),
    ],
)
def test_send_errors_map_to_http_status(client, teacher, students, overrides, expected_status):
    assert _send(client, teacher, **overrides).status_code == expected_status


def test_requests_without_valid_token_are_rejected(client):
    assert client.get("/notifications").status_code == 401
    response = client.get("/notifications", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Credenciales inválidas"


def test_read_all_and_read_state(client, teacher, students):
    first = _send(client, teacher).json()["notification"]["id"]
    second = _send(client, teacher).json()["notification"]["id"]
    headers = auth_headers(STUDENT)

    state = client.put(
        "/notifications/read-state", json={"readIds": [first, 12345]}, headers=headers
    ).json()
    assert state == {"states": [{"notificationId": first, "isRead": True}]}

    assert client.put("/notifications/read-all", headers=headers).json() == {"updated": 1}
    listing = client.get("/notifications", headers=headers).json()["notifications"]
    assert {item["id"]: item["isRead"] for item in listing} == {first: True, second: True}


def test_mark_read_of_foreign_notification_is_404(client, teacher, students, session):
    add_user(session, 77, year=1)
    notification_id = _send(client, teacher).json()["notification"]["id"]
    outsider = Identity(user_id=77, role=ROLE_STUDENT, department_id=1)

    response = client.put(f"/notifications/{notification_id}/read", headers=auth_headers(outsider))

    assert response.status_code == 404


def test_track_click_without_authentication(client, teacher, students):
    notification_id = _send(client, teacher).json()["notification"]["id"]

    assert client.post("/notifications/track-click", json={"notificationId": notification_id}).status_code == 200
    clicked = client.post(
        "/notifications/track-click",
        json={"notificationId": notification_id},
        headers=auth_headers(STUDENT),
    )
    assert clicked.json() == {"success": True, "firstClick": True}
    assert client.post("/notifications/track-click", json={"notificationId": 999}).status_code == 404

    sent = client.get("/notifications/sent", headers=auth_headers(teacher)).json()
    assert sent["notifications"][0]["clicks"] == 2


def test_fcm_token_registration_and_push_settings(client, session):
    headers = auth_headers(STUDENT)

    response = client.post(
        "/notifications/fcm-token", json={"fcmToken": "tok-1", "platform": "ios"}, headers=headers
    )
    assert response.json() == {"success": True, "platform": "ios"}

    DeviceTokenRepository(session).invalidate("tok-1", reason="UNREGISTERED")
    conflict = client.post("/notifications/fcm-token", json={"fcmToken": "tok-1"}, headers=headers)
    assert conflict.status_code == 409

    disabled = client.put("/notifications/push-settings", json={"enabled": False}, headers=headers)
    assert disabled.json() == {"enabled": False}


def test_stats_are_reserved_to_super_admins(client, teacher, students):
    _send(client, teacher)
    admin = Identity(user_id=901, role=ROLE_SUPER_ADMIN, department_id=1)

    assert client.get("/notifications/stats", headers=auth_headers(teacher)).status_code == 403
    stats = client.get("/notifications/stats", headers=auth_headers(admin)).json()
    assert stats["totalSent"] == 1
    assert stats["totalRecipients"] == 5


def test_websocket_receives_new_notifications(client, teacher, students):
    from app.infrastructure.security import create_access_token

    with client.websocket_connect(f"/notifications/ws?token={create_access_token(STUDENT)}") as ws:
        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}

        _send(client, teacher)
        event = ws.receive_json()

    assert event["type"] == "notification.new"
    assert event["data"]["title"] == "Assignment due"
