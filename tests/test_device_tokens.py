"""Tests for the device token registry and push preferences."""

import pytest
from sqlalchemy.exc import IntegrityError

from app.application.use_cases.notifications import register_device_token, set_push_enabled
from app.domain.errors import StorageFailure, TokenInvalidated
from app.infrastructure.repositories import DeviceTokenRepository, PushPreferenceRepository


def test_registering_twice_keeps_a_single_token(session):
    first = register_device_token(session, user_id=1, token="tok-1", platform="android")
    second = register_device_token(session, user_id=1, token="tok-1", platform="android")

    assert first.id == second.id
    assert second.last_seen_at >= first.last_seen_at
    assert [token.token for token in DeviceTokenRepository(session).active_tokens_for(1)] == ["tok-1"]


def test_token_follows_the_device_to_another_user(session):
    register_device_token(session, user_id=1, token="shared", platform="ios")
    register_device_token(session, user_id=2, token="shared", platform="ios")

    repository = DeviceTokenRepository(session)
    assert repository.active_tokens_for(1) == []
    assert [token.user_id for token in repository.active_tokens_for(2)] == [2]


def test_invalidated_token_cannot_be_registered_again(session):
    repository = DeviceTokenRepository(session)
    register_device_token(session, user_id=1, token="dead", platform="android")

    assert repository.invalidate("dead", reason="UNREGISTERED") is True
    assert repository.invalidate("dead", reason="UNREGISTERED") is False
    assert repository.active_tokens_for_users([1]) == {}

    with pytest.raises(TokenInvalidated):
        register_device_token(session, user_id=1, token="dead", platform="android")
    assert repository.get("dead").valid is False


def test_unknown_platform_is_rejected(session):
    with pytest.raises(ValueError):
        register_device_token(session, user_id=1, token="tok", platform="symbian")


def test_registration_enables_push_and_users_can_opt_out(session):
    preferences = PushPreferenceRepository(session)
    set_push_enabled(session, user_id=1, enabled=False)
    assert preferences.disabled_among([1, 2]) == {1}

    register_device_token(session, user_id=1, token="tok", platform=None)

    assert preferences.is_enabled(1) is True
    assert DeviceTokenRepository(session).get("tok").platform == "android"


def test_persistent_integrity_errors_are_retried_once(session, monkeypatch):
    attempts = []

    def failing_commit():
        attempts.append(1)
        raise IntegrityError("INSERT INTO device_tokens", {}, Exception("CHECK constraint failed"))

    monkeypatch.setattr(session, "commit", failing_commit)

    with pytest.raises(StorageFailure):
        DeviceTokenRepository(session).register(1, "tok-1", "android")
    assert len(attempts) == 2
