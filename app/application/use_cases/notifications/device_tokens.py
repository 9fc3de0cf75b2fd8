"""Use cases for device tokens and the push opt-out."""

import logging

from sqlalchemy.orm import Session

from app.domain.entities import PLATFORM_ANDROID, PLATFORMS, DeviceToken
from app.infrastructure.repositories import DeviceTokenRepository, PushPreferenceRepository

logger = logging.getLogger(__name__)


def register_device_token(
    session: Session, *, user_id: int, token: str, platform: str | None = None
) -> DeviceToken:
    """Register ``token`` for ``user_id`` and turn push on for the user.

    Raises :class:`TokenInvalidated` when the token was invalidated earlier.
    """

    token = (token or "").strip()
    if not token:
        raise ValueError("FCM token is required")
    platform = (platform or PLATFORM_ANDROID).strip().lower()
    if platform not in PLATFORMS:
        raise ValueError(f"Unsupported platform '{platform}'")

    device_token = DeviceTokenRepository(session).register(user_id, token, platform)
    PushPreferenceRepository(session).set_enabled(user_id, True)
    logger.info("Registered %s device token for user %s", platform, user_id)
    return device_token


def set_push_enabled(session: Session, *, user_id: int, enabled: bool) -> bool:
    PushPreferenceRepository(session).set_enabled(user_id, enabled)
    logger.info("Push notifications %s for user %s", "enabled" if enabled else "disabled", user_id)
    return enabled


__all__ = ["register_device_token", "set_push_enabled"]
