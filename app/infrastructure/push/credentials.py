"""OAuth2 access tokens for the FCM HTTP v1 API.

Google access tokens expire after about an hour, so the gateway asks the
provider for a token on every send and the provider refreshes the underlying
service-account credentials when they expire or when FCM rejects them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import anyio
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from app.config import Settings
from app.domain.errors import PushTransientFailure

logger = logging.getLogger(__name__)

FCM_SCOPE = "https://www.googleapis.com/auth/firebase.messaging"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


class AccessTokenProvider:
    """Interface for bearer token sources."""

    async def token(self, *, stale: str | None = None) -> str:
        """Return a usable token, refreshing it if it equals ``stale``."""

        raise NotImplementedError


class ServiceAccountTokenProvider(AccessTokenProvider):
    """Mint and refresh tokens from service-account credentials."""

    def __init__(
        self,
        credentials: Any,
        *,
        request_factory: Callable[[], Any] = Request,
    ) -> None:
        self._credentials = credentials
        self._request_factory = request_factory
        self._lock = anyio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "ServiceAccountTokenProvider":
        info = {
            "type": "service_account",
            "project_id": settings.fcm_project_id,
            "client_email": settings.fcm_client_email,
            "private_key": settings.fcm_private_key,
            "token_uri": GOOGLE_TOKEN_URI,
        }
        credentials = service_account.Credentials.from_service_account_info(
            info, scopes=[FCM_SCOPE]
        )
        return cls(credentials)

    async def token(self, *, stale: str | None = None) -> str:
        async with self._lock:
            current = self._credentials.token
            # Another worker may already have replaced the rejected token.
            if not self._credentials.valid or (stale is not None and current == stale):
                await anyio.to_thread.run_sync(self._refresh)
            return self._credentials.token

    def _refresh(self) -> None:
        try:
            self._credentials.refresh(self._request_factory())
        except GoogleAuthError as exc:
            raise PushTransientFailure(f"Could not refresh FCM credentials: {exc}") from exc
        logger.info("FCM access token refreshed (expires %s)", self._credentials.expiry)


__all__ = [
    "FCM_SCOPE",
    "AccessTokenProvider",
    "ServiceAccountTokenProvider",
]
