"""Push gateway clients.

Gateways translate provider responses into :class:`PushTransientFailure` (retry)
or :class:`PushPermanentFailure` (give up, possibly invalidating the token).
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any

import httpx

from app.config import Settings
from app.domain.entities import PLATFORM_IOS, PLATFORM_WEB, PRIORITY_HIGH, PRIORITY_URGENT
from app.domain.errors import PushPermanentFailure, PushTransientFailure

from .credentials import AccessTokenProvider, ServiceAccountTokenProvider

logger = logging.getLogger(__name__)

ANDROID_CHANNEL_ID = "academic_portal"

_RETRYABLE_STATUS = {401, 408, 429}
_TOKEN_ERROR_CODES = {"UNREGISTERED", "SENDER_ID_MISMATCH"}
_RETRYABLE_ERROR_CODES = {"QUOTA_EXCEEDED", "UNAVAILABLE", "INTERNAL", "UNAUTHENTICATED"}


def stringify_data(data: dict[str, Any]) -> dict[str, str]:
    """FCM data messages only accept string values."""

    result: dict[str, str] = {}
    for key, value in data.items():
        if value is None:
            continue
        result[str(key)] = value if isinstance(value, str) else _json_string(value)
    return result


def _json_string(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, default=str)


def build_fcm_message(token: str, platform: str, payload: dict[str, Any]) -> dict[str, Any]:
    """Build an FCM HTTP v1 ``message`` object for ``token``."""

    priority = str(payload.get("priority") or "normal")
    urgent = priority == PRIORITY_URGENT
    elevated = priority in (PRIORITY_HIGH, PRIORITY_URGENT)

    message: dict[str, Any] = {"token": token, "data": stringify_data(payload)}
    message["android"] = {
        "priority": "high" if elevated else "normal",
        "notification": {"sound": "default", "channel_id": ANDROID_CHANNEL_ID},
    }
    if platform == PLATFORM_IOS:
        message["apns"] = {
            "headers": {"apns-priority": "10" if urgent else "5"},
            "payload": {"aps": {"sound": "default", "badge": 1}},
        }
    elif platform == PLATFORM_WEB:
        message["webpush"] = {"headers": {"Urgency": "high" if elevated else "normal"}}
    return message


def _error_codes(response: httpx.Response) -> tuple[str, set[str], str]:
    try:
        body = response.json()
    except ValueError:
        body = {}
    error = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        return "", set(), response.text[:200]

    codes: set[str] = set()
    for detail in error.get("details") or []:
        if isinstance(detail, dict) and detail.get("errorCode"):
            codes.add(str(detail["errorCode"]).upper())
    return str(error.get("status") or "").upper(), codes, str(error.get("message") or "")


def classify_fcm_error(response: httpx.Response) -> PushTransientFailure | PushPermanentFailure:
    """Map an unsuccessful FCM response to the matching failure class."""

    status_code = response.status_code
    status, codes, message = _error_codes(response)
    codes.add(status)
    description = f"FCM responded {status_code} {status or ''}: {message}".strip()

    if codes & _TOKEN_ERROR_CODES or status_code in (404, 410):
        return PushPermanentFailure(description, token_invalid=True)
    if "INVALID_ARGUMENT" in codes and "token" in message.lower():
        return PushPermanentFailure(description, token_invalid=True)
    if codes & _RETRYABLE_ERROR_CODES or status_code in _RETRYABLE_STATUS or status_code >= 500:
        return PushTransientFailure(description)
    return PushPermanentFailure(description)


class PushGateway:
    """Interface implemented by push providers."""

    async def send(self, token: str, platform: str, payload: dict[str, Any]) -> str:
        """Send ``payload`` to ``token`` and return the provider message id."""

        raise NotImplementedError

    async def aclose(self) -> None:
        """Release network resources."""


class NullPushGateway(PushGateway):
    """Gateway used when push delivery is not configured."""

    async def send(self, token: str, platform: str, payload: dict[str, Any]) -> str:
        logger.debug(
            "Push disabled; dropping notification %s for token_prefix=%s",
            payload.get("notificationId"),
            token[:8],
        )
        return f"null:{uuid.uuid4().hex[:12]}"


class FcmPushGateway(PushGateway):
    """Firebase Cloud Messaging HTTP v1 client.

    A 401 triggers one credential refresh and an immediate resend; a second
    rejection surfaces as a transient failure so the pipeline backs off.
    """

    def __init__(
        self,
        *,
        send_url: str,
        tokens: AccessTokenProvider,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._send_url = send_url
        self._tokens = tokens
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def _post(self, body: dict[str, Any], access_token: str) -> httpx.Response:
        headers = {"Authorization": f"Bearer {access_token}"}
        try:
            return await self._get_client().post(
                self._send_url, json=body, headers=headers, timeout=self._timeout
            )
        except httpx.TimeoutException as exc:
            raise PushTransientFailure(f"FCM request timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise PushTransientFailure(f"FCM transport error: {exc}") from exc

    async def send(self, token: str, platform: str, payload: dict[str, Any]) -> str:
        body = {"message": build_fcm_message(token, platform, payload)}
        access_token = await self._tokens.token()
        response = await self._post(body, access_token)
        if response.status_code == 401:
            logger.info("FCM rejected the access token; refreshing credentials")
            response = await self._post(body, await self._tokens.token(stale=access_token))

        if response.status_code >= 400:
            raise classify_fcm_error(response)

        try:
            result = response.json()
        except ValueError:
            return ""
        return str(result.get("name", "")) if isinstance(result, dict) else ""

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


def build_push_gateway(settings: Settings) -> PushGateway:
    """Return the gateway matching the current configuration."""

    if not settings.push_enabled:
        logger.info("Push delivery disabled; using NullPushGateway")
        return NullPushGateway()
    return FcmPushGateway(
        send_url=settings.fcm_send_url,
        tokens=ServiceAccountTokenProvider.from_settings(settings),
        timeout=settings.push_timeout_seconds,
    )


__all__ = [
    "ANDROID_CHANNEL_ID",
    "PushGateway",
    "NullPushGateway",
    "FcmPushGateway",
    "build_fcm_message",
    "build_push_gateway",
    "classify_fcm_error",
    "stringify_data",
]
