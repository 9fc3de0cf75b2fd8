"""Unit of work consumed by the push delivery workers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class PushJobState(str, Enum):
    """Lifecycle of a single (notification, token) delivery."""

    QUEUED = "queued"
    SENDING = "sending"
    DELIVERED = "delivered"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (PushJobState.DELIVERED, PushJobState.FAILED)


@dataclass
class PushJob:
    """Send one notification payload to one device token."""

    notification_id: int
    user_id: int
    token: str
    platform: str
    payload: dict[str, object] = field(default_factory=dict)
    state: PushJobState = PushJobState.QUEUED
    attempts: int = 0
    last_error: str | None = None


__all__ = ["PushJob", "PushJobState"]
