"""Exceptions raised by the notification engine."""

from __future__ import annotations


class NotificationError(Exception):
    """Base class for every error raised by the notification engine."""


class InvalidNotification(NotificationError, ValueError):
    """The notification content or options are not acceptable."""


class InvalidTargetSpec(NotificationError, ValueError):
    """The target specification is missing fields required by its variant."""


class ResolutionFailed(NotificationError):
    """The directory query used to resolve the audience failed."""


class NoHeadOfDepartment(ResolutionFailed):
    """No active head of department exists for the sender's department."""


class AmbiguousHeadOfDepartment(ResolutionFailed):
    """More than one active head of department matched."""

    def __init__(self, department_id: int, candidates: list[int]) -> None:
        super().__init__(
            f"Department {department_id} has {len(candidates)} active heads of department"
        )
        self.department_id = department_id
        self.candidates = candidates


class StorageFailure(NotificationError):
    """A transactional write failed and was rolled back."""


class NotificationNotFound(NotificationError, LookupError):
    """The notification does not exist or the user is not a recipient."""


class TokenInvalidated(NotificationError):
    """A device token was permanently invalidated and cannot be reused."""


class PushDeliveryError(NotificationError):
    """Base class for push gateway failures."""


class PushTransientFailure(PushDeliveryError):
    """Temporary gateway failure (timeout, rate limit, 5xx). Safe to retry."""


class PushPermanentFailure(PushDeliveryError):
    """Gateway rejected the message; retrying will not help.

    ``token_invalid`` is set when the rejection is about the device token
    itself (unregistered or malformed), which invalidates the token.
    """

    def __init__(self, message: str, *, token_invalid: bool = False) -> None:
        super().__init__(message)
        self.token_invalid = token_invalid


__all__ = [
    "NotificationError",
    "InvalidNotification",
    "InvalidTargetSpec",
    "ResolutionFailed",
    "NoHeadOfDepartment",
    "AmbiguousHeadOfDepartment",
    "StorageFailure",
    "NotificationNotFound",
    "TokenInvalidated",
    "PushDeliveryError",
    "PushTransientFailure",
    "PushPermanentFailure",
]
