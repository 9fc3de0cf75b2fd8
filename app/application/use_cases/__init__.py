"""Aggregate application use cases."""

from .notifications import (
    reconcile_read_state,
    register_device_token,
    resolve_targets,
    send_notification,
    track_click,
)

__all__ = [
    "reconcile_read_state",
    "register_device_token",
    "resolve_targets",
    "send_notification",
    "track_click",
]
