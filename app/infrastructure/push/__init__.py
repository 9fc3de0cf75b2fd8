"""Push delivery infrastructure."""

from .credentials import AccessTokenProvider, ServiceAccountTokenProvider
from .gateway import (
    FcmPushGateway,
    NullPushGateway,
    PushGateway,
    build_fcm_message,
    build_push_gateway,
    classify_fcm_error,
)
from .pipeline import PushDeliveryPipeline, build_push_pipeline

__all__ = [
    "AccessTokenProvider",
    "ServiceAccountTokenProvider",
    "FcmPushGateway",
    "NullPushGateway",
    "PushGateway",
    "build_fcm_message",
    "build_push_gateway",
    "classify_fcm_error",
    "PushDeliveryPipeline",
    "build_push_pipeline",
]
