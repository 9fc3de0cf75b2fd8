"""Endpoints and websocket handler for academic notifications."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from app.application.use_cases.notifications import (
    PushEnqueue,
    list_received_notifications as list_received_uc,
    list_sent_notifications as list_sent_uc,
    mark_all_notifications_read as mark_all_read_uc,
    mark_notification_read as mark_read_uc,
    notification_stats as notification_stats_uc,
    reconcile_read_state as reconcile_read_state_uc,
    register_device_token as register_device_token_uc,
    send_notification as send_notification_uc,
    set_push_enabled as set_push_enabled_uc,
    track_click as track_click_uc,
    unread_count as unread_count_uc,
)
from app.config import Settings
from app.domain.entities import CATEGORIES, Identity, Notification, ReceivedNotification, parse_target
from app.domain.errors import (
    AmbiguousHeadOfDepartment,
    NoHeadOfDepartment,
    NotificationNotFound,
    ResolutionFailed,
    StorageFailure,
    TokenInvalidated,
)
from app.infrastructure.database import get_db, session_scope
from app.infrastructure.notifications import (
    RealtimeNotificationPublisher,
    inbox_connections,
    serialize_notification,
)
from app.interfaces.api.dependencies import (
    get_app_settings,
    get_identity,
    get_optional_identity,
    get_push_enqueue,
    get_realtime_publisher,
    require_sender,
    require_super_admin,
    resolve_identity,
)
from app.interfaces.api.schemas import (
    FcmTokenRequest,
    FcmTokenResponse,
    MarkAllReadResponse,
    MarkReadResponse,
    NotificationCreate,
    NotificationCreateResponse,
    NotificationRead,
    NotificationStatsRead,
    Pagination,
    PushSettingsRequest,
    PushSettingsResponse,
    ReadStateEntry,
    ReadStateRequest,
    ReadStateResponse,
    ReceivedNotificationList,
    ReceivedNotificationRead,
    SentNotificationList,
    TrackClickRequest,
    TrackClickResponse,
    UnreadCountResponse,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])
logger = logging.getLogger(__name__)


def _to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, PermissionError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No autorizado")
    if isinstance(exc, NotificationNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, TokenInvalidated):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, NoHeadOfDepartment):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, AmbiguousHeadOfDepartment):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, ResolutionFailed):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    if isinstance(exc, StorageFailure):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
        )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _to_read_model(notification: Notification) -> NotificationRead:
    return NotificationRead(
        id=notification.id or 0,
        title=notification.title,
        message=notification.message,
        priority=notification.priority,
        category=notification.category,
        sender_id=notification.sender_id,
        sender_name=notification.sender_name,
        sender_role=notification.sender_role,
        target_type=notification.target_type,
        target_value=notification.target_value,
        created_at=notification.created_at,
        total_recipients=notification.total_recipients,
        clicks=notification.clicks,
        metadata=notification.metadata(),
    )


def _to_received_model(item: ReceivedNotification) -> ReceivedNotificationRead:
    base = _to_read_model(item.notification)
    return ReceivedNotificationRead(
        **base.model_dump(),
        is_read=item.is_read,
        read_at=item.delivery.read_at,
        delivered=item.delivery.delivered,
        clicked=item.delivery.clicked,
    )


@router.post("", response_model=NotificationCreateResponse, status_code=status.HTTP_201_CREATED)
def create_notification(
    payload: NotificationCreate,
    db: Session = Depends(get_db),
    sender: Identity = Depends(require_sender),
    enqueue: PushEnqueue | None = Depends(get_push_enqueue),
    realtime: RealtimeNotificationPublisher = Depends(get_realtime_publisher),
) -> NotificationCreateResponse:
    """Send a notification to the audience described by ``targetType``."""

    try:
        spec = parse_target(payload.target_type, payload.target_value)
        result = send_notification_uc(
            db,
            sender=sender,
            title=payload.title,
            message=payload.message,
            spec=spec,
            priority=payload.priority,
            category=payload.metadata.category,
            enable_push=payload.metadata.enable_push,
            enqueue=enqueue,
            realtime=realtime,
        )
    except (ValueError, PermissionError, ResolutionFailed, StorageFailure) as exc:
        raise _to_http_error(exc) from exc

    return NotificationCreateResponse(
        notification=_to_read_model(result.notification),
        recipient_count=result.recipient_count,
        queued_push_jobs=result.queued_push_jobs,
    )


@router.get("", response_model=ReceivedNotificationList)
def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    read: bool | None = Query(None),
    category: str | None = Query(None),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
    settings: Settings = Depends(get_app_settings),
) -> ReceivedNotificationList:
    """Return the notifications received by the caller, newest first."""

    if category is not None and category not in CATEGORIES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Categoría inválida")

    result = list_received_uc(
        db,
        user_id=identity.user_id,
        page=page,
        limit=limit,
        read=read,
        category=category,
        max_limit=settings.notification_page_limit,
    )
    return ReceivedNotificationList(
        notifications=[_to_received_model(item) for item in result.items],
        pagination=Pagination(
            page=result.page, limit=result.limit, total=result.total, pages=result.pages
        ),
    )


@router.get("/sent", response_model=SentNotificationList)
def list_sent_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    db: Session = Depends(get_db),
    sender: Identity = Depends(require_sender),
    settings: Settings = Depends(get_app_settings),
) -> SentNotificationList:
    """Return the notifications sent by the caller with their counters."""

    result = list_sent_uc(
        db,
        sender_id=sender.user_id,
        page=page,
        limit=limit,
        max_limit=settings.notification_page_limit,
    )
    return SentNotificationList(
        notifications=[_to_read_model(notification) for notification in result.items],
        pagination=Pagination(
            page=result.page, limit=result.limit, total=result.total, pages=result.pages
        ),
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
def get_unread_count(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
) -> UnreadCountResponse:
    return UnreadCountResponse(count=unread_count_uc(db, user_id=identity.user_id))


@router.put("/read-all", response_model=MarkAllReadResponse)
def mark_all_read(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
) -> MarkAllReadResponse:
    return MarkAllReadResponse(updated=mark_all_read_uc(db, user_id=identity.user_id))


@router.put("/read-state", response_model=ReadStateResponse)
def reconcile_read_state(
    payload: ReadStateRequest,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
) -> ReadStateResponse:
    """Acknowledge offline reads and return the server's read flags."""

    flags = reconcile_read_state_uc(
        db, user_id=identity.user_id, client_read_ids=payload.read_ids
    )
    return ReadStateResponse(
        states=[
            ReadStateEntry(notification_id=notification_id, is_read=is_read)
            for notification_id, is_read in flags.items()
        ]
    )


@router.put("/{notification_id}/read", response_model=MarkReadResponse)
def mark_read(
    notification_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
) -> MarkReadResponse:
    try:
        delivery = mark_read_uc(db, notification_id=notification_id, user_id=identity.user_id)
    except NotificationNotFound as exc:
        raise _to_http_error(exc) from exc
    return MarkReadResponse(
        notification_id=delivery.notification_id,
        is_read=delivery.read,
        read_at=delivery.read_at,
    )


@router.post("/track-click", response_model=TrackClickResponse)
def track_click(
    payload: TrackClickRequest,
    db: Session = Depends(get_db),
    identity: Identity | None = Depends(get_optional_identity),
) -> TrackClickResponse:
    """Count a click on a notification. Authentication is optional."""

    try:
        first_click = track_click_uc(
            db,
            notification_id=payload.notification_id,
            user_id=identity.user_id if identity else None,
        )
    except NotificationNotFound as exc:
        raise _to_http_error(exc) from exc
    return TrackClickResponse(first_click=first_click)


@router.post("/fcm-token", response_model=FcmTokenResponse)
def register_fcm_token(
    payload: FcmTokenRequest,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
) -> FcmTokenResponse:
    try:
        device_token = register_device_token_uc(
            db, user_id=identity.user_id, token=payload.fcm_token, platform=payload.platform
        )
    except (ValueError, TokenInvalidated, StorageFailure) as exc:
        raise _to_http_error(exc) from exc
    return FcmTokenResponse(platform=device_token.platform)


@router.put("/push-settings", response_model=PushSettingsResponse)
def update_push_settings(
    payload: PushSettingsRequest,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
) -> PushSettingsResponse:
    enabled = set_push_enabled_uc(db, user_id=identity.user_id, enabled=payload.enabled)
    return PushSettingsResponse(enabled=enabled)


@router.get("/stats", response_model=NotificationStatsRead)
def get_stats(
    days: int = Query(7, ge=1, le=90),
    db: Session = Depends(get_db),
    _: Identity = Depends(require_super_admin),
) -> NotificationStatsRead:
    """Global delivery statistics for super-admins."""

    return NotificationStatsRead(**notification_stats_uc(db, days=days))


def _pending_payload(session: Session, user_id: int) -> list[dict[str, Any]]:
    page = list_received_uc(session, user_id=user_id, read=False, limit=20)
    return [serialize_notification(item.notification) for item in page.items]


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Websocket endpoint that streams new notifications to the authenticated user."""

    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=1008)
        return

    try:
        identity = resolve_identity(token)
    except HTTPException:
        await websocket.close(code=1008)
        return

    session_factory = websocket.app.state.session_factory
    with session_scope(session_factory) as session:
        pending = _pending_payload(session, identity.user_id)

    await inbox_connections.register(identity.user_id, websocket)
    logger.debug("Websocket connected for user %s", identity.user_id)
    try:
        if pending:
            await websocket.send_json({"type": "init", "data": pending})
        while True:
            try:
                message = await websocket.receive_json()
            except WebSocketDisconnect:
                raise
            except ValueError:
                continue

            if not isinstance(message, dict):
                continue

            message_type = message.get("type")
            if message_type == "ping":
                await websocket.send_json({"type": "pong"})
                continue

            if message_type == "ack":
                ids = message.get("ids", [])
                if isinstance(ids, list):
                    ids = [value for value in ids if isinstance(value, int)]
                if isinstance(ids, list) and ids:
                    with session_scope(session_factory) as ack_session:
                        reconcile_read_state_uc(
                            ack_session, user_id=identity.user_id, client_read_ids=ids
                        )
                continue
    except WebSocketDisconnect:
        inbox_connections.unregister(identity.user_id, websocket)
    except Exception:
        inbox_connections.unregister(identity.user_id, websocket)
        raise
