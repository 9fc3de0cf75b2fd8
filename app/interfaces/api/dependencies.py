"""FastAPI dependency utilities."""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from app.config import Settings, get_settings
from app.domain.entities import Identity, PushJob
from app.infrastructure.notifications import RealtimeNotificationPublisher, realtime_publisher
from app.infrastructure.push import PushDeliveryPipeline
from app.infrastructure.security import decode_access_token, identity_from_claims

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token", auto_error=False)


def resolve_identity(token: str) -> Identity:
    """Resolve the caller identity carried by ``token``."""

    try:
        return identity_from_claims(decode_access_token(token))
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Credenciales inválidas",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


def get_identity(token: str = Depends(oauth2_scheme)) -> Identity:
    """Return the authenticated identity from the bearer token."""

    return resolve_identity(token)


def get_optional_identity(token: str | None = Depends(optional_oauth2_scheme)) -> Identity | None:
    """Return the identity when a valid token is sent, ``None`` otherwise."""

    if not token:
        return None
    try:
        return identity_from_claims(decode_access_token(token))
    except ValueError:
        return None


def require_sender(identity: Identity = Depends(get_identity)) -> Identity:
    """Ensure the caller may send notifications (teachers and super-admins)."""

    if not identity.can_send_notifications():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No autorizado",
        )
    return identity


def require_super_admin(identity: Identity = Depends(get_identity)) -> Identity:
    if not identity.is_super_admin():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No autorizado",
        )
    return identity


def get_push_pipeline(request: Request) -> PushDeliveryPipeline | None:
    """Return the pipeline started by the application lifespan, if any."""

    return getattr(request.app.state, "push_pipeline", None)


def get_push_enqueue(request: Request):
    """Return the callable used by the dispatcher to queue push jobs."""

    pipeline = get_push_pipeline(request)
    if pipeline is None or not pipeline.running:
        return None

    def enqueue(job: PushJob) -> None:
        pipeline.submit(job)

    return enqueue


def get_realtime_publisher() -> RealtimeNotificationPublisher:
    return realtime_publisher


def get_app_settings() -> Settings:
    return get_settings()
