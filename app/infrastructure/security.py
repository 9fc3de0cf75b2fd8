"""JWT helpers used to read the identity issued by the portal's auth service."""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from app.config import get_settings
from app.domain.entities import Identity


def create_access_token(identity: Identity, expires_delta: timedelta | None = None) -> str:
    """Issue a token carrying ``identity``. Used by scripts and tests."""

    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    claims = {
        "sub": str(identity.user_id),
        "role": identity.role,
        "department_id": identity.department_id,
        "name": identity.name,
        "exp": expire,
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    settings = get_settings()
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise ValueError("Could not validate credentials") from exc


def identity_from_claims(claims: dict) -> Identity:
    """Build an :class:`Identity` from decoded token claims."""

    try:
        user_id = int(claims["sub"])
        role = str(claims["role"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError("Token is missing identity claims") from exc

    department_id = claims.get("department_id")
    if department_id is not None:
        try:
            department_id = int(department_id)
        except (TypeError, ValueError) as exc:
            raise ValueError("Invalid department claim") from exc

    return Identity(
        user_id=user_id,
        role=role,
        department_id=department_id,
        name=str(claims.get("name") or ""),
    )
