"""SQLAlchemy models for push device tokens and push preferences."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from app.infrastructure.database import Base
from app.utils import now_naive_utc


class DeviceTokenModel(Base):
    """Registered device token. Rows are never deleted, only invalidated."""

    __tablename__ = "device_token"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    token = Column(String(512), nullable=False, unique=True)
    platform = Column(String(10), nullable=False, default="android")
    registered_at = Column(DateTime(), nullable=False, default=now_naive_utc)
    last_seen_at = Column(DateTime(), nullable=False, default=now_naive_utc)
    valid = Column(Boolean, nullable=False, default=True, index=True)
    invalidated_at = Column(DateTime(), nullable=True)
    invalid_reason = Column(String(120), nullable=True)


class PushPreferenceModel(Base):
    """Per-user switch for push delivery; missing rows mean enabled."""

    __tablename__ = "push_preference"

    user_id = Column(Integer, primary_key=True)
    push_enabled = Column(Boolean, nullable=False, default=True)
    updated_at = Column(DateTime(), nullable=False, default=now_naive_utc)


__all__ = ["DeviceTokenModel", "PushPreferenceModel"]
