"""SQLAlchemy model for persisted notifications."""

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from app.infrastructure.database import Base
from app.utils import now_naive_utc


class NotificationModel(Base):
    """Database representation of a sent notification."""

    __tablename__ = "notification"
    __table_args__ = (Index("ix_notification_sender_created", "sender_id", "created_at"),)

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    message = Column(Text, nullable=False)
    priority = Column(String(10), nullable=False, default="normal")
    category = Column(String(20), nullable=False, default="general")
    sender_id = Column(Integer, nullable=False)
    sender_name = Column(String(120), nullable=False, default="")
    sender_role = Column(String(20), nullable=False)
    target_type = Column(String(20), nullable=False)
    target_value = Column(String(255), nullable=False, default="")
    push_enabled = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(), nullable=False, default=now_naive_utc)
    total_recipients = Column(Integer, nullable=False, default=0)
    push_success_count = Column(Integer, nullable=False, default=0)
    push_failure_count = Column(Integer, nullable=False, default=0)
    clicks = Column(Integer, nullable=False, default=0)

    deliveries = relationship(
        "RecipientDeliveryModel",
        back_populates="notification",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


__all__ = ["NotificationModel"]
