"""SQLAlchemy model for per-recipient notification state."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.infrastructure.database import Base
from app.utils import now_naive_utc


class RecipientDeliveryModel(Base):
    """One row per (notification, recipient) created at fan-out time."""

    __tablename__ = "recipient_delivery"
    __table_args__ = (
        UniqueConstraint("notification_id", "user_id", name="uq_recipient_delivery_pair"),
        Index("ix_recipient_delivery_user_read", "user_id", "read"),
    )

    id = Column(Integer, primary_key=True, index=True)
    notification_id = Column(
        Integer, ForeignKey("notification.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(Integer, nullable=False, index=True)
    delivered = Column(Boolean, nullable=False, default=False)
    delivered_at = Column(DateTime(), nullable=True)
    read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime(), nullable=True)
    clicked = Column(Boolean, nullable=False, default=False)
    clicked_at = Column(DateTime(), nullable=True)
    created_at = Column(DateTime(), nullable=False, default=now_naive_utc)

    notification = relationship("NotificationModel", back_populates="deliveries")


__all__ = ["RecipientDeliveryModel"]
