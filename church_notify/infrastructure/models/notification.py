"""SQLAlchemy models for persisted notifications and read receipts."""

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from church_notify.infrastructure.database import Base


class NotificationModel(Base):
    """Database representation for notifications."""

    __tablename__ = "notification"

    id = Column(String(36), primary_key=True)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(30), nullable=False, index=True)
    priority = Column(String(10), nullable=False, default="medium")
    target_audience = Column(String(10), nullable=False, default="all", index=True)
    specific_user_ids = Column(JSON, nullable=False, default=list)
    # ``metadata`` is reserved on declarative classes.
    payload = Column("metadata", JSON, nullable=False, default=dict)
    action_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(), nullable=False, index=True)
    expires_at = Column(DateTime(), nullable=True)

    reads = relationship(
        "NotificationReadModel",
        back_populates="notification",
        cascade="all, delete-orphan",
    )


class NotificationReadModel(Base):
    """Receipt recording that a user has read a notification."""

    __tablename__ = "notification_read"
    __table_args__ = (
        UniqueConstraint("notification_id", "user_id", name="uq_notification_read_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    notification_id = Column(
        String(36), ForeignKey("notification.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(String(64), nullable=False, index=True)
    read_at = Column(DateTime(), nullable=False)

    notification = relationship("NotificationModel", back_populates="reads")


__all__ = ["NotificationModel", "NotificationReadModel"]
