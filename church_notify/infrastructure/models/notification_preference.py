"""SQLAlchemy model for per-user notification preferences."""

from sqlalchemy import Boolean, Column, DateTime, String

from church_notify.infrastructure.database import Base


class NotificationPreferenceModel(Base):
    """Categories a user has chosen to receive."""

    __tablename__ = "notification_preference"

    user_id = Column(String(64), primary_key=True)
    announcements = Column(Boolean, nullable=False, default=True)
    events = Column(Boolean, nullable=False, default=True)
    prayer_requests = Column(Boolean, nullable=False, default=True)
    system_notifications = Column(Boolean, nullable=False, default=True)
    email_notifications = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(), nullable=True)


__all__ = ["NotificationPreferenceModel"]
