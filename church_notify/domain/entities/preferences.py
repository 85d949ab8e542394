"""Per-user notification preferences."""

from __future__ import annotations

from dataclasses import dataclass

from .notification import NotificationType


@dataclass(frozen=True)
class NotificationPreferences:
    """Categories a user wants to receive."""

    announcements: bool = True
    events: bool = True
    prayer_requests: bool = True
    system_notifications: bool = True
    email_notifications: bool = False

    def allows(self, notification_type: NotificationType) -> bool:
        if notification_type == NotificationType.ANNOUNCEMENT:
            return self.announcements
        if notification_type == NotificationType.EVENT:
            return self.events
        if notification_type == NotificationType.PRAYER_REQUEST:
            return self.prayer_requests
        if notification_type == NotificationType.SYSTEM:
            return self.system_notifications
        return True


DEFAULT_NOTIFICATION_PREFERENCES = NotificationPreferences()


__all__ = ["DEFAULT_NOTIFICATION_PREFERENCES", "NotificationPreferences"]
