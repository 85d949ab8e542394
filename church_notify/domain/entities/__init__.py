"""Domain entities exposed by the application."""

from .notification import (
    METADATA_TYPES,
    AdminMetadata,
    AnnouncementMetadata,
    EventMetadata,
    InvalidNotificationError,
    Notification,
    NotificationMetadata,
    NotificationPriority,
    NotificationType,
    PrayerRequestMetadata,
    SystemMetadata,
    TargetAudience,
    metadata_from_dict,
    metadata_to_dict,
)
from .preferences import DEFAULT_NOTIFICATION_PREFERENCES, NotificationPreferences
from .viewer import Viewer, ViewerRole

__all__ = [
    "AdminMetadata",
    "AnnouncementMetadata",
    "DEFAULT_NOTIFICATION_PREFERENCES",
    "EventMetadata",
    "InvalidNotificationError",
    "METADATA_TYPES",
    "Notification",
    "NotificationMetadata",
    "NotificationPreferences",
    "NotificationPriority",
    "NotificationType",
    "PrayerRequestMetadata",
    "SystemMetadata",
    "TargetAudience",
    "Viewer",
    "ViewerRole",
    "metadata_from_dict",
    "metadata_to_dict",
]
