from .notification import (
    BroadcasterStatusRead,
    NotificationActionRequest,
    NotificationActionResponse,
    NotificationListResponse,
    NotificationPreferencesRead,
    NotificationPreferencesUpdate,
    NotificationRead,
    NotificationSendRequest,
    NotificationSendResponse,
    NotificationSummary,
    StreamHealthRead,
)

__all__ = [
    "BroadcasterStatusRead",
    "NotificationActionRequest",
    "NotificationActionResponse",
    "NotificationListResponse",
    "NotificationPreferencesRead",
    "NotificationPreferencesUpdate",
    "NotificationRead",
    "NotificationSendRequest",
    "NotificationSendResponse",
    "NotificationSummary",
    "StreamHealthRead",
]
