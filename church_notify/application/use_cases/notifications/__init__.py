"""Public helpers for building and ordering domain notifications.

Delivery and persistence helpers live in :mod:`.sender` and
:mod:`.read_status`; they depend on the infrastructure layer and are imported
from their modules directly.
"""

from .factory import (
    create_notification,
    event_reminder,
    membership_request_processed,
    new_announcement,
    new_blog_post,
    new_event,
    new_event_registration,
    new_membership_request,
    new_prayer_request,
    new_sermon,
    new_user_registration,
    prayer_request_status_update,
    system_alert,
    upcoming_event_alert,
    user_status_change,
)
from .visibility import (
    filter_notifications_for_user,
    is_expired,
    is_urgent_notification,
    is_visible_to,
    sort_notifications_by_priority,
)

__all__ = [
    "create_notification",
    "event_reminder",
    "membership_request_processed",
    "new_announcement",
    "new_blog_post",
    "new_event",
    "new_event_registration",
    "new_membership_request",
    "new_prayer_request",
    "new_sermon",
    "new_user_registration",
    "prayer_request_status_update",
    "system_alert",
    "upcoming_event_alert",
    "user_status_change",
    "filter_notifications_for_user",
    "is_expired",
    "is_urgent_notification",
    "is_visible_to",
    "sort_notifications_by_priority",
]
