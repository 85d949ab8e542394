"""Builders for domain notifications.

Every helper hard-codes the type, priority and audience that fit its business
event and shapes the message text, so the delivery layer only ever handles the
generic :class:`Notification` shape.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable
from uuid import uuid4

from church_notify.domain.entities import (
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
)
from church_notify.utils import ensure_app_timezone, now_in_app_timezone

_REMINDER_MESSAGES = {
    "24h": 'Reminder: "{title}" is happening tomorrow{time}',
    "1h": 'Reminder: "{title}" starts in 1 hour{time}',
    "day_of": 'Reminder: "{title}" is happening today{time}',
    "custom": 'Reminder: "{title}" on {date}{time}',
}
_REMINDER_PRIORITIES = {
    "24h": NotificationPriority.MEDIUM,
    "1h": NotificationPriority.HIGH,
    "day_of": NotificationPriority.HIGH,
    "custom": NotificationPriority.MEDIUM,
}
_PRAYER_STATUS_MESSAGES = {
    "approved": (
        'Your prayer request "{title}" has been approved and is now visible to the church.'
    ),
    "answered": 'Praise God! Your prayer request "{title}" has been marked as answered.',
    "archived": 'Your prayer request "{title}" has been archived.',
}


def _coerce(enum_cls, value, field_name: str):
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise InvalidNotificationError(f"Invalid {field_name}: {value!r}") from exc


def create_notification(
    *,
    title: str,
    message: str,
    type: NotificationType | str,
    priority: NotificationPriority | str | None = None,
    target_audience: TargetAudience | str | None = None,
    specific_users: Iterable[str] | None = None,
    expires_at: datetime | None = None,
    metadata: NotificationMetadata | None = None,
    action_url: str | None = None,
) -> Notification:
    """Return a fresh, unread notification with defaults applied."""

    return Notification(
        id=str(uuid4()),
        title=title,
        message=message,
        type=_coerce(NotificationType, type, "notification type"),
        priority=_coerce(
            NotificationPriority, priority or NotificationPriority.MEDIUM, "priority"
        ),
        target_audience=_coerce(
            TargetAudience, target_audience or TargetAudience.ALL, "target audience"
        ),
        specific_users=tuple(str(user_id) for user_id in specific_users or ()),
        read=False,
        created_at=now_in_app_timezone(),
        expires_at=ensure_app_timezone(expires_at),
        metadata=metadata,
        action_url=action_url,
    )


def new_prayer_request(
    *, request_id: str, request_title: str, requester_name: str, is_guest: bool = False
) -> Notification:
    return create_notification(
        title="New Prayer Request",
        message=f'{requester_name} has submitted a prayer request: "{request_title}"',
        type=NotificationType.PRAYER_REQUEST,
        priority=NotificationPriority.HIGH,
        target_audience=TargetAudience.ADMIN,
        metadata=PrayerRequestMetadata(
            request_id=request_id,
            requester_name=requester_name,
            is_anonymous=is_guest,
        ),
        action_url="/admin/prayer-requests",
    )


def new_user_registration(*, user_id: str, user_name: str, user_email: str) -> Notification:
    return create_notification(
        title="New User Registration",
        message=f"{user_name} ({user_email}) has registered as a new member",
        type=NotificationType.ADMIN,
        priority=NotificationPriority.MEDIUM,
        target_audience=TargetAudience.ADMIN,
        metadata=AdminMetadata(admin_action="user_registration", target_user_id=user_id),
        action_url="/admin/users",
    )


def new_membership_request(*, request_id: str, name: str, email: str) -> Notification:
    return create_notification(
        title="New Membership Request",
        message=f"{name} ({email}) has submitted a membership request",
        type=NotificationType.ADMIN,
        priority=NotificationPriority.HIGH,
        target_audience=TargetAudience.ADMIN,
        metadata=AdminMetadata(
            admin_action="membership_request", target_resource=request_id
        ),
        action_url="/admin/membership-requests",
    )


def new_event_registration(
    *, event_id: str, event_title: str, user_name: str, user_email: str
) -> Notification:
    return create_notification(
        title="New Event Registration",
        message=f'{user_name} has registered for "{event_title}"',
        type=NotificationType.EVENT,
        priority=NotificationPriority.LOW,
        target_audience=TargetAudience.ADMIN,
        metadata=EventMetadata(
            event_id=event_id,
            extra={"userName": user_name, "userEmail": user_email},
        ),
        action_url="/admin/events",
    )


def new_announcement(*, announcement_id: str, title: str, author: str) -> Notification:
    return create_notification(
        title="New Announcement",
        message=f'{author} has posted: "{title}"',
        type=NotificationType.ANNOUNCEMENT,
        priority=NotificationPriority.MEDIUM,
        target_audience=TargetAudience.ALL,
        metadata=AnnouncementMetadata(announcement_id=announcement_id, author=author),
        action_url="/announcements",
    )


def new_event(*, event_id: str, title: str, date: str, organizer: str) -> Notification:
    return create_notification(
        title="New Event",
        message=f'{organizer} has created a new event: "{title}" on {date}',
        type=NotificationType.EVENT,
        priority=NotificationPriority.MEDIUM,
        target_audience=TargetAudience.ALL,
        metadata=EventMetadata(
            event_id=event_id, event_date=date, extra={"organizer": organizer}
        ),
        action_url="/events",
    )


def user_status_change(
    *, user_id: str, user_name: str, status: str, changed_by: str
) -> Notification:
    return create_notification(
        title="User Status Changed",
        message=f"{changed_by} has changed {user_name}'s status to: {status}",
        type=NotificationType.ADMIN,
        priority=NotificationPriority.MEDIUM,
        target_audience=TargetAudience.ADMIN,
        metadata=AdminMetadata(
            admin_action="user_status_change",
            target_user_id=user_id,
            changes={"status": status},
        ),
        action_url="/admin/users",
    )


def system_alert(
    *, title: str, message: str, priority: str = "normal", url: str | None = None
) -> Notification:
    """Build an admin-facing system alert; ``normal`` is accepted for ``medium``."""

    return create_notification(
        title=title,
        message=message,
        type=NotificationType.SYSTEM,
        priority=NotificationPriority.MEDIUM if priority == "normal" else priority,
        target_audience=TargetAudience.ADMIN,
        metadata=SystemMetadata(
            action="system_alert", details={"url": url} if url else {}
        ),
        action_url=url,
    )


def new_blog_post(*, post_id: str, title: str, author: str, category: str) -> Notification:
    return create_notification(
        title="New Blog Post",
        message=f'{author} published a new article: "{title}"',
        type=NotificationType.ANNOUNCEMENT,
        priority=NotificationPriority.MEDIUM,
        target_audience=TargetAudience.ALL,
        metadata=AnnouncementMetadata(
            category=category, author=author, extra={"postId": post_id}
        ),
        action_url=f"/blog/{post_id}",
    )


def new_sermon(*, sermon_id: str, title: str, speaker: str, media_type: str) -> Notification:
    is_video = media_type == "video"
    label = "video sermon" if is_video else "audio message"
    return create_notification(
        title="New Video Sermon" if is_video else "New Audio Message",
        message=f'A new {label} "{title}" by {speaker} is now available',
        type=NotificationType.ANNOUNCEMENT,
        priority=NotificationPriority.MEDIUM,
        target_audience=TargetAudience.ALL,
        metadata=AnnouncementMetadata(
            extra={"sermonId": sermon_id, "speaker": speaker, "mediaType": media_type}
        ),
        action_url="/sermons" if is_video else "/audio-messages",
    )


def membership_request_processed(
    *, request_id: str, user_id: str, user_name: str, status: str, processed_by: str
) -> Notification:
    approved = status == "approved"
    if approved:
        message = f"Welcome to the church, {user_name}! Your membership has been approved."
    else:
        message = (
            "Your membership request has been reviewed. "
            "Please contact the church for more information."
        )
    return create_notification(
        title="Membership Approved!" if approved else "Membership Request Update",
        message=message,
        type=NotificationType.SYSTEM,
        priority=NotificationPriority.HIGH if approved else NotificationPriority.MEDIUM,
        target_audience=TargetAudience.SPECIFIC,
        specific_users=[user_id],
        metadata=SystemMetadata(
            action="membership_request_processed",
            details={"requestId": request_id, "status": status, "processedBy": processed_by},
        ),
        action_url="/members/dashboard",
    )


def prayer_request_status_update(
    *, request_id: str, user_id: str, request_title: str, status: str
) -> Notification:
    template = _PRAYER_STATUS_MESSAGES.get(status)
    if template is None:
        raise InvalidNotificationError(f"Unknown prayer request status: {status!r}")
    answered = status == "answered"
    return create_notification(
        title="Prayer Answered!" if answered else "Prayer Request Update",
        message=template.format(title=request_title),
        type=NotificationType.PRAYER_REQUEST,
        priority=NotificationPriority.HIGH if answered else NotificationPriority.MEDIUM,
        target_audience=TargetAudience.SPECIFIC,
        specific_users=[user_id],
        metadata=PrayerRequestMetadata(request_id=request_id, extra={"status": status}),
        action_url="/members/prayer",
    )


def event_reminder(
    *,
    event_id: str,
    title: str,
    date: str,
    reminder_type: str,
    time: str | None = None,
    location: str | None = None,
    registered_user_ids: Iterable[str] | None = None,
) -> Notification:
    """Remind registrants (or everybody when nobody registered) about an event."""

    template = _REMINDER_MESSAGES.get(reminder_type)
    if template is None:
        raise InvalidNotificationError(f"Unknown reminder type: {reminder_type!r}")
    registrants = list(registered_user_ids or ())
    return create_notification(
        title="Event Reminder",
        message=template.format(
            title=title, date=date, time=f" at {time}" if time else ""
        ),
        type=NotificationType.EVENT,
        priority=_REMINDER_PRIORITIES[reminder_type],
        target_audience=TargetAudience.SPECIFIC if registrants else TargetAudience.ALL,
        specific_users=registrants,
        metadata=EventMetadata(
            event_id=event_id,
            event_date=date,
            location=location,
            extra={"reminderType": reminder_type},
        ),
        action_url="/events",
    )


def upcoming_event_alert(
    *, event_id: str, title: str, date: str, days_until: int
) -> Notification:
    plural = "s" if days_until > 1 else ""
    return create_notification(
        title="Upcoming Event",
        message=f'Don\'t miss "{title}" happening in {days_until} day{plural} on {date}',
        type=NotificationType.EVENT,
        priority=NotificationPriority.MEDIUM,
        target_audience=TargetAudience.ALL,
        metadata=EventMetadata(
            event_id=event_id, event_date=date, extra={"daysUntil": days_until}
        ),
        action_url="/events",
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
]
