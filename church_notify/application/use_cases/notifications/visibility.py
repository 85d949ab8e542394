"""Audience, expiry and ordering rules applied whenever notifications are read."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from church_notify.domain.entities import (
    Notification,
    NotificationPreferences,
    NotificationPriority,
    TargetAudience,
    Viewer,
    ViewerRole,
)
from church_notify.utils import now_in_app_timezone


def sort_notifications_by_priority(
    notifications: Iterable[Notification],
) -> list[Notification]:
    """Return notifications ordered by priority, newest first within a priority."""

    newest_first = sorted(notifications, key=lambda item: item.created_at, reverse=True)
    return sorted(newest_first, key=lambda item: item.priority.rank, reverse=True)


def is_expired(notification: Notification, now: datetime | None = None) -> bool:
    return notification.is_expired(now or now_in_app_timezone())


def is_visible_to(
    notification: Notification,
    viewer: Viewer,
    preferences: NotificationPreferences | None = None,
    now: datetime | None = None,
) -> bool:
    """Return whether ``viewer`` should see ``notification``."""

    if is_expired(notification, now):
        return False

    audience = notification.target_audience
    if audience == TargetAudience.ADMIN and not viewer.is_admin():
        return False
    if audience == TargetAudience.MEMBERS and viewer.role == ViewerRole.VISITOR:
        return False
    if audience == TargetAudience.SPECIFIC and viewer.user_id not in notification.specific_users:
        return False

    if preferences is not None and not viewer.is_admin():
        return preferences.allows(notification.type)
    return True


def filter_notifications_for_user(
    notifications: Iterable[Notification],
    viewer: Viewer,
    preferences: NotificationPreferences | None = None,
    now: datetime | None = None,
) -> list[Notification]:
    current = now or now_in_app_timezone()
    return [
        notification
        for notification in notifications
        if is_visible_to(notification, viewer, preferences, current)
    ]


def is_urgent_notification(notification: Notification) -> bool:
    return notification.priority == NotificationPriority.URGENT


__all__ = [
    "filter_notifications_for_user",
    "is_expired",
    "is_urgent_notification",
    "is_visible_to",
    "sort_notifications_by_priority",
]
