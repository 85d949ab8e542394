"""Use cases backing the notification list and read-status API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from sqlalchemy.orm import Session

from church_notify.domain.entities import Notification, Viewer
from church_notify.infrastructure.repositories import (
    NotificationPreferenceRepository,
    NotificationRepository,
)

MARK_READ_ACTION = "mark_read"
MARK_ALL_READ_ACTION = "mark_all_read"


@dataclass
class NotificationListing:
    """Notifications visible to a viewer plus their unread total."""

    notifications: Sequence[Notification]
    unread_count: int


def list_notifications(
    session: Session,
    *,
    viewer: Viewer,
    limit: int = 50,
    include_read: bool = False,
) -> NotificationListing:
    """List what ``viewer`` may see, honouring the categories they opted out of."""

    repository = NotificationRepository(session)
    preferences = NotificationPreferenceRepository(session).get(viewer.user_id)
    notifications = repository.list_for_viewer(
        viewer, limit=limit, include_read=include_read, preferences=preferences
    )
    return NotificationListing(
        notifications=notifications,
        unread_count=repository.count_unread(viewer, preferences),
    )


def mark_notification_read(session: Session, *, viewer: Viewer, notification_id: str) -> None:
    """Record that ``viewer`` read ``notification_id``.

    Raises ``LookupError`` when the notification does not exist or is not
    addressed to ``viewer``.
    """

    if not NotificationRepository(session).mark_as_read(notification_id, viewer=viewer):
        raise LookupError(f"Notification {notification_id} not found")


def mark_all_notifications_read(session: Session, *, viewer: Viewer) -> int:
    """Mark every notification visible to ``viewer`` as read; return how many changed."""

    preferences = NotificationPreferenceRepository(session).get(viewer.user_id)
    return NotificationRepository(session).mark_all_as_read(viewer, preferences)


def viewer_read_ids(session: Session, *, viewer: Viewer) -> set[str]:
    """Return the ids of every notification ``viewer`` has read."""

    return NotificationRepository(session).read_ids_for_user(viewer.user_id)


__all__ = [
    "MARK_ALL_READ_ACTION",
    "MARK_READ_ACTION",
    "NotificationListing",
    "list_notifications",
    "mark_all_notifications_read",
    "mark_notification_read",
    "viewer_read_ids",
]
