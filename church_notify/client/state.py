"""Local notification list held by a connected client."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from church_notify.application.use_cases.notifications.visibility import (
    sort_notifications_by_priority,
)
from church_notify.domain.entities import Notification

logger = logging.getLogger(__name__)


@dataclass
class NotificationState:
    """Notifications known to one client plus the derived unread counter.

    ``unread_count`` is updated incrementally and never drops below zero. Read
    flags only ever move from unread to read.
    """

    notifications: list[Notification] = field(default_factory=list)
    unread_count: int = 0
    is_connected: bool = False
    last_activity: datetime | None = None

    def touch(self, when: datetime) -> None:
        self.last_activity = when

    def get(self, notification_id: str) -> Notification | None:
        for notification in self.notifications:
            if notification.id == notification_id:
                return notification
        return None

    def replace_all(self, notifications: Iterable[Notification]) -> None:
        """Replace the list with a server snapshot and recompute the unread count.

        Entries already read locally stay read even when the snapshot says otherwise.
        """

        read_locally = {n.id for n in self.notifications if n.read}
        unique: dict[str, Notification] = {}
        for notification in notifications:
            if notification.id in unique:
                continue
            if notification.id in read_locally and not notification.read:
                notification = notification.mark_read()
            unique[notification.id] = notification
        self.notifications = sort_notifications_by_priority(unique.values())
        self.unread_count = sum(1 for n in self.notifications if not n.read)

    def add(self, notification: Notification) -> bool:
        """Prepend ``notification`` unless an entry with the same id exists."""

        if self.get(notification.id) is not None:
            logger.debug("Ignoring duplicate notification %s", notification.id)
            return False
        self.notifications.insert(0, notification)
        if not notification.read:
            self.unread_count += 1
        return True

    def mark_as_read(self, notification_id: str) -> bool:
        """Flip one entry to read. Returns ``True`` when it was unread."""

        for index, notification in enumerate(self.notifications):
            if notification.id != notification_id:
                continue
            if notification.read:
                return False
            self.notifications[index] = notification.mark_read()
            self.unread_count = max(0, self.unread_count - 1)
            return True
        return False

    def mark_all_as_read(self) -> list[str]:
        """Flip every unread entry and return the ids that changed."""

        changed: list[str] = []
        for index, notification in enumerate(self.notifications):
            if not notification.read:
                self.notifications[index] = notification.mark_read()
                changed.append(notification.id)
        self.unread_count = 0
        return changed

    def remove(self, notification_id: str) -> Notification | None:
        for index, notification in enumerate(self.notifications):
            if notification.id == notification_id:
                del self.notifications[index]
                if not notification.read:
                    self.unread_count = max(0, self.unread_count - 1)
                return notification
        return None

    def clear(self) -> None:
        self.notifications = []
        self.unread_count = 0

    def sorted(self) -> list[Notification]:
        return sort_notifications_by_priority(self.notifications)

    def apply_server_read_state(self, server: Iterable[Notification]) -> list[str]:
        """Adopt read flags the server holds for notifications known locally.

        Returns the ids read locally but still unread on the server, so the
        caller can send those receipts again.
        """

        server_read = {n.id: n.read for n in server}
        pending: list[str] = []
        for index, notification in enumerate(self.notifications):
            remote_read = server_read.get(notification.id)
            if remote_read is None or remote_read == notification.read:
                continue
            if remote_read:
                self.notifications[index] = notification.mark_read()
            else:
                pending.append(notification.id)
        self.unread_count = sum(1 for n in self.notifications if not n.read)
        return pending


__all__ = ["NotificationState"]
