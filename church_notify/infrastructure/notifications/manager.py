"""Connection management helpers for the notification event stream."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable

from church_notify.application.use_cases.notifications.visibility import (
    filter_notifications_for_user,
    is_visible_to,
    sort_notifications_by_priority,
)
from church_notify.domain.entities import Notification, NotificationPreferences, Viewer
from church_notify.utils import now_in_app_timezone

from .publisher import encode_sse_message, serialize_notification

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100


@dataclass
class StreamConnection:
    """One open event stream and the frames waiting to be written to it."""

    connection_id: str
    viewer: Viewer
    preferences: NotificationPreferences | None = None
    queue: asyncio.Queue = field(
        default_factory=lambda: asyncio.Queue(maxsize=DEFAULT_QUEUE_SIZE)
    )
    connected_at: datetime = field(default_factory=now_in_app_timezone)
    closed: bool = False

    def close(self) -> None:
        self.closed = True


class StreamConnectionManager:
    """Track open streams and fan notifications out to the ones allowed to see them."""

    def __init__(self, *, history_limit: int = 100, initial_limit: int = 20) -> None:
        self._connections: dict[str, StreamConnection] = {}
        self._history: list[Notification] = []
        self.history_limit = history_limit
        self.initial_limit = initial_limit

    @property
    def active_count(self) -> int:
        return len(self._connections)

    @property
    def history_count(self) -> int:
        return len(self._history)

    def configure(self, *, history_limit: int, initial_limit: int) -> None:
        self.history_limit = history_limit
        self.initial_limit = initial_limit
        del self._history[history_limit:]

    def register(
        self,
        connection_id: str,
        viewer: Viewer,
        preferences: NotificationPreferences | None = None,
    ) -> StreamConnection:
        """Open a connection for ``viewer``; a reused id replaces the old stream."""

        previous = self._connections.get(connection_id)
        if previous is not None:
            previous.close()
        connection = StreamConnection(
            connection_id=connection_id, viewer=viewer, preferences=preferences
        )
        self._connections[connection_id] = connection
        logger.info(
            "Stream connection %s opened for user %s, active connections: %s",
            connection_id,
            viewer.user_id,
            self.active_count,
        )
        return connection

    def unregister(
        self, connection_id: str, connection: StreamConnection | None = None
    ) -> None:
        """Remove ``connection_id`` unless it already belongs to a newer stream."""

        current = self._connections.get(connection_id)
        if current is None:
            return
        if connection is not None and current is not connection:
            connection.close()
            return
        current.close()
        self._connections.pop(connection_id, None)
        logger.info(
            "Stream connection %s closed, active connections: %s",
            connection_id,
            self.active_count,
        )

    def publish(self, notification: Notification) -> int:
        """Remember ``notification`` and queue it for every eligible connection."""

        self._history.insert(0, notification)
        del self._history[self.history_limit:]

        frame = encode_sse_message("notification", serialize_notification(notification))
        delivered = 0
        dead: list[str] = []
        for connection_id, connection in list(self._connections.items()):
            if connection.closed:
                dead.append(connection_id)
                continue
            if not is_visible_to(notification, connection.viewer, connection.preferences):
                continue
            try:
                connection.queue.put_nowait(frame)
            except asyncio.QueueFull:
                logger.warning(
                    "Stream connection %s is not draining its queue; dropping it",
                    connection_id,
                )
                dead.append(connection_id)
                continue
            delivered += 1

        for connection_id in dead:
            self.unregister(connection_id)
        if dead:
            logger.info(
                "Cleaned up %s dead stream connections, active connections: %s",
                len(dead),
                self.active_count,
            )

        logger.debug(
            "Notification %s queued for %s of %s connections",
            notification.id,
            delivered,
            self.active_count,
        )
        return delivered

    def initial_notifications(
        self,
        viewer: Viewer,
        *,
        preferences: NotificationPreferences | None = None,
        read_ids: Iterable[str] = (),
    ) -> list[Notification]:
        """Return the snapshot sent to ``viewer`` right after connecting.

        Notifications whose id is in ``read_ids`` are flagged as read.
        """

        read = set(read_ids)
        visible = filter_notifications_for_user(self._history, viewer, preferences)
        snapshot = sort_notifications_by_priority(visible)[: self.initial_limit]
        return [
            notification.mark_read() if notification.id in read else notification
            for notification in snapshot
        ]

    def apply_preferences(
        self, user_id: str, preferences: NotificationPreferences
    ) -> int:
        """Use ``preferences`` for every open stream of ``user_id``."""

        updated = 0
        for connection in self._connections.values():
            if connection.viewer.user_id == user_id and not connection.closed:
                connection.preferences = preferences
                updated += 1
        return updated

    def health(self) -> dict[str, Any]:
        return {
            "status": "ok",
            "activeConnections": self.active_count,
            "totalNotifications": self.history_count,
            "timestamp": now_in_app_timezone().isoformat(),
        }

    def clear(self) -> None:
        """Close every connection and forget the history."""

        for connection in self._connections.values():
            connection.close()
        self._connections.clear()
        self._history.clear()


notification_manager = StreamConnectionManager()


__all__ = [
    "StreamConnection",
    "StreamConnectionManager",
    "notification_manager",
]
