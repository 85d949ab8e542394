"""Single-slot holder connecting notification producers to the live stream."""

from __future__ import annotations

import logging
from typing import Any, Callable

from church_notify.domain.entities import Notification
from church_notify.utils import now_in_app_timezone

logger = logging.getLogger(__name__)

Publisher = Callable[[Notification], None]


class NotificationBroadcaster:
    """Forward notifications to whatever currently delivers them to clients.

    Request handlers call :meth:`broadcast` without knowing whether a stream is
    running. With no publisher registered the notification is dropped; live
    alerts are ephemeral and nothing is queued or retried.
    """

    def __init__(self) -> None:
        self._publisher: Publisher | None = None

    @property
    def has_publisher(self) -> bool:
        return self._publisher is not None

    def set_publisher(self, publisher: Publisher) -> None:
        """Register the stream's publish callback."""

        self._publisher = publisher
        logger.info("Notification stream publisher connected")

    def reset_publisher(self) -> None:
        """Forget the registered publish callback."""

        self._publisher = None
        logger.info("Notification stream publisher disconnected")

    def broadcast(self, notification: Notification) -> bool:
        """Hand ``notification`` to the publisher; return whether it was delivered."""

        publisher = self._publisher
        if publisher is None:
            logger.warning(
                "No notification stream registered; dropping %s notification %s",
                notification.type.value,
                notification.id,
            )
            return False

        try:
            publisher(notification)
        except Exception:
            logger.exception(
                "Notification stream publisher failed for %s", notification.id
            )
            return False

        logger.info(
            "Broadcast %s notification %s: %s",
            notification.type.value,
            notification.id,
            notification.title,
        )
        return True

    def status(self) -> dict[str, Any]:
        """Describe whether live delivery is currently available."""

        connected = self.has_publisher
        return {
            "has_stream_connection": connected,
            "timestamp": now_in_app_timezone().isoformat(),
            "note": (
                "Live stream delivery available in this process"
                if connected
                else "Live stream delivery not available; clients see new notifications on reload"
            ),
        }


notification_broadcaster = NotificationBroadcaster()


def get_broadcaster() -> NotificationBroadcaster:
    """Return the process-wide broadcaster; used as a FastAPI dependency."""

    return notification_broadcaster


__all__ = [
    "NotificationBroadcaster",
    "Publisher",
    "get_broadcaster",
    "notification_broadcaster",
]
