"""Decide how an incoming notification is surfaced to the person at the screen."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from church_notify.application.use_cases.notifications.visibility import (
    is_urgent_notification,
)
from church_notify.domain.entities import (
    Notification,
    NotificationPriority,
    TargetAudience,
    Viewer,
)

logger = logging.getLogger(__name__)

URGENT_TOAST_DURATION_MS = 6000
DEFAULT_TOAST_DURATION_MS = 4000
CONNECTION_LOST_TOAST_DURATION_MS = 5000


class ToastLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class AlertChannel(str, Enum):
    OS = "os"
    TOAST = "toast"


@dataclass(frozen=True)
class Toast:
    title: str
    description: str
    level: ToastLevel = ToastLevel.INFO
    duration_ms: int = DEFAULT_TOAST_DURATION_MS
    action_url: str | None = None


class ToastSink(Protocol):
    def show(self, toast: Toast) -> None:
        ...


class OsNotifier(Protocol):
    def permission_granted(self) -> bool:
        ...

    def show(self, notification: Notification, *, require_interaction: bool = False) -> None:
        ...


class PageVisibility(Protocol):
    def is_visible(self) -> bool:
        ...


class LoggingToastSink:
    """Toast sink for headless clients; writes each toast to the log."""

    def show(self, toast: Toast) -> None:
        logger.info("[%s] %s: %s", toast.level.value, toast.title, toast.description)


class AlwaysVisible:
    def is_visible(self) -> bool:
        return True


def toast_level_for(priority: NotificationPriority) -> ToastLevel:
    if priority == NotificationPriority.URGENT:
        return ToastLevel.ERROR
    if priority == NotificationPriority.HIGH:
        return ToastLevel.WARNING
    return ToastLevel.INFO


def toast_duration_for(priority: NotificationPriority) -> int:
    if priority in (NotificationPriority.URGENT, NotificationPriority.HIGH):
        return URGENT_TOAST_DURATION_MS
    return DEFAULT_TOAST_DURATION_MS


def build_toast(notification: Notification) -> Toast:
    return Toast(
        title=notification.title,
        description=notification.message,
        level=toast_level_for(notification.priority),
        duration_ms=toast_duration_for(notification.priority),
        action_url=notification.action_url,
    )


class AlertDispatcher:
    """Surface important notifications through exactly one channel.

    A notification is surfaced when its priority is high or urgent, or when an
    administrator receives something addressed to the admin audience. When the
    page is hidden and the OS permission was granted an OS notification is
    shown; otherwise a toast is raised. Urgent OS notifications stay on screen
    until the user interacts with them.
    """

    def __init__(
        self,
        toasts: ToastSink | None = None,
        os_notifier: OsNotifier | None = None,
        visibility: PageVisibility | None = None,
    ) -> None:
        self._toasts = toasts or LoggingToastSink()
        self._os_notifier = os_notifier
        self._visibility = visibility or AlwaysVisible()
        self._connection_lost_shown = False

    @staticmethod
    def should_surface(notification: Notification, viewer: Viewer | None) -> bool:
        if notification.priority in (NotificationPriority.HIGH, NotificationPriority.URGENT):
            return True
        return (
            viewer is not None
            and viewer.is_admin()
            and notification.target_audience == TargetAudience.ADMIN
        )

    def dispatch(
        self, notification: Notification, viewer: Viewer | None
    ) -> AlertChannel | None:
        """Surface ``notification`` if it qualifies and return the channel used."""

        if not self.should_surface(notification, viewer):
            return None

        if not self._visibility.is_visible() and self._os_permission_granted():
            self._os_notifier.show(
                notification, require_interaction=is_urgent_notification(notification)
            )
            return AlertChannel.OS

        self._toasts.show(build_toast(notification))
        return AlertChannel.TOAST

    def connection_lost(self) -> bool:
        """Show the one-time "lost connection" toast. Returns ``False`` if already shown."""

        if self._connection_lost_shown:
            return False
        self._connection_lost_shown = True
        self._toasts.show(
            Toast(
                title="Connection lost",
                description="Lost connection to notifications. Please refresh the page.",
                level=ToastLevel.ERROR,
                duration_ms=CONNECTION_LOST_TOAST_DURATION_MS,
            )
        )
        return True

    def _os_permission_granted(self) -> bool:
        return self._os_notifier is not None and self._os_notifier.permission_granted()


__all__ = [
    "AlertChannel",
    "AlertDispatcher",
    "AlwaysVisible",
    "LoggingToastSink",
    "OsNotifier",
    "PageVisibility",
    "Toast",
    "ToastLevel",
    "ToastSink",
    "build_toast",
    "toast_duration_for",
    "toast_level_for",
]
