"""Tests for choosing how incoming notifications are surfaced."""

from __future__ import annotations

import pytest

from church_notify.client import AlertChannel, AlertDispatcher, ToastLevel, build_toast
from church_notify.domain.entities import NotificationPriority, TargetAudience
from conftest import make_notification


class RecordingToasts:
    def __init__(self) -> None:
        self.toasts = []

    def show(self, toast) -> None:
        self.toasts.append(toast)


class FakeOsNotifier:
    def __init__(self, granted: bool) -> None:
        self.granted = granted
        self.shown = []
        self.require_interaction = []

    def permission_granted(self) -> bool:
        return self.granted

    def show(self, notification, *, require_interaction: bool = False) -> None:
        self.shown.append(notification)
        self.require_interaction.append(require_interaction)


class FakeVisibility:
    def __init__(self, visible: bool) -> None:
        self.visible = visible

    def is_visible(self) -> bool:
        return self.visible


def _dispatcher(*, visible: bool, granted: bool):
    toasts = RecordingToasts()
    notifier = FakeOsNotifier(granted)
    dispatcher = AlertDispatcher(toasts, notifier, FakeVisibility(visible))
    return dispatcher, toasts, notifier


def test_urgent_notification_in_hidden_tab_uses_os_only(member) -> None:
    dispatcher, toasts, notifier = _dispatcher(visible=False, granted=True)
    notification = make_notification(priority=NotificationPriority.URGENT)

    channel = dispatcher.dispatch(notification, member)

    assert channel is AlertChannel.OS
    assert notifier.shown == [notification]
    assert toasts.toasts == []
    assert notifier.require_interaction == [True]


def test_high_priority_os_notification_can_be_dismissed_automatically(member) -> None:
    dispatcher, _, notifier = _dispatcher(visible=False, granted=True)

    channel = dispatcher.dispatch(
        make_notification(priority=NotificationPriority.HIGH), member
    )

    assert channel is AlertChannel.OS
    assert notifier.require_interaction == [False]


def test_visible_tab_uses_toast_only(member) -> None:
    dispatcher, toasts, notifier = _dispatcher(visible=True, granted=True)

    channel = dispatcher.dispatch(
        make_notification(priority=NotificationPriority.HIGH), member
    )

    assert channel is AlertChannel.TOAST
    assert notifier.shown == []
    assert len(toasts.toasts) == 1


def test_hidden_tab_without_permission_falls_back_to_toast(member) -> None:
    dispatcher, toasts, notifier = _dispatcher(visible=False, granted=False)

    channel = dispatcher.dispatch(
        make_notification(priority=NotificationPriority.URGENT), member
    )

    assert channel is AlertChannel.TOAST
    assert notifier.shown == []


def test_routine_notifications_are_not_surfaced(member) -> None:
    dispatcher, toasts, notifier = _dispatcher(visible=True, granted=True)

    assert dispatcher.dispatch(make_notification(), member) is None
    assert toasts.toasts == []


def test_admin_audience_surfaces_for_admins_only(admin, member) -> None:
    dispatcher, toasts, _ = _dispatcher(visible=True, granted=False)
    notification = make_notification(audience=TargetAudience.ADMIN)

    assert dispatcher.dispatch(notification, admin) is AlertChannel.TOAST
    assert dispatcher.dispatch(notification, member) is None
    assert len(toasts.toasts) == 1


@pytest.mark.parametrize(
    ("priority", "level", "duration"),
    [
        (NotificationPriority.URGENT, ToastLevel.ERROR, 6000),
        (NotificationPriority.HIGH, ToastLevel.WARNING, 6000),
        (NotificationPriority.MEDIUM, ToastLevel.INFO, 4000),
        (NotificationPriority.LOW, ToastLevel.INFO, 4000),
    ],
)
def test_toast_level_and_duration(priority, level, duration) -> None:
    toast = build_toast(make_notification(priority=priority))

    assert toast.level is level
    assert toast.duration_ms == duration


def test_connection_lost_toast_is_shown_once() -> None:
    dispatcher, toasts, _ = _dispatcher(visible=True, granted=False)

    assert dispatcher.connection_lost() is True
    assert dispatcher.connection_lost() is False
    assert len(toasts.toasts) == 1
    assert toasts.toasts[0].level is ToastLevel.ERROR
