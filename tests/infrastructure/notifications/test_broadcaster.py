"""Tests for the notification broadcaster."""

from __future__ import annotations

import logging

from church_notify.infrastructure.notifications import NotificationBroadcaster
from conftest import make_notification


def test_broadcast_without_publisher_drops_with_warning(caplog) -> None:
    broadcaster = NotificationBroadcaster()

    with caplog.at_level(logging.WARNING):
        delivered = broadcaster.broadcast(make_notification())

    assert delivered is False
    assert "No notification stream registered" in caplog.text


def test_broadcast_hands_notification_to_publisher() -> None:
    broadcaster = NotificationBroadcaster()
    received = []
    broadcaster.set_publisher(received.append)
    notification = make_notification()

    assert broadcaster.broadcast(notification) is True
    assert received == [notification]


def test_publisher_failure_is_logged_and_swallowed(caplog) -> None:
    broadcaster = NotificationBroadcaster()

    def failing_publisher(_):
        raise RuntimeError("stream gone")

    broadcaster.set_publisher(failing_publisher)

    with caplog.at_level(logging.ERROR):
        assert broadcaster.broadcast(make_notification()) is False

    assert "publisher failed" in caplog.text


def test_reset_publisher_and_status() -> None:
    broadcaster = NotificationBroadcaster()
    broadcaster.set_publisher(lambda _: None)

    assert broadcaster.status()["has_stream_connection"] is True

    broadcaster.reset_publisher()
    status = broadcaster.status()

    assert broadcaster.has_publisher is False
    assert status["has_stream_connection"] is False
    assert status["timestamp"]
