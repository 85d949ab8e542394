"""Tests for the realtime notification consumer."""

from __future__ import annotations

import asyncio
import json
import logging
from unittest.mock import AsyncMock

import httpx
import pytest

from church_notify.client import (
    AlertDispatcher,
    AuthenticationError,
    ClientSession,
    ConnectionState,
    RealTimeNotificationConsumer,
    StreamClosed,
    TransportError,
)
from church_notify.domain.entities import NotificationPriority
from church_notify.infrastructure.notifications import serialize_notification
from conftest import make_notification

HOLD = object()


def _raw(message_type: str, payload=None) -> str:
    body = {"type": message_type}
    if payload is not None:
        body["payload"] = payload
    return json.dumps(body)


class FakeTransport:
    """Plays back one scripted step per ``open`` call.

    A step is either an exception raised by ``open`` or a list of raw messages;
    a list ending with ``HOLD`` keeps the stream open afterwards.
    """

    supported = True

    def __init__(self, *steps) -> None:
        self.steps = list(steps)
        self.opened: list[str] = []
        self.close_calls = 0
        self._current: list = []

    async def open(self, connection_id: str) -> None:
        self.opened.append(connection_id)
        if not self.steps:
            await asyncio.Event().wait()
        step = self.steps.pop(0)
        if isinstance(step, Exception):
            raise step
        self._current = list(step)

    async def messages(self):
        for item in self._current:
            if item is HOLD:
                await asyncio.Event().wait()
            yield item
        raise StreamClosed("server closed")

    async def close(self) -> None:
        self.close_calls += 1


class RecordingToasts:
    def __init__(self) -> None:
        self.toasts = []

    def show(self, toast) -> None:
        self.toasts.append(toast)


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


async def _wait_for(predicate, attempts: int = 200) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0.005)
    raise AssertionError("condition not reached")


@pytest.fixture()
def session(member) -> ClientSession:
    return ClientSession(viewer=member, token="token")


def _consumer(session, transport, **kwargs) -> RealTimeNotificationConsumer:
    kwargs.setdefault("sleep", RecordingSleep())
    return RealTimeNotificationConsumer(session, transport, connection_id="tab-1", **kwargs)


@pytest.mark.asyncio
async def test_three_transport_errors_disconnect_and_reconnect_resets(session) -> None:
    transport = FakeTransport(
        TransportError("boom"),
        TransportError("boom"),
        TransportError("boom"),
        [_raw("connected", {"connectionId": "tab-1"}), HOLD],
    )
    sleep = RecordingSleep()
    consumer = _consumer(session, transport, sleep=sleep)

    await consumer.start()
    await consumer.wait_closed()

    assert consumer.connection_state is ConnectionState.DISCONNECTED
    assert consumer.reconnect_attempts == 3
    assert len(transport.opened) == 3
    assert sleep.delays == [1.0, 2.0]

    await consumer.reconnect()
    await _wait_for(lambda: consumer.is_connected)

    assert consumer.reconnect_attempts == 0
    assert consumer.state.is_connected is True
    await consumer.stop()


@pytest.mark.asyncio
async def test_production_shows_lost_connection_toast_once(session) -> None:
    toasts = RecordingToasts()
    transport = FakeTransport(*(TransportError("down") for _ in range(6)))
    consumer = _consumer(
        session, transport, alerts=AlertDispatcher(toasts), production=True
    )

    await consumer.start()
    await consumer.wait_closed()
    await consumer.reconnect()
    await consumer.wait_closed()

    assert consumer.connection_state is ConnectionState.DISCONNECTED
    assert [toast.title for toast in toasts.toasts] == ["Connection lost"]


@pytest.mark.asyncio
async def test_authentication_failures_are_counted_without_alerts(session, caplog) -> None:
    toasts = RecordingToasts()
    transport = FakeTransport(*(AuthenticationError("401") for _ in range(3)))
    consumer = _consumer(
        session, transport, alerts=AlertDispatcher(toasts), production=True
    )

    with caplog.at_level(logging.INFO):
        for _ in range(3):
            await consumer.reconnect()
            await consumer.wait_closed()

    assert consumer.connection_state is ConnectionState.DISCONNECTED
    assert consumer.auth_failures == 3
    assert consumer.reconnect_attempts == 0
    assert toasts.toasts == []
    assert "authentication failed 3 times" in caplog.text


@pytest.mark.asyncio
async def test_start_without_session_stays_idle() -> None:
    transport = FakeTransport()
    consumer = _consumer(ClientSession(), transport)

    await consumer.start()

    assert consumer.connection_state is ConnectionState.IDLE
    assert consumer.auth_failures == 1
    assert transport.opened == []


@pytest.mark.asyncio
async def test_unsupported_transport_stays_idle(session) -> None:
    transport = FakeTransport()
    transport.supported = False
    consumer = _consumer(session, transport)

    await consumer.start()

    assert consumer.connection_state is ConnectionState.IDLE
    assert transport.opened == []


@pytest.mark.asyncio
async def test_initial_snapshot_and_idempotent_delivery(session) -> None:
    initial = [
        serialize_notification(make_notification("a")),
        serialize_notification(make_notification("b")),
        serialize_notification(make_notification("c", read=True)),
    ]
    live = serialize_notification(
        make_notification("d", priority=NotificationPriority.URGENT)
    )
    toasts = RecordingToasts()
    transport = FakeTransport(
        [
            _raw("connected", {"connectionId": "tab-1"}),
            _raw("initial_notifications", initial),
            _raw("notification", live),
            _raw("notification", live),
            HOLD,
        ]
    )
    consumer = _consumer(session, transport, alerts=AlertDispatcher(toasts))

    await consumer.start()
    await _wait_for(lambda: len(consumer.state.notifications) == 4)

    assert consumer.unread_count == 3
    assert [n.id for n in consumer.sorted_notifications()][0] == "d"
    assert len(toasts.toasts) == 1
    await consumer.stop()


@pytest.mark.asyncio
async def test_server_close_reconnects_without_consuming_attempts(session) -> None:
    transport = FakeTransport(
        [_raw("connected")],
        [_raw("connected"), HOLD],
    )
    consumer = _consumer(session, transport)

    await consumer.start()
    await _wait_for(lambda: len(transport.opened) == 2 and consumer.is_connected)

    assert consumer.reconnect_attempts == 0
    await consumer.stop()


@pytest.mark.asyncio
async def test_stream_closing_before_any_event_counts_as_error(session) -> None:
    transport = FakeTransport([], [], [])
    consumer = _consumer(session, transport)

    await consumer.start()
    await consumer.wait_closed()

    assert consumer.connection_state is ConnectionState.DISCONNECTED
    assert len(transport.opened) == 3


@pytest.mark.asyncio
async def test_stop_cancels_the_loop_and_closes_transport(session) -> None:
    transport = FakeTransport([_raw("connected"), HOLD])
    consumer = _consumer(session, transport)

    await consumer.start()
    await _wait_for(lambda: consumer.is_connected)
    await consumer.stop()
    await asyncio.sleep(0.01)

    assert consumer.connection_state is ConnectionState.IDLE
    assert consumer.state.is_connected is False
    assert transport.close_calls >= 1
    assert transport.opened == ["tab-1"]


@pytest.mark.asyncio
async def test_sign_out_stops_the_consumer(session) -> None:
    transport = FakeTransport([_raw("connected"), HOLD])
    consumer = _consumer(session, transport)
    await consumer.start()
    await _wait_for(lambda: consumer.is_connected)

    session.sign_out()
    await consumer.refresh_session()

    assert consumer.connection_state is ConnectionState.IDLE


def test_handle_message_skips_malformed_input(session, caplog) -> None:
    consumer = _consumer(session, FakeTransport())

    with caplog.at_level(logging.WARNING):
        assert consumer.handle_message("not json") is False
        assert consumer.handle_message(_raw("notification", {"id": "x"})) is False
        assert consumer.handle_message(_raw("initial_notifications", [{"id": "x"}])) is False
        assert consumer.handle_message(json.dumps(["list"])) is False

    assert "not json" in caplog.text
    assert consumer.state.notifications == []
    assert consumer.handle_message(_raw("mystery")) is True


def test_heartbeat_records_activity(session) -> None:
    consumer = _consumer(session, FakeTransport())

    consumer.handle_message(_raw("heartbeat", {"timestamp": 1}))

    assert consumer.state.last_activity is not None


def test_reconnect_delay_is_capped(session) -> None:
    consumer = _consumer(session, FakeTransport())

    assert consumer.reconnect_delay(1) == 1.0
    assert consumer.reconnect_delay(2) == 2.0
    assert consumer.reconnect_delay(3) == 4.0
    assert consumer.reconnect_delay(10) == 30.0


@pytest.mark.asyncio
async def test_mark_as_read_is_optimistic_and_persisted(session) -> None:
    api = AsyncMock()
    consumer = _consumer(session, FakeTransport(), api=api)
    consumer.handle_message(_raw("notification", serialize_notification(make_notification("n-1"))))

    assert consumer.mark_as_read("n-1") is True
    assert consumer.unread_count == 0
    await consumer.flush()

    api.mark_read.assert_awaited_once_with("n-1")
    assert consumer.mark_as_read("n-1") is False


@pytest.mark.asyncio
async def test_failed_persistence_keeps_optimistic_state(session, caplog) -> None:
    api = AsyncMock()
    api.mark_read.side_effect = httpx.ConnectError("offline")
    consumer = _consumer(session, FakeTransport(), api=api)
    consumer.handle_message(_raw("notification", serialize_notification(make_notification("n-1"))))

    with caplog.at_level(logging.ERROR):
        consumer.mark_as_read("n-1")
        await consumer.flush()

    assert consumer.state.get("n-1").read is True
    assert "Failed to mark notification n-1 as read" in caplog.text


@pytest.mark.asyncio
async def test_mark_all_as_read(session) -> None:
    api = AsyncMock()
    consumer = _consumer(session, FakeTransport(), api=api)

    assert consumer.mark_all_as_read() == 0
    api.mark_all_read.assert_not_called()

    for notification_id in ("a", "b"):
        consumer.handle_message(
            _raw("notification", serialize_notification(make_notification(notification_id)))
        )
    assert consumer.mark_all_as_read() == 2
    await consumer.flush()

    assert consumer.unread_count == 0
    api.mark_all_read.assert_awaited_once()


@pytest.mark.asyncio
async def test_remove_and_clear_are_local_only(session) -> None:
    api = AsyncMock()
    consumer = _consumer(session, FakeTransport(), api=api)
    for notification_id in ("a", "b"):
        consumer.handle_message(
            _raw("notification", serialize_notification(make_notification(notification_id)))
        )

    assert consumer.remove_notification("a") is True
    assert consumer.unread_count == 1
    consumer.clear_all()
    await consumer.flush()

    assert consumer.state.notifications == []
    assert consumer.unread_count == 0
    assert api.mock_calls == []


@pytest.mark.asyncio
async def test_reconcile_adopts_server_reads_and_resends_missing(session) -> None:
    api = AsyncMock()
    api.fetch_notifications.return_value = [
        make_notification("server-read", read=True),
        make_notification("local-read", read=False),
    ]
    consumer = _consumer(session, FakeTransport(), api=api)
    for notification_id in ("server-read", "local-read"):
        consumer.handle_message(
            _raw("notification", serialize_notification(make_notification(notification_id)))
        )
    consumer.state.mark_as_read("local-read")

    resent = await consumer.reconcile()
    await consumer.flush()

    assert resent == ["local-read"]
    assert consumer.unread_count == 0
    api.fetch_notifications.assert_awaited_once_with(include_read=True)
    api.mark_read.assert_awaited_once_with("local-read")


@pytest.mark.asyncio
async def test_periodic_reconcile_waits_with_injected_sleep(session) -> None:
    api = AsyncMock()
    api.fetch_notifications.return_value = []
    sleep = RecordingSleep()
    transport = FakeTransport([_raw("connected"), HOLD])
    consumer = _consumer(
        session, transport, api=api, sleep=sleep, reconcile_interval=5.0
    )

    await consumer.start()
    await _wait_for(lambda: api.fetch_notifications.await_count >= 1)
    await consumer.stop()

    assert 5.0 in sleep.delays
    api.fetch_notifications.assert_awaited_with(include_read=True)


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("createdAt", 1700000000000),
        ("expiresAt", 1700000000000),
        ("metadata", ["x"]),
        ("metadata", "x"),
    ],
)
def test_handle_message_rejects_mistyped_fields(session, field, value) -> None:
    consumer = _consumer(session, FakeTransport())
    payload = serialize_notification(make_notification("bad"))
    payload[field] = value

    assert consumer.handle_message(_raw("notification", payload)) is False
    assert consumer.handle_message(_raw("initial_notifications", [payload])) is False
    assert consumer.state.notifications == []


@pytest.mark.asyncio
async def test_bad_frame_does_not_end_the_stream(session) -> None:
    bad = serialize_notification(make_notification("bad"))
    bad["createdAt"] = 1700000000000
    good = serialize_notification(make_notification("good"))
    transport = FakeTransport(
        [
            _raw("connected"),
            _raw("notification", bad),
            _raw("notification", good),
            HOLD,
        ]
    )
    consumer = _consumer(session, transport)

    await consumer.start()
    await _wait_for(lambda: consumer.state.get("good") is not None)

    assert consumer.connection_state is ConnectionState.CONNECTED
    assert consumer.state.get("bad") is None
    await consumer.stop()


class ExplodingAlerts(AlertDispatcher):
    def dispatch(self, notification, viewer):
        if notification.id == "boom":
            raise RuntimeError("toast sink unavailable")
        return None


@pytest.mark.asyncio
async def test_failing_handler_is_logged_and_the_stream_continues(session, caplog) -> None:
    transport = FakeTransport(
        [
            _raw("connected"),
            _raw("notification", serialize_notification(make_notification("boom"))),
            _raw("notification", serialize_notification(make_notification("after"))),
            HOLD,
        ]
    )
    consumer = _consumer(session, transport, alerts=ExplodingAlerts())

    with caplog.at_level(logging.ERROR):
        await consumer.start()
        await _wait_for(lambda: consumer.state.get("after") is not None)

    assert consumer.is_connected
    assert "Failed to handle notification message" in caplog.text
    await consumer.stop()


def test_replayed_snapshot_keeps_local_reads(session) -> None:
    consumer = _consumer(session, FakeTransport())
    snapshot = [
        serialize_notification(make_notification("a")),
        serialize_notification(make_notification("b")),
    ]
    consumer.handle_message(_raw("initial_notifications", snapshot))
    consumer.mark_as_read("a")

    consumer.handle_message(_raw("initial_notifications", snapshot))

    assert consumer.state.get("a").read is True
    assert consumer.unread_count == 1
