"""Realtime consumer that keeps a client's notification list in sync with the stream."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable
from uuid import uuid4

import httpx

from church_notify.domain.entities import Notification
from church_notify.infrastructure.notifications.publisher import deserialize_notification

from .alerts import AlertDispatcher
from .session import ClientSession
from .state import NotificationState
from .transport import (
    AuthenticationError,
    NotificationApi,
    StreamClosed,
    StreamTransport,
    TransportError,
)

logger = logging.getLogger(__name__)

MAX_RECONNECT_ATTEMPTS = 3
BASE_RECONNECT_DELAY_SECONDS = 1.0
MAX_RECONNECT_DELAY_SECONDS = 30.0
AUTH_FAILURE_THRESHOLD = 3


class ConnectionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERRORED = "errored"
    DISCONNECTED = "disconnected"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RealTimeNotificationConsumer:
    """Own one stream connection and the local notification list built from it.

    A single task runs the connection loop. ``stop`` cancels it, so nothing
    reconnects after the consumer has been torn down. Local read changes are
    applied immediately and sent to the server in the background.
    """

    def __init__(
        self,
        session: ClientSession,
        transport: StreamTransport,
        api: NotificationApi | None = None,
        alerts: AlertDispatcher | None = None,
        *,
        connection_id: str | None = None,
        max_reconnect_attempts: int = MAX_RECONNECT_ATTEMPTS,
        base_delay: float = BASE_RECONNECT_DELAY_SECONDS,
        max_delay: float = MAX_RECONNECT_DELAY_SECONDS,
        auth_failure_threshold: int = AUTH_FAILURE_THRESHOLD,
        reconcile_interval: float | None = None,
        production: bool = False,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.state = NotificationState()
        self.connection_id = connection_id or str(uuid4())
        self.max_reconnect_attempts = max_reconnect_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.auth_failure_threshold = auth_failure_threshold
        self.reconcile_interval = reconcile_interval

        self._session = session
        self._transport = transport
        self._api = api
        self._alerts = alerts or AlertDispatcher()
        self._production = production
        self._sleep = sleep
        self._clock = clock

        self._connection_state = ConnectionState.IDLE
        self._attempts = 0
        self._auth_failures = 0
        self._mounted = False
        self._task: asyncio.Task[None] | None = None
        self._reconcile_task: asyncio.Task[None] | None = None
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def connection_state(self) -> ConnectionState:
        return self._connection_state

    @property
    def reconnect_attempts(self) -> int:
        return self._attempts

    @property
    def auth_failures(self) -> int:
        return self._auth_failures

    @property
    def is_connected(self) -> bool:
        return self._connection_state == ConnectionState.CONNECTED

    @property
    def unread_count(self) -> int:
        return self.state.unread_count

    def reconnect_delay(self, attempts: int) -> float:
        """Return the wait before retrying after ``attempts`` consecutive errors."""

        return min(self.base_delay * 2 ** max(attempts - 1, 0), self.max_delay)

    # Lifecycle

    async def start(self) -> None:
        """Open the stream if the transport is usable and the session is signed in."""

        if self._task is not None and not self._task.done():
            return
        if not getattr(self._transport, "supported", True):
            logger.warning("Notification stream is not supported by this transport")
            self._set_state(ConnectionState.IDLE)
            return
        if not self._session.is_authenticated():
            self._record_auth_failure("no signed-in session")
            self._set_state(ConnectionState.IDLE)
            return

        self._mounted = True
        self._task = asyncio.create_task(
            self._run(), name=f"notification-stream-{self.connection_id}"
        )
        if self.reconcile_interval and self._api is not None and self._reconcile_task is None:
            self._reconcile_task = asyncio.create_task(self._reconcile_loop())

    async def stop(self) -> None:
        """Tear the consumer down: cancel the loop and close the transport."""

        self._mounted = False
        reconcile_task, self._reconcile_task = self._reconcile_task, None
        await self._cancel(reconcile_task)
        await self._cancel(self._task)
        self._task = None
        await self._transport.close()
        self.state.is_connected = False
        self._set_state(ConnectionState.IDLE)

    async def reconnect(self) -> None:
        """Reset the attempt counter and open a fresh connection."""

        logger.info("Manual reconnect requested for notification stream")
        await self._cancel(self._task)
        self._task = None
        await self._transport.close()
        self._attempts = 0
        await self.start()

    async def refresh_session(self) -> None:
        """React to a sign-in or sign-out of the underlying session."""

        if not self._session.is_authenticated():
            await self.stop()
        elif self._task is None or self._task.done():
            await self.start()

    async def wait_closed(self) -> None:
        """Wait until the connection loop finishes on its own."""

        if self._task is not None:
            await self._task

    async def flush(self) -> None:
        """Wait for background read-status calls to finish."""

        if self._pending:
            await asyncio.gather(*list(self._pending))

    # Incoming messages

    def handle_message(self, raw: str) -> bool:
        """Apply one stream message. Returns ``False`` when it was skipped."""

        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Error parsing notification message: %r", raw)
            return False
        if not isinstance(message, dict) or not isinstance(message.get("type"), str):
            logger.warning("Ignoring malformed notification message: %r", raw)
            return False

        self.state.touch(self._clock())
        message_type = message["type"]
        payload = message.get("payload")

        if message_type == "connected":
            logger.info("Connected to notification stream: %s", payload)
        elif message_type == "initial_notifications":
            try:
                notifications = [deserialize_notification(item) for item in payload]
            except (KeyError, TypeError, ValueError):
                logger.warning("Ignoring malformed initial notifications: %r", raw)
                return False
            self.state.replace_all(notifications)
        elif message_type == "notification":
            try:
                notification = deserialize_notification(payload)
            except (KeyError, TypeError, ValueError):
                logger.warning("Ignoring malformed notification: %r", raw)
                return False
            if self.state.add(notification):
                self._alerts.dispatch(notification, self._session.viewer)
        elif message_type == "heartbeat":
            pass
        else:
            logger.debug("Unknown notification message type: %s", message_type)
        return True

    # Local operations

    def mark_as_read(self, notification_id: str) -> bool:
        if not self.state.mark_as_read(notification_id):
            return False
        if self._api is not None:
            self._schedule(
                self._api.mark_read(notification_id),
                f"mark notification {notification_id} as read",
            )
        return True

    def mark_all_as_read(self) -> int:
        if not self.state.notifications:
            return 0
        changed = self.state.mark_all_as_read()
        if changed and self._api is not None:
            self._schedule(self._api.mark_all_read(), "mark all notifications as read")
        return len(changed)

    def remove_notification(self, notification_id: str) -> bool:
        """Dismiss a notification on this device only."""

        return self.state.remove(notification_id) is not None

    def clear_all(self) -> None:
        self.state.clear()

    def sorted_notifications(self) -> list[Notification]:
        return self.state.sorted()

    async def reconcile(self) -> list[str]:
        """Adopt the server's read flags and resend receipts the server is missing.

        Returns the ids whose read receipt was sent again.
        """

        if self._api is None:
            return []
        server = await self._api.fetch_notifications(include_read=True)
        pending = self.state.apply_server_read_state(server)
        for notification_id in pending:
            self._schedule(
                self._api.mark_read(notification_id),
                f"resend read receipt for notification {notification_id}",
            )
        return pending

    # Internals

    def _set_state(self, state: ConnectionState) -> None:
        if state != self._connection_state:
            logger.debug("Notification stream %s -> %s", self._connection_state.value, state.value)
        self._connection_state = state

    def _record_auth_failure(self, reason: str) -> None:
        self._auth_failures += 1
        if self._auth_failures >= self.auth_failure_threshold:
            logger.error(
                "Notification stream authentication failed %s times (%s); "
                "check the API base URL and token configuration",
                self._auth_failures,
                reason,
            )
        else:
            logger.info("Notification stream not authenticated yet: %s", reason)

    def _on_open(self) -> None:
        self._attempts = 0
        self._auth_failures = 0
        self.state.is_connected = True
        self.state.touch(self._clock())
        self._set_state(ConnectionState.CONNECTED)
        logger.info("Notification stream %s connected", self.connection_id)

    async def _run(self) -> None:
        while self._mounted:
            if not self._session.is_authenticated():
                self._set_state(ConnectionState.IDLE)
                return

            self._set_state(ConnectionState.CONNECTING)
            try:
                await self._transport.open(self.connection_id)
            except AuthenticationError as exc:
                self._record_auth_failure(str(exc))
                self.state.is_connected = False
                self._set_state(ConnectionState.DISCONNECTED)
                return
            except TransportError as exc:
                if await self._retry_after_error(exc):
                    continue
                return

            attempts_before_open = self._attempts
            self._on_open()
            try:
                received = await self._consume()
            except TransportError as exc:
                await self._transport.close()
                if await self._retry_after_error(exc):
                    continue
                return

            await self._transport.close()
            if received:
                logger.info("Notification stream closed by server; reconnecting")
                continue
            # An empty stream does not prove the connection works.
            self._attempts = attempts_before_open
            error = TransportError("Notification stream closed before sending any event")
            if not await self._retry_after_error(error):
                return

    async def _consume(self) -> bool:
        received = False
        try:
            async for raw in self._transport.messages():
                received = True
                try:
                    self.handle_message(raw)
                except Exception:
                    logger.exception("Failed to handle notification message: %r", raw)
        except StreamClosed:
            return received
        return received

    async def _retry_after_error(self, error: Exception) -> bool:
        self.state.is_connected = False
        self._set_state(ConnectionState.ERRORED)
        self._attempts += 1
        logger.warning(
            "Notification stream error (%s/%s): %s",
            self._attempts,
            self.max_reconnect_attempts,
            error,
        )

        if (
            self._mounted
            and self._attempts < self.max_reconnect_attempts
            and self._session.is_authenticated()
        ):
            delay = self.reconnect_delay(self._attempts)
            logger.info("Reconnecting to notification stream in %.1fs", delay)
            await self._sleep(delay)
            return self._mounted

        logger.error("Max reconnection attempts reached for notification stream")
        self._set_state(ConnectionState.DISCONNECTED)
        if self._production:
            self._alerts.connection_lost()
        return False

    async def _reconcile_loop(self) -> None:
        while self._mounted:
            await self._sleep(self.reconcile_interval)
            if not self.is_connected:
                continue
            try:
                await self.reconcile()
            except (httpx.HTTPError, KeyError, TypeError, ValueError):
                logger.exception("Failed to reconcile notification read status")

    def _schedule(self, call: Awaitable[None], description: str) -> None:
        task = asyncio.create_task(self._persist(call, description))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    @staticmethod
    async def _persist(call: Awaitable[None], description: str) -> None:
        try:
            await call
        except Exception:
            logger.exception("Failed to %s", description)

    @staticmethod
    async def _cancel(task: asyncio.Task[None] | None) -> None:
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


__all__ = [
    "AUTH_FAILURE_THRESHOLD",
    "BASE_RECONNECT_DELAY_SECONDS",
    "ConnectionState",
    "MAX_RECONNECT_ATTEMPTS",
    "MAX_RECONNECT_DELAY_SECONDS",
    "RealTimeNotificationConsumer",
]
