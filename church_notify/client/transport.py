"""HTTP transports for the notification stream and the read-status API."""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Callable, Protocol

import httpx

from church_notify.domain.entities import Notification
from church_notify.infrastructure.notifications.publisher import deserialize_notification

logger = logging.getLogger(__name__)

STREAM_PATH = "/notifications/stream"
NOTIFICATIONS_PATH = "/notifications/"

TokenProvider = Callable[[], "str | None"]


class TransportError(Exception):
    """Raised when the stream cannot be opened or fails while reading."""


class AuthenticationError(TransportError):
    """Raised when the server rejects the credentials used for the stream."""


class StreamClosed(Exception):
    """Raised when the server ends the stream cleanly."""


class StreamTransport(Protocol):
    supported: bool

    async def open(self, connection_id: str) -> None:
        ...

    def messages(self) -> AsyncIterator[str]:
        ...

    async def close(self) -> None:
        ...


def _bearer(token_provider: TokenProvider) -> dict[str, str]:
    token = token_provider()
    return {"Authorization": f"Bearer {token}"} if token else {}


class HttpxStreamTransport:
    """Read server-sent events from ``GET /notifications/stream`` with httpx.

    The read timeout should exceed the server heartbeat interval; a stream that
    stays silent for longer is treated as failed.
    """

    supported = True

    def __init__(
        self,
        base_url: str,
        token_provider: TokenProvider,
        *,
        client: httpx.AsyncClient | None = None,
        connect_timeout: float = 10.0,
        read_timeout: float = 75.0,
    ) -> None:
        self._token_provider = token_provider
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(read_timeout, connect=connect_timeout),
        )
        self._response: httpx.Response | None = None

    async def open(self, connection_id: str) -> None:
        await self.close()
        params = {"connectionId": connection_id}
        token = self._token_provider()
        if token:
            params["token"] = token
        request = self._client.build_request(
            "GET",
            STREAM_PATH,
            params=params,
            headers={"Accept": "text/event-stream"},
        )
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise TransportError(f"Unable to open notification stream: {exc}") from exc

        if response.status_code in (401, 403):
            await response.aclose()
            raise AuthenticationError(
                f"Notification stream rejected credentials ({response.status_code})"
            )
        if response.status_code >= 400:
            await response.aclose()
            raise TransportError(
                f"Notification stream returned HTTP {response.status_code}"
            )
        self._response = response

    async def messages(self) -> AsyncIterator[str]:
        """Yield the ``data`` field of each event until the server closes the stream."""

        if self._response is None:
            raise TransportError("Notification stream is not open")

        data_lines: list[str] = []
        try:
            async for line in self._response.aiter_lines():
                if not line:
                    if data_lines:
                        yield "\n".join(data_lines)
                        data_lines = []
                    continue
                if line.startswith(":"):
                    continue
                field, _, value = line.partition(":")
                if field == "data":
                    data_lines.append(value[1:] if value.startswith(" ") else value)
        except httpx.HTTPError as exc:
            raise TransportError(f"Notification stream failed: {exc}") from exc

        if data_lines:
            yield "\n".join(data_lines)
        raise StreamClosed("Notification stream closed by server")

    async def close(self) -> None:
        response, self._response = self._response, None
        if response is not None:
            await response.aclose()

    async def aclose(self) -> None:
        await self.close()
        if self._owns_client:
            await self._client.aclose()


class NotificationApi:
    """Thin async client for the notification list and read-status endpoints."""

    def __init__(
        self,
        base_url: str,
        token_provider: TokenProvider,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._token_provider = token_provider
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def _post_action(self, body: dict[str, Any]) -> None:
        response = await self._client.post(
            NOTIFICATIONS_PATH, json=body, headers=_bearer(self._token_provider)
        )
        response.raise_for_status()

    async def mark_read(self, notification_id: str) -> None:
        await self._post_action({"action": "mark_read", "notificationId": notification_id})

    async def mark_all_read(self) -> None:
        await self._post_action({"action": "mark_all_read"})

    async def fetch_notifications(
        self, *, include_read: bool = True, limit: int = 100
    ) -> list[Notification]:
        response = await self._client.get(
            NOTIFICATIONS_PATH,
            params={"includeRead": str(include_read).lower(), "limit": limit},
            headers=_bearer(self._token_provider),
        )
        response.raise_for_status()
        data = response.json()
        return [deserialize_notification(item) for item in data.get("notifications", [])]

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = [
    "AuthenticationError",
    "HttpxStreamTransport",
    "NotificationApi",
    "StreamClosed",
    "StreamTransport",
    "TokenProvider",
    "TransportError",
]
