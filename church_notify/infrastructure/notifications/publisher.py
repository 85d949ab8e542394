"""Serialize notifications for the event stream and schedule their delivery."""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from anyio import from_thread

from church_notify.domain.entities import (
    Notification,
    NotificationPriority,
    NotificationType,
    TargetAudience,
    metadata_from_dict,
    metadata_to_dict,
)
from church_notify.utils import parse_iso_datetime

if TYPE_CHECKING:
    from .manager import StreamConnectionManager

T = TypeVar("T")


def run_on_stream_loop(func: Callable[..., T], *args: Any) -> T:
    """Call ``func`` on the event loop that owns the streams."""

    try:
        asyncio.get_running_loop()
    except RuntimeError:
        # Sync route handlers run in anyio worker threads.
        return from_thread.run_sync(func, *args)
    return func(*args)


class StreamPublisher:
    """Callable registered with the broadcaster while the stream is running."""

    def __init__(self, manager: "StreamConnectionManager") -> None:
        self._manager = manager

    def __call__(self, notification: Notification) -> None:
        self.dispatch(notification)

    def dispatch(self, notification: Notification) -> None:
        """Queue ``notification`` for every eligible open stream."""

        run_on_stream_loop(self._manager.publish, notification)


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the JSON-serializable wire representation of ``notification``."""

    return {
        "id": notification.id,
        "title": notification.title,
        "message": notification.message,
        "type": notification.type.value,
        "priority": notification.priority.value,
        "targetAudience": notification.target_audience.value,
        "specificUsers": list(notification.specific_users),
        "read": notification.read,
        "createdAt": notification.created_at.isoformat(),
        "expiresAt": notification.expires_at.isoformat()
        if notification.expires_at
        else None,
        "metadata": metadata_to_dict(notification.metadata),
        "actionUrl": notification.action_url,
    }


def _parse_timestamp(value: Any, field_name: str):
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"Notification {field_name} must be an ISO 8601 string")
    return parse_iso_datetime(value)


def deserialize_notification(data: dict[str, Any]) -> Notification:
    """Rebuild a :class:`Notification` from its wire representation.

    Raises ``KeyError``, ``TypeError`` or ``ValueError`` on malformed payloads.
    """

    notification_type = NotificationType(data["type"])
    created_at = _parse_timestamp(data["createdAt"], "createdAt")
    if created_at is None:
        raise ValueError("Notification payload is missing createdAt")
    metadata = data.get("metadata")
    if metadata is not None and not isinstance(metadata, dict):
        raise ValueError("Notification metadata must be an object")
    return Notification(
        id=str(data["id"]),
        title=str(data["title"]),
        message=str(data["message"]),
        type=notification_type,
        priority=NotificationPriority(data.get("priority") or "medium"),
        target_audience=TargetAudience(data.get("targetAudience") or "all"),
        specific_users=tuple(str(user) for user in data.get("specificUsers") or ()),
        read=bool(data.get("read", False)),
        created_at=created_at,
        expires_at=_parse_timestamp(data.get("expiresAt"), "expiresAt"),
        metadata=metadata_from_dict(notification_type, metadata),
        action_url=data.get("actionUrl"),
    )


def encode_sse_message(message_type: str, payload: Any = None) -> str:
    """Format one server-sent-event frame carrying ``{type, payload}``."""

    body: dict[str, Any] = {"type": message_type}
    if payload is not None:
        body["payload"] = payload
    return f"data: {json.dumps(body)}\n\n"


__all__ = [
    "StreamPublisher",
    "deserialize_notification",
    "encode_sse_message",
    "run_on_stream_loop",
    "serialize_notification",
]
