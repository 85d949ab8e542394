"""Realtime notification helpers for the infrastructure layer."""

from .broadcaster import (
    NotificationBroadcaster,
    get_broadcaster,
    notification_broadcaster,
)
from .publisher import (
    StreamPublisher,
    deserialize_notification,
    encode_sse_message,
    run_on_stream_loop,
    serialize_notification,
)
from .manager import StreamConnection, StreamConnectionManager, notification_manager

__all__ = [
    "NotificationBroadcaster",
    "get_broadcaster",
    "notification_broadcaster",
    "StreamPublisher",
    "deserialize_notification",
    "encode_sse_message",
    "run_on_stream_loop",
    "serialize_notification",
    "StreamConnection",
    "StreamConnectionManager",
    "notification_manager",
]
