"""Client-side consumer for the live notification stream."""

from .alerts import (
    AlertChannel,
    AlertDispatcher,
    LoggingToastSink,
    Toast,
    ToastLevel,
    build_toast,
)
from .consumer import ConnectionState, RealTimeNotificationConsumer
from .session import ClientSession
from .state import NotificationState
from .transport import (
    AuthenticationError,
    HttpxStreamTransport,
    NotificationApi,
    StreamClosed,
    TransportError,
)

__all__ = [
    "AlertChannel",
    "AlertDispatcher",
    "AuthenticationError",
    "ClientSession",
    "ConnectionState",
    "HttpxStreamTransport",
    "LoggingToastSink",
    "NotificationApi",
    "NotificationState",
    "RealTimeNotificationConsumer",
    "StreamClosed",
    "Toast",
    "ToastLevel",
    "TransportError",
    "build_toast",
]
