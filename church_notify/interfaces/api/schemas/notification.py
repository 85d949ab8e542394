"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from church_notify.domain.entities import (
    NotificationPriority,
    NotificationType,
    TargetAudience,
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NotificationRead(_CamelModel):
    """Representation of a notification delivered to the client."""

    id: str
    title: str
    message: str
    type: NotificationType
    priority: NotificationPriority
    target_audience: TargetAudience
    specific_users: list[str] = Field(default_factory=list)
    read: bool = False
    created_at: datetime
    expires_at: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    action_url: str | None = None


class NotificationListResponse(_CamelModel):
    notifications: list[NotificationRead]
    unread_count: int
    total: int


class NotificationActionRequest(_CamelModel):
    """Payload of ``POST /notifications``; ``action`` is checked by the route."""

    action: str | None = None
    notification_id: str | None = None


class NotificationActionResponse(BaseModel):
    message: str


class NotificationSendRequest(_CamelModel):
    """Custom notification composed by an administrator."""

    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)
    type: NotificationType = NotificationType.ANNOUNCEMENT
    priority: NotificationPriority = NotificationPriority.MEDIUM
    target_audience: TargetAudience = TargetAudience.ALL
    specific_users: list[str] = Field(default_factory=list)
    expires_at: datetime | None = None
    action_url: str | None = Field(default=None, max_length=500)


class NotificationSummary(_CamelModel):
    id: str
    title: str
    target_audience: TargetAudience


class NotificationSendResponse(BaseModel):
    success: bool
    message: str
    notification: NotificationSummary


class NotificationPreferencesRead(_CamelModel):
    announcements: bool
    events: bool
    prayer_requests: bool
    system_notifications: bool
    email_notifications: bool


class NotificationPreferencesUpdate(_CamelModel):
    """Partial update; omitted categories keep their stored value."""

    announcements: bool | None = None
    events: bool | None = None
    prayer_requests: bool | None = None
    system_notifications: bool | None = None
    email_notifications: bool | None = None


class StreamHealthRead(_CamelModel):
    status: str
    active_connections: int
    total_notifications: int
    timestamp: datetime


class BroadcasterStatusRead(BaseModel):
    has_stream_connection: bool
    timestamp: datetime
    note: str


__all__ = [
    "BroadcasterStatusRead",
    "NotificationActionRequest",
    "NotificationActionResponse",
    "NotificationListResponse",
    "NotificationPreferencesRead",
    "NotificationPreferencesUpdate",
    "NotificationRead",
    "NotificationSendRequest",
    "NotificationSendResponse",
    "NotificationSummary",
    "StreamHealthRead",
]
