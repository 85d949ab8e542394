"""Domain entity representing a live notification."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum
from typing import Any, Union


class InvalidNotificationError(ValueError):
    """Raised when notification fields violate the domain rules."""


class NotificationType(str, Enum):
    """Business category of a notification."""

    ANNOUNCEMENT = "announcement"
    EVENT = "event"
    PRAYER_REQUEST = "prayer_request"
    SYSTEM = "system"
    ADMIN = "admin"


class NotificationPriority(str, Enum):
    """Urgency of a notification, used for ordering and alerting."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    NotificationPriority.URGENT: 4,
    NotificationPriority.HIGH: 3,
    NotificationPriority.MEDIUM: 2,
    NotificationPriority.LOW: 1,
}


class TargetAudience(str, Enum):
    """Coarse filter deciding which sessions receive a notification."""

    ALL = "all"
    MEMBERS = "members"
    ADMIN = "admin"
    SPECIFIC = "specific"


@dataclass
class AnnouncementMetadata:
    announcement_id: str | None = None
    category: str | None = None
    priority: str | None = None
    author: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class EventMetadata:
    event_id: str | None = None
    event_date: str | None = None
    location: str | None = None
    registration_required: bool | None = None
    capacity: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class PrayerRequestMetadata:
    request_id: str | None = None
    category: str | None = None
    is_urgent: bool | None = None
    requester_name: str | None = None
    is_anonymous: bool | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class SystemMetadata:
    action: str | None = None
    component: str | None = None
    user_id: str | None = None
    details: dict[str, Any] | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class AdminMetadata:
    admin_action: str | None = None
    target_user_id: str | None = None
    target_resource: str | None = None
    changes: dict[str, Any] | None = None
    extra: dict[str, Any] = field(default_factory=dict)


NotificationMetadata = Union[
    AnnouncementMetadata,
    EventMetadata,
    PrayerRequestMetadata,
    SystemMetadata,
    AdminMetadata,
]

METADATA_TYPES: dict[NotificationType, type] = {
    NotificationType.ANNOUNCEMENT: AnnouncementMetadata,
    NotificationType.EVENT: EventMetadata,
    NotificationType.PRAYER_REQUEST: PrayerRequestMetadata,
    NotificationType.SYSTEM: SystemMetadata,
    NotificationType.ADMIN: AdminMetadata,
}


def _camel_case(name: str) -> str:
    head, *tail = name.split("_")
    return head + "".join(part.title() for part in tail)


def metadata_to_dict(metadata: NotificationMetadata | None) -> dict[str, Any]:
    """Return the camelCase wire representation of ``metadata``."""

    if metadata is None:
        return {}
    payload: dict[str, Any] = {}
    for item in fields(metadata):
        if item.name == "extra":
            continue
        value = getattr(metadata, item.name)
        if value is not None:
            payload[_camel_case(item.name)] = value
    for key, value in metadata.extra.items():
        payload.setdefault(key, value)
    return payload


def metadata_from_dict(
    notification_type: NotificationType, data: dict[str, Any] | None
) -> NotificationMetadata | None:
    """Rebuild the typed metadata for ``notification_type`` from wire data."""

    if not data:
        return None
    metadata_cls = METADATA_TYPES[NotificationType(notification_type)]
    known = {
        _camel_case(item.name): item.name
        for item in fields(metadata_cls)
        if item.name != "extra"
    }
    values: dict[str, Any] = {}
    extra: dict[str, Any] = {}
    for key, value in data.items():
        if key in known:
            values[known[key]] = value
        elif key in known.values():
            values[key] = value
        else:
            extra[key] = value
    return metadata_cls(**values, extra=extra)


@dataclass(frozen=True)
class Notification:
    """Immutable record describing one event of interest to some users."""

    id: str
    title: str
    message: str
    type: NotificationType
    created_at: datetime
    priority: NotificationPriority = NotificationPriority.MEDIUM
    target_audience: TargetAudience = TargetAudience.ALL
    specific_users: tuple[str, ...] = ()
    read: bool = False
    expires_at: datetime | None = None
    metadata: NotificationMetadata | None = None
    action_url: str | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise InvalidNotificationError("Notification id must not be empty")
        if self.target_audience == TargetAudience.SPECIFIC and not self.specific_users:
            raise InvalidNotificationError(
                "Notifications targeted at specific users require at least one user id"
            )

    def mark_read(self) -> "Notification":
        """Return a copy flagged as read."""

        if self.read:
            return self
        return replace(self, read=True)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at < now


__all__ = [
    "AdminMetadata",
    "AnnouncementMetadata",
    "EventMetadata",
    "InvalidNotificationError",
    "METADATA_TYPES",
    "Notification",
    "NotificationMetadata",
    "NotificationPriority",
    "NotificationType",
    "PrayerRequestMetadata",
    "SystemMetadata",
    "TargetAudience",
    "metadata_from_dict",
    "metadata_to_dict",
]
