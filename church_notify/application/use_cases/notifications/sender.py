"""Compose notification builders with persistence and live broadcast."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError

from church_notify.domain.entities import Notification
from church_notify.infrastructure.notifications.broadcaster import NotificationBroadcaster

from . import factory

if TYPE_CHECKING:
    from church_notify.infrastructure.repositories import NotificationRepository

logger = logging.getLogger(__name__)


class NotificationSender:
    """Build, store and broadcast notifications for business events.

    Every method returns the notification it built, so callers can reference it
    elsewhere (an audit entry, an API response). Delivery problems are logged
    and never raised: the business action that triggered the notification must
    succeed regardless.
    """

    def __init__(
        self,
        broadcaster: NotificationBroadcaster,
        store: "NotificationRepository | None" = None,
    ) -> None:
        self._broadcaster = broadcaster
        self._store = store

    def send(self, notification: Notification) -> Notification:
        if self._store is not None:
            try:
                notification = self._store.create(notification)
            except SQLAlchemyError:
                logger.exception(
                    "Could not persist notification %s; broadcasting anyway",
                    notification.id,
                )
                self._store.session.rollback()
        self._broadcaster.broadcast(notification)
        return notification

    def custom(self, **fields: Any) -> Notification:
        return self.send(factory.create_notification(**fields))

    def new_prayer_request(self, **data: Any) -> Notification:
        return self.send(factory.new_prayer_request(**data))

    def new_user_registration(self, **data: Any) -> Notification:
        return self.send(factory.new_user_registration(**data))

    def new_membership_request(self, **data: Any) -> Notification:
        return self.send(factory.new_membership_request(**data))

    def new_event_registration(self, **data: Any) -> Notification:
        return self.send(factory.new_event_registration(**data))

    def new_announcement(self, **data: Any) -> Notification:
        return self.send(factory.new_announcement(**data))

    def new_event(self, **data: Any) -> Notification:
        return self.send(factory.new_event(**data))

    def user_status_change(self, **data: Any) -> Notification:
        return self.send(factory.user_status_change(**data))

    def system_alert(self, **data: Any) -> Notification:
        return self.send(factory.system_alert(**data))

    def new_blog_post(self, **data: Any) -> Notification:
        return self.send(factory.new_blog_post(**data))

    def new_sermon(self, **data: Any) -> Notification:
        return self.send(factory.new_sermon(**data))

    def membership_request_processed(self, **data: Any) -> Notification:
        return self.send(factory.membership_request_processed(**data))

    def prayer_request_status_update(self, **data: Any) -> Notification:
        return self.send(factory.prayer_request_status_update(**data))

    def event_reminder(self, **data: Any) -> Notification:
        return self.send(factory.event_reminder(**data))

    def upcoming_event_alert(self, **data: Any) -> Notification:
        return self.send(factory.upcoming_event_alert(**data))


__all__ = ["NotificationSender"]
