"""Persistence helpers for notification entities."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from church_notify.application.use_cases.notifications.visibility import is_visible_to
from church_notify.domain.entities import (
    Notification,
    NotificationPreferences,
    NotificationPriority,
    NotificationType,
    TargetAudience,
    Viewer,
    ViewerRole,
    metadata_from_dict,
    metadata_to_dict,
)
from church_notify.infrastructure.models import NotificationModel, NotificationReadModel
from church_notify.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
)

_AUDIENCES_BY_ROLE = {
    ViewerRole.ADMIN: (
        TargetAudience.ALL,
        TargetAudience.MEMBERS,
        TargetAudience.ADMIN,
        TargetAudience.SPECIFIC,
    ),
    ViewerRole.MEMBER: (
        TargetAudience.ALL,
        TargetAudience.MEMBERS,
        TargetAudience.SPECIFIC,
    ),
    ViewerRole.VISITOR: (TargetAudience.ALL, TargetAudience.SPECIFIC),
}


class NotificationRepository:
    """Provide persistence operations for :class:`Notification` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, notification: Notification) -> Notification:
        model = NotificationModel()
        self._apply_entity_to_model(model, notification)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model, read=False)

    def get(self, notification_id: str) -> Notification | None:
        model = self.session.get(NotificationModel, notification_id)
        if model is None:
            return None
        return self._to_entity(model, read=False)

    def list_for_viewer(
        self,
        viewer: Viewer,
        *,
        limit: int | None = 50,
        include_read: bool = False,
        preferences: NotificationPreferences | None = None,
        now: datetime | None = None,
    ) -> Sequence[Notification]:
        """Return the notifications ``viewer`` may see, newest first, with read flags."""

        current = now or now_in_app_timezone()
        audiences = [audience.value for audience in _AUDIENCES_BY_ROLE[viewer.role]]
        query = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.target_audience.in_(audiences))
            .filter(
                or_(
                    NotificationModel.expires_at.is_(None),
                    NotificationModel.expires_at >= ensure_app_naive_datetime(current),
                )
            )
            .order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
        )
        read_ids = self.read_ids_for_user(viewer.user_id)

        results: list[Notification] = []
        for model in query.all():
            is_read = model.id in read_ids
            if is_read and not include_read:
                continue
            notification = self._to_entity(model, read=is_read)
            if not is_visible_to(notification, viewer, preferences, current):
                continue
            results.append(notification)
            if limit is not None and len(results) >= limit:
                break
        return results

    def count_unread(
        self, viewer: Viewer, preferences: NotificationPreferences | None = None
    ) -> int:
        return len(
            self.list_for_viewer(
                viewer, limit=None, include_read=False, preferences=preferences
            )
        )

    def mark_as_read(self, notification_id: str, *, viewer: Viewer) -> bool:
        """Record a read receipt.

        Returns ``False`` when the notification is unknown or not visible to
        ``viewer``. Marking an already-read notification succeeds.
        """

        model = self.session.get(NotificationModel, notification_id)
        if model is None or not is_visible_to(self._to_entity(model, read=False), viewer):
            return False
        if not self._has_receipt(notification_id, viewer.user_id):
            self._store_receipt(
                notification_id,
                viewer.user_id,
                ensure_app_naive_datetime(now_in_app_timezone()),
            )
        return True

    def mark_all_as_read(
        self, viewer: Viewer, preferences: NotificationPreferences | None = None
    ) -> int:
        """Record receipts for every unread notification visible to ``viewer``."""

        unread = self.list_for_viewer(
            viewer, limit=None, include_read=False, preferences=preferences
        )
        if not unread:
            return 0
        read_at = ensure_app_naive_datetime(now_in_app_timezone())
        self.session.add_all(
            NotificationReadModel(
                notification_id=notification.id,
                user_id=viewer.user_id,
                read_at=read_at,
            )
            for notification in unread
        )
        try:
            self.session.commit()
        except IntegrityError:
            # A concurrent request stored some of these receipts first.
            self.session.rollback()
            return sum(
                1
                for notification in unread
                if not self._has_receipt(notification.id, viewer.user_id)
                and self._store_receipt(notification.id, viewer.user_id, read_at)
            )
        return len(unread)

    def delete_older_than(self, days: int, *, now: datetime | None = None) -> int:
        """Delete notifications created more than ``days`` days ago."""

        cutoff = ensure_app_naive_datetime((now or now_in_app_timezone()) - timedelta(days=days))
        models = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.created_at < cutoff)
            .all()
        )
        for model in models:
            self.session.delete(model)
        self.session.commit()
        return len(models)

    def read_ids_for_user(self, user_id: str) -> set[str]:
        rows = (
            self.session.query(NotificationReadModel.notification_id)
            .filter(NotificationReadModel.user_id == user_id)
            .all()
        )
        return {row[0] for row in rows}

    def _has_receipt(self, notification_id: str, user_id: str) -> bool:
        return (
            self.session.query(NotificationReadModel.id)
            .filter(
                NotificationReadModel.notification_id == notification_id,
                NotificationReadModel.user_id == user_id,
            )
            .first()
            is not None
        )

    def _store_receipt(self, notification_id: str, user_id: str, read_at: datetime) -> bool:
        """Insert one receipt; ``False`` when a concurrent request stored it first."""

        self.session.add(
            NotificationReadModel(
                notification_id=notification_id, user_id=user_id, read_at=read_at
            )
        )
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            return False
        return True

    @staticmethod
    def _apply_entity_to_model(model: NotificationModel, notification: Notification) -> None:
        model.id = notification.id
        model.title = notification.title
        model.message = notification.message
        model.type = notification.type.value
        model.priority = notification.priority.value
        model.target_audience = notification.target_audience.value
        model.specific_user_ids = list(notification.specific_users)
        model.payload = metadata_to_dict(notification.metadata)
        model.action_url = notification.action_url
        model.created_at = ensure_app_naive_datetime(notification.created_at)
        model.expires_at = ensure_app_naive_datetime(notification.expires_at)

    @staticmethod
    def _to_entity(model: NotificationModel, *, read: bool) -> Notification:
        notification_type = NotificationType(model.type)
        return Notification(
            id=model.id,
            title=model.title,
            message=model.message,
            type=notification_type,
            priority=NotificationPriority(model.priority),
            target_audience=TargetAudience(model.target_audience),
            specific_users=tuple(model.specific_user_ids or ()),
            read=read,
            created_at=ensure_app_timezone(model.created_at),
            expires_at=ensure_app_timezone(model.expires_at),
            metadata=metadata_from_dict(notification_type, model.payload),
            action_url=model.action_url,
        )


__all__ = ["NotificationRepository"]
