"""Persistence helpers for notification preferences."""

from __future__ import annotations

from sqlalchemy.orm import Session

from church_notify.domain.entities import (
    DEFAULT_NOTIFICATION_PREFERENCES,
    NotificationPreferences,
)
from church_notify.infrastructure.models import NotificationPreferenceModel
from church_notify.utils import ensure_app_naive_datetime, now_in_app_timezone


class NotificationPreferenceRepository:
    """Load and store the notification categories each user wants."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: str) -> NotificationPreferences:
        """Return the stored preferences, or the defaults for users without a row."""

        model = self.session.get(NotificationPreferenceModel, user_id)
        return self._to_entity(model) if model else DEFAULT_NOTIFICATION_PREFERENCES

    def save(
        self, user_id: str, preferences: NotificationPreferences
    ) -> NotificationPreferences:
        model = self.session.get(NotificationPreferenceModel, user_id)
        if model is None:
            model = NotificationPreferenceModel(user_id=user_id)
            self.session.add(model)
        self._apply_entity_to_model(model, preferences)
        model.updated_at = ensure_app_naive_datetime(now_in_app_timezone())
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    @staticmethod
    def _apply_entity_to_model(
        model: NotificationPreferenceModel, preferences: NotificationPreferences
    ) -> None:
        model.announcements = preferences.announcements
        model.events = preferences.events
        model.prayer_requests = preferences.prayer_requests
        model.system_notifications = preferences.system_notifications
        model.email_notifications = preferences.email_notifications

    @staticmethod
    def _to_entity(model: NotificationPreferenceModel) -> NotificationPreferences:
        return NotificationPreferences(
            announcements=model.announcements,
            events=model.events,
            prayer_requests=model.prayer_requests,
            system_notifications=model.system_notifications,
            email_notifications=model.email_notifications,
        )


__all__ = ["NotificationPreferenceRepository"]
