"""Tests for stored notification preferences."""

from __future__ import annotations

from church_notify.application.use_cases.notifications.preferences import (
    get_preferences,
    update_preferences,
)
from church_notify.domain.entities import (
    DEFAULT_NOTIFICATION_PREFERENCES,
    NotificationPreferences,
)
from church_notify.infrastructure.repositories import NotificationPreferenceRepository


def test_users_without_a_row_get_the_defaults(db_session, member) -> None:
    repository = NotificationPreferenceRepository(db_session)

    assert repository.get(member.user_id) == DEFAULT_NOTIFICATION_PREFERENCES


def test_save_inserts_then_updates(db_session, member) -> None:
    repository = NotificationPreferenceRepository(db_session)

    repository.save(member.user_id, NotificationPreferences(events=False))
    stored = repository.save(
        member.user_id, NotificationPreferences(events=False, email_notifications=True)
    )

    assert stored == NotificationPreferences(events=False, email_notifications=True)
    assert repository.get(member.user_id) == stored
    assert repository.get("someone-else") == DEFAULT_NOTIFICATION_PREFERENCES


def test_partial_update_keeps_other_categories(db_session, member) -> None:
    update_preferences(db_session, viewer=member, changes={"announcements": False})
    update_preferences(db_session, viewer=member, changes={"prayer_requests": False})

    preferences = get_preferences(db_session, viewer=member)

    assert preferences.announcements is False
    assert preferences.prayer_requests is False
    assert preferences.events is True
    assert preferences.system_notifications is True
