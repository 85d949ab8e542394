"""Use cases for reading and changing a viewer's notification preferences."""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from sqlalchemy.orm import Session

from church_notify.domain.entities import NotificationPreferences, Viewer
from church_notify.infrastructure.repositories import NotificationPreferenceRepository


def get_preferences(session: Session, *, viewer: Viewer) -> NotificationPreferences:
    return NotificationPreferenceRepository(session).get(viewer.user_id)


def update_preferences(
    session: Session, *, viewer: Viewer, changes: dict[str, Any]
) -> NotificationPreferences:
    """Apply ``changes`` over the stored preferences and persist the result.

    Fields missing from ``changes`` keep their current value.
    """

    repository = NotificationPreferenceRepository(session)
    current = repository.get(viewer.user_id)
    return repository.save(viewer.user_id, replace(current, **changes))


__all__ = ["get_preferences", "update_preferences"]
