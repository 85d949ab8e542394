"""Shared fixtures for the notification test-suite."""

from __future__ import annotations

import os
import sys
from datetime import timedelta
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

TEST_DB_PATH = Path(__file__).parent / "test.db"
TEST_SECRET_KEY = "test-secret-key"
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["SECRET_KEY"] = TEST_SECRET_KEY
os.environ.setdefault("APP_TIMEZONE", "UTC")

from church_notify.domain.entities import (  # noqa: E402
    Notification,
    NotificationPriority,
    NotificationType,
    TargetAudience,
    Viewer,
    ViewerRole,
)
from church_notify.utils import now_in_app_timezone  # noqa: E402


def make_notification(
    notification_id: str = "n-1",
    *,
    priority: NotificationPriority = NotificationPriority.MEDIUM,
    audience: TargetAudience = TargetAudience.ALL,
    specific_users: tuple[str, ...] = (),
    read: bool = False,
    minutes_ago: int = 0,
    expires_in_minutes: int | None = None,
    type: NotificationType = NotificationType.ANNOUNCEMENT,
) -> Notification:
    created_at = now_in_app_timezone() - timedelta(minutes=minutes_ago)
    expires_at = (
        created_at + timedelta(minutes=expires_in_minutes)
        if expires_in_minutes is not None
        else None
    )
    return Notification(
        id=notification_id,
        title=f"Title {notification_id}",
        message=f"Message {notification_id}",
        type=type,
        created_at=created_at,
        priority=priority,
        target_audience=audience,
        specific_users=specific_users,
        read=read,
        expires_at=expires_at,
    )


@pytest.fixture()
def admin() -> Viewer:
    return Viewer(user_id="admin-1", role=ViewerRole.ADMIN, name="Pastor Admin")


@pytest.fixture()
def member() -> Viewer:
    return Viewer(user_id="member-1", role=ViewerRole.MEMBER, name="Mary Member")


@pytest.fixture()
def visitor() -> Viewer:
    return Viewer(user_id="visitor-1", role=ViewerRole.VISITOR)


@pytest.fixture()
def db_session():
    """Yield a session bound to a freshly created schema."""

    from church_notify.infrastructure import database

    database.initialize_database()
    database.Base.metadata.drop_all(bind=database.engine, checkfirst=True)
    database.Base.metadata.create_all(bind=database.engine)
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()
        database.Base.metadata.drop_all(bind=database.engine, checkfirst=True)


def auth_header(user_id: str, role: str = "member", name: str | None = None) -> dict[str, str]:
    from church_notify.infrastructure.security import create_access_token

    claims = {"sub": user_id, "role": role}
    if name:
        claims["name"] = name
    return {"Authorization": f"Bearer {create_access_token(claims)}"}
