"""FastAPI dependency utilities."""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from church_notify.application.use_cases.notifications.preferences import get_preferences
from church_notify.application.use_cases.notifications.read_status import viewer_read_ids
from church_notify.application.use_cases.notifications.sender import NotificationSender
from church_notify.config import Settings, get_settings
from church_notify.domain.entities import NotificationPreferences, Viewer, ViewerRole
from church_notify.infrastructure.database import get_db
from church_notify.infrastructure.notifications import (
    NotificationBroadcaster,
    StreamConnectionManager,
    get_broadcaster,
    notification_manager,
)
from church_notify.infrastructure.repositories import NotificationRepository
from church_notify.infrastructure.security import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str = "Invalid credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def resolve_viewer(token: str) -> Viewer:
    """Resolve the authenticated viewer for the provided token."""

    try:
        payload = decode_access_token(token)
    except ValueError as exc:
        raise _unauthorized() from exc

    user_id = payload.get("sub")
    if user_id is None or not str(user_id).strip():
        raise _unauthorized()

    name = payload.get("name")
    return Viewer(
        user_id=str(user_id),
        role=ViewerRole.from_claim(payload.get("role")),
        name=str(name) if name else None,
    )


def get_current_viewer(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Viewer:
    """Return the viewer from the bearer header or the ``token`` query parameter.

    Browsers cannot attach headers to an ``EventSource``, so the stream endpoint
    relies on the query parameter.
    """

    token = credentials.credentials if credentials else request.query_params.get("token")
    if not token:
        raise _unauthorized("Not authenticated")
    return resolve_viewer(token)


def require_admin(viewer: Viewer = Depends(get_current_viewer)) -> Viewer:
    """Ensure the authenticated viewer has administrator privileges."""

    if not viewer.is_admin():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return viewer


def get_stream_manager() -> StreamConnectionManager:
    return notification_manager


def get_notification_sender(
    db: Session = Depends(get_db),
    broadcaster: NotificationBroadcaster = Depends(get_broadcaster),
) -> NotificationSender:
    """Return a sender that persists with the request session."""

    return NotificationSender(broadcaster, store=NotificationRepository(db))


def get_viewer_preferences(
    viewer: Viewer = Depends(get_current_viewer),
    db: Session = Depends(get_db),
) -> NotificationPreferences:
    return get_preferences(db, viewer=viewer)


def get_viewer_read_ids(
    viewer: Viewer = Depends(get_current_viewer),
    db: Session = Depends(get_db),
) -> set[str]:
    """Return the ids the viewer already read, for the stream's initial snapshot."""

    return viewer_read_ids(db, viewer=viewer)


def get_app_settings() -> Settings:
    return get_settings()
