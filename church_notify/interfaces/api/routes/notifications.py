"""Endpoints for listing notifications and recording read status."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from church_notify.application.use_cases.notifications.read_status import (
    MARK_ALL_READ_ACTION,
    MARK_READ_ACTION,
    list_notifications as list_notifications_uc,
    mark_all_notifications_read as mark_all_notifications_read_uc,
    mark_notification_read as mark_notification_read_uc,
)
from church_notify.application.use_cases.notifications.factory import create_notification
from church_notify.application.use_cases.notifications.preferences import (
    update_preferences as update_preferences_uc,
)
from church_notify.application.use_cases.notifications.sender import NotificationSender
from church_notify.domain.entities import (
    METADATA_TYPES,
    InvalidNotificationError,
    Notification,
    NotificationPreferences,
    Viewer,
)
from church_notify.infrastructure.database import get_db
from church_notify.infrastructure.notifications import (
    NotificationBroadcaster,
    StreamConnectionManager,
    get_broadcaster,
    run_on_stream_loop,
    serialize_notification,
)
from church_notify.interfaces.api.dependencies import (
    get_current_viewer,
    get_notification_sender,
    get_stream_manager,
    get_viewer_preferences,
    require_admin,
)
from church_notify.interfaces.api.schemas import (
    BroadcasterStatusRead,
    NotificationActionRequest,
    NotificationActionResponse,
    NotificationListResponse,
    NotificationPreferencesRead,
    NotificationPreferencesUpdate,
    NotificationRead,
    NotificationSendRequest,
    NotificationSendResponse,
    NotificationSummary,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])
logger = logging.getLogger(__name__)


def _notification_to_schema(notification: Notification) -> NotificationRead:
    return NotificationRead.model_validate(serialize_notification(notification))


def _preferences_to_schema(preferences: NotificationPreferences) -> NotificationPreferencesRead:
    return NotificationPreferencesRead(
        announcements=preferences.announcements,
        events=preferences.events,
        prayer_requests=preferences.prayer_requests,
        system_notifications=preferences.system_notifications,
        email_notifications=preferences.email_notifications,
    )


@router.get("/", response_model=NotificationListResponse)
def list_notifications(
    limit: int = Query(50, ge=1, le=100),
    include_read: bool = Query(False, alias="includeRead"),
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(get_current_viewer),
) -> NotificationListResponse:
    """Return the most recent notifications visible to the authenticated user."""

    listing = list_notifications_uc(
        db, viewer=viewer, limit=limit, include_read=include_read
    )
    return NotificationListResponse(
        notifications=[_notification_to_schema(n) for n in listing.notifications],
        unread_count=listing.unread_count,
        total=len(listing.notifications),
    )


@router.post("/", response_model=NotificationActionResponse)
def update_notifications(
    body: NotificationActionRequest,
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(get_current_viewer),
) -> NotificationActionResponse:
    """Mark one notification (``mark_read``) or all of them (``mark_all_read``) as read."""

    if body.action == MARK_ALL_READ_ACTION:
        count = mark_all_notifications_read_uc(db, viewer=viewer)
        logger.debug("User %s marked %s notifications as read", viewer.user_id, count)
        return NotificationActionResponse(message="All notifications marked as read")

    if body.action == MARK_READ_ACTION and body.notification_id:
        try:
            mark_notification_read_uc(
                db, viewer=viewer, notification_id=body.notification_id
            )
        except LookupError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        return NotificationActionResponse(message="Notification marked as read")

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail='Invalid action. Use "mark_read" or "mark_all_read"',
    )


@router.post("/send", response_model=NotificationSendResponse)
def send_notification(
    body: NotificationSendRequest,
    viewer: Viewer = Depends(require_admin),
    sender: NotificationSender = Depends(get_notification_sender),
) -> NotificationSendResponse:
    """Create a custom notification and push it to connected clients."""

    try:
        notification = create_notification(
            title=body.title,
            message=body.message,
            type=body.type,
            priority=body.priority,
            target_audience=body.target_audience,
            specific_users=body.specific_users,
            expires_at=body.expires_at,
            action_url=body.action_url,
            metadata=METADATA_TYPES[body.type](
                extra={"sentBy": viewer.name or viewer.user_id, "sentById": viewer.user_id}
            ),
        )
    except InvalidNotificationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    notification = sender.send(notification)
    logger.info("Admin %s sent notification: %s", viewer.user_id, notification.title)
    return NotificationSendResponse(
        success=True,
        message="Notification sent successfully",
        notification=NotificationSummary(
            id=notification.id,
            title=notification.title,
            target_audience=notification.target_audience,
        ),
    )


@router.get("/broadcaster", response_model=BroadcasterStatusRead)
def broadcaster_status(
    _: Viewer = Depends(require_admin),
    broadcaster: NotificationBroadcaster = Depends(get_broadcaster),
) -> BroadcasterStatusRead:
    """Report whether live stream delivery is available in this process."""

    return BroadcasterStatusRead(**broadcaster.status())


@router.get("/preferences", response_model=NotificationPreferencesRead)
def read_preferences(
    preferences: NotificationPreferences = Depends(get_viewer_preferences),
) -> NotificationPreferencesRead:
    """Return the notification categories the authenticated user receives."""

    return _preferences_to_schema(preferences)


@router.put("/preferences", response_model=NotificationPreferencesRead)
def update_preferences(
    body: NotificationPreferencesUpdate,
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(get_current_viewer),
    manager: StreamConnectionManager = Depends(get_stream_manager),
) -> NotificationPreferencesRead:
    """Store new preferences and apply them to the user's open streams."""

    preferences = update_preferences_uc(
        db, viewer=viewer, changes=body.model_dump(exclude_none=True)
    )
    updated = run_on_stream_loop(manager.apply_preferences, viewer.user_id, preferences)
    logger.debug(
        "User %s updated notification preferences on %s open streams",
        viewer.user_id,
        updated,
    )
    return _preferences_to_schema(preferences)
