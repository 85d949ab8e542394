"""Server-sent-event stream delivering live notifications."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Iterable
from uuid import uuid4

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from church_notify.config import Settings
from church_notify.domain.entities import NotificationPreferences, Viewer
from church_notify.infrastructure.notifications import (
    StreamConnection,
    StreamConnectionManager,
    encode_sse_message,
    serialize_notification,
)
from church_notify.interfaces.api.dependencies import (
    get_app_settings,
    get_current_viewer,
    get_stream_manager,
    get_viewer_preferences,
    get_viewer_read_ids,
)
from church_notify.interfaces.api.schemas import StreamHealthRead
from church_notify.utils import now_in_app_timezone

router = APIRouter(prefix="/notifications", tags=["notifications"])
logger = logging.getLogger(__name__)

STREAM_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def _heartbeat() -> str:
    return encode_sse_message(
        "heartbeat", {"timestamp": int(now_in_app_timezone().timestamp() * 1000)}
    )


async def event_stream(
    request: Request,
    manager: StreamConnectionManager,
    connection: StreamConnection,
    *,
    heartbeat_interval: float,
    max_lifetime: float,
    read_ids: Iterable[str] = (),
) -> AsyncIterator[str]:
    """Yield SSE frames for ``connection`` until the client leaves or the lifetime ends.

    The initial snapshot flags the notifications in ``read_ids`` as read.

    The server closes the stream itself shortly before hosting platforms would
    cut it; clients treat that closure as a cue to reconnect.
    """

    loop = asyncio.get_running_loop()
    deadline = loop.time() + max_lifetime
    viewer = connection.viewer
    try:
        yield encode_sse_message(
            "connected",
            {"connectionId": connection.connection_id, "userId": viewer.user_id},
        )

        initial = manager.initial_notifications(
            viewer, preferences=connection.preferences, read_ids=read_ids
        )
        if initial:
            yield encode_sse_message(
                "initial_notifications", [serialize_notification(n) for n in initial]
            )

        yield _heartbeat()
        next_heartbeat = loop.time() + heartbeat_interval

        while not connection.closed:
            now = loop.time()
            if now >= deadline:
                logger.info(
                    "Closing stream %s at its maximum lifetime", connection.connection_id
                )
                break
            if await request.is_disconnected():
                break

            timeout = max(min(next_heartbeat, deadline) - now, 0)
            try:
                frame = await asyncio.wait_for(connection.queue.get(), timeout=timeout)
            except asyncio.TimeoutError:
                if loop.time() >= next_heartbeat:
                    yield _heartbeat()
                    next_heartbeat = loop.time() + heartbeat_interval
                continue
            yield frame
    finally:
        manager.unregister(connection.connection_id, connection)


@router.get("/stream")
async def notifications_stream(
    request: Request,
    connection_id: str | None = Query(None, alias="connectionId"),
    viewer: Viewer = Depends(get_current_viewer),
    manager: StreamConnectionManager = Depends(get_stream_manager),
    settings: Settings = Depends(get_app_settings),
    preferences: NotificationPreferences = Depends(get_viewer_preferences),
    read_ids: set[str] = Depends(get_viewer_read_ids),
) -> StreamingResponse:
    """Open a live notification stream for the authenticated user."""

    connection_id = connection_id or str(uuid4())
    logger.info("New stream connection request %s for user %s", connection_id, viewer.user_id)
    connection = manager.register(connection_id, viewer, preferences)
    return StreamingResponse(
        event_stream(
            request,
            manager,
            connection,
            heartbeat_interval=settings.heartbeat_interval_seconds,
            max_lifetime=settings.stream_max_lifetime_seconds,
            read_ids=read_ids,
        ),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )


@router.post("/stream", response_model=StreamHealthRead)
async def stream_health(
    manager: StreamConnectionManager = Depends(get_stream_manager),
) -> StreamHealthRead:
    """Report the number of open streams and remembered notifications."""

    return StreamHealthRead.model_validate(manager.health())
