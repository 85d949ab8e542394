from fastapi import FastAPI

from .notifications import router as notifications_router
from .stream import router as stream_router


def register_routes(app: FastAPI) -> None:
    """Register every API router on the FastAPI application."""

    app.include_router(stream_router)
    app.include_router(notifications_router)
