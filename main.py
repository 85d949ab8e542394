from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from church_notify.config import get_settings
from church_notify.infrastructure.database import engine, initialize_database
from church_notify.infrastructure.notifications import (
    StreamPublisher,
    notification_broadcaster,
    notification_manager,
)
from church_notify.interfaces.api.routes import register_routes


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Prepare the database and connect the live stream to the broadcaster."""

    settings = get_settings()
    initialize_database()
    notification_manager.configure(
        history_limit=settings.stream_history_limit,
        initial_limit=settings.initial_notifications_limit,
    )
    notification_broadcaster.set_publisher(StreamPublisher(notification_manager))
    yield
    notification_broadcaster.reset_publisher()
    notification_manager.clear()
    engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = get_settings()
    app = FastAPI(title="Church notifications", lifespan=lifespan)

    # Browsers open the event stream from the church website.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


app = create_app()
