"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires all services, registers routers, and runs startup initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend.controllers.analytics_controller import router as analytics_router
from backend.controllers.booking_controller import router as booking_router
from backend.controllers.hall_controller import router as hall_router
from backend.controllers.notification_controller import router as notification_router
from backend.controllers.request_controller import router as request_router
from backend.repository.data_repository import DataRepository
from backend.services.analytics_service import UsageAnalyticsService
from backend.services.availability_service import AvailabilityProjector
from backend.services.conflict_service import ConflictResolver
from backend.services.lifecycle_service import ReservationLifecycleService
from backend.services.notification_service import NotificationService
from backend.utils.config import Settings, get_settings
from backend.utils.logger import configure_logging, get_logger


logger = get_logger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Instantiates all services with explicit dependency injection via app.state.
    Every service shares one repository, so they all see the same store.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    # --- Repository (SQLite connection factory + unit of work) ---
    repository = DataRepository(settings)

    # --- Services ---
    resolver = ConflictResolver(repository)
    notification_service = NotificationService(
        repository=repository,
        settings=settings,
    )
    lifecycle_service = ReservationLifecycleService(
        repository=repository,
        resolver=resolver,
        notification_service=notification_service,
        settings=settings,
    )
    availability_projector = AvailabilityProjector(
        repository=repository,
        settings=settings,
    )
    analytics_service = UsageAnalyticsService(
        repository=repository,
        settings=settings,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- Routers ---
    app.include_router(request_router)
    app.include_router(booking_router)
    app.include_router(hall_router)
    app.include_router(notification_router)
    app.include_router(analytics_router)

    # --- Inject services into app.state for dependency resolution ---
    app.state.settings = settings
    app.state.repository = repository
    app.state.conflict_resolver = resolver
    app.state.notification_service = notification_service
    app.state.lifecycle_service = lifecycle_service
    app.state.availability_projector = availability_projector
    app.state.analytics_service = analytics_service

    return app


def _startup(app: FastAPI) -> None:
    """
    Idempotent startup sequence. Safe to re-run on server restarts.

    The schema must exist before the hall catalog is seeded; seeding is
    skipped when halls are already present.
    """
    repository: DataRepository = app.state.repository
    settings: Settings = app.state.settings

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    if settings.seed_default_halls:
        logger.info("Startup: seeding default hall catalog")
        repository.seed_default_halls()

    logger.info("Startup complete | database=%s", repository.database_path)


# Module-level app object for uvicorn
app = create_app()
