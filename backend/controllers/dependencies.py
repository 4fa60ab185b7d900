"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from backend.domain.errors import (
    ForbiddenActionError,
    InvalidStateError,
    ReservationBusyError,
    ReservationConflictError,
    ReservationError,
    ReservationNotFoundError,
    ReservationValidationError,
)
from backend.services.analytics_service import UsageAnalyticsService
from backend.services.availability_service import AvailabilityProjector
from backend.services.lifecycle_service import ReservationLifecycleService
from backend.services.notification_service import NotificationService


_STATUS_BY_ERROR: tuple[tuple[type[ReservationError], int], ...] = (
    (ReservationValidationError, status.HTTP_400_BAD_REQUEST),
    (ForbiddenActionError, status.HTTP_403_FORBIDDEN),
    (ReservationNotFoundError, status.HTTP_404_NOT_FOUND),
    (ReservationConflictError, status.HTTP_409_CONFLICT),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (ReservationBusyError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def to_http_exception(exc: ReservationError) -> HTTPException:
    """Translate an engine error into an HTTP error with a structured body."""
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status_code = code
            break
    return HTTPException(status_code=status_code, detail=exc.to_dict())


def _require_state(request: Request, name: str, label: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} is not initialized",
        )
    return service


def get_lifecycle_service(request: Request) -> ReservationLifecycleService:
    return _require_state(request, "lifecycle_service", "Lifecycle service")


def get_availability_projector(request: Request) -> AvailabilityProjector:
    return _require_state(request, "availability_projector", "Availability projector")


def get_notification_service(request: Request) -> NotificationService:
    return _require_state(request, "notification_service", "Notification service")


def get_analytics_service(request: Request) -> UsageAnalyticsService:
    return _require_state(request, "analytics_service", "Analytics service")
