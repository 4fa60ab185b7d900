"""Lifecycle event fan-out and in-app notification inbox."""

from __future__ import annotations

from threading import RLock
from typing import Callable, Optional, Sequence

from backend.domain.constraints import require_text
from backend.domain.errors import ReservationValidationError
from backend.domain.models import EventType, LifecycleEvent, Notification
from backend.repository.data_repository import DataRepository
from backend.utils.config import Settings, get_settings
from backend.utils.logger import format_fields, get_logger


logger = get_logger(__name__)

EventSubscriber = Callable[[LifecycleEvent], None]


_NOTIFICATION_TEMPLATES: dict[EventType, tuple[str, str, str]] = {
    EventType.REQUEST_CREATED: (
        "Booking Request Submitted",
        'Your booking request for "{name}" has been submitted and is pending approval.',
        "info",
    ),
    EventType.REQUEST_APPROVED: (
        "Booking Request Approved",
        'Your booking request for "{name}" has been approved.',
        "success",
    ),
    EventType.REQUEST_REJECTED: (
        "Booking Request Rejected",
        'Your booking request for "{name}" has been rejected.',
        "error",
    ),
}


class NotificationService:
    """Delivers lifecycle events to subscribers without failing the caller.

    The in-app inbox is always subscribed; outbound channels such as email
    register extra subscribers through :meth:`subscribe`.
    """

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._lock = RLock()
        self._subscribers: list[EventSubscriber] = [self.record_in_app_notification]

    def subscribe(self, subscriber: EventSubscriber) -> None:
        with self._lock:
            self._subscribers.append(subscriber)

    def publish(self, event: LifecycleEvent) -> int:
        """Deliver ``event`` to every subscriber; return how many succeeded."""
        with self._lock:
            subscribers = list(self._subscribers)
        delivered = 0
        for subscriber in subscribers:
            try:
                subscriber(event)
                delivered += 1
            except Exception:
                logger.exception(
                    "Event delivery failed | %s",
                    format_fields(
                        event=event.event_type.value,
                        request_id=event.request.request_id,
                        subscriber=getattr(subscriber, "__name__", repr(subscriber)),
                    ),
                )
        return delivered

    def record_in_app_notification(self, event: LifecycleEvent) -> None:
        title, template, notification_type = _NOTIFICATION_TEMPLATES[event.event_type]
        message = template.format(name=event.request.display_name)
        if event.halls:
            message = f"{message} Halls: {event.hall_names}."
        if event.event_type is EventType.REQUEST_REJECTED and event.reason:
            message = f"{message} Reason: {event.reason}"
        self._repository.create_notification(
            user_id=event.request.requester_id,
            title=title,
            message=message,
            notification_type=notification_type,
            related_request_id=event.request.request_id,
        )

    def list_notifications(
        self,
        user_id: str,
        *,
        is_read: Optional[bool] = None,
        limit: Optional[int] = None,
    ) -> list[Notification]:
        owner = require_text(user_id, "user_id")
        effective_limit = self._settings.notifications_default_limit if limit is None else limit
        if not 0 < effective_limit <= self._settings.notifications_max_limit:
            raise ReservationValidationError(
                f"limit must be between 1 and {self._settings.notifications_max_limit}",
                limit=effective_limit,
            )
        return self._repository.list_notifications(owner, is_read=is_read, limit=effective_limit)

    def mark_read(self, user_id: str, notification_ids: Sequence[int]) -> int:
        owner = require_text(user_id, "user_id")
        if not notification_ids:
            raise ReservationValidationError("notification_ids must not be empty")
        return self._repository.mark_notifications_read(owner, notification_ids)
