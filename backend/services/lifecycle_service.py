"""Reservation lifecycle: create, approve, reject and delete requests and direct bookings."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from backend.domain.constraints import (
    normalize_hall_ids,
    require_text,
    validate_active_halls,
    validate_attendee_count,
    validate_window,
)
from backend.domain.errors import (
    AlreadyDecidedError,
    ForbiddenActionError,
    InvalidStateError,
    ReservationConflictError,
    ReservationNotFoundError,
    ReservationValidationError,
    StaleConflictError,
)
from backend.domain.models import (
    DirectBooking,
    EventType,
    Hall,
    LifecycleEvent,
    RecordRef,
    RequestStatus,
    ReservationRequest,
    Role,
    TimeWindow,
)
from backend.repository.data_repository import DataRepository
from backend.repository.store import ReservationStore
from backend.services.conflict_service import ConflictResolver, verdict_records_payload
from backend.services.notification_service import NotificationService
from backend.utils.config import Settings, get_settings
from backend.utils.logger import format_fields, get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class DirectBookingResult:
    booking: DirectBooking
    overridden: tuple[RecordRef, ...] = ()


def _coerce_role(role: Role | str) -> Role:
    try:
        return role if isinstance(role, Role) else Role(str(role).strip().lower())
    except ValueError as exc:
        raise ReservationValidationError(
            "role must be one of faculty, club, admin",
            role=str(role),
        ) from exc


def _load_halls(store: ReservationStore, hall_ids: frozenset[int]) -> dict[int, Hall]:
    halls = store.get_halls(hall_ids)
    missing = sorted(hall_ids - set(halls))
    if missing:
        raise ReservationNotFoundError("one or more halls were not found", hall_ids=missing)
    return halls


def _ordered_halls(halls: dict[int, Hall]) -> tuple[Hall, ...]:
    return tuple(halls[hall_id] for hall_id in sorted(halls))


class ReservationLifecycleService:
    """Owns every state transition of requests and direct bookings.

    Each check-then-write sequence runs inside one ``atomic()`` unit of work,
    so a conflict verdict is never stale by the time its write commits.
    Events are published only after the unit of work has committed.
    """

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        resolver: Optional[ConflictResolver] = None,
        notification_service: Optional[NotificationService] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._resolver = resolver or ConflictResolver(self._repository)
        self._notifications = notification_service or NotificationService(
            repository=self._repository,
            settings=self._settings,
        )

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def create_request(
        self,
        *,
        requester_id: str,
        role: Role | str,
        hall_ids: Iterable[int],
        window: TimeWindow,
        purpose: str,
        attendee_count: int,
        event_name: Optional[str] = None,
        contact_email: Optional[str] = None,
    ) -> ReservationRequest:
        requester = require_text(requester_id, "requester_id")
        requester_role = _coerce_role(role)
        if requester_role is Role.ADMIN:
            raise ReservationValidationError(
                "admins reserve halls through direct bookings, not requests",
                role=requester_role.value,
            )
        validate_window(window)
        candidate_halls = normalize_hall_ids(hall_ids)
        cleaned_purpose = require_text(purpose, "purpose")

        with self._repository.atomic() as store:
            halls = _load_halls(store, candidate_halls)
            validate_active_halls(list(halls.values()))
            validate_attendee_count(attendee_count, list(halls.values()))

            verdict = self._resolver.resolve(
                candidate_halls,
                window,
                requester_role,
                store=store,
            )
            if verdict.blocked:
                raise ReservationConflictError(
                    "one or more halls are already reserved for the selected window",
                    blocking_halls=verdict.blocking_halls,
                    blocking_records=verdict_records_payload(verdict),
                )

            request = store.insert_request(
                requester_id=requester,
                requester_role=requester_role,
                hall_ids=candidate_halls,
                window=window,
                purpose=cleaned_purpose,
                attendee_count=attendee_count,
                event_name=(event_name or "").strip() or None,
                contact_email=(contact_email or "").strip() or None,
            )

        logger.info(
            "Request created | %s",
            format_fields(
                request_id=request.request_id,
                requester=request.requester_id,
                role=request.requester_role.value,
                halls=request.hall_ids,
                dates=f"{window.start_date}..{window.end_date}",
                days=window.span_days,
                times=f"{window.start_time:%H:%M}-{window.end_time:%H:%M}",
            ),
        )
        self._notifications.publish(
            LifecycleEvent(
                event_type=EventType.REQUEST_CREATED,
                request=request,
                halls=_ordered_halls(halls),
            )
        )
        return request

    def approve_request(
        self,
        request_id: int,
        admin_notes: Optional[str] = None,
    ) -> ReservationRequest:
        with self._repository.atomic() as store:
            request = store.get_request(request_id)
            if request is None:
                raise ReservationNotFoundError(
                    f"booking request {request_id} not found",
                    request_id=request_id,
                )
            if request.status is not RequestStatus.PENDING:
                raise AlreadyDecidedError(
                    "request has already been processed",
                    request_id=request_id,
                    status=request.status.value,
                )

            verdict = self._resolver.recheck_for_approval(
                request.request_id,
                request.hall_ids,
                request.window,
                store=store,
            )
            if verdict.blocked:
                raise StaleConflictError(
                    "another allocation was committed for these halls; request left pending",
                    blocking_halls=verdict.blocking_halls,
                    blocking_records=verdict_records_payload(verdict),
                )

            approved = store.update_request_status(
                request.request_id,
                RequestStatus.APPROVED,
                admin_notes=(admin_notes or "").strip() or None,
            )
            halls = store.get_halls(approved.hall_ids)

        logger.info(
            "Request approved | %s",
            format_fields(request_id=approved.request_id, halls=approved.hall_ids),
        )
        self._notifications.publish(
            LifecycleEvent(
                event_type=EventType.REQUEST_APPROVED,
                request=approved,
                halls=_ordered_halls(halls),
                admin_notes=approved.admin_notes,
            )
        )
        return approved

    def reject_request(self, request_id: int, reason: Optional[str]) -> ReservationRequest:
        cleaned_reason = require_text(reason, "reason")
        with self._repository.atomic() as store:
            request = store.get_request(request_id)
            if request is None:
                raise ReservationNotFoundError(
                    f"booking request {request_id} not found",
                    request_id=request_id,
                )
            if request.status is not RequestStatus.PENDING:
                raise AlreadyDecidedError(
                    "request has already been processed",
                    request_id=request_id,
                    status=request.status.value,
                )
            rejected = store.update_request_status(
                request.request_id,
                RequestStatus.REJECTED,
                rejection_reason=cleaned_reason,
            )
            halls = store.get_halls(rejected.hall_ids)

        logger.info(
            "Request rejected | %s",
            format_fields(request_id=rejected.request_id, reason=cleaned_reason),
        )
        self._notifications.publish(
            LifecycleEvent(
                event_type=EventType.REQUEST_REJECTED,
                request=rejected,
                halls=_ordered_halls(halls),
                reason=cleaned_reason,
            )
        )
        return rejected

    def delete_request(self, request_id: int, by_user_id: str) -> None:
        caller = require_text(by_user_id, "requester_id")
        with self._repository.atomic() as store:
            request = store.get_request(request_id)
            if request is None:
                raise ReservationNotFoundError(
                    f"booking request {request_id} not found",
                    request_id=request_id,
                )
            if request.requester_id != caller:
                raise ForbiddenActionError(
                    "only the requester may delete this request",
                    request_id=request_id,
                )
            if request.status is not RequestStatus.PENDING:
                raise InvalidStateError(
                    "only pending requests can be deleted",
                    request_id=request_id,
                    status=request.status.value,
                )
            store.delete_request(request.request_id)

        logger.info(
            "Request deleted | %s",
            format_fields(request_id=request_id, requester=caller),
        )

    def get_request(self, request_id: int) -> ReservationRequest:
        request = self._repository.get_request(request_id)
        if request is None:
            raise ReservationNotFoundError(
                f"booking request {request_id} not found",
                request_id=request_id,
            )
        return request

    def list_requests(
        self,
        *,
        requester_id: Optional[str] = None,
        status: Optional[RequestStatus] = None,
        hall_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[ReservationRequest]:
        if start_date is not None and end_date is not None and start_date > end_date:
            raise ReservationValidationError(
                "start_date must be on or before end_date",
                start_date=start_date.isoformat(),
                end_date=end_date.isoformat(),
            )
        return self._repository.list_requests(
            requester_id=requester_id,
            status=status,
            hall_id=hall_id,
            start_date=start_date,
            end_date=end_date,
        )

    # ------------------------------------------------------------------
    # Direct bookings
    # ------------------------------------------------------------------

    def create_direct_booking(
        self,
        *,
        booked_by: str,
        role: Role | str,
        hall_ids: Iterable[int],
        window: TimeWindow,
        purpose: Optional[str],
        is_blackout: bool = False,
        event_name: Optional[str] = None,
        attendee_count: int = 0,
    ) -> DirectBookingResult:
        """Create an admin booking unconditionally.

        Overlapping pending or approved records are reported back in
        ``overridden`` but never prevent the booking.
        """
        caller_role = _coerce_role(role)
        if caller_role is not Role.ADMIN:
            raise ForbiddenActionError(
                "only admins can create direct bookings",
                role=caller_role.value,
            )
        admin = require_text(booked_by, "booked_by")
        validate_window(window)
        candidate_halls = normalize_hall_ids(hall_ids)
        if is_blackout:
            cleaned_purpose = (purpose or "").strip() or "Hall unavailable"
        else:
            cleaned_purpose = require_text(purpose, "purpose")
        if attendee_count < 0:
            raise ReservationValidationError(
                "attendee_count must not be negative",
                attendee_count=attendee_count,
            )

        with self._repository.atomic() as store:
            _load_halls(store, candidate_halls)
            overridden = tuple(
                RecordRef.from_reservation(record)
                for record in self._resolver.find_overlapping(
                    candidate_halls,
                    window,
                    store=store,
                )
            )
            booking = store.insert_direct_booking(
                booked_by=admin,
                hall_ids=candidate_halls,
                window=window,
                purpose=cleaned_purpose,
                is_blackout=is_blackout,
                event_name=(event_name or "").strip() or None,
                attendee_count=attendee_count,
            )

        if overridden:
            logger.warning(
                "Direct booking overrides existing records | %s",
                format_fields(
                    booking_id=booking.booking_id,
                    records=[f"{ref.kind.value}:{ref.record_id}" for ref in overridden],
                ),
            )
        logger.info(
            "Direct booking created | %s",
            format_fields(
                booking_id=booking.booking_id,
                booked_by=admin,
                halls=booking.hall_ids,
                blackout=booking.is_blackout,
            ),
        )
        return DirectBookingResult(booking=booking, overridden=overridden)

    def delete_direct_booking(self, booking_id: int, role: Role | str) -> None:
        caller_role = _coerce_role(role)
        if caller_role is not Role.ADMIN:
            raise ForbiddenActionError(
                "only admins can delete direct bookings",
                role=caller_role.value,
            )
        with self._repository.atomic() as store:
            booking = store.get_direct_booking(booking_id)
            if booking is None:
                raise ReservationNotFoundError(
                    f"direct booking {booking_id} not found",
                    booking_id=booking_id,
                )
            store.delete_direct_booking(booking.booking_id)
        logger.info(
            "Direct booking deleted | %s",
            format_fields(booking_id=booking_id, halls=booking.hall_ids),
        )

    def list_direct_bookings(self, hall_id: Optional[int] = None) -> list[DirectBooking]:
        return self._repository.list_direct_bookings(hall_id=hall_id)
