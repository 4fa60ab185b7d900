"""Storage contracts the engine is written against."""

from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import date
from typing import Iterable, Optional, Protocol

from backend.domain.models import (
    DirectBooking,
    Hall,
    RequestStatus,
    Reservation,
    ReservationRequest,
    Role,
    TimeWindow,
)


class HallCatalog(Protocol):
    """Read-only hall reference data."""

    def get_halls(self, hall_ids: Iterable[int]) -> dict[int, Hall]: ...

    def list_halls(self, active: Optional[bool] = None) -> list[Hall]: ...


class ReservationStore(HallCatalog, Protocol):
    """Durable requests and direct bookings, queryable by hall and date range."""

    def atomic(self) -> AbstractContextManager["ReservationStore"]: ...

    def find_reservations(
        self,
        hall_ids: Optional[Iterable[int]],
        start_date: date,
        end_date: date,
    ) -> list[Reservation]: ...

    def insert_request(
        self,
        *,
        requester_id: str,
        requester_role: Role,
        hall_ids: Iterable[int],
        window: TimeWindow,
        purpose: str,
        attendee_count: int,
        event_name: Optional[str] = None,
        contact_email: Optional[str] = None,
    ) -> ReservationRequest: ...

    def get_request(self, request_id: int) -> Optional[ReservationRequest]: ...

    def update_request_status(
        self,
        request_id: int,
        status: RequestStatus,
        *,
        rejection_reason: Optional[str] = None,
        admin_notes: Optional[str] = None,
    ) -> ReservationRequest: ...

    def delete_request(self, request_id: int) -> bool: ...

    def insert_direct_booking(
        self,
        *,
        booked_by: str,
        hall_ids: Iterable[int],
        window: TimeWindow,
        purpose: str,
        is_blackout: bool = False,
        event_name: Optional[str] = None,
        attendee_count: int = 0,
    ) -> DirectBooking: ...

    def get_direct_booking(self, booking_id: int) -> Optional[DirectBooking]: ...

    def delete_direct_booking(self, booking_id: int) -> bool: ...
