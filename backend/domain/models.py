"""Domain models for hall reservations, direct bookings and availability."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Iterator, Optional, Union


class Role(str, Enum):
    FACULTY = "faculty"
    CLUB = "club"
    ADMIN = "admin"


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReservationKind(str, Enum):
    REQUEST = "request"
    DIRECT = "direct"


class HallStatus(str, Enum):
    AVAILABLE = "available"
    PENDING = "pending"
    BOOKED = "booked"

    @property
    def severity(self) -> int:
        return _STATUS_SEVERITY[self]

    @classmethod
    def worst(cls, left: "HallStatus", right: "HallStatus") -> "HallStatus":
        return left if left.severity >= right.severity else right


_STATUS_SEVERITY = {
    HallStatus.AVAILABLE: 0,
    HallStatus.PENDING: 1,
    HallStatus.BOOKED: 2,
}


class EventType(str, Enum):
    REQUEST_CREATED = "RequestCreated"
    REQUEST_APPROVED = "RequestApproved"
    REQUEST_REJECTED = "RequestRejected"


@dataclass(frozen=True)
class Hall:
    hall_id: int
    name: str
    capacity: int
    is_active: bool = True
    location: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class TimeWindow:
    """Inclusive date range combined with a half-open time-of-day range.

    A window occupies ``[start_time, end_time)`` on every date from
    ``start_date`` to ``end_date`` inclusive. Windows never cross midnight.
    """

    start_date: date
    end_date: date
    start_time: time
    end_time: time

    def dates_overlap(self, other: "TimeWindow") -> bool:
        return self.start_date <= other.end_date and other.start_date <= self.end_date

    def times_overlap(self, other: "TimeWindow") -> bool:
        return self.start_time < other.end_time and other.start_time < self.end_time

    def overlaps(self, other: "TimeWindow") -> bool:
        return self.dates_overlap(other) and self.times_overlap(other)

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    @property
    def span_days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def days(self) -> Iterator[date]:
        current = self.start_date
        while current <= self.end_date:
            yield current
            current += timedelta(days=1)


@dataclass(frozen=True)
class ReservationRequest:
    request_id: int
    requester_id: str
    requester_role: Role
    hall_ids: frozenset[int]
    window: TimeWindow
    status: RequestStatus
    purpose: str
    attendee_count: int
    created_at: datetime
    updated_at: datetime
    event_name: Optional[str] = None
    contact_email: Optional[str] = None
    rejection_reason: Optional[str] = None
    admin_notes: Optional[str] = None

    @property
    def kind(self) -> ReservationKind:
        return ReservationKind.REQUEST

    @property
    def record_id(self) -> int:
        return self.request_id

    @property
    def display_name(self) -> str:
        return self.event_name or self.purpose


@dataclass(frozen=True)
class DirectBooking:
    booking_id: int
    booked_by: str
    hall_ids: frozenset[int]
    window: TimeWindow
    purpose: str
    created_at: datetime
    is_blackout: bool = False
    event_name: Optional[str] = None
    attendee_count: int = 0

    @property
    def kind(self) -> ReservationKind:
        return ReservationKind.DIRECT

    @property
    def record_id(self) -> int:
        return self.booking_id

    @property
    def display_name(self) -> str:
        if self.event_name:
            return self.event_name
        return "Hall Unavailable" if self.is_blackout else "Direct Booking"


Reservation = Union[ReservationRequest, DirectBooking]


@dataclass(frozen=True)
class RecordRef:
    """Pointer to an existing reservation that collided with a candidate."""

    kind: ReservationKind
    record_id: int
    hall_ids: frozenset[int]
    status: RequestStatus

    @classmethod
    def from_reservation(cls, record: Reservation) -> "RecordRef":
        if isinstance(record, DirectBooking):
            return cls(
                kind=ReservationKind.DIRECT,
                record_id=record.booking_id,
                hall_ids=record.hall_ids,
                status=RequestStatus.APPROVED,
            )
        return cls(
            kind=ReservationKind.REQUEST,
            record_id=record.request_id,
            hall_ids=record.hall_ids,
            status=record.status,
        )


@dataclass(frozen=True)
class ConflictVerdict:
    blocked: bool
    blocking_halls: tuple[int, ...] = ()
    blocking_records: tuple[RecordRef, ...] = ()

    @classmethod
    def clear(cls) -> "ConflictVerdict":
        return cls(blocked=False)


@dataclass(frozen=True)
class BookingSummary:
    kind: ReservationKind
    record_id: int
    event_name: str
    purpose: str
    requester_id: str
    requester_role: Role
    start_date: date
    end_date: date
    start_time: time
    end_time: time
    attendee_count: int
    is_blackout: bool = False

    @classmethod
    def from_reservation(cls, record: Reservation) -> "BookingSummary":
        if isinstance(record, DirectBooking):
            return cls(
                kind=ReservationKind.DIRECT,
                record_id=record.booking_id,
                event_name=record.display_name,
                purpose=record.purpose,
                requester_id=record.booked_by,
                requester_role=Role.ADMIN,
                start_date=record.window.start_date,
                end_date=record.window.end_date,
                start_time=record.window.start_time,
                end_time=record.window.end_time,
                attendee_count=record.attendee_count,
                is_blackout=record.is_blackout,
            )
        return cls(
            kind=ReservationKind.REQUEST,
            record_id=record.request_id,
            event_name=record.display_name,
            purpose=record.purpose,
            requester_id=record.requester_id,
            requester_role=record.requester_role,
            start_date=record.window.start_date,
            end_date=record.window.end_date,
            start_time=record.window.start_time,
            end_time=record.window.end_time,
            attendee_count=record.attendee_count,
        )


@dataclass(frozen=True)
class HallDayStatus:
    hall_id: int
    status: HallStatus
    detail: Optional[BookingSummary] = None


@dataclass(frozen=True)
class Notification:
    notification_id: int
    user_id: str
    title: str
    message: str
    notification_type: str
    is_read: bool
    created_at: datetime
    related_request_id: Optional[int] = None


@dataclass(frozen=True)
class LifecycleEvent:
    """Outbound record of one successful lifecycle transition."""

    event_type: EventType
    request: ReservationRequest
    halls: tuple[Hall, ...] = ()
    reason: Optional[str] = None
    admin_notes: Optional[str] = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def hall_names(self) -> str:
        return ", ".join(hall.name for hall in self.halls)
