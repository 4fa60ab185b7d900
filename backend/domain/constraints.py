"""Domain-level validation rules and role-based conflict policy."""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Sequence

from backend.domain.errors import ReservationValidationError
from backend.domain.models import (
    DirectBooking,
    Hall,
    RequestStatus,
    Reservation,
    Role,
    TimeWindow,
)


class ConflictPolicy(str, Enum):
    """Which existing records block a candidate reservation."""

    FACULTY = "faculty"
    MEMBER = "member"
    ADMIN_OVERRIDE = "admin_override"
    APPROVAL_RECHECK = "approval_recheck"


def policy_for_role(role: Role | str) -> ConflictPolicy:
    value = role.value if isinstance(role, Role) else str(role).strip().lower()
    if value == Role.FACULTY.value:
        return ConflictPolicy.FACULTY
    if value == Role.ADMIN.value:
        return ConflictPolicy.ADMIN_OVERRIDE
    # clubs and any other non-faculty, non-admin role
    return ConflictPolicy.MEMBER


def is_blocking(record: Reservation, policy: ConflictPolicy) -> bool:
    """Return whether ``record`` blocks a candidate under ``policy``."""
    if policy is ConflictPolicy.ADMIN_OVERRIDE:
        return False
    if isinstance(record, DirectBooking):
        return True
    if record.status is RequestStatus.APPROVED:
        return True
    if record.status is RequestStatus.PENDING:
        return policy is ConflictPolicy.MEMBER
    return False


def validate_window(window: TimeWindow) -> None:
    if window.start_date > window.end_date:
        raise ReservationValidationError(
            "start_date must be on or before end_date",
            start_date=window.start_date.isoformat(),
            end_date=window.end_date.isoformat(),
        )
    for label, value in (("start_time", window.start_time), ("end_time", window.end_time)):
        if value.tzinfo is not None:
            raise ReservationValidationError(
                f"{label} must be a local time-of-day without a UTC offset",
                **{label: value.isoformat()},
            )
        if value.second or value.microsecond:
            raise ReservationValidationError(
                f"{label} must be a whole time-of-day value (HH:MM)",
                **{label: value.isoformat()},
            )
    if window.start_time >= window.end_time:
        raise ReservationValidationError(
            "start_time must be earlier than end_time",
            start_time=window.start_time.isoformat(timespec="minutes"),
            end_time=window.end_time.isoformat(timespec="minutes"),
        )


def normalize_hall_ids(hall_ids: Iterable[int]) -> frozenset[int]:
    normalized = frozenset(int(hall_id) for hall_id in hall_ids)
    if not normalized:
        raise ReservationValidationError("at least one hall must be selected")
    if any(hall_id <= 0 for hall_id in normalized):
        raise ReservationValidationError(
            "hall ids must be positive integers",
            hall_ids=sorted(normalized),
        )
    return normalized


def validate_active_halls(halls: Sequence[Hall]) -> None:
    inactive = sorted(hall.hall_id for hall in halls if not hall.is_active)
    if inactive:
        raise ReservationValidationError(
            "one or more halls are not accepting bookings",
            inactive_halls=inactive,
        )


def validate_attendee_count(attendee_count: int, halls: Sequence[Hall]) -> None:
    if attendee_count <= 0:
        raise ReservationValidationError(
            "attendee_count must be a positive integer",
            attendee_count=attendee_count,
        )
    total_capacity = sum(hall.capacity for hall in halls)
    if attendee_count > total_capacity:
        raise ReservationValidationError(
            "attendee_count exceeds the combined capacity of the selected halls",
            attendee_count=attendee_count,
            total_capacity=total_capacity,
        )


def require_text(value: str | None, field_name: str) -> str:
    """Return the trimmed value or raise if it is missing/blank."""
    trimmed = (value or "").strip()
    if not trimmed:
        raise ReservationValidationError(f"{field_name} is required", field=field_name)
    return trimmed
