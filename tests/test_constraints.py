"""Tests for window validation, the overlap primitive and role-based conflict policy."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

import pytest

from backend.domain.constraints import (
    ConflictPolicy,
    is_blocking,
    normalize_hall_ids,
    policy_for_role,
    require_text,
    validate_active_halls,
    validate_attendee_count,
    validate_window,
)
from backend.domain.errors import ReservationValidationError
from backend.domain.models import (
    DirectBooking,
    Hall,
    RequestStatus,
    ReservationRequest,
    Role,
    TimeWindow,
)


CREATED = datetime(2026, 1, 1, tzinfo=timezone.utc)


def window(start_day: int, end_day: int, start_hour: int, end_hour: int) -> TimeWindow:
    return TimeWindow(
        start_date=date(2026, 3, start_day),
        end_date=date(2026, 3, end_day),
        start_time=time(start_hour),
        end_time=time(end_hour),
    )


def request_record(status: RequestStatus) -> ReservationRequest:
    return ReservationRequest(
        request_id=1,
        requester_id="someone",
        requester_role=Role.FACULTY,
        hall_ids=frozenset({1}),
        window=window(10, 10, 9, 11),
        status=status,
        purpose="Lecture",
        attendee_count=10,
        created_at=CREATED,
        updated_at=CREATED,
    )


def direct_record() -> DirectBooking:
    return DirectBooking(
        booking_id=1,
        booked_by="admin",
        hall_ids=frozenset({1}),
        window=window(10, 10, 9, 11),
        purpose="Maintenance",
        created_at=CREATED,
        is_blackout=True,
    )


# --- Overlap primitive ---

def test_touching_time_ranges_do_not_overlap() -> None:
    assert not window(10, 10, 9, 11).overlaps(window(10, 10, 11, 13))
    assert not window(10, 10, 11, 13).overlaps(window(10, 10, 9, 11))


def test_overlap_requires_both_dates_and_times() -> None:
    assert window(10, 12, 9, 11).overlaps(window(12, 14, 10, 12))
    # dates intersect, times do not
    assert not window(10, 12, 9, 11).overlaps(window(11, 11, 14, 16))
    # times intersect, dates do not
    assert not window(10, 11, 9, 11).overlaps(window(12, 13, 9, 11))


def test_overlap_is_symmetric_for_nested_windows() -> None:
    outer = window(1, 20, 8, 18)
    inner = window(5, 6, 12, 13)
    assert outer.overlaps(inner)
    assert inner.overlaps(outer)


def test_window_days_and_span() -> None:
    span = window(10, 12, 9, 11)
    assert span.span_days == 3
    assert list(span.days()) == [date(2026, 3, 10), date(2026, 3, 11), date(2026, 3, 12)]
    assert span.covers(date(2026, 3, 12))
    assert not span.covers(date(2026, 3, 13))


# --- validate_window ---

def test_valid_window_passes() -> None:
    validate_window(window(10, 12, 9, 11))


def test_end_date_before_start_date_raises() -> None:
    with pytest.raises(ReservationValidationError):
        validate_window(window(12, 10, 9, 11))


@pytest.mark.parametrize("start_hour,end_hour", [(11, 11), (12, 9)])
def test_start_time_not_before_end_time_raises(start_hour: int, end_hour: int) -> None:
    with pytest.raises(ReservationValidationError):
        validate_window(window(10, 10, start_hour, end_hour))


def test_time_with_seconds_raises() -> None:
    bad = TimeWindow(date(2026, 3, 10), date(2026, 3, 10), time(9, 0, 30), time(11))
    with pytest.raises(ReservationValidationError) as exc_info:
        validate_window(bad)
    assert exc_info.value.kind == "validation_error"


IST = timezone(timedelta(hours=5, minutes=30))


def test_time_with_offset_on_one_end_raises() -> None:
    mixed = TimeWindow(date(2026, 3, 10), date(2026, 3, 10), time(10, tzinfo=IST), time(12))
    with pytest.raises(ReservationValidationError) as exc_info:
        validate_window(mixed)
    assert "start_time" in exc_info.value.context


def test_time_with_offset_on_both_ends_raises() -> None:
    aware = TimeWindow(
        date(2026, 3, 10),
        date(2026, 3, 10),
        time(10, tzinfo=IST),
        time(12, tzinfo=IST),
    )
    with pytest.raises(ReservationValidationError):
        validate_window(aware)


# --- Hall, attendee and text rules ---

def test_empty_hall_set_raises() -> None:
    with pytest.raises(ReservationValidationError):
        normalize_hall_ids([])


def test_duplicate_hall_ids_collapse() -> None:
    assert normalize_hall_ids([3, 1, 3]) == frozenset({1, 3})


def test_non_positive_hall_id_raises() -> None:
    with pytest.raises(ReservationValidationError):
        normalize_hall_ids([1, 0])


def test_inactive_hall_raises() -> None:
    halls = [Hall(1, "Open", 100), Hall(2, "Closed", 100, is_active=False)]
    with pytest.raises(ReservationValidationError) as exc_info:
        validate_active_halls(halls)
    assert exc_info.value.context["inactive_halls"] == [2]


def test_attendee_count_must_be_positive() -> None:
    with pytest.raises(ReservationValidationError):
        validate_attendee_count(0, [Hall(1, "Hall", 100)])


def test_attendee_count_uses_combined_capacity() -> None:
    halls = [Hall(1, "A", 80), Hall(2, "B", 150)]
    validate_attendee_count(230, halls)
    with pytest.raises(ReservationValidationError) as exc_info:
        validate_attendee_count(231, halls)
    assert exc_info.value.context["total_capacity"] == 230


def test_require_text_trims_and_rejects_blank() -> None:
    assert require_text("  reason  ", "reason") == "reason"
    with pytest.raises(ReservationValidationError):
        require_text("   ", "reason")
    with pytest.raises(ReservationValidationError):
        require_text(None, "reason")


# --- Policy ---

def test_policy_for_role() -> None:
    assert policy_for_role(Role.FACULTY) is ConflictPolicy.FACULTY
    assert policy_for_role(Role.CLUB) is ConflictPolicy.MEMBER
    assert policy_for_role(Role.ADMIN) is ConflictPolicy.ADMIN_OVERRIDE
    assert policy_for_role("Faculty") is ConflictPolicy.FACULTY
    assert policy_for_role("guest") is ConflictPolicy.MEMBER


def test_pending_blocks_only_members() -> None:
    pending = request_record(RequestStatus.PENDING)
    assert is_blocking(pending, ConflictPolicy.MEMBER)
    assert not is_blocking(pending, ConflictPolicy.FACULTY)
    assert not is_blocking(pending, ConflictPolicy.APPROVAL_RECHECK)
    assert not is_blocking(pending, ConflictPolicy.ADMIN_OVERRIDE)


@pytest.mark.parametrize(
    "policy",
    [ConflictPolicy.MEMBER, ConflictPolicy.FACULTY, ConflictPolicy.APPROVAL_RECHECK],
)
def test_authoritative_records_block_non_admins(policy: ConflictPolicy) -> None:
    assert is_blocking(request_record(RequestStatus.APPROVED), policy)
    assert is_blocking(direct_record(), policy)


def test_admin_override_is_never_blocked() -> None:
    assert not is_blocking(request_record(RequestStatus.APPROVED), ConflictPolicy.ADMIN_OVERRIDE)
    assert not is_blocking(direct_record(), ConflictPolicy.ADMIN_OVERRIDE)


def test_rejected_never_blocks() -> None:
    rejected = request_record(RequestStatus.REJECTED)
    for policy in ConflictPolicy:
        assert not is_blocking(rejected, policy)
