from __future__ import annotations

import random
import sqlite3
import threading
from dataclasses import replace
from datetime import date, time, timedelta

import pytest

from backend.domain.errors import (
    AlreadyDecidedError,
    ForbiddenActionError,
    InvalidStateError,
    ReservationConflictError,
    ReservationBusyError,
    ReservationNotFoundError,
    ReservationValidationError,
    StaleConflictError,
)
from backend.domain.models import EventType, HallStatus, RequestStatus, Role, TimeWindow
from backend.repository.data_repository import DataRepository
from backend.services.availability_service import AvailabilityProjector
from backend.services.lifecycle_service import ReservationLifecycleService
from backend.services.notification_service import NotificationService
from backend.utils.config import get_settings


def _build_test_settings(tmp_path, filename: str):
    get_settings.cache_clear()
    return replace(
        get_settings(),
        database_path=tmp_path / filename,
        seed_default_halls=False,
    )


def _build_services(tmp_path, filename: str = "lifecycle.db"):
    settings = _build_test_settings(tmp_path, filename)
    repository = DataRepository(settings)
    repository.initialize_database()
    notifications = NotificationService(repository=repository, settings=settings)
    lifecycle = ReservationLifecycleService(
        repository=repository,
        notification_service=notifications,
        settings=settings,
    )
    return repository, notifications, lifecycle


def _window(day: date, start_hour: int, end_hour: int, end_day: date | None = None) -> TimeWindow:
    return TimeWindow(
        start_date=day,
        end_date=end_day or day,
        start_time=time(start_hour),
        end_time=time(end_hour),
    )


def _create(lifecycle, role: Role, requester: str, hall_ids, window, attendees: int = 50):
    return lifecycle.create_request(
        requester_id=requester,
        role=role,
        hall_ids=hall_ids,
        window=window,
        purpose=f"{role.value} event",
        attendee_count=attendees,
    )


def test_newton_hall_walkthrough(tmp_path):
    repository, _, lifecycle = _build_services(tmp_path)
    projector = AvailabilityProjector(repository=repository)
    newton = repository.create_hall("Newton", 150)
    lecture = _window(date(2025, 3, 10), 10, 12)

    faculty_request = _create(lifecycle, Role.FACULTY, "prof-rao", [newton], lecture, attendees=100)
    assert faculty_request.status is RequestStatus.PENDING

    with pytest.raises(ReservationConflictError) as pending_block:
        _create(lifecycle, Role.CLUB, "robotics-club", [newton], lecture)
    assert pending_block.value.blocking_halls == [newton]
    assert pending_block.value.context["blocking_records"][0]["status"] == "pending"

    approved = lifecycle.approve_request(faculty_request.request_id)
    assert approved.status is RequestStatus.APPROVED

    with pytest.raises(ReservationConflictError) as approved_block:
        _create(lifecycle, Role.CLUB, "robotics-club", [newton], lecture)
    assert approved_block.value.context["blocking_records"][0]["status"] == "approved"

    blackout = lifecycle.create_direct_booking(
        booked_by="admin-1",
        role=Role.ADMIN,
        hall_ids=[newton],
        window=_window(date(2025, 3, 11), 9, 17),
        purpose=None,
        is_blackout=True,
    )
    assert blackout.booking.purpose == "Hall unavailable"
    assert blackout.overridden == ()

    for role in (Role.FACULTY, Role.CLUB):
        with pytest.raises(ReservationConflictError):
            _create(lifecycle, role, f"{role.value}-late", [newton], _window(date(2025, 3, 11), 16, 18))

    assert projector.day_status([newton], date(2025, 3, 10))[newton].status is HallStatus.BOOKED


def test_direct_booking_overrides_and_blocks_later_approval(tmp_path):
    repository, _, lifecycle = _build_services(tmp_path)
    hall_id = repository.create_hall("Hall", 200)
    window = _window(date(2026, 5, 4), 10, 12)
    pending = _create(lifecycle, Role.FACULTY, "prof-a", [hall_id], window)

    result = lifecycle.create_direct_booking(
        booked_by="admin-1",
        role=Role.ADMIN,
        hall_ids=[hall_id],
        window=window,
        purpose="Convocation rehearsal",
    )
    assert [ref.record_id for ref in result.overridden] == [pending.request_id]

    with pytest.raises(StaleConflictError) as exc_info:
        lifecycle.approve_request(pending.request_id)
    assert exc_info.value.kind == "stale_conflict"
    assert repository.get_request(pending.request_id).status is RequestStatus.PENDING


def test_direct_booking_requires_admin(tmp_path):
    repository, _, lifecycle = _build_services(tmp_path)
    hall_id = repository.create_hall("Hall", 200)
    with pytest.raises(ForbiddenActionError):
        lifecycle.create_direct_booking(
            booked_by="prof-a",
            role=Role.FACULTY,
            hall_ids=[hall_id],
            window=_window(date(2026, 5, 4), 10, 12),
            purpose="Sneaky booking",
        )


def test_admin_cannot_submit_requests(tmp_path):
    repository, _, lifecycle = _build_services(tmp_path)
    hall_id = repository.create_hall("Hall", 200)
    with pytest.raises(ReservationValidationError):
        _create(lifecycle, Role.ADMIN, "admin-1", [hall_id], _window(date(2026, 5, 4), 10, 12))


def test_create_rejects_unknown_inactive_and_oversized(tmp_path):
    repository, _, lifecycle = _build_services(tmp_path)
    small = repository.create_hall("Small", 80)
    closed = repository.create_hall("Closed", 300, is_active=False)
    window = _window(date(2026, 5, 4), 10, 12)

    with pytest.raises(ReservationNotFoundError):
        _create(lifecycle, Role.FACULTY, "prof-a", [small, 9999], window)
    with pytest.raises(ReservationValidationError):
        _create(lifecycle, Role.FACULTY, "prof-a", [closed], window)
    with pytest.raises(ReservationValidationError):
        _create(lifecycle, Role.FACULTY, "prof-a", [small], window, attendees=81)
    with pytest.raises(ReservationValidationError):
        _create(lifecycle, Role.FACULTY, "prof-a", [small], window, attendees=0)
    assert repository.count_requests() == 0


def test_approve_rejected_request_is_invalid_state(tmp_path):
    repository, _, lifecycle = _build_services(tmp_path)
    hall_id = repository.create_hall("Hall", 200)
    request = _create(lifecycle, Role.CLUB, "club-a", [hall_id], _window(date(2026, 5, 4), 10, 12))
    lifecycle.reject_request(request.request_id, "Clashes with exams")

    with pytest.raises(InvalidStateError):
        lifecycle.approve_request(request.request_id)
    with pytest.raises(AlreadyDecidedError):
        lifecycle.reject_request(request.request_id, "Again")


def test_reject_requires_reason(tmp_path):
    repository, _, lifecycle = _build_services(tmp_path)
    hall_id = repository.create_hall("Hall", 200)
    request = _create(lifecycle, Role.CLUB, "club-a", [hall_id], _window(date(2026, 5, 4), 10, 12))

    with pytest.raises(ReservationValidationError):
        lifecycle.reject_request(request.request_id, "   ")
    assert lifecycle.get_request(request.request_id).status is RequestStatus.PENDING

    rejected = lifecycle.reject_request(request.request_id, "Hall under repair")
    assert rejected.rejection_reason == "Hall under repair"


def test_unknown_request_is_not_found(tmp_path):
    _, _, lifecycle = _build_services(tmp_path)
    with pytest.raises(ReservationNotFoundError):
        lifecycle.approve_request(404)
    with pytest.raises(ReservationNotFoundError):
        lifecycle.get_request(404)


def test_delete_rules(tmp_path):
    repository, _, lifecycle = _build_services(tmp_path)
    hall_a = repository.create_hall("A", 200)
    hall_b = repository.create_hall("B", 200)
    window = _window(date(2026, 5, 4), 10, 12)
    request = _create(lifecycle, Role.FACULTY, "prof-a", [hall_a, hall_b], window)

    with pytest.raises(ForbiddenActionError):
        lifecycle.delete_request(request.request_id, "prof-b")

    lifecycle.approve_request(request.request_id)
    with pytest.raises(InvalidStateError):
        lifecycle.delete_request(request.request_id, "prof-a")

    other = _create(lifecycle, Role.FACULTY, "prof-a", [hall_a, hall_b], _window(date(2026, 5, 5), 10, 12))
    assert repository.count_request_hall_links(other.request_id) == 2
    lifecycle.delete_request(other.request_id, "prof-a")
    assert repository.get_request(other.request_id) is None
    assert repository.count_request_hall_links(other.request_id) == 0


def test_concurrent_approvals_allow_exactly_one(tmp_path):
    repository, _, lifecycle = _build_services(tmp_path, "race.db")
    hall_id = repository.create_hall("Hall", 200)
    first = _create(lifecycle, Role.FACULTY, "prof-a", [hall_id], _window(date(2026, 6, 1), 10, 12))
    second = _create(lifecycle, Role.FACULTY, "prof-b", [hall_id], _window(date(2026, 6, 1), 11, 13))

    barrier = threading.Barrier(2)
    outcomes: dict[int, object] = {}

    def approve(request_id: int) -> None:
        barrier.wait()
        try:
            outcomes[request_id] = lifecycle.approve_request(request_id).status
        except StaleConflictError as exc:
            outcomes[request_id] = exc

    threads = [
        threading.Thread(target=approve, args=(request.request_id,))
        for request in (first, second)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    approved = [value for value in outcomes.values() if value is RequestStatus.APPROVED]
    stale = [value for value in outcomes.values() if isinstance(value, StaleConflictError)]
    assert len(approved) == 1
    assert len(stale) == 1
    assert repository.count_requests(RequestStatus.APPROVED) == 1


def test_failing_subscriber_does_not_fail_transition(tmp_path):
    repository, notifications, lifecycle = _build_services(tmp_path)
    hall_id = repository.create_hall("Hall", 200)
    received: list[EventType] = []

    def broken_mailer(event) -> None:
        raise ConnectionError("smtp down")

    notifications.subscribe(broken_mailer)
    notifications.subscribe(lambda event: received.append(event.event_type))

    request = _create(lifecycle, Role.CLUB, "club-a", [hall_id], _window(date(2026, 5, 4), 10, 12))
    lifecycle.approve_request(request.request_id)

    assert repository.get_request(request.request_id).status is RequestStatus.APPROVED
    assert received == [EventType.REQUEST_CREATED, EventType.REQUEST_APPROVED]


def test_each_transition_writes_one_notification(tmp_path):
    repository, notifications, lifecycle = _build_services(tmp_path)
    hall_id = repository.create_hall("Hall", 200)
    request = _create(lifecycle, Role.CLUB, "club-a", [hall_id], _window(date(2026, 5, 4), 10, 12))
    lifecycle.reject_request(request.request_id, "Double booked")

    inbox = notifications.list_notifications("club-a")
    assert [item.title for item in inbox] == [
        "Booking Request Rejected",
        "Booking Request Submitted",
    ]
    assert inbox[0].message.endswith("Reason: Double booked")
    assert all(item.related_request_id == request.request_id for item in inbox)

    assert notifications.mark_read("club-a", [inbox[0].notification_id]) == 1
    unread = notifications.list_notifications("club-a", is_read=False)
    assert [item.notification_id for item in unread] == [inbox[1].notification_id]
    with pytest.raises(ReservationValidationError):
        notifications.list_notifications("club-a", limit=0)


def test_delete_direct_booking(tmp_path):
    repository, _, lifecycle = _build_services(tmp_path)
    hall_id = repository.create_hall("Hall", 200)
    result = lifecycle.create_direct_booking(
        booked_by="admin-1",
        role=Role.ADMIN,
        hall_ids=[hall_id],
        window=_window(date(2026, 5, 4), 10, 12),
        purpose="Guest lecture",
    )
    assert [item.booking_id for item in lifecycle.list_direct_bookings(hall_id)] == [
        result.booking.booking_id
    ]

    with pytest.raises(ForbiddenActionError):
        lifecycle.delete_direct_booking(result.booking.booking_id, Role.CLUB)
    lifecycle.delete_direct_booking(result.booking.booking_id, Role.ADMIN)
    with pytest.raises(ReservationNotFoundError):
        lifecycle.delete_direct_booking(result.booking.booking_id, Role.ADMIN)


def test_held_write_lock_raises_busy_error(tmp_path):
    settings = replace(_build_test_settings(tmp_path, "busy.db"), database_timeout_seconds=0.05)
    repository = DataRepository(settings)
    repository.initialize_database()
    hall_id = repository.create_hall("Hall", 200)
    lifecycle = ReservationLifecycleService(repository=repository, settings=settings)

    holder = sqlite3.connect(repository.database_path, isolation_level=None)
    try:
        holder.execute("BEGIN IMMEDIATE;")
        with pytest.raises(ReservationBusyError) as exc_info:
            _create(lifecycle, Role.FACULTY, "prof-a", [hall_id], _window(date(2026, 5, 4), 10, 12))
        assert exc_info.value.to_dict()["kind"] == "busy"
    finally:
        holder.execute("ROLLBACK;")
        holder.close()

    assert lifecycle.list_requests() == []
    created = _create(lifecycle, Role.FACULTY, "prof-a", [hall_id], _window(date(2026, 5, 4), 10, 12))
    assert created.status is RequestStatus.PENDING


def _shares_slot(first, second) -> bool:
    return bool(first.hall_ids & second.hall_ids) and first.window.overlaps(second.window)


def test_random_lifecycle_never_double_books_a_hall(tmp_path):
    repository, _, lifecycle = _build_services(tmp_path, "random_lifecycle.db")
    hall_ids = [repository.create_hall(f"Hall {index}", 500) for index in range(3)]
    rng = random.Random(20260318)
    first_day = date(2026, 6, 1)

    def random_window() -> TimeWindow:
        start_day = first_day + timedelta(days=rng.randrange(4))
        start_hour = rng.randrange(8, 17)
        return _window(
            start_day,
            start_hour,
            min(start_hour + rng.randint(1, 3), 20),
            end_day=start_day + timedelta(days=rng.randrange(2)),
        )

    request_ids: list[int] = []
    # approvals and direct bookings in commit order
    committed: list[tuple[str, object]] = []

    for _ in range(150):
        action = rng.choices(["create", "approve", "direct"], weights=[5, 4, 1])[0]
        if action == "create":
            role = rng.choice([Role.FACULTY, Role.CLUB])
            halls = rng.sample(hall_ids, rng.randint(1, 2))
            try:
                created = _create(lifecycle, role, f"{role.value}-user", halls, random_window())
            except ReservationConflictError:
                continue
            request_ids.append(created.request_id)
        elif action == "approve" and request_ids:
            try:
                approved = lifecycle.approve_request(rng.choice(request_ids))
            except (StaleConflictError, InvalidStateError):
                continue
            committed.append(("approved", approved))
        elif action == "direct":
            result = lifecycle.create_direct_booking(
                booked_by="admin-1",
                role=Role.ADMIN,
                hall_ids=rng.sample(hall_ids, rng.randint(1, 2)),
                window=random_window(),
                purpose="Maintenance",
            )
            committed.append(("direct", result.booking))

        approved_now = lifecycle.list_requests(status=RequestStatus.APPROVED)
        for index, first in enumerate(approved_now):
            for second in approved_now[index + 1 :]:
                assert not _shares_slot(first, second), (first.request_id, second.request_id)

    for index, (kind, record) in enumerate(committed):
        if kind != "approved":
            continue
        for earlier_kind, earlier in committed[:index]:
            if earlier_kind == "direct":
                assert not _shares_slot(record, earlier), (record.request_id, earlier.booking_id)

    assert any(kind == "approved" for kind, _ in committed)
