"""Conflict resolution for candidate reservations over one or more halls."""

from __future__ import annotations

from typing import Iterable, Optional

from backend.domain.constraints import ConflictPolicy, is_blocking, policy_for_role
from backend.domain.models import (
    ConflictVerdict,
    RecordRef,
    Reservation,
    ReservationKind,
    Role,
    TimeWindow,
)
from backend.repository.store import ReservationStore
from backend.utils.logger import format_fields, get_logger


logger = get_logger(__name__)


class ConflictResolver:
    """Decides whether a window on a hall set is blocked, and by what.

    The role decides which existing records count as blocking: faculty are
    only blocked by authoritative allocations, clubs also by pending
    requests, and admins never.
    """

    def __init__(self, repository: ReservationStore) -> None:
        self._repository = repository

    def find_overlapping(
        self,
        hall_ids: Iterable[int],
        window: TimeWindow,
        *,
        store: Optional[ReservationStore] = None,
        exclude_request_id: Optional[int] = None,
    ) -> list[Reservation]:
        """Return every live record sharing a hall with ``window`` and overlapping it."""
        candidate_halls = frozenset(hall_ids)
        source = store or self._repository
        records = source.find_reservations(
            candidate_halls,
            window.start_date,
            window.end_date,
        )
        overlapping: list[Reservation] = []
        for record in records:
            if (
                exclude_request_id is not None
                and record.kind is ReservationKind.REQUEST
                and record.record_id == exclude_request_id
            ):
                continue
            if not record.hall_ids & candidate_halls:
                continue
            if not record.window.overlaps(window):
                continue
            overlapping.append(record)
        return overlapping

    def resolve(
        self,
        hall_ids: Iterable[int],
        window: TimeWindow,
        role: Role | ConflictPolicy,
        *,
        store: Optional[ReservationStore] = None,
        exclude_request_id: Optional[int] = None,
    ) -> ConflictVerdict:
        policy = role if isinstance(role, ConflictPolicy) else policy_for_role(role)
        candidate_halls = frozenset(hall_ids)
        if policy is ConflictPolicy.ADMIN_OVERRIDE:
            return ConflictVerdict.clear()

        overlapping = self.find_overlapping(
            candidate_halls,
            window,
            store=store,
            exclude_request_id=exclude_request_id,
        )
        blocking = [record for record in overlapping if is_blocking(record, policy)]
        if not blocking:
            return ConflictVerdict.clear()

        blocking_halls = sorted(
            {hall_id for record in blocking for hall_id in record.hall_ids & candidate_halls}
        )
        verdict = ConflictVerdict(
            blocked=True,
            blocking_halls=tuple(blocking_halls),
            blocking_records=tuple(RecordRef.from_reservation(record) for record in blocking),
        )
        logger.info(
            "Conflict detected | %s",
            format_fields(
                policy=policy.value,
                halls=blocking_halls,
                records=[f"{ref.kind.value}:{ref.record_id}" for ref in verdict.blocking_records],
            ),
        )
        return verdict

    def recheck_for_approval(
        self,
        request_id: int,
        hall_ids: Iterable[int],
        window: TimeWindow,
        *,
        store: Optional[ReservationStore] = None,
    ) -> ConflictVerdict:
        """Check a pending request against authoritative records other than itself."""
        return self.resolve(
            hall_ids,
            window,
            ConflictPolicy.APPROVAL_RECHECK,
            store=store,
            exclude_request_id=request_id,
        )


def verdict_records_payload(verdict: ConflictVerdict) -> list[dict[str, object]]:
    """Serialize blocking record references for error context."""
    return [
        {
            "kind": ref.kind.value,
            "record_id": ref.record_id,
            "hall_ids": sorted(ref.hall_ids),
            "status": ref.status.value,
        }
        for ref in verdict.blocking_records
    ]
