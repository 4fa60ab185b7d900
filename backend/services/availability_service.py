"""Per-hall availability projection for a single day or a date range."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, Iterator, Optional, Sequence

from backend.domain.constraints import normalize_hall_ids
from backend.domain.errors import ReservationNotFoundError, ReservationValidationError
from backend.domain.models import (
    BookingSummary,
    DirectBooking,
    Hall,
    HallDayStatus,
    HallStatus,
    RequestStatus,
    Reservation,
)
from backend.repository.data_repository import DataRepository
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


def _precedence_tier(record: Reservation) -> int:
    """Lower tiers win: direct booking, then approved, then pending."""
    if isinstance(record, DirectBooking):
        return 0
    if record.status is RequestStatus.APPROVED:
        return 1
    return 2


def _tier_status(tier: int) -> HallStatus:
    return HallStatus.PENDING if tier == 2 else HallStatus.BOOKED


def _iter_days(start_date: date, end_date: date) -> Iterator[date]:
    current = start_date
    while current <= end_date:
        yield current
        current += timedelta(days=1)


class AvailabilityProjector:
    """Computes Available/Pending/Booked per hall straight from the store.

    Nothing is cached between calls; every projection reads current records.
    """

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def list_halls(self, active: Optional[bool] = None) -> list[Hall]:
        return self._repository.list_halls(active=active)

    def _resolve_hall_ids(self, hall_ids: Optional[Iterable[int]]) -> list[int]:
        if hall_ids is None:
            return [hall.hall_id for hall in self._repository.list_halls(active=True)]
        requested = normalize_hall_ids(hall_ids)
        known = self._repository.get_halls(requested)
        missing = sorted(requested - set(known))
        if missing:
            raise ReservationNotFoundError("one or more halls were not found", hall_ids=missing)
        return sorted(requested)

    @staticmethod
    def project_day(
        hall_ids: Sequence[int],
        day: date,
        records: Sequence[Reservation],
    ) -> dict[int, HallDayStatus]:
        """Pick the single highest-precedence record per hall covering ``day``."""
        projection: dict[int, HallDayStatus] = {}
        for hall_id in hall_ids:
            covering = [
                record
                for record in records
                if hall_id in record.hall_ids and record.window.covers(day)
            ]
            if not covering:
                projection[hall_id] = HallDayStatus(hall_id=hall_id, status=HallStatus.AVAILABLE)
                continue
            winner = min(
                covering,
                key=lambda record: (
                    _precedence_tier(record),
                    -record.created_at.timestamp(),
                    -record.record_id,
                ),
            )
            projection[hall_id] = HallDayStatus(
                hall_id=hall_id,
                status=_tier_status(_precedence_tier(winner)),
                detail=BookingSummary.from_reservation(winner),
            )
        return projection

    def day_status(
        self,
        hall_ids: Optional[Iterable[int]],
        day: date,
    ) -> dict[int, HallDayStatus]:
        ids = self._resolve_hall_ids(hall_ids)
        records = self._repository.find_reservations(ids, day, day)
        return self.project_day(ids, day, records)

    def range_status(
        self,
        hall_ids: Optional[Iterable[int]],
        start_date: date,
        end_date: date,
    ) -> dict[int, HallStatus]:
        """Fold daily projections across the range with worst-status-wins."""
        if start_date > end_date:
            raise ReservationValidationError(
                "start_date must be on or before end_date",
                start_date=start_date.isoformat(),
                end_date=end_date.isoformat(),
            )
        span_days = (end_date - start_date).days + 1
        if span_days > self._settings.availability_max_range_days:
            raise ReservationValidationError(
                f"date range may span at most {self._settings.availability_max_range_days} days",
                span_days=span_days,
            )

        ids = self._resolve_hall_ids(hall_ids)
        records = self._repository.find_reservations(ids, start_date, end_date)
        merged = {hall_id: HallStatus.AVAILABLE for hall_id in ids}
        for day in _iter_days(start_date, end_date):
            for hall_id, day_status in self.project_day(ids, day, records).items():
                merged[hall_id] = HallStatus.worst(merged[hall_id], day_status.status)
        logger.debug(
            "Range availability projected | halls=%s | span_days=%s",
            len(ids),
            span_days,
        )
        return merged
