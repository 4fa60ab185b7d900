"""Hall usage analytics built on pandas frames of requests and direct bookings."""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

import pandas as pd

from backend.domain.errors import ReservationValidationError
from backend.domain.constraints import require_text
from backend.domain.models import DirectBooking, RequestStatus, ReservationRequest, Role
from backend.repository.data_repository import DataRepository
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


_USAGE_COLUMNS = [
    "pending_requests",
    "approved_requests",
    "rejected_requests",
    "faculty_requests",
    "club_requests",
    "approved_attendees",
    "direct_bookings",
    "blackout_bookings",
    "booked_days",
]


class UsageAnalyticsService:
    """Summarizes how halls are being requested and booked."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    @staticmethod
    def _request_frame(requests: list[ReservationRequest]) -> pd.DataFrame:
        frame = pd.DataFrame(
            [
                {
                    "request_id": request.request_id,
                    "hall_id": hall_id,
                    "requester_role": request.requester_role.value,
                    "status": request.status.value,
                    "attendee_count": request.attendee_count,
                    "start_date": request.window.start_date,
                    "end_date": request.window.end_date,
                    "created_on": request.created_at.date(),
                }
                for request in requests
                for hall_id in sorted(request.hall_ids)
            ],
            columns=[
                "request_id",
                "hall_id",
                "requester_role",
                "status",
                "attendee_count",
                "start_date",
                "end_date",
                "created_on",
            ],
        )
        return frame

    @staticmethod
    def _direct_frame(bookings: list[DirectBooking]) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "booking_id": booking.booking_id,
                    "hall_id": hall_id,
                    "is_blackout": booking.is_blackout,
                    "start_date": booking.window.start_date,
                    "end_date": booking.window.end_date,
                }
                for booking in bookings
                for hall_id in sorted(booking.hall_ids)
            ],
            columns=["booking_id", "hall_id", "is_blackout", "start_date", "end_date"],
        )

    @staticmethod
    def _booked_day_frame(
        requests: list[ReservationRequest],
        bookings: list[DirectBooking],
        start_date: Optional[date],
        end_date: Optional[date],
    ) -> pd.DataFrame:
        rows: list[dict[str, Any]] = []
        authoritative = [
            request for request in requests if request.status is RequestStatus.APPROVED
        ]
        for record in [*authoritative, *bookings]:
            for day in record.window.days():
                if start_date is not None and day < start_date:
                    continue
                if end_date is not None and day > end_date:
                    break
                rows.extend({"hall_id": hall_id, "day": day} for hall_id in record.hall_ids)
        return pd.DataFrame(rows, columns=["hall_id", "day"]).drop_duplicates()

    def hall_usage(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[dict[str, Any]]:
        """Per-hall request counts by status and requester role, direct bookings and booked days.

        Requests are counted when their window lies inside the range; direct
        bookings and booked days when they intersect it. ``approved_attendees``
        sums the expected attendance of approved requests, and
        ``approved_by_month`` keys approved requests by their start month.
        """
        if start_date is not None and end_date is not None and start_date > end_date:
            raise ReservationValidationError(
                "start_date must be on or before end_date",
                start_date=start_date.isoformat(),
                end_date=end_date.isoformat(),
            )

        halls = self._repository.list_halls()
        requests = self._repository.list_requests(start_date=start_date, end_date=end_date)
        bookings = [
            booking
            for booking in self._repository.list_direct_bookings()
            if (start_date is None or booking.window.end_date >= start_date)
            and (end_date is None or booking.window.start_date <= end_date)
        ]

        summary = pd.DataFrame(
            {
                "hall_id": [hall.hall_id for hall in halls],
                "name": [hall.name for hall in halls],
                "capacity": [hall.capacity for hall in halls],
            }
        ).set_index("hall_id")

        request_frame = self._request_frame(requests)
        status_counts = (
            request_frame.groupby(["hall_id", "status"]).size().unstack(fill_value=0)
            if not request_frame.empty
            else pd.DataFrame()
        )
        for status in RequestStatus:
            column = f"{status.value}_requests"
            if status.value in status_counts.columns:
                summary[column] = status_counts[status.value]
            else:
                summary[column] = 0

        for role in (Role.FACULTY, Role.CLUB):
            by_role = request_frame[request_frame["requester_role"] == role.value]
            summary[f"{role.value}_requests"] = by_role.groupby("hall_id")["request_id"].nunique()

        approved_frame = request_frame[request_frame["status"] == RequestStatus.APPROVED.value]
        summary["approved_attendees"] = approved_frame.groupby("hall_id")["attendee_count"].sum()
        approved_by_month: dict[int, dict[str, int]] = {}
        if not approved_frame.empty:
            months = approved_frame.assign(
                month=approved_frame["start_date"].map(lambda day: day.strftime("%Y-%m"))
            )
            for (hall_id, month), count in months.groupby(["hall_id", "month"]).size().items():
                approved_by_month.setdefault(int(hall_id), {})[str(month)] = int(count)

        direct_frame = self._direct_frame(bookings)
        if not direct_frame.empty:
            summary["direct_bookings"] = direct_frame.groupby("hall_id")["booking_id"].nunique()
            summary["blackout_bookings"] = (
                direct_frame[direct_frame["is_blackout"]].groupby("hall_id")["booking_id"].nunique()
            )
        else:
            summary["direct_bookings"] = 0
            summary["blackout_bookings"] = 0

        booked_days = self._booked_day_frame(requests, bookings, start_date, end_date)
        if not booked_days.empty:
            summary["booked_days"] = booked_days.groupby("hall_id")["day"].nunique()
        else:
            summary["booked_days"] = 0

        summary[_USAGE_COLUMNS] = summary[_USAGE_COLUMNS].fillna(0).astype(int)
        summary = summary.reset_index().sort_values(by=["name", "hall_id"])
        logger.info("Hall usage summarized | halls=%s | requests=%s", len(halls), len(requests))
        return [
            {
                "hall_id": int(row["hall_id"]),
                "name": str(row["name"]),
                "capacity": int(row["capacity"]),
                **{column: int(row[column]) for column in _USAGE_COLUMNS},
                "approved_by_month": approved_by_month.get(int(row["hall_id"]), {}),
            }
            for row in summary.to_dict(orient="records")
        ]

    def requester_summary(self, requester_id: str, today: date) -> dict[str, Any]:
        """Request counts for one requester and their approved events starting on or after ``today``."""
        requester = require_text(requester_id, "requester_id")
        requests = self._repository.list_requests(requester_id=requester)
        frame = self._request_frame(requests).drop_duplicates(subset=["request_id"])
        counts = frame["status"].value_counts()
        approved = frame[frame["status"] == RequestStatus.APPROVED.value]

        summary = {
            "requester_id": requester,
            "total_requests": len(frame),
            **{
                f"{status.value}_requests": int(counts.get(status.value, 0))
                for status in RequestStatus
            },
            "upcoming_events": int((approved["start_date"] >= today).sum()) if not approved.empty else 0,
        }
        logger.info(
            "Requester summarized | requester_id=%s | total=%s",
            requester,
            summary["total_requests"],
        )
        return summary

    def overview(self, today: date) -> dict[str, int]:
        """Headline counters for the admin dashboard on ``today``."""
        halls = self._repository.list_halls()
        requests = self._repository.list_requests()
        bookings = self._repository.list_direct_bookings()

        frame = self._request_frame(requests).drop_duplicates(subset=["request_id"])
        if frame.empty:
            pending = approved_today = submitted_today = 0
        else:
            pending = int((frame["status"] == RequestStatus.PENDING.value).sum())
            approved_today = int(
                (
                    (frame["status"] == RequestStatus.APPROVED.value)
                    & (frame["start_date"] <= today)
                    & (frame["end_date"] >= today)
                ).sum()
            )
            submitted_today = int((frame["created_on"] == today).sum())

        return {
            "pending_requests": pending,
            "approved_events_today": approved_today,
            "requests_submitted_today": submitted_today,
            "direct_bookings_today": sum(1 for booking in bookings if booking.window.covers(today)),
            "total_halls": len(halls),
            "active_halls": sum(1 for hall in halls if hall.is_active),
        }
