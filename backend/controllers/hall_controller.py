"""HTTP controller layer for the hall catalog and availability projection."""

from __future__ import annotations

from datetime import date, time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from backend.controllers.dependencies import get_availability_projector, to_http_exception
from backend.domain.errors import ReservationError
from backend.domain.models import BookingSummary, Hall, HallStatus, ReservationKind, Role
from backend.services.availability_service import AvailabilityProjector
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["halls"])


class HallResponse(BaseModel):
    id: int = Field(gt=0)
    name: str
    capacity: int = Field(gt=0)
    is_active: bool
    location: Optional[str] = None
    description: Optional[str] = None


class BookingSummaryResponse(BaseModel):
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


class HallAvailabilityRow(BaseModel):
    hall_id: int
    status: HallStatus
    booking: Optional[BookingSummaryResponse] = None


class AvailabilityResponse(BaseModel):
    start_date: date
    end_date: date
    halls: list[HallAvailabilityRow]


def _to_hall_response(hall: Hall) -> HallResponse:
    return HallResponse(
        id=hall.hall_id,
        name=hall.name,
        capacity=hall.capacity,
        is_active=hall.is_active,
        location=hall.location,
        description=hall.description,
    )


def _to_summary_response(summary: BookingSummary) -> BookingSummaryResponse:
    return BookingSummaryResponse(
        kind=summary.kind,
        record_id=summary.record_id,
        event_name=summary.event_name,
        purpose=summary.purpose,
        requester_id=summary.requester_id,
        requester_role=summary.requester_role,
        start_date=summary.start_date,
        end_date=summary.end_date,
        start_time=summary.start_time,
        end_time=summary.end_time,
        attendee_count=summary.attendee_count,
        is_blackout=summary.is_blackout,
    )


@router.get("/halls", response_model=list[HallResponse], status_code=status.HTTP_200_OK)
async def list_halls(
    active: Optional[bool] = Query(default=None),
    projector: AvailabilityProjector = Depends(get_availability_projector),
) -> list[HallResponse]:
    return [_to_hall_response(hall) for hall in projector.list_halls(active=active)]


@router.get(
    "/halls/availability",
    response_model=AvailabilityResponse,
    status_code=status.HTTP_200_OK,
)
async def get_availability(
    day: Optional[date] = Query(default=None, alias="date"),
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    hall_ids: Optional[list[int]] = Query(default=None),
    projector: AvailabilityProjector = Depends(get_availability_projector),
) -> AvailabilityResponse:
    """Single-day status with booking detail, or a worst-wins range status."""
    if day is None and (start_date is None or end_date is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "kind": "validation_error",
                "message": "provide either date or both start_date and end_date",
                "context": {},
            },
        )

    try:
        if day is not None:
            projection = projector.day_status(hall_ids, day)
            rows = [
                HallAvailabilityRow(
                    hall_id=hall_id,
                    status=item.status,
                    booking=_to_summary_response(item.detail) if item.detail else None,
                )
                for hall_id, item in projection.items()
            ]
            return AvailabilityResponse(start_date=day, end_date=day, halls=rows)

        merged = projector.range_status(hall_ids, start_date, end_date)
        return AvailabilityResponse(
            start_date=start_date,
            end_date=end_date,
            halls=[
                HallAvailabilityRow(hall_id=hall_id, status=hall_status)
                for hall_id, hall_status in merged.items()
            ],
        )
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected availability failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute hall availability",
        ) from exc
