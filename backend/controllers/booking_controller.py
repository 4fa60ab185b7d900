"""HTTP controller layer for admin direct bookings and blackouts."""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from backend.controllers.dependencies import get_lifecycle_service, to_http_exception
from backend.domain.errors import ReservationError
from backend.domain.models import (
    DirectBooking,
    RecordRef,
    RequestStatus,
    ReservationKind,
    Role,
    TimeWindow,
)
from backend.services.lifecycle_service import ReservationLifecycleService
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["direct_bookings"])


class CreateDirectBookingPayload(BaseModel):
    booked_by: str = Field(min_length=1)
    role: Role
    hall_ids: list[int]
    start_date: date
    end_date: date
    start_time: time
    end_time: time
    purpose: Optional[str] = None
    is_blackout: bool = False
    event_name: Optional[str] = None
    attendee_count: int = 0


class DirectBookingResponse(BaseModel):
    id: int = Field(gt=0)
    booked_by: str
    hall_ids: list[int]
    start_date: date
    end_date: date
    start_time: time
    end_time: time
    purpose: str
    is_blackout: bool
    event_name: Optional[str] = None
    attendee_count: int = Field(ge=0)
    created_at: datetime


class RecordRefResponse(BaseModel):
    kind: ReservationKind
    record_id: int
    hall_ids: list[int]
    status: RequestStatus


class CreateDirectBookingResponse(BaseModel):
    booking: DirectBookingResponse
    overridden: list[RecordRefResponse]


class DeleteDirectBookingResponse(BaseModel):
    success: bool = True
    message: str


def to_booking_response(booking: DirectBooking) -> DirectBookingResponse:
    return DirectBookingResponse(
        id=booking.booking_id,
        booked_by=booking.booked_by,
        hall_ids=sorted(booking.hall_ids),
        start_date=booking.window.start_date,
        end_date=booking.window.end_date,
        start_time=booking.window.start_time,
        end_time=booking.window.end_time,
        purpose=booking.purpose,
        is_blackout=booking.is_blackout,
        event_name=booking.event_name,
        attendee_count=booking.attendee_count,
        created_at=booking.created_at,
    )


def _to_ref_response(ref: RecordRef) -> RecordRefResponse:
    return RecordRefResponse(
        kind=ref.kind,
        record_id=ref.record_id,
        hall_ids=sorted(ref.hall_ids),
        status=ref.status,
    )


@router.post(
    "/direct_bookings",
    response_model=CreateDirectBookingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_direct_booking(
    payload: CreateDirectBookingPayload,
    service: ReservationLifecycleService = Depends(get_lifecycle_service),
) -> CreateDirectBookingResponse:
    """Create an admin booking; it is never blocked by existing records."""
    try:
        result = service.create_direct_booking(
            booked_by=payload.booked_by,
            role=payload.role,
            hall_ids=payload.hall_ids,
            window=TimeWindow(
                start_date=payload.start_date,
                end_date=payload.end_date,
                start_time=payload.start_time,
                end_time=payload.end_time,
            ),
            purpose=payload.purpose,
            is_blackout=payload.is_blackout,
            event_name=payload.event_name,
            attendee_count=payload.attendee_count,
        )
        return CreateDirectBookingResponse(
            booking=to_booking_response(result.booking),
            overridden=[_to_ref_response(ref) for ref in result.overridden],
        )
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected direct booking failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create direct booking",
        ) from exc


@router.get(
    "/direct_bookings",
    response_model=list[DirectBookingResponse],
    status_code=status.HTTP_200_OK,
)
async def list_direct_bookings(
    hall_id: Optional[int] = Query(default=None, gt=0),
    service: ReservationLifecycleService = Depends(get_lifecycle_service),
) -> list[DirectBookingResponse]:
    return [to_booking_response(item) for item in service.list_direct_bookings(hall_id=hall_id)]


@router.delete(
    "/direct_bookings/{booking_id}",
    response_model=DeleteDirectBookingResponse,
    status_code=status.HTTP_200_OK,
)
async def delete_direct_booking(
    booking_id: int,
    role: Role = Query(),
    service: ReservationLifecycleService = Depends(get_lifecycle_service),
) -> DeleteDirectBookingResponse:
    try:
        service.delete_direct_booking(booking_id, role)
        return DeleteDirectBookingResponse(message="Direct booking deleted successfully")
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected direct booking deletion failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete direct booking",
        ) from exc
