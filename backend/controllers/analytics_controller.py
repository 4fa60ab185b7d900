"""HTTP controller layer for hall usage analytics."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from backend.controllers.dependencies import get_analytics_service, to_http_exception
from backend.domain.errors import ReservationError
from backend.services.analytics_service import UsageAnalyticsService
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["analytics"])


class HallUsageResponse(BaseModel):
    hall_id: int
    name: str
    capacity: int
    pending_requests: int = Field(ge=0)
    approved_requests: int = Field(ge=0)
    rejected_requests: int = Field(ge=0)
    faculty_requests: int = Field(ge=0)
    club_requests: int = Field(ge=0)
    approved_attendees: int = Field(ge=0)
    direct_bookings: int = Field(ge=0)
    blackout_bookings: int = Field(ge=0)
    booked_days: int = Field(ge=0)
    approved_by_month: dict[str, int] = Field(default_factory=dict)


class RequesterSummaryResponse(BaseModel):
    requester_id: str
    total_requests: int = Field(ge=0)
    pending_requests: int = Field(ge=0)
    approved_requests: int = Field(ge=0)
    rejected_requests: int = Field(ge=0)
    upcoming_events: int = Field(ge=0)


class OverviewResponse(BaseModel):
    pending_requests: int
    approved_events_today: int
    requests_submitted_today: int
    direct_bookings_today: int
    total_halls: int
    active_halls: int


@router.get(
    "/analytics/halls",
    response_model=list[HallUsageResponse],
    status_code=status.HTTP_200_OK,
)
async def hall_usage(
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    service: UsageAnalyticsService = Depends(get_analytics_service),
) -> list[HallUsageResponse]:
    try:
        rows = service.hall_usage(start_date=start_date, end_date=end_date)
        return [HallUsageResponse(**row) for row in rows]
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected analytics failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to summarize hall usage",
        ) from exc


@router.get(
    "/analytics/overview",
    response_model=OverviewResponse,
    status_code=status.HTTP_200_OK,
)
async def overview(
    today: Optional[date] = Query(default=None),
    service: UsageAnalyticsService = Depends(get_analytics_service),
) -> OverviewResponse:
    return OverviewResponse(**service.overview(today or date.today()))


@router.get(
    "/analytics/requesters/{requester_id}",
    response_model=RequesterSummaryResponse,
    status_code=status.HTTP_200_OK,
)
async def requester_summary(
    requester_id: str,
    today: Optional[date] = Query(default=None),
    service: UsageAnalyticsService = Depends(get_analytics_service),
) -> RequesterSummaryResponse:
    try:
        return RequesterSummaryResponse(**service.requester_summary(requester_id, today or date.today()))
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
