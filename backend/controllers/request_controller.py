"""HTTP controller layer for faculty/club booking requests and admin decisions."""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from backend.controllers.dependencies import get_lifecycle_service, to_http_exception
from backend.domain.errors import ReservationError
from backend.domain.models import RequestStatus, ReservationRequest, Role, TimeWindow
from backend.services.lifecycle_service import ReservationLifecycleService
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["requests"])


class CreateRequestPayload(BaseModel):
    """Input DTO; window and capacity rules are enforced by the service layer."""

    requester_id: str = Field(min_length=1)
    role: Role
    hall_ids: list[int]
    start_date: date
    end_date: date
    start_time: time
    end_time: time
    purpose: str
    attendee_count: int
    event_name: Optional[str] = None
    contact_email: Optional[str] = None


class ApprovePayload(BaseModel):
    admin_notes: Optional[str] = None


class RejectPayload(BaseModel):
    reason: Optional[str] = None


class RequestResponse(BaseModel):
    id: int = Field(gt=0)
    requester_id: str
    requester_role: Role
    hall_ids: list[int]
    start_date: date
    end_date: date
    start_time: time
    end_time: time
    status: RequestStatus
    purpose: str
    attendee_count: int = Field(gt=0)
    event_name: Optional[str] = None
    contact_email: Optional[str] = None
    rejection_reason: Optional[str] = None
    admin_notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class DeleteResponse(BaseModel):
    success: bool = True
    message: str


def to_request_response(request: ReservationRequest) -> RequestResponse:
    return RequestResponse(
        id=request.request_id,
        requester_id=request.requester_id,
        requester_role=request.requester_role,
        hall_ids=sorted(request.hall_ids),
        start_date=request.window.start_date,
        end_date=request.window.end_date,
        start_time=request.window.start_time,
        end_time=request.window.end_time,
        status=request.status,
        purpose=request.purpose,
        attendee_count=request.attendee_count,
        event_name=request.event_name,
        contact_email=request.contact_email,
        rejection_reason=request.rejection_reason,
        admin_notes=request.admin_notes,
        created_at=request.created_at,
        updated_at=request.updated_at,
    )


@router.post(
    "/requests",
    response_model=RequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_request(
    payload: CreateRequestPayload,
    service: ReservationLifecycleService = Depends(get_lifecycle_service),
) -> RequestResponse:
    """Submit a pending request after the role-aware conflict check."""
    try:
        request = service.create_request(
            requester_id=payload.requester_id,
            role=payload.role,
            hall_ids=payload.hall_ids,
            window=TimeWindow(
                start_date=payload.start_date,
                end_date=payload.end_date,
                start_time=payload.start_time,
                end_time=payload.end_time,
            ),
            purpose=payload.purpose,
            attendee_count=payload.attendee_count,
            event_name=payload.event_name,
            contact_email=payload.contact_email,
        )
        return to_request_response(request)
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected request creation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create booking request",
        ) from exc


@router.get("/requests", response_model=list[RequestResponse], status_code=status.HTTP_200_OK)
async def list_requests(
    requester_id: Optional[str] = Query(default=None),
    request_status: Optional[RequestStatus] = Query(default=None, alias="status"),
    hall_id: Optional[int] = Query(default=None, gt=0),
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    service: ReservationLifecycleService = Depends(get_lifecycle_service),
) -> list[RequestResponse]:
    try:
        requests = service.list_requests(
            requester_id=requester_id,
            status=request_status,
            hall_id=hall_id,
            start_date=start_date,
            end_date=end_date,
        )
        return [to_request_response(item) for item in requests]
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected request listing failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch booking requests",
        ) from exc


@router.get(
    "/requests/{request_id}",
    response_model=RequestResponse,
    status_code=status.HTTP_200_OK,
)
async def get_request(
    request_id: int,
    service: ReservationLifecycleService = Depends(get_lifecycle_service),
) -> RequestResponse:
    try:
        return to_request_response(service.get_request(request_id))
    except ReservationError as exc:
        raise to_http_exception(exc) from exc


@router.patch(
    "/requests/{request_id}/approve",
    response_model=RequestResponse,
    status_code=status.HTTP_200_OK,
)
async def approve_request(
    request_id: int,
    payload: ApprovePayload | None = None,
    service: ReservationLifecycleService = Depends(get_lifecycle_service),
) -> RequestResponse:
    """Approve a pending request after re-checking authoritative conflicts."""
    try:
        request = service.approve_request(
            request_id,
            admin_notes=payload.admin_notes if payload is not None else None,
        )
        return to_request_response(request)
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected approval failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to approve request",
        ) from exc


@router.patch(
    "/requests/{request_id}/reject",
    response_model=RequestResponse,
    status_code=status.HTTP_200_OK,
)
async def reject_request(
    request_id: int,
    payload: RejectPayload,
    service: ReservationLifecycleService = Depends(get_lifecycle_service),
) -> RequestResponse:
    try:
        request = service.reject_request(request_id, payload.reason)
        return to_request_response(request)
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected rejection failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to reject request",
        ) from exc


@router.delete(
    "/requests/{request_id}",
    response_model=DeleteResponse,
    status_code=status.HTTP_200_OK,
)
async def delete_request(
    request_id: int,
    requester_id: str = Query(min_length=1),
    service: ReservationLifecycleService = Depends(get_lifecycle_service),
) -> DeleteResponse:
    """Owner-only removal of a request that is still pending."""
    try:
        service.delete_request(request_id, requester_id)
        return DeleteResponse(message="Booking request deleted successfully")
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected request deletion failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete booking request",
        ) from exc
