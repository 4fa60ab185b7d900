"""HTTP controller layer for the in-app notification inbox."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from backend.controllers.dependencies import get_notification_service, to_http_exception
from backend.domain.errors import ReservationError
from backend.domain.models import Notification
from backend.services.notification_service import NotificationService


router = APIRouter(tags=["notifications"])


class NotificationResponse(BaseModel):
    id: int = Field(gt=0)
    user_id: str
    title: str
    message: str
    type: str
    is_read: bool
    related_request_id: Optional[int] = None
    created_at: datetime


class MarkReadPayload(BaseModel):
    user_id: str = Field(min_length=1)
    notification_ids: list[int]


class MarkReadResponse(BaseModel):
    success: bool = True
    updated: int = Field(ge=0)


def _to_notification_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=notification.notification_id,
        user_id=notification.user_id,
        title=notification.title,
        message=notification.message,
        type=notification.notification_type,
        is_read=notification.is_read,
        related_request_id=notification.related_request_id,
        created_at=notification.created_at,
    )


@router.get(
    "/notifications",
    response_model=list[NotificationResponse],
    status_code=status.HTTP_200_OK,
)
async def list_notifications(
    user_id: str = Query(min_length=1),
    is_read: Optional[bool] = Query(default=None),
    limit: Optional[int] = Query(default=None),
    service: NotificationService = Depends(get_notification_service),
) -> list[NotificationResponse]:
    try:
        items = service.list_notifications(user_id, is_read=is_read, limit=limit)
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    return [_to_notification_response(item) for item in items]


@router.patch(
    "/notifications/read",
    response_model=MarkReadResponse,
    status_code=status.HTTP_200_OK,
)
async def mark_notifications_read(
    payload: MarkReadPayload,
    service: NotificationService = Depends(get_notification_service),
) -> MarkReadResponse:
    try:
        updated = service.mark_read(payload.user_id, payload.notification_ids)
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    return MarkReadResponse(updated=updated)
