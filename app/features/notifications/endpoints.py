from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from app.common.deps import CurrentUser, get_current_user, get_request_now, get_store
from app.common.schemas import StatusResponse
from app.DB.supabase import Store
from .schemas import NotificationList
from .service import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


def get_notification_service(store: Store = Depends(get_store)) -> NotificationService:
    return NotificationService.from_store(store)


@router.get("", response_model=NotificationList)
async def list_notifications(
    limit: int = Query(default=50, ge=1, le=200),
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationList:
    return await service.list_for_user(current_user.id, limit)


@router.put("/read-all", response_model=StatusResponse)
async def mark_all_read(
    current_user: CurrentUser = Depends(get_current_user),
    now: datetime = Depends(get_request_now),
    service: NotificationService = Depends(get_notification_service),
) -> StatusResponse:
    updated = await service.mark_all_read(current_user.id, now)
    return StatusResponse(status="ok", message="All notifications marked as read", data={"updated": updated})


@router.put("/{notification_id}/read", response_model=StatusResponse)
async def mark_read(
    notification_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    now: datetime = Depends(get_request_now),
    service: NotificationService = Depends(get_notification_service),
) -> StatusResponse:
    await service.mark_read(current_user.id, notification_id, now)
    return StatusResponse(status="ok", message="Notification marked as read")


@router.delete("/{notification_id}", response_model=StatusResponse)
async def delete_notification(
    notification_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> StatusResponse:
    await service.delete(current_user.id, notification_id)
    return StatusResponse(status="ok", message="Notification deleted")
