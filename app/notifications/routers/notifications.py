from fastapi import APIRouter, Depends, Query, Request, Path
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.limits import limiter
from app.core.dependencies import Actor, get_current_actor
from app.core.schemas import MessageResponse
from app.notifications.crud.notifications import (
    get_my_notifications,
    get_unread_count,
    mark_notification_as_read,
    mark_all_as_read,
)
from app.notifications.schemas.notifications import (
    NotificationListResponse,
    NotificationResponse,
)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationListResponse)
@limiter.limit("60/minute")
async def list_notifications(
    request: Request,
    unread_only: bool = Query(False, alias="unreadOnly"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
):
    items = await get_my_notifications(db, actor.user_id, unread_only, skip, limit)
    unread = await get_unread_count(db, actor.user_id)
    return NotificationListResponse(
        items=[NotificationResponse.model_validate(n) for n in items],
        unread_count=unread,
    )


@router.post("/read-all", response_model=MessageResponse)
@limiter.limit("30/minute")
async def read_all_notifications(
    request: Request,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
):
    updated = await mark_all_as_read(db, actor.user_id)
    return MessageResponse(message=f"{updated} notification(s) marked as read")


@router.post("/{notification_id}/read", response_model=NotificationResponse)
@limiter.limit("60/minute")
async def read_notification(
    request: Request,
    notification_id: int = Path(..., gt=0),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
):
    return await mark_notification_as_read(db, notification_id, actor.user_id)
