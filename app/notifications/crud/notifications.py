from typing import List, Optional

from sqlalchemy import update, desc, func
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import db_operation
from app.core.exceptions import NotFoundError
from app.notifications.models.notifications import Notification
from app.notifications.schemas.notifications import NotificationCreate


@db_operation
async def create_notifications(
    db: AsyncSession, notifications: List[NotificationCreate]
) -> List[Notification]:
    rows = [
        Notification(
            recipient_id=n.recipient_id,
            type=n.type,
            title=n.title,
            message=n.message,
            metadata_json=n.metadata_json or {},
        )
        for n in notifications
    ]
    db.add_all(rows)
    await db.commit()
    return rows


@db_operation
async def get_my_notifications(
    db: AsyncSession,
    user_id: int,
    unread_only: bool = False,
    skip: int = 0,
    limit: int = 20,
) -> List[Notification]:
    query = select(Notification).where(Notification.recipient_id == user_id)
    if unread_only:
        query = query.where(Notification.is_read.is_(False))

    result = await db.execute(
        query.order_by(desc(Notification.created_at), desc(Notification.id))
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all())


@db_operation
async def get_unread_count(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        select(func.count(Notification.id)).where(
            Notification.recipient_id == user_id,
            Notification.is_read.is_(False),
        )
    )
    return result.scalar() or 0


@db_operation
async def mark_notification_as_read(
    db: AsyncSession, notification_id: int, user_id: int
) -> Notification:
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.recipient_id == user_id,
        )
    )
    notification: Optional[Notification] = result.scalar_one_or_none()
    if not notification:
        raise NotFoundError("Notification", str(notification_id))

    notification.is_read = True
    await db.commit()
    await db.refresh(notification)
    return notification


@db_operation
async def mark_all_as_read(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        update(Notification)
        .where(Notification.recipient_id == user_id)
        .where(Notification.is_read.is_(False))
        .values(is_read=True)
    )
    await db.commit()
    return result.rowcount or 0
