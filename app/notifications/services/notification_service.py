"""
Notification Service - booking and session notices for parents and coaches.

Every notice is an in-app row plus a best-effort e-mail. Callers invoke these
after their own change is committed; nothing here raises.
"""
import asyncio
import logging
from typing import Iterable, List, Optional, Set

from sqlalchemy.future import select
from sqlalchemy.orm import joinedload
from sqlalchemy.ext.asyncio import AsyncSession

from app.accounts.models.users import User, Coach, Parent
from app.bookings.models.bookings import Booking
from app.scheduling.models.sessions import TrainingSession
from app.notifications.crud.notifications import create_notifications
from app.notifications.models.notifications import NotificationType
from app.notifications.schemas.notifications import NotificationCreate
from app.notifications.services.email_sender import send_email

logger = logging.getLogger(__name__)

# Strong references so pending e-mail tasks are not garbage collected
_background_tasks: Set[asyncio.Task] = set()


def _fire_and_forget(coro):
    task = asyncio.create_task(coro)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)


def _describe_session(session: TrainingSession) -> str:
    where = f" at {session.location}" if session.location else ""
    return f"{session.date.isoformat()} {session.start_time}-{session.end_time}{where}"


async def _load_bookings(db: AsyncSession, booking_ids: Iterable[int]) -> List[Booking]:
    ids = list(booking_ids)
    if not ids:
        return []
    result = await db.execute(
        select(Booking)
        .options(
            joinedload(Booking.session)
            .joinedload(TrainingSession.coach)
            .joinedload(Coach.user),
            joinedload(Booking.player),
            joinedload(Booking.parent).joinedload(Parent.user),
        )
        .where(Booking.id.in_(ids))
        .order_by(Booking.id)
        .execution_options(populate_existing=True)
    )
    return list(result.unique().scalars().all())


async def _deliver(
    db: AsyncSession,
    notices: List[tuple],
):
    """
    notices: (User, NotificationType, title, message, metadata) tuples
    """
    if not notices:
        return

    await create_notifications(
        db,
        [
            NotificationCreate(
                recipient_id=user.id,
                type=ntype.value,
                title=title,
                message=message,
                metadata_json=metadata,
            )
            for user, ntype, title, message, metadata in notices
        ],
    )

    for user, _, title, message, _ in notices:
        if user.email:
            _fire_and_forget(send_email(user.email, title, f"<p>{message}</p>"))

    logger.info(f"Delivered {len(notices)} notification(s)")


async def _safely(db: AsyncSession, description: str, coro):
    try:
        await coro
    except Exception as e:
        logger.error(f"Failed to send {description} notification: {e}", exc_info=True)
        await db.rollback()


def _booking_metadata(booking: Booking) -> dict:
    return {
        "booking_id": booking.id,
        "session_id": booking.session_id,
        "player_id": booking.player_id,
    }


async def notify_booking_created(db: AsyncSession, booking_id: int) -> None:
    async def _run():
        bookings = await _load_bookings(db, [booking_id])
        if not bookings:
            logger.warning(f"Booking {booking_id} not found, skipping notification")
            return
        booking = bookings[0]
        when = _describe_session(booking.session)
        player = booking.player.full_name

        await _deliver(
            db,
            [
                (
                    booking.parent.user,
                    NotificationType.booking_pending,
                    "Booking request received",
                    f"Your booking for {player} on {when} is pending coach confirmation.",
                    _booking_metadata(booking),
                ),
                (
                    booking.session.coach.user,
                    NotificationType.booking_requested,
                    "New booking request",
                    f"{booking.parent.user.full_name} requested {when} for {player}.",
                    _booking_metadata(booking),
                ),
            ],
        )

    await _safely(db, "booking created", _run())


async def notify_booking_confirmed(db: AsyncSession, booking_id: int) -> None:
    async def _run():
        bookings = await _load_bookings(db, [booking_id])
        if not bookings:
            return
        booking = bookings[0]

        await _deliver(
            db,
            [
                (
                    booking.parent.user,
                    NotificationType.booking_confirmed,
                    "Booking confirmed",
                    f"The session on {_describe_session(booking.session)} for "
                    f"{booking.player.full_name} is confirmed.",
                    _booking_metadata(booking),
                )
            ],
        )

    await _safely(db, "booking confirmed", _run())


async def notify_booking_cancelled(
    db: AsyncSession, booking_id: int, cancelled_by_coach: bool
) -> None:
    """Coach cancellations notify the parent, parent cancellations the coach"""

    async def _run():
        bookings = await _load_bookings(db, [booking_id])
        if not bookings:
            return
        booking = bookings[0]
        when = _describe_session(booking.session)

        if cancelled_by_coach:
            recipient: Optional[User] = booking.parent.user
            message = f"The booking for {booking.player.full_name} on {when} was cancelled by the coach."
        else:
            recipient = booking.session.coach.user
            message = f"{booking.parent.user.full_name} cancelled the booking for {booking.player.full_name} on {when}."

        await _deliver(
            db,
            [
                (
                    recipient,
                    NotificationType.booking_cancelled,
                    "Booking cancelled",
                    message,
                    _booking_metadata(booking),
                )
            ],
        )

    await _safely(db, "booking cancelled", _run())


async def notify_session_cancelled(
    db: AsyncSession, booking_ids: Iterable[int]
) -> None:
    """One notice per booking that the session cancellation cascaded to"""

    async def _run():
        bookings = await _load_bookings(db, booking_ids)
        await _deliver(
            db,
            [
                (
                    booking.parent.user,
                    NotificationType.session_cancelled,
                    "Session cancelled",
                    f"The session on {_describe_session(booking.session)} was cancelled. "
                    f"The booking for {booking.player.full_name} has been cancelled.",
                    _booking_metadata(booking),
                )
                for booking in bookings
            ],
        )

    await _safely(db, "session cancelled", _run())
