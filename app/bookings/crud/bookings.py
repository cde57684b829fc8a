"""
Booking admission and the booking status machine.

Admission runs its checks and the insert in one transaction that holds the
session row lock (and the in-process session lock), so concurrent requests
for the last slot or for the same player cannot both be admitted. The
partial unique index on (session_id, player_id) backs the duplicate check.
"""
from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import db_operation, TransactionManager
from app.core.dependencies import Actor
from app.core.exceptions import (
    NotFoundError,
    ForbiddenError,
    ConflictError,
    InvalidStateError,
    CapacityExceededError,
)
from app.core.locks import session_lock
from app.core.logging_utils import log_business_event
from app.accounts.models.players import Player
from app.accounts.models.users import Parent
from app.bookings.models.bookings import (
    Booking,
    BookingStatus,
    CAPACITY_HOLDING_STATUSES,
)
from app.bookings.schemas.bookings import BookingCreate
from app.scheduling.crud.sessions import lock_session
from app.scheduling.models.sessions import TrainingSession, SessionStatus
from app.notifications.services.notification_service import (
    notify_booking_created,
    notify_booking_confirmed,
    notify_booking_cancelled,
)

ALREADY_BOOKED = "Player already booked for this session"
CANCELLABLE_STATUSES = (BookingStatus.pending.value, BookingStatus.confirmed.value)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def _load_booking(db: AsyncSession, booking_id: int) -> Booking:
    """Booking with session and player loaded for the response"""
    result = await db.execute(
        select(Booking)
        .options(selectinload(Booking.session), selectinload(Booking.player))
        .where(Booking.id == booking_id)
        .execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if not booking:
        raise NotFoundError("Booking", str(booking_id))
    return booking


async def _get_session_id(db: AsyncSession, booking_id: int) -> int:
    result = await db.execute(
        select(Booking.session_id).where(Booking.id == booking_id)
    )
    session_id = result.scalar_one_or_none()
    if session_id is None:
        raise NotFoundError("Booking", str(booking_id))
    return session_id


async def _lock_booking(db: AsyncSession, booking_id: int) -> Booking:
    result = await db.execute(
        select(Booking)
        .where(Booking.id == booking_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if not booking:
        raise NotFoundError("Booking", str(booking_id))
    return booking


@db_operation
async def create_booking(
    db: AsyncSession, parent_id: int, data: BookingCreate
) -> Booking:
    """
    Admit a booking request. Checks, in order:

    1. session exists (NotFound)
    2. session is scheduled (InvalidState)
    3. player is active and belongs to the parent (Forbidden)
    4. no live booking for this player on the session (Conflict)
    5. pending + confirmed bookings < max_participants (CapacityExceeded)
    """
    async with session_lock(data.session_id):
        try:
            async with TransactionManager(db):
                session = await lock_session(db, data.session_id)

                if session.status != SessionStatus.scheduled:
                    raise InvalidStateError(
                        "Session is not available for booking",
                        {"status": session.status},
                    )

                player_result = await db.execute(
                    select(Player).where(Player.id == data.player_id)
                )
                player = player_result.scalar_one_or_none()
                if not player or player.parent_id != parent_id or not player.is_active:
                    raise ForbiddenError("Player not found or not authorized")

                duplicate = await db.execute(
                    select(Booking.id).where(
                        Booking.session_id == session.id,
                        Booking.player_id == player.id,
                        Booking.status != BookingStatus.cancelled.value,
                    )
                )
                if duplicate.first() is not None:
                    raise ConflictError(
                        ALREADY_BOOKED,
                        {"session_id": session.id, "player_id": player.id},
                    )

                count_result = await db.execute(
                    select(func.count(Booking.id)).where(
                        Booking.session_id == session.id,
                        Booking.status.in_(CAPACITY_HOLDING_STATUSES),
                    )
                )
                held = count_result.scalar() or 0
                if held >= session.max_participants:
                    raise CapacityExceededError("Session", session.max_participants, held)

                booking = Booking(
                    session_id=session.id,
                    player_id=player.id,
                    parent_id=parent_id,
                    status=BookingStatus.pending.value,
                    notes=data.notes,
                )
                db.add(booking)
        except IntegrityError:
            # Another worker inserted the same (session, player) first
            raise ConflictError(
                ALREADY_BOOKED,
                {"session_id": data.session_id, "player_id": data.player_id},
            )

    booking_id = booking.id
    log_business_event(
        "booking_created",
        "booking",
        booking_id,
        {
            "session_id": data.session_id,
            "player_id": data.player_id,
            "parent_id": parent_id,
        },
    )

    await notify_booking_created(db, booking_id)
    return await _load_booking(db, booking_id)


@db_operation
async def confirm_booking(db: AsyncSession, booking_id: int, coach_id: int) -> Booking:
    session_id = await _get_session_id(db, booking_id)

    async with session_lock(session_id):
        async with TransactionManager(db):
            session = await lock_session(db, session_id)
            booking = await _lock_booking(db, booking_id)

            if session.coach_id != coach_id:
                raise ForbiddenError("Not authorized to confirm this booking")

            if booking.status != BookingStatus.pending:
                raise InvalidStateError(
                    "Only pending bookings can be confirmed",
                    {"status": booking.status},
                )

            booking.status = BookingStatus.confirmed.value
            booking.confirmed_at = _utcnow()

    log_business_event(
        "booking_confirmed", "booking", booking_id, {"session_id": session_id}
    )

    await notify_booking_confirmed(db, booking_id)
    return await _load_booking(db, booking_id)


@db_operation
async def cancel_booking(
    db: AsyncSession, booking_id: int, actor: Actor, profile_id: int
) -> Booking:
    """Coach of the session or parent of the booking; pending/confirmed only"""
    session_id = await _get_session_id(db, booking_id)

    async with session_lock(session_id):
        async with TransactionManager(db):
            session = await lock_session(db, session_id)
            booking = await _lock_booking(db, booking_id)

            if actor.is_coach:
                if session.coach_id != profile_id:
                    raise ForbiddenError("Not authorized to cancel this booking")
            elif booking.parent_id != profile_id:
                raise ForbiddenError("Not authorized to cancel this booking")

            if booking.status not in CANCELLABLE_STATUSES:
                raise InvalidStateError(
                    "Only pending or confirmed bookings can be cancelled",
                    {"status": booking.status},
                )

            booking.status = BookingStatus.cancelled.value
            booking.cancelled_at = _utcnow()

    log_business_event(
        "booking_cancelled",
        "booking",
        booking_id,
        {"session_id": session_id, "cancelled_by": actor.role.value},
    )

    await notify_booking_cancelled(db, booking_id, cancelled_by_coach=actor.is_coach)
    return await _load_booking(db, booking_id)


@db_operation
async def mark_no_show(db: AsyncSession, booking_id: int, coach_id: int) -> Booking:
    """
    Coach marks the player absent. Any current status is accepted,
    matching how attendance has always been recorded.
    """
    session_id = await _get_session_id(db, booking_id)

    async with session_lock(session_id):
        try:
            async with TransactionManager(db):
                session = await lock_session(db, session_id)
                booking = await _lock_booking(db, booking_id)

                if session.coach_id != coach_id:
                    raise ForbiddenError("Not authorized to update this booking")

                previous = booking.status
                booking.status = BookingStatus.no_show.value
        except IntegrityError:
            # A cancelled booking revived while the player holds a newer one
            raise ConflictError(
                ALREADY_BOOKED,
                {"booking_id": booking_id, "session_id": session_id},
            )

    log_business_event(
        "booking_no_show",
        "booking",
        booking_id,
        {"session_id": session_id, "previous_status": previous},
    )
    return await _load_booking(db, booking_id)


@db_operation
async def get_booking_for_actor(
    db: AsyncSession, booking_id: int, actor: Actor, profile_id: int
) -> Booking:
    booking = await _load_booking(db, booking_id)

    if actor.is_coach:
        if booking.session.coach_id != profile_id:
            raise ForbiddenError("Not authorized to view this booking")
    elif booking.parent_id != profile_id:
        raise ForbiddenError("Not authorized to view this booking")
    return booking


@db_operation
async def get_bookings_for_coach(
    db: AsyncSession,
    coach_id: int,
    status: Optional[BookingStatus] = None,
    upcoming: bool = False,
    today: Optional[date] = None,
) -> List[Booking]:
    """Bookings across all of the coach's sessions, soonest session first"""
    query = (
        select(Booking)
        .join(TrainingSession, Booking.session_id == TrainingSession.id)
        .options(selectinload(Booking.session), selectinload(Booking.player))
        .where(TrainingSession.coach_id == coach_id)
    )
    if status is not None:
        query = query.where(Booking.status == BookingStatus(status).value)
    if upcoming:
        query = query.where(TrainingSession.date >= (today or date.today()))
        if status is None:
            query = query.where(Booking.status.in_(CAPACITY_HOLDING_STATUSES))

    result = await db.execute(
        query.order_by(TrainingSession.date, TrainingSession.start_time, Booking.id)
    )
    return list(result.scalars().all())


@db_operation
async def get_pending_bookings_for_coach(
    db: AsyncSession, coach_id: int
) -> List[Booking]:
    return await get_bookings_for_coach(db, coach_id, status=BookingStatus.pending)


@db_operation
async def get_bookings_for_parent(
    db: AsyncSession,
    parent_id: int,
    status: Optional[BookingStatus] = None,
    upcoming: bool = False,
    today: Optional[date] = None,
) -> List[Booking]:
    """
    Parent's bookings. `upcoming` keeps sessions dated today or later,
    and only live bookings (pending/confirmed) unless `status` is given.
    """
    query = (
        select(Booking)
        .join(TrainingSession, Booking.session_id == TrainingSession.id)
        .options(selectinload(Booking.session), selectinload(Booking.player))
        .where(Booking.parent_id == parent_id)
    )

    if status is not None:
        query = query.where(Booking.status == BookingStatus(status).value)

    if upcoming:
        query = query.where(TrainingSession.date >= (today or date.today()))
        if status is None:
            query = query.where(Booking.status.in_(CAPACITY_HOLDING_STATUSES))
        query = query.order_by(TrainingSession.date, TrainingSession.start_time)
    else:
        query = query.order_by(TrainingSession.date.desc(), TrainingSession.start_time.desc())

    result = await db.execute(query)
    return list(result.scalars().all())


@db_operation
async def get_bookings_for_session(
    db: AsyncSession, session_id: int, coach_id: int
) -> List[Booking]:
    session_result = await db.execute(
        select(TrainingSession.coach_id).where(TrainingSession.id == session_id)
    )
    owner_id = session_result.scalar_one_or_none()
    if owner_id is None:
        raise NotFoundError("Session", str(session_id))
    if owner_id != coach_id:
        raise ForbiddenError("Not authorized to view this session's bookings")

    result = await db.execute(
        select(Booking)
        .options(
            selectinload(Booking.session),
            selectinload(Booking.player),
            selectinload(Booking.parent).selectinload(Parent.user),
        )
        .where(Booking.session_id == session_id)
        .order_by(Booking.requested_at, Booking.id)
    )
    return list(result.scalars().all())
