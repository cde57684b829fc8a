"""
Session lifecycle: direct creation, updates, queries and status transitions.

Status changes cascade to bookings inside the same transaction, under the
session's row lock and in-process lock.
"""
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Set, Tuple

from sqlalchemy import and_, or_, func
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
    ValidationError,
    InvalidTransitionError,
)
from app.core.locks import session_lock
from app.core.logging_utils import log_business_event
from app.bookings.models.bookings import Booking, BookingStatus
from app.scheduling.models.sessions import TrainingSession, SessionStatus
from app.scheduling.schemas.sessions import SessionCreate, SessionUpdate

SESSION_TRANSITIONS: Dict[SessionStatus, Set[SessionStatus]] = {
    SessionStatus.scheduled: {SessionStatus.in_progress, SessionStatus.cancelled},
    SessionStatus.in_progress: {SessionStatus.completed, SessionStatus.cancelled},
    SessionStatus.completed: set(),
    SessionStatus.cancelled: set(),
}

# Bookings a session cancellation leaves untouched
_CANCEL_CASCADE_SKIP = (BookingStatus.cancelled.value, BookingStatus.completed.value)

# Unique key on (coach_id, date, start_time); sqlite reports the columns
_SLOT_KEY_MARKERS = ("uq_session_coach_date_start", "training_sessions.coach_id")


def _is_slot_conflict(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return any(marker in message for marker in _SLOT_KEY_MARKERS)


def can_transition(current: str, requested: SessionStatus) -> bool:
    return SessionStatus(requested) in SESSION_TRANSITIONS[SessionStatus(current)]


def booked_count_column():
    """Non-cancelled bookings of the enclosing TrainingSession row"""
    return (
        select(func.count(Booking.id))
        .where(
            Booking.session_id == TrainingSession.id,
            Booking.status != BookingStatus.cancelled.value,
        )
        .correlate(TrainingSession)
        .scalar_subquery()
    )


async def _slot_taken(
    db: AsyncSession,
    coach_id: int,
    session_date: date,
    start_time: str,
    exclude_id: Optional[int] = None,
) -> bool:
    query = select(TrainingSession.id).where(
        TrainingSession.coach_id == coach_id,
        TrainingSession.date == session_date,
        TrainingSession.start_time == start_time,
    )
    if exclude_id is not None:
        query = query.where(TrainingSession.id != exclude_id)
    result = await db.execute(query)
    return result.first() is not None


async def lock_session(db: AsyncSession, session_id: int) -> TrainingSession:
    """
    Load a session with a row lock for the rest of the transaction.
    Must be called inside the caller's session_lock.
    """
    result = await db.execute(
        select(TrainingSession)
        .where(TrainingSession.id == session_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    session = result.scalar_one_or_none()
    if not session:
        raise NotFoundError("Session", str(session_id))
    return session


def _ensure_owner(session: TrainingSession, coach_id: int):
    if session.coach_id != coach_id:
        raise ForbiddenError("Not authorized to manage this session")


async def _count_active_bookings(db: AsyncSession, session_id: int) -> int:
    result = await db.execute(
        select(func.count(Booking.id)).where(
            Booking.session_id == session_id,
            Booking.status != BookingStatus.cancelled.value,
        )
    )
    return result.scalar() or 0


@db_operation
async def get_session_with_count(
    db: AsyncSession, session_id: int
) -> Tuple[TrainingSession, int]:
    booked = booked_count_column()
    result = await db.execute(
        select(TrainingSession, booked.label("booked_count"))
        .where(TrainingSession.id == session_id)
        .execution_options(populate_existing=True)
    )
    row = result.first()
    if not row:
        raise NotFoundError("Session", str(session_id))
    return row[0], row[1] or 0


@db_operation
async def create_session(
    db: AsyncSession, coach_id: int, data: SessionCreate
) -> TrainingSession:
    if data.start_time >= data.end_time:
        raise ValidationError("startTime must be before endTime")

    if await _slot_taken(db, coach_id, data.date, data.start_time):
        raise ConflictError(
            "A session already exists at this date and time",
            {"date": data.date.isoformat(), "start_time": data.start_time},
        )

    session = TrainingSession(
        coach_id=coach_id,
        date=data.date,
        start_time=data.start_time,
        end_time=data.end_time,
        location=data.location,
        type=data.type.value,
        max_participants=data.max_participants,
        notes=data.notes,
        status=SessionStatus.scheduled.value,
    )
    db.add(session)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        if not _is_slot_conflict(exc):
            raise
        # Lost the race against the generator or another request
        raise ConflictError(
            "A session already exists at this date and time",
            {"date": data.date.isoformat(), "start_time": data.start_time},
        )
    await db.refresh(session)

    log_business_event(
        "session_created",
        "session",
        session.id,
        {"coach_id": coach_id, "date": session.date.isoformat(), "start_time": session.start_time},
    )
    return session


@db_operation
async def update_session(
    db: AsyncSession, session_id: int, coach_id: int, data: SessionUpdate
) -> TrainingSession:
    changes = data.model_dump(exclude_unset=True)

    async with session_lock(session_id):
        try:
            async with TransactionManager(db):
                session = await lock_session(db, session_id)
                _ensure_owner(session, coach_id)

                if session.status != SessionStatus.scheduled:
                    raise ForbiddenError(
                        "Only scheduled sessions can be edited",
                        {"status": session.status},
                    )

                for key in ("date", "start_time", "end_time", "type", "max_participants"):
                    if key in changes and changes[key] is None:
                        raise ValidationError(f"{key} cannot be null")

                new_start = changes.get("start_time", session.start_time)
                new_end = changes.get("end_time", session.end_time)
                if new_start >= new_end:
                    raise ValidationError("startTime must be before endTime")

                new_date = changes.get("date", session.date)
                if (new_date, new_start) != (session.date, session.start_time):
                    if await _slot_taken(db, coach_id, new_date, new_start, exclude_id=session.id):
                        raise ConflictError(
                            "A session already exists at this date and time",
                            {"date": new_date.isoformat(), "start_time": new_start},
                        )

                if "max_participants" in changes:
                    booked = await _count_active_bookings(db, session.id)
                    if changes["max_participants"] < booked:
                        raise ValidationError(
                            "maxParticipants cannot be lower than the number of active bookings",
                            {"booked": booked, "requested": changes["max_participants"]},
                        )

                if changes.get("type") is not None:
                    changes["type"] = changes["type"].value

                for field, value in changes.items():
                    setattr(session, field, value)
        except IntegrityError as exc:
            if not _is_slot_conflict(exc):
                raise
            raise ConflictError("A session already exists at this date and time")

    await db.refresh(session)
    log_business_event(
        "session_updated", "session", session.id, {"fields": sorted(changes)}
    )
    return session


@db_operation
async def get_sessions_for_coach(
    db: AsyncSession,
    coach_id: int,
    status: Optional[SessionStatus] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List[Tuple[TrainingSession, int]]:
    booked = booked_count_column()
    query = select(TrainingSession, booked.label("booked_count")).where(
        TrainingSession.coach_id == coach_id
    )

    if status is not None:
        query = query.where(TrainingSession.status == SessionStatus(status).value)
    if date_from is not None:
        query = query.where(TrainingSession.date >= date_from)
    if date_to is not None:
        query = query.where(TrainingSession.date <= date_to)

    result = await db.execute(
        query.order_by(TrainingSession.date, TrainingSession.start_time)
    )
    return [(row[0], row[1] or 0) for row in result.all()]


@db_operation
async def get_upcoming_sessions(
    db: AsyncSession, coach_id: int, limit: int = 10, today: Optional[date] = None
) -> List[Tuple[TrainingSession, int]]:
    today = today or date.today()
    booked = booked_count_column()
    result = await db.execute(
        select(TrainingSession, booked.label("booked_count"))
        .where(
            TrainingSession.coach_id == coach_id,
            TrainingSession.date >= today,
            TrainingSession.status.in_(
                [SessionStatus.scheduled.value, SessionStatus.in_progress.value]
            ),
        )
        .order_by(TrainingSession.date, TrainingSession.start_time)
        .limit(limit)
    )
    return [(row[0], row[1] or 0) for row in result.all()]


@db_operation
async def get_available_sessions(
    db: AsyncSession,
    location: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    coach_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> List[Tuple[TrainingSession, int]]:
    """
    Bookable sessions: scheduled, not yet started, with spots left.
    Occupancy is computed per query, never stored.
    """
    now = now or datetime.now()
    today = now.date()
    start = max(date_from, today) if date_from else today
    booked = booked_count_column()

    query = select(TrainingSession, booked.label("booked_count")).where(
        and_(
            TrainingSession.status == SessionStatus.scheduled.value,
            TrainingSession.date >= start,
            or_(
                TrainingSession.date > today,
                TrainingSession.start_time >= now.strftime("%H:%M"),
            ),
            booked < TrainingSession.max_participants,
        )
    )
    if location:
        query = query.where(TrainingSession.location.ilike(f"%{location}%"))
    if date_to is not None:
        query = query.where(TrainingSession.date <= date_to)
    if coach_id is not None:
        query = query.where(TrainingSession.coach_id == coach_id)

    result = await db.execute(
        query.order_by(TrainingSession.date, TrainingSession.start_time)
    )
    return [(row[0], row[1] or 0) for row in result.all()]


@db_operation
async def get_session_detail(
    db: AsyncSession, session_id: int, actor: Actor, profile_id: int
) -> Tuple[TrainingSession, int]:
    """Owning coach sees any of its sessions; parents only scheduled ones"""
    result = await db.execute(
        select(TrainingSession)
        .options(selectinload(TrainingSession.bookings))
        .where(TrainingSession.id == session_id)
        .execution_options(populate_existing=True)
    )
    session = result.scalar_one_or_none()
    if not session:
        raise NotFoundError("Session", str(session_id))

    if actor.is_coach:
        _ensure_owner(session, profile_id)
    elif session.status != SessionStatus.scheduled:
        raise ForbiddenError("Session is not open for booking")

    booked = sum(1 for b in session.bookings if b.status != BookingStatus.cancelled)
    return session, booked


@db_operation
async def cancel_session(
    db: AsyncSession, session_id: int, coach_id: int
) -> Tuple[TrainingSession, List[int]]:
    """
    Cancel a session and every booking on it that is not already
    cancelled or completed. Returns the session and the cancelled booking ids.
    """
    async with session_lock(session_id):
        async with TransactionManager(db):
            session = await lock_session(db, session_id)
            _ensure_owner(session, coach_id)

            if not can_transition(session.status, SessionStatus.cancelled):
                raise InvalidTransitionError(
                    "session", session.status, SessionStatus.cancelled.value
                )

            now = datetime.now(timezone.utc)
            session.status = SessionStatus.cancelled.value

            result = await db.execute(
                select(Booking).where(
                    Booking.session_id == session.id,
                    Booking.status.not_in(_CANCEL_CASCADE_SKIP),
                )
            )
            affected = list(result.scalars().all())
            for booking in affected:
                booking.status = BookingStatus.cancelled.value
                booking.cancelled_at = now

    cancelled_ids = [b.id for b in affected]
    log_business_event(
        "session_cancelled",
        "session",
        session_id,
        {"coach_id": coach_id, "cancelled_bookings": cancelled_ids},
    )
    return session, cancelled_ids


@db_operation
async def set_session_status(
    db: AsyncSession, session_id: int, coach_id: int, new_status: SessionStatus
) -> Tuple[TrainingSession, List[int]]:
    """
    Move a session along its state machine.

    Cancelling delegates to cancel_session. Completing moves confirmed
    bookings to completed; pending bookings are left as they are.
    Returns the session and the ids of bookings cancelled by the change.
    """
    new_status = SessionStatus(new_status)
    if new_status == SessionStatus.cancelled:
        return await cancel_session(db, session_id, coach_id)

    async with session_lock(session_id):
        async with TransactionManager(db):
            session = await lock_session(db, session_id)
            _ensure_owner(session, coach_id)

            previous = session.status
            if not can_transition(previous, new_status):
                raise InvalidTransitionError("session", previous, new_status.value)

            session.status = new_status.value

            completed_ids = []
            if new_status == SessionStatus.completed:
                result = await db.execute(
                    select(Booking).where(
                        Booking.session_id == session.id,
                        Booking.status == BookingStatus.confirmed.value,
                    )
                )
                for booking in result.scalars().all():
                    booking.status = BookingStatus.completed.value
                    completed_ids.append(booking.id)

    log_business_event(
        "session_status_changed",
        "session",
        session_id,
        {"from": previous, "to": new_status.value, "completed_bookings": completed_ids},
    )
    return session, []
