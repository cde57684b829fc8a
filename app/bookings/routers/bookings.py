"""Booking Router - admission and status transitions of bookings"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status, Request, Path
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.limits import limiter
from app.core.dependencies import (
    Actor,
    require_coach,
    require_parent,
    require_coach_or_parent,
)
from app.accounts.crud.identity import (
    resolve_coach_id,
    resolve_parent_id,
    resolve_profile_id,
)
from app.bookings.crud.bookings import (
    create_booking,
    confirm_booking,
    cancel_booking,
    mark_no_show,
    get_booking_for_actor,
    get_bookings_for_coach,
    get_bookings_for_parent,
    get_pending_bookings_for_coach,
    get_bookings_for_session,
)
from app.bookings.schemas.bookings import (
    BookingCreate,
    BookingFilters,
    BookingResponse,
    SessionBookingResponse,
)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
async def create_booking_route(
    request: Request,
    payload: BookingCreate,
    actor: Actor = Depends(require_parent),
    db: AsyncSession = Depends(get_session),
):
    """
    Request a spot in a session for one of the parent's players.

    Fails with 404 (session), 400 INVALID_STATE (not scheduled),
    403 (player), 409 (already booked) or 400 CAPACITY_EXCEEDED.
    """
    parent_id = await resolve_parent_id(db, actor)
    return await create_booking(db, parent_id, payload)


@router.get("", response_model=List[BookingResponse])
@limiter.limit("60/minute")
async def list_bookings(
    request: Request,
    booking_status: Optional[str] = Query(None, alias="status"),
    upcoming: bool = Query(False),
    actor: Actor = Depends(require_coach_or_parent),
    db: AsyncSession = Depends(get_session),
):
    """Parent: own bookings. Coach: bookings on own sessions."""
    filters = BookingFilters(status=booking_status, upcoming=upcoming)
    profile_id = await resolve_profile_id(db, actor)

    if actor.is_coach:
        return await get_bookings_for_coach(
            db, profile_id, filters.status, filters.upcoming
        )
    return await get_bookings_for_parent(
        db, profile_id, filters.status, filters.upcoming
    )


@router.get("/pending", response_model=List[BookingResponse])
@limiter.limit("60/minute")
async def list_pending_bookings(
    request: Request,
    actor: Actor = Depends(require_coach),
    db: AsyncSession = Depends(get_session),
):
    coach_id = await resolve_coach_id(db, actor)
    return await get_pending_bookings_for_coach(db, coach_id)


@router.get("/session/{session_id}", response_model=List[SessionBookingResponse])
@limiter.limit("60/minute")
async def list_session_bookings(
    request: Request,
    session_id: int = Path(..., gt=0),
    actor: Actor = Depends(require_coach),
    db: AsyncSession = Depends(get_session),
):
    coach_id = await resolve_coach_id(db, actor)
    bookings = await get_bookings_for_session(db, session_id, coach_id)
    return [SessionBookingResponse.from_booking(b) for b in bookings]


@router.get("/{booking_id}", response_model=BookingResponse)
@limiter.limit("60/minute")
async def get_booking(
    request: Request,
    booking_id: int = Path(..., gt=0),
    actor: Actor = Depends(require_coach_or_parent),
    db: AsyncSession = Depends(get_session),
):
    profile_id = await resolve_profile_id(db, actor)
    return await get_booking_for_actor(db, booking_id, actor, profile_id)


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
@limiter.limit("30/minute")
async def confirm_booking_route(
    request: Request,
    booking_id: int = Path(..., gt=0),
    actor: Actor = Depends(require_coach),
    db: AsyncSession = Depends(get_session),
):
    coach_id = await resolve_coach_id(db, actor)
    return await confirm_booking(db, booking_id, coach_id)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
@limiter.limit("30/minute")
async def cancel_booking_route(
    request: Request,
    booking_id: int = Path(..., gt=0),
    actor: Actor = Depends(require_coach_or_parent),
    db: AsyncSession = Depends(get_session),
):
    profile_id = await resolve_profile_id(db, actor)
    return await cancel_booking(db, booking_id, actor, profile_id)


@router.post("/{booking_id}/no-show", response_model=BookingResponse)
@limiter.limit("30/minute")
async def mark_no_show_route(
    request: Request,
    booking_id: int = Path(..., gt=0),
    actor: Actor = Depends(require_coach),
    db: AsyncSession = Depends(get_session),
):
    coach_id = await resolve_coach_id(db, actor)
    return await mark_no_show(db, booking_id, coach_id)
