"""Sessions Router - availability slots, generation and the session lifecycle"""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status, Request, Path
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.limits import limiter
from app.core.dependencies import Actor, require_coach, require_coach_or_parent
from app.accounts.crud.identity import resolve_coach_id, resolve_profile_id
from app.scheduling.crud.availability import (
    create_template,
    update_template,
    delete_template,
    get_templates_for_coach,
)
from app.scheduling.crud.sessions import (
    create_session,
    update_session,
    get_sessions_for_coach,
    get_available_sessions,
    get_upcoming_sessions,
    get_session_detail,
    get_session_with_count,
    set_session_status,
    cancel_session,
)
from app.scheduling.models.sessions import SessionStatus
from app.scheduling.schemas.availability import (
    AvailabilityTemplateCreate,
    AvailabilityTemplateUpdate,
    AvailabilityTemplateResponse,
)
from app.scheduling.schemas.sessions import (
    SessionCreate,
    SessionUpdate,
    SessionStatusUpdate,
    SessionResponse,
    SessionDetailResponse,
    GenerateSessionsRequest,
    GenerateSessionsResponse,
)
from app.scheduling.services.session_generator import SessionGenerator
from app.notifications.services.notification_service import notify_session_cancelled

router = APIRouter(prefix="/sessions", tags=["Sessions"])


def _with_counts(rows) -> List[SessionResponse]:
    return [SessionResponse.from_session(s, count) for s, count in rows]


# === Availability slots ===


@router.get("/slots", response_model=List[AvailabilityTemplateResponse])
@limiter.limit("60/minute")
async def list_slots(
    request: Request,
    actor: Actor = Depends(require_coach),
    db: AsyncSession = Depends(get_session),
):
    coach_id = await resolve_coach_id(db, actor)
    return await get_templates_for_coach(db, coach_id)


@router.post(
    "/slots",
    response_model=AvailabilityTemplateResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit("20/minute")
async def create_slot(
    request: Request,
    payload: AvailabilityTemplateCreate,
    actor: Actor = Depends(require_coach),
    db: AsyncSession = Depends(get_session),
):
    coach_id = await resolve_coach_id(db, actor)
    return await create_template(db, coach_id, payload)


@router.put("/slots/{slot_id}", response_model=AvailabilityTemplateResponse)
@limiter.limit("20/minute")
async def update_slot(
    request: Request,
    payload: AvailabilityTemplateUpdate,
    slot_id: int = Path(..., gt=0),
    actor: Actor = Depends(require_coach),
    db: AsyncSession = Depends(get_session),
):
    coach_id = await resolve_coach_id(db, actor)
    return await update_template(db, slot_id, coach_id, payload)


@router.delete("/slots/{slot_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("20/minute")
async def delete_slot(
    request: Request,
    slot_id: int = Path(..., gt=0),
    actor: Actor = Depends(require_coach),
    db: AsyncSession = Depends(get_session),
):
    coach_id = await resolve_coach_id(db, actor)
    await delete_template(db, slot_id, coach_id)


# === Generation ===


@router.post("/generate", response_model=GenerateSessionsResponse)
@limiter.limit("5/minute")
async def generate_sessions(
    request: Request,
    payload: Optional[GenerateSessionsRequest] = None,
    actor: Actor = Depends(require_coach),
    db: AsyncSession = Depends(get_session),
):
    """
    Expand the coach's recurring slots into sessions for the next
    `weeksAhead` weeks. Safe to call repeatedly; existing sessions are skipped.
    """
    payload = payload or GenerateSessionsRequest()
    coach_id = await resolve_coach_id(db, actor)

    result = await SessionGenerator(db).generate_for_coach(coach_id, payload.weeks_ahead)
    return GenerateSessionsResponse(
        created=result.created_count,
        sessions=[SessionResponse.from_session(s) for s in result.created],
    )


# === Sessions ===


@router.get("", response_model=List[SessionResponse])
@limiter.limit("60/minute")
async def list_sessions(
    request: Request,
    session_status: Optional[SessionStatus] = Query(None, alias="status"),
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    location: Optional[str] = Query(None, max_length=255),
    actor: Actor = Depends(require_coach_or_parent),
    db: AsyncSession = Depends(get_session),
):
    """Coach: own sessions. Parent: sessions open for booking."""
    profile_id = await resolve_profile_id(db, actor)

    if actor.is_coach:
        rows = await get_sessions_for_coach(
            db, profile_id, session_status, date_from, date_to
        )
    else:
        rows = await get_available_sessions(db, location, date_from, date_to)
    return _with_counts(rows)


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
async def create_session_route(
    request: Request,
    payload: SessionCreate,
    actor: Actor = Depends(require_coach),
    db: AsyncSession = Depends(get_session),
):
    coach_id = await resolve_coach_id(db, actor)
    session = await create_session(db, coach_id, payload)
    return SessionResponse.from_session(session)


@router.get("/upcoming", response_model=List[SessionResponse])
@limiter.limit("60/minute")
async def list_upcoming_sessions(
    request: Request,
    limit: int = Query(10, ge=1, le=100),
    actor: Actor = Depends(require_coach),
    db: AsyncSession = Depends(get_session),
):
    coach_id = await resolve_coach_id(db, actor)
    return _with_counts(await get_upcoming_sessions(db, coach_id, limit))


@router.get("/{session_id}", response_model=SessionDetailResponse)
@limiter.limit("60/minute")
async def get_session_route(
    request: Request,
    session_id: int = Path(..., gt=0),
    actor: Actor = Depends(require_coach_or_parent),
    db: AsyncSession = Depends(get_session),
):
    profile_id = await resolve_profile_id(db, actor)
    session, booked = await get_session_detail(db, session_id, actor, profile_id)

    detail = SessionDetailResponse.from_session(session, booked)
    if not actor.is_coach:
        # Parents see occupancy, not other families' bookings
        detail.bookings = []
    return detail


@router.put("/{session_id}", response_model=SessionResponse)
@limiter.limit("20/minute")
async def update_session_route(
    request: Request,
    payload: SessionUpdate,
    session_id: int = Path(..., gt=0),
    actor: Actor = Depends(require_coach),
    db: AsyncSession = Depends(get_session),
):
    coach_id = await resolve_coach_id(db, actor)
    await update_session(db, session_id, coach_id, payload)
    return SessionResponse.from_session(*await get_session_with_count(db, session_id))


@router.put("/{session_id}/status", response_model=SessionResponse)
@limiter.limit("30/minute")
async def set_session_status_route(
    request: Request,
    payload: SessionStatusUpdate,
    session_id: int = Path(..., gt=0),
    actor: Actor = Depends(require_coach),
    db: AsyncSession = Depends(get_session),
):
    coach_id = await resolve_coach_id(db, actor)
    _, cancelled_ids = await set_session_status(
        db, session_id, coach_id, payload.status
    )
    response = SessionResponse.from_session(*await get_session_with_count(db, session_id))
    if cancelled_ids:
        await notify_session_cancelled(db, cancelled_ids)
    return response


@router.post("/{session_id}/cancel", response_model=SessionResponse)
@limiter.limit("30/minute")
async def cancel_session_route(
    request: Request,
    session_id: int = Path(..., gt=0),
    actor: Actor = Depends(require_coach),
    db: AsyncSession = Depends(get_session),
):
    """Cancel the session and every live booking on it"""
    coach_id = await resolve_coach_id(db, actor)
    _, cancelled_ids = await cancel_session(db, session_id, coach_id)
    response = SessionResponse.from_session(*await get_session_with_count(db, session_id))
    if cancelled_ids:
        await notify_session_cancelled(db, cancelled_ids)
    return response
