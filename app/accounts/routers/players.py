"""Player registry: coaches manage players, parents read their children"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status, Request, Path
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.limits import limiter
from app.core.dependencies import Actor, require_coach, require_coach_or_parent
from app.accounts.crud.identity import resolve_coach_id, resolve_profile_id
from app.accounts.crud.players import (
    create_player,
    get_players_for_coach,
    get_players_for_parent,
    get_player_for_actor,
    assign_parent,
    deactivate_player,
)
from app.accounts.schemas.players import (
    PlayerCreate,
    PlayerResponse,
    AssignParentRequest,
)

router = APIRouter(prefix="/players", tags=["Players"])


@router.post("", response_model=PlayerResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
async def create_player_route(
    request: Request,
    payload: PlayerCreate,
    actor: Actor = Depends(require_coach),
    db: AsyncSession = Depends(get_session),
):
    coach_id = await resolve_coach_id(db, actor)
    return await create_player(db, coach_id, payload)


@router.get("", response_model=List[PlayerResponse])
@limiter.limit("60/minute")
async def list_players(
    request: Request,
    search: Optional[str] = Query(None, max_length=100),
    actor: Actor = Depends(require_coach_or_parent),
    db: AsyncSession = Depends(get_session),
):
    """Coach: own active players (optional name search). Parent: own children."""
    profile_id = await resolve_profile_id(db, actor)
    if actor.is_coach:
        return await get_players_for_coach(db, profile_id, search)
    return await get_players_for_parent(db, profile_id)


@router.get("/{player_id}", response_model=PlayerResponse)
@limiter.limit("60/minute")
async def get_player(
    request: Request,
    player_id: int = Path(..., gt=0),
    actor: Actor = Depends(require_coach_or_parent),
    db: AsyncSession = Depends(get_session),
):
    profile_id = await resolve_profile_id(db, actor)
    return await get_player_for_actor(db, player_id, actor, profile_id)


@router.put("/{player_id}/parent", response_model=PlayerResponse)
@limiter.limit("20/minute")
async def assign_player_parent(
    request: Request,
    payload: AssignParentRequest,
    player_id: int = Path(..., gt=0),
    actor: Actor = Depends(require_coach),
    db: AsyncSession = Depends(get_session),
):
    coach_id = await resolve_coach_id(db, actor)
    return await assign_parent(db, player_id, payload.parent_id, coach_id)


@router.delete("/{player_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("20/minute")
async def delete_player(
    request: Request,
    player_id: int = Path(..., gt=0),
    actor: Actor = Depends(require_coach),
    db: AsyncSession = Depends(get_session),
):
    coach_id = await resolve_coach_id(db, actor)
    await deactivate_player(db, player_id, coach_id)
