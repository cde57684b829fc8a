from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import db_operation
from app.core.dependencies import Actor
from app.core.exceptions import NotFoundError, ForbiddenError
from app.core.logging_utils import log_business_event
from app.accounts.models.users import Parent, UserRole
from app.accounts.models.players import Player
from app.accounts.schemas.players import PlayerCreate


async def _ensure_parent_exists(db: AsyncSession, parent_id: int):
    result = await db.execute(select(Parent.id).where(Parent.id == parent_id))
    if result.scalar_one_or_none() is None:
        raise NotFoundError("Parent", str(parent_id))


async def _get_owned_player(db: AsyncSession, player_id: int, coach_id: int) -> Player:
    result = await db.execute(
        select(Player).where(Player.id == player_id, Player.coach_id == coach_id)
    )
    player = result.scalar_one_or_none()
    if not player:
        raise NotFoundError("Player", str(player_id))
    return player


@db_operation
async def create_player(db: AsyncSession, coach_id: int, data: PlayerCreate) -> Player:
    if data.parent_id is not None:
        await _ensure_parent_exists(db, data.parent_id)

    player = Player(coach_id=coach_id, **data.model_dump())
    db.add(player)
    await db.commit()
    await db.refresh(player)

    log_business_event(
        "player_created", "player", player.id, {"coach_id": coach_id}
    )
    return player


@db_operation
async def get_players_for_coach(
    db: AsyncSession, coach_id: int, search: Optional[str] = None
) -> List[Player]:
    query = select(Player).where(Player.coach_id == coach_id, Player.is_active.is_(True))

    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(Player.first_name.ilike(pattern), Player.last_name.ilike(pattern))
        )

    result = await db.execute(query.order_by(Player.last_name, Player.first_name))
    return list(result.scalars().all())


@db_operation
async def get_players_for_parent(db: AsyncSession, parent_id: int) -> List[Player]:
    result = await db.execute(
        select(Player)
        .where(Player.parent_id == parent_id, Player.is_active.is_(True))
        .order_by(Player.first_name)
    )
    return list(result.scalars().all())


@db_operation
async def get_player_for_actor(
    db: AsyncSession, player_id: int, actor: Actor, profile_id: int
) -> Player:
    """Coach sees own players, parent sees own children"""
    result = await db.execute(select(Player).where(Player.id == player_id))
    player = result.scalar_one_or_none()
    if not player:
        raise NotFoundError("Player", str(player_id))

    owner_id = player.coach_id if actor.role == UserRole.coach else player.parent_id
    if owner_id != profile_id:
        raise ForbiddenError("Not authorized to view this player")
    return player


@db_operation
async def assign_parent(
    db: AsyncSession, player_id: int, parent_id: int, coach_id: int
) -> Player:
    player = await _get_owned_player(db, player_id, coach_id)
    await _ensure_parent_exists(db, parent_id)

    previous_parent_id = player.parent_id
    player.parent_id = parent_id
    await db.commit()
    await db.refresh(player)

    log_business_event(
        "player_parent_assigned",
        "player",
        player.id,
        {"from_parent_id": previous_parent_id, "to_parent_id": parent_id},
    )
    return player


@db_operation
async def deactivate_player(db: AsyncSession, player_id: int, coach_id: int) -> Player:
    player = await _get_owned_player(db, player_id, coach_id)
    player.is_active = False
    await db.commit()

    log_business_event("player_deactivated", "player", player.id)
    return player
