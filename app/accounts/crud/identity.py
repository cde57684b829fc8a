"""Maps an authenticated actor onto the coach/parent profile it owns"""

from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import db_operation
from app.core.dependencies import Actor
from app.core.exceptions import ForbiddenError, NotFoundError
from app.accounts.models.users import Coach, Parent, UserRole


@db_operation
async def resolve_coach_id(db: AsyncSession, actor: Actor) -> int:
    if actor.role != UserRole.coach:
        raise ForbiddenError("Only coaches can perform this action")

    result = await db.execute(select(Coach.id).where(Coach.user_id == actor.user_id))
    coach_id = result.scalar_one_or_none()
    if coach_id is None:
        raise NotFoundError("Coach profile", str(actor.user_id))
    return coach_id


@db_operation
async def resolve_parent_id(db: AsyncSession, actor: Actor) -> int:
    if actor.role != UserRole.parent:
        raise ForbiddenError("Only parents can perform this action")

    result = await db.execute(
        select(Parent.id).where(Parent.user_id == actor.user_id)
    )
    parent_id = result.scalar_one_or_none()
    if parent_id is None:
        raise NotFoundError("Parent profile", str(actor.user_id))
    return parent_id


@db_operation
async def resolve_profile_id(db: AsyncSession, actor: Actor) -> int:
    """Profile id for whichever of coach/parent the actor is"""
    if actor.role == UserRole.coach:
        return await resolve_coach_id(db, actor)
    return await resolve_parent_id(db, actor)
