from typing import Optional

from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import db_operation
from app.core.exceptions import NotFoundError, ValidationError
from app.accounts.models.users import User, UserRole, Coach, Parent


@db_operation
async def create_user(
    db: AsyncSession,
    email: str,
    first_name: str,
    role: UserRole,
    last_name: Optional[str] = None,
    phone_number: Optional[str] = None,
) -> User:
    """
    Create a user together with the profile row its role needs.

    Accounts are provisioned by the auth service; this is its write path
    into the scheduling database.
    """
    role = UserRole(role)
    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.scalar_one_or_none() is not None:
        raise ValidationError("User with this email already exists", {"email": email})

    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        phone_number=phone_number,
        role=role.value,
    )
    db.add(user)
    await db.flush()

    if role == UserRole.coach:
        db.add(Coach(user_id=user.id))
    elif role == UserRole.parent:
        db.add(Parent(user_id=user.id))

    await db.commit()
    await db.refresh(user)
    return user


@db_operation
async def get_coach_user(db: AsyncSession, coach_id: int) -> User:
    result = await db.execute(
        select(User).join(Coach, Coach.user_id == User.id).where(Coach.id == coach_id)
    )
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("Coach", str(coach_id))
    return user


@db_operation
async def get_parent_user(db: AsyncSession, parent_id: int) -> User:
    result = await db.execute(
        select(User)
        .join(Parent, Parent.user_id == User.id)
        .where(Parent.id == parent_id)
    )
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("Parent", str(parent_id))
    return user
