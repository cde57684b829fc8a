"""Availability template store. Inert configuration read by the session generator."""
from typing import List

from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import db_operation
from app.core.exceptions import NotFoundError, ValidationError
from app.core.logging_utils import log_business_event
from app.scheduling.models.availability import AvailabilityTemplate
from app.scheduling.schemas.availability import (
    AvailabilityTemplateCreate,
    AvailabilityTemplateUpdate,
)


def _validate_template_fields(day_of_week: int, start_time: str, end_time: str, max_players: int):
    if not 0 <= day_of_week <= 6:
        raise ValidationError("dayOfWeek must be between 0 and 6", {"day_of_week": day_of_week})
    if start_time >= end_time:
        raise ValidationError(
            "startTime must be before endTime",
            {"start_time": start_time, "end_time": end_time},
        )
    if max_players < 1:
        raise ValidationError("maxPlayers must be at least 1", {"max_players": max_players})


async def _get_owned_template(
    db: AsyncSession, template_id: int, coach_id: int
) -> AvailabilityTemplate:
    # Missing and foreign templates look the same to the caller
    result = await db.execute(
        select(AvailabilityTemplate).where(
            AvailabilityTemplate.id == template_id,
            AvailabilityTemplate.coach_id == coach_id,
            AvailabilityTemplate.is_active.is_(True),
        )
    )
    template = result.scalar_one_or_none()
    if not template:
        raise NotFoundError("Availability slot", str(template_id))
    return template


@db_operation
async def create_template(
    db: AsyncSession, coach_id: int, data: AvailabilityTemplateCreate
) -> AvailabilityTemplate:
    _validate_template_fields(
        data.day_of_week, data.start_time, data.end_time, data.max_players
    )

    template = AvailabilityTemplate(coach_id=coach_id, **data.model_dump())
    db.add(template)
    await db.commit()
    await db.refresh(template)

    log_business_event(
        "availability_template_created",
        "template",
        template.id,
        {
            "coach_id": coach_id,
            "day_of_week": template.day_of_week,
            "start_time": template.start_time,
        },
    )
    return template


@db_operation
async def update_template(
    db: AsyncSession,
    template_id: int,
    coach_id: int,
    data: AvailabilityTemplateUpdate,
) -> AvailabilityTemplate:
    template = await _get_owned_template(db, template_id, coach_id)

    changes = data.model_dump(exclude_unset=True)
    merged = {
        "day_of_week": changes.get("day_of_week", template.day_of_week),
        "start_time": changes.get("start_time", template.start_time),
        "end_time": changes.get("end_time", template.end_time),
        "max_players": changes.get("max_players", template.max_players),
    }
    for key in ("day_of_week", "start_time", "end_time", "max_players"):
        if merged[key] is None:
            raise ValidationError(f"{key} cannot be null")
    if "is_recurring" in changes and changes["is_recurring"] is None:
        raise ValidationError("is_recurring cannot be null")
    _validate_template_fields(**merged)

    for field, value in changes.items():
        setattr(template, field, value)

    await db.commit()
    await db.refresh(template)

    log_business_event(
        "availability_template_updated",
        "template",
        template.id,
        {"fields": sorted(changes)},
    )
    return template


@db_operation
async def delete_template(db: AsyncSession, template_id: int, coach_id: int) -> None:
    """Soft delete; sessions already generated from it are left alone"""
    template = await _get_owned_template(db, template_id, coach_id)
    template.is_active = False
    await db.commit()

    log_business_event("availability_template_deleted", "template", template_id)


@db_operation
async def get_templates_for_coach(
    db: AsyncSession, coach_id: int
) -> List[AvailabilityTemplate]:
    result = await db.execute(
        select(AvailabilityTemplate)
        .where(
            AvailabilityTemplate.coach_id == coach_id,
            AvailabilityTemplate.is_active.is_(True),
        )
        .order_by(AvailabilityTemplate.day_of_week, AvailabilityTemplate.start_time)
    )
    return list(result.scalars().all())


@db_operation
async def get_recurring_templates(
    db: AsyncSession, coach_id: int
) -> List[AvailabilityTemplate]:
    result = await db.execute(
        select(AvailabilityTemplate)
        .where(
            AvailabilityTemplate.coach_id == coach_id,
            AvailabilityTemplate.is_active.is_(True),
            AvailabilityTemplate.is_recurring.is_(True),
        )
        .order_by(AvailabilityTemplate.day_of_week, AvailabilityTemplate.start_time)
    )
    return list(result.scalars().all())
