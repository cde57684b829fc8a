import pytest
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import NotFoundError, ValidationError
from app.scheduling.crud.availability import (
    create_template,
    update_template,
    delete_template,
    get_templates_for_coach,
)
from app.scheduling.schemas.availability import (
    AvailabilityTemplateCreate,
    AvailabilityTemplateUpdate,
)


def slot(day_of_week=1, start_time="16:00", end_time="17:00", **extra):
    return AvailabilityTemplateCreate(
        day_of_week=day_of_week, start_time=start_time, end_time=end_time, **extra
    )


def test_schema_rejects_inverted_range():
    with pytest.raises(PydanticValidationError):
        AvailabilityTemplateCreate(day_of_week=1, start_time="17:00", end_time="16:00")


def test_schema_rejects_malformed_time():
    with pytest.raises(PydanticValidationError):
        AvailabilityTemplateCreate(day_of_week=1, start_time="4pm", end_time="17:00")


def test_schema_accepts_camel_case():
    data = AvailabilityTemplateCreate.model_validate(
        {"dayOfWeek": 0, "startTime": "08:00", "endTime": "09:30", "maxPlayers": 3}
    )
    assert data.day_of_week == 0
    assert data.max_players == 3


@pytest.mark.asyncio
async def test_create_defaults(db, coach):
    template = await create_template(db, coach.profile_id, slot())

    assert template.coach_id == coach.profile_id
    assert template.max_players == 1
    assert template.is_recurring is True
    assert template.is_active is True


@pytest.mark.asyncio
async def test_list_is_ordered_by_day_then_start(db, coach):
    await create_template(db, coach.profile_id, slot(day_of_week=3, start_time="09:00", end_time="10:00"))
    await create_template(db, coach.profile_id, slot(day_of_week=1, start_time="18:00", end_time="19:00"))
    await create_template(db, coach.profile_id, slot(day_of_week=1, start_time="08:00", end_time="09:00"))

    templates = await get_templates_for_coach(db, coach.profile_id)

    assert [(t.day_of_week, t.start_time) for t in templates] == [
        (1, "08:00"),
        (1, "18:00"),
        (3, "09:00"),
    ]


@pytest.mark.asyncio
async def test_update_rechecks_merged_range(db, coach):
    template = await create_template(db, coach.profile_id, slot())

    with pytest.raises(ValidationError):
        await update_template(
            db, template.id, coach.profile_id, AvailabilityTemplateUpdate(start_time="17:30")
        )


@pytest.mark.asyncio
async def test_update_rejects_null_recurring_flag(db, coach):
    template_id = (await create_template(db, coach.profile_id, slot())).id

    with pytest.raises(ValidationError):
        await update_template(
            db, template_id, coach.profile_id, AvailabilityTemplateUpdate(is_recurring=None)
        )


@pytest.mark.asyncio
async def test_update_changes_fields(db, coach):
    template = await create_template(db, coach.profile_id, slot())

    updated = await update_template(
        db,
        template.id,
        coach.profile_id,
        AvailabilityTemplateUpdate(end_time="18:00", location="Hall B", max_players=4),
    )

    assert updated.end_time == "18:00"
    assert updated.location == "Hall B"
    assert updated.max_players == 4


@pytest.mark.asyncio
async def test_foreign_template_is_not_found(db, coach, other_coach):
    template = await create_template(db, coach.profile_id, slot())

    with pytest.raises(NotFoundError):
        await update_template(
            db, template.id, other_coach.profile_id, AvailabilityTemplateUpdate(location="x")
        )
    with pytest.raises(NotFoundError):
        await delete_template(db, template.id, other_coach.profile_id)


@pytest.mark.asyncio
async def test_delete_is_soft(db, coach):
    template = await create_template(db, coach.profile_id, slot())

    await delete_template(db, template.id, coach.profile_id)

    assert await get_templates_for_coach(db, coach.profile_id) == []
    await db.refresh(template)
    assert template.is_active is False

    with pytest.raises(NotFoundError):
        await delete_template(db, template.id, coach.profile_id)
