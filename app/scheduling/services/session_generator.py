import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterator, List, Optional, Set, Tuple

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.config import SESSION_GENERATION_WEEKS_AHEAD, SESSION_GENERATION_MAX_WEEKS
from app.core.exceptions import ValidationError
from app.core.logging_utils import log_business_event
from app.scheduling.crud.availability import get_recurring_templates
from app.scheduling.models.availability import AvailabilityTemplate
from app.scheduling.models.sessions import TrainingSession, SessionStatus, SessionType

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def python_weekday(day_of_week: int) -> int:
    """0 = Sunday convention -> datetime.weekday() (0 = Monday)"""
    return (day_of_week + 6) % 7


def occurrence_dates(day_of_week: int, start: date, end: date) -> Iterator[date]:
    """Dates in [start, end) falling on day_of_week (0 = Sunday)"""
    offset = (python_weekday(day_of_week) - start.weekday()) % 7
    current = start + timedelta(days=offset)
    while current < end:
        yield current
        current += timedelta(days=7)


@dataclass
class GenerationResult:
    created: List[TrainingSession] = field(default_factory=list)
    skipped_count: int = 0

    @property
    def created_count(self) -> int:
        return len(self.created)


class SessionGenerator:
    """
    Expands a coach's recurring availability templates into dated sessions.

    Idempotent: the (coach, date, start_time) unique key decides whether an
    occurrence exists. Inserts use ON CONFLICT DO NOTHING, so a concurrent
    run that inserted the same occurrence first turns into a skip.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def generate_for_coach(
        self,
        coach_id: int,
        weeks_ahead: int = SESSION_GENERATION_WEEKS_AHEAD,
        today: Optional[date] = None,
    ) -> GenerationResult:
        if weeks_ahead < 0 or weeks_ahead > SESSION_GENERATION_MAX_WEEKS:
            raise ValidationError(
                f"weeksAhead must be between 0 and {SESSION_GENERATION_MAX_WEEKS}",
                {"weeks_ahead": weeks_ahead},
            )

        start = today or date.today()
        end = start + timedelta(weeks=weeks_ahead)
        result = GenerationResult()

        if start >= end:
            return result

        templates = await get_recurring_templates(self.session, coach_id)
        if not templates:
            return result

        existing = await self._get_existing_keys(coach_id, start, end)
        created_ids: List[int] = []

        try:
            for template in templates:
                for occurrence in occurrence_dates(template.day_of_week, start, end):
                    key = (occurrence, template.start_time)
                    if key in existing:
                        result.skipped_count += 1
                        continue

                    session_id = await self._insert_occurrence(template, occurrence)
                    existing.add(key)
                    if session_id is None:
                        result.skipped_count += 1
                    else:
                        created_ids.append(session_id)

            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        if created_ids:
            rows = await self.session.execute(
                select(TrainingSession)
                .where(TrainingSession.id.in_(created_ids))
                .order_by(TrainingSession.date, TrainingSession.start_time)
            )
            result.created = list(rows.scalars().all())

        log_business_event(
            "sessions_generated",
            "coach",
            coach_id,
            {
                "weeks_ahead": weeks_ahead,
                "created": result.created_count,
                "skipped": result.skipped_count,
            },
        )
        return result

    async def _get_existing_keys(
        self, coach_id: int, start: date, end: date
    ) -> Set[Tuple[date, str]]:
        rows = await self.session.execute(
            select(TrainingSession.date, TrainingSession.start_time).where(
                TrainingSession.coach_id == coach_id,
                TrainingSession.date >= start,
                TrainingSession.date < end,
            )
        )
        return {(row.date, row.start_time) for row in rows.all()}

    def _occurrence_values(self, template: AvailabilityTemplate, occurrence: date) -> dict:
        return {
            "coach_id": template.coach_id,
            "template_id": template.id,
            "date": occurrence,
            "start_time": template.start_time,
            "end_time": template.end_time,
            "location": template.location,
            "max_participants": template.max_players,
            "type": (
                SessionType.group.value
                if template.max_players > 1
                else SessionType.individual.value
            ),
            "status": SessionStatus.scheduled.value,
        }

    async def _insert_occurrence(
        self, template: AvailabilityTemplate, occurrence: date
    ) -> Optional[int]:
        """Insert one occurrence; None when the slot is already taken"""
        values = self._occurrence_values(template, occurrence)
        insert_factory = _UPSERT_DIALECTS.get(self.session.get_bind().dialect.name)

        if insert_factory is not None:
            stmt = (
                insert_factory(TrainingSession)
                .values(**values)
                .on_conflict_do_nothing(
                    index_elements=["coach_id", "date", "start_time"]
                )
                .returning(TrainingSession.id)
            )
            row = (await self.session.execute(stmt)).first()
            return row[0] if row else None

        # Other backends: savepoint per row, duplicate key means skip
        try:
            async with self.session.begin_nested():
                session = TrainingSession(**values)
                self.session.add(session)
            return session.id
        except IntegrityError:
            logger.debug(
                f"Session for coach {template.coach_id} on {occurrence} "
                f"{template.start_time} already exists"
            )
            return None
