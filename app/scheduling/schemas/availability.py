from datetime import date, datetime
from typing import Optional
from pydantic import Field, model_validator

from app.core.schemas import CamelModel, TIME_PATTERN


class AvailabilityTemplateCreate(CamelModel):
    """Weekly slot; dayOfWeek uses 0 = Sunday .. 6 = Saturday"""

    day_of_week: int = Field(..., ge=0, le=6)
    start_time: str = Field(..., pattern=TIME_PATTERN)
    end_time: str = Field(..., pattern=TIME_PATTERN)
    location: Optional[str] = Field(None, max_length=255)
    max_players: int = Field(1, ge=1, le=100)
    is_recurring: bool = True
    specific_date: Optional[date] = None

    @model_validator(mode="after")
    def validate_time_range(self):
        if self.start_time >= self.end_time:
            raise ValueError("startTime must be before endTime")
        return self


class AvailabilityTemplateUpdate(CamelModel):
    """Partial update; the merged range is re-checked by the store"""

    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    start_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    end_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    location: Optional[str] = Field(None, max_length=255)
    max_players: Optional[int] = Field(None, ge=1, le=100)
    is_recurring: Optional[bool] = None
    specific_date: Optional[date] = None


class AvailabilityTemplateResponse(CamelModel):
    id: int
    coach_id: int
    day_of_week: int
    start_time: str
    end_time: str
    location: Optional[str] = None
    max_players: int
    is_recurring: bool
    specific_date: Optional[date] = None
    is_active: bool
    created_at: Optional[datetime] = None
