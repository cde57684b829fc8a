from datetime import date as date_type, datetime
from typing import List, Optional
from pydantic import Field, field_validator, model_validator

from app.core.config import SESSION_GENERATION_WEEKS_AHEAD, SESSION_GENERATION_MAX_WEEKS
from app.core.schemas import CamelModel, TIME_PATTERN
from app.scheduling.models.sessions import SessionStatus, SessionType


class SessionCreate(CamelModel):
    date: date_type
    start_time: str = Field(..., pattern=TIME_PATTERN)
    end_time: str = Field(..., pattern=TIME_PATTERN)
    location: Optional[str] = Field(None, max_length=255)
    type: SessionType = SessionType.individual
    max_participants: int = Field(1, ge=1, le=100)
    notes: Optional[str] = None

    @model_validator(mode="after")
    def validate_time_range(self):
        if self.start_time >= self.end_time:
            raise ValueError("startTime must be before endTime")
        return self


class SessionUpdate(CamelModel):
    date: Optional[date_type] = None
    start_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    end_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    location: Optional[str] = Field(None, max_length=255)
    type: Optional[SessionType] = None
    max_participants: Optional[int] = Field(None, ge=1, le=100)
    notes: Optional[str] = None


class SessionStatusUpdate(CamelModel):
    status: SessionStatus

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        # Accept "IN_PROGRESS" and "in-progress" as well
        if isinstance(v, str):
            return v.strip().lower().replace("-", "_")
        return v


class GenerateSessionsRequest(CamelModel):
    weeks_ahead: int = Field(
        SESSION_GENERATION_WEEKS_AHEAD, ge=0, le=SESSION_GENERATION_MAX_WEEKS
    )


class SessionBookingRead(CamelModel):
    id: int
    player_id: int
    parent_id: int
    status: str
    notes: Optional[str] = None
    requested_at: Optional[datetime] = None


class SessionResponse(CamelModel):
    id: int
    coach_id: int
    template_id: Optional[int] = None
    date: date_type
    start_time: str
    end_time: str
    location: Optional[str] = None
    type: SessionType
    status: SessionStatus
    max_participants: int
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    booked_count: int = 0
    spots_left: int = 0

    @classmethod
    def from_session(cls, session, booked_count: int = 0) -> "SessionResponse":
        data = cls.model_validate(session)
        data.booked_count = booked_count
        data.spots_left = max(session.max_participants - booked_count, 0)
        return data


class SessionDetailResponse(SessionResponse):
    bookings: List[SessionBookingRead] = []


class GenerateSessionsResponse(CamelModel):
    created: int
    sessions: List[SessionResponse]
