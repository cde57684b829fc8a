from datetime import date as date_type, datetime
from typing import Optional
from pydantic import Field, field_validator

from app.core.schemas import CamelModel
from app.bookings.models.bookings import BookingStatus


class BookingCreate(CamelModel):
    session_id: int = Field(..., gt=0)
    player_id: int = Field(..., gt=0)
    notes: Optional[str] = Field(None, max_length=1000)


class BookingFilters(CamelModel):
    status: Optional[BookingStatus] = None
    upcoming: bool = False

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        if isinstance(v, str):
            return v.strip().lower().replace("-", "_")
        return v


class BookingSessionSummary(CamelModel):
    id: int
    coach_id: int
    date: date_type
    start_time: str
    end_time: str
    location: Optional[str] = None
    status: str


class BookingPlayerSummary(CamelModel):
    id: int
    first_name: str
    last_name: str


class ParentContact(CamelModel):
    id: int
    first_name: str
    last_name: Optional[str] = None
    email: str
    phone_number: Optional[str] = None


class BookingResponse(CamelModel):
    id: int
    session_id: int
    player_id: int
    parent_id: int
    status: BookingStatus
    notes: Optional[str] = None
    requested_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    session: Optional[BookingSessionSummary] = None
    player: Optional[BookingPlayerSummary] = None


class SessionBookingResponse(BookingResponse):
    """Coach view of a session's roster, with the parent's contact details"""

    parent_contact: Optional[ParentContact] = None

    @classmethod
    def from_booking(cls, booking) -> "SessionBookingResponse":
        data = cls.model_validate(booking)
        user = booking.parent.user
        data.parent_contact = ParentContact(
            id=booking.parent_id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            phone_number=user.phone_number,
        )
        return data
