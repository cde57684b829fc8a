from datetime import date, datetime
from typing import Optional
from pydantic import Field

from app.core.schemas import CamelModel


class PlayerBase(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: Optional[date] = None
    position: Optional[str] = Field(None, max_length=50)
    height_cm: Optional[int] = Field(None, gt=0, le=260)
    weight_kg: Optional[int] = Field(None, gt=0, le=250)
    notes: Optional[str] = None


class PlayerCreate(PlayerBase):
    parent_id: Optional[int] = Field(None, gt=0)


class AssignParentRequest(CamelModel):
    parent_id: int = Field(..., gt=0)


class PlayerResponse(PlayerBase):
    id: int
    coach_id: int
    parent_id: Optional[int] = None
    is_active: bool
    created_at: Optional[datetime] = None
