from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import Field

from app.core.schemas import CamelModel


class NotificationCreate(CamelModel):
    recipient_id: int
    type: str
    title: str = Field(..., max_length=255)
    message: str = Field(..., max_length=1024)
    metadata_json: Optional[Dict[str, Any]] = None


class NotificationResponse(CamelModel):
    id: int
    type: str
    title: str
    message: str
    is_read: bool
    metadata_json: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None


class NotificationListResponse(CamelModel):
    items: List[NotificationResponse]
    unread_count: int
