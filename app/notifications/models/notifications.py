import enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base


class NotificationType(str, enum.Enum):
    booking_requested = "booking_requested"
    booking_pending = "booking_pending"
    booking_confirmed = "booking_confirmed"
    booking_cancelled = "booking_cancelled"
    session_cancelled = "session_cancelled"


class Notification(Base):
    """In-app notice for one recipient user"""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True)
    recipient_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    type = Column(String(40), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(String(1024), nullable=False)

    is_read = Column(Boolean, default=False, nullable=False)
    # "metadata" is taken by the declarative base
    metadata_json = Column(JSON, nullable=True, default=dict)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    recipient = relationship("User")
