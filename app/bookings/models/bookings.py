"""Booking model: a parent's claim on one capacity slot of a training session"""

import enum

from sqlalchemy import (
    Column,
    Integer,
    Text,
    String,
    DateTime,
    ForeignKey,
    Index,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


class BookingStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"
    completed = "completed"
    no_show = "no_show"


# Statuses that hold a capacity slot during admission
CAPACITY_HOLDING_STATUSES = (BookingStatus.pending.value, BookingStatus.confirmed.value)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True)
    session_id = Column(
        Integer,
        ForeignKey("training_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    player_id = Column(
        Integer,
        ForeignKey("players.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    parent_id = Column(
        Integer,
        ForeignKey("parents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    status = Column(String(20), default=BookingStatus.pending.value, nullable=False)
    notes = Column(Text, nullable=True)

    requested_at = Column(DateTime(timezone=True), server_default=func.now())
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    session = relationship("TrainingSession", back_populates="bookings")
    player = relationship("Player")
    parent = relationship("Parent")

    __table_args__ = (
        # At most one live booking per player and session; cancelled rows free the pair
        Index(
            "uq_booking_session_player_active",
            "session_id",
            "player_id",
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
        Index("ix_bookings_session_status", "session_id", "status"),
        Index("ix_bookings_parent_status", "parent_id", "status"),
    )

    def __repr__(self):
        return f"<Booking(id={self.id}, session_id={self.session_id}, player_id={self.player_id}, status={self.status})>"
