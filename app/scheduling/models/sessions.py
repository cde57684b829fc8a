import enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    Date,
    Text,
    DateTime,
    ForeignKey,
    Index,
    UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base


class SessionType(str, enum.Enum):
    individual = "individual"
    group = "group"
    assessment = "assessment"
    trial = "trial"


class SessionStatus(str, enum.Enum):
    scheduled = "scheduled"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


class TrainingSession(Base):
    """Concrete dated training event. Never deleted, only cancelled."""

    __tablename__ = "training_sessions"

    id = Column(Integer, primary_key=True)
    coach_id = Column(
        Integer, ForeignKey("coaches.id", ondelete="CASCADE"), nullable=False
    )
    template_id = Column(
        Integer,
        ForeignKey("availability_templates.id", ondelete="SET NULL"),
        nullable=True,
    )

    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    location = Column(String(255), nullable=True)

    type = Column(String(20), default=SessionType.individual.value, nullable=False)
    status = Column(
        String(20),
        default=SessionStatus.scheduled.value,
        nullable=False,
        index=True,
    )
    max_participants = Column(Integer, default=1, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    coach = relationship("Coach")
    template = relationship("AvailabilityTemplate")
    bookings = relationship(
        "Booking",
        back_populates="session",
        order_by="Booking.id",
        passive_deletes=True,
    )

    __table_args__ = (
        # One session per coach slot, whatever its status; generator relies on it
        UniqueConstraint(
            "coach_id", "date", "start_time", name="uq_session_coach_date_start"
        ),
        CheckConstraint("max_participants >= 1", name="ck_session_max_participants"),
        CheckConstraint("start_time < end_time", name="ck_session_time_range"),
        Index("ix_sessions_status_date", "status", "date"),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in (SessionStatus.completed, SessionStatus.cancelled)

    def __repr__(self):
        return f"<TrainingSession(id={self.id}, coach_id={self.coach_id}, date={self.date}, start={self.start_time}, status={self.status})>"
