from sqlalchemy import (
    Column,
    Integer,
    String,
    Date,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    CheckConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base


class AvailabilityTemplate(Base):
    """
    Weekly slot a coach offers. Consumed by the session generator.

    day_of_week follows the Sunday = 0 convention (0..6).
    Times are local "HH:MM" strings, so lexical order is time order.
    """

    __tablename__ = "availability_templates"

    id = Column(Integer, primary_key=True)
    coach_id = Column(
        Integer,
        ForeignKey("coaches.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    day_of_week = Column(Integer, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    location = Column(String(255), nullable=True)

    is_recurring = Column(Boolean, default=True, nullable=False)
    specific_date = Column(Date, nullable=True)
    max_players = Column(Integer, default=1, nullable=False)

    # Soft delete only: generated sessions keep their template_id
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    coach = relationship("Coach")

    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_template_day_of_week"),
        CheckConstraint("max_players >= 1", name="ck_template_max_players"),
        CheckConstraint("start_time < end_time", name="ck_template_time_range"),
        Index("ix_templates_coach_active", "coach_id", "is_active"),
    )

    def __repr__(self):
        return (
            f"<AvailabilityTemplate(id={self.id}, coach_id={self.coach_id}, "
            f"day={self.day_of_week}, {self.start_time}-{self.end_time})>"
        )
