from sqlalchemy import (
    Column,
    Integer,
    String,
    Date,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base


class Player(Base):
    """Athlete scoped to one coach and optionally one parent"""

    __tablename__ = "players"

    id = Column(Integer, primary_key=True)
    coach_id = Column(
        Integer, ForeignKey("coaches.id", ondelete="CASCADE"), nullable=False
    )
    parent_id = Column(
        Integer, ForeignKey("parents.id", ondelete="SET NULL"), nullable=True
    )

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    date_of_birth = Column(Date, nullable=True)
    position = Column(String(50), nullable=True)
    height_cm = Column(Integer, nullable=True)
    weight_kg = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    # Soft delete; bookings keep pointing at inactive players
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    coach = relationship("Coach")
    parent = relationship("Parent")

    __table_args__ = (
        Index("ix_players_coach_active", "coach_id", "is_active"),
        Index("ix_players_parent_active", "parent_id", "is_active"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Player(id={self.id}, coach_id={self.coach_id}, parent_id={self.parent_id})>"
