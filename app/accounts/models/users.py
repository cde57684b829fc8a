import enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    DateTime,
    ForeignKey,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base


class UserRole(str, enum.Enum):
    coach = "COACH"
    parent = "PARENT"
    admin = "ADMIN"


class User(Base):
    """Login identity. Role is stored here and carried in the access token."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=True)
    phone_number = Column(String(32), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.parent.value)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    coach_profile = relationship("Coach", back_populates="user", uselist=False)
    parent_profile = relationship("Parent", back_populates="user", uselist=False)

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"


class Coach(Base):
    __tablename__ = "coaches"

    id = Column(Integer, primary_key=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    bio = Column(String(1024), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="coach_profile")

    def __repr__(self):
        return f"<Coach(id={self.id}, user_id={self.user_id})>"


class Parent(Base):
    __tablename__ = "parents"

    id = Column(Integer, primary_key=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="parent_profile")

    def __repr__(self):
        return f"<Parent(id={self.id}, user_id={self.user_id})>"
