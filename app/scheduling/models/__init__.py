from app.core.database import Base
from .availability import AvailabilityTemplate
from .sessions import TrainingSession, SessionStatus, SessionType

__all__ = [
    "Base",
    "AvailabilityTemplate",
    "TrainingSession",
    "SessionStatus",
    "SessionType",
]
