from app.core.database import Base
from .users import User, UserRole, Coach, Parent
from .players import Player

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Coach",
    "Parent",
    "Player",
]
