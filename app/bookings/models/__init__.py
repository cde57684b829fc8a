from app.core.database import Base
from .bookings import Booking, BookingStatus, CAPACITY_HOLDING_STATUSES

__all__ = [
    "Base",
    "Booking",
    "BookingStatus",
    "CAPACITY_HOLDING_STATUSES",
]
