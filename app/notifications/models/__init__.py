from app.core.database import Base
from .notifications import Notification, NotificationType

__all__ = ["Base", "Notification", "NotificationType"]
