from .agenda import Agenda
from .agenda_member import AgendaMember
from .enums import AgendaType, EventStatus, NotificationType, Role
from .event import Event
from .notification import Notification
from .user import User

__all__ = [
    "Agenda",
    "AgendaMember",
    "AgendaType",
    "Event",
    "EventStatus",
    "Notification",
    "NotificationType",
    "Role",
    "User",
]
