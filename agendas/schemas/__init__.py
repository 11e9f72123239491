from .agenda import (
    AgendaCreate,
    AgendaRead,
    AgendaReadWithRole,
    AgendaUpdate,
    InvitationAction,
    InvitationCreate,
    MemberRead,
    RoleUpdate,
)
from .event import (
    ConflictEventSummary,
    EventCreate,
    EventRead,
    EventUpdate,
    PermissionSummary,
    RejectRequest,
)
from .notification import NotificationRead, UnreadCount
from .user import (
    RefreshTokenRequest,
    TokenPair,
    UserCreate,
    UserLogin,
    UserRead,
)

__all__ = [
    "AgendaCreate",
    "AgendaRead",
    "AgendaReadWithRole",
    "AgendaUpdate",
    "ConflictEventSummary",
    "EventCreate",
    "EventRead",
    "EventUpdate",
    "InvitationAction",
    "InvitationCreate",
    "MemberRead",
    "NotificationRead",
    "PermissionSummary",
    "RefreshTokenRequest",
    "RejectRequest",
    "RoleUpdate",
    "TokenPair",
    "UnreadCount",
    "UserCreate",
    "UserLogin",
    "UserRead",
]
