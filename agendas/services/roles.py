"""Membership model: legal roles per agenda type and effective-role lookup.

The owner of an agenda is never stored as a membership row. Every component
that needs to know "what is this user in this agenda" goes through
:func:`effective_role` (pure) or :func:`get_effective_role` (loads the
membership first), which check ownership before membership.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional
from uuid import UUID

from agendas.core.errors import InvalidError
from agendas.models import Agenda, AgendaMember, AgendaType, Role

if TYPE_CHECKING:
    from agendas.services.storage import Storage


LEGAL_ROLES: dict[AgendaType, frozenset[Role]] = {
    AgendaType.PERSONAL: frozenset(),
    AgendaType.LABORAL: frozenset({Role.CHIEF, Role.EMPLOYEE}),
    AgendaType.EDUCATIVA: frozenset({Role.PROFESSOR, Role.STUDENT}),
    AgendaType.COLABORATIVA: frozenset({Role.EDITOR, Role.VIEWER}),
}

# Role given to invitees when the inviter does not pick one.
DEFAULT_ROLES: dict[AgendaType, Role] = {
    AgendaType.LABORAL: Role.EMPLOYEE,
    AgendaType.EDUCATIVA: Role.STUDENT,
    AgendaType.COLABORATIVA: Role.VIEWER,
}


def parse_role(value: str | Role) -> Role:
    """Canonicalize a role name coming from the outside (TEACHER → PROFESSOR)."""
    try:
        return Role(value)
    except ValueError:
        raise InvalidError(f"Unknown role: {value}") from None


def parse_agenda_type(value: str | AgendaType) -> AgendaType:
    try:
        return AgendaType(value)
    except ValueError:
        raise InvalidError(f"Unknown agenda type: {value}") from None


def legal_roles(agenda_type: AgendaType) -> frozenset[Role]:
    return LEGAL_ROLES[agenda_type]


def is_legal_role(agenda_type: AgendaType, role: Role) -> bool:
    return role in LEGAL_ROLES[agenda_type]


def ensure_legal_role(agenda_type: AgendaType, role: Role) -> Role:
    """Raise ``InvalidError`` unless ``role`` may be stored on a membership."""
    if agenda_type == AgendaType.PERSONAL:
        raise InvalidError("Personal agendas cannot have members")
    if not is_legal_role(agenda_type, role):
        allowed = ", ".join(sorted(r.value for r in LEGAL_ROLES[agenda_type]))
        raise InvalidError(
            f"Role {role.value} is not valid for {agenda_type.value} agendas "
            f"(allowed: {allowed})"
        )
    return role


def resolve_invite_role(agenda_type: AgendaType, requested: Optional[str]) -> Role:
    """Role for a new member: the requested one if legal, else the type default."""
    if agenda_type == AgendaType.PERSONAL:
        raise InvalidError("Personal agendas cannot have members")
    if requested is None:
        return DEFAULT_ROLES[agenda_type]
    return ensure_legal_role(agenda_type, parse_role(requested))


def effective_role(
    agenda: Agenda,
    user_id: UUID,
    membership: Optional[AgendaMember],
) -> Optional[Role]:
    """OWNER if the user owns the agenda, else the stored role, else ``None``."""
    if agenda.is_owner(user_id):
        return Role.OWNER
    if membership is None:
        return None
    if membership.agenda_id != agenda.id or membership.user_id != user_id:
        return None
    return membership.member_role


def get_effective_role(
    storage: "Storage", agenda: Agenda, user_id: UUID
) -> Optional[Role]:
    if agenda.is_owner(user_id):
        return Role.OWNER
    return effective_role(agenda, user_id, storage.get_membership(agenda.id, user_id))
