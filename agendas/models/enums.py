"""Closed vocabularies for agenda types, roles and event status."""

from __future__ import annotations

import enum


class AgendaType(str, enum.Enum):
    """Flavor of an agenda; decides legal roles and visibility rules."""

    PERSONAL = "PERSONAL"
    LABORAL = "LABORAL"
    EDUCATIVA = "EDUCATIVA"
    COLABORATIVA = "COLABORATIVA"

    @classmethod
    def _missing_(cls, value: object) -> "AgendaType | None":
        if isinstance(value, str):
            return cls.__members__.get(value.strip().upper())
        return None


class Role(str, enum.Enum):
    """Role of a user inside one agenda.

    OWNER is synthetic: it is derived from ``Agenda.owner_id`` and never
    stored on a membership row.
    """

    OWNER = "OWNER"
    CHIEF = "CHIEF"
    EMPLOYEE = "EMPLOYEE"
    PROFESSOR = "PROFESSOR"
    STUDENT = "STUDENT"
    EDITOR = "EDITOR"
    VIEWER = "VIEWER"

    @classmethod
    def _missing_(cls, value: object) -> "Role | None":
        if not isinstance(value, str):
            return None
        normalized = value.strip().upper()
        normalized = _ROLE_ALIASES.get(normalized, normalized)
        return cls.__members__.get(normalized)


# Older clients send TEACHER for the professor role.
_ROLE_ALIASES = {"TEACHER": "PROFESSOR"}


class EventStatus(str, enum.Enum):
    """Approval state of an event."""

    CONFIRMED = "CONFIRMED"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    REJECTED = "REJECTED"


class NotificationType(str, enum.Enum):
    EVENT_CREATED = "EVENT_CREATED"
    EVENT_UPDATED = "EVENT_UPDATED"
    EVENT_DELETED = "EVENT_DELETED"
    EVENT_PENDING_APPROVAL = "EVENT_PENDING_APPROVAL"
    EVENT_APPROVED = "EVENT_APPROVED"
    EVENT_REJECTED = "EVENT_REJECTED"
    AGENDA_INVITE = "AGENDA_INVITE"
    AGENDA_UPDATED = "AGENDA_UPDATED"
    AGENDA_DELETED = "AGENDA_DELETED"
    AGENDA_REMOVED = "AGENDA_REMOVED"
    ROLE_CHANGED = "ROLE_CHANGED"
