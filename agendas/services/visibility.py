"""Per-event visibility rules.

This module is the only place that decides whether a viewer may read an
event. Listings apply :func:`resolve_visibility` to every event individually
because privacy is a property of the event, not of the agenda.

Rules, first match wins:

1. Public events are visible to anyone with access to the agenda.
2. Creators always see their own events.
3. Viewers with no role in the agenda see nothing else.
4. The owner sees everything.
5. Per agenda type and role, see ``VISIBILITY_RULES``.
6. Anyone else sees the event only if it is explicitly shared with them.
"""

from __future__ import annotations

import enum
from typing import Iterable, Optional
from uuid import UUID

from agendas.models import Agenda, AgendaMember, AgendaType, Event, Role
from agendas.services.roles import effective_role


class Sight(str, enum.Enum):
    """What a role may see of the private events in an agenda."""

    ALL = "all"
    # visible_to_students flag, or explicit share
    RELEASED_TO_STUDENTS = "released_to_students"
    SHARED_ONLY = "shared_only"


# Collaborative agendas keep every event open to every member, private or
# not, matching the permissive behaviour of the primary read path.
VISIBILITY_RULES: dict[tuple[AgendaType, Role], Sight] = {
    (AgendaType.COLABORATIVA, Role.EDITOR): Sight.ALL,
    (AgendaType.COLABORATIVA, Role.VIEWER): Sight.ALL,
    (AgendaType.LABORAL, Role.CHIEF): Sight.ALL,
    (AgendaType.LABORAL, Role.EMPLOYEE): Sight.SHARED_ONLY,
    (AgendaType.EDUCATIVA, Role.PROFESSOR): Sight.ALL,
    (AgendaType.EDUCATIVA, Role.STUDENT): Sight.RELEASED_TO_STUDENTS,
}

FALLBACK_SIGHT = Sight.SHARED_ONLY


def _is_shared_with(event: Event, viewer_id: UUID) -> bool:
    return viewer_id in event.shared_with_user_ids


def resolve_visibility(
    event: Event,
    agenda: Agenda,
    viewer_id: UUID,
    membership: Optional[AgendaMember],
) -> bool:
    """Return whether ``viewer_id`` may see ``event``.

    Pure and total: a missing membership is a valid input and simply means
    the viewer has no role unless they own the agenda.
    """
    if event.agenda_id != agenda.id:
        return False

    role = effective_role(agenda, viewer_id, membership)

    if not event.is_private and role is not None:
        return True
    if event.creator_id == viewer_id:
        return True
    if role is None:
        return False
    if role == Role.OWNER:
        return True

    sight = VISIBILITY_RULES.get((agenda.agenda_type, role), FALLBACK_SIGHT)
    if sight == Sight.ALL:
        return True
    if sight == Sight.RELEASED_TO_STUDENTS and event.visible_to_students:
        return True
    return _is_shared_with(event, viewer_id)


def filter_visible(
    events: Iterable[Event],
    agendas: dict[UUID, Agenda],
    viewer_id: UUID,
    memberships: dict[UUID, AgendaMember],
) -> list[Event]:
    """Keep the events ``viewer_id`` may see, preserving order.

    ``agendas`` and ``memberships`` are keyed by agenda id; an event whose
    agenda is missing from ``agendas`` is dropped.
    """
    visible = []
    for event in events:
        agenda = agendas.get(event.agenda_id)
        if agenda is None:
            continue
        if resolve_visibility(event, agenda, viewer_id, memberships.get(agenda.id)):
            visible.append(event)
    return visible
