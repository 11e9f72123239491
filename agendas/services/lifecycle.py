"""Event approval lifecycle.

::

    PENDING_APPROVAL --approve--> CONFIRMED
    PENDING_APPROVAL --reject---> REJECTED

CONFIRMED and REJECTED are terminal. Deleting an event is not a transition.
"""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from agendas.core.clock import Clock, utcnow
from agendas.core.errors import ConflictError, InvalidError, NotFoundError
from agendas.models import AgendaType, Event, EventStatus, NotificationType, Role
from agendas.services.notifications import Notifier, dispatch, event_payload
from agendas.services.permissions import Action, authorize, ensure_allowed

if TYPE_CHECKING:
    from agendas.services.storage import Storage

logger = logging.getLogger(__name__)


class Transition(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"


# Initial status for creations that do not start CONFIRMED.
INITIAL_STATUS: dict[tuple[AgendaType, Role], EventStatus] = {
    (AgendaType.LABORAL, Role.EMPLOYEE): EventStatus.PENDING_APPROVAL,
}

_VALID_TRANSITIONS: dict[tuple[EventStatus, Transition], EventStatus] = {
    (EventStatus.PENDING_APPROVAL, Transition.APPROVE): EventStatus.CONFIRMED,
    (EventStatus.PENDING_APPROVAL, Transition.REJECT): EventStatus.REJECTED,
}

_ACTIONS = {
    Transition.APPROVE: Action.APPROVE_EVENT,
    Transition.REJECT: Action.REJECT_EVENT,
}

_NOTIFICATIONS = {
    Transition.APPROVE: NotificationType.EVENT_APPROVED,
    Transition.REJECT: NotificationType.EVENT_REJECTED,
}


def initial_status(agenda_type: AgendaType, role: Role) -> EventStatus:
    return INITIAL_STATUS.get((agenda_type, role), EventStatus.CONFIRMED)


def next_status(current: EventStatus, transition: Transition) -> Optional[EventStatus]:
    """Target status, or ``None`` when ``transition`` is not legal from ``current``."""
    return _VALID_TRANSITIONS.get((current, transition))


def parse_transition(value: str | Transition) -> Transition:
    try:
        return Transition(value)
    except ValueError:
        raise InvalidError(f"Unknown transition: {value}") from None


def transition_event(
    storage: "Storage",
    notifier: Notifier,
    event: Event,
    action: str | Transition,
    requester_id: UUID,
    reason: Optional[str] = None,
    clock: Clock = utcnow,
) -> Event:
    """Approve or reject a pending event.

    Args:
        storage: Storage holding the event.
        notifier: Sink for the creator's notification.
        event: Event to transition.
        action: ``"approve"`` or ``"reject"``.
        requester_id: User performing the transition.
        reason: Optional rejection reason, forwarded to the creator.
        clock: Source of the approval timestamp.

    Returns:
        The event, refreshed after the write.

    Raises:
        ForbiddenError: The requester may not approve or reject here.
        ConflictError: The event is no longer pending, either because it was
            already decided or because a concurrent request won the race.
    """
    transition = parse_transition(action)
    agenda = storage.get_agenda(event.agenda_id)
    if agenda is None:
        raise NotFoundError("Agenda not found")

    ensure_allowed(
        authorize(storage, _ACTIONS[transition], agenda, requester_id, event=event),
        action=_ACTIONS[transition],
        requester_id=requester_id,
    )

    current = event.event_status
    target = next_status(current, transition)
    if target is None:
        raise ConflictError(
            f"Cannot {transition.value} an event that is {current.value.lower()}"
        )

    now = clock()
    approved_by = requester_id if transition == Transition.APPROVE else None
    changed = storage.update_event_status(
        event.id,
        current,
        target,
        approved_by=approved_by,
        approved_at=now if approved_by else None,
        updated_at=now,
    )
    if not changed:
        storage.rollback()
        raise ConflictError("Event was modified by another request, reload and retry")

    storage.commit()
    storage.refresh(event)
    logger.info(
        f"Event {event.id} {current.value} -> {target.value} by user {requester_id}"
    )

    dispatch(
        notifier,
        [event.creator_id],
        _NOTIFICATIONS[transition],
        event_payload(
            event,
            requester_id,
            reason=reason if transition == Transition.REJECT else None,
        ),
    )
    return event
