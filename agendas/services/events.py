"""Event operations: create, read, update and delete.

Reads always go through the visibility resolver. An event the caller may
not see is reported as missing, never as forbidden.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Iterable, Optional
from uuid import UUID

from agendas.core.clock import as_naive_utc
from agendas.core.errors import ConflictError, InvalidError, NotFoundError
from agendas.models import Agenda, AgendaType, Event, EventStatus, NotificationType
from agendas.schemas import EventCreate, EventUpdate
from agendas.services.conflicts import find_conflicts
from agendas.services.lifecycle import initial_status
from agendas.services.notifications import (
    Notifier,
    agenda_audience,
    approver_ids,
    dispatch,
    event_payload,
    fan_out_recipients,
)
from agendas.services.permissions import (
    Action,
    Decision,
    authorize,
    ensure_allowed,
    event_permissions,
)
from agendas.services.roles import get_effective_role
from agendas.services.visibility import filter_visible, resolve_visibility

if TYPE_CHECKING:
    from agendas.services.storage import Storage

logger = logging.getLogger(__name__)

# Columns an update may not clear; a null for them means "leave as is"
_REQUIRED_FIELDS = frozenset(
    {"title", "timezone", "starts_at", "ends_at", "all_day", "is_private", "visible_to_students"}
)


def _check_time_range(starts_at: datetime, ends_at: datetime) -> None:
    if starts_at >= ends_at:
        raise InvalidError("Event must end after it starts")


def _check_share_list(storage: "Storage", agenda: Agenda, user_ids: Iterable[UUID]) -> set[UUID]:
    requested = set(user_ids)
    outsiders = requested - set(agenda_audience(storage, agenda))
    if outsiders:
        raise InvalidError("Events can only be shared with members of the agenda")
    return requested


def _load_agenda(storage: "Storage", agenda_id: UUID) -> Agenda:
    agenda = storage.get_agenda(agenda_id)
    if agenda is None:
        raise NotFoundError("Agenda not found")
    return agenda


def create_event(
    storage: "Storage",
    notifier: Notifier,
    agenda: Agenda,
    requester_id: UUID,
    payload: EventCreate,
) -> Event:
    """Create an event after permission and conflict checks.

    Employees of work agendas get a PENDING_APPROVAL event and the owner and
    chiefs are asked to review it; everyone else gets a CONFIRMED event.

    Raises:
        ForbiddenError: The requester may not create events in ``agenda``.
        InvalidError: Bad time range or share list.
        ConflictError: The creator already has a confirmed event in the same
            agenda overlapping the slot. ``conflicts`` lists those events.
    """
    starts_at = as_naive_utc(payload.starts_at)
    ends_at = as_naive_utc(payload.ends_at)
    _check_time_range(starts_at, ends_at)

    ensure_allowed(
        authorize(storage, Action.CREATE_EVENT, agenda, requester_id),
        action=Action.CREATE_EVENT,
        requester_id=requester_id,
    )
    role = get_effective_role(storage, agenda, requester_id)
    shared_with = _check_share_list(storage, agenda, payload.shared_with)

    conflicts = find_conflicts(storage, agenda.id, requester_id, starts_at, ends_at)
    if conflicts:
        raise ConflictError(
            f"Time slot conflicts with {len(conflicts)} existing event(s)", conflicts
        )

    event = Event(
        agenda_id=agenda.id,
        creator_id=requester_id,
        title=payload.title,
        description=payload.description,
        location=payload.location,
        color=payload.color,
        timezone=payload.timezone,
        starts_at=starts_at,
        ends_at=ends_at,
        all_day=payload.all_day,
        status=initial_status(agenda.agenda_type, role).value,
        is_private=payload.is_private,
        visible_to_students=(
            payload.visible_to_students and agenda.agenda_type == AgendaType.EDUCATIVA
        ),
    )
    event.set_shared_with(shared_with)
    storage.add_event(event)
    storage.commit()
    storage.refresh(event)
    logger.info(f"Event {event.id} created in agenda {agenda.id} as {event.status}")

    if event.event_status == EventStatus.PENDING_APPROVAL:
        recipients = [uid for uid in approver_ids(storage, agenda) if uid != requester_id]
        dispatch(
            notifier,
            recipients,
            NotificationType.EVENT_PENDING_APPROVAL,
            event_payload(event, requester_id),
        )
    else:
        dispatch(
            notifier,
            fan_out_recipients(storage, agenda, exclude=requester_id),
            NotificationType.EVENT_CREATED,
            event_payload(event, requester_id),
        )
    return event


def update_event(
    storage: "Storage",
    notifier: Notifier,
    event: Event,
    requester_id: UUID,
    payload: EventUpdate,
) -> Event:
    agenda = _load_agenda(storage, event.agenda_id)
    ensure_allowed(
        authorize(storage, Action.UPDATE_EVENT, agenda, requester_id, event=event),
        action=Action.UPDATE_EVENT,
        requester_id=requester_id,
    )

    changes = {
        field: value
        for field, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or field not in _REQUIRED_FIELDS
    }
    shared_with = changes.pop("shared_with", None)
    for field in ("starts_at", "ends_at"):
        if field in changes:
            changes[field] = as_naive_utc(changes[field])
    _check_time_range(
        changes.get("starts_at", event.starts_at), changes.get("ends_at", event.ends_at)
    )
    if changes.get("visible_to_students") and agenda.agenda_type != AgendaType.EDUCATIVA:
        changes["visible_to_students"] = False
    if shared_with is not None:
        event.set_shared_with(_check_share_list(storage, agenda, shared_with))

    for field, value in changes.items():
        setattr(event, field, value)
    event.touch()
    storage.save(event)
    storage.commit()
    storage.refresh(event)
    logger.info(f"Event {event.id} updated by user {requester_id}")

    dispatch(
        notifier,
        fan_out_recipients(storage, agenda, exclude=requester_id),
        NotificationType.EVENT_UPDATED,
        event_payload(event, requester_id),
    )
    return event


def delete_event(
    storage: "Storage",
    notifier: Notifier,
    event: Event,
    requester_id: UUID,
) -> None:
    agenda = _load_agenda(storage, event.agenda_id)
    ensure_allowed(
        authorize(storage, Action.DELETE_EVENT, agenda, requester_id, event=event),
        action=Action.DELETE_EVENT,
        requester_id=requester_id,
    )

    payload = event_payload(event, requester_id)
    event_id = event.id
    storage.delete_event(event)
    storage.commit()
    logger.info(f"Event {event_id} deleted by user {requester_id}")

    dispatch(
        notifier,
        fan_out_recipients(storage, agenda, exclude=requester_id),
        NotificationType.EVENT_DELETED,
        payload,
    )


def list_visible_events(
    storage: "Storage",
    viewer_id: UUID,
    *,
    agenda_id: Optional[UUID] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    status: Optional[EventStatus] = None,
) -> list[Event]:
    """Events the viewer may see, optionally limited to one agenda or window.

    ``start``/``end`` select events overlapping the window.
    """
    agendas = {agenda.id: agenda for agenda, _ in storage.list_accessible_agendas(viewer_id)}
    if agenda_id is not None:
        if agenda_id not in agendas:
            raise NotFoundError("Agenda not found")
        agendas = {agenda_id: agendas[agenda_id]}

    memberships = storage.get_memberships(viewer_id, agendas.keys())
    events = storage.list_events(
        agendas.keys(),
        starts_before=as_naive_utc(end) if end else None,
        ends_after=as_naive_utc(start) if start else None,
        status=status,
    )
    return filter_visible(events, agendas, viewer_id, memberships)


def get_visible_event(storage: "Storage", viewer_id: UUID, event_id: UUID) -> Event:
    event = storage.get_event(event_id)
    if event is None:
        raise NotFoundError("Event not found")
    agenda = storage.get_agenda(event.agenda_id)
    if agenda is None:
        raise NotFoundError("Event not found")
    membership = storage.get_membership(agenda.id, viewer_id)
    if not resolve_visibility(event, agenda, viewer_id, membership):
        raise NotFoundError("Event not found")
    return event


def get_event_permissions(
    storage: "Storage", viewer_id: UUID, event_id: UUID
) -> dict[Action, Decision]:
    event = get_visible_event(storage, viewer_id, event_id)
    agenda = _load_agenda(storage, event.agenda_id)
    return event_permissions(storage, agenda, viewer_id, event)
