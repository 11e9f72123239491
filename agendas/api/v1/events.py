from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from agendas.api.deps import CurrentUser, NotifierDep, StorageDep
from agendas.models import Event, EventStatus
from agendas.schemas import (
    EventCreate,
    EventRead,
    EventUpdate,
    PermissionSummary,
    RejectRequest,
)
from agendas.services import agendas as agenda_service
from agendas.services import events as event_service
from agendas.services.lifecycle import Transition, transition_event
from agendas.services.permissions import Action

router = APIRouter()


@router.get("/", response_model=List[EventRead], summary="List visible events")
def list_events(
    storage: StorageDep,
    current_user: CurrentUser,
    agenda_id: Optional[UUID] = Query(default=None, description="Only this agenda"),
    start: Optional[datetime] = Query(default=None, description="Window start"),
    end: Optional[datetime] = Query(default=None, description="Window end"),
    status_filter: Optional[EventStatus] = Query(default=None, alias="status"),
) -> List[Event]:
    """Events of every accessible agenda that the current user may see."""
    return event_service.list_visible_events(
        storage,
        current_user.id,
        agenda_id=agenda_id,
        start=start,
        end=end,
        status=status_filter,
    )


@router.post(
    "/",
    response_model=EventRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create event",
)
def create_event(
    payload: EventCreate,
    storage: StorageDep,
    notifier: NotifierDep,
    current_user: CurrentUser,
) -> Event:
    agenda, _ = agenda_service.get_agenda(storage, payload.agenda_id, current_user.id)
    return event_service.create_event(storage, notifier, agenda, current_user.id, payload)


@router.get("/{event_id}", response_model=EventRead, summary="Get event")
def get_event(event_id: UUID, storage: StorageDep, current_user: CurrentUser) -> Event:
    return event_service.get_visible_event(storage, current_user.id, event_id)


@router.patch("/{event_id}", response_model=EventRead, summary="Update event")
def update_event(
    event_id: UUID,
    payload: EventUpdate,
    storage: StorageDep,
    notifier: NotifierDep,
    current_user: CurrentUser,
) -> Event:
    event = event_service.get_visible_event(storage, current_user.id, event_id)
    return event_service.update_event(storage, notifier, event, current_user.id, payload)


@router.delete(
    "/{event_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete event",
)
def delete_event(
    event_id: UUID,
    storage: StorageDep,
    notifier: NotifierDep,
    current_user: CurrentUser,
) -> Response:
    event = event_service.get_visible_event(storage, current_user.id, event_id)
    event_service.delete_event(storage, notifier, event, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{event_id}/approve", response_model=EventRead, summary="Approve event")
def approve_event(
    event_id: UUID,
    storage: StorageDep,
    notifier: NotifierDep,
    current_user: CurrentUser,
) -> Event:
    event = event_service.get_visible_event(storage, current_user.id, event_id)
    return transition_event(storage, notifier, event, Transition.APPROVE, current_user.id)


@router.post("/{event_id}/reject", response_model=EventRead, summary="Reject event")
def reject_event(
    event_id: UUID,
    storage: StorageDep,
    notifier: NotifierDep,
    current_user: CurrentUser,
    payload: Optional[RejectRequest] = None,
) -> Event:
    event = event_service.get_visible_event(storage, current_user.id, event_id)
    return transition_event(
        storage,
        notifier,
        event,
        Transition.REJECT,
        current_user.id,
        reason=payload.reason if payload else None,
    )


@router.get(
    "/{event_id}/permissions",
    response_model=PermissionSummary,
    summary="What the current user may do with the event",
)
def get_event_permissions(
    event_id: UUID, storage: StorageDep, current_user: CurrentUser
) -> PermissionSummary:
    decisions = event_service.get_event_permissions(storage, current_user.id, event_id)
    return PermissionSummary(
        can_update=bool(decisions[Action.UPDATE_EVENT]),
        can_delete=bool(decisions[Action.DELETE_EVENT]),
        can_approve=bool(decisions[Action.APPROVE_EVENT]),
        can_reject=bool(decisions[Action.REJECT_EVENT]),
        reasons={
            action.value: decision.reason
            for action, decision in decisions.items()
            if not decision and decision.reason
        },
    )
