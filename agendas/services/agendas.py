from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import UUID

from agendas.core.errors import NotFoundError
from agendas.models import Agenda, NotificationType, Role
from agendas.schemas import AgendaCreate, AgendaUpdate
from agendas.services.notifications import (
    Notifier,
    build_payload,
    dispatch,
    fan_out_recipients,
)
from agendas.services.permissions import Action, authorize, ensure_allowed
from agendas.services.roles import get_effective_role

if TYPE_CHECKING:
    from agendas.services.storage import Storage

logger = logging.getLogger(__name__)


def create_agenda(storage: "Storage", owner_id: UUID, payload: AgendaCreate) -> Agenda:
    agenda = Agenda(
        name=payload.name,
        description=payload.description,
        timezone=payload.timezone,
        color=payload.color,
        type=payload.type.value,
        owner_id=owner_id,
    )
    storage.add_agenda(agenda)
    storage.commit()
    storage.refresh(agenda)
    logger.info(f"Agenda {agenda.id} ({agenda.type}) created by user {owner_id}")
    return agenda


def list_agendas(storage: "Storage", user_id: UUID) -> list[tuple[Agenda, Role]]:
    return storage.list_accessible_agendas(user_id)


def get_agenda(storage: "Storage", agenda_id: UUID, viewer_id: UUID) -> tuple[Agenda, Role]:
    """The agenda and the viewer's role. Non-members get ``NotFoundError``."""
    agenda = storage.get_agenda(agenda_id)
    if agenda is None:
        raise NotFoundError("Agenda not found")
    role = get_effective_role(storage, agenda, viewer_id)
    if role is None:
        raise NotFoundError("Agenda not found")
    return agenda, role


def update_agenda(
    storage: "Storage",
    notifier: Notifier,
    agenda: Agenda,
    requester_id: UUID,
    payload: AgendaUpdate,
) -> Agenda:
    ensure_allowed(
        authorize(storage, Action.MANAGE_AGENDA, agenda, requester_id),
        action=Action.MANAGE_AGENDA,
        requester_id=requester_id,
    )
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(agenda, field, value)
    agenda.touch()
    storage.save(agenda)
    storage.commit()
    storage.refresh(agenda)

    dispatch(
        notifier,
        fan_out_recipients(storage, agenda, exclude=requester_id),
        NotificationType.AGENDA_UPDATED,
        build_payload(sender_id=requester_id, agenda_id=agenda.id, agenda_name=agenda.name),
    )
    return agenda


def delete_agenda(
    storage: "Storage",
    notifier: Notifier,
    agenda: Agenda,
    requester_id: UUID,
) -> None:
    """Delete the agenda with its memberships, events and open invitations."""
    ensure_allowed(
        authorize(storage, Action.MANAGE_AGENDA, agenda, requester_id),
        action=Action.MANAGE_AGENDA,
        requester_id=requester_id,
    )
    recipients = fan_out_recipients(storage, agenda, exclude=requester_id)
    payload = build_payload(
        sender_id=requester_id, agenda_id=agenda.id, agenda_name=agenda.name
    )
    agenda_id = agenda.id

    storage.delete_agenda(agenda)
    storage.commit()
    logger.info(f"Agenda {agenda_id} deleted by user {requester_id}")

    dispatch(notifier, recipients, NotificationType.AGENDA_DELETED, payload)
