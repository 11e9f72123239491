"""Notification sink and recipient selection.

Services stage and commit their state change first, then call
:func:`dispatch`. A failing notifier is logged and never undoes the change.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, Optional, Protocol
from uuid import UUID

from sqlmodel import Session

from agendas.core.config import settings
from agendas.core.celery_utils import safe_celery_delay
from agendas.models import Agenda, AgendaType, Event, Notification, NotificationType, Role

if TYPE_CHECKING:
    from agendas.services.storage import Storage

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify(
        self,
        recipient_ids: list[UUID],
        type: NotificationType,
        payload: dict[str, Any],
    ) -> None: ...


def build_payload(
    *,
    sender_id: Optional[UUID],
    agenda_id: Optional[UUID] = None,
    event_id: Optional[UUID] = None,
    **data: Any,
) -> dict[str, Any]:
    """JSON-safe payload shared by every notifier backend."""
    return {
        "sender_id": str(sender_id) if sender_id else None,
        "agenda_id": str(agenda_id) if agenda_id else None,
        "event_id": str(event_id) if event_id else None,
        "data": {key: value for key, value in data.items() if value is not None},
    }


def event_payload(event: Event, sender_id: UUID, **extra: Any) -> dict[str, Any]:
    return build_payload(
        sender_id=sender_id,
        agenda_id=event.agenda_id,
        event_id=event.id,
        title=event.title,
        starts_at=event.starts_at.isoformat(),
        ends_at=event.ends_at.isoformat(),
        **extra,
    )


def build_notifications(
    recipient_ids: Iterable[UUID | str],
    type: NotificationType | str,
    payload: dict[str, Any],
) -> list[Notification]:
    notification_type = NotificationType(type)
    sender_id = payload.get("sender_id")
    agenda_id = payload.get("agenda_id")
    event_id = payload.get("event_id")
    return [
        Notification(
            recipient_id=UUID(str(recipient_id)),
            sender_id=UUID(sender_id) if sender_id else None,
            type=notification_type.value,
            agenda_id=UUID(agenda_id) if agenda_id else None,
            event_id=UUID(event_id) if event_id else None,
            data=dict(payload.get("data") or {}),
        )
        for recipient_id in recipient_ids
    ]


class DatabaseNotifier:
    """Writes notification rows synchronously in the given session."""

    def __init__(self, session: Session):
        self.session = session

    def notify(
        self,
        recipient_ids: list[UUID],
        type: NotificationType,
        payload: dict[str, Any],
    ) -> None:
        notifications = build_notifications(recipient_ids, type, payload)
        try:
            self.session.add_all(notifications)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        logger.info(f"Created {len(notifications)} {type.value} notification(s)")


class CeleryNotifier:
    """Queues delivery to a worker; the worker persists the rows."""

    def notify(
        self,
        recipient_ids: list[UUID],
        type: NotificationType,
        payload: dict[str, Any],
    ) -> None:
        from agendas.tasks.notifications import deliver_notifications_task

        safe_celery_delay(
            deliver_notifications_task,
            [str(recipient_id) for recipient_id in recipient_ids],
            type.value,
            payload,
        )


def get_notifier(session: Session) -> Notifier:
    if settings.NOTIFICATION_BACKEND == "celery":
        return CeleryNotifier()
    return DatabaseNotifier(session)


def dispatch(
    notifier: Notifier,
    recipient_ids: Iterable[UUID],
    type: NotificationType,
    payload: dict[str, Any],
) -> None:
    """Send a notification, deduplicating recipients. Never raises."""
    recipients = list(dict.fromkeys(recipient_ids))
    if not recipients:
        return
    try:
        notifier.notify(recipients, type, payload)
    except Exception:
        logger.exception(
            f"Failed to dispatch {type.value} notification to {len(recipients)} user(s)"
        )


def agenda_audience(storage: "Storage", agenda: Agenda) -> list[UUID]:
    """Owner first, then every member."""
    members = [membership.user_id for membership in storage.list_memberships(agenda.id)]
    return list(dict.fromkeys([agenda.owner_id, *members]))


def fan_out_recipients(
    storage: "Storage", agenda: Agenda, exclude: Optional[UUID] = None
) -> list[UUID]:
    """Recipients of create/update/delete notices. Personal agendas have none."""
    if agenda.agenda_type == AgendaType.PERSONAL:
        return []
    return [user_id for user_id in agenda_audience(storage, agenda) if user_id != exclude]


def approver_ids(storage: "Storage", agenda: Agenda) -> list[UUID]:
    """Users who may approve pending events: the owner and every chief."""
    chiefs = [
        membership.user_id
        for membership in storage.list_memberships(agenda.id)
        if membership.member_role == Role.CHIEF
    ]
    return list(dict.fromkeys([agenda.owner_id, *chiefs]))
