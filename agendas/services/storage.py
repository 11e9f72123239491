"""Persistence boundary for the agenda services.

Services talk to a :class:`Storage`; :class:`SessionStorage` implements it on
top of a SQLModel session. Status and role writes are conditional updates so
two concurrent writers cannot both win.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional, Protocol, Sequence
from uuid import UUID

from sqlalchemy import delete, func, update
from sqlmodel import Session, select

from agendas.models import (
    Agenda,
    AgendaMember,
    Event,
    EventStatus,
    Notification,
    NotificationType,
    Role,
    User,
)

logger = logging.getLogger(__name__)


class Storage(Protocol):
    def get_user(self, user_id: UUID) -> Optional[User]: ...

    def get_user_by_email(self, email: str) -> Optional[User]: ...

    def add_user(self, user: User) -> User: ...

    def get_agenda(self, agenda_id: UUID) -> Optional[Agenda]: ...

    def list_accessible_agendas(self, user_id: UUID) -> list[tuple[Agenda, Role]]: ...

    def add_agenda(self, agenda: Agenda) -> Agenda: ...

    def delete_agenda(self, agenda: Agenda) -> None: ...

    def get_membership(
        self, agenda_id: UUID, user_id: UUID
    ) -> Optional[AgendaMember]: ...

    def get_memberships(
        self, user_id: UUID, agenda_ids: Iterable[UUID]
    ) -> dict[UUID, AgendaMember]: ...

    def list_memberships(self, agenda_id: UUID) -> list[AgendaMember]: ...

    def add_membership(self, membership: AgendaMember) -> AgendaMember: ...

    def update_membership_role(
        self, agenda_id: UUID, user_id: UUID, expected: Role, new: Role
    ) -> bool: ...

    def delete_membership(self, membership: AgendaMember) -> None: ...

    def get_event(self, event_id: UUID) -> Optional[Event]: ...

    def list_events(
        self,
        agenda_ids: Iterable[UUID],
        *,
        starts_before: Optional[datetime] = None,
        ends_after: Optional[datetime] = None,
        status: Optional[EventStatus] = None,
        creator_id: Optional[UUID] = None,
    ) -> list[Event]: ...

    def add_event(self, event: Event) -> Event: ...

    def delete_event(self, event: Event) -> None: ...

    def update_event_status(
        self,
        event_id: UUID,
        expected: EventStatus,
        new: EventStatus,
        *,
        approved_by: Optional[UUID] = None,
        approved_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ) -> bool: ...

    def add_notifications(self, notifications: Sequence[Notification]) -> None: ...

    def get_notification(self, notification_id: UUID) -> Optional[Notification]: ...

    def list_notifications(
        self,
        recipient_id: UUID,
        *,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Notification]: ...

    def count_unread(self, recipient_id: UUID) -> int: ...

    def mark_all_read(self, recipient_id: UUID, read_at: datetime) -> int: ...

    def delete_notification(self, notification: Notification) -> None: ...

    def find_invitation(
        self, agenda_id: UUID, recipient_id: UUID
    ) -> Optional[Notification]: ...

    def save(self, instance: object) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def refresh(self, instance: object) -> None: ...


class SessionStorage:
    """:class:`Storage` backed by a SQLModel ``Session``.

    Nothing is committed implicitly; services call :meth:`commit` once the
    whole mutation is staged.
    """

    def __init__(self, session: Session):
        self.session = session

    # Users

    def get_user(self, user_id: UUID) -> Optional[User]:
        return self.session.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        statement = select(User).where(func.lower(User.email) == email.strip().lower())
        return self.session.exec(statement).first()

    def add_user(self, user: User) -> User:
        self.session.add(user)
        self.session.flush()
        return user

    # Agendas

    def get_agenda(self, agenda_id: UUID) -> Optional[Agenda]:
        return self.session.get(Agenda, agenda_id)

    def list_accessible_agendas(self, user_id: UUID) -> list[tuple[Agenda, Role]]:
        """Owned agendas plus agendas with a membership, with the user's role."""
        owned = self.session.exec(select(Agenda).where(Agenda.owner_id == user_id)).all()
        joined = self.session.exec(
            select(Agenda, AgendaMember)
            .join(AgendaMember, AgendaMember.agenda_id == Agenda.id)
            .where(AgendaMember.user_id == user_id)
        ).all()

        result = [(agenda, Role.OWNER) for agenda in owned]
        result.extend(
            (agenda, membership.member_role)
            for agenda, membership in joined
            if agenda.owner_id != user_id
        )
        result.sort(key=lambda item: item[0].created_at)
        return result

    def add_agenda(self, agenda: Agenda) -> Agenda:
        self.session.add(agenda)
        self.session.flush()
        return agenda

    def delete_agenda(self, agenda: Agenda) -> None:
        """Delete an agenda with its memberships, events and open invitations."""
        self.session.exec(delete(AgendaMember).where(AgendaMember.agenda_id == agenda.id))
        self.session.exec(delete(Event).where(Event.agenda_id == agenda.id))
        self.session.exec(
            delete(Notification).where(
                Notification.agenda_id == agenda.id,
                Notification.type == NotificationType.AGENDA_INVITE.value,
            )
        )
        self.session.delete(agenda)
        self.session.flush()

    # Memberships

    def get_membership(self, agenda_id: UUID, user_id: UUID) -> Optional[AgendaMember]:
        return self.session.get(AgendaMember, (agenda_id, user_id))

    def get_memberships(
        self, user_id: UUID, agenda_ids: Iterable[UUID]
    ) -> dict[UUID, AgendaMember]:
        ids = list(agenda_ids)
        if not ids:
            return {}
        rows = self.session.exec(
            select(AgendaMember).where(
                AgendaMember.user_id == user_id,
                AgendaMember.agenda_id.in_(ids),
            )
        ).all()
        return {membership.agenda_id: membership for membership in rows}

    def list_memberships(self, agenda_id: UUID) -> list[AgendaMember]:
        statement = (
            select(AgendaMember)
            .where(AgendaMember.agenda_id == agenda_id)
            .order_by(AgendaMember.added_at)
        )
        return list(self.session.exec(statement).all())

    def add_membership(self, membership: AgendaMember) -> AgendaMember:
        self.session.add(membership)
        self.session.flush()
        return membership

    def update_membership_role(
        self, agenda_id: UUID, user_id: UUID, expected: Role, new: Role
    ) -> bool:
        """Set the role only if it is still ``expected``. Returns whether it did."""
        result = self.session.exec(
            update(AgendaMember)
            .where(
                AgendaMember.agenda_id == agenda_id,
                AgendaMember.user_id == user_id,
                AgendaMember.role == expected.value,
            )
            .values(role=new.value)
        )
        return result.rowcount == 1

    def delete_membership(self, membership: AgendaMember) -> None:
        self.session.delete(membership)
        self.session.flush()

    # Events

    def get_event(self, event_id: UUID) -> Optional[Event]:
        return self.session.get(Event, event_id)

    def list_events(
        self,
        agenda_ids: Iterable[UUID],
        *,
        starts_before: Optional[datetime] = None,
        ends_after: Optional[datetime] = None,
        status: Optional[EventStatus] = None,
        creator_id: Optional[UUID] = None,
    ) -> list[Event]:
        ids = list(agenda_ids)
        if not ids:
            return []
        statement = select(Event).where(Event.agenda_id.in_(ids))
        if starts_before is not None:
            statement = statement.where(Event.starts_at < starts_before)
        if ends_after is not None:
            statement = statement.where(Event.ends_at > ends_after)
        if status is not None:
            statement = statement.where(Event.status == status.value)
        if creator_id is not None:
            statement = statement.where(Event.creator_id == creator_id)
        statement = statement.order_by(Event.starts_at, Event.created_at)
        return list(self.session.exec(statement).all())

    def add_event(self, event: Event) -> Event:
        self.session.add(event)
        self.session.flush()
        return event

    def delete_event(self, event: Event) -> None:
        self.session.delete(event)
        self.session.flush()

    def update_event_status(
        self,
        event_id: UUID,
        expected: EventStatus,
        new: EventStatus,
        *,
        approved_by: Optional[UUID] = None,
        approved_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ) -> bool:
        """Compare-and-swap on ``Event.status``. Returns whether the row changed."""
        values: dict[str, object] = {"status": new.value}
        if approved_by is not None:
            values["approved_by"] = approved_by
            values["approved_at"] = approved_at
        if updated_at is not None:
            values["updated_at"] = updated_at

        result = self.session.exec(
            update(Event)
            .where(Event.id == event_id, Event.status == expected.value)
            .values(**values)
        )
        changed = result.rowcount == 1
        if not changed:
            logger.debug(
                f"Status swap {expected.value} -> {new.value} lost for event {event_id}"
            )
        return changed

    # Notifications

    def add_notifications(self, notifications: Sequence[Notification]) -> None:
        self.session.add_all(list(notifications))
        self.session.flush()

    def get_notification(self, notification_id: UUID) -> Optional[Notification]:
        return self.session.get(Notification, notification_id)

    def list_notifications(
        self,
        recipient_id: UUID,
        *,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Notification]:
        statement = select(Notification).where(Notification.recipient_id == recipient_id)
        if unread_only:
            statement = statement.where(Notification.is_read == False)  # noqa: E712
        statement = (
            statement.order_by(Notification.created_at.desc()).offset(offset).limit(limit)
        )
        return list(self.session.exec(statement).all())

    def count_unread(self, recipient_id: UUID) -> int:
        statement = select(func.count()).select_from(Notification).where(
            Notification.recipient_id == recipient_id,
            Notification.is_read == False,  # noqa: E712
        )
        return self.session.exec(statement).one()

    def mark_all_read(self, recipient_id: UUID, read_at: datetime) -> int:
        result = self.session.exec(
            update(Notification)
            .where(
                Notification.recipient_id == recipient_id,
                Notification.is_read == False,  # noqa: E712
            )
            .values(is_read=True, read_at=read_at)
        )
        return result.rowcount

    def delete_notification(self, notification: Notification) -> None:
        self.session.delete(notification)
        self.session.flush()

    def find_invitation(self, agenda_id: UUID, recipient_id: UUID) -> Optional[Notification]:
        statement = select(Notification).where(
            Notification.agenda_id == agenda_id,
            Notification.recipient_id == recipient_id,
            Notification.type == NotificationType.AGENDA_INVITE.value,
        )
        return self.session.exec(statement).first()

    # Unit of work

    def save(self, instance: object) -> None:
        self.session.add(instance)
        self.session.flush()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    def refresh(self, instance: object) -> None:
        self.session.refresh(instance)
