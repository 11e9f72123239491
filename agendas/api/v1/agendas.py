from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Response, status

from agendas.api.deps import CurrentUser, NotifierDep, StorageDep
from agendas.models import Agenda, AgendaMember, Role, User
from agendas.schemas import (
    AgendaCreate,
    AgendaRead,
    AgendaReadWithRole,
    AgendaUpdate,
    InvitationAction,
    InvitationCreate,
    MemberRead,
    NotificationRead,
    RoleUpdate,
)
from agendas.services import agendas as agenda_service
from agendas.services import members as member_service

router = APIRouter()


def _with_role(agenda: Agenda, role: Role) -> AgendaReadWithRole:
    return AgendaReadWithRole(
        **AgendaRead.model_validate(agenda).model_dump(),
        current_user_role=role.value,
    )


def _member_read(agenda_id: UUID, user: User, role: Role, added_at=None) -> MemberRead:
    return MemberRead(
        agenda_id=agenda_id,
        user_id=user.id,
        role=role.value,
        email=user.email,
        full_name=user.full_name,
        added_at=added_at,
    )


def _membership_read(storage: StorageDep, membership: AgendaMember) -> MemberRead:
    user = storage.get_user(membership.user_id)
    return _member_read(
        membership.agenda_id, user, membership.member_role, membership.added_at
    )


@router.get("/", response_model=List[AgendaReadWithRole], summary="List agendas")
def list_agendas(storage: StorageDep, current_user: CurrentUser) -> List[AgendaReadWithRole]:
    """Agendas the current user owns or belongs to, with their role."""
    return [
        _with_role(agenda, role)
        for agenda, role in agenda_service.list_agendas(storage, current_user.id)
    ]


@router.post(
    "/",
    response_model=AgendaRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create agenda",
)
def create_agenda(
    payload: AgendaCreate, storage: StorageDep, current_user: CurrentUser
) -> Agenda:
    return agenda_service.create_agenda(storage, current_user.id, payload)


@router.post(
    "/invitations/accept",
    response_model=MemberRead,
    summary="Accept an agenda invitation",
)
def accept_invitation(
    payload: InvitationAction,
    storage: StorageDep,
    notifier: NotifierDep,
    current_user: CurrentUser,
) -> MemberRead:
    membership = member_service.accept_invitation(
        storage, notifier, current_user.id, payload.notification_id
    )
    return _membership_read(storage, membership)


@router.post(
    "/invitations/decline",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Decline an agenda invitation",
)
def decline_invitation(
    payload: InvitationAction, storage: StorageDep, current_user: CurrentUser
) -> Response:
    member_service.decline_invitation(storage, current_user.id, payload.notification_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{agenda_id}", response_model=AgendaReadWithRole, summary="Get agenda")
def get_agenda(
    agenda_id: UUID, storage: StorageDep, current_user: CurrentUser
) -> AgendaReadWithRole:
    agenda, role = agenda_service.get_agenda(storage, agenda_id, current_user.id)
    return _with_role(agenda, role)


@router.patch("/{agenda_id}", response_model=AgendaRead, summary="Update agenda")
def update_agenda(
    agenda_id: UUID,
    payload: AgendaUpdate,
    storage: StorageDep,
    notifier: NotifierDep,
    current_user: CurrentUser,
) -> Agenda:
    agenda, _ = agenda_service.get_agenda(storage, agenda_id, current_user.id)
    return agenda_service.update_agenda(storage, notifier, agenda, current_user.id, payload)


@router.delete(
    "/{agenda_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete agenda",
)
def delete_agenda(
    agenda_id: UUID,
    storage: StorageDep,
    notifier: NotifierDep,
    current_user: CurrentUser,
) -> Response:
    agenda, _ = agenda_service.get_agenda(storage, agenda_id, current_user.id)
    agenda_service.delete_agenda(storage, notifier, agenda, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{agenda_id}/members",
    response_model=List[MemberRead],
    summary="List agenda members",
)
def list_members(
    agenda_id: UUID, storage: StorageDep, current_user: CurrentUser
) -> List[MemberRead]:
    agenda, _ = agenda_service.get_agenda(storage, agenda_id, current_user.id)
    return [
        _member_read(agenda.id, entry.user, entry.role, entry.added_at)
        for entry in member_service.list_members(storage, agenda, current_user.id)
    ]


@router.post(
    "/{agenda_id}/invitations",
    response_model=NotificationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Invite a user to the agenda",
)
def invite_member(
    agenda_id: UUID,
    payload: InvitationCreate,
    storage: StorageDep,
    current_user: CurrentUser,
):
    agenda, _ = agenda_service.get_agenda(storage, agenda_id, current_user.id)
    return member_service.invite_member(
        storage, agenda, current_user.id, payload.email, payload.role
    )


@router.patch(
    "/{agenda_id}/members/{user_id}",
    response_model=MemberRead,
    summary="Change a member's role",
)
def change_member_role(
    agenda_id: UUID,
    user_id: UUID,
    payload: RoleUpdate,
    storage: StorageDep,
    notifier: NotifierDep,
    current_user: CurrentUser,
) -> MemberRead:
    agenda, _ = agenda_service.get_agenda(storage, agenda_id, current_user.id)
    membership = member_service.change_role(
        storage, notifier, agenda, current_user.id, user_id, payload.role
    )
    return _membership_read(storage, membership)


@router.delete(
    "/{agenda_id}/members/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a member",
)
def remove_member(
    agenda_id: UUID,
    user_id: UUID,
    storage: StorageDep,
    notifier: NotifierDep,
    current_user: CurrentUser,
) -> Response:
    agenda, _ = agenda_service.get_agenda(storage, agenda_id, current_user.id)
    member_service.remove_member(storage, notifier, agenda, current_user.id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{agenda_id}/leave",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Leave the agenda",
)
def leave_agenda(agenda_id: UUID, storage: StorageDep, current_user: CurrentUser) -> Response:
    agenda, _ = agenda_service.get_agenda(storage, agenda_id, current_user.id)
    member_service.leave_agenda(storage, agenda, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
