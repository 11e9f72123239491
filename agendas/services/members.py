"""Membership operations: roles, removal, invitations and leaving."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, NamedTuple, Optional
from uuid import UUID

from agendas.core.errors import ConflictError, InvalidError, NotFoundError
from agendas.models import Agenda, AgendaMember, Notification, NotificationType, Role, User
from agendas.services.notifications import (
    Notifier,
    build_notifications,
    build_payload,
    dispatch,
    fan_out_recipients,
)
from agendas.services.permissions import (
    Action,
    authorize,
    authorize_member_management,
    ensure_allowed,
)
from agendas.services.roles import (
    DEFAULT_ROLES,
    ensure_legal_role,
    get_effective_role,
    parse_role,
    resolve_invite_role,
)

if TYPE_CHECKING:
    from agendas.services.storage import Storage

logger = logging.getLogger(__name__)


class MemberEntry(NamedTuple):
    user: User
    role: Role
    added_at: Optional[datetime]


def _load_target_membership(
    storage: "Storage", agenda: Agenda, target_user_id: UUID
) -> Optional[AgendaMember]:
    """Membership of the target; ``None`` only when the target is the owner."""
    membership = storage.get_membership(agenda.id, target_user_id)
    if membership is None and not agenda.is_owner(target_user_id):
        raise NotFoundError("User is not a member of this agenda")
    return membership


def change_role(
    storage: "Storage",
    notifier: Notifier,
    agenda: Agenda,
    requester_id: UUID,
    target_user_id: UUID,
    new_role: str | Role,
) -> AgendaMember:
    """Change the role of a member and notify them.

    Raises:
        InvalidError: Self-targeted change, or a role not legal for the type.
        NotFoundError: The target is not a member.
        ForbiddenError: The requester may not change this member's role.
        ConflictError: The role changed concurrently.
    """
    if target_user_id == requester_id:
        raise InvalidError("You cannot change your own role")
    role = parse_role(new_role)
    ensure_allowed(
        authorize_member_management(storage, Action.CHANGE_ROLE, agenda, requester_id),
        action=Action.CHANGE_ROLE,
        requester_id=requester_id,
    )
    membership = _load_target_membership(storage, agenda, target_user_id)

    ensure_allowed(
        authorize(
            storage,
            Action.CHANGE_ROLE,
            agenda,
            requester_id,
            target_user_id=target_user_id,
            new_role=role,
        ),
        action=Action.CHANGE_ROLE,
        requester_id=requester_id,
    )
    ensure_legal_role(agenda.agenda_type, role)

    previous = membership.member_role
    if previous == role:
        return membership

    if not storage.update_membership_role(agenda.id, target_user_id, previous, role):
        storage.rollback()
        raise ConflictError("Membership was modified by another request, reload and retry")
    storage.commit()
    storage.refresh(membership)
    logger.info(
        f"User {target_user_id} in agenda {agenda.id}: "
        f"{previous.value} -> {role.value} by user {requester_id}"
    )

    dispatch(
        notifier,
        [target_user_id],
        NotificationType.ROLE_CHANGED,
        build_payload(
            sender_id=requester_id,
            agenda_id=agenda.id,
            agenda_name=agenda.name,
            role=role.value,
            previous_role=previous.value,
        ),
    )
    return membership


def remove_member(
    storage: "Storage",
    notifier: Notifier,
    agenda: Agenda,
    requester_id: UUID,
    target_user_id: UUID,
) -> None:
    if target_user_id == requester_id:
        raise InvalidError("You cannot remove yourself, leave the agenda instead")
    ensure_allowed(
        authorize_member_management(storage, Action.REMOVE_MEMBER, agenda, requester_id),
        action=Action.REMOVE_MEMBER,
        requester_id=requester_id,
    )
    membership = _load_target_membership(storage, agenda, target_user_id)

    ensure_allowed(
        authorize(
            storage,
            Action.REMOVE_MEMBER,
            agenda,
            requester_id,
            target_user_id=target_user_id,
        ),
        action=Action.REMOVE_MEMBER,
        requester_id=requester_id,
    )

    storage.delete_membership(membership)
    storage.commit()
    logger.info(f"User {target_user_id} removed from agenda {agenda.id} by {requester_id}")

    dispatch(
        notifier,
        [target_user_id],
        NotificationType.AGENDA_REMOVED,
        build_payload(sender_id=requester_id, agenda_id=agenda.id, agenda_name=agenda.name),
    )


def list_members(storage: "Storage", agenda: Agenda, viewer_id: UUID) -> list[MemberEntry]:
    """Owner first, then members in the order they joined."""
    if get_effective_role(storage, agenda, viewer_id) is None:
        raise NotFoundError("Agenda not found")

    entries = []
    owner = storage.get_user(agenda.owner_id)
    if owner is not None:
        entries.append(MemberEntry(owner, Role.OWNER, agenda.created_at))
    for membership in storage.list_memberships(agenda.id):
        user = storage.get_user(membership.user_id)
        if user is not None:
            entries.append(MemberEntry(user, membership.member_role, membership.added_at))
    return entries


def invite_member(
    storage: "Storage",
    agenda: Agenda,
    requester_id: UUID,
    email: str,
    role: Optional[str] = None,
) -> Notification:
    """Send an AGENDA_INVITE to the user registered with ``email``.

    The invitation is persisted directly in storage rather than through a
    notifier: accepting it later depends on the row existing.
    """
    ensure_allowed(
        authorize(storage, Action.MANAGE_AGENDA, agenda, requester_id),
        action=Action.MANAGE_AGENDA,
        requester_id=requester_id,
    )
    assigned = resolve_invite_role(agenda.agenda_type, role)

    user = storage.get_user_by_email(email)
    if user is None:
        raise NotFoundError("User not found")
    if agenda.is_owner(user.id) or storage.get_membership(agenda.id, user.id):
        raise ConflictError("User is already a member of this agenda")
    if storage.find_invitation(agenda.id, user.id):
        raise ConflictError("User has already been invited to this agenda")

    payload = build_payload(
        sender_id=requester_id,
        agenda_id=agenda.id,
        agenda_name=agenda.name,
        role=assigned.value,
    )
    (invitation,) = build_notifications([user.id], NotificationType.AGENDA_INVITE, payload)
    storage.add_notifications([invitation])
    storage.commit()
    storage.refresh(invitation)
    logger.info(f"User {user.id} invited to agenda {agenda.id} as {assigned.value}")
    return invitation


def _load_invitation(storage: "Storage", user_id: UUID, notification_id: UUID) -> Notification:
    invitation = storage.get_notification(notification_id)
    if (
        invitation is None
        or invitation.recipient_id != user_id
        or invitation.type != NotificationType.AGENDA_INVITE.value
        or invitation.agenda_id is None
    ):
        raise NotFoundError("Invitation not found")
    return invitation


def accept_invitation(
    storage: "Storage",
    notifier: Notifier,
    user_id: UUID,
    notification_id: UUID,
) -> AgendaMember:
    invitation = _load_invitation(storage, user_id, notification_id)
    agenda = storage.get_agenda(invitation.agenda_id)
    if agenda is None:
        raise NotFoundError("Agenda not found")
    if agenda.is_owner(user_id) or storage.get_membership(agenda.id, user_id):
        raise ConflictError("You are already a member of this agenda")

    requested = invitation.data.get("role")
    role = (
        ensure_legal_role(agenda.agenda_type, parse_role(requested))
        if requested
        else DEFAULT_ROLES[agenda.agenda_type]
    )
    membership = AgendaMember(agenda_id=agenda.id, user_id=user_id, role=role.value)
    storage.add_membership(membership)
    storage.delete_notification(invitation)
    storage.commit()
    storage.refresh(membership)
    logger.info(f"User {user_id} joined agenda {agenda.id} as {role.value}")

    dispatch(
        notifier,
        fan_out_recipients(storage, agenda, exclude=user_id),
        NotificationType.AGENDA_UPDATED,
        build_payload(
            sender_id=user_id,
            agenda_id=agenda.id,
            agenda_name=agenda.name,
            member_joined=str(user_id),
        ),
    )
    return membership


def decline_invitation(storage: "Storage", user_id: UUID, notification_id: UUID) -> None:
    invitation = _load_invitation(storage, user_id, notification_id)
    agenda_id = invitation.agenda_id
    storage.delete_notification(invitation)
    storage.commit()
    logger.info(f"User {user_id} declined invitation to agenda {agenda_id}")


def leave_agenda(storage: "Storage", agenda: Agenda, user_id: UUID) -> None:
    if agenda.is_owner(user_id):
        raise InvalidError("The owner cannot leave the agenda")
    membership = storage.get_membership(agenda.id, user_id)
    if membership is None:
        raise NotFoundError("You are not a member of this agenda")
    storage.delete_membership(membership)
    storage.commit()
    logger.info(f"User {user_id} left agenda {agenda.id}")
