"""Permission evaluator for agenda and event mutations.

Every rule lives in one of the tables below, keyed by
``(agenda type, effective role, action)``. Supporting a new agenda type or
role means adding rows, not new branches in request handlers.

:func:`evaluate` is pure: it takes the requester's membership (or ``None``)
and returns a :class:`Decision`. :func:`authorize` loads memberships from
storage first, and :func:`ensure_allowed` turns a denial into a
``ForbiddenError`` carrying the reason of the rule that failed.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from agendas.core.errors import ForbiddenError
from agendas.models import Agenda, AgendaMember, AgendaType, Event, EventStatus, Role
from agendas.services.roles import LEGAL_ROLES, effective_role, get_effective_role

if TYPE_CHECKING:
    from agendas.services.storage import Storage

logger = logging.getLogger(__name__)


class Action(str, enum.Enum):
    CREATE_EVENT = "create_event"
    UPDATE_EVENT = "update_event"
    DELETE_EVENT = "delete_event"
    APPROVE_EVENT = "approve_event"
    REJECT_EVENT = "reject_event"
    CHANGE_ROLE = "change_role"
    REMOVE_MEMBER = "remove_member"
    MANAGE_AGENDA = "manage_agenda"


EVENT_ACTIONS = frozenset(
    {
        Action.CREATE_EVENT,
        Action.UPDATE_EVENT,
        Action.DELETE_EVENT,
        Action.APPROVE_EVENT,
        Action.REJECT_EVENT,
    }
)
MEMBER_ACTIONS = frozenset({Action.CHANGE_ROLE, Action.REMOVE_MEMBER})

_VERBS = {
    Action.CREATE_EVENT: "create",
    Action.UPDATE_EVENT: "update",
    Action.DELETE_EVENT: "delete",
    Action.APPROVE_EVENT: "approve",
    Action.REJECT_EVENT: "reject",
}


@dataclass(frozen=True)
class Decision:
    """Outcome of a permission check. Falsy when denied."""

    allowed: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed

    @classmethod
    def allow(cls) -> "Decision":
        return cls(True)

    @classmethod
    def deny(cls, reason: str) -> "Decision":
        return cls(False, reason)


ALLOWED = Decision.allow()


class Scope(str, enum.Enum):
    """Which events of the agenda a rule grants access to."""

    ANY = "any"
    OWN = "own"
    OWN_PENDING = "own_pending"


@dataclass(frozen=True)
class EventRule:
    scope: Optional[Scope]
    reason: str = ""
    # Reason used when an OWN_PENDING rule hits an already decided event.
    decided_reason: str = ""


@dataclass(frozen=True)
class MemberRule:
    targets: frozenset[Role]
    reason: str = ""


def _any() -> EventRule:
    return EventRule(Scope.ANY)


def _deny(reason: str) -> EventRule:
    return EventRule(None, reason)


def _own(label: str, action: Action) -> EventRule:
    verb = _VERBS[action]
    return EventRule(Scope.OWN, f"{label} can only {verb} their own events")


def _own_pending(label: str, action: Action) -> EventRule:
    verb = _VERBS[action]
    return EventRule(
        Scope.OWN_PENDING,
        f"{label} can only {verb} their own events",
        f"{label} cannot {verb} events that were already approved",
    )


def _build_event_rules() -> dict[tuple[AgendaType, Role, Action], EventRule]:
    rules: dict[tuple[AgendaType, Role, Action], EventRule] = {}

    for agenda_type in AgendaType:
        for action in (Action.CREATE_EVENT, Action.UPDATE_EVENT, Action.DELETE_EVENT):
            rules[(agenda_type, Role.OWNER, action)] = _any()

    laboral, educativa, colaborativa = (
        AgendaType.LABORAL,
        AgendaType.EDUCATIVA,
        AgendaType.COLABORATIVA,
    )
    for action in (Action.APPROVE_EVENT, Action.REJECT_EVENT):
        rules[(laboral, Role.OWNER, action)] = _any()
        rules[(laboral, Role.CHIEF, action)] = _any()
        rules[(laboral, Role.EMPLOYEE, action)] = _deny(
            f"Only chiefs can {_VERBS[action]} events"
        )

    for action in (Action.UPDATE_EVENT, Action.DELETE_EVENT):
        verb = _VERBS[action]
        rules[(laboral, Role.CHIEF, action)] = _any()
        rules[(laboral, Role.EMPLOYEE, action)] = _own_pending("Employees", action)
        rules[(educativa, Role.PROFESSOR, action)] = _any()
        rules[(educativa, Role.STUDENT, action)] = _deny(
            f"Only professors can {verb} events"
        )
        rules[(colaborativa, Role.EDITOR, action)] = _own("Editors", action)
        rules[(colaborativa, Role.VIEWER, action)] = _deny(
            f"Viewers cannot {verb} events"
        )

    rules[(laboral, Role.CHIEF, Action.CREATE_EVENT)] = _any()
    rules[(laboral, Role.EMPLOYEE, Action.CREATE_EVENT)] = _any()
    rules[(educativa, Role.PROFESSOR, Action.CREATE_EVENT)] = _any()
    rules[(educativa, Role.STUDENT, Action.CREATE_EVENT)] = _deny(
        "Students cannot create events in educational agendas"
    )
    rules[(colaborativa, Role.EDITOR, Action.CREATE_EVENT)] = _any()
    rules[(colaborativa, Role.VIEWER, Action.CREATE_EVENT)] = _any()
    return rules


def _build_member_rules() -> dict[tuple[AgendaType, Role, Action], MemberRule]:
    rules: dict[tuple[AgendaType, Role, Action], MemberRule] = {}

    for agenda_type, roles in LEGAL_ROLES.items():
        if not roles:
            continue
        rules[(agenda_type, Role.OWNER, Action.REMOVE_MEMBER)] = MemberRule(roles)
        rules[(agenda_type, Role.OWNER, Action.CHANGE_ROLE)] = MemberRule(roles)

    rules[(AgendaType.EDUCATIVA, Role.OWNER, Action.CHANGE_ROLE)] = MemberRule(
        frozenset(), "Roles in educational agendas are fixed at invitation time"
    )
    rules[(AgendaType.LABORAL, Role.CHIEF, Action.CHANGE_ROLE)] = MemberRule(
        frozenset({Role.EMPLOYEE}), "Chiefs can only change the role of employees"
    )
    rules[(AgendaType.LABORAL, Role.CHIEF, Action.REMOVE_MEMBER)] = MemberRule(
        frozenset({Role.EMPLOYEE}), "Chiefs can only remove employees"
    )
    rules[(AgendaType.EDUCATIVA, Role.PROFESSOR, Action.REMOVE_MEMBER)] = MemberRule(
        frozenset({Role.STUDENT}), "Professors can only remove students"
    )
    return rules


EVENT_RULES = _build_event_rules()
MEMBER_RULES = _build_member_rules()


def _evaluate_event_action(
    action: Action,
    agenda: Agenda,
    role: Role,
    requester_id: UUID,
    event: Optional[Event],
) -> Decision:
    agenda_type = agenda.agenda_type
    rule = EVENT_RULES.get((agenda_type, role, action))
    if rule is None:
        return Decision.deny(
            f"{role.value.title()} cannot {_VERBS[action]} events "
            f"in {agenda_type.value.lower()} agendas"
        )
    if rule.scope is None:
        return Decision.deny(rule.reason)
    if action == Action.CREATE_EVENT:
        return ALLOWED

    if event is None:
        raise ValueError(f"{action.value} requires an event")
    if event.agenda_id != agenda.id:
        return Decision.deny("Event does not belong to this agenda")

    if rule.scope == Scope.ANY:
        return ALLOWED
    if event.creator_id != requester_id:
        return Decision.deny(rule.reason)
    if (
        rule.scope == Scope.OWN_PENDING
        and event.event_status != EventStatus.PENDING_APPROVAL
    ):
        return Decision.deny(rule.decided_reason)
    return ALLOWED


def _no_member_rule(action: Action) -> Decision:
    if action == Action.CHANGE_ROLE:
        return Decision.deny("Only the agenda owner can change user roles")
    return Decision.deny("You do not have permission to remove this user")


def _evaluate_member_action(
    action: Action,
    agenda: Agenda,
    role: Role,
    requester_id: UUID,
    target_id: Optional[UUID],
    target_membership: Optional[AgendaMember],
    new_role: Optional[Role],
) -> Decision:
    if target_id is None:
        raise ValueError(f"{action.value} requires a target user")
    if target_id == requester_id:
        if action == Action.CHANGE_ROLE:
            return Decision.deny("You cannot change your own role")
        return Decision.deny("You cannot remove yourself, leave the agenda instead")
    if new_role == Role.OWNER:
        return Decision.deny("Ownership cannot be granted through a role change")

    target_role = effective_role(agenda, target_id, target_membership)
    if target_role == Role.OWNER:
        return Decision.deny("The agenda owner cannot be modified")
    if target_role is None:
        return Decision.deny("User is not a member of this agenda")

    rule = MEMBER_RULES.get((agenda.agenda_type, role, action))
    if rule is None:
        return _no_member_rule(action)
    if target_role not in rule.targets:
        return Decision.deny(rule.reason)
    return ALLOWED


def evaluate(
    action: Action,
    agenda: Agenda,
    requester_id: UUID,
    membership: Optional[AgendaMember],
    *,
    event: Optional[Event] = None,
    target_id: Optional[UUID] = None,
    target_membership: Optional[AgendaMember] = None,
    new_role: Optional[Role] = None,
) -> Decision:
    """Decide whether ``requester_id`` may perform ``action``.

    Args:
        action: Action being attempted.
        agenda: Agenda the action applies to.
        requester_id: User attempting the action.
        membership: Requester's membership row in ``agenda``, if any.
        event: Target event for event actions other than creation.
        target_id: Target user for member actions.
        target_membership: Target user's membership row, if any.
        new_role: Role requested by a role change.

    Returns:
        ``Decision.allow()`` or ``Decision.deny(reason)``.
    """
    role = effective_role(agenda, requester_id, membership)
    if role is None:
        return Decision.deny("You are not a member of this agenda")

    if action in EVENT_ACTIONS:
        return _evaluate_event_action(action, agenda, role, requester_id, event)
    if action in MEMBER_ACTIONS:
        return _evaluate_member_action(
            action, agenda, role, requester_id, target_id, target_membership, new_role
        )
    if role == Role.OWNER:
        return ALLOWED
    return Decision.deny("Only the agenda owner can manage this agenda")


def authorize(
    storage: "Storage",
    action: Action,
    agenda: Agenda,
    requester_id: UUID,
    *,
    event: Optional[Event] = None,
    target_user_id: Optional[UUID] = None,
    new_role: Optional[Role] = None,
) -> Decision:
    """Load the memberships involved and evaluate ``action``."""
    membership = storage.get_membership(agenda.id, requester_id)
    target_membership = None
    if target_user_id is not None:
        target_membership = storage.get_membership(agenda.id, target_user_id)
    return evaluate(
        action,
        agenda,
        requester_id,
        membership,
        event=event,
        target_id=target_user_id,
        target_membership=target_membership,
        new_role=new_role,
    )


def authorize_member_management(
    storage: "Storage", action: Action, agenda: Agenda, requester_id: UUID
) -> Decision:
    """Whether the requester may act on members at all, before any target is known.

    Member services run this before looking the target up, so a requester
    without rights over members cannot probe who belongs to the agenda.
    """
    if action not in MEMBER_ACTIONS:
        raise ValueError(f"{action.value} is not a member action")
    role = get_effective_role(storage, agenda, requester_id)
    if role is None:
        return Decision.deny("You are not a member of this agenda")
    rule = MEMBER_RULES.get((agenda.agenda_type, role, action))
    if rule is None:
        return _no_member_rule(action)
    if not rule.targets:
        return Decision.deny(rule.reason)
    return ALLOWED


def ensure_allowed(decision: Decision, *, action: Action, requester_id: UUID) -> None:
    if decision:
        return
    logger.debug(f"Denied {action.value} for user {requester_id}: {decision.reason}")
    raise ForbiddenError(decision.reason or "Permission denied")


def event_permissions(
    storage: "Storage", agenda: Agenda, requester_id: UUID, event: Event
) -> dict[Action, Decision]:
    """Decisions for every action that targets an existing event."""
    membership = storage.get_membership(agenda.id, requester_id)
    return {
        action: evaluate(action, agenda, requester_id, membership, event=event)
        for action in (
            Action.UPDATE_EVENT,
            Action.DELETE_EVENT,
            Action.APPROVE_EVENT,
            Action.REJECT_EVENT,
        )
    }
