from datetime import datetime, timedelta
from uuid import uuid4

import pytest

from agendas.core.errors import ForbiddenError
from agendas.models import Agenda, AgendaMember, AgendaType, Event, EventStatus, Role
from agendas.services.permissions import (
    Action,
    Decision,
    authorize,
    authorize_member_management,
    ensure_allowed,
    evaluate,
)

START = datetime(2030, 1, 1, 9, 0)


def agenda_of(type: AgendaType) -> Agenda:
    return Agenda(name=type.value.title(), type=type.value, owner_id=uuid4())


def member(agenda: Agenda, role: Role) -> AgendaMember:
    return AgendaMember(agenda_id=agenda.id, user_id=uuid4(), role=role.value)


def event_in(agenda: Agenda, creator_id, status=EventStatus.CONFIRMED) -> Event:
    return Event(
        agenda_id=agenda.id,
        creator_id=creator_id,
        title="Event",
        starts_at=START,
        ends_at=START + timedelta(hours=1),
        status=status.value,
    )


def check(action, agenda, membership, **kwargs) -> Decision:
    return evaluate(action, agenda, membership.user_id, membership, **kwargs)


class TestCreateEvent:
    @pytest.mark.parametrize("type", list(AgendaType))
    def test_owner_can_create_everywhere(self, type):
        agenda = agenda_of(type)
        assert evaluate(Action.CREATE_EVENT, agenda, agenda.owner_id, None)

    @pytest.mark.parametrize(
        "type, role",
        [
            (AgendaType.LABORAL, Role.CHIEF),
            (AgendaType.LABORAL, Role.EMPLOYEE),
            (AgendaType.EDUCATIVA, Role.PROFESSOR),
            (AgendaType.COLABORATIVA, Role.EDITOR),
            (AgendaType.COLABORATIVA, Role.VIEWER),
        ],
    )
    def test_members_can_create(self, type, role):
        agenda = agenda_of(type)
        assert check(Action.CREATE_EVENT, agenda, member(agenda, role))

    def test_student_cannot_create(self):
        agenda = agenda_of(AgendaType.EDUCATIVA)
        decision = check(Action.CREATE_EVENT, agenda, member(agenda, Role.STUDENT))

        assert not decision
        assert "Students" in decision.reason

    def test_non_member_cannot_create(self):
        agenda = agenda_of(AgendaType.COLABORATIVA)
        decision = evaluate(Action.CREATE_EVENT, agenda, uuid4(), None)

        assert decision == Decision.deny("You are not a member of this agenda")


class TestUpdateAndDelete:
    @pytest.mark.parametrize("action", [Action.UPDATE_EVENT, Action.DELETE_EVENT])
    @pytest.mark.parametrize("type", list(AgendaType))
    def test_owner_can_modify_any_event(self, type, action):
        agenda = agenda_of(type)
        event = event_in(agenda, uuid4())
        assert evaluate(action, agenda, agenda.owner_id, None, event=event)

    @pytest.mark.parametrize("action", [Action.UPDATE_EVENT, Action.DELETE_EVENT])
    def test_editor_limited_to_own_events(self, action):
        agenda = agenda_of(AgendaType.COLABORATIVA)
        editor = member(agenda, Role.EDITOR)

        assert check(action, agenda, editor, event=event_in(agenda, editor.user_id))
        denied = check(action, agenda, editor, event=event_in(agenda, agenda.owner_id))
        assert not denied
        assert "their own events" in denied.reason

    @pytest.mark.parametrize("action", [Action.UPDATE_EVENT, Action.DELETE_EVENT])
    def test_viewer_never_modifies(self, action):
        agenda = agenda_of(AgendaType.COLABORATIVA)
        viewer = member(agenda, Role.VIEWER)

        assert not check(action, agenda, viewer, event=event_in(agenda, viewer.user_id))

    @pytest.mark.parametrize("action", [Action.UPDATE_EVENT, Action.DELETE_EVENT])
    def test_chief_modifies_any_event(self, action):
        agenda = agenda_of(AgendaType.LABORAL)
        chief = member(agenda, Role.CHIEF)

        assert check(action, agenda, chief, event=event_in(agenda, agenda.owner_id))

    @pytest.mark.parametrize("action", [Action.UPDATE_EVENT, Action.DELETE_EVENT])
    def test_employee_modifies_own_pending_events_only(self, action):
        agenda = agenda_of(AgendaType.LABORAL)
        employee = member(agenda, Role.EMPLOYEE)
        pending = event_in(agenda, employee.user_id, EventStatus.PENDING_APPROVAL)
        confirmed = event_in(agenda, employee.user_id, EventStatus.CONFIRMED)
        someone_elses = event_in(agenda, uuid4(), EventStatus.PENDING_APPROVAL)

        assert check(action, agenda, employee, event=pending)
        assert "already approved" in check(action, agenda, employee, event=confirmed).reason
        assert not check(action, agenda, employee, event=someone_elses)

    @pytest.mark.parametrize("action", [Action.UPDATE_EVENT, Action.DELETE_EVENT])
    def test_professor_modifies_any_student_none(self, action):
        agenda = agenda_of(AgendaType.EDUCATIVA)
        professor = member(agenda, Role.PROFESSOR)
        student = member(agenda, Role.STUDENT)
        event = event_in(agenda, agenda.owner_id)

        assert check(action, agenda, professor, event=event)
        assert not check(action, agenda, student, event=event)

    def test_event_from_other_agenda_denied(self):
        agenda = agenda_of(AgendaType.PERSONAL)
        elsewhere = event_in(agenda_of(AgendaType.PERSONAL), agenda.owner_id)

        decision = evaluate(Action.UPDATE_EVENT, agenda, agenda.owner_id, None, event=elsewhere)

        assert not decision

    def test_update_without_event_is_a_programming_error(self):
        agenda = agenda_of(AgendaType.PERSONAL)
        with pytest.raises(ValueError):
            evaluate(Action.UPDATE_EVENT, agenda, agenda.owner_id, None)


class TestApproveAndReject:
    @pytest.mark.parametrize("action", [Action.APPROVE_EVENT, Action.REJECT_EVENT])
    def test_owner_and_chief_of_work_agenda(self, action):
        agenda = agenda_of(AgendaType.LABORAL)
        event = event_in(agenda, uuid4(), EventStatus.PENDING_APPROVAL)

        assert evaluate(action, agenda, agenda.owner_id, None, event=event)
        assert check(action, agenda, member(agenda, Role.CHIEF), event=event)
        assert not check(action, agenda, member(agenda, Role.EMPLOYEE), event=event)

    @pytest.mark.parametrize(
        "type", [AgendaType.PERSONAL, AgendaType.EDUCATIVA, AgendaType.COLABORATIVA]
    )
    def test_no_approvals_outside_work_agendas(self, type):
        agenda = agenda_of(type)
        event = event_in(agenda, agenda.owner_id, EventStatus.PENDING_APPROVAL)

        assert not evaluate(Action.APPROVE_EVENT, agenda, agenda.owner_id, None, event=event)


class TestMemberActions:
    @pytest.mark.parametrize("action", [Action.CHANGE_ROLE, Action.REMOVE_MEMBER])
    @pytest.mark.parametrize("type", [AgendaType.LABORAL, AgendaType.COLABORATIVA])
    def test_self_targeting_never_allowed(self, type, action):
        agenda = agenda_of(type)
        assert not evaluate(
            action, agenda, agenda.owner_id, None, target_id=agenda.owner_id
        )
        chief = member(agenda, Role.CHIEF if type == AgendaType.LABORAL else Role.EDITOR)
        assert not check(action, agenda, chief, target_id=chief.user_id, target_membership=chief)

    def test_owner_changes_roles_in_work_agenda(self):
        agenda = agenda_of(AgendaType.LABORAL)
        target = member(agenda, Role.CHIEF)

        assert evaluate(
            Action.CHANGE_ROLE,
            agenda,
            agenda.owner_id,
            None,
            target_id=target.user_id,
            target_membership=target,
            new_role=Role.EMPLOYEE,
        )

    def test_roles_fixed_in_educational_agendas(self):
        agenda = agenda_of(AgendaType.EDUCATIVA)
        target = member(agenda, Role.STUDENT)

        decision = evaluate(
            Action.CHANGE_ROLE,
            agenda,
            agenda.owner_id,
            None,
            target_id=target.user_id,
            target_membership=target,
        )

        assert not decision
        assert "fixed at invitation" in decision.reason

    def test_chief_changes_employees_only(self):
        agenda = agenda_of(AgendaType.LABORAL)
        chief = member(agenda, Role.CHIEF)
        employee = member(agenda, Role.EMPLOYEE)
        other_chief = member(agenda, Role.CHIEF)

        assert check(
            Action.CHANGE_ROLE,
            agenda,
            chief,
            target_id=employee.user_id,
            target_membership=employee,
            new_role=Role.CHIEF,
        )
        assert not check(
            Action.CHANGE_ROLE,
            agenda,
            chief,
            target_id=other_chief.user_id,
            target_membership=other_chief,
            new_role=Role.EMPLOYEE,
        )

    def test_nobody_targets_the_owner(self):
        agenda = agenda_of(AgendaType.LABORAL)
        chief = member(agenda, Role.CHIEF)

        assert not check(Action.REMOVE_MEMBER, agenda, chief, target_id=agenda.owner_id)
        assert not check(Action.CHANGE_ROLE, agenda, chief, target_id=agenda.owner_id)

    def test_ownership_cannot_be_granted(self):
        agenda = agenda_of(AgendaType.COLABORATIVA)
        target = member(agenda, Role.EDITOR)

        assert not evaluate(
            Action.CHANGE_ROLE,
            agenda,
            agenda.owner_id,
            None,
            target_id=target.user_id,
            target_membership=target,
            new_role=Role.OWNER,
        )

    @pytest.mark.parametrize(
        "type, remover_role, target_role, allowed",
        [
            (AgendaType.LABORAL, Role.CHIEF, Role.EMPLOYEE, True),
            (AgendaType.LABORAL, Role.CHIEF, Role.CHIEF, False),
            (AgendaType.LABORAL, Role.EMPLOYEE, Role.EMPLOYEE, False),
            (AgendaType.EDUCATIVA, Role.PROFESSOR, Role.STUDENT, True),
            (AgendaType.EDUCATIVA, Role.PROFESSOR, Role.PROFESSOR, False),
            (AgendaType.EDUCATIVA, Role.STUDENT, Role.STUDENT, False),
            (AgendaType.COLABORATIVA, Role.EDITOR, Role.VIEWER, False),
        ],
    )
    def test_member_removal_rules(self, type, remover_role, target_role, allowed):
        agenda = agenda_of(type)
        remover = member(agenda, remover_role)
        target = member(agenda, target_role)

        decision = check(
            Action.REMOVE_MEMBER,
            agenda,
            remover,
            target_id=target.user_id,
            target_membership=target,
        )

        assert bool(decision) is allowed

    @pytest.mark.parametrize("type", [AgendaType.LABORAL, AgendaType.EDUCATIVA, AgendaType.COLABORATIVA])
    def test_owner_removes_any_member(self, type):
        agenda = agenda_of(type)
        for role in {
            AgendaType.LABORAL: (Role.CHIEF, Role.EMPLOYEE),
            AgendaType.EDUCATIVA: (Role.PROFESSOR, Role.STUDENT),
            AgendaType.COLABORATIVA: (Role.EDITOR, Role.VIEWER),
        }[type]:
            target = member(agenda, role)
            assert evaluate(
                Action.REMOVE_MEMBER,
                agenda,
                agenda.owner_id,
                None,
                target_id=target.user_id,
                target_membership=target,
            )


def test_manage_agenda_is_owner_only():
    agenda = agenda_of(AgendaType.LABORAL)

    assert evaluate(Action.MANAGE_AGENDA, agenda, agenda.owner_id, None)
    assert not check(Action.MANAGE_AGENDA, agenda, member(agenda, Role.CHIEF))


def test_authorize_is_idempotent(storage, make_user, make_agenda, make_event):
    owner, employee = make_user(), make_user()
    agenda = make_agenda(owner, AgendaType.LABORAL, members=[(employee, Role.EMPLOYEE)])
    event = make_event(agenda, owner)

    first = authorize(storage, Action.UPDATE_EVENT, agenda, employee.id, event=event)
    second = authorize(storage, Action.UPDATE_EVENT, agenda, employee.id, event=event)

    assert first == second
    assert not first


def test_authorize_loads_target_membership(storage, make_user, make_agenda):
    owner, chief, employee = make_user(), make_user(), make_user()
    agenda = make_agenda(
        owner,
        AgendaType.LABORAL,
        members=[(chief, Role.CHIEF), (employee, Role.EMPLOYEE)],
    )

    assert authorize(
        storage, Action.REMOVE_MEMBER, agenda, chief.id, target_user_id=employee.id
    )
    assert not authorize(
        storage, Action.REMOVE_MEMBER, agenda, employee.id, target_user_id=chief.id
    )


def test_member_management_gate_depends_on_requester_only(storage, make_user, make_agenda):
    owner, chief, employee, professor = make_user(), make_user(), make_user(), make_user()
    work = make_agenda(
        owner,
        AgendaType.LABORAL,
        members=[(chief, Role.CHIEF), (employee, Role.EMPLOYEE)],
    )
    school = make_agenda(owner, AgendaType.EDUCATIVA, members=[(professor, Role.PROFESSOR)])

    assert authorize_member_management(storage, Action.REMOVE_MEMBER, work, chief.id)
    assert authorize_member_management(storage, Action.CHANGE_ROLE, work, owner.id)
    assert authorize_member_management(storage, Action.REMOVE_MEMBER, school, professor.id)
    assert not authorize_member_management(storage, Action.REMOVE_MEMBER, work, employee.id)
    assert not authorize_member_management(storage, Action.CHANGE_ROLE, school, owner.id)
    assert not authorize_member_management(storage, Action.CHANGE_ROLE, school, professor.id)
    assert not authorize_member_management(
        storage, Action.REMOVE_MEMBER, work, make_user().id
    )

def test_ensure_allowed_raises_with_reason():
    with pytest.raises(ForbiddenError) as exc_info:
        ensure_allowed(
            Decision.deny("Viewers cannot update events"),
            action=Action.UPDATE_EVENT,
            requester_id=uuid4(),
        )

    assert exc_info.value.detail == "Viewers cannot update events"
    assert exc_info.value.status_code == 403


def test_ensure_allowed_passes_allowed_decisions():
    ensure_allowed(Decision.allow(), action=Action.CREATE_EVENT, requester_id=uuid4())
