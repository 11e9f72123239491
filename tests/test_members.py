import pytest

from agendas.core.errors import ConflictError, ForbiddenError, InvalidError, NotFoundError
from agendas.models import AgendaType, NotificationType, Role
from agendas.services.members import (
    accept_invitation,
    change_role,
    decline_invitation,
    invite_member,
    leave_agenda,
    list_members,
    remove_member,
)


@pytest.fixture
def office(make_user, make_agenda):
    owner, chief, employee = make_user("Owner"), make_user("Chief"), make_user("Employee")
    agenda = make_agenda(
        owner,
        AgendaType.LABORAL,
        members=[(chief, Role.CHIEF), (employee, Role.EMPLOYEE)],
    )
    return agenda, owner, chief, employee


class TestChangeRole:
    def test_chief_promotes_employee(self, storage, notifier, office):
        agenda, _, chief, employee = office

        membership = change_role(storage, notifier, agenda, chief.id, employee.id, "CHIEF")

        assert membership.member_role == Role.CHIEF
        [(recipients, payload)] = notifier.of_type(NotificationType.ROLE_CHANGED)
        assert recipients == [employee.id]
        assert payload["data"] == {
            "agenda_name": agenda.name,
            "role": "CHIEF",
            "previous_role": "EMPLOYEE",
        }

    def test_self_change_is_invalid(self, storage, notifier, office):
        agenda, _, chief, _ = office

        with pytest.raises(InvalidError):
            change_role(storage, notifier, agenda, chief.id, chief.id, "EMPLOYEE")

    def test_chief_cannot_demote_another_chief(self, storage, notifier, make_user, office):
        agenda, owner, chief, _ = office
        other = make_user()
        invitation = invite_member(storage, agenda, owner.id, other.email, "CHIEF")
        accept_invitation(storage, notifier, other.id, invitation.id)

        with pytest.raises(ForbiddenError):
            change_role(storage, notifier, agenda, chief.id, other.id, "EMPLOYEE")

    def test_role_must_be_legal_for_type(self, storage, notifier, office):
        agenda, owner, _, employee = office

        with pytest.raises(InvalidError):
            change_role(storage, notifier, agenda, owner.id, employee.id, "STUDENT")

    def test_unknown_role_is_invalid(self, storage, notifier, office):
        agenda, owner, _, employee = office

        with pytest.raises(InvalidError):
            change_role(storage, notifier, agenda, owner.id, employee.id, "JANITOR")

    def test_educational_roles_are_fixed(self, storage, notifier, make_user, make_agenda):
        owner, student = make_user(), make_user()
        agenda = make_agenda(owner, AgendaType.EDUCATIVA, members=[(student, Role.STUDENT)])

        with pytest.raises(ForbiddenError):
            change_role(storage, notifier, agenda, owner.id, student.id, "PROFESSOR")

    def test_teacher_alias_is_accepted(self, make_user, make_agenda, storage):
        owner, teacher = make_user(), make_user()
        agenda = make_agenda(owner, AgendaType.EDUCATIVA, members=[(teacher, "TEACHER")])

        assert storage.get_membership(agenda.id, teacher.id).member_role == Role.PROFESSOR

    def test_non_member_target_is_not_found(self, storage, notifier, make_user, office):
        agenda, owner, _, _ = office

        with pytest.raises(NotFoundError):
            change_role(storage, notifier, agenda, owner.id, make_user().id, "CHIEF")

    def test_unchanged_role_sends_nothing(self, storage, notifier, office):
        agenda, owner, _, employee = office

        change_role(storage, notifier, agenda, owner.id, employee.id, "EMPLOYEE")

        assert notifier.sent == []


class TestRemoveMember:
    def test_chief_removes_employee(self, storage, notifier, office):
        agenda, _, chief, employee = office

        remove_member(storage, notifier, agenda, chief.id, employee.id)

        assert storage.get_membership(agenda.id, employee.id) is None
        [(recipients, _)] = notifier.of_type(NotificationType.AGENDA_REMOVED)
        assert recipients == [employee.id]

    def test_self_removal_is_invalid(self, storage, notifier, office):
        agenda, _, _, employee = office

        with pytest.raises(InvalidError):
            remove_member(storage, notifier, agenda, employee.id, employee.id)

    def test_employee_cannot_remove_chief(self, storage, notifier, office):
        agenda, _, chief, employee = office

        with pytest.raises(ForbiddenError):
            remove_member(storage, notifier, agenda, employee.id, chief.id)

    def test_owner_cannot_be_removed(self, storage, notifier, office):
        agenda, owner, chief, _ = office

        with pytest.raises(ForbiddenError):
            remove_member(storage, notifier, agenda, chief.id, owner.id)

    def test_unprivileged_member_cannot_tell_members_apart(
        self, storage, notifier, make_user, office
    ):
        agenda, _, chief, employee = office
        outsider = make_user()

        for target in (chief, outsider):
            with pytest.raises(ForbiddenError):
                remove_member(storage, notifier, agenda, employee.id, target.id)
            with pytest.raises(ForbiddenError):
                change_role(storage, notifier, agenda, employee.id, target.id, "CHIEF")

    def test_professor_removes_student(self, storage, notifier, make_user, make_agenda):
        owner, professor, student = make_user(), make_user(), make_user()
        agenda = make_agenda(
            owner,
            AgendaType.EDUCATIVA,
            members=[(professor, Role.PROFESSOR), (student, Role.STUDENT)],
        )

        remove_member(storage, notifier, agenda, professor.id, student.id)

        assert storage.get_membership(agenda.id, student.id) is None


class TestInvitations:
    def test_invite_uses_type_default_role(self, storage, notifier, make_user, make_agenda):
        owner, invitee = make_user(), make_user()
        agenda = make_agenda(owner, AgendaType.EDUCATIVA)

        invitation = invite_member(storage, agenda, owner.id, invitee.email)
        invitation_id = invitation.id
        assert invitation.type == NotificationType.AGENDA_INVITE.value
        assert invitation.data["role"] == "STUDENT"

        membership = accept_invitation(storage, notifier, invitee.id, invitation_id)

        assert membership.member_role == Role.STUDENT
        assert storage.get_notification(invitation_id) is None

    def test_accept_notifies_existing_members(self, storage, notifier, make_user, office):
        agenda, owner, chief, employee = office
        newcomer = make_user()
        invitation = invite_member(storage, agenda, owner.id, newcomer.email)

        accept_invitation(storage, notifier, newcomer.id, invitation.id)

        [(recipients, _)] = notifier.of_type(NotificationType.AGENDA_UPDATED)
        assert set(recipients) == {owner.id, chief.id, employee.id}

    def test_illegal_role_is_rejected(self, storage, make_user, office):
        agenda, owner, _, _ = office

        with pytest.raises(InvalidError):
            invite_member(storage, agenda, owner.id, make_user().email, "VIEWER")

    def test_personal_agendas_take_no_members(self, storage, make_user, make_agenda):
        owner = make_user()
        agenda = make_agenda(owner, AgendaType.PERSONAL)

        with pytest.raises(InvalidError):
            invite_member(storage, agenda, owner.id, make_user().email)

    def test_only_owner_invites(self, storage, make_user, office):
        agenda, _, chief, _ = office

        with pytest.raises(ForbiddenError):
            invite_member(storage, agenda, chief.id, make_user().email)

    def test_duplicates_conflict(self, storage, make_user, office):
        agenda, owner, _, employee = office
        invitee = make_user()
        invite_member(storage, agenda, owner.id, invitee.email)

        with pytest.raises(ConflictError):
            invite_member(storage, agenda, owner.id, invitee.email)
        with pytest.raises(ConflictError):
            invite_member(storage, agenda, owner.id, employee.email)

    def test_unknown_email_is_not_found(self, storage, office):
        agenda, owner, _, _ = office

        with pytest.raises(NotFoundError):
            invite_member(storage, agenda, owner.id, "nobody@example.com")

    def test_decline_discards_invitation(self, storage, make_user, office):
        agenda, owner, _, _ = office
        invitee = make_user()
        invitation = invite_member(storage, agenda, owner.id, invitee.email)
        invitation_id = invitation.id

        decline_invitation(storage, invitee.id, invitation_id)

        assert storage.get_notification(invitation_id) is None
        assert storage.get_membership(agenda.id, invitee.id) is None

    def test_cannot_accept_someone_elses_invitation(self, storage, notifier, make_user, office):
        agenda, owner, _, _ = office
        invitee, intruder = make_user(), make_user()
        invitation = invite_member(storage, agenda, owner.id, invitee.email)

        with pytest.raises(NotFoundError):
            accept_invitation(storage, notifier, intruder.id, invitation.id)


class TestLeaveAndList:
    def test_member_leaves(self, storage, office):
        agenda, _, _, employee = office

        leave_agenda(storage, agenda, employee.id)

        assert storage.get_membership(agenda.id, employee.id) is None

    def test_owner_cannot_leave(self, storage, office):
        agenda, owner, _, _ = office

        with pytest.raises(InvalidError):
            leave_agenda(storage, agenda, owner.id)

    def test_list_members_starts_with_owner(self, storage, office):
        agenda, owner, chief, employee = office

        entries = list_members(storage, agenda, employee.id)

        assert [(entry.user.id, entry.role) for entry in entries] == [
            (owner.id, Role.OWNER),
            (chief.id, Role.CHIEF),
            (employee.id, Role.EMPLOYEE),
        ]

    def test_list_members_hidden_from_outsiders(self, storage, make_user, office):
        agenda, *_ = office

        with pytest.raises(NotFoundError):
            list_members(storage, agenda, make_user().id)
