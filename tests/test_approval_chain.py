"""Approval step resolver: step order, roles and department scoping."""

from types import SimpleNamespace

import pytest

from gatepass.core.exceptions import InvalidStateError
from gatepass.models.base import LeaveStatus, StudentType, UserRole
from gatepass.services.leave import approval_chain
from gatepass.services.leave.approval_chain import (
    TERMINAL_STEP,
    approved_status_for,
    authorize,
    next_state_after_approval,
    resolve_next_step,
    resolve_required_role,
)


def _request(step):
    return SimpleNamespace(current_step=step)


def _student(department="CSE"):
    return SimpleNamespace(department=department)


# ---------------------------------------------------------------------------
# resolve_next_step
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("student_type", list(StudentType))
def test_mentor_step_skips_parent_checkpoint(student_type):
    assert resolve_next_step(1, student_type) == 3
    assert resolve_next_step(2, student_type) == 3
    assert resolve_next_step(3, student_type) == 4


def test_hostel_students_go_through_warden():
    assert resolve_next_step(4, StudentType.HOSTEL) == 5
    assert resolve_next_step(5, StudentType.HOSTEL) == TERMINAL_STEP


def test_day_scholars_skip_warden():
    assert resolve_next_step(4, StudentType.DAY_SCHOLAR) == TERMINAL_STEP


@pytest.mark.parametrize("step", [0, TERMINAL_STEP, 7, -1])
def test_no_step_follows_terminal_or_unknown(step):
    with pytest.raises(InvalidStateError):
        resolve_next_step(step, StudentType.HOSTEL)


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------

def test_required_roles():
    assert resolve_required_role(1) == UserRole.MENTOR
    assert resolve_required_role(2) == UserRole.PARENT
    assert resolve_required_role(3) == UserRole.HOD
    assert resolve_required_role(4) == UserRole.PRINCIPAL
    assert resolve_required_role(5) == UserRole.WARDEN


def test_terminal_step_has_no_approver():
    with pytest.raises(InvalidStateError):
        resolve_required_role(TERMINAL_STEP)


def test_every_approver_role_has_a_status_and_step():
    for role in approval_chain.APPROVER_ROLES:
        assert approved_status_for(role).value == f"{role.value}_approved"
        assert approval_chain.step_for_role(role) is not None


def test_non_approver_roles_cannot_approve():
    with pytest.raises(InvalidStateError):
        approved_status_for(UserRole.SECURITY)


# ---------------------------------------------------------------------------
# authorize
# ---------------------------------------------------------------------------

def test_mentor_must_share_student_department():
    assert authorize(UserRole.MENTOR, "CSE", _request(1), _student("CSE"))
    assert not authorize(UserRole.MENTOR, "ECE", _request(1), _student("CSE"))
    assert not authorize(UserRole.MENTOR, None, _request(1), _student("CSE"))


def test_hod_must_share_student_department():
    assert authorize(UserRole.HOD, "CSE", _request(3), _student("CSE"))
    assert not authorize(UserRole.HOD, "ECE", _request(3), _student("CSE"))


def test_principal_and_warden_are_campus_wide():
    assert authorize(UserRole.PRINCIPAL, None, _request(4), _student("CSE"))
    assert authorize(UserRole.WARDEN, "Hostel", _request(5), _student("ECE"))


def test_role_must_match_current_step():
    assert not authorize(UserRole.HOD, "CSE", _request(1), _student("CSE"))
    assert not authorize(UserRole.PRINCIPAL, None, _request(5), _student("CSE"))


def test_parent_cannot_decide_the_parent_checkpoint():
    assert not authorize(UserRole.PARENT, None, _request(2), _student("CSE"))


# ---------------------------------------------------------------------------
# next_state_after_approval
# ---------------------------------------------------------------------------

def test_status_names_the_approving_role():
    assert next_state_after_approval(UserRole.MENTOR, 1, StudentType.HOSTEL) == (LeaveStatus.MENTOR_APPROVED, 3)
    assert next_state_after_approval(UserRole.PRINCIPAL, 4, StudentType.HOSTEL) == (
        LeaveStatus.PRINCIPAL_APPROVED,
        5,
    )


def test_reaching_terminal_step_means_approved():
    assert next_state_after_approval(UserRole.WARDEN, 5, StudentType.HOSTEL) == (LeaveStatus.APPROVED, TERMINAL_STEP)
    assert next_state_after_approval(UserRole.PRINCIPAL, 4, StudentType.DAY_SCHOLAR) == (
        LeaveStatus.APPROVED,
        TERMINAL_STEP,
    )
