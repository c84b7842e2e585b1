"""
Approval step resolver.

Pure functions that decide which role acts at each step of a leave
request, who may act, and where an approval moves the request next.

Steps:
    1  mentor
    2  parent (informational checkpoint, never blocks the chain)
    3  hod
    4  principal
    5  warden (hostel students only)
    6  terminal; the request is approved and a gate pass is issued
"""

from typing import TYPE_CHECKING, Dict, Optional, Tuple

from gatepass.core.exceptions import InvalidStateError
from gatepass.models.base import LeaveStatus, StudentType, UserRole

if TYPE_CHECKING:
    from gatepass.models.leave import LeaveRequest
    from gatepass.models.user import User

MENTOR_STEP = 1
PARENT_STEP = 2
HOD_STEP = 3
PRINCIPAL_STEP = 4
WARDEN_STEP = 5
TERMINAL_STEP = 6
REJECTED_STEP = 0

APPROVER_ROLES = (UserRole.MENTOR, UserRole.HOD, UserRole.PRINCIPAL, UserRole.WARDEN)

# Roles whose authority is limited to their own department
DEPARTMENT_SCOPED_ROLES = frozenset({UserRole.MENTOR, UserRole.HOD})

STEP_ROLES: Dict[int, UserRole] = {
    MENTOR_STEP: UserRole.MENTOR,
    PARENT_STEP: UserRole.PARENT,
    HOD_STEP: UserRole.HOD,
    PRINCIPAL_STEP: UserRole.PRINCIPAL,
    WARDEN_STEP: UserRole.WARDEN,
}

ROLE_STEPS: Dict[UserRole, int] = {role: step for step, role in STEP_ROLES.items()}

APPROVED_STATUSES: Dict[UserRole, LeaveStatus] = {
    UserRole.MENTOR: LeaveStatus.MENTOR_APPROVED,
    UserRole.HOD: LeaveStatus.HOD_APPROVED,
    UserRole.PRINCIPAL: LeaveStatus.PRINCIPAL_APPROVED,
    UserRole.WARDEN: LeaveStatus.WARDEN_APPROVED,
}


def _check_tables() -> None:
    missing = [role.value for role in APPROVER_ROLES if role not in APPROVED_STATUSES or role not in ROLE_STEPS]
    if missing:
        raise RuntimeError(f"Approval tables missing roles: {', '.join(missing)}")


_check_tables()


def resolve_next_step(current_step: int, student_type: StudentType) -> int:
    """
    Step that follows ``current_step`` after an approval.

    Raises:
        InvalidStateError: For the terminal step or an unknown step
    """
    if current_step in (MENTOR_STEP, PARENT_STEP):
        return HOD_STEP
    if current_step == HOD_STEP:
        return PRINCIPAL_STEP
    if current_step == PRINCIPAL_STEP:
        return WARDEN_STEP if student_type == StudentType.HOSTEL else TERMINAL_STEP
    if current_step == WARDEN_STEP:
        return TERMINAL_STEP
    raise InvalidStateError(
        f"No step follows step {current_step}",
        current_state=str(current_step),
    )


def resolve_required_role(step: int) -> UserRole:
    """Role that acts at ``step``."""
    try:
        return STEP_ROLES[step]
    except KeyError:
        raise InvalidStateError(f"No approver acts at step {step}", current_state=str(step)) from None


def step_for_role(role: UserRole) -> Optional[int]:
    return ROLE_STEPS.get(role)


def approved_status_for(role: UserRole) -> LeaveStatus:
    try:
        return APPROVED_STATUSES[role]
    except KeyError:
        raise InvalidStateError(f"Role {role.value} cannot approve a leave step") from None


def authorize(
    role: UserRole,
    department: Optional[str],
    request: "LeaveRequest",
    student: "User",
) -> bool:
    """
    True when an approver holding ``role`` in ``department`` may decide
    ``request`` at its current step.

    Mentors and HODs only act for students of their own department;
    principal and warden act campus-wide.
    """
    if STEP_ROLES.get(request.current_step) != role or role not in APPROVED_STATUSES:
        return False
    if role in DEPARTMENT_SCOPED_ROLES:
        return department is not None and department == student.department
    return True


def next_state_after_approval(
    role: UserRole,
    current_step: int,
    student_type: StudentType,
) -> Tuple[LeaveStatus, int]:
    """
    Status and step after ``role`` approves at ``current_step``.

    Reaching the terminal step yields ``approved`` regardless of role.
    """
    next_step = resolve_next_step(current_step, student_type)
    if next_step == TERMINAL_STEP:
        return LeaveStatus.APPROVED, next_step
    return approved_status_for(role), next_step
