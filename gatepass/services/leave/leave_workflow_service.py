"""
Leave workflow service.

Drives a leave request from submission through the approval chain to
approval or rejection. Every state change is a version-conditioned update
committed together with its approval record; notifications and gate pass
issuance run only after that commit.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from gatepass.config.settings import settings
from gatepass.core.exceptions import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from gatepass.core.utils import DateTimeUtils
from gatepass.models.base import ApprovalDecision, LeaveStatus, UserRole
from gatepass.models.leave import LeaveRequest
from gatepass.models.user import User
from gatepass.repositories.leave import LeaveApprovalRepository, LeaveRequestRepository
from gatepass.repositories.user_repository import UserRepository
from gatepass.schemas.leave import LeaveSubmitRequest
from gatepass.services.base.base_service import BaseService
from gatepass.services.base.service_result import ServiceResult
from gatepass.services.gate_pass.gate_pass_service import GatePassService
from gatepass.services.leave import approval_chain
from gatepass.services.notification.notification_dispatcher import NotificationDispatcher

STAFF_VIEWER_ROLES = frozenset({UserRole.PRINCIPAL, UserRole.WARDEN, UserRole.ADMIN})


@dataclass
class DecisionOutcome:
    """Result of a recorded decision or parent response."""

    request_id: str
    new_status: LeaveStatus
    current_step: int
    credential_pending: bool = False


def _field_errors(exc: PydanticValidationError) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())) or "__root__"
        errors.setdefault(field, []).append(error.get("msg", "invalid value"))
    return errors


class LeaveWorkflowService(BaseService[LeaveRequest, LeaveRequestRepository]):
    """
    Leave approval state machine.

    pending -> mentor_approved -> (parent_confirmed) -> hod_approved ->
    principal_approved -> [warden_approved] -> approved, with rejected
    reachable from every non-terminal state.
    """

    def __init__(
        self,
        leave_request_repo: LeaveRequestRepository,
        approval_repo: LeaveApprovalRepository,
        user_repo: UserRepository,
        gate_pass_service: GatePassService,
        notifier: NotificationDispatcher,
        db_session: Session,
    ):
        super().__init__(leave_request_repo, db_session)
        self.leave_request_repo = leave_request_repo
        self.approval_repo = approval_repo
        self.user_repo = user_repo
        self.gate_pass_service = gate_pass_service
        self.notifier = notifier

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------

    def submit(
        self,
        student_id: str,
        payload: Union[LeaveSubmitRequest, Dict[str, Any]],
    ) -> ServiceResult[LeaveRequest]:
        """
        Create a leave request at step 1 and alert the student's mentors.

        Args:
            student_id: Submitting student
            payload: Validated submission, or raw fields to validate

        Returns:
            ServiceResult containing the new request
        """
        try:
            if not isinstance(payload, LeaveSubmitRequest):
                try:
                    payload = LeaveSubmitRequest.model_validate(payload)
                except PydanticValidationError as e:
                    raise ValidationError("Invalid leave request", field_errors=_field_errors(e)) from e

            student = self._load_student(student_id)
            if student.student_affiliation is not None and payload.student_type != student.student_affiliation:
                raise ValidationError(
                    "Student type does not match the student's affiliation",
                    field_errors={"student_type": [f"expected {student.student_affiliation.value}"]},
                )

            parent_phone = payload.parent_phone or self._parent_phone_of(student)

            with self.transaction():
                request = self.leave_request_repo.create(
                    LeaveRequest(
                        student_id=student.id,
                        leave_type=payload.leave_type,
                        student_type=payload.student_type,
                        from_date=payload.from_date,
                        to_date=payload.to_date,
                        reason=payload.reason,
                        parent_phone=parent_phone,
                        status=LeaveStatus.PENDING,
                        current_step=approval_chain.MENTOR_STEP,
                        version=1,
                    )
                )
                self.approval_repo.create_stub(request.id, UserRole.MENTOR, approval_chain.MENTOR_STEP)
        except Exception as e:
            return self._handle_exception(e, "submit leave request", student_id)

        self._logger.info(
            "Leave request submitted",
            extra={
                "leave_request_id": request.id,
                "student_id": student_id,
                "leave_type": request.leave_type.value,
                "student_type": request.student_type.value,
            },
        )

        self._notify_next_approvers(request, student, approval_chain.MENTOR_STEP)
        if parent_phone:
            self._safely("parent sms", self.notifier.notify_parent_by_sms, parent_phone, request, student.full_name)

        return ServiceResult.success(request, message="Leave request submitted")

    # -------------------------------------------------------------------------
    # Decisions
    # -------------------------------------------------------------------------

    def compute_next_state(
        self,
        request: LeaveRequest,
        role: UserRole,
        decision: ApprovalDecision,
    ) -> Tuple[LeaveStatus, int]:
        """Status and step the request moves to when ``role`` decides."""
        if decision == ApprovalDecision.REJECTED:
            return LeaveStatus.REJECTED, approval_chain.REJECTED_STEP
        if decision != ApprovalDecision.APPROVED:
            raise ValidationError("Decision must be approve or reject", field_errors={"decision": ["invalid"]})
        return approval_chain.next_state_after_approval(role, request.current_step, request.student_type)

    def record_decision(
        self,
        request_id: str,
        approver_id: str,
        role: UserRole,
        decision: ApprovalDecision,
        comments: Optional[str] = None,
    ) -> ServiceResult[DecisionOutcome]:
        """
        Record an approver's decision on the request's current step.

        Checks run in order: request exists, request is not terminal,
        approver may act on this step, a rejection carries comments.
        The approval row and the conditional request update commit
        together; a lost race rolls both back.
        """
        comments = comments.strip() if comments else None

        try:
            with self.transaction():
                request = self.leave_request_repo.get_by_id(request_id)
                if request.is_terminal:
                    raise InvalidStateError(
                        f"Leave request is already {request.status.value}",
                        current_state=request.status.value,
                    )

                student = request.student
                self._authorize_approver(approver_id, role, request, student)

                if decision == ApprovalDecision.REJECTED and not comments:
                    raise ValidationError(
                        "Comments are required when rejecting a leave request",
                        field_errors={"comments": ["required when rejecting"]},
                    )

                decided_step = request.current_step
                new_status, new_step = self.compute_next_state(request, role, decision)

                self.approval_repo.record(
                    request.id,
                    role,
                    decided_step,
                    approver_id,
                    decision,
                    comments,
                    DateTimeUtils.now_utc(),
                )
                if decision == ApprovalDecision.APPROVED and new_step != approval_chain.TERMINAL_STEP:
                    self.approval_repo.create_stub(
                        request.id,
                        approval_chain.resolve_required_role(new_step),
                        new_step,
                    )

                request = self.leave_request_repo.advance(request, new_status, new_step)
        except Exception as e:
            return self._handle_exception(
                e,
                "record leave decision",
                request_id,
                additional_context={"approver_id": approver_id, "role": role.value},
            )

        self._logger.info(
            f"Leave request moved to {new_status.value}",
            extra={
                "leave_request_id": request_id,
                "approver_id": approver_id,
                "role": role.value,
                "from_step": decided_step,
                "to_step": new_step,
                "status": new_status.value,
            },
        )

        outcome = DecisionOutcome(request_id=request_id, new_status=new_status, current_step=new_step)

        if new_status == LeaveStatus.REJECTED:
            self._safely(
                "rejection notice",
                self.notifier.notify_outcome,
                request,
                False,
                comments,
                request.parent_phone or self._parent_phone_of(student),
                student.full_name if student else None,
            )
        elif new_status == LeaveStatus.APPROVED:
            outcome.credential_pending = not self._issue_gate_pass(request_id)
            self._safely("approval notice", self.notifier.notify_outcome, request, True)
        else:
            self._notify_next_approvers(request, student, new_step)

        return ServiceResult.success(outcome, message=f"Leave request {new_status.value}")

    def confirm_by_parent(
        self,
        request_id: str,
        parent_id: str,
        confirmed: bool,
        comments: Optional[str] = None,
    ) -> ServiceResult[DecisionOutcome]:
        """
        Record a parent's answer to the confirmation SMS.

        Confirmation is informational and never changes the step. A decline
        rejects the request when PARENT_DECLINE_REJECTS is set.
        """
        comments = comments.strip() if comments else None
        rejected = False

        try:
            with self.transaction():
                request = self.leave_request_repo.get_by_id(request_id)
                if request.is_terminal:
                    raise InvalidStateError(
                        f"Leave request is already {request.status.value}",
                        current_state=request.status.value,
                    )

                student = request.student
                parent = self.user_repo.find_by_id(parent_id)
                if parent is None or parent.role != UserRole.PARENT or student.parent_id != parent.id:
                    raise AuthorizationError(
                        "Only the student's linked parent may respond",
                        required_role=UserRole.PARENT.value,
                    )
                if confirmed and request.parent_confirmed:
                    raise InvalidStateError("Parent has already confirmed this request", current_state="parent_confirmed")

                now = DateTimeUtils.now_utc()
                self.approval_repo.record(
                    request.id,
                    UserRole.PARENT,
                    approval_chain.PARENT_STEP,
                    parent.id,
                    ApprovalDecision.APPROVED if confirmed else ApprovalDecision.REJECTED,
                    comments if comments or confirmed else "Declined by parent",
                    now,
                )

                if confirmed:
                    new_status = request.status
                    if request.status == LeaveStatus.MENTOR_APPROVED:
                        new_status = LeaveStatus.PARENT_CONFIRMED
                    request = self.leave_request_repo.advance(
                        request,
                        new_status,
                        request.current_step,
                        parent_confirmed=True,
                        parent_confirmed_at=now,
                    )
                elif settings.PARENT_DECLINE_REJECTS:
                    rejected = True
                    self.approval_repo.close_pending(
                        request.id, ApprovalDecision.REJECTED, "Declined by parent", now
                    )
                    request = self.leave_request_repo.advance(
                        request,
                        LeaveStatus.REJECTED,
                        approval_chain.REJECTED_STEP,
                    )
        except Exception as e:
            return self._handle_exception(e, "record parent confirmation", request_id)

        self._logger.info(
            "Parent responded to leave request",
            extra={
                "leave_request_id": request_id,
                "parent_id": parent_id,
                "confirmed": confirmed,
                "status": request.status.value,
            },
        )

        if rejected:
            self._safely("rejection notice", self.notifier.notify_outcome, request, False, comments or "Declined by parent")

        return ServiceResult.success(
            DecisionOutcome(request_id=request_id, new_status=request.status, current_step=request.current_step)
        )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_request_detail(self, request_id: str, viewer_id: str, role: UserRole) -> ServiceResult[LeaveRequest]:
        """Request with approval history, if ``viewer_id`` may see it."""
        try:
            request = self.leave_request_repo.find_with_approvals(request_id)
            if request is None:
                raise NotFoundError("LeaveRequest", request_id)
            if not self._can_view(request, viewer_id, role):
                raise AuthorizationError("You may not view this leave request", actual_role=role.value)
            return ServiceResult.success(request)
        except Exception as e:
            return self._handle_exception(e, "get leave request", request_id)

    def list_for_student(self, student_id: str) -> ServiceResult[List[LeaveRequest]]:
        try:
            return ServiceResult.success(self.leave_request_repo.find_for_student(student_id))
        except Exception as e:
            return self._handle_exception(e, "list student leave requests", student_id)

    def list_pending_for_approver(self, approver_id: str, role: UserRole) -> ServiceResult[List[LeaveRequest]]:
        """
        Requests waiting at the step ``role`` decides, newest first.

        Mentors and HODs only see students of their own department.
        """
        try:
            step = approval_chain.step_for_role(role)
            if step is None or role == UserRole.PARENT:
                raise AuthorizationError("Role has no approval queue", actual_role=role.value)

            approver = self.user_repo.find_by_id(approver_id)
            if approver is None or approver.role != role or not approver.is_active:
                raise AuthorizationError("Unknown approver", actual_role=role.value)

            department = None
            if role in approval_chain.DEPARTMENT_SCOPED_ROLES:
                if not approver.department:
                    return ServiceResult.success([])
                department = approver.department

            return ServiceResult.success(self.leave_request_repo.find_at_step(step, department))
        except Exception as e:
            return self._handle_exception(e, "list pending leave requests", approver_id)

    # -------------------------------------------------------------------------
    # Overdue returns
    # -------------------------------------------------------------------------

    def notify_overdue_returns(self, today: Optional[date] = None) -> ServiceResult[int]:
        """
        Send one overdue notice per student whose leave ended and who left
        campus on the gate pass.

        Returns:
            ServiceResult with the number of requests notified
        """
        campus_today = today or DateTimeUtils.campus_today()
        try:
            overdue = self.leave_request_repo.find_overdue(campus_today)
        except Exception as e:
            return self._handle_exception(e, "find overdue returns")

        notified = 0
        for request in overdue:
            student = request.student
            self._safely(
                "overdue notice",
                self.notifier.notify_overdue_return,
                request,
                student.full_name if student else "",
                request.parent_phone or self._parent_phone_of(student),
            )
            try:
                with self.transaction():
                    self.leave_request_repo.mark_overdue_notified(request, DateTimeUtils.now_utc())
            except Exception as e:
                return self._handle_exception(e, "mark overdue notified", request.id)
            notified += 1

        self._logger.info("Overdue return sweep finished", extra={"notified": notified, "today": campus_today.isoformat()})
        return ServiceResult.success(notified)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _load_student(self, student_id: str) -> User:
        student = self.user_repo.find_by_id(student_id)
        if student is None or student.role != UserRole.STUDENT:
            raise NotFoundError("Student", student_id)
        return student

    def _authorize_approver(self, approver_id: str, role: UserRole, request: LeaveRequest, student: User) -> None:
        approver = self.user_repo.find_by_id(approver_id)
        if approver is None or not approver.is_active or approver.role != role:
            raise AuthorizationError("Unknown approver", actual_role=role.value)

        if not approval_chain.authorize(role, approver.department, request, student):
            required = approval_chain.STEP_ROLES.get(request.current_step)
            raise AuthorizationError(
                "Approver may not decide this request at its current step",
                required_role=required.value if required else None,
                actual_role=role.value,
            )

    def _can_view(self, request: LeaveRequest, viewer_id: str, role: UserRole) -> bool:
        student = request.student
        if role == UserRole.STUDENT:
            return request.student_id == viewer_id
        if role == UserRole.PARENT:
            return student is not None and student.parent_id == viewer_id
        if role in approval_chain.DEPARTMENT_SCOPED_ROLES:
            viewer = self.user_repo.find_by_id(viewer_id)
            return viewer is not None and student is not None and viewer.department == student.department
        return role in STAFF_VIEWER_ROLES

    def _parent_phone_of(self, student: Optional[User]) -> Optional[str]:
        if student is None or not student.parent_id:
            return None
        try:
            parent = self.user_repo.find_by_id(student.parent_id)
        except Exception as e:
            self._logger.warning(f"Could not load parent contact: {e}", extra={"student_id": student.id})
            return None
        return parent.phone if parent else None

    def _notify_next_approvers(self, request: LeaveRequest, student: User, step: int) -> None:
        role = approval_chain.resolve_required_role(step)
        department = None
        if role in approval_chain.DEPARTMENT_SCOPED_ROLES:
            department = student.department
            if not department:
                self._logger.warning(
                    f"Student has no department; no {role.value} notified",
                    extra={"leave_request_id": request.id, "student_id": student.id},
                )
                return
        self._safely("approver notice", self.notifier.notify_approvers, role, department, request, student.full_name)

    def _issue_gate_pass(self, request_id: str) -> bool:
        result = self.gate_pass_service.issue(request_id)
        if not result.is_success:
            self._logger.warning(
                "Leave approved but gate pass issuance is pending",
                extra={"leave_request_id": request_id, "error_code": result.error.code.value},
            )
        return result.is_success

    def _safely(self, what: str, func, *args) -> None:
        """Run a notification side effect; failures are logged, never raised."""
        try:
            func(*args)
        except Exception as e:
            self._logger.error(f"Failed to send {what}: {e}", exc_info=True)
