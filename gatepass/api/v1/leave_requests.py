"""
Leave request endpoints.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, status

from gatepass.api.deps import CurrentIdentity, get_workflow_service, require_roles
from gatepass.api.errors import unwrap_or_raise
from gatepass.models.base import UserRole
from gatepass.models.leave import LeaveRequest
from gatepass.schemas.leave import (
    DecisionRequest,
    DecisionResponse,
    LeaveApprovalResponse,
    LeaveRequestDetail,
    LeaveRequestResponse,
    LeaveSubmitRequest,
    ParentConfirmationRequest,
    SubmitResponse,
)
from gatepass.schemas.notification import OverdueSweepRequest, OverdueSweepResponse
from gatepass.services.leave.leave_workflow_service import LeaveWorkflowService

router = APIRouter(prefix="/leave-requests", tags=["Leave Requests"])

APPROVER_ROLES = (UserRole.MENTOR, UserRole.HOD, UserRole.PRINCIPAL, UserRole.WARDEN)
VIEWER_ROLES = APPROVER_ROLES + (UserRole.STUDENT, UserRole.PARENT, UserRole.ADMIN)


def _detail(request: LeaveRequest) -> LeaveRequestDetail:
    student = request.student
    base = LeaveRequestResponse.model_validate(request).model_dump()
    return LeaveRequestDetail(
        **base,
        student_name=student.full_name if student else None,
        department=student.department if student else None,
        parent_phone=request.parent_phone,
        approvals=[LeaveApprovalResponse.model_validate(a) for a in request.approvals],
    )


@router.post("", response_model=SubmitResponse, status_code=status.HTTP_201_CREATED)
def submit_leave_request(
    payload: LeaveSubmitRequest,
    identity: CurrentIdentity = Depends(require_roles(UserRole.STUDENT)),
    service: LeaveWorkflowService = Depends(get_workflow_service),
) -> SubmitResponse:
    request = unwrap_or_raise(service.submit(identity.user_id, payload))
    return SubmitResponse(request_id=request.id, status=request.status, current_step=request.current_step)


@router.get("/mine", response_model=List[LeaveRequestResponse])
def list_my_leave_requests(
    identity: CurrentIdentity = Depends(require_roles(UserRole.STUDENT)),
    service: LeaveWorkflowService = Depends(get_workflow_service),
) -> List[LeaveRequestResponse]:
    requests = unwrap_or_raise(service.list_for_student(identity.user_id))
    return [LeaveRequestResponse.model_validate(r) for r in requests]


@router.get("/pending", response_model=List[LeaveRequestResponse])
def list_pending_leave_requests(
    identity: CurrentIdentity = Depends(require_roles(*APPROVER_ROLES)),
    service: LeaveWorkflowService = Depends(get_workflow_service),
) -> List[LeaveRequestResponse]:
    requests = unwrap_or_raise(service.list_pending_for_approver(identity.user_id, identity.role))
    return [LeaveRequestResponse.model_validate(r) for r in requests]


@router.post("/overdue/notify", response_model=OverdueSweepResponse)
def notify_overdue_returns(
    payload: Optional[OverdueSweepRequest] = None,
    identity: CurrentIdentity = Depends(require_roles(UserRole.ADMIN)),
    service: LeaveWorkflowService = Depends(get_workflow_service),
) -> OverdueSweepResponse:
    notified = unwrap_or_raise(service.notify_overdue_returns(payload.today if payload else None))
    return OverdueSweepResponse(notified=notified)


@router.get("/{request_id}", response_model=LeaveRequestDetail)
def get_leave_request(
    request_id: str,
    identity: CurrentIdentity = Depends(require_roles(*VIEWER_ROLES)),
    service: LeaveWorkflowService = Depends(get_workflow_service),
) -> LeaveRequestDetail:
    request = unwrap_or_raise(service.get_request_detail(request_id, identity.user_id, identity.role))
    return _detail(request)


@router.post("/{request_id}/decision", response_model=DecisionResponse)
def decide_leave_request(
    request_id: str,
    payload: DecisionRequest,
    identity: CurrentIdentity = Depends(require_roles(*APPROVER_ROLES)),
    service: LeaveWorkflowService = Depends(get_workflow_service),
) -> DecisionResponse:
    outcome = unwrap_or_raise(
        service.record_decision(
            request_id,
            identity.user_id,
            identity.role,
            payload.approval_decision,
            payload.comments,
        )
    )
    return DecisionResponse(
        request_id=outcome.request_id,
        new_status=outcome.new_status,
        current_step=outcome.current_step,
        credential_pending=outcome.credential_pending,
    )


@router.post("/{request_id}/parent-confirmation", response_model=DecisionResponse)
def confirm_leave_request(
    request_id: str,
    payload: ParentConfirmationRequest,
    identity: CurrentIdentity = Depends(require_roles(UserRole.PARENT)),
    service: LeaveWorkflowService = Depends(get_workflow_service),
) -> DecisionResponse:
    outcome = unwrap_or_raise(
        service.confirm_by_parent(request_id, identity.user_id, payload.confirmed, payload.comments)
    )
    return DecisionResponse(
        request_id=outcome.request_id,
        new_status=outcome.new_status,
        current_step=outcome.current_step,
    )
