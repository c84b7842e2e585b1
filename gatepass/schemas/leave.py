"""
Leave request and approval schemas.

Submission payloads are validated here; role, department and workflow
state checks belong to the workflow service.
"""

from __future__ import annotations

from datetime import date as Date, datetime
from typing import List, Literal, Optional

from pydantic import ConfigDict, Field, field_validator, model_validator

from gatepass.config.settings import settings
from gatepass.core.utils import DateTimeUtils
from gatepass.models.base import ApprovalDecision, LeaveStatus, LeaveType, StudentType, UserRole
from gatepass.schemas.common.base import BaseCreateSchema, BaseResponseSchema, BaseSchema

__all__ = [
    "LeaveSubmitRequest",
    "DecisionRequest",
    "ParentConfirmationRequest",
    "LeaveApprovalResponse",
    "LeaveRequestResponse",
    "LeaveRequestDetail",
    "SubmitResponse",
    "DecisionResponse",
]

PHONE_PATTERN = r"^\+?[1-9]\d{9,14}$"


class LeaveSubmitRequest(BaseCreateSchema):
    """
    Student leave submission.

    Both dates are campus-local calendar days and may not lie in the past.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "leave_type": "personal",
                "student_type": "hostel",
                "from_date": "2025-06-01",
                "to_date": "2025-06-03",
                "reason": "Family wedding in home town",
                "parent_phone": "+919876543210",
            }
        }
    )

    leave_type: LeaveType = Field(..., description="Type of leave being requested")
    student_type: StudentType = Field(..., description="Residential affiliation of the student")
    from_date: Date = Field(..., description="Leave start date")
    to_date: Date = Field(..., description="Leave end date (inclusive)")
    reason: str = Field(..., max_length=1000, description="Reason for leave")
    parent_phone: Optional[str] = Field(
        None,
        pattern=PHONE_PATTERN,
        description="Parent phone for the confirmation SMS",
    )

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        v = v.strip()
        if len(v) < settings.MIN_REASON_LENGTH:
            raise ValueError(f"Leave reason must be at least {settings.MIN_REASON_LENGTH} characters")
        return v

    @field_validator("parent_phone", mode="before")
    @classmethod
    def blank_phone_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def validate_dates(self) -> "LeaveSubmitRequest":
        if self.from_date > self.to_date:
            raise ValueError("from_date must be on or before to_date")

        today = DateTimeUtils.campus_today()
        if self.from_date < today:
            raise ValueError("Leave cannot start in the past")
        return self


class DecisionRequest(BaseCreateSchema):
    """Approver decision on the step a request currently sits at."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"decision": "reject", "comments": "insufficient justification"}
        }
    )

    decision: Literal["approve", "reject"] = Field(..., description="approve or reject")
    comments: Optional[str] = Field(None, max_length=1000, description="Required when rejecting")

    @property
    def approval_decision(self) -> ApprovalDecision:
        return ApprovalDecision.APPROVED if self.decision == "approve" else ApprovalDecision.REJECTED


class ParentConfirmationRequest(BaseCreateSchema):
    confirmed: bool = Field(..., description="True to confirm, False to decline")
    comments: Optional[str] = Field(None, max_length=1000)


class LeaveApprovalResponse(BaseResponseSchema):
    leave_request_id: str
    approver_role: UserRole
    approver_id: Optional[str] = None
    step: int
    decision: ApprovalDecision
    comments: Optional[str] = None
    decided_at: Optional[datetime] = None


class LeaveRequestResponse(BaseResponseSchema):
    """Leave request as shown in lists."""

    student_id: str
    leave_type: LeaveType
    student_type: StudentType
    from_date: Date
    to_date: Date
    reason: str
    status: LeaveStatus
    current_step: int
    parent_confirmed: bool
    duration_days: int = Field(..., description="Inclusive number of leave days")


class LeaveRequestDetail(LeaveRequestResponse):
    """Leave request with its approval history."""

    student_name: Optional[str] = None
    department: Optional[str] = None
    parent_phone: Optional[str] = None
    approvals: List[LeaveApprovalResponse] = Field(default_factory=list)


class SubmitResponse(BaseSchema):
    request_id: str
    status: LeaveStatus
    current_step: int


class DecisionResponse(BaseSchema):
    request_id: str
    new_status: LeaveStatus
    current_step: int
    credential_pending: bool = Field(
        False,
        description="Approved, but the gate pass could not be issued yet",
    )
