"""
Leave approval database model.

One row per approval stage reached. The row is created as a pending stub
when the request arrives at the stage and completed by the approver who
decides it.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gatepass.models.base import ApprovalDecision, BaseModel, UserRole, enum_values

if TYPE_CHECKING:
    from gatepass.models.leave.leave_request import LeaveRequest

__all__ = ["LeaveApproval"]


class LeaveApproval(BaseModel):
    """
    Leave approval decision tracking.

    Decision fields are immutable once set; only comments may be amended.
    """

    __tablename__ = "leave_approvals"
    __table_args__ = (
        Index("ix_leave_approval_leave_request_id", "leave_request_id"),
        Index("ix_leave_approval_approver_id", "approver_id"),
        {"comment": "Leave approval decisions and tracking"},
    )

    leave_request_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("leave_requests.id", ondelete="CASCADE"),
        nullable=False,
        comment="Leave request being approved/rejected",
    )

    approver_role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
        comment="Role required at this stage",
    )

    approver_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="User who decided; empty while pending",
    )

    step: Mapped[int] = mapped_column(Integer, nullable=False, comment="Approval step number")

    decision: Mapped[ApprovalDecision] = mapped_column(
        Enum(ApprovalDecision, native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
        default=ApprovalDecision.PENDING,
    )

    comments: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Required when rejecting",
    )

    decided_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    leave_request: Mapped["LeaveRequest"] = relationship("LeaveRequest", back_populates="approvals")

    @property
    def is_decided(self) -> bool:
        return self.decision != ApprovalDecision.PENDING
