"""
Leave request database model.

A leave request is created by a student submission and afterwards only
mutated by the workflow service, always through a version-conditioned
update.
"""

from datetime import date, datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gatepass.models.base import BaseModel, LeaveStatus, LeaveType, StudentType, enum_values

if TYPE_CHECKING:
    from gatepass.models.gate_pass import GatePass
    from gatepass.models.leave.leave_approval import LeaveApproval
    from gatepass.models.user import User

__all__ = ["LeaveRequest"]


class LeaveRequest(BaseModel):
    """Student leave request moving through the approval chain."""

    __tablename__ = "leave_requests"
    __table_args__ = (
        Index("ix_leave_requests_student_id", "student_id"),
        Index("ix_leave_requests_step_status", "current_step", "status"),
        CheckConstraint("from_date <= to_date", name="ck_leave_requests_date_range"),
        {"comment": "Leave requests and their workflow position"},
    )

    student_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    leave_type: Mapped[LeaveType] = mapped_column(
        Enum(LeaveType, native_enum=False, length=30, values_callable=enum_values),
        nullable=False,
    )
    student_type: Mapped[StudentType] = mapped_column(
        Enum(StudentType, native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
    )

    from_date: Mapped[date] = mapped_column(Date, nullable=False)
    to_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    parent_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    status: Mapped[LeaveStatus] = mapped_column(
        Enum(LeaveStatus, native_enum=False, length=30, values_callable=enum_values),
        nullable=False,
        default=LeaveStatus.PENDING,
    )
    current_step: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        comment="1-based approval step; 0 once rejected",
    )

    # Informational parent checkpoint, never gates the HOD step
    parent_confirmed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    parent_confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    overdue_notified_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Optimistic concurrency counter, bumped by every conditional update
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    student: Mapped["User"] = relationship("User", foreign_keys=[student_id], lazy="joined")
    approvals: Mapped[List["LeaveApproval"]] = relationship(
        "LeaveApproval",
        back_populates="leave_request",
        order_by="LeaveApproval.created_at",
        cascade="all, delete-orphan",
    )
    gate_pass: Mapped[Optional["GatePass"]] = relationship(
        "GatePass",
        back_populates="leave_request",
        uselist=False,
    )

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def duration_days(self) -> int:
        return (self.to_date - self.from_date).days + 1
