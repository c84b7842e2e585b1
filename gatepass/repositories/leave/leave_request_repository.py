"""
Leave request repository.

All state changes go through ``advance``, which is a version-conditioned
update, so two approvers racing on the same step cannot both win.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from gatepass.models.base import LeaveStatus
from gatepass.models.gate_pass import GatePass
from gatepass.models.leave import LeaveRequest
from gatepass.models.user import User
from gatepass.repositories.base import BaseRepository


class LeaveRequestRepository(BaseRepository[LeaveRequest]):
    """Persistence for leave requests."""

    def __init__(self, db: Session):
        super().__init__(LeaveRequest, db)

    # ==================== Read Operations ====================

    def find_with_approvals(self, request_id: str) -> Optional[LeaveRequest]:
        stmt = (
            select(LeaveRequest)
            .options(selectinload(LeaveRequest.approvals))
            .where(LeaveRequest.id == request_id)
        )
        with self._storage_guard("find_with_approvals"):
            return self.db.execute(stmt).unique().scalar_one_or_none()

    def find_for_student(self, student_id: str) -> List[LeaveRequest]:
        """Student's requests, newest first."""
        return self.find_by(student_id=student_id, order_by=["-created_at"])

    def find_at_step(self, step: int, department: Optional[str] = None) -> List[LeaveRequest]:
        """
        Non-terminal requests waiting at ``step``, newest first.

        Args:
            step: Approval step the requests must sit at
            department: Restrict to students of this department
        """
        stmt = (
            select(LeaveRequest)
            .join(User, User.id == LeaveRequest.student_id)
            .where(
                LeaveRequest.current_step == step,
                LeaveRequest.status.not_in([LeaveStatus.APPROVED, LeaveStatus.REJECTED]),
            )
        )
        if department is not None:
            stmt = stmt.where(User.department == department)
        stmt = stmt.order_by(LeaveRequest.created_at.desc())

        with self._storage_guard("find_at_step"):
            return list(self.db.execute(stmt).unique().scalars().all())

    def find_overdue(self, today: date) -> List[LeaveRequest]:
        """
        Approved requests whose student has left campus and whose leave
        window ended before ``today``, not yet reported as overdue.
        """
        stmt = (
            select(LeaveRequest)
            .join(GatePass, GatePass.leave_request_id == LeaveRequest.id)
            .where(
                LeaveRequest.status == LeaveStatus.APPROVED,
                LeaveRequest.to_date < today,
                GatePass.used.is_(True),
                LeaveRequest.overdue_notified_at.is_(None),
            )
            .order_by(LeaveRequest.to_date)
        )

        with self._storage_guard("find_overdue"):
            return list(self.db.execute(stmt).unique().scalars().all())

    # ==================== Write Operations ====================

    def advance(
        self,
        request: LeaveRequest,
        status: LeaveStatus,
        current_step: int,
        **extra: Any,
    ) -> LeaveRequest:
        """
        Move a request to a new status/step, conditioned on the version
        the caller read.

        Raises:
            OptimisticLockError: If another writer got there first
        """
        data: Dict[str, Any] = {"status": status, "current_step": current_step}
        data.update(extra)
        return self.update(request.id, data, expected_version=request.version)

    def mark_overdue_notified(self, request: LeaveRequest, at: datetime) -> LeaveRequest:
        return self.update(request.id, {"overdue_notified_at": at})
