"""
Leave approval repository.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from gatepass.models.base import ApprovalDecision, UserRole
from gatepass.models.leave import LeaveApproval
from gatepass.repositories.base import BaseRepository


class LeaveApprovalRepository(BaseRepository[LeaveApproval]):
    """Persistence for per-step approval records."""

    def __init__(self, db: Session):
        super().__init__(LeaveApproval, db)

    def create_stub(self, leave_request_id: str, role: UserRole, step: int) -> LeaveApproval:
        """Open a pending approval row for the stage the request just reached."""
        return self.create(
            LeaveApproval(
                leave_request_id=leave_request_id,
                approver_role=role,
                step=step,
                decision=ApprovalDecision.PENDING,
            )
        )

    def find_pending_stub(self, leave_request_id: str, step: int) -> Optional[LeaveApproval]:
        return self.find_one_by(
            leave_request_id=leave_request_id,
            step=step,
            decision=ApprovalDecision.PENDING,
        )

    def find_for_request(self, leave_request_id: str) -> List[LeaveApproval]:
        return self.find_by(leave_request_id=leave_request_id, order_by=["created_at"])

    def record(
        self,
        leave_request_id: str,
        role: UserRole,
        step: int,
        approver_id: str,
        decision: ApprovalDecision,
        comments: Optional[str],
        decided_at: datetime,
    ) -> LeaveApproval:
        """
        Complete the pending stub for ``step`` or insert a fresh decided row
        when no stub exists.
        """
        approval = self.find_pending_stub(leave_request_id, step)
        if approval is None:
            approval = LeaveApproval(leave_request_id=leave_request_id, approver_role=role, step=step)
            self.db.add(approval)

        approval.approver_role = role
        approval.approver_id = approver_id
        approval.decision = decision
        approval.comments = comments
        approval.decided_at = decided_at

        with self._storage_guard("record"):
            self.db.flush()
        return approval

    def close_pending(
        self,
        leave_request_id: str,
        decision: ApprovalDecision,
        comments: Optional[str],
        decided_at: datetime,
    ) -> List[LeaveApproval]:
        """Decide every still-pending row of a request that ended elsewhere."""
        pending = self.find_by(leave_request_id=leave_request_id, decision=ApprovalDecision.PENDING)
        for approval in pending:
            approval.decision = decision
            approval.comments = comments
            approval.decided_at = decided_at

        if pending:
            with self._storage_guard("close_pending"):
                self.db.flush()
        return pending
