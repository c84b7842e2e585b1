"""
Leave repositories.
"""

from gatepass.repositories.leave.leave_approval_repository import LeaveApprovalRepository
from gatepass.repositories.leave.leave_request_repository import LeaveRequestRepository

__all__ = ["LeaveApprovalRepository", "LeaveRequestRepository"]
