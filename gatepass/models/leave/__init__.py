"""Leave workflow models."""

from gatepass.models.leave.leave_approval import LeaveApproval
from gatepass.models.leave.leave_request import LeaveRequest

__all__ = ["LeaveApproval", "LeaveRequest"]
