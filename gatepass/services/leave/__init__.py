"""
Leave workflow services.
"""

from gatepass.services.leave.leave_workflow_service import DecisionOutcome, LeaveWorkflowService

__all__ = ["DecisionOutcome", "LeaveWorkflowService"]
