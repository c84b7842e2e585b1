"""
SQLAlchemy models for the gate pass service.

Importing this package registers every table on the shared metadata.
"""

from gatepass.models.base import BaseModel
from gatepass.models.gate_pass import GatePass
from gatepass.models.leave import LeaveApproval, LeaveRequest
from gatepass.models.notification import Notification
from gatepass.models.user import User

__all__ = [
    "BaseModel",
    "GatePass",
    "LeaveApproval",
    "LeaveRequest",
    "Notification",
    "User",
]
