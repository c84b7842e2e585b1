"""
Repository layer.
"""

from gatepass.repositories.base import BaseRepository
from gatepass.repositories.gate_pass_repository import GatePassRepository
from gatepass.repositories.leave import LeaveApprovalRepository, LeaveRequestRepository
from gatepass.repositories.notification_repository import NotificationRepository
from gatepass.repositories.user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "GatePassRepository",
    "LeaveApprovalRepository",
    "LeaveRequestRepository",
    "NotificationRepository",
    "UserRepository",
]
