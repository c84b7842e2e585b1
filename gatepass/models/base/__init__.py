"""Base model package."""

from gatepass.models.base.base_model import BaseModel
from gatepass.models.base.enums import (
    ApprovalDecision,
    LeaveStatus,
    LeaveType,
    NotificationChannel,
    StudentType,
    UserRole,
    enum_values,
)

__all__ = [
    "BaseModel",
    "ApprovalDecision",
    "LeaveStatus",
    "LeaveType",
    "NotificationChannel",
    "StudentType",
    "UserRole",
    "enum_values",
]
