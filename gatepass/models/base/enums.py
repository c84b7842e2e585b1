"""
Database enums shared by models, schemas and services.

Roles form a closed set; workflow code looks roles up in tables that are
checked against this enum when the module loads.
"""

import enum


class UserRole(str, enum.Enum):
    """User role enumeration."""
    STUDENT = "student"
    MENTOR = "mentor"
    HOD = "hod"
    PRINCIPAL = "principal"
    WARDEN = "warden"
    PARENT = "parent"
    SECURITY = "security"
    ADMIN = "admin"


class StudentType(str, enum.Enum):
    """Student residential affiliation."""
    DAY_SCHOLAR = "day_scholar"
    HOSTEL = "hostel"


class LeaveType(str, enum.Enum):
    """Leave categories a student may request."""
    MEDICAL = "medical"
    PERSONAL = "personal"
    FAMILY_EMERGENCY = "family_emergency"
    ACADEMIC = "academic"


class LeaveStatus(str, enum.Enum):
    """Leave request workflow status."""
    PENDING = "pending"
    MENTOR_APPROVED = "mentor_approved"
    PARENT_CONFIRMED = "parent_confirmed"
    HOD_APPROVED = "hod_approved"
    PRINCIPAL_APPROVED = "principal_approved"
    WARDEN_APPROVED = "warden_approved"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in (LeaveStatus.APPROVED, LeaveStatus.REJECTED)


class ApprovalDecision(str, enum.Enum):
    """Decision recorded on an approval stage."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class NotificationChannel(str, enum.Enum):
    """Notification delivery channels."""
    IN_APP = "in_app"
    SMS = "sms"


def enum_values(enum_cls):
    """values_callable for SQLAlchemy Enum columns: persist ``.value``."""
    return [member.value for member in enum_cls]
