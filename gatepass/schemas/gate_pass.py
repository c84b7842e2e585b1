"""
Gate pass schemas.
"""

from __future__ import annotations

from datetime import date as Date, datetime
from typing import Optional

from pydantic import Field

from gatepass.schemas.common.base import BaseCreateSchema, BaseSchema

__all__ = [
    "GatePassDisplay",
    "RedeemRequest",
    "RedeemResponse",
    "StudentSummary",
]


class GatePassDisplay(BaseSchema):
    """Token and expiry shown to the student for QR rendering."""

    leave_request_id: str
    token: str = Field(..., description="Printable code to embed in the QR barcode")
    expires_at: datetime
    used: bool


class RedeemRequest(BaseCreateSchema):
    token: str = Field(..., min_length=1, max_length=80)


class StudentSummary(BaseSchema):
    student_id: str
    student_name: Optional[str] = None
    department: Optional[str] = None
    leave_request_id: str
    leave_type: str
    from_date: Date
    to_date: Date


class RedeemResponse(BaseSchema):
    success: bool
    message: str
    reason: Optional[str] = None
    student_summary: Optional[StudentSummary] = None
