"""
Schemas for the scheduled notification endpoints.
"""

from datetime import date as Date
from typing import Optional

from pydantic import Field

from gatepass.schemas.common.base import BaseSchema

__all__ = ["NotificationSweepResponse", "OverdueSweepRequest", "OverdueSweepResponse"]


class NotificationSweepResponse(BaseSchema):
    processed: int = Field(..., ge=0)
    sent: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)


class OverdueSweepRequest(BaseSchema):
    today: Optional[Date] = Field(None, description="Campus date to evaluate; defaults to today")


class OverdueSweepResponse(BaseSchema):
    notified: int = Field(..., ge=0)
