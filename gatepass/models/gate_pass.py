"""
Gate pass (exit credential) database model.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gatepass.models.base import BaseModel

if TYPE_CHECKING:
    from gatepass.models.leave.leave_request import LeaveRequest

__all__ = ["GatePass"]


class GatePass(BaseModel):
    """
    Single-use exit credential bound to an approved leave request.

    ``used`` moves from false to true exactly once, through a
    compare-and-set in the repository.
    """

    __tablename__ = "gate_passes"

    leave_request_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("leave_requests.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    token: Mapped[str] = mapped_column(
        String(80),
        nullable=False,
        unique=True,
        index=True,
        comment="Printable code embedded in the QR barcode",
    )

    issued_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    used_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    used_by: Mapped[Optional[str]] = mapped_column(
        String(36),
        nullable=True,
        comment="Security officer who scanned the pass",
    )

    leave_request: Mapped["LeaveRequest"] = relationship("LeaveRequest", back_populates="gate_pass")

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at
