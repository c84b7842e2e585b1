"""
Notification queue model.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from gatepass.models.base import BaseModel, NotificationChannel, enum_values

__all__ = ["Notification"]


class Notification(BaseModel):
    """
    Outbound message queued by the workflow.

    Rows stay ``sent=False`` until the sink accepts them; the retry sweep
    picks them up again.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_sent_created", "sent", "created_at"),
    )

    leave_request_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("leave_requests.id", ondelete="SET NULL"),
        nullable=True,
    )

    target_user_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    target_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    channel: Mapped[NotificationChannel] = mapped_column(
        Enum(NotificationChannel, native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
    )
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    @property
    def destination(self) -> Optional[str]:
        if self.channel == NotificationChannel.SMS:
            return self.target_phone
        return self.target_user_id
