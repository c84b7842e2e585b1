"""
Notification queue repository.
"""

from datetime import datetime
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from gatepass.models.notification import Notification
from gatepass.repositories.base import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    """Persistence for queued outbound messages."""

    def __init__(self, db: Session):
        super().__init__(Notification, db)

    def find_unsent(self, max_attempts: int, limit: int) -> List[Notification]:
        """Unsent rows still under the retry ceiling, oldest first."""
        stmt = (
            select(Notification)
            .where(Notification.sent.is_(False), Notification.attempts < max_attempts)
            .order_by(Notification.created_at)
            .limit(limit)
        )
        with self._storage_guard("find_unsent"):
            return list(self.db.execute(stmt).scalars().all())

    def find_for_request(self, leave_request_id: str) -> List[Notification]:
        return self.find_by(leave_request_id=leave_request_id, order_by=["created_at"])

    def mark_sent(self, notification: Notification, at: datetime) -> None:
        notification.sent = True
        notification.sent_at = at
        notification.attempts += 1
        notification.last_error = None
        with self._storage_guard("mark_sent"):
            self.db.flush()

    def mark_failed(self, notification: Notification, error: str) -> None:
        notification.attempts += 1
        notification.last_error = error[:2000]
        with self._storage_guard("mark_failed"):
            self.db.flush()
