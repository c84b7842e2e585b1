"""
Gate pass repository.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from gatepass.models.gate_pass import GatePass
from gatepass.repositories.base import BaseRepository


class GatePassRepository(BaseRepository[GatePass]):
    """Persistence for exit credentials."""

    def __init__(self, db: Session):
        super().__init__(GatePass, db)

    def find_by_token(self, token: str) -> Optional[GatePass]:
        return self.find_one_by(token=token)

    def find_by_request(self, leave_request_id: str) -> Optional[GatePass]:
        return self.find_one_by(leave_request_id=leave_request_id)

    def mark_used_if_unused(self, gate_pass_id: str, used_by: str, used_at: datetime) -> bool:
        """
        Flip ``used`` from false to true in one conditional statement.

        Returns:
            True if this call performed the transition, False if the pass
            was already used.
        """
        stmt = (
            update(GatePass)
            .where(GatePass.id == gate_pass_id, GatePass.used.is_(False))
            .values(used=True, used_at=used_at, used_by=used_by, updated_at=used_at)
            .execution_options(synchronize_session=False)
        )
        with self._storage_guard("mark_used"):
            result = self.db.execute(stmt)
        return result.rowcount == 1
