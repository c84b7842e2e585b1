"""
User repository.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from gatepass.models.base import UserRole
from gatepass.models.user import User
from gatepass.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Lookups for students, approvers and parents."""

    def __init__(self, db: Session):
        super().__init__(User, db)

    def find_active_by_role(self, role: UserRole, department: Optional[str] = None) -> List[User]:
        """
        Active users holding ``role``, optionally limited to one department.
        """
        stmt = select(User).where(User.role == role, User.is_active.is_(True))
        if department is not None:
            stmt = stmt.where(User.department == department)
        stmt = stmt.order_by(User.created_at)

        with self._storage_guard("find_active_by_role"):
            return list(self.db.execute(stmt).scalars().all())
