"""
Base repository with standardized CRUD operations and error handling.

Provides the foundation for all domain repositories. Every storage
failure is surfaced as a StorageError so callers can tell a retryable
outage apart from a domain error.
"""

from contextlib import contextmanager
from typing import Any, Dict, Generic, Iterator, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from gatepass.core.exceptions import (
    DuplicateEntryError,
    NotFoundError,
    OptimisticLockError,
    StorageError,
)
from gatepass.core.logging import get_logger
from gatepass.core.utils import DateTimeUtils
from gatepass.models.base import BaseModel

logger = get_logger(__name__)

# Type variable for model classes
ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic record store over a single model.

    Write methods flush but do not commit; the owning service decides
    the transaction boundary.
    """

    def __init__(self, model: Type[ModelType], db: Session):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            db: Database session
        """
        self.model = model
        self.db = db

    @property
    def entity_name(self) -> str:
        return self.model.__name__

    @contextmanager
    def _storage_guard(self, operation: str) -> Iterator[None]:
        """Translate driver failures into StorageError."""
        try:
            yield
        except IntegrityError as e:
            raise DuplicateEntryError(
                f"{self.entity_name} violates a uniqueness constraint",
                entity=self.entity_name,
            ) from e
        except SQLAlchemyError as e:
            logger.error(
                f"{self.entity_name} {operation} failed: {e}",
                extra={"operation": operation, "entity": self.entity_name},
            )
            raise StorageError(f"{self.entity_name} {operation} failed", operation=operation) from e

    # ==================== Create Operations ====================

    def create(self, entity: ModelType) -> ModelType:
        """
        Add a new entity to the session and flush it.

        Raises:
            DuplicateEntryError: If a unique constraint is violated
            StorageError: On any other storage failure
        """
        with self._storage_guard("create"):
            self.db.add(entity)
            self.db.flush()

        logger.debug(f"Created {self.entity_name} with id: {entity.id}")
        return entity

    # ==================== Read Operations ====================

    def find_by_id(self, id: str) -> Optional[ModelType]:
        with self._storage_guard("find_by_id"):
            return self.db.get(self.model, id)

    def get_by_id(self, id: str) -> ModelType:
        """
        Get entity by ID or raise exception.

        Raises:
            NotFoundError: If entity not found
        """
        entity = self.find_by_id(id)
        if entity is None:
            raise NotFoundError(self.entity_name, id)
        return entity

    def find_by(
        self,
        order_by: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
        **criteria: Any,
    ) -> List[ModelType]:
        """
        Find entities whose columns equal the given values.

        Args:
            order_by: Field names to order by (prefix with - for desc)
            limit: Maximum number of records
            **criteria: Column filters; list or tuple values become IN clauses

        Returns:
            List of matching entities
        """
        stmt = select(self.model)

        for key, value in criteria.items():
            column = getattr(self.model, key)
            if isinstance(value, (list, tuple)):
                stmt = stmt.where(column.in_(value))
            else:
                stmt = stmt.where(column == value)

        for field in order_by or ():
            if field.startswith("-"):
                stmt = stmt.order_by(getattr(self.model, field[1:]).desc())
            else:
                stmt = stmt.order_by(getattr(self.model, field))

        if limit is not None:
            stmt = stmt.limit(limit)

        with self._storage_guard("find_by"):
            return list(self.db.execute(stmt).unique().scalars().all())

    def find_one_by(self, **criteria: Any) -> Optional[ModelType]:
        results = self.find_by(limit=1, **criteria)
        return results[0] if results else None

    # ==================== Update Operations ====================

    def update(
        self,
        id: str,
        data: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> ModelType:
        """
        Apply a single conditional UPDATE and reload the entity.

        When ``expected_version`` is given the row is only written if its
        version still matches, and the version is bumped in the same
        statement.

        Args:
            id: Entity ID
            data: Column values to set
            expected_version: Version read by the caller

        Returns:
            Updated entity

        Raises:
            NotFoundError: If entity not found
            OptimisticLockError: If the version no longer matches
        """
        values = dict(data)
        if hasattr(self.model, "updated_at"):
            values.setdefault("updated_at", DateTimeUtils.now_utc())

        stmt = update(self.model).where(self.model.id == id)
        if expected_version is not None:
            stmt = stmt.where(self.model.version == expected_version)
            values["version"] = self.model.version + 1
        stmt = stmt.values(**values).execution_options(synchronize_session=False)

        with self._storage_guard("update"):
            self.db.flush()
            result = self.db.execute(stmt)

        if result.rowcount == 0:
            if self.find_by_id(id) is None:
                raise NotFoundError(self.entity_name, id)
            logger.warning(
                f"Version conflict on {self.entity_name} {id}",
                extra={"entity_id": id, "expected_version": expected_version},
            )
            raise OptimisticLockError(expected_version=expected_version)

        with self._storage_guard("refresh"):
            entity = self.db.get(self.model, id, populate_existing=True)
        return entity
