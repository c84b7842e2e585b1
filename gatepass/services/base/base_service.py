"""
Base service class providing common functionality for all services.
"""

from abc import ABC
from contextlib import contextmanager
from typing import Any, Dict, Generic, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gatepass.core.exceptions import BaseAppException, StorageError
from gatepass.core.logging import get_logger
from gatepass.repositories.base import BaseRepository
from gatepass.services.base.service_result import (
    ErrorCode,
    ErrorSeverity,
    ServiceError,
    ServiceResult,
)

TModel = TypeVar("TModel")
TRepo = TypeVar("TRepo", bound=BaseRepository)

STORAGE_RETRY_MESSAGE = "The service is temporarily unavailable. Please try again."

# Codes for exceptions raised outside the application taxonomy
EXCEPTION_ERROR_CODES = (
    (SQLAlchemyError, ErrorCode.STORAGE_UNAVAILABLE),
    (ValueError, ErrorCode.VALIDATION_ERROR),
    (PermissionError, ErrorCode.INSUFFICIENT_PERMISSIONS),
)


class BaseService(ABC, Generic[TModel, TRepo]):
    """
    Base service with common behaviors:
    - Shared logger and db session
    - Consistent error handling via ServiceResult
    - Transaction management utilities
    """

    def __init__(self, repository: TRepo, db_session: Session):
        """
        Initialize base service.

        Args:
            repository: Repository instance for data access
            db_session: SQLAlchemy database session
        """
        self.repository: TRepo = repository
        self.db: Session = db_session
        self._logger = get_logger(self.__class__.__name__)

    # -------------------------------------------------------------------------
    # Exception & Error Handling
    # -------------------------------------------------------------------------

    def _handle_exception(
        self,
        exception: Exception,
        operation: str,
        entity_ref: Optional[Any] = None,
        severity: Optional[ErrorSeverity] = None,
        additional_context: Optional[Dict[str, Any]] = None,
    ) -> ServiceResult:
        """
        Convert exception to a ServiceResult failure with logging.

        Domain exceptions keep their own message and details and are
        logged as warnings; anything else is logged with a traceback.

        Args:
            exception: The caught exception
            operation: Description of the operation that failed
            entity_ref: Reference to the entity involved (ID, token tail, etc.)
            severity: Error severity level
            additional_context: Extra context for logging/debugging

        Returns:
            ServiceResult with failure status and error details
        """
        context = {
            "operation": operation,
            "entity_ref": str(entity_ref) if entity_ref is not None else None,
            "exception_type": type(exception).__name__,
        }
        if additional_context:
            context.update(additional_context)

        error_code = self._map_exception_to_error_code(exception)

        if isinstance(exception, BaseAppException) and not isinstance(exception, StorageError):
            self._logger.warning(f"{operation} refused: {exception.message}", extra=context)
            return ServiceResult.failure(
                ServiceError(
                    code=error_code,
                    message=exception.message,
                    details=exception.details,
                    severity=severity or ErrorSeverity.WARNING,
                )
            )

        self._logger.error(f"Error during {operation}: {exception}", exc_info=True, extra=context)

        details: Dict[str, Any] = {"entity_ref": context["entity_ref"]}
        message = f"Failed to {operation}"
        if error_code == ErrorCode.STORAGE_UNAVAILABLE:
            details["retryable"] = True
            message = STORAGE_RETRY_MESSAGE

        return ServiceResult.failure(
            ServiceError(
                code=error_code,
                message=message,
                details=details,
                severity=severity or ErrorSeverity.CRITICAL,
            )
        )

    def _map_exception_to_error_code(self, exception: Exception) -> ErrorCode:
        if isinstance(exception, BaseAppException):
            return exception.error_code
        for exc_type, error_code in EXCEPTION_ERROR_CODES:
            if isinstance(exception, exc_type):
                return error_code
        return ErrorCode.INTERNAL_ERROR

    # -------------------------------------------------------------------------
    # Transaction Management
    # -------------------------------------------------------------------------

    @contextmanager
    def transaction(self, auto_commit: bool = True):
        """
        Context manager for database transactions with automatic rollback.

        Example:
            with self.transaction():
                self.repository.create(entity)
                # automatic commit on success, rollback on exception
        """
        try:
            yield self.db
            if auto_commit:
                self._commit()
        except Exception as e:
            self._rollback()
            self._logger.debug(f"Transaction rolled back after {type(e).__name__}")
            raise

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self._logger.error(f"Commit failed: {e}", exc_info=True)
            self._rollback()
            raise StorageError("Commit failed", operation="commit") from e

    def _rollback(self) -> None:
        """Rollback the current transaction, suppressing rollback errors."""
        try:
            self.db.rollback()
        except SQLAlchemyError as e:
            # Rollback errors must not mask the original error
            self._logger.warning(f"Rollback failed: {e}")

