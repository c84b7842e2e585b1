"""
Custom Exceptions for the Campus Gate Pass Application

This module defines the exception taxonomy raised by repositories and
services. Services convert these into ServiceResult failures; the API
layer converts those into HTTP responses.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(str, Enum):
    """Error codes shared by exceptions, service results and API responses"""
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    ALREADY_EXISTS = "ALREADY_EXISTS"

    # Workflow
    INVALID_STATE = "INVALID_STATE"
    CONFLICT = "CONFLICT"

    # Identity and access
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"

    # Gate passes
    CREDENTIAL_INVALID = "CREDENTIAL_INVALID"

    # Record store
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"


class BaseAppException(Exception):
    """
    Base exception class for all application exceptions.

    Provides consistent error handling across the application with
    structured error information.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format"""
        return {
            "error": {
                "message": self.message,
                "code": self.error_code.value,
                "details": self.details,
                "type": self.__class__.__name__
            }
        }

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}', error_code='{self.error_code.value}')"


class ValidationError(BaseAppException):
    """Raised when input data fails validation"""

    def __init__(
        self,
        message: str = "Validation failed",
        field_errors: Optional[Dict[str, List[str]]] = None,
    ):
        details = {"field_errors": field_errors} if field_errors else {}
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details, 422)


class NotFoundError(BaseAppException):
    """Raised when a requested resource is not found"""

    def __init__(
        self,
        resource_type: str = "Resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None
    ):
        if not message:
            message = f"{resource_type} not found"
            if resource_id:
                message += f" (ID: {resource_id})"

        details = {
            "resource_type": resource_type,
            "resource_id": resource_id
        }
        super().__init__(message, ErrorCode.NOT_FOUND, details, 404)


class AuthenticationError(BaseAppException):
    """Raised when the caller's identity token is missing or invalid"""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, ErrorCode.AUTHENTICATION_FAILED, {}, 401)


class AuthorizationError(BaseAppException):
    """Raised when the caller's role or department may not act on a request"""

    def __init__(
        self,
        message: str = "Access denied",
        required_role: Optional[str] = None,
        actual_role: Optional[str] = None,
    ):
        details = {}
        if required_role:
            details["required_role"] = required_role
        if actual_role:
            details["actual_role"] = actual_role
        super().__init__(message, ErrorCode.INSUFFICIENT_PERMISSIONS, details, 403)


class InvalidStateError(BaseAppException):
    """Raised when an action does not apply to the current workflow state"""

    def __init__(
        self,
        message: str = "Action not allowed in the current state",
        current_state: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.INVALID_STATE,
    ):
        details = {"current_state": current_state} if current_state else {}
        super().__init__(message, error_code, details, 409)


class OptimisticLockError(InvalidStateError):
    """Raised when a conditional write finds the row changed since it was read"""

    def __init__(
        self,
        message: str = "Step no longer matches; the request was modified concurrently",
        expected_version: Optional[int] = None,
    ):
        super().__init__(message, error_code=ErrorCode.CONFLICT)
        if expected_version is not None:
            self.details["expected_version"] = expected_version


class StorageError(BaseAppException):
    """Raised when the record store fails or times out; safe to retry"""

    def __init__(
        self,
        message: str = "Storage operation failed",
        operation: Optional[str] = None,
    ):
        details = {"operation": operation, "retryable": True}
        super().__init__(message, ErrorCode.STORAGE_UNAVAILABLE, details, 503)


class DuplicateEntryError(BaseAppException):
    """Raised when an insert violates a uniqueness constraint"""

    def __init__(self, message: str = "Entity already exists", entity: Optional[str] = None):
        details = {"entity": entity} if entity else {}
        super().__init__(message, ErrorCode.ALREADY_EXISTS, details, 409)


class CredentialError(BaseAppException):
    """Raised when a gate pass token cannot be accepted"""

    def __init__(self, reason: str, message: Optional[str] = None):
        self.reason = reason
        super().__init__(
            message or f"Gate pass rejected: {reason}",
            ErrorCode.CREDENTIAL_INVALID,
            {"reason": reason},
            400,
        )


__all__ = [
    "ErrorCode",
    "BaseAppException",
    "ValidationError",
    "NotFoundError",
    "AuthenticationError",
    "AuthorizationError",
    "InvalidStateError",
    "OptimisticLockError",
    "StorageError",
    "DuplicateEntryError",
    "CredentialError",
]
