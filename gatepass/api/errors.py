"""
Translation of service failures and application exceptions into HTTP
responses.
"""

from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from gatepass.core.exceptions import BaseAppException, StorageError
from gatepass.core.logging import get_logger
from gatepass.services.base.service_result import ErrorCode, ServiceResult

logger = get_logger(__name__)

RETRY_AFTER_SECONDS = "5"

STATUS_BY_CODE: Dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 422,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.AUTHENTICATION_FAILED: 401,
    ErrorCode.INSUFFICIENT_PERMISSIONS: 403,
    ErrorCode.INVALID_STATE: 409,
    ErrorCode.CONFLICT: 409,
    ErrorCode.ALREADY_EXISTS: 409,
    ErrorCode.CREDENTIAL_INVALID: 400,
    ErrorCode.STORAGE_UNAVAILABLE: 503,
    ErrorCode.INTERNAL_ERROR: 500,
}


class ServiceFailure(HTTPException):
    """HTTPException carrying a failed ServiceResult's error payload."""

    def __init__(self, result: ServiceResult):
        error = result.error
        status_code = STATUS_BY_CODE.get(error.code, 500)
        headers = {"Retry-After": RETRY_AFTER_SECONDS} if status_code == 503 else None
        super().__init__(status_code=status_code, detail=error.to_dict(), headers=headers)


def unwrap_or_raise(result: ServiceResult) -> Any:
    """Return the result's data or raise the matching HTTP error."""
    if not result.is_success:
        raise ServiceFailure(result)
    return result.data


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceFailure)
    async def service_failure_handler(request: Request, exc: ServiceFailure) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)

    @app.exception_handler(BaseAppException)
    async def app_exception_handler(request: Request, exc: BaseAppException) -> JSONResponse:
        logger.warning(
            f"Request rejected: {exc.message}",
            extra={"error_code": exc.error_code.value, "path": request.url.path},
        )
        headers = {"Retry-After": RETRY_AFTER_SECONDS} if isinstance(exc, StorageError) else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)
