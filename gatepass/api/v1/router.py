"""
API v1 Router - Main Entry Point

Aggregates all v1 endpoints of the gate pass service.
"""
from fastapi import APIRouter

from gatepass.api.v1 import gate_passes, leave_requests, notifications

router = APIRouter(
    responses={
        400: {"description": "Bad Request"},
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        404: {"description": "Not Found"},
        409: {"description": "Conflict"},
        422: {"description": "Validation Error"},
        503: {"description": "Service Unavailable"},
    }
)

router.include_router(leave_requests.router)
router.include_router(gate_passes.router)
router.include_router(notifications.router)
