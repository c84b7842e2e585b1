"""
Notification maintenance endpoints, meant to be driven by a scheduler.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from gatepass.api.deps import CurrentIdentity, get_notification_dispatcher, require_roles
from gatepass.api.errors import unwrap_or_raise
from gatepass.models.base import UserRole
from gatepass.schemas.notification import NotificationSweepResponse
from gatepass.services.notification.notification_dispatcher import NotificationDispatcher

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.post("/process", response_model=NotificationSweepResponse)
def process_pending_notifications(
    limit: Optional[int] = Query(None, ge=1, le=1000),
    identity: CurrentIdentity = Depends(require_roles(UserRole.ADMIN)),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> NotificationSweepResponse:
    summary = unwrap_or_raise(dispatcher.process_pending_notifications(limit))
    return NotificationSweepResponse(**summary)
