"""
Notification dispatcher service for leave workflow events.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from gatepass.config.settings import settings
from gatepass.core.utils import DateTimeUtils
from gatepass.models.base import NotificationChannel, UserRole
from gatepass.models.leave import LeaveRequest
from gatepass.models.notification import Notification
from gatepass.repositories.notification_repository import NotificationRepository
from gatepass.repositories.user_repository import UserRepository
from gatepass.services.base.base_service import BaseService
from gatepass.services.base.service_result import ServiceResult
from gatepass.services.notification.sinks import LoggingNotificationSink, NotificationSink

APPROVER_MESSAGE = "New leave request from {student_name} requires your approval. Leave type: {leave_type}"
PARENT_REQUEST_MESSAGE = (
    "Your child {student_name} has requested leave: {details}. Please confirm by replying YES or NO."
)
APPROVED_MESSAGE = "Your leave request from {from_date} to {to_date} has been approved. Your gate pass is ready."
REJECTED_MESSAGE = "Your leave request from {from_date} to {to_date} was rejected. Comments: {comments}"
PARENT_REJECTED_MESSAGE = "The leave request of your child {student_name} from {from_date} to {to_date} was rejected."
OVERDUE_STUDENT_MESSAGE = "Your leave period ended on {return_date}. Please report to college immediately."
OVERDUE_PARENT_MESSAGE = (
    "Your child {student_name} has not returned to college after leave period ended on {return_date}."
)


class NotificationDispatcher(BaseService[Notification, NotificationRepository]):
    """
    Queue workflow notifications and push them to a delivery sink.

    Every message is persisted unsent and committed before the sink is
    tried, so a crash or sink outage leaves a row for the retry sweep.
    Delivery is at-least-once. Nothing here raises into the workflow.
    """

    def __init__(
        self,
        notification_repo: NotificationRepository,
        user_repo: UserRepository,
        db_session: Session,
        sink: Optional[NotificationSink] = None,
    ):
        super().__init__(notification_repo, db_session)
        self.notification_repo = notification_repo
        self.user_repo = user_repo
        self.sink = sink or LoggingNotificationSink()

    # -------------------------------------------------------------------------
    # Workflow Events
    # -------------------------------------------------------------------------

    def notify_approvers(
        self,
        role: UserRole,
        department: Optional[str],
        request: LeaveRequest,
        student_name: str,
    ) -> int:
        """
        Notify every active holder of ``role``, limited to ``department``
        when one is given.

        Returns:
            Number of approvers notified
        """
        try:
            approvers = self.user_repo.find_active_by_role(role, department)
        except Exception as e:
            self._logger.warning(
                f"Could not resolve {role.value} approvers: {e}",
                extra={"leave_request_id": request.id, "role": role.value},
            )
            return 0

        if not approvers:
            self._logger.warning(
                f"No active {role.value} found to notify",
                extra={"leave_request_id": request.id, "department": department},
            )

        for approver in approvers:
            self.notify_approver(approver.id, request, student_name)
        return len(approvers)

    def notify_approver(self, user_id: str, request: LeaveRequest, student_name: str) -> Optional[Notification]:
        message = APPROVER_MESSAGE.format(student_name=student_name, leave_type=request.leave_type.value)
        return self._dispatch(
            NotificationChannel.IN_APP,
            "approval_requested",
            message,
            leave_request_id=request.id,
            target_user_id=user_id,
        )

    def notify_parent_by_sms(
        self,
        phone: str,
        request: LeaveRequest,
        student_name: str,
    ) -> Optional[Notification]:
        details = (
            f"{request.leave_type.value.replace('_', ' ')} leave from "
            f"{request.from_date.isoformat()} to {request.to_date.isoformat()}"
        )
        message = PARENT_REQUEST_MESSAGE.format(student_name=student_name, details=details)
        return self._dispatch(
            NotificationChannel.SMS,
            "parent_confirmation_requested",
            message,
            leave_request_id=request.id,
            target_phone=phone,
        )

    def notify_outcome(
        self,
        request: LeaveRequest,
        approved: bool,
        comments: Optional[str] = None,
        parent_phone: Optional[str] = None,
        student_name: Optional[str] = None,
    ) -> None:
        """Tell the student (and on rejection the parent) how the request ended."""
        dates = {"from_date": request.from_date.isoformat(), "to_date": request.to_date.isoformat()}

        if approved:
            self._dispatch(
                NotificationChannel.IN_APP,
                "leave_approved",
                APPROVED_MESSAGE.format(**dates),
                leave_request_id=request.id,
                target_user_id=request.student_id,
            )
            return

        self._dispatch(
            NotificationChannel.IN_APP,
            "leave_rejected",
            REJECTED_MESSAGE.format(comments=comments or "-", **dates),
            leave_request_id=request.id,
            target_user_id=request.student_id,
        )
        if parent_phone:
            self._dispatch(
                NotificationChannel.SMS,
                "leave_rejected",
                PARENT_REJECTED_MESSAGE.format(student_name=student_name or "", **dates),
                leave_request_id=request.id,
                target_phone=parent_phone,
            )

    def notify_overdue_return(
        self,
        request: LeaveRequest,
        student_name: str,
        parent_phone: Optional[str],
    ) -> None:
        return_date = request.to_date.isoformat()
        self._dispatch(
            NotificationChannel.IN_APP,
            "overdue_return",
            OVERDUE_STUDENT_MESSAGE.format(return_date=return_date),
            leave_request_id=request.id,
            target_user_id=request.student_id,
        )
        if parent_phone:
            self._dispatch(
                NotificationChannel.SMS,
                "overdue_return",
                OVERDUE_PARENT_MESSAGE.format(student_name=student_name, return_date=return_date),
                leave_request_id=request.id,
                target_phone=parent_phone,
            )

    # -------------------------------------------------------------------------
    # Retry Sweep
    # -------------------------------------------------------------------------

    def process_pending_notifications(self, limit: Optional[int] = None) -> ServiceResult[dict]:
        """
        Retry unsent notifications below the attempt ceiling, oldest first.

        Returns:
            ServiceResult with ``{"processed", "sent", "failed"}`` counts
        """
        batch_size = limit or settings.NOTIFICATION_BATCH_SIZE
        try:
            pending: List[Notification] = self.notification_repo.find_unsent(
                settings.NOTIFICATION_MAX_ATTEMPTS, batch_size
            )
        except Exception as e:
            return self._handle_exception(e, "load pending notifications")

        sent = 0
        for notification in pending:
            if self._attempt(notification):
                sent += 1

        summary = {"processed": len(pending), "sent": sent, "failed": len(pending) - sent}
        self._logger.info("Notification sweep finished", extra=summary)
        return ServiceResult.success(summary)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _dispatch(
        self,
        channel: NotificationChannel,
        event_type: str,
        message: str,
        leave_request_id: Optional[str] = None,
        target_user_id: Optional[str] = None,
        target_phone: Optional[str] = None,
    ) -> Optional[Notification]:
        try:
            with self.transaction():
                notification = self.notification_repo.create(
                    Notification(
                        leave_request_id=leave_request_id,
                        target_user_id=target_user_id,
                        target_phone=target_phone,
                        channel=channel,
                        event_type=event_type,
                        message=message,
                        sent=False,
                        attempts=0,
                    )
                )
        except Exception as e:
            self._logger.error(
                f"Could not queue {event_type} notification: {e}",
                exc_info=True,
                extra={"leave_request_id": leave_request_id, "channel": channel.value},
            )
            return None

        self._attempt(notification)
        return notification

    def _attempt(self, notification: Notification) -> bool:
        """Push one row to the sink and record the outcome."""
        destination = notification.destination
        try:
            if not destination:
                raise ValueError("notification has no destination")
            self.sink.send(notification.channel, destination, notification.message)
        except Exception as e:
            self._logger.warning(
                f"Notification delivery failed: {e}",
                extra={
                    "notification_id": notification.id,
                    "channel": notification.channel.value,
                    "event_type": notification.event_type,
                    "attempts": notification.attempts + 1,
                },
            )
            recorded = self._record(lambda: self.notification_repo.mark_failed(notification, str(e)))
            if recorded and notification.attempts >= settings.NOTIFICATION_MAX_ATTEMPTS:
                # The sweep no longer picks this row up
                self._logger.error(
                    f"Notification abandoned after {notification.attempts} attempts",
                    extra={
                        "notification_id": notification.id,
                        "channel": notification.channel.value,
                        "event_type": notification.event_type,
                        "attempts": notification.attempts,
                        "last_error": notification.last_error,
                    },
                )
            return False

        return self._record(lambda: self.notification_repo.mark_sent(notification, DateTimeUtils.now_utc()))

    def _record(self, write) -> bool:
        try:
            with self.transaction():
                write()
        except Exception as e:
            self._logger.error(f"Could not record notification delivery: {e}", exc_info=True)
            return False
        return True
