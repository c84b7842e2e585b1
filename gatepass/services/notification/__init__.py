"""
Notification services.
"""

from gatepass.services.notification.notification_dispatcher import NotificationDispatcher
from gatepass.services.notification.sinks import LoggingNotificationSink, NotificationSink

__all__ = ["LoggingNotificationSink", "NotificationDispatcher", "NotificationSink"]
