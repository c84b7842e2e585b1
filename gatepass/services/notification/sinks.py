"""
Notification delivery sinks.

A sink is the transport edge of the dispatcher. Real SMS or push
providers plug in here; the default sink only writes to the log.
"""

from abc import ABC, abstractmethod

from gatepass.core.logging import get_logger
from gatepass.models.base import NotificationChannel


class NotificationSink(ABC):
    """Delivers one message to one destination."""

    @abstractmethod
    def send(self, channel: NotificationChannel, destination: str, message: str) -> None:
        """
        Deliver ``message``.

        Raises:
            Exception: Any failure; the dispatcher records it and retries later
        """


class LoggingNotificationSink(NotificationSink):
    """Writes each message to the application log."""

    def __init__(self):
        self._logger = get_logger(self.__class__.__name__)

    def send(self, channel: NotificationChannel, destination: str, message: str) -> None:
        self._logger.info(
            f"Delivering {channel.value} notification",
            extra={"channel": channel.value, "destination": destination, "body": message},
        )
