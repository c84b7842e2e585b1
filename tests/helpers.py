"""Test doubles and payload builders."""

from datetime import timedelta

import jwt

from gatepass.config.settings import settings
from gatepass.core.utils import DateTimeUtils
from gatepass.models.base import LeaveType, StudentType
from gatepass.services.notification.sinks import NotificationSink


class RecordingSink(NotificationSink):
    """Keeps every delivered message in memory."""

    def __init__(self):
        self.sent = []

    def send(self, channel, destination, message):
        self.sent.append((channel, destination, message))

    def messages_to(self, destination):
        return [message for _, dest, message in self.sent if dest == destination]


class FailingSink(NotificationSink):
    def send(self, channel, destination, message):
        raise ConnectionError("sms gateway unreachable")


def days_from_today(days):
    return DateTimeUtils.campus_today() + timedelta(days=days)


def leave_payload(**overrides):
    payload = {
        "leave_type": LeaveType.PERSONAL,
        "student_type": StudentType.HOSTEL,
        "from_date": days_from_today(1),
        "to_date": days_from_today(3),
        "reason": "Family wedding",
    }
    payload.update(overrides)
    return payload


def identity_token(user, role=None):
    claims = {"sub": user.id, "role": (role or user.role).value}
    return jwt.encode(claims, settings.IDENTITY_JWT_SECRET, algorithm=settings.IDENTITY_JWT_ALGORITHM)


def auth_header(user, role=None):
    return {"Authorization": f"Bearer {identity_token(user, role)}"}
