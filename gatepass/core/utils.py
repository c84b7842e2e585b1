"""
Utility Functions and Helpers

Datetime handling and token helpers shared by the workflow and gate pass
services. Stored datetimes are naive UTC; campus-local calendar logic uses
the configured timezone.
"""

import hashlib
import secrets
import time
import uuid
from datetime import date, datetime, time as dt_time, timezone
from zoneinfo import ZoneInfo

from gatepass.config.settings import settings


class IDGenerator:
    """ID generation utilities"""

    @staticmethod
    def generate_uuid() -> str:
        """Generate a UUID4 string"""
        return str(uuid.uuid4())

    @staticmethod
    def generate_gate_pass_token(
        leave_request_id: str,
        student_id: str,
        prefix: str,
        length: int,
    ) -> str:
        """
        Generate a printable, unguessable gate pass code.

        The digest mixes the request and student ids with a nanosecond
        timestamp and 16 bytes of OS randomness, so two calls never need
        to coordinate to stay unique.
        """
        material = f"{leave_request_id}-{student_id}-{time.time_ns()}-{secrets.token_hex(16)}"
        digest = hashlib.sha256(material.encode("utf-8")).hexdigest()
        return f"{prefix}{digest[:length].upper()}"


class DateTimeUtils:
    """Datetime utilities"""

    @staticmethod
    def now_utc() -> datetime:
        """Current UTC time as a naive datetime, matching stored values."""
        return datetime.now(timezone.utc).replace(tzinfo=None)

    @staticmethod
    def campus_tz() -> ZoneInfo:
        return ZoneInfo(settings.TIMEZONE)

    @staticmethod
    def campus_today(now: datetime | None = None) -> date:
        """Calendar date on campus for a naive-UTC instant (default: now)."""
        current = now or DateTimeUtils.now_utc()
        return current.replace(tzinfo=timezone.utc).astimezone(DateTimeUtils.campus_tz()).date()

    @staticmethod
    def end_of_day_utc(day: date) -> datetime:
        """23:59:59 campus time on ``day``, expressed as naive UTC."""
        local_end = datetime.combine(day, dt_time(23, 59, 59), tzinfo=DateTimeUtils.campus_tz())
        return local_end.astimezone(timezone.utc).replace(tzinfo=None)
