# Naive datetimes everywhere: lock timestamps in UTC, slot times in venue time.

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from ..config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def venue_now() -> datetime:
    """Current wall-clock time at the venues (slot dates carry no timezone)."""
    return datetime.now(ZoneInfo(settings.venue_timezone)).replace(tzinfo=None)
