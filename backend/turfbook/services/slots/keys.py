# backend/turfbook/services/slots/keys.py
"""
Slot identity.

A slot is (vendor, turf, sport, date, time range). Sport is compared
case-insensitively and the time range without surrounding whitespace, so
every read and write path goes through `SlotKey.build`.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ...errors import InvalidInput

_START_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})")


def normalize(sport: Optional[str], time_slot: Optional[str]) -> tuple[str, str]:
    """Return (sport_lower, time_slot_trimmed). Blank values are rejected."""
    sport_n = (sport or "").strip().lower()
    slot_n = (time_slot or "").strip()
    if not sport_n:
        raise InvalidInput("sport is required")
    if not slot_n:
        raise InvalidInput("timeSlot is required")
    return sport_n, slot_n


def normalize_date(value) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    raw = (value or "").strip() if isinstance(value, str) else ""
    if not raw:
        raise InvalidInput("date is required")
    try:
        return date.fromisoformat(raw).isoformat()
    except ValueError:
        raise InvalidInput("date must be in YYYY-MM-DD format") from None


@dataclass(frozen=True)
class SlotKey:
    vendor_id: str
    turf_id: str
    sport: str
    date: str
    time_slot: str

    @classmethod
    def build(cls, vendor_id, turf_id, sport, date, time_slot) -> "SlotKey":
        vendor = (vendor_id or "").strip()
        turf = (turf_id or "").strip()
        if not vendor:
            raise InvalidInput("vendorId is required")
        if not turf:
            raise InvalidInput("turfId is required")
        sport_n, slot_n = normalize(sport, time_slot)
        return cls(vendor, turf, sport_n, normalize_date(date), slot_n)

    def canonical(self) -> str:
        """Stable string form, used as the mutex name."""
        return f"{self.vendor_id}:{self.turf_id}:{self.sport}:{self.date}:{self.time_slot}"

    @property
    def day(self) -> date:
        return date.fromisoformat(self.date)

    def starts_at(self) -> datetime:
        return datetime.combine(self.day, slot_start_time(self.time_slot))


def slot_start_time(time_slot: str) -> time:
    """
    Start of a time range such as "06:00-07:00" or "06:00 - 07:00".

    Raises InvalidInput if the range does not start with HH:MM.
    """
    match = _START_TIME_RE.match(time_slot or "")
    if not match:
        raise InvalidInput(f"Cannot parse start time from timeSlot '{time_slot}'")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise InvalidInput(f"Invalid start time in timeSlot '{time_slot}'")
    return time(hour, minute)
