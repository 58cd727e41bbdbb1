# backend/turfbook/services/slots/status_index.py
"""
Per-turf, per-date slot status index.

Table: slot_status, one row per leaf (turf_id, date, sport, time_slot).
read_day() folds the rows of one day into

    {sport: {time_slot: {"booked": bool, "bookingId": str|None, "userId": str|None}}}

Writes upsert a single leaf and never touch its siblings. The index is a
mirror of confirmed bookings: only the reservation service writes it, in
the same transaction as the booking change.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import SlotStatus
from ...utils.clock import utcnow


def _get_leaf(db: Session, turf_id: str, date: str, sport: str, time_slot: str) -> Optional[SlotStatus]:
    return (
        db.query(SlotStatus)
        .filter(
            SlotStatus.turf_id == turf_id,
            SlotStatus.date == date,
            SlotStatus.sport == sport,
            SlotStatus.time_slot == time_slot,
        )
        .first()
    )


def _upsert_leaf(
    db: Session,
    turf_id: str,
    date: str,
    sport: str,
    time_slot: str,
    booked: bool,
    booking_id: Optional[str],
    user_id: Optional[str],
    now: datetime,
) -> SlotStatus:
    leaf = _get_leaf(db, turf_id, date, sport, time_slot)
    if leaf is None:
        leaf = SlotStatus(turf_id=turf_id, date=date, sport=sport, time_slot=time_slot)
        db.add(leaf)

    leaf.booked = 1 if booked else 0
    leaf.booking_id = booking_id
    leaf.user_id = user_id
    leaf.updated_at = now
    db.flush()
    return leaf


def mark_booked(
    db: Session,
    turf_id: str,
    date: str,
    sport: str,
    time_slot: str,
    booking_id: str,
    user_id: str,
    now: datetime | None = None,
) -> SlotStatus:
    return _upsert_leaf(
        db, turf_id, date, sport, time_slot,
        booked=True, booking_id=booking_id, user_id=user_id, now=now or utcnow(),
    )


def mark_available(
    db: Session,
    turf_id: str,
    date: str,
    sport: str,
    time_slot: str,
    now: datetime | None = None,
) -> SlotStatus:
    return _upsert_leaf(
        db, turf_id, date, sport, time_slot,
        booked=False, booking_id=None, user_id=None, now=now or utcnow(),
    )


def read_day(db: Session, turf_id: str, date: str) -> dict[str, dict[str, dict]]:
    rows = (
        db.query(SlotStatus)
        .filter(SlotStatus.turf_id == turf_id, SlotStatus.date == date)
        .order_by(SlotStatus.sport, SlotStatus.time_slot)
        .all()
    )

    day: dict[str, dict[str, dict]] = {}
    for row in rows:
        day.setdefault(row.sport, {})[row.time_slot] = {
            "booked": bool(row.booked),
            "bookingId": row.booking_id,
            "userId": row.user_id,
        }
    return day
