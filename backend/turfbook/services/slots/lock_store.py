# backend/turfbook/services/slots/lock_store.py
"""
Slot locks: in-progress reservations with expiry.

Table: slot_locks
  status = 'locked'    → held until expires_at, then treated as absent
  status = 'confirmed' → produced a booking, kept for traceability,
                         never blocks and never swept

Readers always check expires_at themselves; a stale 'locked' row that
the sweep has not deleted yet never blocks anybody.

Functions here only touch the session (add/flush/delete). Transaction
boundaries and the per-slot mutex belong to the reservation service.
"""

import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import Forbidden, NotFound, SlotConflict
from ...models import Bookings, SlotLocks
from .keys import SlotKey

LOCKED = "locked"
CONFIRMED = "confirmed"


@dataclass
class LockResult:
    """
    Outcome of try_lock.

    status: "success" | "booked" | "locked"
    """
    status: str
    lock: Optional[SlotLocks] = None
    expires_in: Optional[int] = None
    extended: bool = False

    @property
    def ok(self) -> bool:
        return self.status == "success"


@dataclass
class SlotStatusView:
    """
    Read-only projection of one slot for the polling client.

    status: "booked" | "locked" | "selected" | "available"
    """
    key: SlotKey
    status: str
    lock_id: Optional[str] = None
    expires_at: Optional[datetime] = None


def key_of(lock: SlotLocks) -> SlotKey:
    return SlotKey(lock.vendor_id, lock.turf_id, lock.sport, lock.date, lock.time_slot)


def _slot_filter(query, model, key: SlotKey, sport_column):
    return query.filter(
        model.vendor_id == key.vendor_id,
        model.turf_id == key.turf_id,
        sport_column == key.sport,
        model.date == key.date,
        model.time_slot == key.time_slot,
    )


def seconds_left(expires_at: datetime, now: datetime) -> int:
    return max(0, math.ceil((expires_at - now).total_seconds()))


# ── Read ─────────────────────────────────────────────────────────────────

def get_lock(db: Session, lock_id: str) -> SlotLocks:
    lock = db.get(SlotLocks, lock_id)
    if not lock:
        raise NotFound("Lock not found")
    return lock


def get_owned_lock(db: Session, lock_id: str, owner_id: str) -> SlotLocks:
    """Fetch a lock and verify the caller holds it."""
    lock = get_lock(db, lock_id)
    if lock.user_id != owner_id:
        raise Forbidden("Unauthorized")
    return lock


def find_active(db: Session, key: SlotKey, now: datetime) -> Optional[SlotLocks]:
    """The live lock on a slot: status 'locked' and not yet expired."""
    query = _slot_filter(db.query(SlotLocks), SlotLocks, key, SlotLocks.sport)
    return (
        query.filter(SlotLocks.status == LOCKED, SlotLocks.expires_at > now)
        .order_by(SlotLocks.locked_at)
        .first()
    )


def is_booked(db: Session, key: SlotKey) -> bool:
    query = _slot_filter(db.query(Bookings.id), Bookings, key, Bookings.sports)
    return query.filter(Bookings.booking_status == "confirmed").first() is not None


def list_active_for_owner(db: Session, owner_id: str, now: datetime) -> list[SlotLocks]:
    return (
        db.query(SlotLocks)
        .filter(
            SlotLocks.user_id == owner_id,
            SlotLocks.status == LOCKED,
            SlotLocks.expires_at > now,
        )
        .order_by(SlotLocks.expires_at)
        .all()
    )


def query_slot_statuses(
    db: Session,
    keys: list[SlotKey],
    caller_id: str,
    now: datetime,
) -> list[SlotStatusView]:
    """
    Batch status for the polling client, in the order of `keys`.

    Keys sharing (vendor, turf, sport, date) are resolved with one
    bookings query and one locks query.
    """
    if not keys:
        return []

    groups: dict[tuple[str, str, str, str], set[str]] = {}
    for key in keys:
        groups.setdefault((key.vendor_id, key.turf_id, key.sport, key.date), set()).add(key.time_slot)

    booked: set[SlotKey] = set()
    active: dict[SlotKey, SlotLocks] = {}

    for (vendor_id, turf_id, sport, day), slots in groups.items():
        booked_rows = (
            db.query(Bookings.time_slot)
            .filter(
                Bookings.vendor_id == vendor_id,
                Bookings.turf_id == turf_id,
                Bookings.sports == sport,
                Bookings.date == day,
                Bookings.time_slot.in_(slots),
                Bookings.booking_status == "confirmed",
            )
            .all()
        )
        for (time_slot,) in booked_rows:
            booked.add(SlotKey(vendor_id, turf_id, sport, day, time_slot))

        locks = (
            db.query(SlotLocks)
            .filter(
                SlotLocks.vendor_id == vendor_id,
                SlotLocks.turf_id == turf_id,
                SlotLocks.sport == sport,
                SlotLocks.date == day,
                SlotLocks.time_slot.in_(slots),
                SlotLocks.status == LOCKED,
                SlotLocks.expires_at > now,
            )
            .order_by(SlotLocks.locked_at)
            .all()
        )
        for lock in locks:
            active.setdefault(key_of(lock), lock)

    result = []
    for key in keys:
        if key in booked:
            result.append(SlotStatusView(key=key, status="booked"))
            continue

        lock = active.get(key)
        if lock is None:
            result.append(SlotStatusView(key=key, status="available"))
        elif lock.user_id == caller_id:
            result.append(SlotStatusView(
                key=key, status="selected", lock_id=lock.id, expires_at=lock.expires_at,
            ))
        else:
            result.append(SlotStatusView(key=key, status="locked", expires_at=lock.expires_at))

    return result


# ── Write ────────────────────────────────────────────────────────────────

def try_lock(
    db: Session,
    key: SlotKey,
    owner_id: str,
    ttl: timedelta,
    now: datetime,
) -> LockResult:
    """
    Lock a slot for `owner_id`, or extend the owner's live lock.

    Must run under the slot mutex: the check for an active lock and the
    insert are only atomic because nobody else can transition this slot
    meanwhile.
    """
    if is_booked(db, key):
        return LockResult(status="booked")

    existing = find_active(db, key, now)
    expires_at = now + ttl

    if existing is not None:
        if existing.user_id != owner_id:
            return LockResult(
                status="locked",
                expires_in=seconds_left(existing.expires_at, now),
            )
        existing.locked_at = now
        existing.expires_at = max(existing.expires_at, expires_at)
        db.flush()
        return LockResult(status="success", lock=existing, extended=True)

    lock = SlotLocks(
        id=str(uuid.uuid4()),
        vendor_id=key.vendor_id,
        turf_id=key.turf_id,
        sport=key.sport,
        date=key.date,
        time_slot=key.time_slot,
        user_id=owner_id,
        locked_at=now,
        expires_at=expires_at,
        status=LOCKED,
    )
    db.add(lock)
    db.flush()
    return LockResult(status="success", lock=lock)


def release(db: Session, lock_id: str, owner_id: str) -> SlotLocks:
    lock = get_owned_lock(db, lock_id, owner_id)
    db.delete(lock)
    db.flush()
    return lock


def confirm_lock(db: Session, lock_id: str, owner_id: str, now: datetime) -> SlotLocks:
    """
    Flip a live lock to 'confirmed'.

    Conditional on status='locked' so a row deleted or confirmed by a
    concurrent sweep/confirmation is reported instead of overwritten.
    """
    lock = get_owned_lock(db, lock_id, owner_id)
    updated = (
        db.query(SlotLocks)
        .filter(SlotLocks.id == lock_id, SlotLocks.status == LOCKED)
        .update(
            {SlotLocks.status: CONFIRMED, SlotLocks.confirmed_at: now},
            synchronize_session="fetch",
        )
    )
    if updated != 1:
        raise SlotConflict("Lock is no longer active", status="expired")
    return lock


def sweep_expired(db: Session, now: datetime) -> int:
    """Delete expired 'locked' rows. Confirmed rows are never touched."""
    return (
        db.query(SlotLocks)
        .filter(SlotLocks.status == LOCKED, SlotLocks.expires_at <= now)
        .delete(synchronize_session=False)
    )


def release_all_for_owner(db: Session, owner_id: str) -> int:
    return (
        db.query(SlotLocks)
        .filter(SlotLocks.user_id == owner_id, SlotLocks.status == LOCKED)
        .delete(synchronize_session=False)
    )
