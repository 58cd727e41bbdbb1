# backend/turfbook/services/booking_store.py
"""
Bookings: finalized, paid reservations.

Rows are never deleted; cancellation flips booking_status. Inserts are
unconditional: the reservation service checks for a confirmed booking on
the slot (under the slot mutex) before calling create_booking, and the
partial unique index uq_bookings_confirmed_slot backs that up.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..errors import NotFound
from ..models import Bookings
from .slots.keys import SlotKey

CONFIRMED = "confirmed"
CANCELLED = "cancelled"


def create_booking(
    db: Session,
    key: SlotKey,
    user_id: str,
    amount: float,
    now: datetime,
    order_id: Optional[str] = None,
    lock_id: Optional[str] = None,
) -> Bookings:
    booking = Bookings(
        id=str(uuid.uuid4()),
        order_id=order_id,
        vendor_id=key.vendor_id,
        turf_id=key.turf_id,
        sports=key.sport,
        date=key.date,
        time_slot=key.time_slot,
        user_id=user_id,
        lock_id=lock_id,
        amount=amount,
        payment_status=CONFIRMED,
        booking_status=CONFIRMED,
        created_at=now,
    )
    db.add(booking)
    db.flush()
    return booking


def get_booking(db: Session, booking_id: str) -> Bookings:
    booking = db.get(Bookings, booking_id)
    if not booking:
        raise NotFound("Booking not found")
    return booking


def cancel_booking(
    db: Session,
    booking_id: str,
    refund_eligible: bool,
    now: datetime,
) -> Bookings:
    booking = get_booking(db, booking_id)
    booking.booking_status = CANCELLED
    booking.refund_status = "eligible" if refund_eligible else "not_eligible"
    booking.cancelled_at = now
    db.flush()
    return booking


def find_confirmed(db: Session, key: SlotKey) -> Optional[Bookings]:
    return (
        db.query(Bookings)
        .filter(
            Bookings.vendor_id == key.vendor_id,
            Bookings.turf_id == key.turf_id,
            Bookings.sports == key.sport,
            Bookings.date == key.date,
            Bookings.time_slot == key.time_slot,
            Bookings.booking_status == CONFIRMED,
        )
        .first()
    )


def find_by_lock(db: Session, lock_id: str) -> Optional[Bookings]:
    return db.query(Bookings).filter(Bookings.lock_id == lock_id).first()


def query_by_user(db: Session, user_id: str) -> list[Bookings]:
    """User's bookings, newest first."""
    return (
        db.query(Bookings)
        .filter(Bookings.user_id == user_id)
        .order_by(Bookings.created_at.desc())
        .all()
    )


def list_confirmed_on(db: Session, dates: list[str]) -> list[Bookings]:
    if not dates:
        return []
    return (
        db.query(Bookings)
        .filter(Bookings.booking_status == CONFIRMED, Bookings.date.in_(dates))
        .all()
    )
