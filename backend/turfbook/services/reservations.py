# backend/turfbook/services/reservations.py
"""
Slot reservation state machine.

    Available ──lock──▶ Locked(owner) ──confirm──▶ Confirmed(booking)
        ▲                   │                             │
        └──release/expiry───┘                             │
        └──────────────────────cancel─────────────────────┘

Every transition on a slot runs inside slot_mutex(slot) and commits one
DB transaction: confirm writes booking + status index + lock state
together, cancel writes booking + status index together. Expiry is lazy:
readers ignore locks past expires_at and sweep_expired() deletes them
later.

Notifications go out after commit and never fail the transition.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, Optional

from redis import Redis
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from ..errors import (
    Forbidden,
    InternalError,
    InvalidInput,
    NotFound,
    ReservationError,
    SlotConflict,
    StoreTimeout,
)
from ..models import Bookings, SlotLocks, Turfs
from ..utils.clock import utcnow, venue_now
from . import booking_store, events, refund_policy
from .slots import lock_store, status_index
from .slots.config import BookingConfig, get_booking_config
from .slots.keys import SlotKey
from .slots.lock_store import LockResult, SlotStatusView
from .slots.mutex import slot_mutex

logger = logging.getLogger(__name__)


@dataclass
class CancelOutcome:
    booking: Bookings
    refund_eligible: bool
    refund_info: str
    hours_before_start: float


# ── Storage error mapping ────────────────────────────────────────────────

def _is_timeout(exc: OperationalError) -> bool:
    msg = str(exc.orig).lower() if exc.orig is not None else str(exc).lower()
    return "locked" in msg or "timeout" in msg or "timed out" in msg


@contextmanager
def _store_call(db: Session, commit: bool = False) -> Iterator[None]:
    """
    Run a block of store calls, optionally committing it as one transaction.

    Any failure rolls the whole block back. Storage exceptions are mapped
    to domain errors; domain errors pass through unchanged.
    """
    try:
        yield
        if commit:
            db.commit()
    except ReservationError:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        if "unique" in str(e.orig).lower():
            raise SlotConflict("Slot already booked", status="booked") from e
        logger.exception("Integrity error in booking store")
        raise InternalError("Booking store failure") from e
    except PoolTimeoutError as e:
        db.rollback()
        logger.warning(f"Booking store pool timeout: {e}")
        raise StoreTimeout("Booking store did not respond in time") from e
    except OperationalError as e:
        db.rollback()
        if _is_timeout(e):
            logger.warning(f"Booking store timeout: {e.orig}")
            raise StoreTimeout("Booking store did not respond in time") from e
        logger.exception("Booking store operational error")
        raise InternalError("Booking store failure") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Booking store failure")
        raise InternalError("Booking store failure") from e


def _get_turf(db: Session, key: SlotKey) -> Turfs:
    turf = db.get(Turfs, key.turf_id)
    if not turf or turf.vendor_id != key.vendor_id:
        raise NotFound("Turf not found")
    return turf


# ── Transitions ──────────────────────────────────────────────────────────

def lock_slot(
    db: Session,
    redis: Redis,
    key: SlotKey,
    owner_id: str,
    config: BookingConfig | None = None,
    now: datetime | None = None,
) -> LockResult:
    """
    Lock a free slot for `owner_id`, or extend the owner's own lock.

    Raises:
        NotFound: unknown turf
        SlotConflict: turf suspended, slot booked, or held by another user
            (with expires_in seconds)
        StoreTimeout: slot mutex or store deadline exceeded
    """
    config = config or get_booking_config()

    with _store_call(db):
        turf = _get_turf(db, key)
    if turf.is_suspended:
        raise SlotConflict(
            "This turf is currently suspended and cannot accept bookings.",
            status="suspended",
        )

    with slot_mutex(redis, key, config):
        now = now or utcnow()
        with _store_call(db, commit=True):
            result = lock_store.try_lock(db, key, owner_id, config.lock_ttl, now)

    if result.status == "booked":
        raise SlotConflict("Slot already booked", status="booked")
    if result.status == "locked":
        raise SlotConflict(
            "Slot is being booked by another user",
            status="locked",
            expires_in=result.expires_in,
        )

    logger.info(
        f"Slot {'extended' if result.extended else 'locked'}: {key.canonical()} "
        f"by user={owner_id} lock={result.lock.id}"
    )
    return result


def unlock_slot(
    db: Session,
    redis: Redis,
    lock_id: str,
    owner_id: str,
    config: BookingConfig | None = None,
) -> None:
    """Release a lock held by `owner_id` (explicit deselection)."""
    with _store_call(db):
        lock = lock_store.get_owned_lock(db, lock_id, owner_id)
        key = lock_store.key_of(lock)

    with slot_mutex(redis, key, config), _store_call(db, commit=True):
        db.expire_all()
        lock_store.release(db, lock_id, owner_id)

    logger.info(f"Lock released: {lock_id} ({key.canonical()}) by user={owner_id}")


def confirm_slot(
    db: Session,
    redis: Redis,
    lock_id: str,
    owner_id: str,
    amount: float,
    order_id: Optional[str] = None,
    expected_key: Optional[SlotKey] = None,
    config: BookingConfig | None = None,
    now: datetime | None = None,
) -> Bookings:
    """
    Turn a paid lock into a booking.

    In one transaction under the slot mutex: re-check ownership, lock
    liveness and that the slot has no confirmed booking; insert the
    booking, mark the status index leaf booked, mark the lock confirmed.

    A repeated confirmation of an already confirmed lock (retried payment
    webhook, second device) returns the existing booking while it is still
    confirmed; once that booking is cancelled the retry is a conflict.
    """
    config = config or get_booking_config()
    if amount is None or amount <= 0:
        raise InvalidInput("amount must be positive")

    with _store_call(db):
        lock = lock_store.get_owned_lock(db, lock_id, owner_id)
        key = lock_store.key_of(lock)

    if expected_key is not None and expected_key != key:
        raise InvalidInput("Payment details do not match the locked slot")

    with slot_mutex(redis, key, config):
        now = now or utcnow()
        with _store_call(db, commit=True):
            db.expire_all()
            lock = lock_store.get_owned_lock(db, lock_id, owner_id)

            if lock.status == lock_store.CONFIRMED:
                existing = booking_store.find_by_lock(db, lock.id)
                if existing is None:
                    raise SlotConflict("Lock was already used", status="booked")
                if existing.booking_status != booking_store.CONFIRMED:
                    raise SlotConflict("Booking for this lock was cancelled", status="cancelled")
                logger.info(f"Lock {lock_id} already confirmed as booking {existing.id}")
                return existing

            if lock.expires_at <= now:
                raise SlotConflict("Lock expired, please select the slot again", status="expired")

            if booking_store.find_confirmed(db, key) is not None:
                raise SlotConflict("Slot already booked", status="booked")

            booking = booking_store.create_booking(
                db, key, owner_id, amount, now, order_id=order_id, lock_id=lock.id,
            )
            status_index.mark_booked(
                db, key.turf_id, key.date, key.sport, key.time_slot,
                booking_id=booking.id, user_id=owner_id, now=now,
            )
            lock_store.confirm_lock(db, lock.id, owner_id, now)

    logger.info(
        f"Booking confirmed: {booking.id} for {key.canonical()} "
        f"user={owner_id} amount={amount} order={order_id}"
    )
    events.booking_confirmed(booking, db.get(Turfs, key.turf_id), redis=redis)
    return booking


def cancel_booking(
    db: Session,
    redis: Redis,
    booking_id: str,
    caller_id: str,
    config: BookingConfig | None = None,
    now: datetime | None = None,
    venue_time: datetime | None = None,
) -> CancelOutcome:
    """
    Cancel a confirmed booking owned by `caller_id` and free the slot.

    Refund eligibility is computed by refund_policy and returned to the
    caller; the booking row is kept with booking_status='cancelled'.
    """
    config = config or get_booking_config()

    with _store_call(db):
        booking = booking_store.get_booking(db, booking_id)
    if booking.user_id != caller_id:
        raise Forbidden("Unauthorized cancellation attempt")

    key = SlotKey(booking.vendor_id, booking.turf_id, booking.sports, booking.date, booking.time_slot)
    try:
        slot_start = key.starts_at()
    except InvalidInput:
        logger.warning(
            f"Booking {booking_id} has unparsable slot '{key.time_slot}', "
            f"cancelling without refund"
        )
        slot_start = None

    with slot_mutex(redis, key, config):
        now = now or utcnow()
        with _store_call(db, commit=True):
            db.expire_all()
            booking = booking_store.get_booking(db, booking_id)
            if booking.booking_status == booking_store.CANCELLED:
                raise SlotConflict("Booking already cancelled", status="cancelled")

            turf = db.get(Turfs, booking.turf_id)
            decision = refund_policy.evaluate(
                slot_start,
                venue_time or venue_now(),
                turf.cancellation_hours if turf else None,
                config,
            )
            booking_store.cancel_booking(db, booking.id, decision.eligible, now)
            status_index.mark_available(
                db, key.turf_id, key.date, key.sport, key.time_slot, now=now,
            )

    logger.info(
        f"Booking cancelled: {booking_id} ({key.canonical()}) by user={caller_id} "
        f"refund_eligible={decision.eligible}"
    )
    events.booking_cancelled(booking, turf, decision.eligible, redis=redis)
    return CancelOutcome(
        booking=booking,
        refund_eligible=decision.eligible,
        refund_info=decision.info,
        hours_before_start=decision.hours_before_start,
    )


def release_all(db: Session, owner_id: str) -> int:
    """Drop every live lock of a user (logout / app close)."""
    with _store_call(db, commit=True):
        released = lock_store.release_all_for_owner(db, owner_id)
    if released:
        logger.info(f"Released {released} locks of user={owner_id}")
    return released


def sweep_expired(db: Session, now: datetime | None = None) -> int:
    """Delete expired locks. Idempotent; confirmed locks are kept."""
    with _store_call(db, commit=True):
        cleaned = lock_store.sweep_expired(db, now or utcnow())
    if cleaned:
        logger.info(f"Cleaned up {cleaned} expired locks")
    return cleaned


# ── Reads ────────────────────────────────────────────────────────────────

def query_slot_statuses(
    db: Session,
    keys: list[SlotKey],
    caller_id: str,
    now: datetime | None = None,
) -> list[SlotStatusView]:
    with _store_call(db):
        return lock_store.query_slot_statuses(db, keys, caller_id, now or utcnow())


def my_locks(db: Session, owner_id: str, now: datetime | None = None) -> list[SlotLocks]:
    with _store_call(db):
        return lock_store.list_active_for_owner(db, owner_id, now or utcnow())


def my_bookings(db: Session, user_id: str) -> list[Bookings]:
    with _store_call(db):
        return booking_store.query_by_user(db, user_id)


def get_booking_for(db: Session, booking_id: str, caller_id: str) -> Bookings:
    with _store_call(db):
        booking = booking_store.get_booking(db, booking_id)
    if booking.user_id != caller_id:
        raise Forbidden("Unauthorized")
    return booking


def slot_index(db: Session, turf_id: str, date: str) -> dict:
    with _store_call(db):
        return status_index.read_day(db, turf_id, date)
