"""
Booking reminder checker.

Periodically checks for confirmed bookings starting soon and notifies the
user once per booking.

Reminder window: slot_start - reminder_window_minutes <= now < slot_start
(venue wall-clock time).

Runs as an asyncio task in backend lifespan.
Uses synchronous DB and Redis (via asyncio.to_thread).
"""

import asyncio
import logging
from datetime import datetime, timedelta

from redis import Redis

from ..database import SessionLocal
from ..errors import InvalidInput
from ..models import Turfs
from ..redis_client import redis_client
from ..utils.clock import venue_now
from . import booking_store, events
from .slots.config import BookingConfig, get_booking_config
from .slots.keys import slot_start_time

logger = logging.getLogger(__name__)

CHECK_INTERVAL = 60  # seconds between checks
SENT_KEY_TTL = 86400  # 24 hours


async def reminder_checker_loop() -> None:
    """Periodic loop that reminds users of upcoming bookings."""
    logger.info("reminder_checker_loop started")

    try:
        while True:
            try:
                await asyncio.to_thread(_check_upcoming_bookings)
            except asyncio.CancelledError:
                logger.info("reminder_checker_loop cancelled")
                raise
            except Exception:
                logger.exception("reminder_checker_loop error")

            await asyncio.sleep(CHECK_INTERVAL)
    except asyncio.CancelledError:
        pass


def _check_upcoming_bookings() -> None:
    db = SessionLocal()
    try:
        check_upcoming_bookings(db, redis_client, venue_now())
    finally:
        db.close()


def check_upcoming_bookings(
    db,
    redis: Redis,
    now: datetime,
    config: BookingConfig | None = None,
) -> int:
    """
    Emit reminders for bookings inside the window. Returns how many were sent.
    """
    config = config or get_booking_config()
    window = timedelta(minutes=config.reminder_window_minutes)

    # the window can cross midnight
    dates = sorted({now.date().isoformat(), (now + window).date().isoformat()})
    sent = 0

    for booking in booking_store.list_confirmed_on(db, dates):
        try:
            if _process_single_booking(db, redis, booking, now, window):
                sent += 1
        except Exception:
            logger.exception(f"Error processing booking {booking.id} for reminder")

    return sent


def _process_single_booking(db, redis: Redis, booking, now: datetime, window: timedelta) -> bool:
    sent_key = f"bkremind:sent:{booking.id}"
    if redis.exists(sent_key):
        return False

    try:
        starts_at = datetime.combine(
            datetime.fromisoformat(booking.date).date(),
            slot_start_time(booking.time_slot),
        )
    except (ValueError, InvalidInput):
        logger.warning(f"Booking {booking.id} has unparsable slot {booking.date} {booking.time_slot}")
        return False

    if now < starts_at - window or now >= starts_at:
        return False

    events.booking_reminder(booking, db.get(Turfs, booking.turf_id), redis=redis)
    redis.setex(sent_key, SENT_KEY_TTL, "1")

    logger.info(
        f"booking_reminder emitted for booking={booking.id} "
        f"(starts at {starts_at.strftime('%H:%M')})"
    )
    return True
