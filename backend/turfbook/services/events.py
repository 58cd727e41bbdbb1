"""
backend/turfbook/services/events.py

Event emitter: pushes user notifications to Redis for the delivery worker.

Queue:
- events:p2p: instant delivery (booking notifications to specific users)

Emitting is fire-and-forget: a failed push is logged and never fails the
booking transition that triggered it.
"""

import json
import time
import logging
from typing import Optional

from redis import Redis

from ..redis_client import redis_client

logger = logging.getLogger(__name__)

P2P_QUEUE = "events:p2p"


def emit_event(event_type: str, payload: dict, redis: Optional[Redis] = None) -> None:
    """
    Emit a p2p event (instant delivery).

    Pushed to Redis list `events:p2p` for the consumer loop.
    """
    event = {
        "type": event_type,
        **payload,
        "ts": int(time.time()),
    }
    try:
        (redis or redis_client).rpush(P2P_QUEUE, json.dumps(event, default=str))
        logger.info(f"Event emitted: {event_type} → {P2P_QUEUE}")
    except Exception as e:
        logger.error(f"Failed to emit event {event_type}: {e}")


def notify(
    user_id: str,
    title: str,
    message: str,
    notification_type: str,
    metadata: Optional[dict] = None,
    redis: Optional[Redis] = None,
) -> None:
    """Queue an in-app/push notification for one user."""
    emit_event(
        notification_type,
        {
            "user_id": user_id,
            "title": title,
            "message": message,
            "metadata": metadata or {},
        },
        redis=redis,
    )


def booking_confirmed(booking, turf, redis: Optional[Redis] = None) -> None:
    turf_name = turf.title if turf else booking.turf_id
    notify(
        booking.user_id,
        "Booking Confirmed! 🎉",
        f"Your booking for {turf_name} on {booking.date} at {booking.time_slot} has been confirmed.",
        "booking_confirmed",
        {
            "bookingId": booking.id,
            "turfName": turf_name,
            "date": booking.date,
            "timeSlot": booking.time_slot,
        },
        redis=redis,
    )
    notify(
        booking.user_id,
        "Payment Successful ✅",
        f"Payment of ₹{booking.amount:g} received successfully. Your booking is confirmed!",
        "payment_success",
        {
            "bookingId": booking.id,
            "amount": booking.amount,
            "orderId": booking.order_id,
        },
        redis=redis,
    )


def booking_cancelled(booking, turf, refund_eligible: bool, redis: Optional[Redis] = None) -> None:
    turf_name = turf.title if turf else booking.turf_id
    refund_line = (
        "Refund will be processed within 5-7 business days."
        if refund_eligible
        else "This cancellation is not eligible for a refund."
    )
    notify(
        booking.user_id,
        "Booking Cancelled",
        f"Your booking for {turf_name} on {booking.date} has been cancelled. {refund_line}",
        "booking_cancelled",
        {
            "bookingId": booking.id,
            "turfName": turf_name,
            "date": booking.date,
            "refundEligible": refund_eligible,
        },
        redis=redis,
    )


def booking_reminder(booking, turf, redis: Optional[Redis] = None) -> None:
    turf_name = turf.title if turf else booking.turf_id
    location = f" ({turf.address})" if turf and turf.address else ""
    notify(
        booking.user_id,
        "⏰ Booking Reminder",
        f"Reminder: Your booking at {turf_name}{location} is on {booking.date} at {booking.time_slot}.",
        "booking_reminder",
        {"bookingId": booking.id, "date": booking.date, "timeSlot": booking.time_slot},
        redis=redis,
    )
