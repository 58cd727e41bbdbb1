# backend/turfbook/routers/bookings.py
# Bookings are created only through lock confirmation; no POST /bookings.

from fastapi import APIRouter, Depends, Query
from redis import Redis
from sqlalchemy.orm import Session

from ..auth import Identity, get_identity
from ..database import get_db
from ..errors import InvalidInput
from ..redis_client import get_redis
from ..schemas.bookings import (
    BookingConfirmedResponse,
    BookingRead,
    CancelBookingResponse,
    MyBookingsResponse,
    PaymentSuccess,
    SlotIndexResponse,
)
from ..services import reservations
from ..services.slots import SlotKey, normalize_date

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("/payment-success", response_model=BookingConfirmedResponse)
def payment_success(
    data: PaymentSuccess,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    """Payment verified for the order attached to a lock → booking."""
    expected_key = None
    if data.has_slot():
        expected_key = SlotKey.build(
            data.vendor_id, data.turf_id, data.sport, data.date, data.time_slot,
        )

    booking = reservations.confirm_slot(
        db, redis, data.lock_id, identity.user_id,
        amount=data.amount,
        order_id=data.order_id,
        expected_key=expected_key,
    )
    return BookingConfirmedResponse(
        message="Payment verified and booking saved",
        booking=BookingRead.model_validate(booking),
    )


@router.get("/my-bookings", response_model=MyBookingsResponse)
def my_bookings(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    bookings = reservations.my_bookings(db, identity.user_id)
    return MyBookingsResponse(bookings=[BookingRead.model_validate(b) for b in bookings])


@router.get("/slot-status", response_model=SlotIndexResponse)
def slot_status(
    turf_id: str,
    target_date: str = Query(..., alias="date"),
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """Per-day availability index of a turf."""
    turf_id = turf_id.strip()
    if not turf_id:
        raise InvalidInput("turfId is required")
    day = normalize_date(target_date)

    return SlotIndexResponse(
        turf_id=turf_id,
        date=day,
        slots=reservations.slot_index(db, turf_id, day),
    )


@router.get("/{id}", response_model=BookingRead)
def get_booking(
    id: str,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return reservations.get_booking_for(db, id, identity.user_id)


@router.post("/{id}/cancel", response_model=CancelBookingResponse)
def cancel_booking(
    id: str,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    outcome = reservations.cancel_booking(db, redis, id, identity.user_id)
    return CancelBookingResponse(
        message="Booking cancelled successfully",
        booking_id=outcome.booking.id,
        refund_eligible=outcome.refund_eligible,
        refund_info=outcome.refund_info,
        hours_before_start=outcome.hours_before_start,
    )
