# backend/turfbook/schemas/bookings.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class PaymentSuccess(BaseModel):
    """Payment collaborator callback: the order attached to a lock was paid."""
    lock_id: str
    order_id: Optional[str] = None
    amount: float = Field(gt=0)

    # optional echo of the slot; must match the lock when given
    vendor_id: Optional[str] = None
    turf_id: Optional[str] = None
    sport: Optional[str] = None
    date: Optional[str] = None
    time_slot: Optional[str] = None

    def has_slot(self) -> bool:
        return any([self.vendor_id, self.turf_id, self.sport, self.date, self.time_slot])


class ConfirmLockRequest(BaseModel):
    amount: float = Field(gt=0)
    order_id: Optional[str] = None


class BookingRead(BaseModel):
    id: str
    order_id: Optional[str] = None

    vendor_id: str
    turf_id: str
    sports: str
    date: str
    time_slot: str

    user_id: str
    lock_id: Optional[str] = None
    amount: float

    payment_status: str
    booking_status: str
    refund_status: Optional[str] = None

    created_at: datetime
    cancelled_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BookingConfirmedResponse(BaseModel):
    message: str
    booking: BookingRead


class MyBookingsResponse(BaseModel):
    bookings: list[BookingRead]


class CancelBookingResponse(BaseModel):
    message: str
    booking_id: str
    refund_eligible: bool
    refund_info: str
    hours_before_start: float


class SlotIndexResponse(BaseModel):
    turf_id: str
    date: str
    slots: dict[str, dict[str, dict]] = Field(
        description="sport → time_slot → {booked, bookingId, userId}"
    )
