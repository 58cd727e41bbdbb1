# backend/turfbook/schemas/slots.py
"""
Pydantic schemas for slot locking API.

Field presence is checked here; blank/whitespace values and date format
are rejected by SlotKey.build with the same 400 response.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class SlotLockRequest(BaseModel):
    """Lock (or extend the caller's lock on) one slot."""
    vendor_id: str
    turf_id: str
    sport: str
    date: str = Field(description="Date in YYYY-MM-DD format")
    time_slot: str = Field(description='Time range, e.g. "06:00-07:00"')


class SlotLockResponse(BaseModel):
    status: str = "success"
    lock_id: str
    expires_at: datetime
    extended: bool = False
    message: str


class SlotStatusRequest(BaseModel):
    """Batch status of several time slots of one turf/sport/date."""
    vendor_id: str
    turf_id: str
    sport: str
    date: str
    time_slots: list[str] = Field(min_length=1)


class SlotStatusEntry(BaseModel):
    slot: str
    status: str = Field(description="booked | locked | selected | available")
    lock_id: Optional[str] = None
    expires_at: Optional[datetime] = None


class SlotStatusResponse(BaseModel):
    slot_statuses: list[SlotStatusEntry]


class SlotLockRead(BaseModel):
    id: str
    vendor_id: str
    turf_id: str
    sport: str
    date: str
    time_slot: str
    user_id: str
    locked_at: datetime
    expires_at: datetime
    status: str

    model_config = {"from_attributes": True}


class MyLocksResponse(BaseModel):
    locks: list[SlotLockRead]


class CleanupResponse(BaseModel):
    message: str
    cleaned: int


class ReleaseAllResponse(BaseModel):
    message: str
    released: int
