# backend/turfbook/routers/slots.py
"""
Slot locking API endpoints.

POST   /slots/lock             - lock a slot (or extend own lock)
DELETE /slots/unlock/{lock_id} - release own lock
POST   /slots/status           - batch status for polling
PATCH  /slots/confirm/{lock_id}- confirm own lock after payment
POST   /slots/cleanup          - delete expired locks (cron trigger)
GET    /slots/my-locks         - caller's live locks
DELETE /slots/release-all      - release all caller's locks (logout)
"""

from fastapi import APIRouter, Depends
from redis import Redis
from sqlalchemy.orm import Session

from ..auth import Identity, get_identity
from ..database import get_db
from ..redis_client import get_redis
from ..schemas.bookings import BookingConfirmedResponse, BookingRead, ConfirmLockRequest
from ..schemas.slots import (
    CleanupResponse,
    MyLocksResponse,
    ReleaseAllResponse,
    SlotLockRead,
    SlotLockRequest,
    SlotLockResponse,
    SlotStatusEntry,
    SlotStatusRequest,
    SlotStatusResponse,
)
from ..services import reservations
from ..services.slots import SlotKey, get_booking_config


router = APIRouter(prefix="/slots", tags=["slots"])


@router.post("/lock", response_model=SlotLockResponse)
def lock_slot(
    data: SlotLockRequest,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    key = SlotKey.build(data.vendor_id, data.turf_id, data.sport, data.date, data.time_slot)
    result = reservations.lock_slot(db, redis, key, identity.user_id)

    ttl = get_booking_config().lock_ttl_minutes
    message = (
        f"Lock extended for {ttl} minutes" if result.extended
        else f"Slot locked for {ttl} minutes"
    )
    return SlotLockResponse(
        lock_id=result.lock.id,
        expires_at=result.lock.expires_at,
        extended=result.extended,
        message=message,
    )


@router.delete("/unlock/{lock_id}")
def unlock_slot(
    lock_id: str,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    reservations.unlock_slot(db, redis, lock_id, identity.user_id)
    return {"message": "Lock released"}


@router.post("/status", response_model=SlotStatusResponse)
def get_slot_statuses(
    data: SlotStatusRequest,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """Real-time slot statuses for polling; read-only."""
    keys = [
        SlotKey.build(data.vendor_id, data.turf_id, data.sport, data.date, slot)
        for slot in data.time_slots
    ]
    views = reservations.query_slot_statuses(db, keys, identity.user_id)

    return SlotStatusResponse(slot_statuses=[
        SlotStatusEntry(
            slot=raw_slot,
            status=view.status,
            lock_id=view.lock_id,
            expires_at=view.expires_at,
        )
        for raw_slot, view in zip(data.time_slots, views)
    ])


@router.patch("/confirm/{lock_id}", response_model=BookingConfirmedResponse)
def confirm_lock(
    lock_id: str,
    data: ConfirmLockRequest,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    booking = reservations.confirm_slot(
        db, redis, lock_id, identity.user_id,
        amount=data.amount,
        order_id=data.order_id,
    )
    return BookingConfirmedResponse(
        message="Lock confirmed",
        booking=BookingRead.model_validate(booking),
    )


@router.post("/cleanup", response_model=CleanupResponse)
def cleanup_expired_locks(db: Session = Depends(get_db)):
    """Delete expired locks. Called by cron; needs no user identity."""
    cleaned = reservations.sweep_expired(db)
    if not cleaned:
        return CleanupResponse(message="No expired locks to clean up", cleaned=0)
    return CleanupResponse(message=f"Cleaned up {cleaned} expired locks", cleaned=cleaned)


@router.get("/my-locks", response_model=MyLocksResponse)
def get_my_locks(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    locks = reservations.my_locks(db, identity.user_id)
    return MyLocksResponse(locks=[SlotLockRead.model_validate(lock) for lock in locks])


@router.delete("/release-all", response_model=ReleaseAllResponse)
def release_all_locks(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    released = reservations.release_all(db, identity.user_id)
    if not released:
        return ReleaseAllResponse(message="No locks to release", released=0)
    return ReleaseAllResponse(message=f"Released {released} locks", released=released)
