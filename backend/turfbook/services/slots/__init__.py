# backend/turfbook/services/slots/__init__.py
"""
Slot reservation building blocks.

keys        : normalized slot identity
mutex       : per-slot Redis lock shared by all instances
lock_store  : slot_locks table (in-progress reservations)
status_index: slot_status table (per-day availability mirror)
"""

from .config import BookingConfig, get_booking_config
from .keys import SlotKey, normalize, normalize_date, slot_start_time
from .mutex import slot_mutex
from .lock_store import LockResult, SlotStatusView
from . import lock_store, status_index

__all__ = [
    "BookingConfig",
    "get_booking_config",
    "SlotKey",
    "normalize",
    "normalize_date",
    "slot_start_time",
    "slot_mutex",
    "LockResult",
    "SlotStatusView",
    "lock_store",
    "status_index",
]
