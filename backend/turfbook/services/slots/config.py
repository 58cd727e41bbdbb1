# backend/turfbook/services/slots/config.py
"""
Reservation configuration for slot locking.
"""

from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache

from ...config import settings


@dataclass(frozen=True)
class BookingConfig:
    """
    Configuration for the slot reservation state machine.

    Attributes:
        lock_ttl_minutes: Lifetime of a slot lock (same for every caller)
        mutex_timeout_seconds: Hold timeout of the per-slot Redis mutex,
            released automatically if a worker dies mid-transition
        mutex_wait_seconds: How long a request waits for the mutex
            before failing with a timeout
        default_cancellation_hours: Refund threshold for turfs without
            their own cancellation_hours
        reminder_window_minutes: Remind users this long before slot start
    """
    lock_ttl_minutes: int = 10
    mutex_timeout_seconds: float = 10.0
    mutex_wait_seconds: float = 3.0
    default_cancellation_hours: int = 1
    reminder_window_minutes: int = 120

    def __post_init__(self):
        """Validate configuration."""
        if self.lock_ttl_minutes <= 0:
            raise ValueError(f"lock_ttl_minutes must be positive, got {self.lock_ttl_minutes}")
        if self.default_cancellation_hours < 0:
            raise ValueError(
                f"default_cancellation_hours must be >= 0, got {self.default_cancellation_hours}"
            )

    @property
    def lock_ttl(self) -> timedelta:
        return timedelta(minutes=self.lock_ttl_minutes)


@lru_cache
def get_booking_config() -> BookingConfig:
    """Get reservation configuration (singleton, read from settings)."""
    return BookingConfig(
        lock_ttl_minutes=settings.lock_ttl_minutes,
        mutex_timeout_seconds=settings.slot_mutex_timeout_seconds,
        mutex_wait_seconds=settings.slot_mutex_wait_seconds,
        default_cancellation_hours=settings.default_cancellation_hours,
        reminder_window_minutes=settings.reminder_window_minutes,
    )
