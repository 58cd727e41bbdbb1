# backend/turfbook/services/slots/mutex.py
"""
Per-slot mutual exclusion across server instances.

Key format: slotmutex:{vendor}:{turf}:{sport}:{date}:{time_slot}

Every state transition for a slot (lock, unlock, confirm, cancel) runs
its check-then-write sequence while holding this Redis lock. Different
slots use different keys and never wait on each other.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from redis import Redis
from redis.exceptions import LockError, LockNotOwnedError, RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from ...errors import InternalError, StoreTimeout
from .config import BookingConfig, get_booking_config
from .keys import SlotKey

logger = logging.getLogger(__name__)

KEY_PREFIX = "slotmutex"


def mutex_name(key: SlotKey) -> str:
    return f"{KEY_PREFIX}:{key.canonical()}"


@contextmanager
def slot_mutex(
    redis: Redis,
    key: SlotKey,
    config: BookingConfig | None = None,
) -> Iterator[None]:
    """
    Hold the mutex for `key` for the duration of the block.

    Raises:
        StoreTimeout: mutex not acquired within mutex_wait_seconds,
            or Redis did not answer within its socket timeout.
        InternalError: any other Redis failure.
    """
    config = config or get_booking_config()
    name = mutex_name(key)
    lock = redis.lock(
        name,
        timeout=config.mutex_timeout_seconds,
        blocking_timeout=config.mutex_wait_seconds,
        thread_local=False,
    )

    try:
        acquired = lock.acquire()
    except (RedisTimeoutError, LockError):
        raise StoreTimeout("Slot store did not respond in time") from None
    except RedisError as e:
        logger.exception(f"Failed to acquire slot mutex {name}")
        raise InternalError("Slot store unavailable") from e

    if not acquired:
        logger.warning(f"Slot mutex busy: {name}")
        raise StoreTimeout("Slot is busy, please retry")

    try:
        yield
    finally:
        try:
            lock.release()
        except LockNotOwnedError:
            # hold timeout elapsed before the transition finished
            logger.error(
                f"Slot mutex {name} expired before release "
                f"(timeout={config.mutex_timeout_seconds}s)"
            )
        except RedisError:
            logger.exception(f"Failed to release slot mutex {name}, it will expire on its own")
