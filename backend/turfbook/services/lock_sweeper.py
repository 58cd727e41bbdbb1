"""
Expired lock sweeper.

Periodically deletes slot locks whose expires_at has passed. Readers
already ignore such locks, so the sweep only reclaims rows; a failed run
is simply repeated on the next tick.

Runs as an asyncio task in backend lifespan.
Uses synchronous DB (via asyncio.to_thread).
"""

import asyncio
import logging

from ..config import settings
from ..database import SessionLocal
from . import reservations

logger = logging.getLogger(__name__)


async def lock_sweeper_loop(interval: int | None = None) -> None:
    """Sweep expired locks every `interval` seconds until cancelled."""
    interval = interval or settings.sweep_interval_seconds
    logger.info(f"lock_sweeper_loop started (every {interval}s)")

    try:
        while True:
            try:
                await asyncio.to_thread(sweep_once)
            except asyncio.CancelledError:
                logger.info("lock_sweeper_loop cancelled")
                raise
            except Exception:
                logger.exception("lock_sweeper_loop error")

            await asyncio.sleep(interval)
    except asyncio.CancelledError:
        pass


def sweep_once() -> int:
    db = SessionLocal()
    try:
        return reservations.sweep_expired(db)
    finally:
        db.close()
