# backend/turfbook/services/refund_policy.py
"""
Refund eligibility on cancellation.

One rule for every cancellation path: refundable when at least
`cancellation_hours` remain before slot start. The turf's own
cancellation_hours wins; turfs without one use
BookingConfig.default_cancellation_hours. Cancelling after the slot has
started is never refundable.

The result is advisory: it is reported to the caller and stored on the
booking, no payment action is taken here.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from .slots.config import BookingConfig, get_booking_config


@dataclass(frozen=True)
class RefundDecision:
    eligible: bool
    required_hours: int
    hours_before_start: float
    start_known: bool = True

    @property
    def info(self) -> str:
        if not self.start_known:
            return "No refund. The slot start time could not be determined."
        if self.hours_before_start <= 0:
            return "No refund. The slot has already started."
        if self.eligible:
            return (
                f"Refund will be processed as cancellation is "
                f"{self.hours_before_start:.1f} hrs before the slot."
            )
        return (
            f"No refund. Cancellation happened only {self.hours_before_start:.1f} hrs "
            f"before the slot (requires {self.required_hours}+ hrs)."
        )


def evaluate(
    slot_start: Optional[datetime],
    now: datetime,
    turf_cancellation_hours: Optional[int] = None,
    config: BookingConfig | None = None,
) -> RefundDecision:
    """
    Args:
        slot_start: Slot start in venue wall-clock time, None if the
            time slot has no parsable start (never refundable)
        now: Current venue wall-clock time
        turf_cancellation_hours: Per-turf threshold, None → default
    """
    config = config or get_booking_config()
    required = (
        turf_cancellation_hours
        if turf_cancellation_hours is not None
        else config.default_cancellation_hours
    )

    if slot_start is None:
        return RefundDecision(
            eligible=False,
            required_hours=required,
            hours_before_start=0.0,
            start_known=False,
        )

    remaining = slot_start - now
    hours_before = remaining / timedelta(hours=1)
    eligible = remaining > timedelta(0) and remaining >= timedelta(hours=required)

    return RefundDecision(
        eligible=eligible,
        required_hours=required,
        hours_before_start=round(hours_before, 2),
    )
