from datetime import datetime

from turfbook.services import refund_policy
from turfbook.services.slots import BookingConfig

SLOT_START = datetime(2025, 7, 1, 18, 0)


def test_default_threshold_is_one_hour():
    decision = refund_policy.evaluate(SLOT_START, datetime(2025, 7, 1, 16, 30), config=BookingConfig())

    assert decision.eligible
    assert decision.required_hours == 1
    assert decision.hours_before_start == 1.5
    assert "Refund will be processed" in decision.info


def test_exactly_at_threshold_is_refundable():
    decision = refund_policy.evaluate(SLOT_START, datetime(2025, 7, 1, 17, 0), config=BookingConfig())
    assert decision.eligible


def test_inside_threshold_is_not_refundable():
    decision = refund_policy.evaluate(SLOT_START, datetime(2025, 7, 1, 17, 30), config=BookingConfig())

    assert not decision.eligible
    assert decision.info.startswith("No refund. Cancellation happened only 0.5 hrs")


def test_turf_threshold_overrides_default():
    now = datetime(2025, 7, 1, 15, 0)

    assert not refund_policy.evaluate(SLOT_START, now, turf_cancellation_hours=4, config=BookingConfig()).eligible
    assert refund_policy.evaluate(SLOT_START, now, turf_cancellation_hours=2, config=BookingConfig()).eligible


def test_zero_hours_allows_refund_until_start_only():
    config = BookingConfig(default_cancellation_hours=0)

    assert refund_policy.evaluate(SLOT_START, datetime(2025, 7, 1, 17, 59), config=config).eligible
    assert not refund_policy.evaluate(SLOT_START, SLOT_START, config=config).eligible


def test_after_start_is_never_refundable():
    decision = refund_policy.evaluate(
        SLOT_START, datetime(2025, 7, 1, 19, 0), turf_cancellation_hours=0, config=BookingConfig(),
    )

    assert not decision.eligible
    assert decision.hours_before_start == -1.0
    assert decision.info == "No refund. The slot has already started."


def test_unknown_start_is_not_refundable():
    decision = refund_policy.evaluate(None, datetime(2025, 7, 1, 9, 0), config=BookingConfig())

    assert not decision.eligible
    assert decision.required_hours == 1
    assert decision.info == "No refund. The slot start time could not be determined."
