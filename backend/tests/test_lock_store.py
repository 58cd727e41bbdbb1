from datetime import timedelta

import pytest

from conftest import T0
from turfbook.errors import Forbidden, NotFound, SlotConflict
from turfbook.models import SlotLocks
from turfbook.services import booking_store
from turfbook.services.slots import SlotKey, lock_store, status_index

TTL = timedelta(minutes=10)


def test_try_lock_creates_then_extends_same_record(db, key):
    first = lock_store.try_lock(db, key, "userA", TTL, T0)
    assert first.ok and not first.extended

    second = lock_store.try_lock(db, key, "userA", TTL, T0 + timedelta(minutes=3))
    assert second.ok and second.extended
    assert second.lock.id == first.lock.id
    assert second.lock.expires_at == T0 + timedelta(minutes=13)
    assert db.query(SlotLocks).count() == 1


def test_try_lock_reports_remaining_seconds_to_other_owner(db, key):
    lock_store.try_lock(db, key, "userA", TTL, T0)

    result = lock_store.try_lock(db, key, "userB", TTL, T0 + timedelta(seconds=30.5))
    assert result.status == "locked"
    assert result.expires_in == 570


def test_try_lock_ignores_expired_lock(db, key):
    lock_store.try_lock(db, key, "userA", TTL, T0)

    result = lock_store.try_lock(db, key, "userB", TTL, T0 + TTL)
    assert result.ok
    assert result.lock.user_id == "userB"


def test_try_lock_reports_booked(db, key):
    booking_store.create_booking(db, key, "userA", 500.0, T0)

    assert lock_store.try_lock(db, key, "userA", TTL, T0).status == "booked"


def test_release_checks_existence_and_owner(db, key):
    lock_id = lock_store.try_lock(db, key, "userA", TTL, T0).lock.id

    with pytest.raises(NotFound):
        lock_store.release(db, "missing", "userA")
    with pytest.raises(Forbidden):
        lock_store.release(db, lock_id, "userB")

    lock_store.release(db, lock_id, "userA")
    assert db.get(SlotLocks, lock_id) is None


def test_confirm_lock_keeps_row(db, key):
    lock = lock_store.try_lock(db, key, "userA", TTL, T0).lock

    lock_store.confirm_lock(db, lock.id, "userA", T0 + timedelta(minutes=1))
    db.expire_all()

    row = db.get(SlotLocks, lock.id)
    assert row.status == "confirmed"
    assert row.confirmed_at == T0 + timedelta(minutes=1)


def test_confirm_lock_twice_conflicts(db, key):
    lock = lock_store.try_lock(db, key, "userA", TTL, T0).lock
    lock_store.confirm_lock(db, lock.id, "userA", T0)

    with pytest.raises(SlotConflict):
        lock_store.confirm_lock(db, lock.id, "userA", T0)


def test_confirmed_lock_no_longer_blocks(db, key):
    lock = lock_store.try_lock(db, key, "userA", TTL, T0).lock
    lock_store.confirm_lock(db, lock.id, "userA", T0)

    assert lock_store.find_active(db, key, T0) is None


def test_sweep_deletes_only_expired_locked_rows(db, key):
    other = SlotKey.build("v1", "t1", "football", "2025-07-01", "07:00-08:00")
    third = SlotKey.build("v1", "t1", "football", "2025-07-01", "08:00-09:00")
    expired_id = lock_store.try_lock(db, key, "userA", TTL, T0).lock.id
    confirmed_id = lock_store.try_lock(db, other, "userA", TTL, T0).lock.id
    live_id = lock_store.try_lock(db, third, "userB", TTL, T0 + timedelta(minutes=8)).lock.id
    lock_store.confirm_lock(db, confirmed_id, "userA", T0)
    db.commit()

    assert lock_store.sweep_expired(db, T0 + timedelta(minutes=11)) == 1
    db.commit()
    assert lock_store.sweep_expired(db, T0 + timedelta(minutes=11)) == 0

    remaining = {row.id for row in db.query(SlotLocks).all()}
    assert remaining == {confirmed_id, live_id}
    assert expired_id not in remaining


def test_release_all_for_owner_leaves_confirmed_and_others(db, key):
    other = SlotKey.build("v1", "t1", "football", "2025-07-01", "07:00-08:00")
    third = SlotKey.build("v1", "t1", "football", "2025-07-01", "08:00-09:00")
    lock_store.try_lock(db, key, "userA", TTL, T0)
    confirmed = lock_store.try_lock(db, other, "userA", TTL, T0).lock
    foreign = lock_store.try_lock(db, third, "userB", TTL, T0).lock
    lock_store.confirm_lock(db, confirmed.id, "userA", T0)

    assert lock_store.release_all_for_owner(db, "userA") == 1
    remaining = {row.id for row in db.query(SlotLocks).all()}
    assert remaining == {confirmed.id, foreign.id}


def test_query_slot_statuses_projection(db, key):
    booked = SlotKey.build("v1", "t1", "football", "2025-07-01", "07:00-08:00")
    foreign = SlotKey.build("v1", "t1", "football", "2025-07-01", "08:00-09:00")
    free = SlotKey.build("v1", "t1", "football", "2025-07-01", "09:00-10:00")

    mine = lock_store.try_lock(db, key, "userA", TTL, T0).lock
    lock_store.try_lock(db, foreign, "userB", TTL, T0)
    booking_store.create_booking(db, booked, "userC", 500.0, T0)

    views = lock_store.query_slot_statuses(db, [key, booked, foreign, free], "userA", T0)

    assert [v.status for v in views] == ["selected", "booked", "locked", "available"]
    assert views[0].lock_id == mine.id
    assert views[2].lock_id is None
    assert views[2].expires_at == T0 + TTL


def test_status_index_merge_keeps_siblings(db):
    status_index.mark_booked(db, "t1", "2025-07-01", "football", "06:00-07:00", "b1", "userA")
    status_index.mark_booked(db, "t1", "2025-07-01", "football", "07:00-08:00", "b2", "userB")
    status_index.mark_booked(db, "t1", "2025-07-01", "cricket", "06:00-07:00", "b3", "userC")

    status_index.mark_available(db, "t1", "2025-07-01", "football", "06:00-07:00")

    day = status_index.read_day(db, "t1", "2025-07-01")
    assert day["football"]["06:00-07:00"] == {"booked": False, "bookingId": None, "userId": None}
    assert day["football"]["07:00-08:00"] == {"booked": True, "bookingId": "b2", "userId": "userB"}
    assert day["cricket"]["06:00-07:00"]["booked"] is True
    assert status_index.read_day(db, "t1", "2025-07-02") == {}
