from turfbook.services.slots import SlotKey
from turfbook.services.slots.mutex import mutex_name

USER_A = {"X-User-Id": "userA"}
USER_B = {"X-User-Id": "userB"}

SLOT = {
    "vendor_id": "v1",
    "turf_id": "t1",
    "sport": "Football",
    "date": "2099-07-01",
    "time_slot": "06:00-07:00",
}


def _lock(client, headers=USER_A, **overrides):
    return client.post("/slots/lock", json={**SLOT, **overrides}, headers=headers)


def _book(client, headers=USER_A):
    lock_id = _lock(client, headers).json()["lock_id"]
    response = client.post(
        "/bookings/payment-success",
        json={"lock_id": lock_id, "order_id": "order_1", "amount": 500},
        headers=headers,
    )
    assert response.status_code == 200
    return response.json()["booking"]


def test_missing_identity_is_rejected(client):
    assert _lock(client, headers={}).status_code == 401
    assert client.get("/bookings/my-bookings").status_code == 401


def test_lock_and_extend(client):
    first = _lock(client)
    assert first.status_code == 200
    body = first.json()
    assert body["status"] == "success"
    assert body["extended"] is False
    assert body["message"] == "Slot locked for 10 minutes"

    second = _lock(client, sport=" football ")
    assert second.status_code == 200
    assert second.json()["lock_id"] == body["lock_id"]
    assert second.json()["message"] == "Lock extended for 10 minutes"


def test_lock_held_by_other_user_conflicts(client):
    _lock(client)

    response = _lock(client, headers=USER_B)

    assert response.status_code == 409
    body = response.json()
    assert body["kind"] == "conflict"
    assert body["status"] == "locked"
    assert 0 < body["expires_in"] <= 600


def test_invalid_input_is_400(client):
    blank = _lock(client, sport="   ")
    assert blank.status_code == 400
    assert blank.json()["kind"] == "invalid_input"

    assert _lock(client, date="01/07/2099").status_code == 400

    missing = client.post("/slots/lock", json={"vendor_id": "v1"}, headers=USER_A)
    assert missing.status_code == 400
    assert missing.json()["kind"] == "invalid_input"


def test_unknown_turf_is_404(client):
    response = _lock(client, turf_id="nope")
    assert response.status_code == 404
    assert response.json()["kind"] == "not_found"


def test_batch_status_per_caller(client):
    lock_id = _lock(client).json()["lock_id"]
    request = {
        "vendor_id": "v1",
        "turf_id": "t1",
        "sport": "FOOTBALL",
        "date": "2099-07-01",
        "time_slots": ["06:00-07:00", "07:00-08:00"],
    }

    mine = client.post("/slots/status", json=request, headers=USER_A).json()["slot_statuses"]
    theirs = client.post("/slots/status", json=request, headers=USER_B).json()["slot_statuses"]

    assert [(s["slot"], s["status"]) for s in mine] == [("06:00-07:00", "selected"), ("07:00-08:00", "available")]
    assert mine[0]["lock_id"] == lock_id
    assert theirs[0]["status"] == "locked"
    assert theirs[0]["lock_id"] is None


def test_unlock(client):
    lock_id = _lock(client).json()["lock_id"]

    assert client.delete(f"/slots/unlock/{lock_id}", headers=USER_B).status_code == 403
    response = client.delete(f"/slots/unlock/{lock_id}", headers=USER_A)
    assert response.status_code == 200
    assert response.json() == {"message": "Lock released"}
    assert client.delete(f"/slots/unlock/{lock_id}", headers=USER_A).status_code == 404


def test_payment_success_creates_booking(client):
    booking = _book(client)

    assert booking["sports"] == "football"
    assert booking["booking_status"] == "confirmed"
    assert booking["order_id"] == "order_1"

    assert _lock(client, headers=USER_B).json()["status"] == "booked"

    mine = client.get("/bookings/my-bookings", headers=USER_A).json()["bookings"]
    assert [b["id"] for b in mine] == [booking["id"]]
    assert client.get("/bookings/my-bookings", headers=USER_B).json()["bookings"] == []

    index = client.get(
        "/bookings/slot-status", params={"turf_id": "t1", "date": "2099-07-01"}, headers=USER_B,
    ).json()
    assert index["slots"]["football"]["06:00-07:00"]["booked"] is True

    assert client.get(f"/bookings/{booking['id']}", headers=USER_A).status_code == 200
    assert client.get(f"/bookings/{booking['id']}", headers=USER_B).status_code == 403


def test_payment_success_checks_slot_echo(client):
    lock_id = _lock(client).json()["lock_id"]

    response = client.post(
        "/bookings/payment-success",
        json={"lock_id": lock_id, "amount": 500, **SLOT, "time_slot": "07:00-08:00"},
        headers=USER_A,
    )
    assert response.status_code == 400

    response = client.post(
        "/bookings/payment-success", json={"lock_id": lock_id, "amount": 0}, headers=USER_A,
    )
    assert response.status_code == 400


def test_confirm_lock_endpoint(client):
    lock_id = _lock(client).json()["lock_id"]

    response = client.patch(f"/slots/confirm/{lock_id}", json={"amount": 750}, headers=USER_A)

    assert response.status_code == 200
    assert response.json()["message"] == "Lock confirmed"
    assert response.json()["booking"]["lock_id"] == lock_id


def test_cancel_booking_frees_slot(client):
    booking = _book(client)

    assert client.post(f"/bookings/{booking['id']}/cancel", headers=USER_B).status_code == 403

    response = client.post(f"/bookings/{booking['id']}/cancel", headers=USER_A)
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Booking cancelled successfully"
    assert body["refund_eligible"] is True
    assert body["hours_before_start"] > 1

    again = client.post(f"/bookings/{booking['id']}/cancel", headers=USER_A)
    assert again.status_code == 409
    assert again.json()["status"] == "cancelled"

    assert _lock(client, headers=USER_B).status_code == 200
    stored = client.get(f"/bookings/{booking['id']}", headers=USER_A).json()
    assert stored["booking_status"] == "cancelled"


def test_my_locks_and_release_all(client):
    _lock(client)
    _lock(client, time_slot="07:00-08:00")
    _lock(client, headers=USER_B, time_slot="08:00-09:00")

    locks = client.get("/slots/my-locks", headers=USER_A).json()["locks"]
    assert {lock["time_slot"] for lock in locks} == {"06:00-07:00", "07:00-08:00"}

    response = client.delete("/slots/release-all", headers=USER_A)
    assert response.json() == {"message": "Released 2 locks", "released": 2}
    assert client.delete("/slots/release-all", headers=USER_A).json()["released"] == 0
    assert len(client.get("/slots/my-locks", headers=USER_B).json()["locks"]) == 1


def test_cleanup_without_expired_locks(client):
    _lock(client)

    response = client.post("/slots/cleanup")

    assert response.status_code == 200
    assert response.json() == {"message": "No expired locks to clean up", "cleaned": 0}


def test_busy_slot_returns_retryable_503(client, redis):
    key = SlotKey.build(SLOT["vendor_id"], SLOT["turf_id"], SLOT["sport"], SLOT["date"], SLOT["time_slot"])
    redis.set(mutex_name(key), "another-worker")

    response = _lock(client)

    assert response.status_code == 503
    assert response.headers["Retry-After"] == "1"
    assert response.json()["kind"] == "timeout"


def test_role_header_grants_nothing(client):
    booking = _book(client)
    admin_b = {"X-User-Id": "userB", "X-User-Role": "Admin"}

    assert client.get(f"/bookings/{booking['id']}", headers=admin_b).status_code == 403
    assert client.post(f"/bookings/{booking['id']}/cancel", headers=admin_b).status_code == 403
