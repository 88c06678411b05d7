"""
Route tests for /api/v1/scheduling.

The client fixture pins the request clock to 08:00 UTC on the fixture day.
"""

from datetime import timedelta

from scheduling_factories import at, persist_booking, persist_window

from tutor_scheduling.routes.v1.scheduling import get_now

BASE = "/api/v1/scheduling"


class TestWindowSlots:
    def test_lists_slots(self, client, db):
        window = persist_window(db, at(9), at(10, 30), owner_id="tutor-1")
        persist_booking(db, window.id, 0, reserved_by="student-1")

        response = client.get(f"{BASE}/windows/{window.id}/slots")

        assert response.status_code == 200
        body = response.json()
        assert body["total_slots"] == 2
        assert body["free_slots"] == 1
        assert [s["booking_state"] for s in body["slots"]] == ["booked", "free"]
        assert body["slots"][0]["booked_by"] == "student-1"
        assert body["slots"][1]["duration_hours"] == 0.5
        assert body["slots"][1]["id"] == f"{window.id}_slot_1"

    def test_unknown_window(self, client):
        response = client.get(f"{BASE}/windows/01HF4G12ABCDEF3456789XYZAB/slots")

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "WINDOW_NOT_FOUND"

    def test_malformed_window_id(self, client):
        response = client.get(f"{BASE}/windows/not-a-ulid/slots")

        assert response.status_code == 422


class TestAvailableSlots:
    def test_grouped_by_local_date(self, client, db):
        window = persist_window(db, at(9), at(12), owner_id="tutor-1")
        persist_booking(db, window.id, 1)

        response = client.post(f"{BASE}/slots/available", json={"owner_ids": ["tutor-1"]})

        assert response.status_code == 200
        body = response.json()
        assert list(body["availability_by_date"]) == ["2030-03-04"]
        assert [s["ordinal"] for s in body["availability_by_date"]["2030-03-04"]] == [0, 2]
        assert body["total_slots"] == 2

    def test_requires_owner_or_window_ids(self, client):
        response = client.post(f"{BASE}/slots/available", json={})

        assert response.status_code == 422

    def test_rejects_unknown_fields(self, client):
        response = client.post(
            f"{BASE}/slots/available", json={"owner_ids": ["tutor-1"], "foo": "bar"}
        )

        assert response.status_code == 422

    def test_inverted_date_range(self, client):
        response = client.post(
            f"{BASE}/slots/available",
            json={"owner_ids": ["tutor-1"], "start_date": "2030-03-05", "end_date": "2030-03-04"},
        )

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_DATE_RANGE"


class TestConsecutiveSlots:
    def test_runs_after_lead_time(self, client, db):
        persist_window(db, at(9), at(12), owner_id="tutor-1")

        response = client.post(
            f"{BASE}/slots/consecutive", json={"owner_ids": ["tutor-1"], "count": 2}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total_runs"] == 1
        run = body["runs"][0]
        assert run["owner_id"] == "tutor-1"
        assert [s["ordinal"] for s in run["slots"]] == [1, 2]
        assert len(run["slot_ids"]) == 2

    def test_lead_time_override(self, client, db):
        persist_window(db, at(9), at(12), owner_id="tutor-1")

        response = client.post(
            f"{BASE}/slots/consecutive",
            json={"owner_ids": ["tutor-1"], "count": 2, "min_lead_minutes": 0},
        )

        assert response.json()["total_runs"] == 2

    def test_invalid_count(self, client):
        response = client.post(
            f"{BASE}/slots/consecutive", json={"owner_ids": ["tutor-1"], "count": 0}
        )

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_RUN_LENGTH"


class TestSlotStatus:
    def test_bookable(self, client, db):
        window = persist_window(db, at(9), at(12))

        response = client.get(f"{BASE}/slots/{window.id}_slot_1/status")

        assert response.status_code == 200
        body = response.json()
        assert body["bookable"] is True
        assert body["errors"] == []
        assert body["realtime_available"] is True

    def test_not_found_is_reported(self, client):
        response = client.get(f"{BASE}/slots/nope/status")

        assert response.status_code == 200
        body = response.json()
        assert body["bookable"] is False
        assert body["errors"] == ["SLOT_NOT_FOUND"]
        assert body["slot"] is None

    def test_non_ascii_ordinal_is_not_found(self, client, db):
        window = persist_window(db, at(9), at(12))

        response = client.get(f"{BASE}/slots/{window.id}_slot_²/status")

        assert response.status_code == 200
        assert response.json()["errors"] == ["SLOT_NOT_FOUND"]


class TestReserveAndCancel:
    def test_reserve_then_conflict_then_cancel(self, client, db):
        window = persist_window(db, at(9), at(12))
        slot_id = f"{window.id}_slot_1"

        created = client.post(
            f"{BASE}/slots/{slot_id}/reserve",
            json={"reserved_by": "student-1", "session_ref": "S-1"},
        )
        assert created.status_code == 201
        booking = created.json()
        assert booking["slot_id"] == slot_id
        assert booking["status"] == "CONFIRMED"

        conflict = client.post(f"{BASE}/slots/{slot_id}/reserve", json={"reserved_by": "student-2"})
        assert conflict.status_code == 409
        assert conflict.json()["detail"]["code"] == "ALREADY_BOOKED"

        cancelled = client.post(f"{BASE}/bookings/{booking['id']}/cancel")
        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "CANCELLED"

        again = client.post(f"{BASE}/bookings/{booking['id']}/cancel")
        assert again.status_code == 200
        assert again.json() == cancelled.json()

        slots = client.get(f"{BASE}/windows/{window.id}/slots").json()["slots"]
        assert slots[1]["booking_state"] == "free"

    def test_reserve_unknown_slot(self, client):
        response = client.post(
            f"{BASE}/slots/01HF4G12ABCDEF3456789XYZAB_slot_0/reserve",
            json={"reserved_by": "student-1"},
        )

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "SLOT_NOT_FOUND"

    def test_reserve_inside_lead_time(self, client, db, now):
        window = persist_window(db, now + timedelta(minutes=30), now + timedelta(hours=2))

        response = client.post(
            f"{BASE}/slots/{window.id}_slot_0/reserve", json={"reserved_by": "student-1"}
        )

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "INSUFFICIENT_LEAD_TIME"

    def test_reserve_requires_party(self, client, db):
        window = persist_window(db, at(9), at(12))

        response = client.post(f"{BASE}/slots/{window.id}_slot_1/reserve", json={"reserved_by": ""})

        assert response.status_code == 422

    def test_clock_comes_from_dependency(self, client, db):
        window = persist_window(db, at(9), at(12))
        client.app.dependency_overrides[get_now] = lambda: at(11, 30)

        response = client.post(
            f"{BASE}/slots/{window.id}_slot_1/reserve", json={"reserved_by": "student-1"}
        )

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "SLOT_NOT_BOOKABLE"

    def test_cancel_unknown_booking(self, client):
        response = client.post(f"{BASE}/bookings/01HF4G12ABCDEF3456789XYZAB/cancel")

        assert response.status_code == 200
        assert response.json() is None


class TestListBookings:
    def test_list_by_student(self, client, db):
        window = persist_window(db, at(9), at(12))
        client.post(f"{BASE}/slots/{window.id}_slot_1/reserve", json={"reserved_by": "student-1"})
        client.post(f"{BASE}/slots/{window.id}_slot_2/reserve", json={"reserved_by": "student-2"})

        response = client.get(f"{BASE}/bookings", params={"reserved_by": "student-1"})

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["bookings"][0]["slot_id"] == f"{window.id}_slot_1"

    def test_requires_a_filter(self, client):
        response = client.get(f"{BASE}/bookings")

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "MISSING_BOOKING_FILTER"


class TestJointAvailability:
    def test_joint(self, client, db):
        persist_window(db, at(9), at(11), owner_id="tutor-1")
        persist_window(db, at(10), at(12), owner_id="tutor-2")

        response = client.post(
            f"{BASE}/availability/joint",
            json={"owner_ids": ["tutor-1", "tutor-2"], "min_tutors": 2},
        )

        assert response.status_code == 200
        body = response.json()
        day = body["availability_by_date"]["2030-03-04"]
        assert len(day) == 1
        assert day[0]["tutor_count"] == 2
        assert {t["owner_id"] for t in day[0]["tutors"]} == {"tutor-1", "tutor-2"}
        assert body["stats"]["total_slots"] == 4

    def test_requires_tutors(self, client):
        response = client.post(f"{BASE}/availability/joint", json={"owner_ids": []})

        assert response.status_code == 422


class TestMetricsEndpoint:
    def test_metrics_exposed(self, client):
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "tutor_scheduling_slot_reservations_total" in response.text

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"
