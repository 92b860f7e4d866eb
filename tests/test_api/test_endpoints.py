"""API endpoint integration tests."""

from datetime import date

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from appointment_hub.api.app import create_app
from appointment_hub.config import Settings
from appointment_hub.core.stores import (
    InMemoryAppointmentStore,
    InMemoryAvailabilityStore,
    InMemoryNotificationStore,
)
from appointment_hub.errors import PersistenceError
from appointment_hub.observability import BookingEventLogger

REF = date(2024, 6, 1)


@pytest.fixture
def stores():
    return InMemoryAppointmentStore(), InMemoryNotificationStore()


@pytest.fixture
def blocks():
    return InMemoryAvailabilityStore()


@pytest.fixture
def test_app(stores, blocks, tmp_path):
    """Create test FastAPI application backed by in-memory stores."""
    appointments, notifications = stores
    return create_app(
        settings=Settings(storage_backend="memory", event_log_enabled=False, api_key=""),
        appointment_store=appointments,
        notification_store=notifications,
        availability_store=blocks,
        event_logger=BookingEventLogger(log_dir=tmp_path / "logs", enabled=True),
        clock=lambda: REF,
    )


@pytest.fixture
def client(test_app):
    with TestClient(test_app) as c:
        yield c


def _book(client, time="10:00", day="2024-06-05", customer="cust-1", provider="prov-1"):
    return client.post(
        "/api/v1/appointments",
        json={"provider_id": provider, "customer_id": customer, "date": day, "time": time},
    )


def _propose(client, appointment_id, new_date="2024-06-07", new_time="11:00"):
    response = client.post(
        f"/api/v1/appointments/{appointment_id}/reschedule",
        json={"new_date": new_date, "new_time": new_time, "provider_name": "Dr. Rivera"},
    )
    assert response.status_code == 201
    return response.json()


class TestSlotsEndpoint:
    def test_full_grid(self, client):
        response = client.get("/api/v1/providers/prov-1/slots")

        assert response.status_code == 200
        data = response.json()
        assert data["reference_date"] == "2024-06-01"
        assert data["total_available"] == 480
        assert len(data["days"]) == 30
        first = data["days"][0]
        assert first["date"] == "2024-06-02"
        assert first["day_of_week"] == "Sun"
        assert len(first["slots"]) == 16

    def test_booked_slot_reduces_total(self, client):
        assert _book(client).status_code == 201

        data = client.get("/api/v1/providers/prov-1/slots").json()
        assert data["total_available"] == 479

        times = client.get("/api/v1/providers/prov-1/slots/2024-06-05").json()["times"]
        assert len(times) == 15
        assert "10:00" not in times

    def test_explicit_reference_date(self, client):
        data = client.get(
            "/api/v1/providers/prov-1/slots", params={"reference_date": "2024-12-31"}
        ).json()
        assert data["days"][0]["date"] == "2025-01-01"

    def test_date_outside_horizon_is_empty(self, client):
        response = client.get("/api/v1/providers/prov-1/slots/2024-08-01")
        assert response.status_code == 200
        assert response.json()["times"] == []


class TestAppointmentsEndpoint:
    def test_book_and_get(self, client):
        created = _book(client).json()
        assert created["status"] == "confirmed"

        fetched = client.get(f"/api/v1/appointments/{created['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["time"] == "10:00"

        provider_inbox = client.get("/api/v1/notifications/provider/prov-1").json()
        assert provider_inbox[0]["type"] == "booking"

    def test_double_booking_conflict(self, client):
        _book(client)
        response = _book(client, customer="cust-2")
        assert response.status_code == 409
        assert response.json()["error"] == "Slot unavailable"

    def test_off_grid_booking_rejected(self, client):
        response = _book(client, day="2024-06-01")
        assert response.status_code == 422
        assert response.json()["error"] == "Validation failed"

    def test_malformed_time_rejected(self, client):
        assert _book(client, time="10am").status_code == 422

    def test_missing_appointment(self, client):
        response = client.get("/api/v1/appointments/nope")
        assert response.status_code == 404
        assert response.json()["error"] == "Not found"

    def test_list_filters(self, client):
        _book(client, time="10:00")
        _book(client, time="11:00", customer="cust-2")

        all_items = client.get("/api/v1/appointments", params={"provider_id": "prov-1"}).json()
        assert [a["time"] for a in all_items] == ["11:00", "10:00"]
        mine = client.get("/api/v1/appointments", params={"customer_id": "cust-2"}).json()
        assert len(mine) == 1

    def test_cancel_then_complete_conflicts(self, client):
        appt = _book(client).json()

        cancelled = client.post(
            f"/api/v1/appointments/{appt['id']}/cancel", json={"reason": "Travel"}
        )
        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "cancelled"

        response = client.post(f"/api/v1/appointments/{appt['id']}/complete")
        assert response.status_code == 409
        assert response.json()["error"] == "Invalid state"

    def test_cancel_without_body(self, client):
        appt = _book(client).json()
        response = client.post(f"/api/v1/appointments/{appt['id']}/cancel")
        assert response.status_code == 200

    def test_complete(self, client):
        appt = _book(client).json()
        response = client.post(f"/api/v1/appointments/{appt['id']}/complete")
        assert response.status_code == 200
        assert response.json()["status"] == "completed"


class TestRescheduleFlow:
    def test_confirm_suggested(self, client):
        appt = _book(client).json()
        proposal = _propose(client, appt["id"])
        assert proposal["remaining_slots"] == 479
        assert client.get(f"/api/v1/appointments/{appt['id']}").json()["status"] == "pending"

        notification_id = proposal["notification"]["id"]
        response = client.post(
            f"/api/v1/reschedules/{notification_id}/confirm", json={"choice": "suggested"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["state"] == "confirmed"
        assert body["decision"]["action"] == "confirmed"
        assert body["decision"]["remaining_slots"] == 478

        moved = client.get(f"/api/v1/appointments/{appt['id']}").json()
        assert (moved["date"], moved["time"], moved["status"]) == (
            "2024-06-07",
            "11:00",
            "confirmed",
        )

    def test_choose_alternative(self, client):
        appt = _book(client).json()
        notification_id = _propose(client, appt["id"])["notification"]["id"]

        response = client.post(
            f"/api/v1/reschedules/{notification_id}/confirm",
            json={"choice": "alternative", "selected_date": "2024-06-10", "selected_time": "14:30"},
        )

        body = response.json()
        assert body["state"] == "alternative_chosen"
        assert body["decision"]["reason"] == "Customer selected alternative time"

        head = client.get("/api/v1/notifications/provider/prov-1").json()[0]
        assert head["type"] == "reschedule_confirmed"
        assert head["title"] == "Appointment Reschedule Changed"

        customer = client.get("/api/v1/notifications/customer/cust-1").json()[0]
        assert customer["read"] is True
        assert customer["action_required"] is False

    def test_alternative_without_selection(self, client):
        appt = _book(client).json()
        notification_id = _propose(client, appt["id"])["notification"]["id"]

        response = client.post(
            f"/api/v1/reschedules/{notification_id}/confirm",
            json={"choice": "alternative", "selected_time": ""},
        )
        assert response.status_code == 422
        assert response.json()["detail"] == "Please select a date and time"

    def test_second_answer_conflicts(self, client):
        appt = _book(client).json()
        notification_id = _propose(client, appt["id"])["notification"]["id"]
        url = f"/api/v1/reschedules/{notification_id}/confirm"

        assert client.post(url, json={"choice": "suggested"}).status_code == 200
        assert client.post(url, json={"choice": "suggested"}).status_code == 409

    def test_confirm_after_cancel_conflicts(self, client):
        appt = _book(client).json()
        notification_id = _propose(client, appt["id"])["notification"]["id"]
        client.post(f"/api/v1/appointments/{appt['id']}/cancel", json={"reason": "Travel"})

        response = client.post(
            f"/api/v1/reschedules/{notification_id}/confirm", json={"choice": "suggested"}
        )

        assert response.status_code == 409
        assert client.get(f"/api/v1/appointments/{appt['id']}").json()["status"] == "cancelled"
        inbox = client.get("/api/v1/notifications/customer/cust-1").json()
        requests = [n for n in inbox if n["type"] == "appointment_rescheduled"]
        assert [n["action_required"] for n in requests] == [False]

    def test_second_proposal_closes_first(self, client):
        appt = _book(client).json()
        first = _propose(client, appt["id"])["notification"]["id"]
        _propose(client, appt["id"], new_date="2024-06-08", new_time="09:00")

        response = client.post(f"/api/v1/reschedules/{first}/confirm", json={"choice": "suggested"})
        assert response.status_code == 409

    def test_unknown_request(self, client):
        response = client.post("/api/v1/reschedules/nope/confirm", json={})
        assert response.status_code == 404

    def test_storage_failure_maps_to_503(self, client, stores, monkeypatch):
        appt = _book(client).json()
        notification_id = _propose(client, appt["id"])["notification"]["id"]
        _, notifications = stores

        async def broken(*args, **kwargs):
            raise PersistenceError("disk full")

        monkeypatch.setattr(notifications, "update_flags", broken)
        response = client.post(
            f"/api/v1/reschedules/{notification_id}/confirm", json={"choice": "suggested"}
        )
        assert response.status_code == 503
        assert response.json()["error"] == "Storage temporarily unavailable, please try again"


class TestAvailabilityEndpoint:
    def _create(self, client, start="09:00", end="11:00", day="2024-06-05", provider="prov-1"):
        return client.post(
            f"/api/v1/providers/{provider}/availability",
            json={"date": day, "start_time": start, "end_time": end},
        )

    def test_create_list_and_restrict_grid(self, client):
        created = self._create(client)
        assert created.status_code == 201
        assert created.json()["provider_id"] == "prov-1"

        listed = client.get("/api/v1/providers/prov-1/availability").json()
        assert [b["id"] for b in listed] == [created.json()["id"]]
        assert client.get(
            "/api/v1/providers/prov-1/availability", params={"date": "2024-06-06"}
        ).json() == []

        data = client.get("/api/v1/providers/prov-1/slots").json()
        assert data["total_available"] == 4
        assert _book(client, time="14:00").status_code == 422
        assert _book(client, time="09:30").status_code == 201

    def test_overlap_rejected(self, client):
        self._create(client)
        response = self._create(client, start="10:00", end="12:00")
        assert response.status_code == 422
        assert response.json()["detail"] == "Slot overlaps with existing slot"

    def test_malformed_time_rejected(self, client):
        assert self._create(client, start="9am").status_code == 422

    def test_update_and_delete(self, client):
        block = self._create(client).json()
        url = f"/api/v1/providers/prov-1/availability/{block['id']}"

        updated = client.put(url, json={"end_time": "12:00"})
        assert updated.status_code == 200
        assert updated.json()["end_time"] == "12:00"

        deleted = client.delete(url)
        assert deleted.json() == {"success": True, "message": "Slot deleted"}
        assert client.delete(url).status_code == 404

    def test_booked_block_locked(self, client):
        block = self._create(client).json()
        _book(client, time="10:00")
        url = f"/api/v1/providers/prov-1/availability/{block['id']}"

        assert client.put(url, json={"end_time": "12:00"}).status_code == 409
        response = client.delete(url)
        assert response.status_code == 409
        assert response.json()["detail"] == "Cannot delete booked slot"

    def test_other_provider_cannot_touch_block(self, client):
        block = self._create(client).json()
        url = f"/api/v1/providers/prov-2/availability/{block['id']}"
        assert client.delete(url).status_code == 404


class TestNotificationsEndpoint:
    def test_read_all_and_clear(self, client):
        _book(client, time="10:00")
        _book(client, time="11:00", customer="cust-2")

        unread = client.get(
            "/api/v1/notifications/provider/prov-1", params={"unread_only": True}
        ).json()
        assert len(unread) == 2

        marked = client.post("/api/v1/notifications/provider/prov-1/read-all").json()
        assert marked == {"success": True, "updated": 2}
        assert client.get(
            "/api/v1/notifications/provider/prov-1", params={"unread_only": True}
        ).json() == []

        cleared = client.delete("/api/v1/notifications/provider/prov-1/all").json()
        assert cleared == {"success": True, "removed": 2}

    def test_mark_one_read_and_delete(self, client):
        _book(client)
        note = client.get("/api/v1/notifications/provider/prov-1").json()[0]

        read = client.post(f"/api/v1/notifications/provider/{note['id']}/read")
        assert read.status_code == 200
        assert read.json()["read"] is True

        assert client.delete(f"/api/v1/notifications/provider/{note['id']}").status_code == 200
        assert client.delete(f"/api/v1/notifications/provider/{note['id']}").status_code == 404

    def test_unknown_audience(self, client):
        assert client.get("/api/v1/notifications/admin/x").status_code == 422


@pytest.mark.asyncio
async def test_async_client_round_trip(test_app):
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        booked = await ac.post(
            "/api/v1/appointments",
            json={"provider_id": "prov-1", "customer_id": "cust-1", "date": "2024-06-05", "time": "10:00"},
        )
        assert booked.status_code == 201

        times = await ac.get("/api/v1/providers/prov-1/slots/2024-06-05")
        assert times.status_code == 200
        assert len(times.json()["times"]) == 15
