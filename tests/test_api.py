"""
Tests for the dashboard-facing HTTP API.
"""

from __future__ import annotations

import pytest
import respx
from fastapi.testclient import TestClient

from bookflow.core.config import Settings
from bookflow.main import app
from bookflow.wiring.dependencies import build_container, get_container

BASE_URL = "http://backend.test/api"


@pytest.fixture
def backend():
    with respx.mock(base_url=BASE_URL, assert_all_called=False) as router:
        yield router


@pytest.fixture
def client(backend):
    config = Settings(
        API_BASE_URL=BASE_URL,
        API_TOKEN="tok",
        PAYMENT_POLL_INTERVAL_MS=0,
        ENV="dev",
    )
    container = build_container(config)
    app.dependency_overrides[get_container] = lambda: container
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _draft_payload(**overrides):
    payload = {
        "service": "Gold Package",
        "package_id": "gold",
        "date_time_iso": "2025-03-10T10:00:00Z",
        "recipient_name": "Jane Wanjiku",
        "recipient_phone": "254712345678",
    }
    payload.update(overrides)
    return payload


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_availability_falls_back_when_backend_fails(client, backend):
    backend.get("/bookings/available-hours/2025-03-11").respond(500)

    resp = client.get("/api/v1/availability/2025-03-11")

    assert resp.status_code == 200
    slots = resp.json()
    assert len(slots) == 16
    assert all(s["available"] for s in slots)


def test_incomplete_draft_is_rejected_before_payment(client, backend):
    backend.post("/bookings/draft/c1").respond(200, json={})
    complete = backend.post("/bookings/complete-draft/c1").respond(200, json={"checkoutRequestId": "ws_1"})

    assert client.put("/api/v1/drafts/c1", json=_draft_payload(recipient_phone="0712")).status_code == 200
    resp = client.post("/api/v1/flows/c1")

    assert resp.status_code == 422
    assert resp.json()["detail"]["fields"] == ["recipient_phone"]
    assert not complete.called


def test_missing_checkout_handle_is_a_bad_gateway(client, backend):
    backend.post("/bookings/draft/c1").respond(200, json={})
    backend.post("/bookings/complete-draft/c1").respond(200, json={"message": "queued"})

    client.put("/api/v1/drafts/c1", json=_draft_payload())
    resp = client.post("/api/v1/flows/c1")

    assert resp.status_code == 502


def test_started_flow_can_be_torn_down(client, backend):
    backend.post("/bookings/draft/c1").respond(200, json={})
    backend.post("/bookings/complete-draft/c1").respond(
        200, json={"message": "STK push sent", "checkoutRequestId": "ws_1", "bookingId": "b1"}
    )
    backend.get("/mpesa/status/ws_1").respond(200, json={"status": "pending"})

    client.put("/api/v1/drafts/c1", json=_draft_payload())
    started = client.post("/api/v1/flows/c1")

    assert started.status_code == 202
    assert started.json()["checkout_handle"] == "ws_1"
    assert started.json()["booking_id"] == "b1"
    assert client.delete("/api/v1/flows/ws_1").status_code == 204
    assert client.get("/api/v1/flows/ws_1").status_code == 404


def test_confirm_without_verified_payment_is_a_conflict(client, backend):
    backend.get("/bookings/b5").respond(
        200, json={"id": "b5", "customerId": "c5", "service": "Gold Package", "status": "provisional"}
    )
    confirm = backend.post("/bookings/b5/confirm").respond(200, json={})

    resp = client.post("/api/v1/bookings/b5/confirm")

    assert resp.status_code == 409
    assert not confirm.called


def test_invoice_for_unconfirmed_booking_is_a_conflict(client):
    assert client.post("/api/v1/bookings/b404/invoice").status_code == 409


def test_calendar_sync_with_nothing_pending(client):
    resp = client.post("/api/v1/calendar/sync")

    assert resp.status_code == 200
    assert resp.json() == {"synced": {}}


def test_unknown_flow_handle(client):
    assert client.get("/api/v1/flows/nope").status_code == 404
    assert client.delete("/api/v1/flows/nope").status_code == 404


def test_payment_event_for_unknown_handle_is_not_buffered(client):
    resp = client.post("/api/v1/payments/nope/events", json={"status": "success"})

    assert resp.status_code == 202
    assert resp.json() == {"accepted": False}
