from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from lessonbook.api.deps import ALGORITHM
from lessonbook.main import create_app


@pytest.fixture()
def api_client(container):
    app = create_app(container, run_background=False)
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def auth(container):
    def headers(actor):
        token = jwt.encode(
            {"sub": actor.id, "name": actor.name, "email": actor.email, "role": actor.role.value},
            container.settings.jwt_secret,
            algorithm=ALGORITHM,
        )
        return {"Authorization": f"Bearer {token}"}

    return headers


def _create_slot(api_client, auth, trainer, clock, starts_in=timedelta(days=3)):
    response = api_client.post(
        "/api/v1/slots",
        json={
            "trainer_id": trainer.id,
            "start_time": (clock.now() + starts_in).isoformat(),
            "duration_minutes": 60,
        },
        headers=auth(trainer),
    )
    assert response.status_code == 200, response.text
    return response.json()


def test_missing_or_invalid_token_is_unauthorized(api_client):
    assert api_client.post("/api/v1/bookings/x/cancel").status_code == 401
    response = api_client.post(
        "/api/v1/bookings/x/cancel", headers={"Authorization": "Bearer not-a-token"}
    )
    assert response.status_code == 401


def test_slot_booking_flow(api_client, auth, trainer, student, other_student, clock):
    slot = _create_slot(api_client, auth, trainer, clock)
    assert slot["price"] == "60.00"

    listed = api_client.get("/api/v1/slots", params={"trainer_id": trainer.id})
    assert [s["id"] for s in listed.json()] == [slot["id"]]

    booked = api_client.post(
        f"/api/v1/slots/{slot['id']}/book", json={"notes": "salsa"}, headers=auth(student)
    )
    assert booked.status_code == 200
    booking_id = booked.json()["entity_id"]

    conflict = api_client.post(
        f"/api/v1/slots/{slot['id']}/book", json={}, headers=auth(other_student)
    )
    assert conflict.status_code == 409
    assert conflict.json()["detail"] == "This slot is already booked"

    detail = api_client.get(f"/api/v1/bookings/{booking_id}", headers=auth(student))
    assert detail.json()["status"] == "pending"
    assert api_client.get(f"/api/v1/bookings/{booking_id}", headers=auth(other_student)).status_code == 403


def test_confirm_pay_and_complete(api_client, auth, trainer, student, clock):
    slot = _create_slot(api_client, auth, trainer, clock)
    booking_id = api_client.post(
        f"/api/v1/slots/{slot['id']}/book", json={}, headers=auth(student)
    ).json()["entity_id"]

    forbidden = api_client.post(
        f"/api/v1/bookings/{booking_id}/confirm",
        json={"confirmed_date": (clock.now() + timedelta(days=2)).isoformat()},
        headers=auth(student),
    )
    assert forbidden.status_code == 403

    confirmed = api_client.post(
        f"/api/v1/bookings/{booking_id}/confirm",
        json={"confirmed_date": (clock.now() + timedelta(days=2)).isoformat()},
        headers=auth(trainer),
    )
    assert confirmed.status_code == 200

    payment = api_client.get(f"/api/v1/bookings/{booking_id}/payment", headers=auth(student)).json()
    assert payment["payment_link"] == "https://pay.example/ORDER-1"
    assert payment["time_remaining"] == "24 h 0 min"

    paid = api_client.post(
        "/api/v1/payments/return", json={"url": "lessonbook://payment/success?token=ORDER-1"}
    )
    assert paid.status_code == 200
    bad = api_client.post("/api/v1/payments/return", json={"url": "https://elsewhere/?token=1"})
    assert bad.status_code == 400

    completed = api_client.post(f"/api/v1/bookings/{booking_id}/complete", headers=auth(trainer))
    assert completed.status_code == 200
    mine = api_client.get("/api/v1/bookings", headers=auth(student)).json()
    assert [b["status"] for b in mine] == ["completed"]

    revenue = api_client.get(f"/api/v1/trainers/{trainer.id}/revenue", headers=auth(trainer)).json()
    assert revenue == {"trainer_id": trainer.id, "total": "60.00", "paid_bookings": 1}


def test_cancel_inside_window_conflicts(api_client, auth, trainer, student, clock):
    slot = _create_slot(api_client, auth, trainer, clock, starts_in=timedelta(days=2))
    booking_id = api_client.post(
        f"/api/v1/slots/{slot['id']}/book", json={}, headers=auth(student)
    ).json()["entity_id"]
    clock.advance(timedelta(hours=30))

    policy = api_client.get(f"/api/v1/bookings/{booking_id}/cancellation", headers=auth(student))
    assert policy.json()["allowed"] is False

    response = api_client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=auth(student))
    assert response.status_code == 409
    assert "24 hours" in response.json()["detail"]


def test_request_validation_maps_to_422(api_client, auth, trainer, student, clock):
    response = api_client.post(
        "/api/v1/bookings/requests",
        json={
            "trainer_id": trainer.id,
            "requested_date": (clock.now() + timedelta(days=2)).isoformat(),
            "duration_minutes": 500,
        },
        headers=auth(student),
    )
    assert response.status_code == 422


def test_message_thread_endpoints(api_client, auth, trainer, student, other_student, clock):
    slot = _create_slot(api_client, auth, trainer, clock)
    booking_id = api_client.post(
        f"/api/v1/slots/{slot['id']}/book", json={}, headers=auth(student)
    ).json()["entity_id"]

    posted = api_client.post(
        f"/api/v1/bookings/{booking_id}/messages", json={"content": "Hi!"}, headers=auth(student)
    )
    assert posted.status_code == 200
    thread = api_client.get(f"/api/v1/bookings/{booking_id}/messages", headers=auth(trainer)).json()
    assert [m["content"] for m in thread] == ["Hi!"]

    hidden = api_client.get(f"/api/v1/bookings/{booking_id}/messages", headers=auth(other_student))
    assert hidden.status_code == 403
    empty = api_client.post(
        f"/api/v1/bookings/{booking_id}/messages", json={"content": ""}, headers=auth(student)
    )
    assert empty.status_code == 422


def test_trainer_settings_endpoints(api_client, auth, trainer, admin):
    updated = api_client.put(
        f"/api/v1/trainers/{trainer.id}/settings",
        json={"price_per_hour": "80", "min_duration": 45, "max_duration": 90},
        headers=auth(trainer),
    )
    assert updated.status_code == 200
    assert updated.json()["min_duration"] == 45

    refused = api_client.put(
        f"/api/v1/trainers/{trainer.id}/price", json={"price_per_hour": "99"}, headers=auth(trainer)
    )
    assert refused.status_code == 403
    priced = api_client.put(
        f"/api/v1/trainers/{trainer.id}/price", json={"price_per_hour": "99"}, headers=auth(admin)
    )
    assert priced.json()["price_per_hour"] == "99"
    assert [t["trainer_id"] for t in api_client.get("/api/v1/trainers").json()] == [trainer.id]
