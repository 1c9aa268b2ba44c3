import json
import time
from datetime import date, timedelta

from wheeldeal.core.config import settings
from wheeldeal.services import webhook_service


def _future(days):
    return (date.today() + timedelta(days=days)).isoformat()


def _book(client, headers, car_id, start_days=10, end_days=12):
    return client.post(
        "/api/v1/reservations",
        json={"carId": car_id, "startDate": _future(start_days), "endDate": _future(end_days), "pickupLocation": "Mumbai"},
        headers=headers,
    )


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_requires_auth(client, cars):
    r = client.post("/api/v1/reservations", json={"carId": cars["swift"], "startDate": _future(1), "endDate": _future(2)})
    assert r.status_code == 401


def test_create_and_fetch(client, cars, user_headers, other_headers):
    r = _book(client, user_headers, cars["swift"])
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["totalPrice"] == "3000.00"
    assert body["status"] == "pending"
    assert body["paymentStatus"] == "awaiting_payment"
    assert body["resourceName"] == "Swift VXi"
    assert body["pickupLocation"] == "Mumbai"

    assert client.get(f"/api/v1/reservations/{body['id']}", headers=user_headers).status_code == 200
    forbidden = client.get(f"/api/v1/reservations/{body['id']}", headers=other_headers)
    assert forbidden.status_code == 403
    assert forbidden.json()["kind"] == "forbidden"

    mine = client.get("/api/v1/reservations", headers=user_headers).json()
    assert [m["id"] for m in mine] == [body["id"]]
    assert client.get("/api/v1/reservations", headers=other_headers).json() == []


def test_overlap_conflict_and_availability(client, cars, user_headers, other_headers):
    assert _book(client, user_headers, cars["swift"], 10, 12).status_code == 201
    clash = _book(client, other_headers, cars["swift"], 12, 14)
    assert clash.status_code == 409
    assert clash.json()["kind"] == "conflict"
    assert _book(client, other_headers, cars["swift"], 13, 14).status_code == 201

    avail = client.get(
        "/api/v1/reservations/availability",
        params={"resourceId": cars["swift"], "start": _future(11), "end": _future(11)},
    ).json()
    assert avail["available"] is False
    assert avail["conflicts"] == [{"start": _future(10), "end": _future(12)}]

    free = client.get(
        "/api/v1/reservations/availability",
        params={"resourceId": cars["swift"], "start": _future(20), "end": _future(21)},
    ).json()
    assert free["available"] is True


def test_validation_errors(client, cars, user_headers):
    past = client.post(
        "/api/v1/reservations",
        json={"carId": cars["swift"], "startDate": _future(-2), "endDate": _future(1)},
        headers=user_headers,
    )
    assert past.status_code == 400
    assert past.json()["kind"] == "start_in_past"

    inverted = _book(client, user_headers, cars["swift"], 5, 3)
    assert inverted.status_code == 400
    assert inverted.json()["kind"] == "range_invalid"

    parked = _book(client, user_headers, cars["parked"])
    assert parked.status_code == 400
    assert parked.json()["kind"] == "resource_unavailable"

    missing = _book(client, user_headers, "no-such-car")
    assert missing.status_code == 404


def test_cancel(client, cars, user_headers, other_headers):
    rid = _book(client, user_headers, cars["creta"]).json()["id"]
    assert client.delete(f"/api/v1/reservations/{rid}", headers=other_headers).status_code == 403
    assert client.delete(f"/api/v1/reservations/{rid}", headers=user_headers).json() == {"ok": True, "id": rid}
    assert client.get(f"/api/v1/reservations/{rid}", headers=user_headers).status_code == 404
    assert _book(client, other_headers, cars["creta"]).status_code == 201


def test_admin_routes(client, cars, user_headers, admin_headers):
    rid = _book(client, user_headers, cars["swift"]).json()["id"]
    assert client.get("/api/v1/admin/reservations", headers=user_headers).status_code == 403
    assert len(client.get("/api/v1/admin/reservations", headers=admin_headers).json()) == 1

    r = client.put(f"/api/v1/admin/reservations/{rid}/status", json={"status": "completed"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "completed"
    assert r.json()["paymentStatus"] == "awaiting_payment"

    bad = client.put(f"/api/v1/admin/reservations/{rid}/status", json={"status": "lost"}, headers=admin_headers)
    assert bad.status_code == 400


def test_payment_flow_and_webhook(client, cars, user_headers, gateway, monkeypatch):
    rid = _book(client, user_headers, cars["swift"]).json()["id"]
    intent = client.post("/api/v1/payments/intents", json={"bookingId": rid}, headers=user_headers)
    assert intent.status_code == 200, intent.text
    pi = intent.json()
    assert pi["amount"] == 300000
    assert pi["currency"] == "inr"
    assert gateway.created[0]["metadata"] == {"reservationId": rid}

    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", "whsec_api")
    body = json.dumps({
        "id": "evt_1",
        "type": "payment_intent.succeeded",
        "data": {"object": {"id": pi["paymentIntentId"], "metadata": {"reservationId": rid}}},
    }).encode()

    bad = client.post("/api/v1/webhooks/stripe", content=body, headers={"Stripe-Signature": "t=1,v1=deadbeef"})
    assert bad.status_code == 400
    assert bad.json()["kind"] == "invalid_signature"

    ts = int(time.time())
    header = f"t={ts},v1={webhook_service.compute_signature(body, 'whsec_api', ts)}"
    for _ in range(2):
        ok = client.post("/api/v1/webhooks/stripe", content=body, headers={"Stripe-Signature": header})
        assert ok.status_code == 200
        assert ok.json() == {"received": True}

    settled = client.get(f"/api/v1/reservations/{rid}", headers=user_headers).json()
    assert settled["paymentStatus"] == "paid"
    assert settled["status"] == "confirmed"

    again = client.post("/api/v1/payments/intents", json={"bookingId": rid}, headers=user_headers)
    assert again.status_code == 409
    assert again.json()["kind"] == "already_settled"

    paid_cancel = client.delete(f"/api/v1/reservations/{rid}", headers=user_headers)
    assert paid_cancel.status_code == 409


def test_capture_route(client, cars, user_headers):
    rid = _book(client, user_headers, cars["creta"]).json()["id"]
    pi = client.post(
        "/api/v1/payments/intents", json={"bookingId": rid, "captureMethod": "manual"}, headers=user_headers,
    ).json()
    r = client.post(
        "/api/v1/payments/capture",
        json={"paymentIntentId": pi["paymentIntentId"], "amountToCapture": pi["amount"]},
        headers=user_headers,
    )
    assert r.status_code == 200, r.text
    assert r.json()["bookingId"] == rid
    assert r.json()["paymentStatus"] == "paid"


def test_upstream_error_is_502(client, cars, user_headers, gateway, upstream_timeout):
    rid = _book(client, user_headers, cars["swift"]).json()["id"]
    gateway.fail_with = upstream_timeout
    r = client.post("/api/v1/payments/intents", json={"bookingId": rid}, headers=user_headers)
    assert r.status_code == 502
    assert r.json() == {"kind": "timeout", "detail": "Payment processor timed out", "retryable": True}


def test_mock_pay(client, cars, user_headers, monkeypatch):
    rid = _book(client, user_headers, cars["swift"]).json()["id"]
    monkeypatch.setattr(settings, "ENV", "production")
    blocked = client.post(f"/api/v1/reservations/{rid}/mock-pay", headers=user_headers)
    assert blocked.status_code == 403
    assert blocked.json()["kind"] == "disabled_in_production"

    monkeypatch.setattr(settings, "ENV", "local")
    r = client.post(f"/api/v1/reservations/{rid}/mock-pay", headers=user_headers)
    assert r.status_code == 200
    assert r.json()["paymentStatus"] == "manually_marked_paid"
    assert r.json()["status"] == "confirmed"


def test_unconfigured_gateway_is_reported(client, cars, user_headers, monkeypatch):
    from wheeldeal.api import deps
    from wheeldeal.main import app

    rid = _book(client, user_headers, cars["swift"]).json()["id"]
    app.dependency_overrides.pop(deps.get_payment_gateway)
    monkeypatch.setattr(settings, "STRIPE_SANDBOX", False)
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", "")
    r = client.post("/api/v1/payments/intents", json={"bookingId": rid}, headers=user_headers)
    assert r.status_code == 502
    assert r.json() == {"kind": "gateway_unconfigured", "detail": "Payment processor is not configured", "retryable": False}
