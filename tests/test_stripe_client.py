import pytest
import requests

from wheeldeal.core.errors import UpstreamError
from wheeldeal.services import stripe_client
from wheeldeal.services.stripe_client import StripeClient, StripeConfig


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload
        self.text = "x" if payload is not None else ""

    def json(self):
        return self._payload


@pytest.fixture
def client():
    return StripeClient(StripeConfig(api_base="https://api.stripe.test/", secret_key="sk_test_123", timeout=2.5))


def _patch(monkeypatch, response=None, exc=None):
    calls = []

    def fake_request(**kwargs):
        calls.append(kwargs)
        if exc is not None:
            raise exc
        return response

    monkeypatch.setattr(stripe_client.requests, "request", fake_request)
    return calls


def test_create_payment_intent_form_encodes(monkeypatch, client):
    calls = _patch(monkeypatch, FakeResponse(200, {
        "id": "pi_123", "client_secret": "pi_123_secret_abc", "status": "requires_payment_method",
        "amount": 300000, "currency": "inr",
    }))
    intent = client.create_payment_intent(amount=300000, currency="inr", metadata={"reservationId": "res-1"})

    assert intent.id == "pi_123"
    assert intent.client_secret == "pi_123_secret_abc"
    call = calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "https://api.stripe.test/v1/payment_intents"
    assert call["timeout"] == 2.5
    assert call["headers"]["Authorization"] == "Bearer sk_test_123"
    assert call["data"] == {
        "amount": "300000",
        "currency": "inr",
        "capture_method": "automatic",
        "metadata[reservationId]": "res-1",
    }


def test_capture_omits_empty_amount(monkeypatch, client):
    calls = _patch(monkeypatch, FakeResponse(200, {"id": "pi_123", "status": "succeeded", "amount": 100}))
    intent = client.capture_payment_intent("pi_123")
    assert intent.status == "succeeded"
    assert calls[0]["url"] == "https://api.stripe.test/v1/payment_intents/pi_123/capture"
    assert calls[0]["data"] == {}


@pytest.mark.parametrize("exc,kind", [
    (requests.Timeout("slow"), "timeout"),
    (requests.ConnectionError("down"), "unreachable"),
])
def test_transport_errors_are_retryable(monkeypatch, client, exc, kind):
    _patch(monkeypatch, exc=exc)
    with pytest.raises(UpstreamError) as err:
        client.create_payment_intent(amount=100, currency="inr", metadata={})
    assert err.value.retryable is True
    assert err.value.kind == kind


def test_server_errors_are_retryable(monkeypatch, client):
    _patch(monkeypatch, FakeResponse(503, {"error": {"message": "overloaded"}}))
    with pytest.raises(UpstreamError) as err:
        client.create_payment_intent(amount=100, currency="inr", metadata={})
    assert err.value.retryable is True


def test_client_errors_are_not_retryable(monkeypatch, client):
    _patch(monkeypatch, FakeResponse(400, {"error": {"code": "amount_too_small", "message": "Amount must be at least 50"}}))
    with pytest.raises(UpstreamError) as err:
        client.create_payment_intent(amount=1, currency="inr", metadata={})
    assert err.value.retryable is False
    assert err.value.kind == "amount_too_small"
    assert err.value.status_code == 502


def test_sandbox_never_calls_network(monkeypatch):
    calls = _patch(monkeypatch, exc=AssertionError("network used"))
    sandbox = StripeClient(StripeConfig(api_base="https://api.stripe.test", secret_key="", sandbox=True))
    intent = sandbox.create_payment_intent(amount=500, currency="inr", metadata={"reservationId": "r"})
    assert intent.id.startswith("pi_sandbox_")
    assert intent.client_secret.startswith(intent.id)
    assert sandbox.capture_payment_intent(intent.id).status == "succeeded"
    assert calls == []


def test_retrieve_payment_intent_reads_metadata(monkeypatch, client):
    calls = _patch(monkeypatch, FakeResponse(200, {
        "id": "pi_123", "status": "requires_capture", "amount": 300000, "currency": "inr",
        "metadata": {"reservationId": "res-1"},
    }))
    intent = client.retrieve_payment_intent("pi_123")
    assert intent.metadata == {"reservationId": "res-1"}
    assert calls[0]["method"] == "GET"
    assert calls[0]["url"] == "https://api.stripe.test/v1/payment_intents/pi_123"
    assert calls[0]["params"] == {}


def test_timeout_detail_hides_transport_text(monkeypatch, client):
    _patch(monkeypatch, exc=requests.ReadTimeout(
        "HTTPSConnectionPool(host='api.stripe.test', port=443): Read timed out. (read timeout=2.5)"
    ))
    with pytest.raises(UpstreamError) as err:
        client.create_payment_intent(amount=100, currency="inr", metadata={})
    body = err.value.to_dict()
    assert body == {"kind": "timeout", "detail": "Payment processor timed out", "retryable": True}
    assert "api.stripe.test" not in body["detail"]


@pytest.mark.parametrize("status,payload", [
    (500, {"error": {"message": "internal: shard db-7 down"}}),
    (402, {"error": {"code": "card_declined", "message": "Your card was declined. req_abc123"}}),
])
def test_processor_detail_hides_response_body(monkeypatch, client, status, payload):
    _patch(monkeypatch, FakeResponse(status, payload))
    with pytest.raises(UpstreamError) as err:
        client.create_payment_intent(amount=100, currency="inr", metadata={})
    detail = err.value.to_dict()["detail"]
    assert detail in ("Payment processor is unavailable", "Payment processor rejected the request")
    assert "db-7" not in detail
    assert "req_abc123" not in detail


def test_unconfigured_gateway_raises_upstream_error(monkeypatch):
    from wheeldeal.api import deps
    from wheeldeal.core.config import settings

    monkeypatch.setattr(settings, "STRIPE_SANDBOX", False)
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", "")
    with pytest.raises(UpstreamError) as err:
        deps.get_payment_gateway()
    assert err.value.kind == "gateway_unconfigured"
    assert err.value.retryable is False
