import secrets
from dataclasses import dataclass, field
from typing import Protocol

import requests

from wheeldeal.core.errors import UpstreamError
from wheeldeal.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class StripeConfig:
    api_base: str           # https://api.stripe.com
    secret_key: str         # sk_test_... / sk_live_...
    timeout: float = 10.0
    sandbox: bool = False   # no network; synthetic intents for local runs


@dataclass(frozen=True)
class PaymentIntent:
    id: str
    client_secret: str
    status: str
    amount: int
    currency: str
    metadata: dict = field(default_factory=dict)


class PaymentGateway(Protocol):
    def create_payment_intent(
        self, *, amount: int, currency: str, metadata: dict, capture_method: str = "automatic",
    ) -> PaymentIntent: ...

    def retrieve_payment_intent(self, intent_id: str) -> PaymentIntent: ...

    def capture_payment_intent(self, intent_id: str, *, amount_to_capture: int | None = None) -> PaymentIntent: ...


def _flatten(payload: dict, prefix: str = "") -> dict:
    # Stripe takes nested params as form keys: metadata[reservationId]=...
    out = {}
    for key, value in payload.items():
        name = f"{prefix}[{key}]" if prefix else key
        if isinstance(value, dict):
            out.update(_flatten(value, name))
        elif value is not None:
            out[name] = str(value)
    return out


def _intent_from(data: dict) -> PaymentIntent:
    return PaymentIntent(
        id=str(data.get("id") or ""),
        client_secret=str(data.get("client_secret") or ""),
        status=str(data.get("status") or ""),
        amount=int(data.get("amount") or 0),
        currency=str(data.get("currency") or ""),
        metadata=dict(data.get("metadata") or {}),
    )


class StripeClient:
    def __init__(self, cfg: StripeConfig):
        self.cfg = cfg

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.cfg.secret_key}",
            "Accept": "application/json",
        }

    def request(self, method: str, path: str, params: dict | None = None) -> dict:
        method = method.upper()
        url = f"{self.cfg.api_base.rstrip('/')}{path}"
        # Client-facing messages stay fixed; transport and processor details go to the log only.
        payload_key = "params" if method == "GET" else "data"
        try:
            r = requests.request(
                method=method,
                url=url,
                headers=self._headers(),
                timeout=self.cfg.timeout,
                **{payload_key: _flatten(params or {})},
            )
        except requests.Timeout as e:
            logger.warning("stripe_timeout", method=method, path=path, error=str(e))
            raise UpstreamError("Payment processor timed out", kind="timeout", retryable=True) from e
        except requests.ConnectionError as e:
            logger.warning("stripe_unreachable", method=method, path=path, error=str(e))
            raise UpstreamError("Payment processor is unreachable", kind="unreachable", retryable=True) from e

        try:
            data = r.json() if r.text else {}
        except ValueError:
            data = {"raw": r.text}
        if r.status_code >= 500:
            logger.warning("stripe_server_error", method=method, path=path, status_code=r.status_code, body=data)
            raise UpstreamError("Payment processor is unavailable", retryable=True)
        if r.status_code >= 400:
            err = data.get("error") or {}
            logger.warning(
                "stripe_request_rejected",
                method=method,
                path=path,
                status_code=r.status_code,
                code=err.get("code"),
                message=err.get("message"),
            )
            raise UpstreamError(
                "Payment processor rejected the request",
                kind=str(err.get("code") or "upstream_rejected"),
                retryable=False,
            )
        return data

    def create_payment_intent(
        self, *, amount: int, currency: str, metadata: dict, capture_method: str = "automatic",
    ) -> PaymentIntent:
        if self.cfg.sandbox:
            intent_id = f"pi_sandbox_{secrets.token_hex(8)}"
            return PaymentIntent(
                id=intent_id,
                client_secret=f"{intent_id}_secret_{secrets.token_hex(8)}",
                status="requires_payment_method",
                amount=amount,
                currency=currency,
                metadata=dict(metadata),
            )
        params = {
            "amount": amount,
            "currency": currency,
            "capture_method": capture_method,
            "metadata": metadata,
        }
        return _intent_from(self.request("POST", "/v1/payment_intents", params))

    def retrieve_payment_intent(self, intent_id: str) -> PaymentIntent:
        if self.cfg.sandbox:
            # Sandbox intents are not remembered; correlation falls back to the stored reference.
            return PaymentIntent(id=intent_id, client_secret="", status="requires_capture", amount=0, currency="")
        return _intent_from(self.request("GET", f"/v1/payment_intents/{intent_id}"))

    def capture_payment_intent(self, intent_id: str, *, amount_to_capture: int | None = None) -> PaymentIntent:
        if self.cfg.sandbox:
            return PaymentIntent(
                id=intent_id,
                client_secret="",
                status="succeeded",
                amount=amount_to_capture or 0,
                currency="",
            )
        params = {"amount_to_capture": amount_to_capture}
        return _intent_from(self.request("POST", f"/v1/payment_intents/{intent_id}/capture", params))
