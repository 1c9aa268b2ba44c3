"""
Webhook reconciler

Stripe delivers events at least once and in no particular order. Each
delivery is verified against the raw body, decoded into a settlement event,
correlated to a reservation and applied through the settlement state
machine. Once the signature checks out the sender always gets an ack;
anything that goes wrong after that is logged, not returned.
"""

import hashlib
import hmac
import json
import time

from wheeldeal.core.errors import AuthenticityError, ReservationError
from wheeldeal.core.logging import get_logger
from wheeldeal.domain import settlement
from wheeldeal.domain.events import SettlementEvent, UnrecognizedEvent, decode_event
from wheeldeal.stores.base import ReservationStore

logger = get_logger(__name__)

ACK = {"received": True}


def _parse_signature_header(header: str) -> tuple[int | None, list[str]]:
    timestamp = None
    signatures = []
    for item in (header or "").split(","):
        key, _, value = item.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                return None, []
        elif key == "v1" and value:
            signatures.append(value)
    return timestamp, signatures


def compute_signature(payload: bytes, secret: str, timestamp: int) -> str:
    signed = f"{timestamp}.".encode("utf-8") + payload
    return hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()


def verify_signature(payload: bytes, header: str | None, secret: str, tolerance: int = 300, now: float | None = None) -> None:
    """Check a ``Stripe-Signature`` header (t=...,v1=...) against the raw body.

    Raises AuthenticityError when the header is missing or malformed, no v1
    signature matches, or the timestamp is outside ``tolerance`` seconds.
    """
    if not header:
        raise AuthenticityError("Missing signature header")
    timestamp, signatures = _parse_signature_header(header)
    if timestamp is None or not signatures:
        raise AuthenticityError("Malformed signature header")

    expected = compute_signature(payload, secret, timestamp)
    if not any(hmac.compare_digest(expected, s) for s in signatures):
        raise AuthenticityError("Signature mismatch")

    now = time.time() if now is None else now
    if tolerance and abs(now - timestamp) > tolerance:
        raise AuthenticityError("Signature timestamp outside tolerance")


def _apply(store: ReservationStore, event: SettlementEvent):
    # Correlation metadata first, then the stored processor reference.
    if event.reservation_id:
        t = store.transition(event.reservation_id, lambda r: settlement.apply_event(r, event))
        if t is not None:
            return t
    if event.payment_ref:
        return store.transition_by_payment_ref(event.payment_ref, lambda r: settlement.apply_event(r, event))
    return None


def handle_settlement_event(
    store: ReservationStore,
    raw_body: bytes,
    signature_header: str | None,
    secret: str,
    tolerance: int = 300,
    now: float | None = None,
) -> dict:
    if secret:
        verify_signature(raw_body, signature_header, secret, tolerance=tolerance, now=now)
    else:
        logger.warning(
            "webhook_unverified",
            detail="STRIPE_WEBHOOK_SECRET is not set; accepting event without signature verification",
        )

    try:
        payload = json.loads(raw_body or b"{}")
    except ValueError:
        logger.error("webhook_body_unparseable", size=len(raw_body or b""))
        return ACK
    if not isinstance(payload, dict):
        logger.error("webhook_body_not_object")
        return ACK

    event = decode_event(payload)
    log = logger.bind(event_id=event.event_id, event_type=event.event_type, external_ref=event.payment_ref)
    if isinstance(event, UnrecognizedEvent):
        log.info("webhook_event_unhandled")
        return ACK

    try:
        t = _apply(store, event)
    except ReservationError as e:
        log.warning("webhook_event_rejected", kind=e.kind, detail=e.message)
        return ACK
    except Exception:
        log.exception("webhook_event_failed")
        return ACK

    if t is None:
        log.warning("webhook_reservation_not_found", reservation_id=event.reservation_id)
        return ACK
    log.info(
        "webhook_event_applied",
        reservation_id=t.reservation.id,
        result=t.result.value,
        reason=t.reason,
        payment_status=t.reservation.payment_status.value,
    )
    return ACK
