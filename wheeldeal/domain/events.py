"""
Settlement events

Inbound payment-processor notifications, decoded once at the webhook
boundary into one of a closed set of variants. Business logic only ever
sees these types, never the raw payload.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class SettlementEvent:
    event_id: str
    event_type: str
    payment_ref: str | None = None      # processor intent id (pi_...)
    reservation_id: str | None = None   # correlation metadata, if present


@dataclass(frozen=True)
class PaymentSucceeded(SettlementEvent):
    pass


@dataclass(frozen=True)
class PaymentFailed(SettlementEvent):
    failure_message: str = ""


@dataclass(frozen=True)
class ChargeRefunded(SettlementEvent):
    pass


@dataclass(frozen=True)
class UnrecognizedEvent(SettlementEvent):
    pass


EVENT_TYPES = {
    "payment_intent.succeeded": PaymentSucceeded,
    "payment_intent.payment_failed": PaymentFailed,
    "charge.refunded": ChargeRefunded,
}


def decode_event(payload: dict) -> SettlementEvent:
    """Map a processor event payload onto its variant."""
    event_type = str(payload.get("type") or "")
    event_id = str(payload.get("id") or "")
    obj = (payload.get("data") or {}).get("object") or {}
    metadata = obj.get("metadata") or {}
    reservation_id = metadata.get("reservationId") or None

    cls = EVENT_TYPES.get(event_type, UnrecognizedEvent)
    if cls is ChargeRefunded:
        # Charges point back at their intent; the charge id itself is never stored.
        payment_ref = obj.get("payment_intent") or None
    else:
        payment_ref = obj.get("id") or None

    if cls is PaymentFailed:
        error = obj.get("last_payment_error") or {}
        return PaymentFailed(
            event_id=event_id,
            event_type=event_type,
            payment_ref=payment_ref,
            reservation_id=reservation_id,
            failure_message=str(error.get("message") or ""),
        )
    return cls(event_id=event_id, event_type=event_type, payment_ref=payment_ref, reservation_id=reservation_id)
