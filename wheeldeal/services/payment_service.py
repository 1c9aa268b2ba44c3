from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from wheeldeal.core.config import settings
from wheeldeal.core.errors import NotFoundError, ReservationError, ValidationError
from wheeldeal.core.logging import get_logger
from wheeldeal.domain import settlement
from wheeldeal.domain.reservation import Actor, Reservation
from wheeldeal.services.reservation_service import ensure_can_act
from wheeldeal.services.stripe_client import PaymentGateway
from wheeldeal.stores.base import ReservationStore

logger = get_logger(__name__)

# Currencies Stripe charges in whole units (no minor unit).
ZERO_DECIMAL_CURRENCIES = {"bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga", "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf"}


@dataclass(frozen=True)
class IntentResult:
    reservation_id: str
    external_ref: str
    client_secret: str
    amount: int
    currency: str


@dataclass(frozen=True)
class CaptureReceipt:
    reservation_id: str
    external_ref: str
    status: str
    amount_captured: int
    payment_status: str


def to_minor_units(amount: Decimal, currency: str) -> int:
    """Amount in the processor's smallest currency unit (paise for INR)."""
    exponent = Decimal("1") if currency.lower() in ZERO_DECIMAL_CURRENCIES else Decimal("100")
    return int((Decimal(amount) * exponent).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def create_intent(
    store: ReservationStore,
    gateway: PaymentGateway,
    reservation_id: str,
    actor: Actor,
    currency: str | None = None,
    capture_method: str | None = None,
) -> IntentResult:
    reservation = store.get(reservation_id)
    if reservation is None:
        raise NotFoundError("Reservation not found")
    ensure_can_act(reservation, actor)
    # Fail before reaching the processor when the reservation is already settled.
    settlement.begin_payment(reservation, reservation.external_payment_ref or "")

    currency = (currency or reservation.currency or settings.PAYMENT_CURRENCY).lower()
    capture_method = capture_method or settings.PAYMENT_CAPTURE_METHOD
    if capture_method not in ("automatic", "manual"):
        raise ValidationError("capture_method must be automatic or manual", kind="invalid_capture_method")
    amount = to_minor_units(reservation.total_price, currency)
    if amount <= 0:
        raise ValidationError("Reservation total must be positive", kind="invalid_amount")

    intent = gateway.create_payment_intent(
        amount=amount,
        currency=currency,
        metadata={"reservationId": reservation.id},
        capture_method=capture_method,
    )

    try:
        t = store.transition(reservation.id, lambda r: settlement.begin_payment(r, intent.id))
    except ReservationError:
        # Settled between the read and the transition; the new intent is left unused.
        logger.warning("payment_intent_orphaned", reservation_id=reservation.id, external_ref=intent.id)
        raise
    if t is None:
        logger.warning("payment_intent_orphaned", reservation_id=reservation.id, external_ref=intent.id)
        raise NotFoundError("Reservation not found")

    logger.info(
        "payment_intent_created",
        reservation_id=reservation.id,
        external_ref=intent.id,
        amount=amount,
        currency=currency,
        capture_method=capture_method,
    )
    return IntentResult(
        reservation_id=reservation.id,
        external_ref=intent.id,
        client_secret=intent.client_secret,
        amount=amount,
        currency=currency,
    )


def _resolve_capture_target(store: ReservationStore, gateway: PaymentGateway, external_ref: str) -> Reservation:
    # Correlation metadata first: a superseded intent still names its reservation.
    intent = gateway.retrieve_payment_intent(external_ref)
    reservation_id = (intent.metadata or {}).get("reservationId")
    if reservation_id:
        reservation = store.get(reservation_id)
        if reservation is not None:
            return reservation
    reservation = store.get_by_payment_ref(external_ref)
    if reservation is None:
        raise NotFoundError("No reservation for this payment intent")
    return reservation


def capture(
    store: ReservationStore,
    gateway: PaymentGateway,
    external_ref: str,
    actor: Actor,
    amount: int | None = None,
) -> CaptureReceipt:
    """Complete a manual-capture intent and settle the matching reservation.

    The reservation is found through the intent's ``reservationId`` metadata,
    falling back to the stored ``external_payment_ref``. An intent that a
    later ``create_intent`` superseded can therefore still be captured.
    """
    if not external_ref:
        raise ValidationError("paymentIntentId is required", kind="missing_field")
    if amount is not None and amount <= 0:
        raise ValidationError("amount_to_capture must be positive", kind="invalid_amount")
    reservation = _resolve_capture_target(store, gateway, external_ref)
    ensure_can_act(reservation, actor)

    intent = gateway.capture_payment_intent(external_ref, amount_to_capture=amount)

    t = store.transition(reservation.id, settlement.capture_succeeded)
    if t is None:
        logger.warning("payment_captured_without_reservation", reservation_id=reservation.id, external_ref=external_ref)
        raise NotFoundError("No reservation for this payment intent")
    logger.info(
        "payment_captured",
        reservation_id=t.reservation.id,
        external_ref=external_ref,
        superseded=t.reservation.external_payment_ref != external_ref,
        result=t.result.value,
        amount=intent.amount,
    )
    return CaptureReceipt(
        reservation_id=t.reservation.id,
        external_ref=external_ref,
        status=intent.status,
        amount_captured=intent.amount,
        payment_status=t.reservation.payment_status.value,
    )
