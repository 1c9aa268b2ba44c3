"""
Settlement state machine

Pure transition functions over a Reservation. Each returns a Transition
describing the resulting record and whether anything changed:

- APPLIED: the record moved to a new state and must be persisted
- INERT:   the record is already in the target state (duplicate delivery)
- IGNORED: the input lost to a higher-priority state (stale or late event)

Ordering is decided by payment-state priority, not by arrival time:
PAID and REFUNDED are terminal with respect to FAILED, and REFUNDED is
terminal with respect to PAID.
"""

from dataclasses import dataclass
from enum import Enum

from wheeldeal.core.errors import AlreadySettledError
from wheeldeal.domain.events import (
    ChargeRefunded,
    PaymentFailed,
    PaymentSucceeded,
    SettlementEvent,
)
from wheeldeal.domain.reservation import (
    PaymentStatus,
    Reservation,
    ReservationStatus,
    SETTLED_PAYMENT_STATUSES,
)


class TransitionResult(str, Enum):
    APPLIED = "applied"
    INERT = "inert"
    IGNORED = "ignored"


@dataclass(frozen=True)
class Transition:
    reservation: Reservation
    result: TransitionResult
    reason: str = ""

    @property
    def changed(self) -> bool:
        return self.result == TransitionResult.APPLIED


def _applied(reservation: Reservation, **changes) -> Transition:
    return Transition(reservation.with_changes(**changes), TransitionResult.APPLIED)


def _confirmed_status(reservation: Reservation) -> ReservationStatus:
    # Settlement confirms a pending reservation; admin-set statuses are left alone.
    if reservation.status == ReservationStatus.PENDING:
        return ReservationStatus.CONFIRMED
    return reservation.status


def begin_payment(reservation: Reservation, payment_ref: str) -> Transition:
    """A new processor intent was issued (UNPAID | AWAITING_PAYMENT | FAILED -> AWAITING_PAYMENT)."""
    if reservation.payment_status in SETTLED_PAYMENT_STATUSES:
        raise AlreadySettledError(
            f"Reservation payment is already {reservation.payment_status.value}",
        )
    return _applied(
        reservation,
        payment_status=PaymentStatus.AWAITING_PAYMENT,
        external_payment_ref=payment_ref,
    )


def payment_succeeded(reservation: Reservation) -> Transition:
    current = reservation.payment_status
    if current == PaymentStatus.PAID:
        return Transition(reservation, TransitionResult.INERT, "already paid")
    if current == PaymentStatus.REFUNDED:
        return Transition(reservation, TransitionResult.IGNORED, "refunded is terminal")
    return _applied(
        reservation,
        payment_status=PaymentStatus.PAID,
        status=_confirmed_status(reservation),
    )


def payment_failed(reservation: Reservation) -> Transition:
    current = reservation.payment_status
    if current == PaymentStatus.FAILED:
        return Transition(reservation, TransitionResult.INERT, "already failed")
    if current in SETTLED_PAYMENT_STATUSES:
        return Transition(reservation, TransitionResult.IGNORED, f"{current.value} outranks failed")
    return _applied(reservation, payment_status=PaymentStatus.FAILED)


def charge_refunded(reservation: Reservation) -> Transition:
    current = reservation.payment_status
    if current == PaymentStatus.REFUNDED:
        return Transition(reservation, TransitionResult.INERT, "already refunded")
    if current != PaymentStatus.PAID:
        return Transition(reservation, TransitionResult.IGNORED, f"cannot refund from {current.value}")
    return _applied(reservation, payment_status=PaymentStatus.REFUNDED)


def apply_event(reservation: Reservation, event: SettlementEvent) -> Transition:
    if isinstance(event, PaymentSucceeded):
        return payment_succeeded(reservation)
    if isinstance(event, PaymentFailed):
        return payment_failed(reservation)
    if isinstance(event, ChargeRefunded):
        return charge_refunded(reservation)
    return Transition(reservation, TransitionResult.IGNORED, f"unhandled event type {event.event_type}")


def mark_manually_paid(reservation: Reservation) -> Transition:
    """Development shortcut; callers must refuse it in production."""
    if reservation.payment_status in SETTLED_PAYMENT_STATUSES:
        raise AlreadySettledError(
            f"Reservation payment is already {reservation.payment_status.value}",
        )
    return _applied(
        reservation,
        payment_status=PaymentStatus.MANUALLY_MARKED_PAID,
        status=ReservationStatus.CONFIRMED,
    )


def override_status(reservation: Reservation, status: ReservationStatus) -> Transition:
    """Privileged escape hatch.

    Sets ``status`` to anything, whatever the payment state. This bypasses
    the state machine: afterwards ``status == confirmed`` says nothing about
    ``payment_status``.
    """
    if reservation.status == status:
        return Transition(reservation, TransitionResult.INERT, "status unchanged")
    return _applied(reservation, status=status)


def capture_succeeded(reservation: Reservation) -> Transition:
    """A manual capture completed; settles exactly like a succeeded event."""
    return payment_succeeded(reservation)
