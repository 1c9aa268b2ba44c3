"""
Reservation domain entities

- Reservation: one exclusive, inclusive date range on one resource (a car)
- ReservationStatus: lifecycle of the reservation itself
- PaymentStatus: settlement state of its payment obligation
- Actor: the authenticated party acting on reservations
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum

from wheeldeal.domain import dates


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    """
    Payment settlement states

    UNPAID -> AWAITING_PAYMENT -> {PAID, FAILED}
    PAID -> REFUNDED
    UNPAID | AWAITING_PAYMENT | FAILED -> MANUALLY_MARKED_PAID (non-production only)
    """
    UNPAID = "unpaid"
    AWAITING_PAYMENT = "awaiting_payment"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    MANUALLY_MARKED_PAID = "manually_marked_paid"


SETTLED_PAYMENT_STATUSES = frozenset({
    PaymentStatus.PAID,
    PaymentStatus.MANUALLY_MARKED_PAID,
    PaymentStatus.REFUNDED,
})


@dataclass(frozen=True)
class Actor:
    id: str
    is_privileged: bool = False
    email: str = ""
    name: str = ""


@dataclass(frozen=True)
class Reservation:
    """
    A reservation of one resource for the inclusive range [start, end].

    unit_price is the catalog price snapshot taken at creation and
    total_price is derived from it once; later catalog edits never
    change either.
    """
    id: str
    resource_id: str
    requester_id: str
    requester_contact: str
    start: date
    end: date
    unit_price: Decimal
    total_price: Decimal
    currency: str = "inr"
    requester_name: str = ""
    resource_name: str = ""
    pickup_location: str = ""
    status: ReservationStatus = ReservationStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.AWAITING_PAYMENT
    external_payment_ref: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_active(self) -> bool:
        """Active reservations block their dates."""
        return self.status != ReservationStatus.CANCELLED

    @property
    def days(self) -> int:
        return dates.days_inclusive(self.start, self.end)

    def overlaps(self, start, end) -> bool:
        return dates.overlaps(self.start, self.end, start, end)

    def is_owned_by(self, actor: Actor) -> bool:
        return self.requester_id == actor.id

    def with_changes(self, **changes) -> "Reservation":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "resourceId": self.resource_id,
            "resourceName": self.resource_name,
            "requesterId": self.requester_id,
            "requesterContact": self.requester_contact,
            "requesterName": self.requester_name,
            "pickupLocation": self.pickup_location,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "unitPrice": str(self.unit_price),
            "totalPrice": str(self.total_price),
            "currency": self.currency,
            "status": self.status.value,
            "paymentStatus": self.payment_status.value,
            "externalPaymentRef": self.external_payment_ref,
            "createdAt": self.created_at.isoformat(),
        }


def new_reservation(
    *,
    resource_id: str,
    start,
    end,
    unit_price: Decimal,
    requester: Actor,
    currency: str,
    resource_name: str = "",
    pickup_location: str = "",
) -> Reservation:
    start_day, end_day = dates.ensure_range(start, end)
    unit = Decimal(unit_price)
    return Reservation(
        id=str(uuid.uuid4()),
        resource_id=resource_id,
        requester_id=requester.id,
        requester_contact=requester.email,
        requester_name=requester.name,
        resource_name=resource_name,
        pickup_location=pickup_location or "",
        start=start_day,
        end=end_day,
        unit_price=unit,
        total_price=unit * dates.days_inclusive(start_day, end_day),
        currency=currency,
        status=ReservationStatus.PENDING,
        payment_status=PaymentStatus.AWAITING_PAYMENT,
    )
