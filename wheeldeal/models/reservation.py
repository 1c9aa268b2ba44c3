from decimal import Decimal
from sqlalchemy import String, Date, DateTime, Numeric, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from datetime import date, datetime, timezone
from wheeldeal.db.session import Base
from wheeldeal.domain.reservation import PaymentStatus, Reservation, ReservationStatus

class ReservationRow(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        Index("ix_reservations_resource_status", "resource_id", "status"),
        CheckConstraint("end_date >= start_date", name="ck_reservations_range"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    resource_id: Mapped[str] = mapped_column(String(36))
    resource_name: Mapped[str] = mapped_column(String(200), default="")

    requester_id: Mapped[str] = mapped_column(String(36), index=True)
    requester_contact: Mapped[str] = mapped_column(String(320), default="")
    requester_name: Mapped[str] = mapped_column(String(200), default="")
    pickup_location: Mapped[str] = mapped_column(String(200), default="")

    start_date: Mapped[date] = mapped_column(Date)
    end_date: Mapped[date] = mapped_column(Date)

    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    total_price: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    currency: Mapped[str] = mapped_column(String(3), default="inr")

    status: Mapped[str] = mapped_column(String(20), default=ReservationStatus.PENDING.value)  # pending, confirmed, completed, cancelled
    payment_status: Mapped[str] = mapped_column(String(30), default=PaymentStatus.AWAITING_PAYMENT.value)  # unpaid, awaiting_payment, paid, failed, refunded, manually_marked_paid
    external_payment_ref: Mapped[str] = mapped_column(String(255), nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def to_domain(self) -> Reservation:
        created_at = self.created_at
        if created_at is not None and created_at.tzinfo is None:
            # SQLite drops tzinfo; rows are always written in UTC.
            created_at = created_at.replace(tzinfo=timezone.utc)
        return Reservation(
            id=self.id,
            resource_id=self.resource_id,
            requester_id=self.requester_id,
            requester_contact=self.requester_contact,
            requester_name=self.requester_name,
            resource_name=self.resource_name,
            pickup_location=self.pickup_location,
            start=self.start_date,
            end=self.end_date,
            unit_price=Decimal(self.unit_price),
            total_price=Decimal(self.total_price),
            currency=self.currency,
            status=ReservationStatus(self.status),
            payment_status=PaymentStatus(self.payment_status),
            external_payment_ref=self.external_payment_ref,
            created_at=created_at,
        )

    @classmethod
    def from_domain(cls, r: Reservation) -> "ReservationRow":
        return cls(
            id=r.id,
            resource_id=r.resource_id,
            resource_name=r.resource_name,
            requester_id=r.requester_id,
            requester_contact=r.requester_contact,
            requester_name=r.requester_name,
            pickup_location=r.pickup_location,
            start_date=r.start,
            end_date=r.end,
            unit_price=r.unit_price,
            total_price=r.total_price,
            currency=r.currency,
            status=r.status.value,
            payment_status=r.payment_status.value,
            external_payment_ref=r.external_payment_ref,
            created_at=r.created_at,
        )

    def apply(self, r: Reservation) -> None:
        """Copy the mutable fields of ``r`` onto this row."""
        self.status = r.status.value
        self.payment_status = r.payment_status.value
        self.external_payment_ref = r.external_payment_ref


class ReservationLock(Base):
    """One row per resource; locked FOR UPDATE around check-then-insert."""
    __tablename__ = "reservation_locks"

    resource_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
