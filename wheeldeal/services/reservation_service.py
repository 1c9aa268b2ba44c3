from wheeldeal.core.config import settings
from wheeldeal.core.errors import (
    AlreadySettledError,
    ForbiddenError,
    NotFoundError,
    ResourceUnavailableError,
    ValidationError,
)
from wheeldeal.core.logging import get_logger
from wheeldeal.domain import dates, settlement
from wheeldeal.domain.reservation import (
    Actor,
    PaymentStatus,
    Reservation,
    ReservationStatus,
    new_reservation,
)
from wheeldeal.services.catalog_service import Catalog
from wheeldeal.stores.base import ReservationStore

logger = get_logger(__name__)


def ensure_can_act(reservation: Reservation, actor: Actor) -> None:
    if not (actor.is_privileged or reservation.is_owned_by(actor)):
        raise ForbiddenError("Not allowed")


def reserve(
    store: ReservationStore,
    catalog: Catalog,
    resource_id: str,
    start,
    end,
    requester: Actor,
    pickup_location: str = "",
) -> Reservation:
    """Reserve ``resource_id`` for the inclusive range [start, end].

    The unit price is read from the catalog once and frozen into the
    reservation. The overlap check and the insert are one atomic store
    step, so a conflict may surface even when an earlier read looked free.
    """
    start_day, end_day = dates.ensure_range(start, end)

    resource = catalog.get_resource(resource_id)
    if not resource.is_generally_available:
        raise ResourceUnavailableError("Car not available")

    reservation = new_reservation(
        resource_id=resource.id,
        start=start_day,
        end=end_day,
        unit_price=resource.unit_price,
        requester=requester,
        currency=settings.PAYMENT_CURRENCY,
        resource_name=resource.name,
        pickup_location=pickup_location,
    )
    store.insert_if_available(reservation)
    logger.info(
        "reservation_created",
        reservation_id=reservation.id,
        resource_id=reservation.resource_id,
        start=start_day.isoformat(),
        end=end_day.isoformat(),
        total_price=str(reservation.total_price),
    )
    return reservation


def cancel(store: ReservationStore, reservation_id: str, actor: Actor) -> Reservation:
    """Delete a reservation, freeing its dates.

    Owners may cancel until the reservation is paid; privileged actors may
    always cancel.
    """
    def guard(current: Reservation) -> None:
        ensure_can_act(current, actor)
        if current.payment_status == PaymentStatus.PAID and not actor.is_privileged:
            raise AlreadySettledError("Cannot cancel a paid reservation")

    deleted = store.delete(reservation_id, guard)
    if deleted is None:
        raise NotFoundError("Reservation not found")
    logger.info(
        "reservation_cancelled",
        reservation_id=deleted.id,
        resource_id=deleted.resource_id,
        actor_id=actor.id,
        payment_status=deleted.payment_status.value,
    )
    return deleted


def get_reservation(store: ReservationStore, reservation_id: str, actor: Actor) -> Reservation:
    reservation = store.get(reservation_id)
    if reservation is None:
        raise NotFoundError("Reservation not found")
    ensure_can_act(reservation, actor)
    return reservation


def list_reservations_for_requester(store: ReservationStore, actor: Actor) -> list[Reservation]:
    return store.list_for_requester(actor.id)


def list_reservations_all(store: ReservationStore, actor: Actor) -> list[Reservation]:
    if not actor.is_privileged:
        raise ForbiddenError("Admin access required")
    return store.list_all()


def parse_status(value: str) -> ReservationStatus:
    try:
        return ReservationStatus((value or "").strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in ReservationStatus)
        raise ValidationError(f"Unknown status {value!r}; expected one of: {allowed}", kind="invalid_status")


def set_status(store: ReservationStore, reservation_id: str, new_status, actor: Actor) -> Reservation:
    """Administrative override of ``status``; payment state is not consulted."""
    if not actor.is_privileged:
        raise ForbiddenError("Admin access required")
    status = new_status if isinstance(new_status, ReservationStatus) else parse_status(new_status)
    t = store.transition(reservation_id, lambda r: settlement.override_status(r, status))
    if t is None:
        raise NotFoundError("Reservation not found")
    logger.info(
        "reservation_status_overridden",
        reservation_id=reservation_id,
        status=status.value,
        result=t.result.value,
        actor_id=actor.id,
    )
    return t.reservation


def mark_manually_paid(store: ReservationStore, reservation_id: str, actor: Actor) -> Reservation:
    """Development shortcut that settles a reservation without the processor."""
    if settings.is_production:
        raise ForbiddenError("Mock-pay disabled in production", kind="disabled_in_production")

    def _mark(current: Reservation):
        ensure_can_act(current, actor)
        return settlement.mark_manually_paid(current)

    t = store.transition(reservation_id, _mark)
    if t is None:
        raise NotFoundError("Reservation not found")
    logger.warning("reservation_marked_paid_manually", reservation_id=reservation_id, actor_id=actor.id)
    return t.reservation
