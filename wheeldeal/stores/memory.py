"""In-process reservation store for development and tests."""

import threading

from wheeldeal.core.errors import ConflictError
from wheeldeal.domain.reservation import Reservation
from wheeldeal.stores.base import (
    Guard,
    ReservationStore,
    TransitionFn,
    conflict_for,
    first_overlap,
    reactivates,
)


class InMemoryReservationStore(ReservationStore):
    """Dict-backed store; one re-entrant lock serializes every mutation."""

    def __init__(self):
        self._rows: dict[str, Reservation] = {}
        self._lock = threading.RLock()

    def insert_if_available(self, reservation: Reservation) -> Reservation:
        with self._lock:
            if reservation.id in self._rows:
                raise ConflictError("Reservation id already exists", kind="duplicate_id")
            taken = first_overlap(self._for_resource(reservation.resource_id), reservation.start, reservation.end)
            if taken is not None:
                raise conflict_for(reservation)
            self._rows[reservation.id] = reservation
            return reservation

    def get(self, reservation_id: str) -> Reservation | None:
        with self._lock:
            return self._rows.get(reservation_id)

    def get_by_payment_ref(self, payment_ref: str) -> Reservation | None:
        with self._lock:
            return self._find_by_ref(payment_ref)

    def active_for_resource(self, resource_id: str) -> list[Reservation]:
        with self._lock:
            return [r for r in self._for_resource(resource_id) if r.is_active]

    def list_for_requester(self, requester_id: str) -> list[Reservation]:
        with self._lock:
            return self._newest_first(r for r in self._rows.values() if r.requester_id == requester_id)

    def list_all(self) -> list[Reservation]:
        with self._lock:
            return self._newest_first(self._rows.values())

    def transition(self, reservation_id: str, fn: TransitionFn):
        with self._lock:
            current = self._rows.get(reservation_id)
            return self._apply(current, fn)

    def transition_by_payment_ref(self, payment_ref: str, fn: TransitionFn):
        with self._lock:
            return self._apply(self._find_by_ref(payment_ref), fn)

    def delete(self, reservation_id: str, guard: Guard | None = None) -> Reservation | None:
        with self._lock:
            current = self._rows.get(reservation_id)
            if current is None:
                return None
            if guard is not None:
                guard(current)
            return self._rows.pop(reservation_id)

    def _apply(self, current: Reservation | None, fn: TransitionFn):
        if current is None:
            return None
        t = fn(current)
        if t.changed:
            if reactivates(current, t.reservation):
                others = [r for r in self._for_resource(current.resource_id) if r.id != current.id]
                if first_overlap(others, current.start, current.end) is not None:
                    raise conflict_for(current)
            self._rows[current.id] = t.reservation
        return t

    def _for_resource(self, resource_id: str) -> list[Reservation]:
        return [r for r in self._rows.values() if r.resource_id == resource_id]

    def _find_by_ref(self, payment_ref: str) -> Reservation | None:
        if not payment_ref:
            return None
        return next((r for r in self._rows.values() if r.external_payment_ref == payment_ref), None)

    @staticmethod
    def _newest_first(rows) -> list[Reservation]:
        return sorted(rows, key=lambda r: r.created_at, reverse=True)
