"""
Reservation Store

The only mutable shared state in the engine. Implementations must make
``insert_if_available`` a single serializable step per resource: the overlap
check runs again at commit time, so two concurrent callers for overlapping
ranges can never both succeed.
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterable

from wheeldeal.core.errors import ConflictError
from wheeldeal.domain import dates
from wheeldeal.domain.reservation import Reservation
from wheeldeal.domain.settlement import Transition

TransitionFn = Callable[[Reservation], Transition]
Guard = Callable[[Reservation], None]


def first_overlap(candidates: Iterable[Reservation], start, end) -> Reservation | None:
    """First active reservation in ``candidates`` overlapping [start, end]."""
    for r in candidates:
        if r.is_active and dates.overlaps(r.start, r.end, start, end):
            return r
    return None


def reactivates(before: Reservation, after: Reservation) -> bool:
    """True when a cancelled reservation becomes active again and must re-claim its dates."""
    return not before.is_active and after.is_active


def conflict_for(reservation: Reservation) -> ConflictError:
    return ConflictError(
        f"Resource is already reserved for some of the dates "
        f"{reservation.start.isoformat()} to {reservation.end.isoformat()}",
    )


class ReservationStore(ABC):

    @abstractmethod
    def insert_if_available(self, reservation: Reservation) -> Reservation:
        """Insert unless an active reservation on the same resource overlaps.

        Raises ConflictError when the range is taken at commit time.
        """

    @abstractmethod
    def get(self, reservation_id: str) -> Reservation | None:
        pass

    @abstractmethod
    def get_by_payment_ref(self, payment_ref: str) -> Reservation | None:
        pass

    @abstractmethod
    def active_for_resource(self, resource_id: str) -> list[Reservation]:
        """Snapshot of every non-cancelled reservation on ``resource_id``."""

    @abstractmethod
    def list_for_requester(self, requester_id: str) -> list[Reservation]:
        pass

    @abstractmethod
    def list_all(self) -> list[Reservation]:
        pass

    @abstractmethod
    def transition(self, reservation_id: str, fn: TransitionFn) -> Transition | None:
        """Atomically read, apply ``fn`` and persist if the transition changed the record.

        Returns None when the reservation does not exist. Exceptions raised
        by ``fn`` propagate and leave the record untouched.
        """

    @abstractmethod
    def transition_by_payment_ref(self, payment_ref: str, fn: TransitionFn) -> Transition | None:
        pass

    @abstractmethod
    def delete(self, reservation_id: str, guard: Guard | None = None) -> Reservation | None:
        """Atomically run ``guard`` on the current record and delete it.

        Returns the deleted reservation, or None when it does not exist.
        """
