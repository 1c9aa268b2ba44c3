"""Resource availability index: which active reservations cover a date range."""

from wheeldeal.domain import dates
from wheeldeal.domain.reservation import Reservation
from wheeldeal.stores.base import ReservationStore


def list_overlapping(store: ReservationStore, resource_id: str, start, end) -> list[Reservation]:
    start_day, end_day = dates.ensure_range(start, end)
    return [
        r for r in store.active_for_resource(resource_id)
        if dates.overlaps(r.start, r.end, start_day, end_day)
    ]


def overlaps(store: ReservationStore, resource_id: str, start, end) -> bool:
    return bool(list_overlapping(store, resource_id, start, end))
