from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Query

from wheeldeal.api.deps import current_actor, get_catalog, get_reservation_store
from wheeldeal.core.errors import ValidationError
from wheeldeal.domain import dates
from wheeldeal.domain.reservation import Actor
from wheeldeal.schemas.reservation import AvailabilityOut, ReservationCreate, ReservationOut
from wheeldeal.services import availability_service, reservation_service
from wheeldeal.services.catalog_service import Catalog
from wheeldeal.stores.base import ReservationStore

router = APIRouter(tags=["reservations"])

@router.post("/reservations", response_model=ReservationOut, status_code=201)
def create_reservation(
    body: ReservationCreate,
    actor: Actor = Depends(current_actor),
    store: ReservationStore = Depends(get_reservation_store),
    catalog: Catalog = Depends(get_catalog),
):
    start = dates.to_day(body.startDate)
    end = dates.to_day(body.endDate)
    if start < datetime.now(timezone.utc).date():
        raise ValidationError("Start date cannot be in the past", kind="start_in_past")
    r = reservation_service.reserve(store, catalog, body.carId, start, end, actor, body.pickupLocation or "")
    return r.to_dict()

@router.get("/reservations", response_model=list[ReservationOut])
def my_reservations(actor: Actor = Depends(current_actor), store: ReservationStore = Depends(get_reservation_store)):
    return [r.to_dict() for r in reservation_service.list_reservations_for_requester(store, actor)]

@router.get("/reservations/availability", response_model=AvailabilityOut)
def availability(
    resourceId: str = Query(...),
    start: str = Query(...),
    end: str = Query(...),
    store: ReservationStore = Depends(get_reservation_store),
):
    taken = availability_service.list_overlapping(store, resourceId, start, end)
    return {
        "resourceId": resourceId,
        "start": dates.to_day(start).isoformat(),
        "end": dates.to_day(end).isoformat(),
        "available": not taken,
        # Only the blocked ranges; who holds them is not public.
        "conflicts": [{"start": r.start.isoformat(), "end": r.end.isoformat()} for r in taken],
    }

@router.get("/reservations/{reservation_id}", response_model=ReservationOut)
def get_reservation(reservation_id: str, actor: Actor = Depends(current_actor), store: ReservationStore = Depends(get_reservation_store)):
    return reservation_service.get_reservation(store, reservation_id, actor).to_dict()

@router.delete("/reservations/{reservation_id}")
def cancel_reservation(reservation_id: str, actor: Actor = Depends(current_actor), store: ReservationStore = Depends(get_reservation_store)):
    r = reservation_service.cancel(store, reservation_id, actor)
    return {"ok": True, "id": r.id}

@router.post("/reservations/{reservation_id}/mock-pay", response_model=ReservationOut)
def mock_pay(reservation_id: str, actor: Actor = Depends(current_actor), store: ReservationStore = Depends(get_reservation_store)):
    return reservation_service.mark_manually_paid(store, reservation_id, actor).to_dict()
