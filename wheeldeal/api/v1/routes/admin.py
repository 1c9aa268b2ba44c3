from fastapi import APIRouter, Depends

from wheeldeal.api.deps import get_reservation_store, require_privileged
from wheeldeal.domain.reservation import Actor
from wheeldeal.schemas.reservation import ReservationOut, StatusUpdate
from wheeldeal.services import reservation_service
from wheeldeal.stores.base import ReservationStore

router = APIRouter(prefix="/admin", tags=["admin"])

@router.get("/reservations", response_model=list[ReservationOut])
def all_reservations(actor: Actor = Depends(require_privileged), store: ReservationStore = Depends(get_reservation_store)):
    return [r.to_dict() for r in reservation_service.list_reservations_all(store, actor)]

@router.put("/reservations/{reservation_id}/status", response_model=ReservationOut)
def update_status(
    reservation_id: str,
    body: StatusUpdate,
    actor: Actor = Depends(require_privileged),
    store: ReservationStore = Depends(get_reservation_store),
):
    return reservation_service.set_status(store, reservation_id, body.status, actor).to_dict()
