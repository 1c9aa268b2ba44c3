from pydantic import BaseModel
from typing import List, Optional

class ReservationCreate(BaseModel):
    carId: str
    startDate: str
    endDate: str
    pickupLocation: Optional[str] = ""

class StatusUpdate(BaseModel):
    status: str

class ReservationOut(BaseModel):
    id: str
    resourceId: str
    resourceName: str = ""
    requesterId: str
    requesterContact: str = ""
    requesterName: str = ""
    pickupLocation: str = ""
    start: str
    end: str
    unitPrice: str
    totalPrice: str
    currency: str = "inr"
    status: str
    paymentStatus: str
    externalPaymentRef: Optional[str] = None
    createdAt: str

class AvailabilityOut(BaseModel):
    resourceId: str
    start: str
    end: str
    available: bool
    conflicts: List[dict] = []
