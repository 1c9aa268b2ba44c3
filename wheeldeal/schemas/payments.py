from pydantic import BaseModel, Field
from typing import Optional

class PaymentIntentCreate(BaseModel):
    bookingId: str
    currency: Optional[str] = None
    captureMethod: Optional[str] = Field(default=None, pattern="^(automatic|manual)$")

class PaymentIntentOut(BaseModel):
    bookingId: str
    paymentIntentId: str
    clientSecret: str
    amount: int
    currency: str

class CaptureRequest(BaseModel):
    paymentIntentId: str
    amountToCapture: Optional[int] = Field(default=None, gt=0)

class CaptureOut(BaseModel):
    bookingId: str
    paymentIntentId: str
    status: str
    amountCaptured: int
    paymentStatus: str
