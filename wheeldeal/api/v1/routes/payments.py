from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from wheeldeal.api.deps import current_actor, get_payment_gateway, get_reservation_store
from wheeldeal.core.config import settings
from wheeldeal.domain.reservation import Actor
from wheeldeal.schemas.payments import CaptureOut, CaptureRequest, PaymentIntentCreate, PaymentIntentOut
from wheeldeal.services import payment_service, webhook_service
from wheeldeal.services.stripe_client import PaymentGateway
from wheeldeal.stores.base import ReservationStore

router = APIRouter(tags=["payments"])

@router.post("/payments/intents", response_model=PaymentIntentOut)
def create_payment_intent(
    body: PaymentIntentCreate,
    actor: Actor = Depends(current_actor),
    store: ReservationStore = Depends(get_reservation_store),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    res = payment_service.create_intent(
        store, gateway, body.bookingId, actor,
        currency=body.currency, capture_method=body.captureMethod,
    )
    return PaymentIntentOut(
        bookingId=res.reservation_id,
        paymentIntentId=res.external_ref,
        clientSecret=res.client_secret,
        amount=res.amount,
        currency=res.currency,
    )

@router.post("/payments/capture", response_model=CaptureOut)
def capture_payment(
    body: CaptureRequest,
    actor: Actor = Depends(current_actor),
    store: ReservationStore = Depends(get_reservation_store),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    receipt = payment_service.capture(store, gateway, body.paymentIntentId, actor, amount=body.amountToCapture)
    return CaptureOut(
        bookingId=receipt.reservation_id,
        paymentIntentId=receipt.external_ref,
        status=receipt.status,
        amountCaptured=receipt.amount_captured,
        paymentStatus=receipt.payment_status,
    )

@router.post("/webhooks/stripe")
async def stripe_webhook(req: Request, store: ReservationStore = Depends(get_reservation_store)):
    # Signature covers the exact bytes Stripe sent; never re-serialize.
    body = await req.body()
    return await run_in_threadpool(
        webhook_service.handle_settlement_event,
        store,
        body,
        req.headers.get("stripe-signature"),
        settings.STRIPE_WEBHOOK_SECRET,
        tolerance=settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
    )
