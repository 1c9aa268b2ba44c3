from fastapi import APIRouter
from wheeldeal.api.v1.routes.reservations import router as reservations_router
from wheeldeal.api.v1.routes.payments import router as payments_router
from wheeldeal.api.v1.routes.admin import router as admin_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(reservations_router)
api_router.include_router(payments_router)
api_router.include_router(admin_router)
