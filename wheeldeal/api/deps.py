from functools import lru_cache

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from sqlalchemy.orm import Session

from wheeldeal.core.config import settings
from wheeldeal.core.errors import UpstreamError
from wheeldeal.core.security import decode_token
from wheeldeal.db.session import SessionLocal, get_db
from wheeldeal.domain.reservation import Actor
from wheeldeal.models.user import User
from wheeldeal.services.catalog_service import SqlCatalog
from wheeldeal.services.stripe_client import StripeClient, StripeConfig
from wheeldeal.stores.sql import SqlReservationStore

bearer = HTTPBearer(auto_error=False)

def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
) -> User:
    if not creds:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        payload = decode_token(creds.credentials)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    user_id = payload.get("sub")
    user = db.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return user

def current_actor(user: User = Depends(get_current_user)) -> Actor:
    return Actor(id=user.id, is_privileged=user.is_privileged, email=user.email, name=user.username)

def require_privileged(actor: Actor = Depends(current_actor)) -> Actor:
    if not actor.is_privileged:
        raise HTTPException(status_code=403, detail="Forbidden")
    return actor

# One store per process: its per-resource locks only serialize callers that share it.
@lru_cache
def get_reservation_store() -> SqlReservationStore:
    return SqlReservationStore(SessionLocal)

@lru_cache
def get_catalog() -> SqlCatalog:
    return SqlCatalog(SessionLocal)

def _stripe_config() -> StripeConfig:
    return StripeConfig(
        api_base=settings.STRIPE_API_BASE,
        secret_key=settings.STRIPE_SECRET_KEY,
        timeout=settings.STRIPE_TIMEOUT_SECONDS,
        sandbox=settings.STRIPE_SANDBOX,
    )

def get_payment_gateway() -> StripeClient:
    if not settings.STRIPE_SANDBOX and not settings.STRIPE_SECRET_KEY:
        raise UpstreamError("Payment processor is not configured", kind="gateway_unconfigured", retryable=False)
    return StripeClient(_stripe_config())
