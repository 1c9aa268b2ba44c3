"""
Pytest configuration and shared fixtures
"""
import itertools
import os
import uuid
from decimal import Decimal

# Settings are read at import time.
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENV", "test")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from wheeldeal.api import deps
from wheeldeal.core.errors import NotFoundError, UpstreamError
from wheeldeal.core.security import create_access_token
from wheeldeal.db.session import Base, get_db, make_engine
from wheeldeal.domain.reservation import Actor
from wheeldeal.main import app
from wheeldeal.models.car import Car
from wheeldeal.models.user import User
from wheeldeal.services.catalog_service import ResourceInfo, SqlCatalog
from wheeldeal.services.stripe_client import PaymentIntent
from wheeldeal.stores.memory import InMemoryReservationStore
from wheeldeal.stores.sql import SqlReservationStore


class FakeCatalog:
    def __init__(self):
        self.resources: dict[str, ResourceInfo] = {}

    def add(self, resource_id: str, unit_price="1000", available: bool = True, name: str = "") -> ResourceInfo:
        info = ResourceInfo(
            id=resource_id,
            name=name or f"Car {resource_id}",
            unit_price=Decimal(unit_price),
            is_generally_available=available,
        )
        self.resources[resource_id] = info
        return info

    def get_resource(self, resource_id: str) -> ResourceInfo:
        try:
            return self.resources[resource_id]
        except KeyError:
            raise NotFoundError("Car not found")


class FakeGateway:
    """Records calls; ``fail_with`` makes the next calls raise."""

    def __init__(self):
        self._ids = itertools.count(1)
        self.created: list[dict] = []
        self.captured: list[dict] = []
        self.fail_with: Exception | None = None

    def create_payment_intent(self, *, amount, currency, metadata, capture_method="automatic"):
        if self.fail_with is not None:
            raise self.fail_with
        intent_id = f"pi_test_{next(self._ids)}"
        self.created.append({
            "id": intent_id,
            "amount": amount,
            "currency": currency,
            "metadata": dict(metadata),
            "capture_method": capture_method,
        })
        return PaymentIntent(
            id=intent_id,
            client_secret=f"{intent_id}_secret",
            status="requires_payment_method",
            amount=amount,
            currency=currency,
            metadata=dict(metadata),
        )

    def retrieve_payment_intent(self, intent_id):
        if self.fail_with is not None:
            raise self.fail_with
        created = next((c for c in self.created if c["id"] == intent_id), None)
        if created is None:
            # Not one of ours: no correlation metadata.
            return PaymentIntent(id=intent_id, client_secret="", status="requires_capture", amount=0, currency="inr")
        return PaymentIntent(
            id=intent_id,
            client_secret=f"{intent_id}_secret",
            status="requires_capture",
            amount=created["amount"],
            currency=created["currency"],
            metadata=dict(created["metadata"]),
        )

    def capture_payment_intent(self, intent_id, *, amount_to_capture=None):
        if self.fail_with is not None:
            raise self.fail_with
        self.captured.append({"id": intent_id, "amount_to_capture": amount_to_capture})
        return PaymentIntent(
            id=intent_id,
            client_secret="",
            status="succeeded",
            amount=amount_to_capture or 0,
            currency="inr",
        )


@pytest.fixture
def alice():
    return Actor(id="user-alice", email="alice@example.com", name="Alice")


@pytest.fixture
def bob():
    return Actor(id="user-bob", email="bob@example.com", name="Bob")


@pytest.fixture
def admin():
    return Actor(id="user-admin", is_privileged=True, email="admin@example.com", name="Admin")


@pytest.fixture
def catalog():
    c = FakeCatalog()
    c.add("car-1", unit_price="1000")
    c.add("car-2", unit_price="2500.50")
    c.add("car-off", unit_price="900", available=False)
    return c


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def memory_store():
    return InMemoryReservationStore()


@pytest.fixture
def db_engine(tmp_path):
    """File-backed SQLite so concurrent threads each get their own connection."""
    engine = make_engine(f"sqlite:///{tmp_path / 'wheeldeal-test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def sql_store(session_factory):
    return SqlReservationStore(session_factory)


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Runs a test against both store adapters."""
    if request.param == "memory":
        return InMemoryReservationStore()
    return request.getfixturevalue("sql_store")


# ============== API fixtures ==============

@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def cars(db_session):
    def _car(name, price, available=True):
        car = Car(id=str(uuid.uuid4()), name=name, price_per_day=Decimal(price), location="Mumbai", availability=available)
        db_session.add(car)
        return car

    swift = _car("Swift VXi", "1000.00")
    creta = _car("Creta SX", "3200.00")
    parked = _car("Old Ambassador", "500.00", available=False)
    db_session.commit()
    return {"swift": swift.id, "creta": creta.id, "parked": parked.id}


def _make_user(db_session, email, role="user"):
    user = User(id=str(uuid.uuid4()), email=email, username=email.split("@")[0], role=role, is_active=True)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def user_headers(db_session):
    user = _make_user(db_session, "rider@example.com")
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


@pytest.fixture
def other_headers(db_session):
    user = _make_user(db_session, "other@example.com")
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


@pytest.fixture
def admin_headers(db_session):
    user = _make_user(db_session, "admin@example.com", role="admin")
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


@pytest.fixture
def client(session_factory, sql_store, gateway):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_reservation_store] = lambda: sql_store
    app.dependency_overrides[deps.get_catalog] = lambda: SqlCatalog(session_factory)
    app.dependency_overrides[deps.get_payment_gateway] = lambda: gateway
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def upstream_timeout():
    return UpstreamError("Payment processor timed out", kind="timeout", retryable=True)
