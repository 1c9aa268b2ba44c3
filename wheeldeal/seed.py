import uuid
from decimal import Decimal

from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, ProgrammingError

from wheeldeal.db.session import SessionLocal
from wheeldeal.core.logging import get_logger
from wheeldeal.models.user import User
from wheeldeal.models.car import Car

logger = get_logger(__name__)

DEMO_CARS = [
    # name, brand, model, year, price_per_day, location, seats, transmission, fuel_type
    ("Swift VXi", "Maruti Suzuki", "Swift", 2022, "1500.00", "Mumbai", 5, "manual", "petrol"),
    ("Creta SX", "Hyundai", "Creta", 2023, "3200.00", "Bengaluru", 5, "automatic", "diesel"),
    ("Innova Crysta", "Toyota", "Innova", 2021, "4500.00", "Delhi", 7, "manual", "diesel"),
    ("Nexon EV", "Tata", "Nexon", 2023, "2800.00", "Pune", 5, "automatic", "electric"),
]


def ensure_user(db: Session, email: str, role: str, name: str) -> None:
    if db.query(User).filter(User.email == email).first():
        return
    db.add(User(id=str(uuid.uuid4()), email=email, username=name, role=role, is_active=True))
    db.commit()


def ensure_car(db: Session, name, brand, model, year, price, location, seats, transmission, fuel_type) -> None:
    if db.query(Car).filter(Car.name == name, Car.location == location).first():
        return
    db.add(
        Car(
            id=str(uuid.uuid4()),
            name=name,
            brand=brand,
            model=model,
            year=year,
            price_per_day=Decimal(price),
            location=location,
            seats=seats,
            transmission=transmission,
            fuel_type=fuel_type,
            availability=True,
        )
    )
    db.commit()


def run(db=None):
    own_session = db is None
    if own_session:
        db = SessionLocal()
    try:
        # If migrations haven't been applied yet, seeding must not crash the API.
        try:
            db.execute(text("SELECT 1 FROM users LIMIT 1"))
        except (ProgrammingError, OperationalError):
            db.rollback()
            logger.warning("seed_skipped", reason="users table not found (run alembic upgrade head)")
            return

        ensure_user(db, "admin@wheeldeal.local", "admin", "Admin")
        ensure_user(db, "demo@wheeldeal.local", "user", "Demo User")
        for car in DEMO_CARS:
            ensure_car(db, *car)
        logger.info("seed_complete", cars=len(DEMO_CARS))
    finally:
        if own_session:
            db.close()


if __name__ == "__main__":
    run()
