from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from sqlalchemy.orm import sessionmaker

from wheeldeal.core.errors import NotFoundError
from wheeldeal.models.car import Car


@dataclass(frozen=True)
class ResourceInfo:
    id: str
    name: str
    unit_price: Decimal
    is_generally_available: bool


class Catalog(Protocol):
    def get_resource(self, resource_id: str) -> ResourceInfo: ...


class SqlCatalog:
    """Read-only view of the cars table."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get_resource(self, resource_id: str) -> ResourceInfo:
        with self._session_factory() as db:
            car = db.get(Car, resource_id)
            if not car:
                raise NotFoundError("Car not found")
            return ResourceInfo(
                id=car.id,
                name=car.name,
                unit_price=Decimal(car.price_per_day),
                is_generally_available=bool(car.availability),
            )
