from decimal import Decimal
from sqlalchemy import String, Integer, DateTime, Boolean, Numeric
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from wheeldeal.db.session import Base

class Car(Base):
    """Catalog row. Managed by the catalog service; reservations only read it."""
    __tablename__ = "cars"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    brand: Mapped[str] = mapped_column(String(100), default="")
    model: Mapped[str] = mapped_column(String(100), default="")
    year: Mapped[int] = mapped_column(Integer, nullable=True)
    price_per_day: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    location: Mapped[str] = mapped_column(String(200), default="", index=True)
    seats: Mapped[int] = mapped_column(Integer, default=4)
    transmission: Mapped[str] = mapped_column(String(30), default="")
    fuel_type: Mapped[str] = mapped_column(String(30), default="")
    availability: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
