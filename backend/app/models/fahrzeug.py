"""
Fahrzeug-Model: Lieferfahrzeuge mit maximaler Zuladung
"""
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import String, Numeric, Boolean, DateTime, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Fahrzeug(Base):
    """Lieferfahrzeug"""
    __tablename__ = "fahrzeuge"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    kennzeichen: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    max_gewicht_kg: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2))
    samsara_vehicle_id: Mapped[Optional[str]] = mapped_column(String(100))
    aktiv: Mapped[bool] = mapped_column(Boolean, default=True)
    bemerkung: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<Fahrzeug(kennzeichen='{self.kennzeichen}')>"
