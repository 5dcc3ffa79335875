"""
Artikel-Model: Stammdaten der Fleischartikel mit Gewichten je Gebinde
"""
import uuid
from datetime import datetime
from decimal import Decimal
from sqlalchemy import String, Numeric, Boolean, DateTime, Uuid, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.enums import Einheit, ErfassungsModus


class Artikel(Base):
    """
    Artikel - Preis gilt pro kg.
    Gewichte je Stück/Kiste/Karton dienen der Umrechnung von Bestellmengen.
    """
    __tablename__ = "artikel"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    artikel_nummer: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    kategorie: Mapped[str | None] = mapped_column(String(100))
    preis: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))

    # Gewicht je Gebinde in kg
    gewicht_pro_stueck: Mapped[Decimal | None] = mapped_column(Numeric(10, 3))
    gewicht_pro_karton: Mapped[Decimal | None] = mapped_column(Numeric(10, 3))
    gewicht_pro_kiste: Mapped[Decimal | None] = mapped_column(Numeric(10, 3))

    bild_url: Mapped[str | None] = mapped_column(String(500))
    ausverkauft: Mapped[bool] = mapped_column(Boolean, default=False)
    erfassungs_modus: Mapped[ErfassungsModus] = mapped_column(
        SQLEnum(ErfassungsModus), default=ErfassungsModus.GEWICHT
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def gewicht_pro_einheit(self, einheit: Einheit) -> Decimal:
        """Gewicht in kg für eine Einheit; fehlende Angaben zählen als 0"""
        if einheit == Einheit.KG:
            return Decimal("1")
        gewichte = {
            Einheit.STUECK: self.gewicht_pro_stueck,
            Einheit.KISTE: self.gewicht_pro_kiste,
            Einheit.KARTON: self.gewicht_pro_karton,
        }
        return Decimal(str(gewichte.get(einheit) or 0))

    def __repr__(self) -> str:
        return f"<Artikel(nr='{self.artikel_nummer}', name='{self.name}')>"
