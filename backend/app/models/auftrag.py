"""
Auftrags-Models: Auftrag und ArtikelPosition

Der Auftrag trägt neben dem Gesamtstatus die Teilstatus für
Kommissionierung, Kontrolle und Beladung.
"""
import uuid
from datetime import datetime, date
from decimal import Decimal
from sqlalchemy import (
    String, Numeric, Boolean, DateTime, Date, ForeignKey, Text, JSON, Uuid,
    Integer, Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.enums import (
    AuftragStatus, KommissioniertStatus, KontrolliertStatus, BeladeStatus,
    Zahlstatus, Einheit,
)


class Auftrag(Base):
    """Kundenauftrag mit Positionen"""
    __tablename__ = "auftraege"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    auftragsnummer: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)

    kunde_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("kunden.id", ondelete="CASCADE"), nullable=False, index=True
    )
    kunde_name: Mapped[str | None] = mapped_column(String(200))

    status: Mapped[AuftragStatus] = mapped_column(
        SQLEnum(AuftragStatus), default=AuftragStatus.OFFEN, index=True
    )
    lieferdatum: Mapped[date | None] = mapped_column(Date, index=True)
    bemerkungen: Mapped[str | None] = mapped_column(Text)
    bearbeiter: Mapped[str | None] = mapped_column(String(100))

    # Summen (aus Positionen berechnet)
    gewicht: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=Decimal("0"))
    preis: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    gesamt_paletten: Mapped[int | None] = mapped_column(Integer)
    gesamt_boxen: Mapped[int | None] = mapped_column(Integer)

    # Kommissionierung
    kommissioniert_status: Mapped[KommissioniertStatus | None] = mapped_column(
        SQLEnum(KommissioniertStatus)
    )
    kommissioniert_von: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    kommissioniert_von_name: Mapped[str | None] = mapped_column(String(100))
    kommissioniert_startzeit: Mapped[datetime | None] = mapped_column(DateTime)
    kommissioniert_endzeit: Mapped[datetime | None] = mapped_column(DateTime)

    # Kontrolle
    kontrolliert_status: Mapped[KontrolliertStatus | None] = mapped_column(
        SQLEnum(KontrolliertStatus)
    )
    kontrolliert_von: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    kontrolliert_von_name: Mapped[str | None] = mapped_column(String(100))
    kontrolliert_zeit: Mapped[datetime | None] = mapped_column(DateTime)

    # Beladung
    belade_status: Mapped[BeladeStatus | None] = mapped_column(SQLEnum(BeladeStatus))
    belade_von: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    belade_von_name: Mapped[str | None] = mapped_column(String(100))
    belade_zeit: Mapped[datetime | None] = mapped_column(DateTime)
    fahrer: Mapped[str | None] = mapped_column(String(100))
    fahrzeug: Mapped[str | None] = mapped_column(String(100))

    # Tour-Zuordnung (denormalisiert, wird von den Tour-Hooks gepflegt)
    tour_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, index=True)
    tour_stop_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)

    # Zahlung
    zahlstatus: Mapped[Zahlstatus | None] = mapped_column(SQLEnum(Zahlstatus))
    offen_betrag: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    zahlungs_datum: Mapped[date | None] = mapped_column(Date)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Beziehungen
    kunde: Mapped["Kunde"] = relationship("Kunde")
    positionen: Mapped[list["ArtikelPosition"]] = relationship(
        "ArtikelPosition",
        back_populates="auftrag",
        cascade="all, delete-orphan",
        order_by="ArtikelPosition.created_at",
    )

    def __repr__(self) -> str:
        return f"<Auftrag(nr='{self.auftragsnummer}', status={self.status.value})>"


class ArtikelPosition(Base):
    """
    Auftragsposition: Artikel, Menge und Einheit.
    Gewicht und Preis werden aus dem Artikel berechnet.
    """
    __tablename__ = "artikel_positionen"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    auftrag_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("auftraege.id", ondelete="CASCADE"), index=True
    )
    artikel_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("artikel.id", ondelete="RESTRICT"), nullable=False
    )
    artikel_name: Mapped[str | None] = mapped_column(String(200))

    menge: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    einheit: Mapped[Einheit] = mapped_column(SQLEnum(Einheit), default=Einheit.STUECK)
    einzelpreis: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    gesamtgewicht: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=Decimal("0"))
    gesamtpreis: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))

    zerlegung: Mapped[bool] = mapped_column(Boolean, default=False)
    vakuum: Mapped[bool] = mapped_column(Boolean, default=False)
    bemerkung: Mapped[str | None] = mapped_column(Text)
    zerlege_bemerkung: Mapped[str | None] = mapped_column(Text)

    # Kommissionierung
    kommissioniert_menge: Mapped[Decimal | None] = mapped_column(Numeric(12, 3))
    kommissioniert_einheit: Mapped[Einheit | None] = mapped_column(SQLEnum(Einheit))
    kommissioniert_bemerkung: Mapped[str | None] = mapped_column(Text)
    kommissioniert_von: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    kommissioniert_von_name: Mapped[str | None] = mapped_column(String(100))
    kommissioniert_am: Mapped[datetime | None] = mapped_column(DateTime)
    bruttogewicht: Mapped[Decimal | None] = mapped_column(Numeric(12, 3))
    nettogewicht: Mapped[Decimal | None] = mapped_column(Numeric(12, 3))
    leergut: Mapped[list] = mapped_column(JSON, default=list)
    chargennummern: Mapped[list] = mapped_column(JSON, default=list)

    # Kontrolle
    kontrolliert: Mapped[bool] = mapped_column(Boolean, default=False)
    kontrolliert_von: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    kontrolliert_von_name: Mapped[str | None] = mapped_column(String(100))
    kontrolliert_am: Mapped[datetime | None] = mapped_column(DateTime)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    auftrag: Mapped["Auftrag | None"] = relationship("Auftrag", back_populates="positionen")
    artikel: Mapped["Artikel"] = relationship("Artikel")

    @property
    def bestellte_menge(self) -> Decimal:
        """Bestellte Menge in der Einheit der Kommissionierung (kg oder Stück)"""
        if self.einheit == Einheit.KG:
            return Decimal(str(self.gesamtgewicht or 0))
        return Decimal(str(self.menge or 0))

    @property
    def fehlmenge(self) -> bool:
        """True bei mindestens 30 % Unterlieferung"""
        geliefert = self.nettogewicht if self.nettogewicht is not None else self.kommissioniert_menge
        if geliefert is None:
            return False
        bestellt = self.bestellte_menge
        if bestellt <= 0:
            return False
        differenz = bestellt - Decimal(str(geliefert))
        return (differenz / bestellt) * 100 >= 30
