"""
Inventory Models: Lagerverwaltung für Fleisch mit Chargen
Journal aller Bewegungen, aggregierter Bestand und Reservierungen
"""
import uuid
from datetime import datetime, date
from decimal import Decimal
from typing import Optional
from sqlalchemy import (
    String, Numeric, Boolean, DateTime, Date, ForeignKey, Text, UniqueConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.types import Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.enums import BewegungsTyp, Lagerbereich, ReservierungStatus


class Charge(Base):
    """
    Charge - Wareneingang eines Artikels mit MHD und Schlachtdatum
    """
    __tablename__ = "chargen"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )

    # Artikel (denormalisiert für Listen)
    artikel_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("artikel.id", ondelete="CASCADE"), nullable=False, index=True
    )
    artikel_name: Mapped[Optional[str]] = mapped_column(String(200))
    artikel_nummer: Mapped[Optional[str]] = mapped_column(String(50))

    # Datum
    mhd: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    schlacht_datum: Mapped[Optional[date]] = mapped_column(Date)

    is_tk: Mapped[bool] = mapped_column(Boolean, default=False)
    lieferant_id: Mapped[Optional[str]] = mapped_column(String(100))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<Charge(artikel='{self.artikel_nummer}', mhd={self.mhd})>"


class Bewegung(Base):
    """
    Lagerbewegung - Protokolliert jede Bestandsänderung
    Menge ist vorzeichenbehaftet (positiv = Zugang, negativ = Abgang)
    """
    __tablename__ = "bewegungen"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )

    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(100))
    typ: Mapped[BewegungsTyp] = mapped_column(SQLEnum(BewegungsTyp), nullable=False, index=True)

    artikel_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    artikel_name: Mapped[Optional[str]] = mapped_column(String(200))
    artikel_nummer: Mapped[Optional[str]] = mapped_column(String(50))
    charge_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, index=True)

    menge: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    lagerbereich: Mapped[Lagerbereich] = mapped_column(
        SQLEnum(Lagerbereich), default=Lagerbereich.NON_TK
    )
    auftrag_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, index=True)
    notiz: Mapped[Optional[str]] = mapped_column(Text)

    # Chargen-Snapshot
    mhd: Mapped[Optional[date]] = mapped_column(Date)
    schlacht_datum: Mapped[Optional[date]] = mapped_column(Date)
    is_tk: Mapped[Optional[bool]] = mapped_column(Boolean)

    def __repr__(self) -> str:
        return f"<Bewegung(typ={self.typ.value}, menge={self.menge})>"


class BestandAgg(Base):
    """
    Aggregierter Bestand je Artikel, Charge und Lagerbereich.
    Wird über Deltas fortgeschrieben.
    """
    __tablename__ = "bestand_agg"
    __table_args__ = (
        UniqueConstraint("artikel_id", "charge_id", "lagerbereich", name="uq_bestand_agg_key"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    artikel_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    artikel_name: Mapped[Optional[str]] = mapped_column(String(200))
    artikel_nummer: Mapped[Optional[str]] = mapped_column(String(50))
    charge_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, index=True)
    lagerbereich: Mapped[Lagerbereich] = mapped_column(SQLEnum(Lagerbereich), nullable=False)

    verfuegbar: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=Decimal("0"))
    reserviert: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=Decimal("0"))
    unterwegs: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=Decimal("0"))

    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<BestandAgg(artikel={self.artikel_id}, verfuegbar={self.verfuegbar})>"


class Reservierung(Base):
    """
    Reservierung von Bestand für einen Auftrag
    """
    __tablename__ = "reservierungen"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    artikel_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    auftrag_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    charge_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, index=True)
    liefer_datum: Mapped[date] = mapped_column(Date, nullable=False)
    menge: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    lagerbereich: Mapped[Lagerbereich] = mapped_column(
        SQLEnum(Lagerbereich), default=Lagerbereich.NON_TK
    )
    status: Mapped[ReservierungStatus] = mapped_column(
        SQLEnum(ReservierungStatus), default=ReservierungStatus.AKTIV, index=True
    )
    created_by: Mapped[Optional[str]] = mapped_column(String(100))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<Reservierung(auftrag={self.auftrag_id}, menge={self.menge}, status={self.status.value})>"


class IdempotencyKey(Base):
    """Verarbeitete Idempotency-Keys von Buchungsanfragen"""
    __tablename__ = "idempotency_keys"

    key: Mapped[str] = mapped_column(String(200), primary_key=True)
    endpoint: Mapped[Optional[str]] = mapped_column(String(200))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class MuellUndo(Base):
    """Markiert eine Müll-Bewegung als rückgängig gemacht (höchstens einmal)"""
    __tablename__ = "muell_undos"

    muell_bewegung_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bewegungen.id", ondelete="CASCADE"), primary_key=True
    )
    korrektur_bewegung_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
