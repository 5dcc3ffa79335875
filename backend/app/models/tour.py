"""
Tour-Models: Liefertouren, Stopps und Tour-Konfiguration

Eine Tour gehört zu einem Lieferdatum und einer Region. Jeder Auftrag
hat höchstens einen Stopp; Positionen sind je Tour eindeutig (1..n).
"""
import uuid
from datetime import datetime, date
from decimal import Decimal
from typing import Optional
from sqlalchemy import (
    String, Integer, Numeric, Boolean, DateTime, Date, ForeignKey, Text, JSON, Uuid,
    UniqueConstraint, Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.enums import TourStatus, StopStatus


class Tour(Base):
    """
    Liefertour für einen Tag und eine Region.
    Standard-Touren werden automatisch beim Setzen eines Lieferdatums angelegt.
    """
    __tablename__ = "touren"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    datum: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    region: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    name: Mapped[Optional[str]] = mapped_column(String(200))

    fahrzeug_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("fahrzeuge.id", ondelete="SET NULL"), index=True
    )
    fahrer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("mitarbeiter.id", ondelete="SET NULL"), index=True
    )

    # Kapazität
    max_gewicht_kg: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2))
    belegtes_gewicht_kg: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=Decimal("0"))
    over_capacity_flag: Mapped[bool] = mapped_column(Boolean, default=False)

    status: Mapped[TourStatus] = mapped_column(
        SQLEnum(TourStatus), default=TourStatus.GEPLANT, index=True
    )
    reihenfolge_vorlage_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("reihenfolge_vorlagen.id", ondelete="SET NULL")
    )

    is_standard: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    parent_tour_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    split_index: Mapped[Optional[int]] = mapped_column(Integer)
    archiviert_am: Mapped[Optional[datetime]] = mapped_column(DateTime)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Beziehungen
    fahrzeug: Mapped[Optional["Fahrzeug"]] = relationship("Fahrzeug")
    reihenfolge_vorlage: Mapped[Optional["ReihenfolgeVorlage"]] = relationship("ReihenfolgeVorlage")
    stops: Mapped[list["TourStop"]] = relationship(
        "TourStop",
        order_by="TourStop.position",
        viewonly=True,
    )

    def __repr__(self) -> str:
        return f"<Tour(datum={self.datum}, region='{self.region}', status={self.status.value})>"


class TourStop(Base):
    """Stopp einer Tour - genau ein Auftrag je Stopp"""
    __tablename__ = "tour_stops"
    __table_args__ = (
        UniqueConstraint("tour_id", "position", name="uq_tour_stop_position"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    tour_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("touren.id", ondelete="CASCADE"), nullable=False, index=True
    )
    auftrag_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("auftraege.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    kunde_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, index=True)
    kunde_name: Mapped[Optional[str]] = mapped_column(String(200))
    kunde_adresse: Mapped[Optional[str]] = mapped_column(Text)

    position: Mapped[int] = mapped_column(Integer, nullable=False)
    gewicht_kg: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 3))

    status: Mapped[StopStatus] = mapped_column(SQLEnum(StopStatus), default=StopStatus.OFFEN)
    fehlgrund: Mapped[Optional[dict]] = mapped_column(JSON)  # {"code": ..., "text": ...}

    # Zustellnachweis
    signatur_png_base64: Mapped[Optional[str]] = mapped_column(Text)
    sign_timestamp_utc: Mapped[Optional[datetime]] = mapped_column(DateTime)
    signed_by_name: Mapped[Optional[str]] = mapped_column(String(200))
    leergut_mitnahme: Mapped[list] = mapped_column(JSON, default=list)
    abgeschlossen_am: Mapped[Optional[datetime]] = mapped_column(DateTime)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<TourStop(tour={self.tour_id}, position={self.position})>"


class RegionRule(Base):
    """
    Lieferregel je Region: erlaubte Wochentage (1=Montag ... 7=Sonntag),
    Bestellschluss und Ausnahmetage.
    """
    __tablename__ = "region_rules"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    region: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    allowed_weekdays: Mapped[list] = mapped_column(JSON, default=list)
    order_cutoff: Mapped[Optional[str]] = mapped_column(String(5))  # "HH:mm"
    exception_dates: Mapped[list] = mapped_column(JSON, default=list)  # "YYYY-MM-DD"
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    @property
    def erlaubte_tage(self) -> list[str]:
        """Deutsche Wochentagsnamen der erlaubten Tage"""
        return [WOCHENTAGE[tag - 1] for tag in (self.allowed_weekdays or []) if 1 <= tag <= 7]

    def __repr__(self) -> str:
        return f"<RegionRule(region='{self.region}', tage={self.allowed_weekdays})>"


class ReihenfolgeVorlage(Base):
    """Standard-Reihenfolge der Kunden für Touren einer Region"""
    __tablename__ = "reihenfolge_vorlagen"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    region: Mapped[Optional[str]] = mapped_column(String(100), index=True)
    kunden_reihenfolge: Mapped[list] = mapped_column(JSON, default=list)  # [{kunde_id, position}]
    tage: Mapped[Optional[list]] = mapped_column(JSON)
    aktiv: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    @property
    def kunden_ids(self) -> list[str]:
        """Kunden-IDs in Vorlagen-Reihenfolge"""
        eintraege = sorted(self.kunden_reihenfolge or [], key=lambda e: e.get("position", 0))
        return [str(e["kunde_id"]) for e in eintraege]


WOCHENTAGE = ["Montag", "Dienstag", "Mittwoch", "Donnerstag", "Freitag", "Samstag", "Sonntag"]


from app.models.fahrzeug import Fahrzeug  # noqa: E402
