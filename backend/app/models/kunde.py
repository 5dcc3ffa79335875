"""
Kunden-Models: Kunde und kundenspezifische Aufpreise (KundenPreis)
"""
import uuid
from datetime import datetime
from decimal import Decimal
from sqlalchemy import (
    String, Numeric, Boolean, DateTime, ForeignKey, Text, JSON, Uuid, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class Kunde(Base):
    """
    Kunde - Gastronomie, Handel oder Metzgerei.
    Meldet sich mit E-Mail und Passwort an, sobald er freigegeben ist.
    """
    __tablename__ = "kunden"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    kunden_nr: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(200), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(200), nullable=False)

    # Kontakt
    adresse: Mapped[str | None] = mapped_column(Text)
    telefon: Mapped[str | None] = mapped_column(String(50))
    ansprechpartner: Mapped[str | None] = mapped_column(String(200))

    # Lieferung
    region: Mapped[str | None] = mapped_column(String(100), index=True)
    lieferzeit: Mapped[str | None] = mapped_column(String(100))  # z.B. "06:00-09:00"

    # Sonstiges
    kategorie: Mapped[str | None] = mapped_column(String(100))
    ust_id: Mapped[str | None] = mapped_column(String(20))
    is_approved: Mapped[bool] = mapped_column(Boolean, default=False)
    fehlmengen_benachrichtigung: Mapped[bool] = mapped_column(Boolean, default=False)
    favoriten: Mapped[list] = mapped_column(JSON, default=list)  # Artikel-IDs als Strings

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Beziehungen
    kundenpreise: Mapped[list["KundenPreis"]] = relationship(
        "KundenPreis", back_populates="kunde", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Kunde(nr='{self.kunden_nr}', name='{self.name}')>"


class KundenPreis(Base):
    """
    Kundenspezifischer Aufpreis je Artikel (pro kg).
    Der Aufpreis darf negativ sein (Rabatt).
    """
    __tablename__ = "kundenpreise"
    __table_args__ = (
        UniqueConstraint("artikel_id", "kunde_id", name="uq_kundenpreis_artikel_kunde"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    artikel_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("artikel.id", ondelete="CASCADE"), nullable=False, index=True
    )
    kunde_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("kunden.id", ondelete="CASCADE"), nullable=False, index=True
    )
    aufpreis: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    kunde: Mapped["Kunde"] = relationship("Kunde", back_populates="kundenpreise")
    artikel: Mapped["Artikel"] = relationship("Artikel")
