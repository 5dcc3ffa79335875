"""
Zerlege-Models: Zerlegeauftrag mit Positionen für die Zerlegung
"""
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import String, Numeric, Boolean, DateTime, ForeignKey, Text, Uuid, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.enums import ZerlegeStatus


class ZerlegeAuftrag(Base):
    """Zerlegeauftrag - entsteht, wenn ein Auftrag mit Zerlege-Positionen in Bearbeitung geht"""
    __tablename__ = "zerlegeauftraege"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    auftrag_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("auftraege.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    kunden_name: Mapped[Optional[str]] = mapped_column(String(200))

    zerleger_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    zerleger_name: Mapped[Optional[str]] = mapped_column(String(100))

    erstellt_am: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    archiviert: Mapped[bool] = mapped_column(Boolean, default=False)

    positionen: Mapped[list["ZerlegePosition"]] = relationship(
        "ZerlegePosition",
        back_populates="zerlegeauftrag",
        cascade="all, delete-orphan",
    )

    @property
    def ist_erledigt(self) -> bool:
        return bool(self.positionen) and all(
            p.status == ZerlegeStatus.ERLEDIGT for p in self.positionen
        )

    def __repr__(self) -> str:
        return f"<ZerlegeAuftrag(auftrag={self.auftrag_id}, positionen={len(self.positionen)})>"


class ZerlegePosition(Base):
    """Einzelne Zerlege-Position, verweist auf eine ArtikelPosition"""
    __tablename__ = "zerlege_positionen"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    zerlegeauftrag_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("zerlegeauftraege.id", ondelete="CASCADE"), nullable=False, index=True
    )
    artikel_position_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    artikel_name: Mapped[Optional[str]] = mapped_column(String(200))
    menge: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 3))
    bemerkung: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[ZerlegeStatus] = mapped_column(
        SQLEnum(ZerlegeStatus), default=ZerlegeStatus.OFFEN
    )
    erledigt_am: Mapped[Optional[datetime]] = mapped_column(DateTime)

    zerlegeauftrag: Mapped["ZerlegeAuftrag"] = relationship(
        "ZerlegeAuftrag", back_populates="positionen"
    )
