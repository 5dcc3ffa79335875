"""
Personal-Models: Mitarbeiter (mit Rollen) und Verkäufer
"""
import uuid
from datetime import datetime, date
from sqlalchemy import String, Boolean, DateTime, Date, Text, JSON, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Mitarbeiter(Base):
    """Mitarbeiter mit einer oder mehreren Rollen"""
    __tablename__ = "mitarbeiter"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(200), nullable=False)

    email: Mapped[str | None] = mapped_column(String(200))
    telefon: Mapped[str | None] = mapped_column(String(50))
    abteilung: Mapped[str | None] = mapped_column(String(100))
    bemerkung: Mapped[str | None] = mapped_column(Text)
    eintrittsdatum: Mapped[date | None] = mapped_column(Date)
    aktiv: Mapped[bool] = mapped_column(Boolean, default=True)
    rollen: Mapped[list] = mapped_column(JSON, default=lambda: ["lager"])

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<Mitarbeiter(name='{self.name}', rollen={self.rollen})>"


class Verkaeufer(Base):
    """Verkäufer-Zugang (Altbestand, nur Name/Passwort/Admin-Flag)"""
    __tablename__ = "verkaeufer"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(200), nullable=False)
    admin: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
