"""
Pydantic Schemas für Fahrzeuge
"""
from datetime import datetime
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict, field_validator


def _kennzeichen_normalisieren(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip().upper()
    if not v:
        raise ValueError("Kennzeichen darf nicht leer sein")
    return v


class FahrzeugBase(BaseModel):
    """Basis-Schema für Fahrzeuge"""
    name: str = Field(..., min_length=1, max_length=100)
    kennzeichen: str = Field(..., min_length=1, max_length=20, description="Wird in Großbuchstaben gespeichert")
    max_gewicht_kg: Decimal | None = Field(None, ge=0, description="Maximale Zuladung")
    samsara_vehicle_id: str | None = Field(None, max_length=100)
    aktiv: bool = True
    bemerkung: str | None = None

    @field_validator("kennzeichen")
    @classmethod
    def normalize_kennzeichen(cls, v: str) -> str:
        return _kennzeichen_normalisieren(v)


class FahrzeugCreate(FahrzeugBase):
    pass


class FahrzeugUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    kennzeichen: str | None = Field(None, min_length=1, max_length=20)
    max_gewicht_kg: Decimal | None = Field(None, ge=0)
    samsara_vehicle_id: str | None = Field(None, max_length=100)
    aktiv: bool | None = None
    bemerkung: str | None = None

    @field_validator("kennzeichen")
    @classmethod
    def normalize_kennzeichen(cls, v: str | None) -> str | None:
        return _kennzeichen_normalisieren(v)


class FahrzeugResponse(FahrzeugBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime
    updated_at: datetime


class FahrzeugListResponse(BaseModel):
    items: list[FahrzeugResponse]
    total: int
