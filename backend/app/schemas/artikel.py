"""
Pydantic Schemas für Artikel
"""
from datetime import datetime
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict

from app.models.enums import ErfassungsModus


class ArtikelBase(BaseModel):
    """Basis-Schema für Artikel"""
    artikel_nummer: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    kategorie: str | None = Field(None, max_length=100)
    preis: Decimal = Field(Decimal("0"), ge=0, description="Grundpreis in EUR/kg")
    gewicht_pro_stueck: Decimal | None = Field(None, ge=0)
    gewicht_pro_karton: Decimal | None = Field(None, ge=0)
    gewicht_pro_kiste: Decimal | None = Field(None, ge=0)
    bild_url: str | None = Field(None, max_length=500)
    ausverkauft: bool = False
    erfassungs_modus: ErfassungsModus = ErfassungsModus.GEWICHT


class ArtikelCreate(ArtikelBase):
    pass


class ArtikelUpdate(BaseModel):
    artikel_nummer: str | None = Field(None, min_length=1, max_length=50)
    name: str | None = Field(None, min_length=1, max_length=200)
    kategorie: str | None = Field(None, max_length=100)
    preis: Decimal | None = Field(None, ge=0)
    gewicht_pro_stueck: Decimal | None = Field(None, ge=0)
    gewicht_pro_karton: Decimal | None = Field(None, ge=0)
    gewicht_pro_kiste: Decimal | None = Field(None, ge=0)
    bild_url: str | None = Field(None, max_length=500)
    ausverkauft: bool | None = None
    erfassungs_modus: ErfassungsModus | None = None


class ArtikelResponse(ArtikelBase):
    """
    Artikel-Antwort. ``preis`` enthält bei Kundensicht bereits den
    Aufpreis, ``grundpreis`` ist immer der Listenpreis.
    """
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    grundpreis: Decimal | None = None
    aufpreis: Decimal | None = None
    created_at: datetime
    updated_at: datetime


class ArtikelListResponse(BaseModel):
    items: list[ArtikelResponse]
    total: int
    page: int
    limit: int
