"""
Pydantic Schemas für Kunden und kundenspezifische Aufpreise
"""
from datetime import datetime
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict, EmailStr, field_validator


# ============================================================
# KUNDE SCHEMAS
# ============================================================

class KundeBase(BaseModel):
    """Basis-Schema für Kunden"""
    name: str = Field(..., min_length=1, max_length=200, description="Firmen- oder Kundenname")
    kunden_nr: str = Field(..., min_length=1, max_length=30, description="Kundennummer")
    email: EmailStr = Field(..., description="Login-E-Mail")
    adresse: str | None = Field(None, description="Lieferadresse")
    telefon: str | None = Field(None, max_length=50)
    ansprechpartner: str | None = Field(None, max_length=200)
    region: str | None = Field(None, max_length=100, description="Lieferregion")
    lieferzeit: str | None = Field(None, max_length=100)
    kategorie: str | None = Field(None, max_length=100)
    ust_id: str | None = Field(None, max_length=20)
    fehlmengen_benachrichtigung: bool = False

    @field_validator("region")
    @classmethod
    def strip_region(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else None


class KundeRegistrieren(KundeBase):
    """Selbstregistrierung (immer ungenehmigt)"""
    password: str = Field(..., min_length=6)


class KundeCreate(KundeBase):
    """Anlage durch Admin"""
    password: str = Field(..., min_length=6)
    is_approved: bool = False


class KundeUpdate(BaseModel):
    """Schema zum Aktualisieren eines Kunden"""
    name: str | None = Field(None, min_length=1, max_length=200)
    kunden_nr: str | None = Field(None, min_length=1, max_length=30)
    email: EmailStr | None = None
    password: str | None = Field(None, min_length=6)
    adresse: str | None = None
    telefon: str | None = Field(None, max_length=50)
    ansprechpartner: str | None = Field(None, max_length=200)
    region: str | None = Field(None, max_length=100)
    lieferzeit: str | None = Field(None, max_length=100)
    kategorie: str | None = Field(None, max_length=100)
    ust_id: str | None = Field(None, max_length=20)
    fehlmengen_benachrichtigung: bool | None = None
    is_approved: bool | None = None

    @field_validator("region")
    @classmethod
    def strip_region(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else None


class KundeResponse(BaseModel):
    """Schema für Kunden-Antwort (ohne Passwort)"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    kunden_nr: str
    email: str
    adresse: str | None
    telefon: str | None
    ansprechpartner: str | None
    region: str | None
    lieferzeit: str | None
    kategorie: str | None
    ust_id: str | None
    is_approved: bool
    fehlmengen_benachrichtigung: bool
    favoriten: list[str] = []
    created_at: datetime
    updated_at: datetime


class KundeListResponse(BaseModel):
    """Schema für Kundenliste"""
    items: list[KundeResponse]
    total: int
    page: int
    limit: int


class FreigabeRequest(BaseModel):
    is_approved: bool = True


class FavoritenResponse(BaseModel):
    kunde_id: UUID
    favoriten: list[str]


# ============================================================
# KUNDENPREIS SCHEMAS
# ============================================================

class KundenPreisCreate(BaseModel):
    """Aufpreis pro kg für einen Kunden und Artikel (negativ = Rabatt)"""
    artikel_id: UUID
    kunde_id: UUID
    aufpreis: Decimal = Field(Decimal("0"), description="Aufpreis in EUR/kg")


class KundenPreisUpdate(BaseModel):
    aufpreis: Decimal


class KundenPreisResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    artikel_id: UUID
    kunde_id: UUID
    aufpreis: Decimal
    created_at: datetime
    updated_at: datetime

    # Angereicherte Felder
    kunde_name: str | None = None
    artikel_name: str | None = None


class KundenPreisListResponse(BaseModel):
    items: list[KundenPreisResponse]
    total: int


class EffektiverAufpreis(BaseModel):
    """Wirksamer Aufpreis; id = "default", wenn keiner hinterlegt ist"""
    id: str
    aufpreis: Decimal
