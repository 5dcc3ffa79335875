"""
Pydantic Schemas für Login, Mitarbeiter und Verkäufer
"""
from datetime import date, datetime
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict, EmailStr, model_validator

from app.models.enums import Rolle


# ============================================================
# LOGIN SCHEMAS
# ============================================================

class LoginRequest(BaseModel):
    """Anmeldung per E-Mail (Kunde) oder Name (Mitarbeiter)"""
    email: str | None = Field(None, max_length=200)
    name: str | None = Field(None, max_length=100)
    password: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def email_oder_name(self):
        if not (self.email or self.name):
            raise ValueError("E-Mail oder Name erforderlich")
        return self


class TokenUser(BaseModel):
    """Inhalt des Tokens"""
    id: str
    role: list[str]
    exp: int


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: TokenUser


class TokenCheckResponse(BaseModel):
    valid: bool
    user: TokenUser


# ============================================================
# MITARBEITER SCHEMAS
# ============================================================

class MitarbeiterBase(BaseModel):
    """Basis-Schema für Mitarbeiter"""
    email: EmailStr | None = None
    telefon: str | None = Field(None, max_length=50)
    abteilung: str | None = Field(None, max_length=100)
    bemerkung: str | None = None
    eintrittsdatum: date | None = None
    aktiv: bool = True
    rollen: list[str] = Field(default_factory=list, description="Unbekannte Rollen werden verworfen")


class MitarbeiterCreate(MitarbeiterBase):
    """Schema zum Anlegen eines Mitarbeiters"""
    name: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=6)


class MitarbeiterUpdate(BaseModel):
    """Schema zum Aktualisieren eines Mitarbeiters (Passwort separat)"""
    name: str | None = Field(None, min_length=1, max_length=100)
    email: EmailStr | None = None
    telefon: str | None = Field(None, max_length=50)
    abteilung: str | None = Field(None, max_length=100)
    bemerkung: str | None = None
    eintrittsdatum: date | None = None
    aktiv: bool | None = None
    rollen: list[str] | None = None


class MitarbeiterResponse(BaseModel):
    """Schema für Mitarbeiter-Antwort (ohne Passwort)"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str | None
    telefon: str | None
    abteilung: str | None
    bemerkung: str | None
    eintrittsdatum: date | None
    aktiv: bool
    rollen: list[Rolle]
    created_at: datetime
    updated_at: datetime


class MitarbeiterListResponse(BaseModel):
    items: list[MitarbeiterResponse]
    total: int


class PasswortRequest(BaseModel):
    # Länge prüft der Service, damit der Fehler 400 statt 422 ergibt
    password: str


# ============================================================
# VERKÄUFER SCHEMAS
# ============================================================

class VerkaeuferCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=6)
    admin: bool = False


class VerkaeuferUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    password: str | None = Field(None, min_length=6)
    admin: bool | None = None


class VerkaeuferResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    admin: bool
    created_at: datetime


class VerkaeuferListResponse(BaseModel):
    items: list[VerkaeuferResponse]
    total: int
