"""
Pydantic Schemas für Touren, Tour-Stopps, Regionsregeln und Reihenfolge-Vorlagen
"""
import re
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict, field_validator

from app.models.enums import TourStatus, StopStatus, FehlgrundCode
from app.models.tour import WOCHENTAGE


# ============================================================
# TOUR-STOP SCHEMAS
# ============================================================

class Fehlgrund(BaseModel):
    """Grund einer fehlgeschlagenen Zustellung"""
    code: FehlgrundCode
    text: str | None = Field(None, max_length=500)


class LeergutMitnahme(BaseModel):
    """Vom Fahrer mitgenommenes Leergut"""
    art: str = Field(..., min_length=1, max_length=100)
    anzahl: int = Field(..., ge=0)
    gewicht_kg: float | None = Field(None, ge=0)


class TourStopCreate(BaseModel):
    """Schema zum Anlegen eines Stopps (Position = Ende der Tour)"""
    tour_id: UUID
    auftrag_id: UUID
    kunde_id: UUID | None = None
    kunde_name: str | None = Field(None, max_length=200)
    kunde_adresse: str | None = None
    gewicht_kg: Decimal | None = Field(None, ge=0, description="Nur falls der Auftrag kein Gewicht hat")
    status: StopStatus = StopStatus.OFFEN
    fehlgrund: Fehlgrund | None = None
    signatur_png_base64: str | None = None
    sign_timestamp_utc: datetime | None = None
    signed_by_name: str | None = Field(None, max_length=200)
    leergut_mitnahme: list[LeergutMitnahme] = Field(default_factory=list)


class TourStopUpdate(BaseModel):
    """Schema zum Aktualisieren eines Stopps"""
    position: int | None = Field(None, ge=1)
    gewicht_kg: Decimal | None = Field(None, ge=0)
    kunde_name: str | None = Field(None, max_length=200)
    kunde_adresse: str | None = None
    status: StopStatus | None = None
    fehlgrund: Fehlgrund | None = None
    signatur_png_base64: str | None = None
    sign_timestamp_utc: datetime | None = None
    signed_by_name: str | None = Field(None, max_length=200)
    leergut_mitnahme: list[LeergutMitnahme] | None = None


class TourStopMoveRequest(BaseModel):
    """Drag&Drop: Stopp in eine (andere) Tour an einen Index verschieben"""
    to_tour_id: UUID
    target_index: int | None = Field(None, ge=0, description="0-basierter Zielindex")


class TourStopResponse(BaseModel):
    """Schema für Stopp-Antwort"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tour_id: UUID
    auftrag_id: UUID
    kunde_id: UUID | None
    kunde_name: str | None
    kunde_adresse: str | None
    position: int
    gewicht_kg: Decimal | None
    status: StopStatus
    fehlgrund: Fehlgrund | None
    signatur_png_base64: str | None
    sign_timestamp_utc: datetime | None
    signed_by_name: str | None
    leergut_mitnahme: list[LeergutMitnahme] = []
    abgeschlossen_am: datetime | None
    created_at: datetime
    updated_at: datetime


class TourStopListResponse(BaseModel):
    items: list[TourStopResponse]
    total: int


# ============================================================
# TOUR SCHEMAS
# ============================================================

class TourBase(BaseModel):
    """Basis-Schema für Tour"""
    datum: date = Field(..., description="Liefertag")
    region: str = Field(..., min_length=1, max_length=100, description="Region")
    name: str | None = Field(None, max_length=200)
    fahrzeug_id: UUID | None = None
    fahrer_id: UUID | None = None
    max_gewicht_kg: Decimal | None = Field(None, ge=0, description="Überschreibt die Fahrzeug-Kapazität")
    status: TourStatus = TourStatus.GEPLANT
    reihenfolge_vorlage_id: UUID | None = None
    is_standard: bool = False
    parent_tour_id: UUID | None = None
    split_index: int | None = Field(None, ge=0)


class TourCreate(TourBase):
    """Schema zum Erstellen einer Tour"""
    pass


class TourUpdate(BaseModel):
    """Schema zum Aktualisieren einer Tour"""
    datum: date | None = None
    region: str | None = Field(None, min_length=1, max_length=100)
    name: str | None = Field(None, max_length=200)
    fahrzeug_id: UUID | None = None
    fahrer_id: UUID | None = None
    max_gewicht_kg: Decimal | None = Field(None, ge=0)
    status: TourStatus | None = None
    reihenfolge_vorlage_id: UUID | None = None
    is_standard: bool | None = None
    parent_tour_id: UUID | None = None
    split_index: int | None = Field(None, ge=0)


class TourResponse(TourBase):
    """Schema für Tour-Antwort"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    belegtes_gewicht_kg: Decimal
    over_capacity_flag: bool
    archiviert_am: datetime | None
    created_at: datetime
    updated_at: datetime


class TourDetailResponse(TourResponse):
    """Tour mit Stopps in Reihenfolge"""
    stops: list[TourStopResponse] = []


class TourListResponse(BaseModel):
    """Schema für Tour-Liste"""
    items: list[TourResponse]
    total: int
    page: int
    limit: int


class TourReihenfolgeRequest(BaseModel):
    """Neue Reihenfolge aller Stopps einer Tour"""
    stop_ids: list[UUID] = Field(..., description="Alle Stopp-IDs der Tour in neuer Reihenfolge")


# ============================================================
# REGION RULE SCHEMAS
# ============================================================

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _wochentage_normalisieren(tage: list[int]) -> list[int]:
    if any(t < 1 or t > 7 for t in tage):
        raise ValueError("Wochentage müssen zwischen 1 (Montag) und 7 (Sonntag) liegen")
    ergebnis = sorted(set(tage))
    if not ergebnis:
        raise ValueError("Mindestens ein Wochentag erforderlich")
    return ergebnis


def _cutoff_pruefen(wert: str | None) -> str | None:
    if wert is None:
        return None
    wert = wert.strip()
    if not _HHMM.match(wert):
        raise ValueError("order_cutoff muss im Format HH:mm sein")
    return wert


class RegionRuleCreate(BaseModel):
    """Schema zum Anlegen einer Regionsregel"""
    region: str = Field(..., min_length=1, max_length=100)
    allowed_weekdays: list[int] = Field(..., description="1=Montag ... 7=Sonntag")
    order_cutoff: str | None = Field(None, description="Bestellschluss HH:mm")
    exception_dates: list[date] = Field(default_factory=list)
    is_active: bool = True

    @field_validator("region")
    @classmethod
    def strip_region(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Region darf nicht leer sein")
        return v

    @field_validator("allowed_weekdays")
    @classmethod
    def validate_weekdays(cls, v: list[int]) -> list[int]:
        return _wochentage_normalisieren(v)

    @field_validator("order_cutoff")
    @classmethod
    def validate_cutoff(cls, v: str | None) -> str | None:
        return _cutoff_pruefen(v)


class RegionRuleUpdate(BaseModel):
    """Schema zum Aktualisieren einer Regionsregel"""
    region: str | None = Field(None, min_length=1, max_length=100)
    allowed_weekdays: list[int] | None = None
    order_cutoff: str | None = None
    exception_dates: list[date] | None = None
    is_active: bool | None = None

    @field_validator("region")
    @classmethod
    def strip_region(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else None

    @field_validator("allowed_weekdays")
    @classmethod
    def validate_weekdays(cls, v: list[int] | None) -> list[int] | None:
        return _wochentage_normalisieren(v) if v is not None else None

    @field_validator("order_cutoff")
    @classmethod
    def validate_cutoff(cls, v: str | None) -> str | None:
        return _cutoff_pruefen(v)


class RegionRuleResponse(BaseModel):
    """Schema für Regionsregel-Antwort"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    region: str
    allowed_weekdays: list[int]
    erlaubte_tage: list[str]
    order_cutoff: str | None
    exception_dates: list[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime


class RegionRuleListResponse(BaseModel):
    items: list[RegionRuleResponse]
    total: int
    page: int
    limit: int


# ============================================================
# REIHENFOLGE-VORLAGE SCHEMAS
# ============================================================

class KundenReihenfolgeEintrag(BaseModel):
    kunde_id: UUID
    position: int


class ReihenfolgeVorlageCreate(BaseModel):
    """Schema zum Anlegen einer Reihenfolge-Vorlage"""
    name: str = Field(..., min_length=1, max_length=200)
    region: str | None = Field(None, max_length=100)
    kunden_ids_in_reihenfolge: list[UUID] = Field(default_factory=list)
    tage: list[str] | None = Field(None, description="Wochentage (deutsch), für die die Vorlage gilt")
    aktiv: bool = True

    @field_validator("region")
    @classmethod
    def strip_region(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else None

    @field_validator("tage")
    @classmethod
    def validate_tage(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return None
        unbekannt = [t for t in v if t not in WOCHENTAGE]
        if unbekannt:
            raise ValueError(f"Unbekannte Wochentage: {', '.join(unbekannt)}")
        return v


class ReihenfolgeVorlageUpdate(BaseModel):
    """Schema zum Aktualisieren einer Reihenfolge-Vorlage"""
    name: str | None = Field(None, min_length=1, max_length=200)
    region: str | None = Field(None, max_length=100)
    kunden_ids_in_reihenfolge: list[UUID] | None = None
    tage: list[str] | None = None
    aktiv: bool | None = None

    @field_validator("region")
    @classmethod
    def strip_region(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else None

    @field_validator("tage")
    @classmethod
    def validate_tage(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return None
        unbekannt = [t for t in v if t not in WOCHENTAGE]
        if unbekannt:
            raise ValueError(f"Unbekannte Wochentage: {', '.join(unbekannt)}")
        return v


class ReihenfolgeVorlageResponse(BaseModel):
    """Schema für Vorlagen-Antwort"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    region: str | None
    kunden_reihenfolge: list[KundenReihenfolgeEintrag]
    tage: list[str] | None
    aktiv: bool
    created_at: datetime
    updated_at: datetime


class ReihenfolgeVorlageListResponse(BaseModel):
    items: list[ReihenfolgeVorlageResponse]
    total: int
    page: int
    limit: int
