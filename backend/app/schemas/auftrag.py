"""
Pydantic Schemas für Aufträge und Artikelpositionen
"""
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict

from app.models.enums import (
    AuftragStatus, KommissioniertStatus, KontrolliertStatus, BeladeStatus,
    Zahlstatus, Einheit,
)


# ============================================================
# ARTIKELPOSITION SCHEMAS
# ============================================================

class Leergut(BaseModel):
    """Leergut an einer Position (z.B. Kisten, Paletten)"""
    leergut_art: str = Field(..., min_length=1, max_length=100)
    leergut_anzahl: int = Field(..., ge=0)
    leergut_gewicht: float = Field(0, ge=0, description="Gewicht je Stück in kg")


class ArtikelPositionBase(BaseModel):
    artikel_id: UUID
    menge: Decimal = Field(..., gt=0)
    einheit: Einheit = Einheit.STUECK
    zerlegung: bool = False
    vakuum: bool = False
    bemerkung: str | None = None
    zerlege_bemerkung: str | None = None


class ArtikelPositionCreate(ArtikelPositionBase):
    """Neue Position, optional direkt an einem Auftrag"""
    auftrag_id: UUID | None = None


class ArtikelPositionInAuftrag(ArtikelPositionBase):
    """Position beim Anlegen eines Auftrags"""
    pass


class ArtikelPositionUpdate(BaseModel):
    """Stammfelder einer Position"""
    artikel_id: UUID | None = None
    menge: Decimal | None = Field(None, gt=0)
    einheit: Einheit | None = None
    zerlegung: bool | None = None
    vakuum: bool | None = None
    bemerkung: str | None = None
    zerlege_bemerkung: str | None = None


class KommissionierungUpdate(BaseModel):
    """Felder, die bei der Kommissionierung erfasst werden"""
    kommissioniert_menge: Decimal | None = Field(None, ge=0)
    kommissioniert_einheit: Einheit | None = None
    kommissioniert_bemerkung: str | None = None
    bruttogewicht: Decimal | None = Field(None, ge=0)
    leergut: list[Leergut] | None = None
    chargennummern: list[str] | None = None


class KontrolleUpdate(BaseModel):
    kontrolliert: bool = True


class ArtikelPositionResponse(BaseModel):
    """Schema für Positions-Antwort"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    auftrag_id: UUID | None
    artikel_id: UUID
    artikel_name: str | None
    menge: Decimal
    einheit: Einheit
    einzelpreis: Decimal
    gesamtgewicht: Decimal
    gesamtpreis: Decimal
    zerlegung: bool
    vakuum: bool
    bemerkung: str | None
    zerlege_bemerkung: str | None

    kommissioniert_menge: Decimal | None
    kommissioniert_einheit: Einheit | None
    kommissioniert_bemerkung: str | None
    kommissioniert_von: UUID | None
    kommissioniert_von_name: str | None
    kommissioniert_am: datetime | None
    bruttogewicht: Decimal | None
    nettogewicht: Decimal | None
    leergut: list[Leergut] = []
    chargennummern: list[str] = []
    fehlmenge: bool

    kontrolliert: bool
    kontrolliert_von: UUID | None
    kontrolliert_von_name: str | None
    kontrolliert_am: datetime | None

    created_at: datetime
    updated_at: datetime


class ArtikelPositionListResponse(BaseModel):
    items: list[ArtikelPositionResponse]
    total: int


# ============================================================
# AUFTRAG SCHEMAS
# ============================================================

class AuftragCreate(BaseModel):
    """Neuer Auftrag; Nicht-Admins bestellen immer für sich selbst"""
    kunde_id: UUID | None = None
    lieferdatum: date | None = None
    bemerkungen: str | None = None
    positionen: list[ArtikelPositionInAuftrag] = Field(default_factory=list)


class AuftragUpdate(BaseModel):
    """
    Änderbare Felder eines Auftrags.
    Welche Felder ein Benutzer setzen darf, hängt von seinen Rollen ab.
    """
    status: AuftragStatus | None = None
    lieferdatum: date | None = None
    bemerkungen: str | None = None
    bearbeiter: str | None = Field(None, max_length=100)
    gesamt_paletten: int | None = Field(None, ge=0)
    gesamt_boxen: int | None = Field(None, ge=0)
    kommissioniert_status: KommissioniertStatus | None = None
    kontrolliert_status: KontrolliertStatus | None = None
    belade_status: BeladeStatus | None = None
    fahrer: str | None = Field(None, max_length=100)
    fahrzeug: str | None = Field(None, max_length=100)
    zahlstatus: Zahlstatus | None = None
    offen_betrag: Decimal | None = Field(None, ge=0)
    zahlungs_datum: date | None = None


class AuftragResponse(BaseModel):
    """Schema für Auftrags-Antwort (ohne Positionen)"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    auftragsnummer: str
    kunde_id: UUID
    kunde_name: str | None
    status: AuftragStatus
    lieferdatum: date | None
    bemerkungen: str | None
    bearbeiter: str | None
    gewicht: Decimal
    preis: Decimal
    gesamt_paletten: int | None
    gesamt_boxen: int | None

    kommissioniert_status: KommissioniertStatus | None
    kommissioniert_von: UUID | None
    kommissioniert_von_name: str | None
    kommissioniert_startzeit: datetime | None
    kommissioniert_endzeit: datetime | None
    kontrolliert_status: KontrolliertStatus | None
    kontrolliert_von: UUID | None
    kontrolliert_von_name: str | None
    kontrolliert_zeit: datetime | None
    belade_status: BeladeStatus | None
    belade_von: UUID | None
    belade_von_name: str | None
    belade_zeit: datetime | None
    fahrer: str | None
    fahrzeug: str | None

    tour_id: UUID | None
    tour_stop_id: UUID | None

    zahlstatus: Zahlstatus | None
    offen_betrag: Decimal | None
    zahlungs_datum: date | None

    created_at: datetime
    updated_at: datetime


class AuftragDetailResponse(AuftragResponse):
    """Auftrag inklusive Positionen"""
    positionen: list[ArtikelPositionResponse] = []


class AuftragListResponse(BaseModel):
    items: list[AuftragResponse]
    total: int
    page: int
    limit: int


class LetzteArtikelResponse(BaseModel):
    artikel_ids: list[UUID]
