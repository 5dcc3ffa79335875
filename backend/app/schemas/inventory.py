"""
Pydantic Schemas für Lagerverwaltung (Bestand)
Chargen, Bewegungsjournal, Bestandsübersicht, Müll und Reservierungen
"""
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict

from app.models.enums import (
    BewegungsTyp, Lagerbereich, MuellGrund, ReservierungStatus, MhdWarnung,
)


# ============================================================
# CHARGE SCHEMAS
# ============================================================

class ChargeBase(BaseModel):
    """Basis-Schema für Chargen"""
    artikel_id: UUID
    mhd: date = Field(..., description="Mindesthaltbarkeitsdatum")
    schlacht_datum: date | None = None
    is_tk: bool = False
    lieferant_id: str | None = Field(None, max_length=100)


class ChargeCreate(ChargeBase):
    pass


class ChargeUpdate(BaseModel):
    mhd: date | None = None
    schlacht_datum: date | None = None
    is_tk: bool | None = None
    lieferant_id: str | None = Field(None, max_length=100)


class ChargeResponse(ChargeBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    artikel_name: str | None
    artikel_nummer: str | None
    created_at: datetime
    updated_at: datetime


class ChargeListResponse(BaseModel):
    items: list[ChargeResponse]
    total: int
    page: int
    limit: int


# ============================================================
# BEWEGUNG SCHEMAS
# ============================================================

class BewegungResponse(BaseModel):
    """Journal-Eintrag (Menge vorzeichenbehaftet)"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    timestamp: datetime
    user_id: str | None
    typ: BewegungsTyp
    artikel_id: UUID
    artikel_name: str | None
    artikel_nummer: str | None
    charge_id: UUID | None
    menge: Decimal
    lagerbereich: Lagerbereich
    auftrag_id: UUID | None
    notiz: str | None
    mhd: date | None
    schlacht_datum: date | None
    is_tk: bool | None


class BewegungListResponse(BaseModel):
    items: list[BewegungResponse]
    total: int
    page: int
    limit: int


# ============================================================
# BESTAND SCHEMAS
# ============================================================

class BestandZeile(BaseModel):
    """Zeile der Bestandsübersicht (aktuell oder rekonstruiert)"""
    id: UUID | None = None
    artikel_id: UUID
    artikel_name: str | None = None
    artikel_nummer: str | None = None
    charge_id: UUID | None = None
    lagerbereich: Lagerbereich
    verfuegbar: Decimal
    reserviert: Decimal
    unterwegs: Decimal
    mhd: date | None = None
    schlacht_datum: date | None = None
    warn_mhd: MhdWarnung | None = None
    updated_at: datetime | None = None


class BestandUebersichtResponse(BaseModel):
    items: list[BestandZeile]
    total: int
    page: int
    limit: int


class NeueCharge(BaseModel):
    """Charge, die beim manuellen Zugang mit angelegt wird"""
    mhd: date
    is_tk: bool = False
    schlacht_datum: date | None = None
    lieferant_id: str | None = Field(None, max_length=100)


class ZugangRequest(BaseModel):
    """Manueller Zugang (positive Inventurkorrektur)"""
    artikel_id: UUID
    menge: Decimal = Field(..., gt=0)
    lagerbereich: Lagerbereich
    notiz: str | None = None
    charge_id: UUID | None = None
    neue_charge: NeueCharge | None = None


class ZugangResponse(BaseModel):
    bewegung: BewegungResponse
    charge_id: UUID


# ============================================================
# MÜLL SCHEMAS
# ============================================================

class MuellRequest(BaseModel):
    """Müll-Buchung (Menge positiv, wird negativ gebucht)"""
    artikel_id: UUID
    charge_id: UUID
    menge: Decimal = Field(..., gt=0)
    lagerbereich: Lagerbereich
    grund: MuellGrund
    notiz: str | None = None


class MuellUndoRequest(BaseModel):
    begruendung: str | None = None


# ============================================================
# RESERVIERUNG SCHEMAS
# ============================================================

class ReservierungCreate(BaseModel):
    artikel_id: UUID
    auftrag_id: UUID
    charge_id: UUID | None = None
    liefer_datum: date
    menge: Decimal = Field(..., gt=0)
    lagerbereich: Lagerbereich = Lagerbereich.NON_TK


class ReservierungUpdate(BaseModel):
    """Änderung einer aktiven Reservierung (Status nur über Freigabe/Erfüllung)"""
    auftrag_id: UUID | None = None
    charge_id: UUID | None = None
    liefer_datum: date | None = None
    menge: Decimal | None = Field(None, gt=0)
    lagerbereich: Lagerbereich | None = None


class TeilerfuellungRequest(BaseModel):
    menge_erfuellt: Decimal = Field(..., gt=0)


class ReservierungResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    artikel_id: UUID
    auftrag_id: UUID
    charge_id: UUID | None
    liefer_datum: date
    menge: Decimal
    lagerbereich: Lagerbereich
    status: ReservierungStatus
    created_by: str | None
    created_at: datetime
    updated_at: datetime


class ReservierungListResponse(BaseModel):
    items: list[ReservierungResponse]
    total: int


class ChargeAnsichtResponse(BaseModel):
    """Charge mit Reservierungen und Bewegungen"""
    charge: ChargeResponse
    reservierungen: list[ReservierungResponse]
    bewegungen: list[BewegungResponse]


# ============================================================
# UMBUCHUNG SCHEMAS
# ============================================================

class UmbuchungZiel(BaseModel):
    """Ziel einer Umbuchung: bestehende Charge oder neue Charge"""
    lagerbereich: Lagerbereich
    charge_id: UUID | None = None
    neue_charge: NeueCharge | None = None


class UmbuchenRequest(BaseModel):
    """
    Umbuchung aus der Charge im Pfad.
    Ohne von_lagerbereich gilt der Lagerbereich der Quell-Charge (TK/NON_TK).
    """
    nach: UmbuchungZiel
    menge: Decimal = Field(..., gt=0)
    von_lagerbereich: Lagerbereich | None = None
    notiz: str | None = None


class UmbuchungResponse(BaseModel):
    weg: BewegungResponse
    hin: BewegungResponse
    ziel_charge_id: UUID


class MergeRequest(BaseModel):
    """Charge zusammenführen; ohne Menge wird der gesamte verfügbare Bestand umgebucht"""
    ziel_charge_id: UUID
    ziel_lagerbereich: Lagerbereich
    menge: Decimal | None = Field(None, gt=0)
    notiz: str | None = None


# ============================================================
# WARNUNG SCHEMAS
# ============================================================

class MhdWarnungZeile(BaseModel):
    """Charge mit MHD-Warnung, Bestand über alle Lagerbereiche summiert"""
    artikel_id: UUID
    artikel_name: str | None = None
    artikel_nummer: str | None = None
    charge_id: UUID
    mhd: date
    schlacht_datum: date | None = None
    verfuegbar: Decimal
    reserviert: Decimal
    unterwegs: Decimal
    warn_typ: MhdWarnung


class MhdWarnungListResponse(BaseModel):
    items: list[MhdWarnungZeile]
    total: int
    page: int
    limit: int


class UeberreserviertZeile(BaseModel):
    artikel_id: UUID
    artikel_name: str | None = None
    artikel_nummer: str | None = None
    verfuegbar: Decimal
    reserviert: Decimal
    diff: Decimal


class UeberreserviertListResponse(BaseModel):
    items: list[UeberreserviertZeile]
    total: int


class TkMismatchListResponse(BaseModel):
    """Bewegungen, deren TK-Kennzeichen nicht zum Lagerbereich passt"""
    items: list[BewegungResponse]
    total: int
    page: int
    limit: int


class WarnungenSummary(BaseModel):
    mhd_total: int
    mhd_abgelaufen: int
    ueberreserviert_total: int
    tk_mismatch_total: int
