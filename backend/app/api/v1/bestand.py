"""
Bestand-API - Chargen, Bewegungsjournal, Übersicht, Müll, Umbuchungen,
Reservierungen und Warnungen
"""
from datetime import date
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response

from app.api.deps import DBSession, CurrentUser, Pagination, require_role
from app.models.enums import BewegungsTyp, Lagerbereich, ReservierungStatus
from app.schemas.inventory import (
    ChargeCreate, ChargeUpdate, ChargeResponse, ChargeListResponse, ChargeAnsichtResponse,
    BewegungResponse, BewegungListResponse,
    BestandZeile, BestandUebersichtResponse,
    ZugangRequest, ZugangResponse, MuellRequest, MuellUndoRequest,
    ReservierungCreate, ReservierungUpdate, TeilerfuellungRequest,
    ReservierungResponse, ReservierungListResponse,
    UmbuchenRequest, MergeRequest, UmbuchungResponse,
    MhdWarnungZeile, MhdWarnungListResponse, UeberreserviertZeile, UeberreserviertListResponse,
    TkMismatchListResponse, WarnungenSummary,
)
from app.services.bestand_service import BestandService

router = APIRouter(prefix="/bestand", tags=["Bestand"])

LESE_ROLLEN_BESTAND = ["admin", "lager", "wareneingang", "kommissionierung", "statistik"]
SCHREIB_ROLLEN_BESTAND = ["admin", "lager", "wareneingang"]

lesen = [Depends(require_role(LESE_ROLLEN_BESTAND))]
schreiben = [Depends(require_role(SCHREIB_ROLLEN_BESTAND))]

IdempotencyKey = Header(None, alias="Idempotency-Key")


def _typen(typ: Optional[str]) -> list[BewegungsTyp] | None:
    if not typ:
        return None
    try:
        return [BewegungsTyp(t.strip()) for t in typ.split(",") if t.strip()]
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Ungültiger Bewegungstyp in '{typ}'")


def _user_id(user: dict) -> Optional[str]:
    return str(user["id"]) if user.get("id") else None


# ========================================
# CHARGEN
# ========================================

@router.get("/chargen", response_model=ChargeListResponse, dependencies=lesen)
def list_chargen(
    db: DBSession,
    pagination: Pagination,
    artikel_id: Optional[UUID] = None,
    is_tk: Optional[bool] = None,
    mhd_from: Optional[date] = None,
    mhd_to: Optional[date] = None,
    q: Optional[str] = None,
):
    """Listet Chargen, sortiert nach MHD."""
    items, total = BestandService(db).list_chargen(
        artikel_id=artikel_id,
        is_tk=is_tk,
        mhd_from=mhd_from,
        mhd_to=mhd_to,
        q=q,
        offset=pagination.offset,
        limit=pagination.limit,
    )
    return ChargeListResponse(
        items=[ChargeResponse.model_validate(c) for c in items],
        total=total,
        page=pagination.page,
        limit=pagination.limit,
    )


@router.post("/chargen", response_model=ChargeResponse, status_code=201, dependencies=schreiben)
def create_charge(data: ChargeCreate, db: DBSession):
    charge = BestandService(db).create_charge(data)
    db.commit()
    db.refresh(charge)
    return charge


@router.get("/chargen/{charge_id}", response_model=ChargeResponse, dependencies=lesen)
def get_charge(charge_id: UUID, db: DBSession):
    return BestandService(db).get_charge(charge_id)


@router.get("/chargen/{charge_id}/ansicht", response_model=ChargeAnsichtResponse, dependencies=lesen)
def charge_ansicht(charge_id: UUID, db: DBSession):
    """Charge mit Reservierungen und allen Bewegungen."""
    return BestandService(db).charge_ansicht(charge_id)


@router.patch("/chargen/{charge_id}", response_model=ChargeResponse, dependencies=schreiben)
def update_charge(charge_id: UUID, data: ChargeUpdate, db: DBSession):
    charge = BestandService(db).update_charge(charge_id, data)
    db.commit()
    db.refresh(charge)
    return charge


@router.delete("/chargen/{charge_id}", status_code=204, dependencies=schreiben)
def delete_charge(charge_id: UUID, db: DBSession):
    BestandService(db).delete_charge(charge_id)
    db.commit()


# ========================================
# BEWEGUNGEN
# ========================================

@router.get("/bewegungen", response_model=BewegungListResponse, dependencies=lesen)
def list_bewegungen(
    db: DBSession,
    von: Optional[date] = Query(None, alias="from"),
    bis: Optional[date] = Query(None, alias="to", description="inklusive (bis Tagesende)"),
    typ: Optional[str] = Query(None, description="Komma-Liste von Bewegungstypen"),
    artikel_id: Optional[UUID] = None,
    charge_id: Optional[UUID] = None,
    auftrag_id: Optional[UUID] = None,
    lagerbereich: Optional[Lagerbereich] = None,
    q: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(200, ge=1, le=500),
):
    """Journal, neueste Bewegung zuerst."""
    items, total = BestandService(db).list_bewegungen(
        offset=(page - 1) * limit,
        limit=limit,
        von=von,
        bis=bis,
        typen=_typen(typ),
        artikel_id=artikel_id,
        charge_id=charge_id,
        auftrag_id=auftrag_id,
        lagerbereich=lagerbereich,
        q=q,
    )
    return BewegungListResponse(
        items=[BewegungResponse.model_validate(b) for b in items],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/bewegungen/export", dependencies=lesen)
def export_bewegungen(
    db: DBSession,
    von: Optional[date] = Query(None, alias="from"),
    bis: Optional[date] = Query(None, alias="to"),
    typ: Optional[str] = None,
    artikel_id: Optional[UUID] = None,
    charge_id: Optional[UUID] = None,
    auftrag_id: Optional[UUID] = None,
    lagerbereich: Optional[Lagerbereich] = None,
    q: Optional[str] = None,
):
    """Bewegungen als CSV-Download (Semikolon-getrennt)."""
    csv_content, _ = BestandService(db).export_bewegungen_csv(
        von=von,
        bis=bis,
        typen=_typen(typ),
        artikel_id=artikel_id,
        charge_id=charge_id,
        auftrag_id=auftrag_id,
        lagerbereich=lagerbereich,
        q=q,
    )
    filename = f"Bewegungen_{von or 'alle'}_{bis or 'heute'}.csv"
    return Response(
        content=csv_content,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/bewegungen/{bewegung_id}", response_model=BewegungResponse, dependencies=lesen)
def get_bewegung(bewegung_id: UUID, db: DBSession):
    return BestandService(db).get_bewegung(bewegung_id)


# ========================================
# ÜBERSICHT & ZUGANG
# ========================================

@router.get("/uebersicht", response_model=BestandUebersichtResponse, dependencies=lesen)
def uebersicht(
    db: DBSession,
    pagination: Pagination,
    artikel_id: Optional[UUID] = None,
    charge_id: Optional[UUID] = None,
    lagerbereich: Optional[Lagerbereich] = None,
    q: Optional[str] = None,
    kritisch: bool = False,
    threshold_days: Optional[int] = Query(None, ge=0),
    datum: Optional[date] = Query(None, description="Bestand zum Ende dieses Tages rekonstruieren"),
):
    """
    Bestand je Artikel, Charge und Lagerbereich.

    - **warn_mhd**: ABGELAUFEN oder NAH (innerhalb threshold_days)
    - **kritisch**: nur Zeilen mit Warnung
    - **datum**: Stand aus dem Bewegungsjournal
    """
    zeilen, total = BestandService(db).uebersicht(
        artikel_id=artikel_id,
        charge_id=charge_id,
        lagerbereich=lagerbereich,
        q=q,
        kritisch=kritisch,
        threshold_days=threshold_days,
        datum=datum,
        offset=pagination.offset,
        limit=pagination.limit,
    )
    return BestandUebersichtResponse(
        items=[BestandZeile(**z) for z in zeilen],
        total=total,
        page=pagination.page,
        limit=pagination.limit,
    )


@router.post("/zugang", response_model=ZugangResponse, status_code=201, dependencies=schreiben)
def zugang(
    data: ZugangRequest,
    db: DBSession,
    user: CurrentUser,
    idempotency_key: Optional[str] = IdempotencyKey,
):
    """Manueller Zugang mit bestehender oder neuer Charge."""
    service = BestandService(db)
    service.idempotenz_pruefen(idempotency_key, "bestand/zugang")
    bewegung = service.zugang(data, user_id=_user_id(user))
    db.commit()
    db.refresh(bewegung)
    return ZugangResponse(bewegung=BewegungResponse.model_validate(bewegung), charge_id=bewegung.charge_id)


# ========================================
# MÜLL
# ========================================

@router.post("/muell", response_model=BewegungResponse, status_code=201, dependencies=schreiben)
def muell_buchen(
    data: MuellRequest,
    db: DBSession,
    user: CurrentUser,
    idempotency_key: Optional[str] = IdempotencyKey,
):
    service = BestandService(db)
    service.idempotenz_pruefen(idempotency_key, "bestand/muell")
    bewegung = service.muell_buchen(data, user_id=_user_id(user))
    db.commit()
    db.refresh(bewegung)
    return bewegung


@router.get("/muell", response_model=BewegungListResponse, dependencies=lesen)
def list_muell(
    db: DBSession,
    pagination: Pagination,
    von: Optional[date] = Query(None, alias="from"),
    bis: Optional[date] = Query(None, alias="to"),
    artikel_id: Optional[UUID] = None,
    charge_id: Optional[UUID] = None,
    q: Optional[str] = None,
):
    items, total = BestandService(db).list_muell(
        von=von,
        bis=bis,
        artikel_id=artikel_id,
        charge_id=charge_id,
        q=q,
        offset=pagination.offset,
        limit=pagination.limit,
    )
    return BewegungListResponse(
        items=[BewegungResponse.model_validate(b) for b in items],
        total=total,
        page=pagination.page,
        limit=pagination.limit,
    )


@router.post("/muell/{bewegung_id}/undo", response_model=BewegungResponse, status_code=201, dependencies=schreiben)
def muell_undo(
    bewegung_id: UUID,
    db: DBSession,
    user: CurrentUser,
    data: MuellUndoRequest | None = None,
    idempotency_key: Optional[str] = IdempotencyKey,
):
    """Macht eine Müll-Buchung einmalig rückgängig."""
    service = BestandService(db)
    service.idempotenz_pruefen(idempotency_key, f"bestand/muell/{bewegung_id}/undo")
    korrektur = service.muell_rueckgaengig(
        bewegung_id,
        begruendung=data.begruendung if data else None,
        user_id=_user_id(user),
    )
    db.commit()
    db.refresh(korrektur)
    return korrektur


# ========================================
# RESERVIERUNGEN
# ========================================

@router.post("/reservierungen", response_model=ReservierungResponse, status_code=201, dependencies=schreiben)
def create_reservierung(data: ReservierungCreate, db: DBSession, user: CurrentUser):
    reservierung = BestandService(db).reservieren(data, user_id=_user_id(user))
    db.commit()
    db.refresh(reservierung)
    return reservierung


@router.get("/reservierungen", response_model=ReservierungListResponse, dependencies=lesen)
def list_reservierungen(
    db: DBSession,
    artikel_id: Optional[UUID] = None,
    auftrag_id: Optional[UUID] = None,
    status: Optional[ReservierungStatus] = None,
):
    items = BestandService(db).list_reservierungen(artikel_id=artikel_id, auftrag_id=auftrag_id, status=status)
    return ReservierungListResponse(
        items=[ReservierungResponse.model_validate(r) for r in items],
        total=len(items),
    )


@router.delete("/reservierungen/{reservierung_id}", response_model=ReservierungResponse, dependencies=schreiben)
def release_reservierung(reservierung_id: UUID, db: DBSession, user: CurrentUser):
    """Gibt die Reservierung frei (Status AUFGELOEST)."""
    reservierung = BestandService(db).aufloesen(reservierung_id, user_id=_user_id(user))
    db.commit()
    db.refresh(reservierung)
    return reservierung


@router.get("/reservierungen/{reservierung_id}", response_model=ReservierungResponse, dependencies=lesen)
def get_reservierung(reservierung_id: UUID, db: DBSession):
    return BestandService(db).get_reservierung(reservierung_id)


@router.patch("/reservierungen/{reservierung_id}", response_model=ReservierungResponse, dependencies=schreiben)
def update_reservierung(reservierung_id: UUID, data: ReservierungUpdate, db: DBSession, user: CurrentUser):
    """Ändert eine aktive Reservierung; Mengenänderungen werden im Journal umgebucht."""
    reservierung = BestandService(db).update_reservierung(reservierung_id, data, user_id=_user_id(user))
    db.commit()
    db.refresh(reservierung)
    return reservierung


@router.post(
    "/reservierungen/{reservierung_id}/teilerfuellung",
    response_model=ReservierungResponse,
    dependencies=schreiben,
)
def teilerfuellung(reservierung_id: UUID, data: TeilerfuellungRequest, db: DBSession, user: CurrentUser):
    reservierung = BestandService(db).teil_erfuellen(reservierung_id, data.menge_erfuellt, user_id=_user_id(user))
    db.commit()
    db.refresh(reservierung)
    return reservierung


# ========================================
# UMBUCHUNG
# ========================================

def _umbuchung_antwort(ergebnis: dict) -> UmbuchungResponse:
    return UmbuchungResponse(
        weg=BewegungResponse.model_validate(ergebnis["weg"]),
        hin=BewegungResponse.model_validate(ergebnis["hin"]),
        ziel_charge_id=ergebnis["ziel_charge_id"],
    )


@router.post("/chargen/{charge_id}/umbuchen", response_model=UmbuchungResponse, status_code=201, dependencies=schreiben)
def umbuchen(
    charge_id: UUID,
    data: UmbuchenRequest,
    db: DBSession,
    user: CurrentUser,
    idempotency_key: Optional[str] = IdempotencyKey,
):
    """
    Bucht Menge in eine bestehende oder neue Charge bzw. in einen anderen Lagerbereich.
    Schreibt UMBUCHUNG_WEG an der Quelle und UMBUCHUNG_HIN am Ziel.
    """
    service = BestandService(db)
    service.idempotenz_pruefen(idempotency_key, f"bestand/chargen/{charge_id}/umbuchen")
    ergebnis = service.umbuchen(charge_id, data, user_id=_user_id(user))
    db.commit()
    return _umbuchung_antwort(ergebnis)


@router.post("/chargen/{charge_id}/merge", response_model=UmbuchungResponse, status_code=201, dependencies=schreiben)
def merge(
    charge_id: UUID,
    data: MergeRequest,
    db: DBSession,
    user: CurrentUser,
    idempotency_key: Optional[str] = IdempotencyKey,
):
    """Führt die Charge in eine andere Charge desselben Artikels über."""
    service = BestandService(db)
    service.idempotenz_pruefen(idempotency_key, f"bestand/chargen/{charge_id}/merge")
    ergebnis = service.charge_zusammenfuehren(charge_id, data, user_id=_user_id(user))
    db.commit()
    return _umbuchung_antwort(ergebnis)


# ========================================
# WARNUNGEN
# ========================================

@router.get("/warnungen/mhd", response_model=MhdWarnungListResponse, dependencies=lesen)
def warnungen_mhd(
    db: DBSession,
    pagination: Pagination,
    threshold_days: Optional[int] = Query(None, ge=0),
    nur_abgelaufen: bool = False,
    artikel_id: Optional[UUID] = None,
):
    zeilen, total = BestandService(db).warnungen_mhd(
        threshold_days=threshold_days,
        nur_abgelaufen=nur_abgelaufen,
        artikel_id=artikel_id,
        offset=pagination.offset,
        limit=pagination.limit,
    )
    return MhdWarnungListResponse(
        items=[MhdWarnungZeile(**z) for z in zeilen],
        total=total,
        page=pagination.page,
        limit=pagination.limit,
    )


@router.get("/warnungen/ueberreserviert", response_model=UeberreserviertListResponse, dependencies=lesen)
def warnungen_ueberreserviert(
    db: DBSession,
    bis_datum: Optional[date] = None,
    artikel_id: Optional[UUID] = None,
):
    """Artikel mit mehr aktiver Reservierung als verfügbarem Bestand, größte Differenz zuerst."""
    zeilen = BestandService(db).warnungen_ueberreserviert(bis_datum=bis_datum, artikel_id=artikel_id)
    return UeberreserviertListResponse(items=[UeberreserviertZeile(**z) for z in zeilen], total=len(zeilen))


@router.get("/warnungen/tk-mismatch", response_model=TkMismatchListResponse, dependencies=lesen)
def warnungen_tk_mismatch(
    db: DBSession,
    pagination: Pagination,
    von: Optional[date] = Query(None, alias="from"),
    bis: Optional[date] = Query(None, alias="to"),
    artikel_id: Optional[UUID] = None,
):
    items, total = BestandService(db).warnungen_tk_mismatch(
        von=von,
        bis=bis,
        artikel_id=artikel_id,
        offset=pagination.offset,
        limit=pagination.limit,
    )
    return TkMismatchListResponse(
        items=[BewegungResponse.model_validate(b) for b in items],
        total=total,
        page=pagination.page,
        limit=pagination.limit,
    )


@router.get("/warnungen/summary", response_model=WarnungenSummary, dependencies=lesen)
def warnungen_summary(
    db: DBSession,
    threshold_days: Optional[int] = Query(None, ge=0),
    bis_datum: Optional[date] = None,
):
    return WarnungenSummary(**BestandService(db).warnungen_summary(threshold_days=threshold_days, bis_datum=bis_datum))
