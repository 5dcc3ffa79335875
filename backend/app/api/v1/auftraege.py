"""
Auftrags-API - Bestellungen, Statuswechsel und Sichtbarkeit je Rolle
"""
from datetime import date
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.deps import (
    DBSession, CurrentUser, AdminUser, Pagination, LESE_ROLLEN,
    has_role, require_role, require_self_or_role,
)
from app.models.enums import AuftragStatus, KommissioniertStatus, KontrolliertStatus
from app.schemas.auftrag import (
    AuftragCreate, AuftragUpdate, AuftragResponse, AuftragDetailResponse,
    AuftragListResponse, LetzteArtikelResponse,
)
from app.services.auftrag_service import AuftragService
from app.services.benutzer import benutzer_uuid

router = APIRouter(prefix="/auftraege", tags=["Aufträge"])


def _status_liste(status_in: Optional[str]) -> list[AuftragStatus] | None:
    if not status_in:
        return None
    try:
        return [AuftragStatus(s.strip()) for s in status_in.split(",") if s.strip()]
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Ungültiger Status in '{status_in}'")


def _kunde_fuer(user: dict, kunde: Optional[UUID]) -> UUID | None:
    """Admins wählen den Kunden per ?kunde=, alle anderen sind selbst gemeint"""
    if has_role(user, "admin") and kunde:
        return kunde
    return benutzer_uuid(user)


# ========================================
# ANLEGEN & LISTEN
# ========================================

@router.post("", response_model=AuftragDetailResponse, status_code=201)
def create_auftrag(data: AuftragCreate, db: DBSession, user: CurrentUser):
    """
    Legt einen Auftrag mit Positionen an.

    - Nicht-Admins bestellen immer für sich selbst
    - Mit Lieferdatum wird der Auftrag der Standard-Tour zugeordnet
    - Verstößt das Lieferdatum gegen die Regionsregel, wird nichts gespeichert
    """
    auftrag = AuftragService(db).create(data, user)
    db.commit()
    db.refresh(auftrag)
    return auftrag


@router.get("", response_model=AuftragListResponse)
def list_auftraege(
    db: DBSession,
    user: AdminUser,
    pagination: Pagination,
    status: Optional[AuftragStatus] = None,
    status_in: Optional[str] = Query(None, description="Komma-Liste von Status"),
    kunde: Optional[UUID] = None,
    auftragsnummer: Optional[str] = None,
    q: Optional[str] = None,
    lieferdatum_von: Optional[date] = None,
    lieferdatum_bis: Optional[date] = None,
    kommissioniert_status: Optional[KommissioniertStatus] = None,
    kontrolliert_status: Optional[KontrolliertStatus] = None,
    kommissioniert_von: Optional[UUID] = None,
    kontrolliert_von: Optional[UUID] = None,
    has_tour: Optional[bool] = None,
    sort: str = "createdAtDesc",
):
    items, total = AuftragService(db).list_auftraege(
        status=status,
        status_in=_status_liste(status_in),
        kunde_id=kunde,
        auftragsnummer=auftragsnummer,
        q=q,
        lieferdatum_von=lieferdatum_von,
        lieferdatum_bis=lieferdatum_bis,
        kommissioniert_status=kommissioniert_status,
        kontrolliert_status=kontrolliert_status,
        kommissioniert_von=kommissioniert_von,
        kontrolliert_von=kontrolliert_von,
        has_tour=has_tour,
        sort=sort,
        offset=pagination.offset,
        limit=pagination.limit,
    )
    return AuftragListResponse(
        items=[AuftragResponse.model_validate(a) for a in items],
        total=total,
        page=pagination.page,
        limit=pagination.limit,
    )


@router.get("/letzte", response_model=Optional[AuftragDetailResponse])
def letzter_auftrag(db: DBSession, user: CurrentUser, kunde: Optional[UUID] = None):
    """Letzter Auftrag des Kunden mit Positionen (null, wenn keiner existiert)."""
    kunde_id = _kunde_fuer(user, kunde)
    if not kunde_id:
        return None
    return AuftragService(db).letzter_auftrag(kunde_id)


@router.get("/letzte-artikel", response_model=LetzteArtikelResponse)
def letzte_artikel(db: DBSession, user: CurrentUser, kunde: Optional[UUID] = None):
    kunde_id = _kunde_fuer(user, kunde)
    ids = AuftragService(db).letzte_artikel(kunde_id) if kunde_id else []
    return LetzteArtikelResponse(artikel_ids=ids)


@router.get(
    "/in-bearbeitung",
    response_model=list[AuftragResponse],
    dependencies=[Depends(require_role(["admin", "kommissionierung", "kontrolle"]))],
)
def in_bearbeitung(db: DBSession, user: CurrentUser):
    return AuftragService(db).in_bearbeitung(user)


@router.get("/kunden/{kunde_id}", response_model=list[AuftragResponse])
def auftraege_fuer_kunde(kunde_id: UUID, db: DBSession, user: CurrentUser):
    require_self_or_role(user, kunde_id, *LESE_ROLLEN)
    return AuftragService(db).fuer_kunde(kunde_id)


@router.delete("/all", status_code=200)
def delete_all_auftraege(db: DBSession, user: AdminUser):
    anzahl = AuftragService(db).delete_all()
    db.commit()
    return {"deleted": anzahl}


# ========================================
# EINZELNER AUFTRAG
# ========================================

@router.get("/{auftrag_id}", response_model=AuftragDetailResponse)
def get_auftrag(auftrag_id: UUID, db: DBSession, user: CurrentUser):
    """Auftrag mit Positionen; Sichtbarkeit hängt von Rolle und Bearbeitungsstand ab."""
    return AuftragService(db).get_sichtbar(auftrag_id, user)


@router.put("/{auftrag_id}", response_model=AuftragDetailResponse)
def update_auftrag(auftrag_id: UUID, data: AuftragUpdate, db: DBSession, user: CurrentUser):
    """
    Aktualisiert einen Auftrag.

    Admins dürfen alles, Kommissionierung/Kontrolle/Fahrer nur ihren Status,
    Kunden Bemerkungen und Lieferdatum des eigenen Auftrags ohne Lieferdatum.
    """
    auftrag = AuftragService(db).update(auftrag_id, data, user)
    db.commit()
    db.refresh(auftrag)
    return auftrag


@router.put("/{auftrag_id}/in-bearbeitung", response_model=AuftragDetailResponse)
def set_in_bearbeitung(auftrag_id: UUID, db: DBSession, user: AdminUser):
    auftrag = AuftragService(db).in_bearbeitung_setzen(auftrag_id)
    db.commit()
    db.refresh(auftrag)
    return auftrag


@router.delete("/{auftrag_id}", status_code=204)
def delete_auftrag(auftrag_id: UUID, db: DBSession, user: AdminUser):
    AuftragService(db).delete(auftrag_id)
    db.commit()
