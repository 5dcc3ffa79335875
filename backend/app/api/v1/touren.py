"""
Touren-API - Liefertouren, Stopps und Drag&Drop-Reihenfolge
"""
from datetime import date
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.deps import DBSession, CurrentUser, AdminUser, require_role, has_role
from app.models.enums import TourStatus
from app.schemas.tour import (
    TourCreate, TourUpdate, TourResponse, TourDetailResponse, TourListResponse,
    TourReihenfolgeRequest,
    TourStopCreate, TourStopUpdate, TourStopMoveRequest, TourStopResponse, TourStopListResponse,
)
from app.services.tour_service import TourService, TourStopService

router = APIRouter(prefix="/touren", tags=["Touren"])
stops_router = APIRouter(prefix="/tour-stops", tags=["Tour-Stopps"])


def _status_filter(status: list[str] | None) -> list[TourStatus] | None:
    """Akzeptiert ?status=a,b ebenso wie ?status=a&status=b"""
    if not status:
        return None
    werte = [s.strip() for eintrag in status for s in eintrag.split(",") if s.strip()]
    try:
        return [TourStatus(w) for w in werte]
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Ungültiger Tour-Status: {', '.join(werte)}")


# ========================================
# TOUREN
# ========================================

@router.post("", response_model=TourResponse, status_code=201)
def create_tour(data: TourCreate, db: DBSession, user: AdminUser):
    """Erstellt eine Tour; das Überlast-Flag wird direkt berechnet."""
    tour = TourService(db).create_tour(data)
    db.commit()
    db.refresh(tour)
    return tour


@router.get("", response_model=TourListResponse)
def list_touren(
    db: DBSession,
    user: CurrentUser,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    region: Optional[str] = None,
    status: Optional[list[str]] = Query(None),
    fahrzeug_id: Optional[UUID] = None,
    fahrer_id: Optional[UUID] = None,
    is_standard: Optional[bool] = None,
    q: Optional[str] = None,
    sort: str = Query("datumAsc", pattern="^(datumAsc|datumDesc|createdDesc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
):
    """
    Listet Touren.

    - **date_from/date_to**: inklusive
    - **status**: Komma-Liste oder mehrfach angegeben
    - **sort**: datumAsc (Standard), datumDesc, createdDesc
    """
    items, total = TourService(db).list_touren(
        date_from=date_from,
        date_to=date_to,
        region=region,
        status=_status_filter(status),
        fahrzeug_id=fahrzeug_id,
        fahrer_id=fahrer_id,
        is_standard=is_standard,
        q=q,
        sort=sort,
        offset=(page - 1) * limit,
        limit=limit,
    )
    return TourListResponse(
        items=[TourResponse.model_validate(t) for t in items],
        total=total,
        page=page,
        limit=limit,
    )


@router.delete("/all", status_code=200)
def delete_all_touren(db: DBSession, user: AdminUser):
    anzahl = TourService(db).delete_all_touren()
    db.commit()
    return {"deleted": anzahl}


@router.get("/{tour_id}", response_model=TourDetailResponse)
def get_tour(tour_id: UUID, db: DBSession, user: CurrentUser):
    """Tour mit Stopps in Reihenfolge."""
    return TourService(db).get_tour(tour_id)


@router.patch("/{tour_id}", response_model=TourResponse)
def update_tour(tour_id: UUID, data: TourUpdate, db: DBSession, user: AdminUser):
    tour = TourService(db).update_tour(tour_id, data)
    db.commit()
    db.refresh(tour)
    return tour


@router.post("/{tour_id}/archivieren", response_model=TourResponse)
def archivieren(tour_id: UUID, db: DBSession, user: AdminUser):
    tour = TourService(db).archivieren(tour_id)
    db.commit()
    db.refresh(tour)
    return tour


@router.post("/{tour_id}/reaktivieren", response_model=TourResponse)
def reaktivieren(tour_id: UUID, db: DBSession, user: AdminUser):
    tour = TourService(db).reaktivieren(tour_id)
    db.commit()
    db.refresh(tour)
    return tour


@router.put("/{tour_id}/reihenfolge", response_model=TourDetailResponse)
def set_reihenfolge(tour_id: UUID, data: TourReihenfolgeRequest, db: DBSession, user: AdminUser):
    """
    Drag&Drop: setzt die komplette Reihenfolge.
    stop_ids muss genau die Stopps der Tour enthalten.
    """
    tour = TourService(db).reihenfolge_setzen(tour_id, data.stop_ids)
    db.commit()
    db.refresh(tour)
    return tour


@router.delete("/{tour_id}", status_code=204)
def delete_tour(tour_id: UUID, db: DBSession, user: AdminUser):
    TourService(db).delete_tour(tour_id)
    db.commit()


# ========================================
# TOUR-STOPPS
# ========================================

@stops_router.post("", response_model=TourStopResponse, status_code=201)
def create_stop(data: TourStopCreate, db: DBSession, user: AdminUser):
    """Hängt einen Stopp ans Ende der Tour; das Gewicht kommt aus dem Auftrag."""
    stop = TourStopService(db).create_stop(data)
    db.commit()
    db.refresh(stop)
    return stop


@stops_router.get("", response_model=TourStopListResponse)
def list_stops(
    db: DBSession,
    user: CurrentUser,
    tour_id: Optional[UUID] = None,
    auftrag_id: Optional[UUID] = None,
    kunde_id: Optional[UUID] = None,
):
    items = TourStopService(db).list_stops(tour_id=tour_id, auftrag_id=auftrag_id, kunde_id=kunde_id)
    return TourStopListResponse(
        items=[TourStopResponse.model_validate(s) for s in items],
        total=len(items),
    )


@stops_router.delete("/all", status_code=200)
def delete_all_stops(db: DBSession, user: AdminUser):
    anzahl = TourStopService(db).delete_all_stops()
    db.commit()
    return {"deleted": anzahl}


@stops_router.get("/{stop_id}", response_model=TourStopResponse)
def get_stop(stop_id: UUID, db: DBSession, user: CurrentUser):
    return TourStopService(db).get_stop(stop_id)


@stops_router.patch(
    "/{stop_id}",
    response_model=TourStopResponse,
    dependencies=[Depends(require_role(["admin", "fahrer"]))],
)
def update_stop(stop_id: UUID, data: TourStopUpdate, db: DBSession, user: CurrentUser):
    """
    Aktualisiert einen Stopp.
    Fahrer dürfen nur Zustellstatus, Fehlgrund, Unterschrift und Leergut setzen.
    """
    nur_zustellung = not has_role(user, "admin")
    stop = TourStopService(db).update_stop(stop_id, data, nur_zustellung=nur_zustellung)
    db.commit()
    db.refresh(stop)
    return stop


@stops_router.post("/{stop_id}/move", response_model=TourStopResponse)
def move_stop(stop_id: UUID, data: TourStopMoveRequest, db: DBSession, user: AdminUser):
    """Drag&Drop: verschiebt den Stopp in eine (andere) Tour an den 0-basierten Index."""
    stop = TourStopService(db).move_stop(stop_id, data.to_tour_id, data.target_index)
    db.commit()
    db.refresh(stop)
    return stop


@stops_router.delete("/{stop_id}", status_code=204)
def delete_stop(stop_id: UUID, db: DBSession, user: AdminUser):
    TourStopService(db).delete_stop(stop_id)
    db.commit()
