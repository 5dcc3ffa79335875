"""
Positions-API - Auftragspositionen, Kommissionierung und Kontrolle
"""
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends

from app.api.deps import DBSession, CurrentUser, AdminUser, require_role
from app.schemas.auftrag import (
    ArtikelPositionCreate, ArtikelPositionUpdate, ArtikelPositionResponse,
    ArtikelPositionListResponse, KommissionierungUpdate, KontrolleUpdate,
)
from app.services.position_service import PositionService

router = APIRouter(prefix="/artikelpositionen", tags=["Artikelpositionen"])


@router.post("", response_model=ArtikelPositionResponse, status_code=201)
def create_position(data: ArtikelPositionCreate, db: DBSession, user: CurrentUser):
    """
    Legt eine Position an.
    Gewicht und Preis werden berechnet, Auftragssummen und Tour-Gewicht nachgezogen.
    """
    position = PositionService(db).create(data, user)
    db.commit()
    db.refresh(position)
    return position


@router.get("", response_model=ArtikelPositionListResponse)
def list_positionen(db: DBSession, user: CurrentUser, auftrag_id: Optional[UUID] = None):
    items = PositionService(db).list_positionen(auftrag_id)
    return ArtikelPositionListResponse(
        items=[ArtikelPositionResponse.model_validate(p) for p in items],
        total=len(items),
    )


@router.get("/{position_id}", response_model=ArtikelPositionResponse)
def get_position(position_id: UUID, db: DBSession, user: CurrentUser):
    return PositionService(db).get(position_id)


@router.put("/{position_id}", response_model=ArtikelPositionResponse)
def update_position(position_id: UUID, data: ArtikelPositionUpdate, db: DBSession, user: CurrentUser):
    """Ändert Stammfelder (Admin, oder Kunde solange kein Lieferdatum gesetzt ist)."""
    position = PositionService(db).update(position_id, data, user)
    db.commit()
    db.refresh(position)
    return position


@router.patch(
    "/{position_id}/kommissionierung",
    response_model=ArtikelPositionResponse,
    dependencies=[Depends(require_role(["admin", "kommissionierung"]))],
)
def kommissionieren(position_id: UUID, data: KommissionierungUpdate, db: DBSession, user: CurrentUser):
    position = PositionService(db).kommissionieren(position_id, data, user)
    db.commit()
    db.refresh(position)
    return position


@router.patch(
    "/{position_id}/kontrolle",
    response_model=ArtikelPositionResponse,
    dependencies=[Depends(require_role(["admin", "kontrolle"]))],
)
def kontrollieren(position_id: UUID, data: KontrolleUpdate, db: DBSession, user: CurrentUser):
    position = PositionService(db).kontrollieren(position_id, data.kontrolliert, user)
    db.commit()
    db.refresh(position)
    return position


@router.delete("/{position_id}", status_code=204)
def delete_position(position_id: UUID, db: DBSession, user: AdminUser):
    PositionService(db).delete(position_id)
    db.commit()
