"""
Fahrzeug-API - Stammdaten der Lieferfahrzeuge
"""
from typing import Optional
from uuid import UUID
from fastapi import APIRouter

from app.api.deps import DBSession, AdminUser
from app.schemas.fahrzeug import FahrzeugCreate, FahrzeugUpdate, FahrzeugResponse, FahrzeugListResponse
from app.services.fahrzeug_service import FahrzeugService

router = APIRouter(prefix="/fahrzeuge", tags=["Fahrzeuge"])


@router.post("", response_model=FahrzeugResponse, status_code=201)
def create_fahrzeug(data: FahrzeugCreate, db: DBSession, user: AdminUser):
    fahrzeug = FahrzeugService(db).create(data)
    db.commit()
    db.refresh(fahrzeug)
    return fahrzeug


@router.get("", response_model=FahrzeugListResponse)
def list_fahrzeuge(db: DBSession, user: AdminUser, aktiv: Optional[bool] = None, q: Optional[str] = None):
    items = FahrzeugService(db).list_fahrzeuge(aktiv=aktiv, q=q)
    return FahrzeugListResponse(items=[FahrzeugResponse.model_validate(f) for f in items], total=len(items))


@router.get("/{fahrzeug_id}", response_model=FahrzeugResponse)
def get_fahrzeug(fahrzeug_id: UUID, db: DBSession, user: AdminUser):
    return FahrzeugService(db).get(fahrzeug_id)


@router.patch("/{fahrzeug_id}", response_model=FahrzeugResponse)
def update_fahrzeug(fahrzeug_id: UUID, data: FahrzeugUpdate, db: DBSession, user: AdminUser):
    """Eine geänderte Zuladung bewertet die Touren des Fahrzeugs neu."""
    fahrzeug = FahrzeugService(db).update(fahrzeug_id, data)
    db.commit()
    db.refresh(fahrzeug)
    return fahrzeug


@router.delete("/{fahrzeug_id}", status_code=204)
def delete_fahrzeug(fahrzeug_id: UUID, db: DBSession, user: AdminUser):
    FahrzeugService(db).delete(fahrzeug_id)
    db.commit()
