"""
Personal-API - Endpoints für Mitarbeiter und Verkäufer
"""
from uuid import UUID
from fastapi import APIRouter

from app.api.deps import DBSession, CurrentUser, AdminUser
from app.schemas.mitarbeiter import (
    MitarbeiterCreate, MitarbeiterUpdate, MitarbeiterResponse, MitarbeiterListResponse,
    PasswortRequest,
    VerkaeuferCreate, VerkaeuferUpdate, VerkaeuferResponse, VerkaeuferListResponse,
)
from app.services.mitarbeiter_service import MitarbeiterService, VerkaeuferService

router = APIRouter(prefix="/mitarbeiter", tags=["Mitarbeiter"])
verkaeufer_router = APIRouter(prefix="/verkaeufer", tags=["Verkäufer"])


# ========================================
# MITARBEITER
# ========================================

@router.post("", response_model=MitarbeiterResponse, status_code=201)
def create_mitarbeiter(data: MitarbeiterCreate, db: DBSession, user: AdminUser):
    """
    Legt einen Mitarbeiter an.
    Der Name wird klein geschrieben gespeichert, unbekannte Rollen verworfen.
    """
    mitarbeiter = MitarbeiterService(db).create(data)
    db.commit()
    db.refresh(mitarbeiter)
    return mitarbeiter


@router.get("", response_model=MitarbeiterListResponse)
def list_mitarbeiter(db: DBSession, user: AdminUser):
    """Listet alle Mitarbeiter."""
    items = MitarbeiterService(db).list_mitarbeiter()
    return MitarbeiterListResponse(
        items=[MitarbeiterResponse.model_validate(m) for m in items],
        total=len(items),
    )


@router.get("/{mitarbeiter_id}", response_model=MitarbeiterResponse)
def get_mitarbeiter(mitarbeiter_id: UUID, db: DBSession, user: AdminUser):
    return MitarbeiterService(db).get(mitarbeiter_id)


@router.patch("/{mitarbeiter_id}", response_model=MitarbeiterResponse)
def update_mitarbeiter(mitarbeiter_id: UUID, data: MitarbeiterUpdate, db: DBSession, user: AdminUser):
    mitarbeiter = MitarbeiterService(db).update(mitarbeiter_id, data)
    db.commit()
    db.refresh(mitarbeiter)
    return mitarbeiter


@router.put("/{mitarbeiter_id}/passwort", status_code=204)
def set_passwort(mitarbeiter_id: UUID, data: PasswortRequest, db: DBSession, user: CurrentUser):
    """Setzt ein neues Passwort (Admin oder der Mitarbeiter selbst)."""
    MitarbeiterService(db).passwort_setzen(mitarbeiter_id, data.password, user)
    db.commit()


@router.delete("/{mitarbeiter_id}", status_code=204)
def delete_mitarbeiter(mitarbeiter_id: UUID, db: DBSession, user: AdminUser):
    MitarbeiterService(db).delete(mitarbeiter_id)
    db.commit()


# ========================================
# VERKÄUFER
# ========================================

@verkaeufer_router.post("", response_model=VerkaeuferResponse, status_code=201)
def create_verkaeufer(data: VerkaeuferCreate, db: DBSession, user: AdminUser):
    verkaeufer = VerkaeuferService(db).create(data)
    db.commit()
    db.refresh(verkaeufer)
    return verkaeufer


@verkaeufer_router.get("", response_model=VerkaeuferListResponse)
def list_verkaeufer(db: DBSession, user: AdminUser):
    items = VerkaeuferService(db).list_verkaeufer()
    return VerkaeuferListResponse(
        items=[VerkaeuferResponse.model_validate(v) for v in items],
        total=len(items),
    )


@verkaeufer_router.get("/{verkaeufer_id}", response_model=VerkaeuferResponse)
def get_verkaeufer(verkaeufer_id: UUID, db: DBSession, user: AdminUser):
    return VerkaeuferService(db).get(verkaeufer_id)


@verkaeufer_router.patch("/{verkaeufer_id}", response_model=VerkaeuferResponse)
def update_verkaeufer(verkaeufer_id: UUID, data: VerkaeuferUpdate, db: DBSession, user: AdminUser):
    verkaeufer = VerkaeuferService(db).update(verkaeufer_id, data)
    db.commit()
    db.refresh(verkaeufer)
    return verkaeufer


@verkaeufer_router.delete("/{verkaeufer_id}", status_code=204)
def delete_verkaeufer(verkaeufer_id: UUID, db: DBSession, user: AdminUser):
    VerkaeuferService(db).delete(verkaeufer_id)
    db.commit()
