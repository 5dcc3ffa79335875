"""
Kunden-API - Registrierung, Freigabe, Stammdaten und Favoriten
"""
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends

from app.api.deps import (
    DBSession, CurrentUser, AdminUser, Pagination, LESE_ROLLEN,
    require_role, require_self_or_role,
)
from app.schemas.kunde import (
    KundeRegistrieren, KundeCreate, KundeUpdate, KundeResponse, KundeListResponse,
    FreigabeRequest, FavoritenResponse,
)
from app.services.kunde_service import KundeService

router = APIRouter(prefix="/kunden", tags=["Kunden"])


@router.post("/registrieren", response_model=KundeResponse, status_code=201)
def registrieren(data: KundeRegistrieren, db: DBSession):
    """
    Öffentliche Registrierung.
    Der Kunde kann sich erst nach Freigabe durch einen Admin anmelden.
    """
    kunde = KundeService(db).registrieren(data)
    db.commit()
    db.refresh(kunde)
    return kunde


@router.post("", response_model=KundeResponse, status_code=201)
def create_kunde(data: KundeCreate, db: DBSession, user: AdminUser):
    kunde = KundeService(db).create(data)
    db.commit()
    db.refresh(kunde)
    return kunde


@router.get("", response_model=KundeListResponse, dependencies=[Depends(require_role(LESE_ROLLEN))])
def list_kunden(
    db: DBSession,
    pagination: Pagination,
    q: Optional[str] = None,
    region: Optional[str] = None,
    is_approved: Optional[bool] = None,
):
    """Listet Kunden mit Suche über Name, Kundennummer und E-Mail."""
    items, total = KundeService(db).list_kunden(
        q=q,
        region=region,
        is_approved=is_approved,
        offset=pagination.offset,
        limit=pagination.limit,
    )
    return KundeListResponse(
        items=[KundeResponse.model_validate(k) for k in items],
        total=total,
        page=pagination.page,
        limit=pagination.limit,
    )


@router.get("/unapproved", response_model=list[KundeResponse])
def list_unapproved(db: DBSession, user: AdminUser):
    """Kunden, die noch auf Freigabe warten."""
    items, _ = KundeService(db).list_kunden(is_approved=False, limit=1000)
    return items


@router.get("/{kunde_id}", response_model=KundeResponse)
def get_kunde(kunde_id: UUID, db: DBSession, user: CurrentUser):
    require_self_or_role(user, kunde_id, *LESE_ROLLEN, "verkauf")
    return KundeService(db).get(kunde_id)


@router.patch("/{kunde_id}", response_model=KundeResponse)
def update_kunde(kunde_id: UUID, data: KundeUpdate, db: DBSession, user: CurrentUser):
    """
    Aktualisiert einen Kunden (Admin oder der Kunde selbst).
    Eine geänderte Region ordnet offene Aufträge neuen Touren zu.
    """
    require_self_or_role(user, kunde_id, "admin")
    kunde = KundeService(db).update(kunde_id, data, user)
    db.commit()
    db.refresh(kunde)
    return kunde


@router.patch("/{kunde_id}/freigabe", response_model=KundeResponse)
def freigabe(kunde_id: UUID, data: FreigabeRequest, db: DBSession, user: AdminUser):
    kunde = KundeService(db).freigabe(kunde_id, data.is_approved)
    db.commit()
    db.refresh(kunde)
    return kunde


@router.delete("/{kunde_id}", status_code=204)
def delete_kunde(kunde_id: UUID, db: DBSession, user: AdminUser):
    """Löscht den Kunden inklusive Aufträgen, Stopps und Aufpreisen."""
    KundeService(db).delete(kunde_id)
    db.commit()


# ========================================
# FAVORITEN
# ========================================

@router.get("/{kunde_id}/favoriten", response_model=FavoritenResponse)
def get_favoriten(kunde_id: UUID, db: DBSession, user: CurrentUser):
    require_self_or_role(user, kunde_id, "admin")
    return FavoritenResponse(kunde_id=kunde_id, favoriten=KundeService(db).favoriten(kunde_id))


@router.post("/{kunde_id}/favoriten/{artikel_id}", response_model=FavoritenResponse)
def add_favorit(kunde_id: UUID, artikel_id: UUID, db: DBSession, user: CurrentUser):
    require_self_or_role(user, kunde_id, "admin")
    favoriten = KundeService(db).favorit_hinzufuegen(kunde_id, artikel_id)
    db.commit()
    return FavoritenResponse(kunde_id=kunde_id, favoriten=favoriten)


@router.delete("/{kunde_id}/favoriten/{artikel_id}", response_model=FavoritenResponse)
def remove_favorit(kunde_id: UUID, artikel_id: UUID, db: DBSession, user: CurrentUser):
    require_self_or_role(user, kunde_id, "admin")
    favoriten = KundeService(db).favorit_entfernen(kunde_id, artikel_id)
    db.commit()
    return FavoritenResponse(kunde_id=kunde_id, favoriten=favoriten)
