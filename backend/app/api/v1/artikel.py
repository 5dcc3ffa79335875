"""
Artikel-API - Sortiment und kundenspezifische Aufpreise
"""
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Query

from app.api.deps import DBSession, CurrentUser, AdminUser, Pagination, has_role
from app.schemas.artikel import ArtikelCreate, ArtikelUpdate, ArtikelResponse, ArtikelListResponse
from app.schemas.kunde import (
    KundenPreisCreate, KundenPreisUpdate, KundenPreisResponse, KundenPreisListResponse,
    EffektiverAufpreis,
)
from app.services.artikel_service import ArtikelService, KundenPreisService
from app.services.benutzer import benutzer_uuid

router = APIRouter(prefix="/artikel", tags=["Artikel"])
kundenpreise_router = APIRouter(prefix="/kundenpreise", tags=["Kundenpreise"])


def _preis_kunde(user: dict, kunde: Optional[UUID]) -> Optional[UUID]:
    """Kunden sehen immer ihren eigenen Preis, alle anderen optional per ?kunde="""
    if has_role(user, "kunde"):
        return benutzer_uuid(user)
    return kunde


# ========================================
# ARTIKEL
# ========================================

@router.get("", response_model=ArtikelListResponse)
def list_artikel(
    db: DBSession,
    user: CurrentUser,
    pagination: Pagination,
    q: Optional[str] = None,
    kategorie: Optional[str] = None,
    ausverkauft: Optional[bool] = None,
    kunde: Optional[UUID] = Query(None, description="Preise inkl. Aufpreis dieses Kunden"),
):
    """Listet Artikel; mit Kundenbezug enthält der Preis den Aufpreis."""
    service = ArtikelService(db)
    items, total = service.list_artikel(
        q=q,
        kategorie=kategorie,
        ausverkauft=ausverkauft,
        offset=pagination.offset,
        limit=pagination.limit,
    )
    return ArtikelListResponse(
        items=service.liste_mit_kundenpreis(items, _preis_kunde(user, kunde)),
        total=total,
        page=pagination.page,
        limit=pagination.limit,
    )


@router.get("/{artikel_id}", response_model=ArtikelResponse)
def get_artikel(artikel_id: UUID, db: DBSession, user: CurrentUser, kunde: Optional[UUID] = None):
    service = ArtikelService(db)
    return service.mit_kundenpreis(service.get(artikel_id), _preis_kunde(user, kunde))


@router.post("", response_model=ArtikelResponse, status_code=201)
def create_artikel(data: ArtikelCreate, db: DBSession, user: AdminUser):
    service = ArtikelService(db)
    artikel = service.create(data)
    db.commit()
    db.refresh(artikel)
    return service.mit_kundenpreis(artikel, None)


@router.patch("/{artikel_id}", response_model=ArtikelResponse)
def update_artikel(artikel_id: UUID, data: ArtikelUpdate, db: DBSession, user: AdminUser):
    service = ArtikelService(db)
    artikel = service.update(artikel_id, data)
    db.commit()
    db.refresh(artikel)
    return service.mit_kundenpreis(artikel, None)


@router.delete("/{artikel_id}", status_code=204)
def delete_artikel(artikel_id: UUID, db: DBSession, user: AdminUser):
    ArtikelService(db).delete(artikel_id)
    db.commit()


# ========================================
# KUNDENPREISE
# ========================================

def _kundenpreis_response(kp) -> KundenPreisResponse:
    response = KundenPreisResponse.model_validate(kp)
    response.kunde_name = kp.kunde.name if kp.kunde else None
    response.artikel_name = kp.artikel.name if kp.artikel else None
    return response


@kundenpreise_router.get("", response_model=KundenPreisListResponse)
def list_kundenpreise(
    db: DBSession,
    user: AdminUser,
    artikel: Optional[UUID] = None,
    kunde: Optional[UUID] = None,
):
    items = KundenPreisService(db).list_kundenpreise(artikel_id=artikel, kunde_id=kunde)
    return KundenPreisListResponse(items=[_kundenpreis_response(kp) for kp in items], total=len(items))


@kundenpreise_router.get("/effektiv", response_model=EffektiverAufpreis)
def effektiver_aufpreis(kunde: UUID, artikel: UUID, db: DBSession, user: CurrentUser):
    """Wirksamer Aufpreis für Kunde und Artikel (0, wenn keiner hinterlegt ist)."""
    if has_role(user, "kunde") and not has_role(user, "admin"):
        kunde = benutzer_uuid(user)
    return EffektiverAufpreis(**KundenPreisService(db).effektiv(kunde, artikel))


@kundenpreise_router.get("/artikel/{artikel_id}", response_model=KundenPreisListResponse)
def kundenpreise_fuer_artikel(artikel_id: UUID, db: DBSession, user: AdminUser):
    items = KundenPreisService(db).list_kundenpreise(artikel_id=artikel_id)
    return KundenPreisListResponse(items=[_kundenpreis_response(kp) for kp in items], total=len(items))


@kundenpreise_router.post("", response_model=KundenPreisResponse, status_code=201)
def create_kundenpreis(data: KundenPreisCreate, db: DBSession, user: AdminUser):
    kundenpreis = KundenPreisService(db).create(data)
    db.commit()
    db.refresh(kundenpreis)
    return _kundenpreis_response(kundenpreis)


@kundenpreise_router.get("/{kundenpreis_id}", response_model=KundenPreisResponse)
def get_kundenpreis(kundenpreis_id: UUID, db: DBSession, user: AdminUser):
    return _kundenpreis_response(KundenPreisService(db).get(kundenpreis_id))


@kundenpreise_router.patch("/{kundenpreis_id}", response_model=KundenPreisResponse)
def update_kundenpreis(kundenpreis_id: UUID, data: KundenPreisUpdate, db: DBSession, user: AdminUser):
    kundenpreis = KundenPreisService(db).update(kundenpreis_id, data.aufpreis)
    db.commit()
    db.refresh(kundenpreis)
    return _kundenpreis_response(kundenpreis)


@kundenpreise_router.delete("/{kundenpreis_id}", status_code=204)
def delete_kundenpreis(kundenpreis_id: UUID, db: DBSession, user: AdminUser):
    KundenPreisService(db).delete(kundenpreis_id)
    db.commit()
