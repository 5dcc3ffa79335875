"""
Zerlege-API - Zerlegeaufträge für die Zerlegung
"""
from uuid import UUID
from fastapi import APIRouter, Depends

from app.api.deps import DBSession, CurrentUser, AdminUser, require_role
from app.schemas.zerlegung import (
    ZerlegeAuftragResponse, ZerlegeAuftragListResponse, ZerlegePositionUpdate,
)
from app.services.zerlege_service import ZerlegeService

router = APIRouter(prefix="/zerlegeauftraege", tags=["Zerlegung"])


@router.get("", response_model=ZerlegeAuftragListResponse)
def list_zerlegeauftraege(db: DBSession, user: CurrentUser):
    items = ZerlegeService(db).list_zerlegeauftraege()
    return ZerlegeAuftragListResponse(
        items=[ZerlegeAuftragResponse.model_validate(z) for z in items],
        total=len(items),
    )


@router.get("/offen", response_model=ZerlegeAuftragListResponse)
def list_offene(db: DBSession, user: CurrentUser):
    """Zerlegeaufträge mit mindestens einer offenen Position."""
    items = ZerlegeService(db).list_zerlegeauftraege(nur_offen=True)
    return ZerlegeAuftragListResponse(
        items=[ZerlegeAuftragResponse.model_validate(z) for z in items],
        total=len(items),
    )


@router.delete("/erledigt", status_code=200)
def delete_erledigte(db: DBSession, user: AdminUser):
    anzahl = ZerlegeService(db).delete_erledigte()
    db.commit()
    return {"deleted": anzahl}


@router.get("/{zerlegeauftrag_id}", response_model=ZerlegeAuftragResponse)
def get_zerlegeauftrag(zerlegeauftrag_id: UUID, db: DBSession, user: CurrentUser):
    return ZerlegeService(db).get(zerlegeauftrag_id)


@router.patch(
    "/{zerlegeauftrag_id}/positionen/{position_id}",
    response_model=ZerlegeAuftragResponse,
    dependencies=[Depends(require_role(["admin", "zerleger"]))],
)
def update_position(
    zerlegeauftrag_id: UUID,
    position_id: UUID,
    db: DBSession,
    user: CurrentUser,
    data: ZerlegePositionUpdate | None = None,
):
    """Schaltet eine Position zwischen offen und erledigt um und vermerkt den Zerleger."""
    zerlegeauftrag = ZerlegeService(db).position_umschalten(
        zerlegeauftrag_id, position_id, user, status=data.status if data else None,
    )
    db.commit()
    db.refresh(zerlegeauftrag)
    return zerlegeauftrag
