"""
Konfigurations-API - Regionsregeln und Reihenfolge-Vorlagen
"""
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Query

from app.api.deps import DBSession, CurrentUser, AdminUser
from app.schemas.tour import (
    RegionRuleCreate, RegionRuleUpdate, RegionRuleResponse, RegionRuleListResponse,
    ReihenfolgeVorlageCreate, ReihenfolgeVorlageUpdate, ReihenfolgeVorlageResponse,
    ReihenfolgeVorlageListResponse,
)
from app.services.region_rule_service import RegionRuleService, ReihenfolgeVorlageService

router = APIRouter(prefix="/region-rules", tags=["Regionsregeln"])
vorlagen_router = APIRouter(prefix="/reihenfolge-vorlagen", tags=["Reihenfolge-Vorlagen"])


# ========================================
# REGION RULES
# ========================================

@router.post("", response_model=RegionRuleResponse, status_code=201)
def create_rule(data: RegionRuleCreate, db: DBSession, user: AdminUser):
    rule = RegionRuleService(db).create(data)
    db.commit()
    db.refresh(rule)
    return rule


@router.get("", response_model=RegionRuleListResponse)
def list_rules(
    db: DBSession,
    user: CurrentUser,
    active: Optional[bool] = None,
    region: Optional[str] = None,
    q: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
):
    items, total = RegionRuleService(db).list_rules(
        active=active, region=region, q=q, offset=(page - 1) * limit, limit=limit,
    )
    return RegionRuleListResponse(
        items=[RegionRuleResponse.model_validate(r) for r in items],
        total=total,
        page=page,
        limit=limit,
    )


@router.delete("/all", status_code=200)
def delete_all_rules(db: DBSession, user: AdminUser):
    anzahl = RegionRuleService(db).delete_all()
    db.commit()
    return {"deleted": anzahl}


@router.get("/{rule_id}", response_model=RegionRuleResponse)
def get_rule(rule_id: UUID, db: DBSession, user: CurrentUser):
    return RegionRuleService(db).get(rule_id)


@router.patch("/{rule_id}", response_model=RegionRuleResponse)
def update_rule(rule_id: UUID, data: RegionRuleUpdate, db: DBSession, user: AdminUser):
    rule = RegionRuleService(db).update(rule_id, data)
    db.commit()
    db.refresh(rule)
    return rule


@router.delete("/{rule_id}", status_code=204)
def delete_rule(rule_id: UUID, db: DBSession, user: AdminUser):
    RegionRuleService(db).delete(rule_id)
    db.commit()


# ========================================
# REIHENFOLGE-VORLAGEN
# ========================================

@vorlagen_router.post("", response_model=ReihenfolgeVorlageResponse, status_code=201)
def create_vorlage(data: ReihenfolgeVorlageCreate, db: DBSession, user: AdminUser):
    """Die Kundenreihenfolge wird aus kunden_ids_in_reihenfolge abgeleitet."""
    vorlage = ReihenfolgeVorlageService(db).create(data)
    db.commit()
    db.refresh(vorlage)
    return vorlage


@vorlagen_router.get("", response_model=ReihenfolgeVorlageListResponse)
def list_vorlagen(
    db: DBSession,
    user: CurrentUser,
    region: Optional[str] = None,
    q: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
):
    items, total = ReihenfolgeVorlageService(db).list_vorlagen(
        region=region, q=q, offset=(page - 1) * limit, limit=limit,
    )
    return ReihenfolgeVorlageListResponse(
        items=[ReihenfolgeVorlageResponse.model_validate(v) for v in items],
        total=total,
        page=page,
        limit=limit,
    )


@vorlagen_router.delete("/all", status_code=200)
def delete_all_vorlagen(db: DBSession, user: AdminUser):
    anzahl = ReihenfolgeVorlageService(db).delete_all()
    db.commit()
    return {"deleted": anzahl}


@vorlagen_router.get("/{vorlage_id}", response_model=ReihenfolgeVorlageResponse)
def get_vorlage(vorlage_id: UUID, db: DBSession, user: CurrentUser):
    return ReihenfolgeVorlageService(db).get(vorlage_id)


@vorlagen_router.patch("/{vorlage_id}", response_model=ReihenfolgeVorlageResponse)
def update_vorlage(vorlage_id: UUID, data: ReihenfolgeVorlageUpdate, db: DBSession, user: AdminUser):
    vorlage = ReihenfolgeVorlageService(db).update(vorlage_id, data)
    db.commit()
    db.refresh(vorlage)
    return vorlage


@vorlagen_router.delete("/{vorlage_id}", status_code=204)
def delete_vorlage(vorlage_id: UUID, db: DBSession, user: AdminUser):
    ReihenfolgeVorlageService(db).delete(vorlage_id)
    db.commit()
