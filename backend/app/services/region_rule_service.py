"""
Konfiguration der Tourplanung: Regionsregeln und Reihenfolge-Vorlagen
"""
import logging
from uuid import UUID
from sqlalchemy import select, func, delete, or_
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, KonfliktError
from app.models.tour import RegionRule, ReihenfolgeVorlage
from app.schemas.tour import (
    RegionRuleCreate, RegionRuleUpdate,
    ReihenfolgeVorlageCreate, ReihenfolgeVorlageUpdate,
)

logger = logging.getLogger(__name__)


def _datumsliste(werte) -> list[str]:
    """Ausnahmetage als sortierte, eindeutige YYYY-MM-DD-Liste"""
    return sorted({d.isoformat() for d in werte})


def _kunden_reihenfolge(kunden_ids: list[UUID]) -> list[dict]:
    """Geordnete Kunden-IDs → [{kunde_id, position}] ohne Duplikate"""
    eintraege = []
    gesehen = set()
    for kunde_id in kunden_ids:
        if kunde_id in gesehen:
            continue
        gesehen.add(kunde_id)
        eintraege.append({"kunde_id": str(kunde_id), "position": len(eintraege) + 1})
    return eintraege


class RegionRuleService:
    """Service für Regionsregeln"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, rule_id: UUID) -> RegionRule:
        rule = self.db.get(RegionRule, rule_id)
        if not rule:
            raise NotFoundError("RegionRule nicht gefunden")
        return rule

    def _region_frei(self, region: str, ausser_id: UUID | None = None) -> None:
        query = select(RegionRule.id).where(func.lower(RegionRule.region) == region.lower())
        if ausser_id:
            query = query.where(RegionRule.id != ausser_id)
        if self.db.execute(query).first():
            raise KonfliktError(f"Für Region {region} existiert bereits eine Regel")

    def create(self, data: RegionRuleCreate) -> RegionRule:
        self._region_frei(data.region)
        rule = RegionRule(
            region=data.region,
            allowed_weekdays=data.allowed_weekdays,
            order_cutoff=data.order_cutoff,
            exception_dates=_datumsliste(data.exception_dates),
            is_active=data.is_active,
        )
        self.db.add(rule)
        self.db.flush()
        logger.info(f"RegionRule angelegt: {rule.region} {rule.erlaubte_tage}")
        return rule

    def list_rules(
        self,
        active: bool | None = None,
        region: str | None = None,
        q: str | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> tuple[list[RegionRule], int]:
        query = select(RegionRule)
        if active is not None:
            query = query.where(RegionRule.is_active == active)
        if region:
            query = query.where(func.lower(RegionRule.region) == region.strip().lower())
        if q:
            query = query.where(RegionRule.region.ilike(f"%{q.strip()}%"))

        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar()
        items = self.db.execute(
            query.order_by(RegionRule.region).offset(offset).limit(limit)
        ).scalars().all()
        return list(items), total

    def update(self, rule_id: UUID, data: RegionRuleUpdate) -> RegionRule:
        rule = self.get(rule_id)
        update_data = data.model_dump(exclude_unset=True)

        if update_data.get("region"):
            self._region_frei(update_data["region"], ausser_id=rule.id)
        if "exception_dates" in update_data:
            update_data["exception_dates"] = _datumsliste(update_data["exception_dates"] or [])

        for field, value in update_data.items():
            if value is None and field in ("region", "allowed_weekdays", "is_active"):
                continue
            setattr(rule, field, value)
        return rule

    def delete(self, rule_id: UUID) -> None:
        self.db.delete(self.get(rule_id))

    def delete_all(self) -> int:
        return self.db.execute(delete(RegionRule)).rowcount


class ReihenfolgeVorlageService:
    """Service für Reihenfolge-Vorlagen"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, vorlage_id: UUID) -> ReihenfolgeVorlage:
        vorlage = self.db.get(ReihenfolgeVorlage, vorlage_id)
        if not vorlage:
            raise NotFoundError("ReihenfolgeVorlage nicht gefunden")
        return vorlage

    def create(self, data: ReihenfolgeVorlageCreate) -> ReihenfolgeVorlage:
        vorlage = ReihenfolgeVorlage(
            name=data.name.strip(),
            region=data.region,
            kunden_reihenfolge=_kunden_reihenfolge(data.kunden_ids_in_reihenfolge),
            tage=data.tage,
            aktiv=data.aktiv,
        )
        self.db.add(vorlage)
        self.db.flush()
        return vorlage

    def list_vorlagen(
        self,
        region: str | None = None,
        q: str | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> tuple[list[ReihenfolgeVorlage], int]:
        query = select(ReihenfolgeVorlage)
        if region:
            query = query.where(func.lower(ReihenfolgeVorlage.region) == region.strip().lower())
        if q:
            muster = f"%{q.strip()}%"
            query = query.where(
                or_(ReihenfolgeVorlage.name.ilike(muster), ReihenfolgeVorlage.region.ilike(muster))
            )

        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar()
        items = self.db.execute(
            query.order_by(ReihenfolgeVorlage.created_at.desc()).offset(offset).limit(limit)
        ).scalars().all()
        return list(items), total

    def update(self, vorlage_id: UUID, data: ReihenfolgeVorlageUpdate) -> ReihenfolgeVorlage:
        vorlage = self.get(vorlage_id)
        update_data = data.model_dump(exclude_unset=True)

        if "kunden_ids_in_reihenfolge" in update_data:
            vorlage.kunden_reihenfolge = _kunden_reihenfolge(data.kunden_ids_in_reihenfolge or [])
            update_data.pop("kunden_ids_in_reihenfolge")
        if update_data.get("name"):
            update_data["name"] = update_data["name"].strip()

        for field, value in update_data.items():
            setattr(vorlage, field, value)
        return vorlage

    def delete(self, vorlage_id: UUID) -> None:
        self.db.delete(self.get(vorlage_id))

    def delete_all(self) -> int:
        return self.db.execute(delete(ReihenfolgeVorlage)).rowcount
