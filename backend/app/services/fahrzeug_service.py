"""
Fahrzeug-Service - Stammdaten der Lieferfahrzeuge
"""
import logging
from uuid import UUID
from sqlalchemy import select, or_
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, KonfliktError
from app.models.fahrzeug import Fahrzeug
from app.models.tour import Tour
from app.schemas.fahrzeug import FahrzeugCreate, FahrzeugUpdate
from app.services.tour_hooks import TourHooks

logger = logging.getLogger(__name__)


class FahrzeugService:
    """Service für Fahrzeuge"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, fahrzeug_id: UUID) -> Fahrzeug:
        fahrzeug = self.db.get(Fahrzeug, fahrzeug_id)
        if not fahrzeug:
            raise NotFoundError("Fahrzeug nicht gefunden")
        return fahrzeug

    def _kennzeichen_frei(self, kennzeichen: str, ausser_id: UUID | None = None) -> None:
        query = select(Fahrzeug.id).where(Fahrzeug.kennzeichen == kennzeichen)
        if ausser_id:
            query = query.where(Fahrzeug.id != ausser_id)
        if self.db.execute(query).first():
            raise KonfliktError(f"Kennzeichen {kennzeichen} existiert bereits")

    def create(self, data: FahrzeugCreate) -> Fahrzeug:
        self._kennzeichen_frei(data.kennzeichen)
        fahrzeug = Fahrzeug(**data.model_dump())
        self.db.add(fahrzeug)
        self.db.flush()
        logger.info(f"Fahrzeug angelegt: {fahrzeug.kennzeichen}")
        return fahrzeug

    def list_fahrzeuge(self, aktiv: bool | None = None, q: str | None = None) -> list[Fahrzeug]:
        query = select(Fahrzeug)
        if aktiv is not None:
            query = query.where(Fahrzeug.aktiv == aktiv)
        if q:
            muster = f"%{q.strip()}%"
            query = query.where(or_(Fahrzeug.name.ilike(muster), Fahrzeug.kennzeichen.ilike(muster)))
        return list(self.db.execute(query.order_by(Fahrzeug.kennzeichen)).scalars().all())

    def update(self, fahrzeug_id: UUID, data: FahrzeugUpdate) -> Fahrzeug:
        """Eine neue Zuladung aktualisiert das Überlast-Flag aller Touren des Fahrzeugs"""
        fahrzeug = self.get(fahrzeug_id)
        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("kennzeichen"):
            self._kennzeichen_frei(update_data["kennzeichen"], ausser_id=fahrzeug.id)

        max_geaendert = "max_gewicht_kg" in update_data and update_data["max_gewicht_kg"] != fahrzeug.max_gewicht_kg
        for field, value in update_data.items():
            if value is None and field in ("name", "kennzeichen", "aktiv"):
                continue
            setattr(fahrzeug, field, value)

        if max_geaendert:
            self.db.flush()
            hooks = TourHooks(self.db)
            touren = self.db.execute(select(Tour).where(Tour.fahrzeug_id == fahrzeug.id)).scalars().all()
            for tour in touren:
                hooks.update_over_capacity_flag(tour)
            logger.info(f"Zuladung {fahrzeug.kennzeichen} geändert, {len(touren)} Touren neu bewertet")
        return fahrzeug

    def delete(self, fahrzeug_id: UUID) -> None:
        """Löscht das Fahrzeug; Touren verlieren die Zuordnung"""
        fahrzeug = self.get(fahrzeug_id)
        hooks = TourHooks(self.db)
        for tour in self.db.execute(select(Tour).where(Tour.fahrzeug_id == fahrzeug.id)).scalars().all():
            tour.fahrzeug_id = None
            hooks.update_over_capacity_flag(tour)
        self.db.delete(fahrzeug)
