"""
Tour-Service - Business Logic für Touren und Tour-Stopps
"""
import logging
from datetime import date, datetime
from uuid import UUID
from sqlalchemy import select, func, update, delete
from sqlalchemy.orm import Session

from app.core.exceptions import ValidierungsError, BerechtigungsError, NotFoundError, KonfliktError
from app.models.auftrag import Auftrag
from app.models.kunde import Kunde
from app.models.tour import Tour, TourStop
from app.models.enums import TourStatus, StopStatus
from app.schemas.tour import (
    TourCreate, TourUpdate, TourStopCreate, TourStopUpdate,
)
from app.services.tour_hooks import TourHooks, normalize_region

logger = logging.getLogger(__name__)

# Felder, die ein Fahrer an einem Stopp ändern darf
ZUSTELL_FELDER = {
    "status",
    "fehlgrund",
    "signatur_png_base64",
    "sign_timestamp_utc",
    "signed_by_name",
    "leergut_mitnahme",
}

ABSCHLUSS_STATUS = {StopStatus.ZUGESTELLT, StopStatus.TEILWEISE, StopStatus.FEHLGESCHLAGEN}

TOUR_SORTIERUNG = {
    "datumAsc": (Tour.datum.asc(), Tour.split_index.asc(), Tour.created_at.asc()),
    "datumDesc": (Tour.datum.desc(), Tour.split_index.asc(), Tour.created_at.asc()),
    "createdDesc": (Tour.created_at.desc(),),
}


class TourService:
    """Service für Tour-Operationen"""

    def __init__(self, db: Session):
        self.db = db
        self.hooks = TourHooks(db)

    def get_tour(self, tour_id: UUID) -> Tour:
        tour = self.db.get(Tour, tour_id)
        if not tour:
            raise NotFoundError("Tour nicht gefunden")
        return tour

    def _standard_eindeutig(self, tour: Tour) -> None:
        """Höchstens eine Standard-Tour je Tag und Region"""
        if not tour.is_standard:
            return
        self.db.flush()
        query = select(Tour.id).where(
            Tour.datum == tour.datum,
            func.lower(Tour.region) == tour.region.lower(),
            Tour.is_standard == True,  # noqa: E712
            Tour.id != tour.id,
        )
        if self.db.execute(query).first():
            raise KonfliktError(
                f"Für {tour.region} am {tour.datum.strftime('%d.%m.%Y')} existiert bereits eine Standard-Tour"
            )

    def create_tour(self, data: TourCreate) -> Tour:
        """Legt eine Tour an und berechnet das Überlast-Flag."""
        werte = data.model_dump()
        werte["region"] = normalize_region(werte["region"])
        if werte.get("name"):
            werte["name"] = werte["name"].strip()

        tour = Tour(**werte)
        self.db.add(tour)
        self._standard_eindeutig(tour)
        self.db.flush()

        self.hooks.tour_aktualisieren(tour)
        logger.info(f"Tour angelegt: {tour.region} {tour.datum}")
        return tour

    def list_touren(
        self,
        date_from: date | None = None,
        date_to: date | None = None,
        region: str | None = None,
        status: list[TourStatus] | None = None,
        fahrzeug_id: UUID | None = None,
        fahrer_id: UUID | None = None,
        is_standard: bool | None = None,
        q: str | None = None,
        sort: str = "datumAsc",
        offset: int = 0,
        limit: int = 50,
    ) -> tuple[list[Tour], int]:
        """Listet Touren mit Filtern; liefert (Seite, Gesamtanzahl)."""
        query = select(Tour)

        if date_from:
            query = query.where(Tour.datum >= date_from)
        if date_to:
            query = query.where(Tour.datum <= date_to)
        if region:
            query = query.where(func.lower(Tour.region) == normalize_region(region).lower())
        if status:
            query = query.where(Tour.status.in_(status))
        if fahrzeug_id:
            query = query.where(Tour.fahrzeug_id == fahrzeug_id)
        if fahrer_id:
            query = query.where(Tour.fahrer_id == fahrer_id)
        if is_standard is not None:
            query = query.where(Tour.is_standard == is_standard)
        if q:
            query = query.where(Tour.name.ilike(f"%{q.strip()}%"))

        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar()

        query = query.order_by(*TOUR_SORTIERUNG.get(sort, TOUR_SORTIERUNG["datumAsc"]))
        items = self.db.execute(query.offset(offset).limit(limit)).scalars().all()
        return list(items), total

    def update_tour(self, tour_id: UUID, data: TourUpdate) -> Tour:
        """
        Aktualisiert eine Tour.
        Bei Fahrzeug- oder Kapazitätswechsel werden Gewicht und Flag neu berechnet.
        """
        tour = self.get_tour(tour_id)
        update_data = data.model_dump(exclude_unset=True)

        if "region" in update_data:
            update_data["region"] = normalize_region(update_data["region"])
        if update_data.get("name"):
            update_data["name"] = update_data["name"].strip()

        for field, value in update_data.items():
            setattr(tour, field, value)

        if {"datum", "region", "is_standard"} & update_data.keys():
            self._standard_eindeutig(tour)

        if {"fahrzeug_id", "max_gewicht_kg"} & update_data.keys():
            self.hooks.tour_aktualisieren(tour)

        return tour

    def archivieren(self, tour_id: UUID) -> Tour:
        tour = self.get_tour(tour_id)
        tour.status = TourStatus.ARCHIVIERT
        tour.archiviert_am = datetime.utcnow()
        logger.info(f"Tour archiviert: {tour.region} {tour.datum}")
        return tour

    def reaktivieren(self, tour_id: UUID) -> Tour:
        tour = self.get_tour(tour_id)
        tour.status = TourStatus.GEPLANT
        tour.archiviert_am = None
        return tour

    def reihenfolge_setzen(self, tour_id: UUID, stop_ids: list[UUID]) -> Tour:
        """
        Drag&Drop: komplette neue Reihenfolge.
        Die Liste muss genau die Stopps der Tour enthalten.
        """
        tour = self.get_tour(tour_id)
        stops = self.hooks.stops_der_tour(tour.id)
        nach_id = {s.id: s for s in stops}

        if len(stop_ids) != len(stops) or set(stop_ids) != set(nach_id):
            raise ValidierungsError("stop_ids müssen genau die Stopps der Tour enthalten")

        self.hooks.neu_nummerieren([nach_id[stop_id] for stop_id in stop_ids])
        logger.info(f"Reihenfolge von Tour {tour.id} neu gesetzt ({len(stops)} Stopps)")
        return tour

    def delete_tour(self, tour_id: UUID) -> None:
        """Löscht eine Tour samt Stopps und entkoppelt die Aufträge."""
        tour = self.get_tour(tour_id)
        self.db.execute(
            update(Auftrag)
            .where(Auftrag.tour_id == tour.id)
            .values(tour_id=None, tour_stop_id=None)
        )
        self.db.execute(delete(TourStop).where(TourStop.tour_id == tour.id))
        self.db.delete(tour)
        logger.info(f"Tour gelöscht: {tour.region} {tour.datum}")

    def delete_all_touren(self) -> int:
        self.db.execute(
            update(Auftrag)
            .where(Auftrag.tour_id.is_not(None))
            .values(tour_id=None, tour_stop_id=None)
        )
        self.db.execute(delete(TourStop))
        result = self.db.execute(delete(Tour))
        logger.warning(f"Alle Touren gelöscht ({result.rowcount})")
        return result.rowcount

    def abgeschlossene_archivieren(self, stichtag: date) -> int:
        """Archiviert abgeschlossene Touren mit Datum vor dem Stichtag"""
        touren = self.db.execute(
            select(Tour).where(Tour.status == TourStatus.ABGESCHLOSSEN, Tour.datum < stichtag)
        ).scalars().all()
        jetzt = datetime.utcnow()
        for tour in touren:
            tour.status = TourStatus.ARCHIVIERT
            tour.archiviert_am = jetzt
        return len(touren)


class TourStopService:
    """Service für Tour-Stopps"""

    def __init__(self, db: Session):
        self.db = db
        self.hooks = TourHooks(db)

    def get_stop(self, stop_id: UUID) -> TourStop:
        stop = self.db.get(TourStop, stop_id)
        if not stop:
            raise NotFoundError("TourStop nicht gefunden")
        return stop

    def create_stop(self, data: TourStopCreate) -> TourStop:
        """
        Hängt einen Stopp ans Ende der Tour.
        Das Gewicht kommt aus dem Auftrag, sonst aus den Eingabedaten.
        """
        tour = self.db.get(Tour, data.tour_id)
        if not tour:
            raise NotFoundError("Tour nicht gefunden")
        auftrag = self.db.get(Auftrag, data.auftrag_id)
        if not auftrag:
            raise NotFoundError("Auftrag nicht gefunden")

        vorhanden = self.db.execute(
            select(TourStop.id).where(TourStop.auftrag_id == auftrag.id)
        ).first()
        if vorhanden:
            raise KonfliktError("Für diesen Auftrag existiert bereits ein Stopp")

        kunde = self.db.get(Kunde, data.kunde_id or auftrag.kunde_id)
        kunde_name = data.kunde_name or (kunde.name if kunde else auftrag.kunde_name)

        stop = TourStop(
            tour_id=tour.id,
            auftrag_id=auftrag.id,
            kunde_id=kunde.id if kunde else data.kunde_id,
            kunde_name=(kunde_name or "").strip() or None,
            kunde_adresse=data.kunde_adresse or (kunde.adresse if kunde else None),
            position=self.hooks.max_position(tour.id) + 1,
            gewicht_kg=auftrag.gewicht if auftrag.gewicht else data.gewicht_kg,
            status=data.status,
            fehlgrund=data.fehlgrund.model_dump(mode="json") if data.fehlgrund else None,
            signatur_png_base64=data.signatur_png_base64,
            sign_timestamp_utc=data.sign_timestamp_utc,
            signed_by_name=data.signed_by_name,
            leergut_mitnahme=[l.model_dump(mode="json") for l in data.leergut_mitnahme],
        )
        self.db.add(stop)
        self.db.flush()

        auftrag.tour_id = tour.id
        auftrag.tour_stop_id = stop.id
        self.hooks.tour_aktualisieren(tour)
        return stop

    def list_stops(
        self,
        tour_id: UUID | None = None,
        auftrag_id: UUID | None = None,
        kunde_id: UUID | None = None,
    ) -> list[TourStop]:
        query = select(TourStop)
        if tour_id:
            query = query.where(TourStop.tour_id == tour_id)
        if auftrag_id:
            query = query.where(TourStop.auftrag_id == auftrag_id)
        if kunde_id:
            query = query.where(TourStop.kunde_id == kunde_id)
        query = query.order_by(TourStop.position, TourStop.created_at)
        return list(self.db.execute(query).scalars().all())

    def update_stop(self, stop_id: UUID, data: TourStopUpdate, nur_zustellung: bool = False) -> TourStop:
        """
        Aktualisiert einen Stopp.
        Fahrer (nur_zustellung) dürfen nur die Zustellfelder ändern.
        """
        stop = self.get_stop(stop_id)
        update_data = data.model_dump(exclude_unset=True)
        if not update_data:
            raise ValidierungsError("Keine Felder zum Aktualisieren angegeben")

        if nur_zustellung:
            verboten = sorted(set(update_data) - ZUSTELL_FELDER)
            if verboten:
                raise BerechtigungsError(f"Feld '{verboten[0]}' darf nicht geändert werden")

        neuer_status = update_data.get("status")
        if neuer_status == StopStatus.FEHLGESCHLAGEN:
            fehlgrund = update_data["fehlgrund"] if "fehlgrund" in update_data else stop.fehlgrund
            if not fehlgrund:
                raise ValidierungsError("Für eine fehlgeschlagene Zustellung ist ein Fehlgrund erforderlich")

        if "position" in update_data:
            position = update_data.pop("position")
            if position is not None and position != stop.position:
                self.hooks.platzieren(stop.tour_id, stop, position)

        if "fehlgrund" in update_data:
            update_data["fehlgrund"] = data.fehlgrund.model_dump(mode="json") if data.fehlgrund else None
        if "leergut_mitnahme" in update_data:
            update_data["leergut_mitnahme"] = [
                l.model_dump(mode="json") for l in (data.leergut_mitnahme or [])
            ]
        if update_data.get("kunde_name"):
            update_data["kunde_name"] = update_data["kunde_name"].strip()

        for field, value in update_data.items():
            setattr(stop, field, value)

        if neuer_status in ABSCHLUSS_STATUS:
            stop.abgeschlossen_am = datetime.utcnow()
        elif neuer_status is not None:
            stop.abgeschlossen_am = None

        tour = self.db.get(Tour, stop.tour_id)
        if tour:
            self.hooks.tour_aktualisieren(tour)
        return stop

    def move_stop(self, stop_id: UUID, to_tour_id: UUID, target_index: int | None = None) -> TourStop:
        """
        Drag&Drop zwischen Touren (target_index 0-basiert).
        Gleiche Tour ohne Index ist ein No-op.
        """
        stop = self.get_stop(stop_id)
        ziel = self.db.get(Tour, to_tour_id)
        if not ziel:
            raise NotFoundError("Ziel-Tour nicht gefunden")

        if stop.tour_id == ziel.id and target_index is None:
            return stop

        ziel_position = target_index + 1 if target_index is not None else None
        return self.hooks.move_stop_between_tours(stop, ziel, ziel_position)

    def delete_stop(self, stop_id: UUID) -> None:
        """Löscht einen Stopp, schließt die Lücke und entkoppelt den Auftrag."""
        stop = self.get_stop(stop_id)
        self.hooks.remove_stop(stop)

    def delete_all_stops(self) -> int:
        """Löscht alle Stopps; leere Standard-Touren werden entfernt."""
        self.db.execute(
            update(Auftrag)
            .where(Auftrag.tour_stop_id.is_not(None))
            .values(tour_id=None, tour_stop_id=None)
        )
        result = self.db.execute(delete(TourStop))
        for tour in self.db.execute(select(Tour)).scalars().all():
            self.hooks.tour_aktualisieren(tour)
            self.hooks.delete_tour_if_empty(tour)
        logger.warning(f"Alle Tour-Stopps gelöscht ({result.rowcount})")
        return result.rowcount
