"""
Tour-Hooks - Automatische Tourzuordnung von Aufträgen

Wird von Auftrags-, Positions- und Kundenänderungen aufgerufen:
- Lieferdatum gesetzt/geändert → Standard-Tour finden/anlegen, Stopp anlegen oder verschieben
- Gewicht geändert → Stopp-Gewicht und Tour-Auslastung nachziehen
- Auftrag gelöscht/storniert → Stopps entfernen, Lücken schließen

Alle Methoden arbeiten in der Session des Aufrufers; committet wird dort.
Positionen werden immer zweiphasig neu vergeben (erst in einen hohen
Bereich, dann 1..n), damit der Unique-Index (tour_id, position) nie
kurzzeitig verletzt wird.
"""
import logging
from datetime import date
from decimal import Decimal
from uuid import UUID
from sqlalchemy import select, func
from sqlalchemy.orm import Session

from app.core.exceptions import ValidierungsError, NotFoundError
from app.models.auftrag import Auftrag
from app.models.fahrzeug import Fahrzeug
from app.models.kunde import Kunde
from app.models.tour import Tour, TourStop, RegionRule, ReihenfolgeVorlage, WOCHENTAGE
from app.models.enums import TourStatus, StopStatus

logger = logging.getLogger(__name__)

POSITION_OFFSET = 10000


def normalize_region(region: str | None) -> str:
    """Region ohne führende/folgende Leerzeichen"""
    return (region or "").strip()


class TourHooks:
    """Zentrale Helfer für Tour-Automatik und Stopp-Reihenfolge"""

    def __init__(self, db: Session):
        self.db = db

    # ========================================
    # STOPP-REIHENFOLGE
    # ========================================

    def stops_der_tour(self, tour_id: UUID) -> list[TourStop]:
        """Stopps einer Tour, sortiert nach Position"""
        self.db.flush()
        query = (
            select(TourStop)
            .where(TourStop.tour_id == tour_id)
            .order_by(TourStop.position)
        )
        return list(self.db.execute(query).scalars().all())

    def max_position(self, tour_id: UUID) -> int:
        self.db.flush()
        query = select(func.max(TourStop.position)).where(TourStop.tour_id == tour_id)
        return self.db.execute(query).scalar() or 0

    def neu_nummerieren(self, stops: list[TourStop]) -> None:
        """Vergibt die Positionen 1..n in der Reihenfolge der Liste"""
        if not stops:
            return
        for index, stop in enumerate(stops, start=1):
            stop.position = POSITION_OFFSET + index
        self.db.flush()
        for index, stop in enumerate(stops, start=1):
            stop.position = index
        self.db.flush()

    def luecken_schliessen(self, tour_id: UUID) -> None:
        """Schließt Lücken in der Positionsfolge einer Tour"""
        stops = self.stops_der_tour(tour_id)
        if [s.position for s in stops] != list(range(1, len(stops) + 1)):
            self.neu_nummerieren(stops)

    def platzieren(self, tour_id: UUID, stop: TourStop, ziel_position: int | None = None) -> None:
        """
        Setzt einen Stopp der Tour an eine 1-basierte Position.
        Ohne Zielposition wird ans Ende gestellt; die Position wird auf 1..n begrenzt.
        """
        andere = [s for s in self.stops_der_tour(tour_id) if s.id != stop.id]
        if ziel_position is None:
            index = len(andere)
        else:
            index = max(0, min(ziel_position - 1, len(andere)))
        andere.insert(index, stop)
        self.neu_nummerieren(andere)

    # ========================================
    # GEWICHT / KAPAZITÄT
    # ========================================

    def recompute_tour_weight(self, tour: Tour) -> Decimal:
        """Summe der Stopp-Gewichte (fehlende Gewichte zählen als 0)"""
        summe = sum(
            (Decimal(str(s.gewicht_kg)) for s in self.stops_der_tour(tour.id) if s.gewicht_kg is not None),
            Decimal("0"),
        )
        tour.belegtes_gewicht_kg = summe
        return summe

    def update_over_capacity_flag(self, tour: Tour) -> bool:
        """Überlast, wenn belegtes Gewicht > max. Gewicht (Tour, sonst Fahrzeug)"""
        max_gewicht = tour.max_gewicht_kg
        if not max_gewicht and tour.fahrzeug_id:
            fahrzeug = self.db.get(Fahrzeug, tour.fahrzeug_id)
            max_gewicht = fahrzeug.max_gewicht_kg if fahrzeug else None

        belegt = Decimal(str(tour.belegtes_gewicht_kg or 0))
        tour.over_capacity_flag = bool(max_gewicht) and belegt > Decimal(str(max_gewicht))
        return tour.over_capacity_flag

    def tour_aktualisieren(self, tour: Tour) -> None:
        """Gewicht und Überlast-Flag neu berechnen"""
        self.recompute_tour_weight(tour)
        self.update_over_capacity_flag(tour)

    def delete_tour_if_empty(self, tour: Tour) -> bool:
        """Löscht eine leere Standard-Tour"""
        if not tour.is_standard:
            return False
        if self.stops_der_tour(tour.id):
            return False
        logger.info(f"Leere Standard-Tour gelöscht: {tour.region} {tour.datum}")
        self.db.delete(tour)
        self.db.flush()
        return True

    # ========================================
    # REGELN / VORLAGEN
    # ========================================

    def validate_region_rule_or_raise(self, region: str, datum: date) -> None:
        """
        Prüft die aktive Regel der Region (ohne Regel ist alles erlaubt).
        Wirft ValidierungsError bei nicht erlaubtem Wochentag oder Ausnahmetag.
        """
        region = normalize_region(region)
        query = select(RegionRule).where(
            func.lower(RegionRule.region) == region.lower(),
            RegionRule.is_active == True,  # noqa: E712
        )
        rule = self.db.execute(query).scalars().first()
        if not rule:
            return

        if datum.isoformat() in (rule.exception_dates or []):
            raise ValidierungsError(
                f"Für Region {region} ist am {datum.strftime('%d.%m.%Y')} keine Lieferung möglich."
            )

        wochentag = WOCHENTAGE[datum.isoweekday() - 1]
        if wochentag not in rule.erlaubte_tage:
            raise ValidierungsError(
                f"Für Region {region} sind Bestellungen an {wochentag} nicht erlaubt."
            )

    def _passende_vorlage(self, region: str, datum: date) -> ReihenfolgeVorlage | None:
        """Aktive Vorlage der Region, die für den Wochentag gilt"""
        wochentag = WOCHENTAGE[datum.isoweekday() - 1]
        query = (
            select(ReihenfolgeVorlage)
            .where(
                func.lower(ReihenfolgeVorlage.region) == region.lower(),
                ReihenfolgeVorlage.aktiv == True,  # noqa: E712
            )
            .order_by(ReihenfolgeVorlage.created_at.desc())
        )
        for vorlage in self.db.execute(query).scalars().all():
            if not vorlage.tage or wochentag in vorlage.tage:
                return vorlage
        return None

    def find_or_create_standard(self, datum: date, region: str) -> Tour:
        """Genau eine Standard-Tour je Tag und Region (Region ohne Groß/Klein)"""
        region = normalize_region(region)
        self.db.flush()
        query = (
            select(Tour)
            .where(
                Tour.datum == datum,
                func.lower(Tour.region) == region.lower(),
                Tour.is_standard == True,  # noqa: E712
            )
            .order_by(Tour.created_at)
        )
        tour = self.db.execute(query).scalars().first()
        if tour:
            return tour

        vorlage = self._passende_vorlage(region, datum)
        tour = Tour(
            datum=datum,
            region=region,
            name=f"{region} {datum.strftime('%d.%m.%Y')}",
            status=TourStatus.GEPLANT,
            is_standard=True,
            belegtes_gewicht_kg=Decimal("0"),
            over_capacity_flag=False,
            reihenfolge_vorlage_id=vorlage.id if vorlage else None,
        )
        self.db.add(tour)
        self.db.flush()
        logger.info(f"Standard-Tour angelegt: {region} {datum}")
        return tour

    def next_position_from_template(self, tour: Tour, kunde_id: UUID) -> int:
        """
        Position laut Vorlage der Tour (Index + 1), sonst ans Ende.
        Ergebnis ist höchstens max + 1.
        """
        ende = self.max_position(tour.id) + 1
        if tour.reihenfolge_vorlage_id:
            vorlage = self.db.get(ReihenfolgeVorlage, tour.reihenfolge_vorlage_id)
            if vorlage:
                kunden_ids = vorlage.kunden_ids
                if str(kunde_id) in kunden_ids:
                    return min(kunden_ids.index(str(kunde_id)) + 1, ende)
        return ende

    # ========================================
    # AUFTRAGS-HOOKS
    # ========================================

    def on_auftrag_lieferdatum_set(self, auftrag: Auftrag) -> TourStop:
        """Auftrag hat (erstmals) ein Lieferdatum: Stopp in Standard-Tour anlegen"""
        return self._auftrag_zuordnen(auftrag)

    def on_auftrag_datum_oder_region_geaendert(self, auftrag: Auftrag) -> TourStop:
        """Lieferdatum oder Kundenregion geändert: Stopp in die passende Tour verschieben"""
        return self._auftrag_zuordnen(auftrag)

    def _auftrag_zuordnen(self, auftrag: Auftrag) -> TourStop:
        if not auftrag.lieferdatum:
            raise ValidierungsError("Lieferdatum erforderlich")

        kunde = self.db.get(Kunde, auftrag.kunde_id)
        if not kunde:
            raise NotFoundError("Kunde nicht gefunden")

        region = normalize_region(kunde.region)
        if not region:
            raise ValidierungsError(f"Kunde {kunde.name} hat keine Region hinterlegt")

        self.validate_region_rule_or_raise(region, auftrag.lieferdatum)
        ziel = self.find_or_create_standard(auftrag.lieferdatum, region)

        self.db.flush()
        vorhandene = list(
            self.db.execute(
                select(TourStop).where(TourStop.auftrag_id == auftrag.id).order_by(TourStop.created_at)
            ).scalars().all()
        )

        # Mehrfach-Zuordnungen bereinigen
        for doppelt in vorhandene[1:]:
            self.remove_stop(doppelt)
        stop = vorhandene[0] if vorhandene else None

        if stop is None:
            position = self.next_position_from_template(ziel, kunde.id)
            stop = TourStop(
                tour_id=ziel.id,
                auftrag_id=auftrag.id,
                kunde_id=kunde.id,
                kunde_name=(kunde.name or "").strip(),
                kunde_adresse=kunde.adresse,
                position=self.max_position(ziel.id) + 1,
                gewicht_kg=auftrag.gewicht,
                status=StopStatus.OFFEN,
                leergut_mitnahme=[],
            )
            self.db.add(stop)
            self.db.flush()
            self.platzieren(ziel.id, stop, position)
            logger.info(f"Auftrag {auftrag.auftragsnummer} → Tour {ziel.region} {ziel.datum}, Position {stop.position}")
        elif stop.tour_id != ziel.id:
            quelle = self.db.get(Tour, stop.tour_id)
            position = self.next_position_from_template(ziel, kunde.id)
            ende = self.max_position(ziel.id) + 1
            stop.tour_id = ziel.id
            stop.position = ende
            stop.kunde_id = kunde.id
            stop.kunde_name = (kunde.name or "").strip()
            stop.kunde_adresse = kunde.adresse
            stop.gewicht_kg = auftrag.gewicht
            self.db.flush()
            self.platzieren(ziel.id, stop, position)
            if quelle:
                self.luecken_schliessen(quelle.id)
                self.tour_aktualisieren(quelle)
                self.delete_tour_if_empty(quelle)
            logger.info(f"Auftrag {auftrag.auftragsnummer} in Tour {ziel.region} {ziel.datum} verschoben")

        auftrag.tour_id = ziel.id
        auftrag.tour_stop_id = stop.id
        self.tour_aktualisieren(ziel)
        return stop

    def move_stop_between_tours(
        self,
        stop: TourStop,
        target_tour: Tour,
        target_position: int | None = None,
    ) -> TourStop:
        """
        Verschiebt einen Stopp (gleiche oder andere Tour) an eine 1-basierte Position.
        Ohne Position wird ans Ende gehängt. Die Stopp-ID bleibt erhalten.
        """
        source_id = stop.tour_id

        if source_id == target_tour.id:
            self.platzieren(target_tour.id, stop, target_position)
            self.tour_aktualisieren(target_tour)
            return stop

        ende = self.max_position(target_tour.id) + 1
        stop.tour_id = target_tour.id
        stop.position = ende
        self.db.flush()

        self.luecken_schliessen(source_id)
        if target_position is not None and target_position < ende:
            self.platzieren(target_tour.id, stop, target_position)

        auftrag = self.db.get(Auftrag, stop.auftrag_id)
        if auftrag:
            auftrag.tour_id = target_tour.id
            auftrag.tour_stop_id = stop.id

        quelle = self.db.get(Tour, source_id)
        if quelle:
            self.tour_aktualisieren(quelle)
            self.delete_tour_if_empty(quelle)
        self.tour_aktualisieren(target_tour)

        logger.info(f"Stopp {stop.id} nach Tour {target_tour.id} Position {stop.position} verschoben")
        return stop

    def remove_stop(self, stop: TourStop) -> None:
        """Löscht einen Stopp, schließt die Lücke und räumt die Tour auf"""
        tour = self.db.get(Tour, stop.tour_id)
        auftrag = self.db.get(Auftrag, stop.auftrag_id)
        if auftrag and auftrag.tour_stop_id == stop.id:
            auftrag.tour_id = None
            auftrag.tour_stop_id = None

        self.db.delete(stop)
        self.db.flush()

        if tour:
            self.luecken_schliessen(tour.id)
            self.tour_aktualisieren(tour)
            self.delete_tour_if_empty(tour)

    def remove_all_stops_for_auftrag(self, auftrag: Auftrag) -> int:
        """Entfernt alle Stopps eines Auftrags (Löschen/Stornieren)"""
        self.db.flush()
        stops = self.db.execute(
            select(TourStop).where(TourStop.auftrag_id == auftrag.id)
        ).scalars().all()
        for stop in stops:
            self.remove_stop(stop)
        auftrag.tour_id = None
        auftrag.tour_stop_id = None
        return len(stops)

    def sync_stop_weight(self, auftrag: Auftrag) -> None:
        """Überträgt das Auftragsgewicht auf den Stopp und rechnet die Tour neu"""
        self.db.flush()
        stop = self.db.execute(
            select(TourStop).where(TourStop.auftrag_id == auftrag.id)
        ).scalars().first()
        if not stop:
            return
        stop.gewicht_kg = auftrag.gewicht
        tour = self.db.get(Tour, stop.tour_id)
        if tour:
            self.tour_aktualisieren(tour)
