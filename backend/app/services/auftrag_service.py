"""
Auftrags-Service - Lebenszyklus eines Auftrags

Zustandsautomaten für Gesamtstatus, Kommissionierung, Kontrolle und
Beladung, rollenabhängige Feldfreigaben beim Update, Sichtbarkeit je
Rolle sowie die Anbindung an Touren und Zerlegung.
"""
import logging
from datetime import date, datetime
from uuid import UUID
from sqlalchemy import select, func, or_, delete
from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import (
    ValidierungsError, BerechtigungsError, NotFoundError,
)
from app.core.zeit import heute
from app.models.auftrag import Auftrag
from app.models.enums import (
    AuftragStatus, KommissioniertStatus, KontrolliertStatus, BeladeStatus,
)
from app.models.inventory import Reservierung
from app.models.kunde import Kunde
from app.models.tour import TourStop
from app.schemas.auftrag import AuftragCreate, AuftragUpdate
from app.services.benutzer import ist_admin, benutzer_uuid, benutzer_name
from app.services.position_service import PositionService
from app.services.tour_hooks import TourHooks
from app.services.zerlege_service import ZerlegeService

logger = logging.getLogger(__name__)

STATUS_UEBERGAENGE = {
    AuftragStatus.OFFEN: {AuftragStatus.IN_BEARBEITUNG, AuftragStatus.STORNIERT},
    AuftragStatus.IN_BEARBEITUNG: {
        AuftragStatus.OFFEN, AuftragStatus.ABGESCHLOSSEN, AuftragStatus.STORNIERT,
    },
    AuftragStatus.ABGESCHLOSSEN: {AuftragStatus.IN_BEARBEITUNG},
    AuftragStatus.STORNIERT: {AuftragStatus.OFFEN},
}

KOMMISSIONIERT_UEBERGAENGE = {
    KommissioniertStatus.OFFEN: {KommissioniertStatus.GESTARTET},
    KommissioniertStatus.GESTARTET: {KommissioniertStatus.FERTIG, KommissioniertStatus.OFFEN},
    KommissioniertStatus.FERTIG: {KommissioniertStatus.GESTARTET},
}

KONTROLLIERT_UEBERGAENGE = {
    KontrolliertStatus.OFFEN: {KontrolliertStatus.IN_KONTROLLE},
    KontrolliertStatus.IN_KONTROLLE: {KontrolliertStatus.GEPRUEFT, KontrolliertStatus.OFFEN},
    KontrolliertStatus.GEPRUEFT: {KontrolliertStatus.IN_KONTROLLE},
}

BELADE_UEBERGAENGE = {
    BeladeStatus.OFFEN: {BeladeStatus.BELADEN},
    BeladeStatus.BELADEN: {BeladeStatus.OFFEN},
}

# Felder, die Nicht-Admins per PUT ändern dürfen
ROLLEN_FELDER = {
    "kommissionierung": {"kommissioniert_status"},
    "kontrolle": {"kontrolliert_status"},
    "fahrer": {"belade_status"},
    "kunde": {"bemerkungen", "lieferdatum"},
}

SICHT_ALLE = {"admin", "buchhaltung", "statistik", "support"}

AUFTRAG_SORTIERUNG = {
    "createdAtDesc": (Auftrag.created_at.desc(),),
    "createdAtAsc": (Auftrag.created_at.asc(),),
    "updatedAtDesc": (Auftrag.updated_at.desc(),),
    "updatedAtAsc": (Auftrag.updated_at.asc(),),
    "lieferdatumAsc": (Auftrag.lieferdatum.asc(), Auftrag.created_at.asc()),
    "lieferdatumDesc": (Auftrag.lieferdatum.desc(), Auftrag.created_at.desc()),
    "auftragsnummerAsc": (Auftrag.auftragsnummer.asc(),),
    "auftragsnummerDesc": (Auftrag.auftragsnummer.desc(),),
}


def _wert(status):
    return status.value if status is not None else "-"


def uebergang_pruefen(tabelle: dict, alt, neu, bezeichnung: str) -> bool:
    """
    Prüft einen Statuswechsel gegen die Übergangstabelle.
    Gleicher Wert ist ein No-op (False), ungültig wirft ValidierungsError.
    """
    if alt == neu:
        return False
    if neu not in tabelle.get(alt, set()):
        raise ValidierungsError(
            f"Ungültiger Statuswechsel ({bezeichnung}): {_wert(alt)} → {_wert(neu)}"
        )
    return True


def kann_sehen(user: dict, auftrag: Auftrag, stichtag: date | None = None) -> bool:
    """Sichtbarkeit eines Auftrags für den Benutzer"""
    rollen = set(user.get("roles", []))
    user_id = str(user.get("id"))

    if rollen & SICHT_ALLE:
        return True
    if "kommissionierung" in rollen:
        if auftrag.kommissioniert_status == KommissioniertStatus.GESTARTET \
                and str(auftrag.kommissioniert_von) == user_id:
            return True
    if "kontrolle" in rollen:
        bereit = (
            (auftrag.kontrolliert_status in (None, KontrolliertStatus.OFFEN))
            and auftrag.kommissioniert_status == KommissioniertStatus.FERTIG
        )
        eigene = (
            auftrag.kontrolliert_status == KontrolliertStatus.IN_KONTROLLE
            and str(auftrag.kontrolliert_von) == user_id
        )
        if bereit or eigene:
            return True
    if "fahrer" in rollen:
        if auftrag.lieferdatum is not None and auftrag.lieferdatum == (stichtag or heute()):
            return True
    if "kunde" in rollen and str(auftrag.kunde_id) == user_id:
        return True
    return False


class AuftragService:
    """Service für Aufträge"""

    def __init__(self, db: Session):
        self.db = db
        self.hooks = TourHooks(db)
        self.positionen = PositionService(db)
        self.zerlegung = ZerlegeService(db)

    def get(self, auftrag_id: UUID) -> Auftrag:
        auftrag = self.db.get(Auftrag, auftrag_id)
        if not auftrag:
            raise NotFoundError("Auftrag nicht gefunden")
        return auftrag

    def get_sichtbar(self, auftrag_id: UUID, user: dict) -> Auftrag:
        auftrag = self.get(auftrag_id)
        if not kann_sehen(user, auftrag):
            raise BerechtigungsError("Zugriff verweigert")
        return auftrag

    # ========================================
    # ANLEGEN
    # ========================================

    def _naechste_nummer(self, tag: date) -> str:
        """Fortlaufende Auftragsnummer je Tag: AU-YYYYMMDD-NNNN"""
        prefix = f"AU-{tag.strftime('%Y%m%d')}-"
        self.db.flush()
        letzte = self.db.execute(
            select(func.max(Auftrag.auftragsnummer)).where(Auftrag.auftragsnummer.like(f"{prefix}%"))
        ).scalar()
        nummer = int(letzte.rsplit("-", 1)[1]) + 1 if letzte else 1
        return f"{prefix}{nummer:04d}"

    def create(self, data: AuftragCreate, user: dict) -> Auftrag:
        """
        Legt einen Auftrag an. Nicht-Admins bestellen immer für sich selbst.
        Mit Lieferdatum wird der Auftrag direkt einer Tour zugeordnet.
        """
        if ist_admin(user) and data.kunde_id:
            kunde_id = data.kunde_id
        else:
            kunde_id = benutzer_uuid(user)

        kunde = self.db.get(Kunde, kunde_id) if kunde_id else None
        if not kunde:
            raise NotFoundError("Kunde nicht gefunden")

        auftrag = Auftrag(
            auftragsnummer=self._naechste_nummer(heute()),
            kunde_id=kunde.id,
            kunde_name=kunde.name,
            status=AuftragStatus.OFFEN,
            lieferdatum=data.lieferdatum,
            bemerkungen=data.bemerkungen,
            kommissioniert_status=KommissioniertStatus.OFFEN,
            kontrolliert_status=KontrolliertStatus.OFFEN,
            belade_status=BeladeStatus.OFFEN,
        )
        self.db.add(auftrag)
        self.db.flush()

        for eintrag in data.positionen:
            self.positionen.neue_position(auftrag, eintrag.model_dump())
        self.positionen.auftrag_summen(auftrag)

        if auftrag.lieferdatum:
            self.hooks.on_auftrag_lieferdatum_set(auftrag)

        logger.info(f"Auftrag angelegt: {auftrag.auftragsnummer} für {kunde.name}")
        return auftrag

    # ========================================
    # LESEN
    # ========================================

    def list_auftraege(
        self,
        status: AuftragStatus | None = None,
        status_in: list[AuftragStatus] | None = None,
        kunde_id: UUID | None = None,
        auftragsnummer: str | None = None,
        q: str | None = None,
        lieferdatum_von: date | None = None,
        lieferdatum_bis: date | None = None,
        kommissioniert_status: KommissioniertStatus | None = None,
        kontrolliert_status: KontrolliertStatus | None = None,
        kommissioniert_von: UUID | None = None,
        kontrolliert_von: UUID | None = None,
        has_tour: bool | None = None,
        sort: str = "createdAtDesc",
        offset: int = 0,
        limit: int = 50,
    ) -> tuple[list[Auftrag], int]:
        query = select(Auftrag)
        if status:
            query = query.where(Auftrag.status == status)
        if status_in:
            query = query.where(Auftrag.status.in_(status_in))
        if kunde_id:
            query = query.where(Auftrag.kunde_id == kunde_id)
        if auftragsnummer:
            query = query.where(Auftrag.auftragsnummer == auftragsnummer.strip())
        if q:
            muster = f"%{q.strip()}%"
            query = query.where(or_(
                Auftrag.auftragsnummer.ilike(muster),
                Auftrag.kunde_name.ilike(muster),
                Auftrag.bemerkungen.ilike(muster),
            ))
        if lieferdatum_von:
            query = query.where(Auftrag.lieferdatum >= lieferdatum_von)
        if lieferdatum_bis:
            query = query.where(Auftrag.lieferdatum <= lieferdatum_bis)
        if kommissioniert_status:
            query = query.where(Auftrag.kommissioniert_status == kommissioniert_status)
        if kontrolliert_status:
            query = query.where(Auftrag.kontrolliert_status == kontrolliert_status)
        if kommissioniert_von:
            query = query.where(Auftrag.kommissioniert_von == kommissioniert_von)
        if kontrolliert_von:
            query = query.where(Auftrag.kontrolliert_von == kontrolliert_von)
        if has_tour is True:
            query = query.where(Auftrag.tour_id.is_not(None))
        elif has_tour is False:
            query = query.where(Auftrag.tour_id.is_(None))

        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar() or 0
        order = AUFTRAG_SORTIERUNG.get(sort, AUFTRAG_SORTIERUNG["createdAtDesc"])
        items = self.db.execute(query.order_by(*order).offset(offset).limit(limit)).scalars().all()
        return list(items), total

    def fuer_kunde(self, kunde_id: UUID) -> list[Auftrag]:
        query = (
            select(Auftrag)
            .where(Auftrag.kunde_id == kunde_id)
            .order_by(Auftrag.created_at.desc())
        )
        return list(self.db.execute(query).scalars().all())

    def letzter_auftrag(self, kunde_id: UUID) -> Auftrag | None:
        """Letzter Auftrag eines Kunden (mit Positionen)"""
        query = (
            select(Auftrag)
            .options(selectinload(Auftrag.positionen))
            .where(Auftrag.kunde_id == kunde_id)
            .order_by(Auftrag.created_at.desc())
            .limit(1)
        )
        return self.db.execute(query).scalars().first()

    def letzte_artikel(self, kunde_id: UUID) -> list[UUID]:
        """Artikel-IDs des letzten Auftrags, ohne Duplikate"""
        auftrag = self.letzter_auftrag(kunde_id)
        if not auftrag:
            return []
        ids: list[UUID] = []
        for position in auftrag.positionen:
            if position.artikel_id not in ids:
                ids.append(position.artikel_id)
        return ids

    def in_bearbeitung(self, user: dict) -> list[Auftrag]:
        """
        Aufträge in Bearbeitung. Reine Kommissionierer sehen nur offene
        oder selbst gestartete Kommissionierungen.
        """
        query = select(Auftrag).where(Auftrag.status == AuftragStatus.IN_BEARBEITUNG)
        rollen = set(user.get("roles", []))
        if "kommissionierung" in rollen and not rollen & {"admin", "kontrolle"}:
            query = query.where(or_(
                Auftrag.kommissioniert_status == KommissioniertStatus.OFFEN,
                Auftrag.kommissioniert_status.is_(None),
                (Auftrag.kommissioniert_status == KommissioniertStatus.GESTARTET)
                & (Auftrag.kommissioniert_von == benutzer_uuid(user)),
            ))
        query = query.order_by(Auftrag.lieferdatum.asc(), Auftrag.created_at.asc())
        return list(self.db.execute(query).scalars().all())

    # ========================================
    # ÄNDERN
    # ========================================

    def _felder_pruefen(self, auftrag: Auftrag, felder: set[str], user: dict) -> None:
        """Rollenabhängige Feldfreigabe (Admin darf alles)"""
        if ist_admin(user):
            return
        rollen = set(user.get("roles", []))
        erlaubt: set[str] = set()
        for rolle in rollen:
            erlaubt |= ROLLEN_FELDER.get(rolle, set())
        if not erlaubt:
            raise BerechtigungsError("Keine Berechtigung für diese Aktion")

        for feld in sorted(felder):
            if feld not in erlaubt:
                raise BerechtigungsError(f"Keine Berechtigung, das Feld '{feld}' zu ändern")

        kunden_felder = felder & ROLLEN_FELDER["kunde"]
        if kunden_felder:
            if str(auftrag.kunde_id) != str(user.get("id")):
                raise BerechtigungsError("Zugriff verweigert")
            if auftrag.lieferdatum is not None:
                raise BerechtigungsError("Auftrag hat bereits ein Lieferdatum")

    def update(self, auftrag_id: UUID, data: AuftragUpdate, user: dict) -> Auftrag:
        auftrag = self.get(auftrag_id)
        update_data = data.model_dump(exclude_unset=True)
        self._felder_pruefen(auftrag, set(update_data), user)

        if "status" in update_data and update_data["status"] is not None:
            self._status_setzen(auftrag, update_data.pop("status"))
        else:
            update_data.pop("status", None)
        if "kommissioniert_status" in update_data:
            neu = update_data.pop("kommissioniert_status")
            if neu is not None:
                self._kommissioniert_setzen(auftrag, neu, user)
        if "kontrolliert_status" in update_data:
            neu = update_data.pop("kontrolliert_status")
            if neu is not None:
                self._kontrolliert_setzen(auftrag, neu, user)
        if "belade_status" in update_data:
            neu = update_data.pop("belade_status")
            if neu is not None:
                self._belade_setzen(auftrag, neu, user)

        lieferdatum_geaendert = False
        alt_lieferdatum = auftrag.lieferdatum
        if "lieferdatum" in update_data:
            neu = update_data.pop("lieferdatum")
            lieferdatum_geaendert = neu != alt_lieferdatum
            auftrag.lieferdatum = neu

        for field, value in update_data.items():
            setattr(auftrag, field, value)

        if lieferdatum_geaendert and auftrag.status != AuftragStatus.STORNIERT:
            if auftrag.lieferdatum is None:
                self.hooks.remove_all_stops_for_auftrag(auftrag)
            elif alt_lieferdatum is None:
                self.hooks.on_auftrag_lieferdatum_set(auftrag)
            else:
                self.hooks.on_auftrag_datum_oder_region_geaendert(auftrag)
        return auftrag

    def _status_setzen(self, auftrag: Auftrag, neu: AuftragStatus) -> None:
        alt = auftrag.status
        if not uebergang_pruefen(STATUS_UEBERGAENGE, alt, neu, "Status"):
            return
        auftrag.status = neu

        if neu == AuftragStatus.STORNIERT:
            entfernt = self.hooks.remove_all_stops_for_auftrag(auftrag)
            logger.info(f"Auftrag {auftrag.auftragsnummer} storniert, {entfernt} Stopp(s) entfernt")
        elif neu == AuftragStatus.IN_BEARBEITUNG:
            if auftrag.kommissioniert_status is None:
                auftrag.kommissioniert_status = KommissioniertStatus.OFFEN
            self.zerlegung.erstellen_oder_aktualisieren(auftrag)
        elif alt == AuftragStatus.STORNIERT and auftrag.lieferdatum:
            # Reaktivierter Auftrag kommt wieder auf die Tour
            self.hooks.on_auftrag_lieferdatum_set(auftrag)

    def _kommissioniert_setzen(self, auftrag: Auftrag, neu: KommissioniertStatus, user: dict) -> None:
        alt = auftrag.kommissioniert_status or KommissioniertStatus.OFFEN
        if not uebergang_pruefen(KOMMISSIONIERT_UEBERGAENGE, alt, neu, "Kommissionierung"):
            return

        if neu == KommissioniertStatus.GESTARTET:
            if alt == KommissioniertStatus.OFFEN and auftrag.status != AuftragStatus.IN_BEARBEITUNG:
                raise ValidierungsError("Kommissionierung erst möglich, wenn der Auftrag in Bearbeitung ist")
            auftrag.kommissioniert_von = benutzer_uuid(user)
            auftrag.kommissioniert_von_name = benutzer_name(self.db, user)
            auftrag.kommissioniert_startzeit = datetime.utcnow()
            auftrag.kommissioniert_endzeit = None
        elif neu == KommissioniertStatus.FERTIG:
            if not ist_admin(user) and str(auftrag.kommissioniert_von) != str(user.get("id")):
                raise BerechtigungsError("Nur wer die Kommissionierung gestartet hat, darf sie abschließen")
            auftrag.kommissioniert_endzeit = datetime.utcnow()
        else:
            auftrag.kommissioniert_von = None
            auftrag.kommissioniert_von_name = None
            auftrag.kommissioniert_startzeit = None
            auftrag.kommissioniert_endzeit = None
        auftrag.kommissioniert_status = neu

    def _kontrolliert_setzen(self, auftrag: Auftrag, neu: KontrolliertStatus, user: dict) -> None:
        alt = auftrag.kontrolliert_status or KontrolliertStatus.OFFEN
        if not uebergang_pruefen(KONTROLLIERT_UEBERGAENGE, alt, neu, "Kontrolle"):
            return

        if neu == KontrolliertStatus.IN_KONTROLLE:
            if alt == KontrolliertStatus.OFFEN and auftrag.kommissioniert_status != KommissioniertStatus.FERTIG:
                raise ValidierungsError("Kontrolle erst möglich, wenn die Kommissionierung fertig ist")
            auftrag.kontrolliert_von = benutzer_uuid(user)
            auftrag.kontrolliert_von_name = benutzer_name(self.db, user)
            auftrag.kontrolliert_zeit = datetime.utcnow()
        elif neu == KontrolliertStatus.GEPRUEFT:
            if not ist_admin(user) and str(auftrag.kontrolliert_von) != str(user.get("id")):
                raise BerechtigungsError("Nur wer die Kontrolle begonnen hat, darf sie abschließen")
            auftrag.kontrolliert_zeit = datetime.utcnow()
        else:
            auftrag.kontrolliert_von = None
            auftrag.kontrolliert_von_name = None
            auftrag.kontrolliert_zeit = None
        auftrag.kontrolliert_status = neu

    def _belade_setzen(self, auftrag: Auftrag, neu: BeladeStatus, user: dict) -> None:
        alt = auftrag.belade_status or BeladeStatus.OFFEN
        if not uebergang_pruefen(BELADE_UEBERGAENGE, alt, neu, "Beladung"):
            return

        if neu == BeladeStatus.BELADEN:
            if auftrag.kontrolliert_status != KontrolliertStatus.GEPRUEFT:
                raise ValidierungsError("Beladung erst möglich, wenn der Auftrag geprüft ist")
            auftrag.belade_von = benutzer_uuid(user)
            auftrag.belade_von_name = benutzer_name(self.db, user)
            auftrag.belade_zeit = datetime.utcnow()
        else:
            auftrag.belade_von = None
            auftrag.belade_von_name = None
            auftrag.belade_zeit = None
        auftrag.belade_status = neu

    def in_bearbeitung_setzen(self, auftrag_id: UUID) -> Auftrag:
        """Status "in Bearbeitung", Kommissionierung offen, Zerlegeauftrag anlegen/auffrischen"""
        auftrag = self.get(auftrag_id)
        if auftrag.status != AuftragStatus.IN_BEARBEITUNG:
            uebergang_pruefen(STATUS_UEBERGAENGE, auftrag.status, AuftragStatus.IN_BEARBEITUNG, "Status")
            auftrag.status = AuftragStatus.IN_BEARBEITUNG
        auftrag.kommissioniert_status = KommissioniertStatus.OFFEN
        auftrag.kommissioniert_von = None
        auftrag.kommissioniert_von_name = None
        auftrag.kommissioniert_startzeit = None
        self.zerlegung.erstellen_oder_aktualisieren(auftrag)
        return auftrag

    # ========================================
    # LÖSCHEN
    # ========================================

    def delete(self, auftrag_id: UUID) -> None:
        """Entfernt Stopps (mit Tour-Aufräumen), Positionen, Reservierungen und den Auftrag"""
        auftrag = self.get(auftrag_id)
        self.hooks.remove_all_stops_for_auftrag(auftrag)
        self.zerlegung.delete_fuer_auftrag(auftrag.id)
        self.db.execute(delete(Reservierung).where(Reservierung.auftrag_id == auftrag.id))
        self.db.delete(auftrag)
        logger.info(f"Auftrag gelöscht: {auftrag.auftragsnummer}")

    def delete_all(self) -> int:
        anzahl = 0
        for auftrag in self.db.execute(select(Auftrag)).scalars().all():
            self.delete(auftrag.id)
            anzahl += 1
        # Freie Positionen ohne Auftrag bleiben erhalten
        logger.warning(f"Alle Aufträge gelöscht ({anzahl})")
        return anzahl

    def delete_fuer_kunde(self, kunde_id: UUID) -> int:
        auftraege = self.db.execute(select(Auftrag).where(Auftrag.kunde_id == kunde_id)).scalars().all()
        for auftrag in auftraege:
            self.delete(auftrag.id)
        # Stopps ohne Auftrag, die noch auf den Kunden zeigen
        for stop in self.db.execute(select(TourStop).where(TourStop.kunde_id == kunde_id)).scalars().all():
            self.hooks.remove_stop(stop)
        return len(auftraege)
