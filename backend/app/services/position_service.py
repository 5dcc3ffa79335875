"""
Positions-Service - Artikelpositionen mit Gewichts- und Preisberechnung

gesamtgewicht = menge × Gewicht je Einheit
einzelpreis   = Artikelpreis + Aufpreis des Auftragskunden
gesamtpreis   = einzelpreis × gesamtgewicht

Jede Änderung schreibt die Auftragssummen fort und zieht das Gewicht
des Tour-Stopps nach.
"""
import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from uuid import UUID
from sqlalchemy import select, func
from sqlalchemy.orm import Session

from app.core.exceptions import BerechtigungsError, NotFoundError
from app.models.artikel import Artikel
from app.models.auftrag import Auftrag, ArtikelPosition
from app.models.enums import KommissioniertStatus, KontrolliertStatus
from app.schemas.auftrag import (
    ArtikelPositionCreate, ArtikelPositionUpdate, KommissionierungUpdate,
)
from app.services.artikel_service import PreisService
from app.services.benutzer import ist_admin, benutzer_uuid, benutzer_name
from app.services.tour_hooks import TourHooks

logger = logging.getLogger(__name__)

GEWICHT_STELLEN = Decimal("0.001")
PREIS_STELLEN = Decimal("0.01")

# Felder, die bei der Kommissionierung gesetzt werden dürfen
KOMMISSIONIER_FELDER = {
    "kommissioniert_menge",
    "kommissioniert_einheit",
    "kommissioniert_bemerkung",
    "bruttogewicht",
    "leergut",
    "chargennummern",
}


def nettogewicht_berechnen(bruttogewicht: Decimal | None, leergut: list[dict]) -> Decimal | None:
    """Brutto minus Leergut (Anzahl × Gewicht), nie negativ"""
    if bruttogewicht is None:
        return None
    tara = sum(
        (Decimal(str(l.get("leergut_anzahl") or 0)) * Decimal(str(l.get("leergut_gewicht") or 0))
         for l in leergut or []),
        Decimal("0"),
    )
    return max(Decimal("0"), Decimal(str(bruttogewicht)) - tara).quantize(GEWICHT_STELLEN)


class PositionService:
    """Service für Artikelpositionen"""

    def __init__(self, db: Session):
        self.db = db
        self.preise = PreisService(db)
        self.hooks = TourHooks(db)

    def get(self, position_id: UUID) -> ArtikelPosition:
        position = self.db.get(ArtikelPosition, position_id)
        if not position:
            raise NotFoundError("Artikelposition nicht gefunden")
        return position

    # ========================================
    # BERECHNUNG
    # ========================================

    def berechnen(self, position: ArtikelPosition, artikel: Artikel, kunde_id: UUID | None) -> None:
        """Gewicht und Preise einer Position aus Artikel und Kundenaufpreis"""
        menge = Decimal(str(position.menge))
        gesamtgewicht = menge * artikel.gewicht_pro_einheit(position.einheit)
        einzelpreis = self.preise.effektiver_preis(artikel, kunde_id)

        position.artikel_name = artikel.name
        position.gesamtgewicht = gesamtgewicht.quantize(GEWICHT_STELLEN)
        position.einzelpreis = einzelpreis.quantize(PREIS_STELLEN, rounding=ROUND_HALF_UP)
        position.gesamtpreis = (einzelpreis * gesamtgewicht).quantize(PREIS_STELLEN, rounding=ROUND_HALF_UP)

    def auftrag_summen(self, auftrag: Auftrag) -> None:
        """Gewicht und Preis des Auftrags aus den Positionen, Stopp-Gewicht nachziehen"""
        self.db.flush()
        gewicht, preis = self.db.execute(
            select(
                func.coalesce(func.sum(ArtikelPosition.gesamtgewicht), 0),
                func.coalesce(func.sum(ArtikelPosition.gesamtpreis), 0),
            ).where(ArtikelPosition.auftrag_id == auftrag.id)
        ).one()
        auftrag.gewicht = Decimal(str(gewicht)).quantize(GEWICHT_STELLEN)
        auftrag.preis = Decimal(str(preis)).quantize(PREIS_STELLEN)
        self.hooks.sync_stop_weight(auftrag)

    # ========================================
    # CRUD
    # ========================================

    def _darf_bearbeiten(self, auftrag: Auftrag | None, user: dict) -> None:
        """Admin immer; Kunde nur ohne Auftrag oder am eigenen Auftrag ohne Lieferdatum"""
        if ist_admin(user):
            return
        if auftrag is None:
            if "kunde" in user.get("roles", []):
                return
            raise BerechtigungsError("Keine Berechtigung für diese Aktion")
        if "kunde" in user.get("roles", []) and str(auftrag.kunde_id) == str(user.get("id")) \
                and auftrag.lieferdatum is None:
            return
        raise BerechtigungsError("Keine Berechtigung für diese Aktion")

    def neue_position(self, auftrag: Auftrag | None, daten: dict) -> ArtikelPosition:
        """Legt eine berechnete Position an (ohne Summen-Update)"""
        artikel = self.db.get(Artikel, daten["artikel_id"])
        if not artikel:
            raise NotFoundError("Artikel nicht gefunden")

        position = ArtikelPosition(
            auftrag_id=auftrag.id if auftrag else None,
            artikel_id=artikel.id,
            menge=daten["menge"],
            einheit=daten["einheit"],
            zerlegung=daten.get("zerlegung", False),
            vakuum=daten.get("vakuum", False),
            bemerkung=(daten.get("bemerkung") or "").strip() or None,
            zerlege_bemerkung=daten.get("zerlege_bemerkung"),
            leergut=[],
            chargennummern=[],
        )
        self.berechnen(position, artikel, auftrag.kunde_id if auftrag else None)
        self.db.add(position)
        return position

    def create(self, data: ArtikelPositionCreate, user: dict) -> ArtikelPosition:
        auftrag = None
        if data.auftrag_id:
            auftrag = self.db.get(Auftrag, data.auftrag_id)
            if not auftrag:
                raise NotFoundError("Auftrag nicht gefunden")
        self._darf_bearbeiten(auftrag, user)

        position = self.neue_position(auftrag, data.model_dump(exclude={"auftrag_id"}))
        self.db.flush()
        if auftrag:
            self.auftrag_summen(auftrag)
        return position

    def list_positionen(self, auftrag_id: UUID | None = None) -> list[ArtikelPosition]:
        query = select(ArtikelPosition)
        if auftrag_id:
            query = query.where(ArtikelPosition.auftrag_id == auftrag_id)
        return list(self.db.execute(query.order_by(ArtikelPosition.created_at)).scalars().all())

    def update(self, position_id: UUID, data: ArtikelPositionUpdate, user: dict) -> ArtikelPosition:
        position = self.get(position_id)
        auftrag = self.db.get(Auftrag, position.auftrag_id) if position.auftrag_id else None
        self._darf_bearbeiten(auftrag, user)

        update_data = data.model_dump(exclude_unset=True)
        neu_berechnen = any(f in update_data for f in ("artikel_id", "menge", "einheit"))
        for field, value in update_data.items():
            if value is None and field in ("artikel_id", "menge", "einheit", "zerlegung", "vakuum"):
                continue
            setattr(position, field, value)

        if neu_berechnen:
            artikel = self.db.get(Artikel, position.artikel_id)
            if not artikel:
                raise NotFoundError("Artikel nicht gefunden")
            self.berechnen(position, artikel, auftrag.kunde_id if auftrag else None)
        if auftrag:
            self.auftrag_summen(auftrag)
        return position

    def kommissionieren(self, position_id: UUID, data: KommissionierungUpdate, user: dict) -> ArtikelPosition:
        """
        Erfasst Kommissionier-Daten.
        Nicht-Admins nur, wenn sie die Kommissionierung des Auftrags gestartet haben.
        """
        position = self.get(position_id)
        auftrag = self.db.get(Auftrag, position.auftrag_id) if position.auftrag_id else None
        if not ist_admin(user):
            if not auftrag or auftrag.kommissioniert_status != KommissioniertStatus.GESTARTET \
                    or str(auftrag.kommissioniert_von) != str(user.get("id")):
                raise BerechtigungsError("Kommissionierung nicht von diesem Benutzer gestartet")

        update_data = data.model_dump(exclude_unset=True)
        if "leergut" in update_data:
            update_data["leergut"] = [l.model_dump(mode="json") for l in (data.leergut or [])]
        if "chargennummern" in update_data:
            update_data["chargennummern"] = update_data["chargennummern"] or []
        for field, value in update_data.items():
            if field in KOMMISSIONIER_FELDER:
                setattr(position, field, value)

        position.nettogewicht = nettogewicht_berechnen(position.bruttogewicht, position.leergut)
        position.kommissioniert_von = benutzer_uuid(user)
        position.kommissioniert_von_name = benutzer_name(self.db, user)
        position.kommissioniert_am = datetime.utcnow()
        return position

    def kontrollieren(self, position_id: UUID, kontrolliert: bool, user: dict) -> ArtikelPosition:
        """Setzt das Kontroll-Häkchen; Nicht-Admins nur während ihrer eigenen Kontrolle"""
        position = self.get(position_id)
        auftrag = self.db.get(Auftrag, position.auftrag_id) if position.auftrag_id else None
        if not ist_admin(user):
            if not auftrag or auftrag.kontrolliert_status != KontrolliertStatus.IN_KONTROLLE \
                    or str(auftrag.kontrolliert_von) != str(user.get("id")):
                raise BerechtigungsError("Kontrolle nicht von diesem Benutzer begonnen")

        position.kontrolliert = kontrolliert
        position.kontrolliert_von = benutzer_uuid(user)
        position.kontrolliert_von_name = benutzer_name(self.db, user)
        position.kontrolliert_am = datetime.utcnow()
        return position

    def delete(self, position_id: UUID) -> None:
        position = self.get(position_id)
        auftrag = self.db.get(Auftrag, position.auftrag_id) if position.auftrag_id else None
        self.db.delete(position)
        if auftrag:
            self.auftrag_summen(auftrag)
