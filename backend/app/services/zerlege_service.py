"""
Zerlege-Service - Zerlegeaufträge aus Auftragspositionen mit Zerlegung
"""
import logging
from datetime import datetime
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import NotFoundError
from app.models.auftrag import Auftrag, ArtikelPosition
from app.models.enums import ZerlegeStatus
from app.models.zerlegung import ZerlegeAuftrag, ZerlegePosition
from app.services.benutzer import benutzer_uuid, benutzer_name

logger = logging.getLogger(__name__)


class ZerlegeService:
    """Service für Zerlegeaufträge"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, zerlegeauftrag_id: UUID) -> ZerlegeAuftrag:
        zerlegeauftrag = self.db.get(ZerlegeAuftrag, zerlegeauftrag_id)
        if not zerlegeauftrag:
            raise NotFoundError("Zerlegeauftrag nicht gefunden")
        return zerlegeauftrag

    def fuer_auftrag(self, auftrag_id: UUID) -> ZerlegeAuftrag | None:
        self.db.flush()
        return self.db.execute(
            select(ZerlegeAuftrag).where(ZerlegeAuftrag.auftrag_id == auftrag_id)
        ).scalar_one_or_none()

    def erstellen_oder_aktualisieren(self, auftrag: Auftrag) -> ZerlegeAuftrag | None:
        """
        Legt den Zerlegeauftrag für alle Positionen mit Zerlegung an oder
        gleicht ihn ab. Status bereits erledigter Positionen bleibt erhalten.
        Ohne Zerlege-Positionen wird ein vorhandener Auftrag entfernt.
        """
        self.db.flush()
        positionen = self.db.execute(
            select(ArtikelPosition)
            .where(ArtikelPosition.auftrag_id == auftrag.id, ArtikelPosition.zerlegung == True)  # noqa: E712
            .order_by(ArtikelPosition.created_at)
        ).scalars().all()

        zerlegeauftrag = self.fuer_auftrag(auftrag.id)
        if not positionen:
            if zerlegeauftrag:
                self.db.delete(zerlegeauftrag)
            return None

        if zerlegeauftrag is None:
            zerlegeauftrag = ZerlegeAuftrag(
                auftrag_id=auftrag.id,
                kunden_name=auftrag.kunde_name,
                archiviert=False,
            )
            self.db.add(zerlegeauftrag)

        bisher = {p.artikel_position_id: p for p in zerlegeauftrag.positionen}
        neue_positionen = []
        for position in positionen:
            zp = bisher.get(position.id) or ZerlegePosition(
                artikel_position_id=position.id,
                status=ZerlegeStatus.OFFEN,
            )
            zp.artikel_name = position.artikel_name
            zp.menge = position.menge
            zp.bemerkung = position.zerlege_bemerkung or position.bemerkung
            neue_positionen.append(zp)
        zerlegeauftrag.positionen = neue_positionen
        zerlegeauftrag.kunden_name = auftrag.kunde_name

        self.db.flush()
        logger.info(f"Zerlegeauftrag für {auftrag.auftragsnummer}: {len(neue_positionen)} Positionen")
        return zerlegeauftrag

    def list_zerlegeauftraege(self, nur_offen: bool = False) -> list[ZerlegeAuftrag]:
        query = select(ZerlegeAuftrag).options(selectinload(ZerlegeAuftrag.positionen))
        if nur_offen:
            query = query.where(
                ZerlegeAuftrag.positionen.any(ZerlegePosition.status == ZerlegeStatus.OFFEN)
            )
        query = query.order_by(ZerlegeAuftrag.erstellt_am)
        return list(self.db.execute(query).scalars().all())

    def position_umschalten(
        self,
        zerlegeauftrag_id: UUID,
        position_id: UUID,
        user: dict,
        status: ZerlegeStatus | None = None,
    ) -> ZerlegeAuftrag:
        """Schaltet eine Position zwischen offen und erledigt (oder setzt den Status)"""
        zerlegeauftrag = self.get(zerlegeauftrag_id)
        position = next(
            (p for p in zerlegeauftrag.positionen
             if p.artikel_position_id == position_id or p.id == position_id),
            None,
        )
        if not position:
            raise NotFoundError("Artikelposition im Zerlegeauftrag nicht gefunden")

        if status is None:
            status = ZerlegeStatus.OFFEN if position.status == ZerlegeStatus.ERLEDIGT else ZerlegeStatus.ERLEDIGT
        position.status = status
        position.erledigt_am = datetime.utcnow() if status == ZerlegeStatus.ERLEDIGT else None

        zerlegeauftrag.zerleger_id = benutzer_uuid(user)
        zerlegeauftrag.zerleger_name = benutzer_name(self.db, user)
        return zerlegeauftrag

    def delete_erledigte(self) -> int:
        """Löscht alle Zerlegeaufträge, deren Positionen alle erledigt sind"""
        anzahl = 0
        for zerlegeauftrag in self.list_zerlegeauftraege():
            if zerlegeauftrag.ist_erledigt:
                self.db.delete(zerlegeauftrag)
                anzahl += 1
        logger.info(f"{anzahl} erledigte Zerlegeaufträge gelöscht")
        return anzahl

    def delete_fuer_auftrag(self, auftrag_id: UUID) -> None:
        zerlegeauftrag = self.fuer_auftrag(auftrag_id)
        if zerlegeauftrag:
            self.db.delete(zerlegeauftrag)
