"""
Kunden-Service - Registrierung, Freigabe, Stammdaten und Favoriten
"""
import logging
from uuid import UUID
from sqlalchemy import select, func, or_, delete
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, KonfliktError, BerechtigungsError
from app.core.security import hash_password
from app.models.artikel import Artikel
from app.models.auftrag import Auftrag
from app.models.enums import AuftragStatus
from app.models.kunde import Kunde, KundenPreis
from app.schemas.kunde import KundeRegistrieren, KundeCreate, KundeUpdate
from app.services.auftrag_service import AuftragService
from app.services.benutzer import ist_admin
from app.services.tour_hooks import TourHooks

logger = logging.getLogger(__name__)

OFFENE_STATUS = (AuftragStatus.OFFEN, AuftragStatus.IN_BEARBEITUNG)


class KundeService:
    """Service für Kunden"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, kunde_id: UUID) -> Kunde:
        kunde = self.db.get(Kunde, kunde_id)
        if not kunde:
            raise NotFoundError("Kunde nicht gefunden")
        return kunde

    def _eindeutig(self, email: str | None, kunden_nr: str | None, ausser_id: UUID | None = None) -> None:
        if email:
            query = select(Kunde.id).where(Kunde.email == email)
            if ausser_id:
                query = query.where(Kunde.id != ausser_id)
            if self.db.execute(query).first():
                raise KonfliktError("E-Mail ist bereits registriert")
        if kunden_nr:
            query = select(Kunde.id).where(Kunde.kunden_nr == kunden_nr)
            if ausser_id:
                query = query.where(Kunde.id != ausser_id)
            if self.db.execute(query).first():
                raise KonfliktError(f"Kundennummer {kunden_nr} existiert bereits")

    def _anlegen(self, data: KundeRegistrieren | KundeCreate, is_approved: bool) -> Kunde:
        email = str(data.email).strip().lower()
        kunden_nr = data.kunden_nr.strip()
        self._eindeutig(email, kunden_nr)

        felder = data.model_dump(exclude={"password", "email", "kunden_nr", "is_approved"})
        kunde = Kunde(
            **felder,
            email=email,
            kunden_nr=kunden_nr,
            password_hash=hash_password(data.password),
            is_approved=is_approved,
            favoriten=[],
        )
        self.db.add(kunde)
        self.db.flush()
        return kunde

    def registrieren(self, data: KundeRegistrieren) -> Kunde:
        """Selbstregistrierung - Login erst nach Freigabe"""
        kunde = self._anlegen(data, is_approved=False)
        logger.info(f"Neue Kundenregistrierung: {kunde.name} ({kunde.email})")
        return kunde

    def create(self, data: KundeCreate) -> Kunde:
        return self._anlegen(data, is_approved=data.is_approved)

    def list_kunden(
        self,
        q: str | None = None,
        region: str | None = None,
        is_approved: bool | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> tuple[list[Kunde], int]:
        query = select(Kunde)
        if q:
            muster = f"%{q.strip()}%"
            query = query.where(or_(
                Kunde.name.ilike(muster),
                Kunde.kunden_nr.ilike(muster),
                Kunde.email.ilike(muster),
            ))
        if region:
            query = query.where(func.lower(Kunde.region) == region.strip().lower())
        if is_approved is not None:
            query = query.where(Kunde.is_approved == is_approved)

        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar() or 0
        items = self.db.execute(query.order_by(Kunde.name).offset(offset).limit(limit)).scalars().all()
        return list(items), total

    def update(self, kunde_id: UUID, data: KundeUpdate, user: dict) -> Kunde:
        """
        Aktualisiert Stammdaten. Nur Admins dürfen die Freigabe ändern.
        Eine neue Region ordnet alle offenen Aufträge mit Lieferdatum neu zu.
        """
        kunde = self.get(kunde_id)
        update_data = data.model_dump(exclude_unset=True)
        if "is_approved" in update_data and not ist_admin(user):
            raise BerechtigungsError("Keine Berechtigung, das Feld 'is_approved' zu ändern")

        if update_data.get("email"):
            update_data["email"] = str(update_data["email"]).strip().lower()
        if update_data.get("kunden_nr"):
            update_data["kunden_nr"] = update_data["kunden_nr"].strip()
        self._eindeutig(update_data.get("email"), update_data.get("kunden_nr"), ausser_id=kunde.id)

        if update_data.get("password"):
            kunde.password_hash = hash_password(update_data["password"])
        update_data.pop("password", None)

        alte_region = (kunde.region or "").strip().lower()
        for field, value in update_data.items():
            if value is None and field in ("name", "kunden_nr", "email", "is_approved", "fehlmengen_benachrichtigung"):
                continue
            setattr(kunde, field, value)

        if "name" in update_data and update_data["name"]:
            for auftrag in self._auftraege(kunde.id):
                auftrag.kunde_name = kunde.name

        if "region" in update_data and (kunde.region or "").strip().lower() != alte_region:
            self._touren_neu_zuordnen(kunde)
        return kunde

    def _auftraege(self, kunde_id: UUID) -> list[Auftrag]:
        return list(self.db.execute(select(Auftrag).where(Auftrag.kunde_id == kunde_id)).scalars().all())

    def _touren_neu_zuordnen(self, kunde: Kunde) -> None:
        hooks = TourHooks(self.db)
        self.db.flush()
        auftraege = self.db.execute(
            select(Auftrag).where(
                Auftrag.kunde_id == kunde.id,
                Auftrag.status.in_(OFFENE_STATUS),
                Auftrag.lieferdatum.is_not(None),
            )
        ).scalars().all()
        for auftrag in auftraege:
            hooks.on_auftrag_datum_oder_region_geaendert(auftrag)
        logger.info(f"Region von {kunde.name} geändert: {len(auftraege)} Aufträge neu zugeordnet")

    def freigabe(self, kunde_id: UUID, is_approved: bool) -> Kunde:
        kunde = self.get(kunde_id)
        kunde.is_approved = is_approved
        logger.info(f"Kunde {kunde.name} {'freigegeben' if is_approved else 'gesperrt'}")
        return kunde

    def delete(self, kunde_id: UUID) -> None:
        """Löscht den Kunden samt Aufträgen, Positionen, Stopps, Aufpreisen und Zerlegeaufträgen"""
        kunde = self.get(kunde_id)
        anzahl = AuftragService(self.db).delete_fuer_kunde(kunde.id)
        self.db.execute(delete(KundenPreis).where(KundenPreis.kunde_id == kunde.id))
        self.db.expire(kunde, ["kundenpreise"])
        self.db.delete(kunde)
        logger.info(f"Kunde gelöscht: {kunde.name} ({anzahl} Aufträge)")

    # ========================================
    # FAVORITEN
    # ========================================

    def favoriten(self, kunde_id: UUID) -> list[str]:
        return list(self.get(kunde_id).favoriten or [])

    def favorit_hinzufuegen(self, kunde_id: UUID, artikel_id: UUID) -> list[str]:
        kunde = self.get(kunde_id)
        if not self.db.get(Artikel, artikel_id):
            raise NotFoundError("Artikel nicht gefunden")
        favoriten = list(kunde.favoriten or [])
        if str(artikel_id) not in favoriten:
            favoriten.append(str(artikel_id))
            # neue Liste, damit die JSON-Spalte als geändert gilt
            kunde.favoriten = favoriten
        return favoriten

    def favorit_entfernen(self, kunde_id: UUID, artikel_id: UUID) -> list[str]:
        kunde = self.get(kunde_id)
        favoriten = [f for f in (kunde.favoriten or []) if f != str(artikel_id)]
        kunde.favoriten = favoriten
        return favoriten
