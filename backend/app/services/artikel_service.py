"""
Artikel-Service - Stammdaten und kundenspezifische Preise

Der Grundpreis eines Artikels gilt pro kg. Kunden können je Artikel
einen Aufpreis (oder Rabatt, negativ) haben; der effektive Preis ist
Grundpreis + Aufpreis.
"""
import logging
from decimal import Decimal
from uuid import UUID
from sqlalchemy import select, func, or_, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, KonfliktError
from app.models.artikel import Artikel
from app.models.kunde import Kunde, KundenPreis
from app.schemas.artikel import ArtikelCreate, ArtikelUpdate, ArtikelResponse
from app.schemas.kunde import KundenPreisCreate

logger = logging.getLogger(__name__)


class PreisService:
    """Ermittlung von Aufpreisen und effektiven Preisen"""

    def __init__(self, db: Session):
        self.db = db

    def kundenpreis(self, kunde_id: UUID | None, artikel_id: UUID) -> KundenPreis | None:
        if not kunde_id:
            return None
        self.db.flush()
        return self.db.execute(
            select(KundenPreis).where(
                KundenPreis.kunde_id == kunde_id,
                KundenPreis.artikel_id == artikel_id,
            )
        ).scalar_one_or_none()

    def aufpreis(self, kunde_id: UUID | None, artikel_id: UUID) -> Decimal:
        """Aufpreis des Kunden für den Artikel (0, wenn keiner hinterlegt)"""
        kundenpreis = self.kundenpreis(kunde_id, artikel_id)
        return Decimal(str(kundenpreis.aufpreis)) if kundenpreis else Decimal("0")

    def effektiver_preis(self, artikel: Artikel, kunde_id: UUID | None) -> Decimal:
        return Decimal(str(artikel.preis or 0)) + self.aufpreis(kunde_id, artikel.id)

    def aufpreise_fuer_kunde(self, kunde_id: UUID) -> dict[UUID, Decimal]:
        """Alle Aufpreise eines Kunden, nach Artikel-ID"""
        rows = self.db.execute(
            select(KundenPreis.artikel_id, KundenPreis.aufpreis).where(KundenPreis.kunde_id == kunde_id)
        ).all()
        return {artikel_id: Decimal(str(aufpreis)) for artikel_id, aufpreis in rows}


class ArtikelService:
    """Service für Artikel-Stammdaten"""

    def __init__(self, db: Session):
        self.db = db
        self.preise = PreisService(db)

    def get(self, artikel_id: UUID) -> Artikel:
        artikel = self.db.get(Artikel, artikel_id)
        if not artikel:
            raise NotFoundError("Artikel nicht gefunden")
        return artikel

    def _nummer_frei(self, nummer: str, ausser_id: UUID | None = None) -> None:
        query = select(Artikel.id).where(Artikel.artikel_nummer == nummer)
        if ausser_id:
            query = query.where(Artikel.id != ausser_id)
        if self.db.execute(query).first():
            raise KonfliktError(f"Artikelnummer {nummer} existiert bereits")

    def create(self, data: ArtikelCreate) -> Artikel:
        self._nummer_frei(data.artikel_nummer.strip())
        artikel = Artikel(**data.model_dump())
        artikel.artikel_nummer = artikel.artikel_nummer.strip()
        self.db.add(artikel)
        self.db.flush()
        logger.info(f"Artikel angelegt: {artikel.artikel_nummer} {artikel.name}")
        return artikel

    def list_artikel(
        self,
        q: str | None = None,
        kategorie: str | None = None,
        ausverkauft: bool | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> tuple[list[Artikel], int]:
        query = select(Artikel)
        if q:
            muster = f"%{q.strip()}%"
            query = query.where(or_(Artikel.name.ilike(muster), Artikel.artikel_nummer.ilike(muster)))
        if kategorie:
            query = query.where(Artikel.kategorie == kategorie)
        if ausverkauft is not None:
            query = query.where(Artikel.ausverkauft == ausverkauft)

        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar() or 0
        items = self.db.execute(
            query.order_by(Artikel.name).offset(offset).limit(limit)
        ).scalars().all()
        return list(items), total

    def mit_kundenpreis(self, artikel: Artikel, kunde_id: UUID | None) -> ArtikelResponse:
        """Antwort mit effektivem Preis für den Kunden"""
        response = ArtikelResponse.model_validate(artikel)
        response.grundpreis = artikel.preis
        if kunde_id:
            aufpreis = self.preise.aufpreis(kunde_id, artikel.id)
            response.aufpreis = aufpreis
            response.preis = Decimal(str(artikel.preis or 0)) + aufpreis
        return response

    def liste_mit_kundenpreis(self, artikel: list[Artikel], kunde_id: UUID | None) -> list[ArtikelResponse]:
        aufpreise = self.preise.aufpreise_fuer_kunde(kunde_id) if kunde_id else {}
        items = []
        for a in artikel:
            response = ArtikelResponse.model_validate(a)
            response.grundpreis = a.preis
            if kunde_id:
                aufpreis = aufpreise.get(a.id, Decimal("0"))
                response.aufpreis = aufpreis
                response.preis = Decimal(str(a.preis or 0)) + aufpreis
            items.append(response)
        return items

    def update(self, artikel_id: UUID, data: ArtikelUpdate) -> Artikel:
        artikel = self.get(artikel_id)
        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("artikel_nummer"):
            update_data["artikel_nummer"] = update_data["artikel_nummer"].strip()
            self._nummer_frei(update_data["artikel_nummer"], ausser_id=artikel.id)
        for field, value in update_data.items():
            if value is None and field in ("artikel_nummer", "name", "preis", "ausverkauft", "erfassungs_modus"):
                continue
            setattr(artikel, field, value)
        return artikel

    def delete(self, artikel_id: UUID) -> None:
        artikel = self.get(artikel_id)
        self.db.execute(delete(KundenPreis).where(KundenPreis.artikel_id == artikel.id))
        self.db.delete(artikel)


class KundenPreisService:
    """Service für kundenspezifische Aufpreise"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, kundenpreis_id: UUID) -> KundenPreis:
        kundenpreis = self.db.get(KundenPreis, kundenpreis_id)
        if not kundenpreis:
            raise NotFoundError("KundenPreis nicht gefunden")
        return kundenpreis

    def create(self, data: KundenPreisCreate) -> KundenPreis:
        if not self.db.get(Artikel, data.artikel_id):
            raise NotFoundError("Artikel nicht gefunden")
        if not self.db.get(Kunde, data.kunde_id):
            raise NotFoundError("Kunde nicht gefunden")
        if PreisService(self.db).kundenpreis(data.kunde_id, data.artikel_id):
            raise KonfliktError("Für diesen Kunden und Artikel existiert bereits ein Aufpreis")

        kundenpreis = KundenPreis(
            artikel_id=data.artikel_id,
            kunde_id=data.kunde_id,
            aufpreis=data.aufpreis,
        )
        self.db.add(kundenpreis)
        try:
            self.db.flush()
        except IntegrityError:
            raise KonfliktError("Für diesen Kunden und Artikel existiert bereits ein Aufpreis")
        return kundenpreis

    def list_kundenpreise(
        self,
        artikel_id: UUID | None = None,
        kunde_id: UUID | None = None,
    ) -> list[KundenPreis]:
        query = select(KundenPreis)
        if artikel_id:
            query = query.where(KundenPreis.artikel_id == artikel_id)
        if kunde_id:
            query = query.where(KundenPreis.kunde_id == kunde_id)
        query = query.order_by(KundenPreis.created_at)
        return list(self.db.execute(query).scalars().all())

    def update(self, kundenpreis_id: UUID, aufpreis: Decimal) -> KundenPreis:
        kundenpreis = self.get(kundenpreis_id)
        kundenpreis.aufpreis = aufpreis
        return kundenpreis

    def delete(self, kundenpreis_id: UUID) -> None:
        self.db.delete(self.get(kundenpreis_id))

    def effektiv(self, kunde_id: UUID, artikel_id: UUID) -> dict:
        """Wirksamer Aufpreis oder {"id": "default", "aufpreis": 0}"""
        kundenpreis = PreisService(self.db).kundenpreis(kunde_id, artikel_id)
        if not kundenpreis:
            return {"id": "default", "aufpreis": Decimal("0")}
        return {"id": str(kundenpreis.id), "aufpreis": kundenpreis.aufpreis}
