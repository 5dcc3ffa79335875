"""
Lager-Service - Business Logic für den Fleischbestand
Mit Chargen-Rückverfolgbarkeit, Bewegungsjournal und Müll-Buchungen

Jede Bestandsänderung schreibt eine Bewegung ins Journal und das Delta in
die aggregierte Sicht (BestandAgg). Aus dem Journal lässt sich der Bestand
zu jedem Stichtag rekonstruieren.
"""
import csv
import logging
from datetime import date, datetime, timedelta
from decimal import Decimal
from io import StringIO
from uuid import UUID
from sqlalchemy import select, func, or_, and_
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.exceptions import ValidierungsError, NotFoundError, KonfliktError
from app.core.zeit import heute, tagesende
from app.models.artikel import Artikel
from app.models.auftrag import Auftrag
from app.models.enums import (
    BewegungsTyp, Lagerbereich, ReservierungStatus, MhdWarnung,
)
from app.models.inventory import (
    Charge, Bewegung, BestandAgg, Reservierung, IdempotencyKey, MuellUndo,
)
from app.schemas.inventory import (
    ChargeCreate, ChargeUpdate, ZugangRequest, MuellRequest,
    ReservierungCreate, ReservierungUpdate, UmbuchenRequest, MergeRequest,
)

logger = logging.getLogger(__name__)
settings = get_settings()

CSV_SPALTEN = [
    "Zeitpunkt", "Typ", "Artikelnummer", "Artikel", "Charge", "Menge",
    "Lagerbereich", "Auftrag", "MHD", "Schlachtdatum", "TK", "Benutzer", "Notiz",
]


def mhd_warnung(mhd: date | None, threshold_days: int, stichtag: date | None = None) -> MhdWarnung | None:
    """ABGELAUFEN vor dem Stichtag, NAH innerhalb der Schwelle"""
    if mhd is None:
        return None
    tage = (mhd - (stichtag or heute())).days
    if tage < 0:
        return MhdWarnung.ABGELAUFEN
    if tage <= threshold_days:
        return MhdWarnung.NAH
    return None


class BestandService:
    """Service für Chargen, Bewegungen, Bestand, Müll und Reservierungen"""

    def __init__(self, db: Session):
        self.db = db

    # ========================================
    # IDEMPOTENZ
    # ========================================

    def idempotenz_pruefen(self, key: str | None, endpoint: str) -> None:
        """
        Merkt sich den Idempotency-Key in derselben Transaktion wie die Buchung.
        Ein bereits verwendeter Key ergibt 409.
        """
        if not key:
            return
        if self.db.get(IdempotencyKey, key):
            logger.warning(f"Doppelte Anfrage verworfen: {endpoint} ({key})")
            raise KonfliktError("Anfrage wurde bereits verarbeitet")
        self.db.add(IdempotencyKey(key=key, endpoint=endpoint))
        self.db.flush()

    # ========================================
    # CHARGEN
    # ========================================

    def get_charge(self, charge_id: UUID) -> Charge:
        charge = self.db.get(Charge, charge_id)
        if not charge:
            raise NotFoundError("Charge nicht gefunden")
        return charge

    def _artikel(self, artikel_id: UUID) -> Artikel:
        artikel = self.db.get(Artikel, artikel_id)
        if not artikel:
            raise NotFoundError("Artikel nicht gefunden")
        return artikel

    def create_charge(self, data: ChargeCreate) -> Charge:
        artikel = self._artikel(data.artikel_id)
        charge = Charge(
            artikel_id=artikel.id,
            artikel_name=artikel.name,
            artikel_nummer=artikel.artikel_nummer,
            mhd=data.mhd,
            schlacht_datum=data.schlacht_datum,
            is_tk=data.is_tk,
            lieferant_id=data.lieferant_id,
        )
        self.db.add(charge)
        self.db.flush()
        return charge

    def list_chargen(
        self,
        artikel_id: UUID | None = None,
        is_tk: bool | None = None,
        mhd_from: date | None = None,
        mhd_to: date | None = None,
        q: str | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> tuple[list[Charge], int]:
        query = select(Charge)
        if artikel_id:
            query = query.where(Charge.artikel_id == artikel_id)
        if is_tk is not None:
            query = query.where(Charge.is_tk == is_tk)
        if mhd_from:
            query = query.where(Charge.mhd >= mhd_from)
        if mhd_to:
            query = query.where(Charge.mhd <= mhd_to)
        if q:
            muster = f"%{q.strip()}%"
            query = query.where(or_(Charge.artikel_name.ilike(muster), Charge.artikel_nummer.ilike(muster)))

        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar() or 0
        items = self.db.execute(
            query.order_by(Charge.mhd.asc(), Charge.created_at.asc()).offset(offset).limit(limit)
        ).scalars().all()
        return list(items), total

    def update_charge(self, charge_id: UUID, data: ChargeUpdate) -> Charge:
        charge = self.get_charge(charge_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field in ("mhd", "is_tk"):
                continue
            setattr(charge, field, value)
        return charge

    def delete_charge(self, charge_id: UUID) -> None:
        self.db.delete(self.get_charge(charge_id))

    def charge_ansicht(self, charge_id: UUID) -> dict:
        """Charge mit Reservierungen und Bewegungen (neueste zuerst)"""
        charge = self.get_charge(charge_id)
        reservierungen = self.db.execute(
            select(Reservierung)
            .where(Reservierung.charge_id == charge.id)
            .order_by(Reservierung.liefer_datum, Reservierung.created_at)
        ).scalars().all()
        bewegungen = self.db.execute(
            select(Bewegung).where(Bewegung.charge_id == charge.id).order_by(Bewegung.timestamp.desc())
        ).scalars().all()
        return {
            "charge": charge,
            "reservierungen": list(reservierungen),
            "bewegungen": list(bewegungen),
        }

    # ========================================
    # JOURNAL / AGGREGAT
    # ========================================

    def _record_movement(
        self,
        typ: BewegungsTyp,
        artikel: Artikel,
        menge: Decimal,
        lagerbereich: Lagerbereich,
        charge: Charge | None = None,
        user_id: str | None = None,
        auftrag_id: UUID | None = None,
        notiz: str | None = None,
    ) -> Bewegung:
        """
        Schreibt eine Bewegung ins Journal (Menge vorzeichenbehaftet).
        """
        bewegung = Bewegung(
            timestamp=datetime.utcnow(),
            user_id=user_id,
            typ=typ,
            artikel_id=artikel.id,
            artikel_name=artikel.name,
            artikel_nummer=artikel.artikel_nummer,
            charge_id=charge.id if charge else None,
            menge=menge,
            lagerbereich=lagerbereich,
            auftrag_id=auftrag_id,
            notiz=notiz or None,
            mhd=charge.mhd if charge else None,
            schlacht_datum=charge.schlacht_datum if charge else None,
            is_tk=charge.is_tk if charge else None,
        )
        self.db.add(bewegung)
        self.db.flush()
        return bewegung

    def _agg_delta(
        self,
        artikel: Artikel,
        charge_id: UUID | None,
        lagerbereich: Lagerbereich,
        verfuegbar: Decimal = Decimal("0"),
        reserviert: Decimal = Decimal("0"),
        unterwegs: Decimal = Decimal("0"),
    ) -> BestandAgg:
        """Schreibt Deltas in die aggregierte Sicht (legt die Zeile bei Bedarf an)"""
        self.db.flush()
        query = select(BestandAgg).where(
            BestandAgg.artikel_id == artikel.id,
            BestandAgg.lagerbereich == lagerbereich,
        )
        if charge_id:
            query = query.where(BestandAgg.charge_id == charge_id)
        else:
            query = query.where(BestandAgg.charge_id.is_(None))
        agg = self.db.execute(query).scalar_one_or_none()

        if agg is None:
            agg = BestandAgg(
                artikel_id=artikel.id,
                charge_id=charge_id,
                lagerbereich=lagerbereich,
                verfuegbar=Decimal("0"),
                reserviert=Decimal("0"),
                unterwegs=Decimal("0"),
            )
            self.db.add(agg)

        agg.artikel_name = artikel.name
        agg.artikel_nummer = artikel.artikel_nummer
        agg.verfuegbar = Decimal(str(agg.verfuegbar or 0)) + verfuegbar
        agg.reserviert = Decimal(str(agg.reserviert or 0)) + reserviert
        agg.unterwegs = Decimal(str(agg.unterwegs or 0)) + unterwegs
        self.db.flush()
        return agg

    # ========================================
    # BEWEGUNGEN
    # ========================================

    def get_bewegung(self, bewegung_id: UUID) -> Bewegung:
        bewegung = self.db.get(Bewegung, bewegung_id)
        if not bewegung:
            raise NotFoundError("Bewegung nicht gefunden")
        return bewegung

    def _bewegungen_query(
        self,
        von: date | None = None,
        bis: date | None = None,
        typen: list[BewegungsTyp] | None = None,
        artikel_id: UUID | None = None,
        charge_id: UUID | None = None,
        auftrag_id: UUID | None = None,
        lagerbereich: Lagerbereich | None = None,
        q: str | None = None,
    ):
        query = select(Bewegung)
        if von:
            query = query.where(Bewegung.timestamp >= datetime.combine(von, datetime.min.time()))
        if bis:
            query = query.where(Bewegung.timestamp <= tagesende(bis))
        if typen:
            query = query.where(Bewegung.typ.in_(typen))
        if artikel_id:
            query = query.where(Bewegung.artikel_id == artikel_id)
        if charge_id:
            query = query.where(Bewegung.charge_id == charge_id)
        if auftrag_id:
            query = query.where(Bewegung.auftrag_id == auftrag_id)
        if lagerbereich:
            query = query.where(Bewegung.lagerbereich == lagerbereich)
        if q:
            muster = f"%{q.strip()}%"
            query = query.where(or_(
                Bewegung.artikel_name.ilike(muster),
                Bewegung.artikel_nummer.ilike(muster),
                Bewegung.notiz.ilike(muster),
            ))
        return query

    def list_bewegungen(self, offset: int = 0, limit: int = 200, **filter) -> tuple[list[Bewegung], int]:
        query = self._bewegungen_query(**filter)
        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar() or 0
        items = self.db.execute(
            query.order_by(Bewegung.timestamp.desc()).offset(offset).limit(limit)
        ).scalars().all()
        return list(items), total

    def export_bewegungen_csv(self, **filter) -> tuple[str, int]:
        """Bewegungen als CSV (Semikolon getrennt) für Excel"""
        bewegungen = self.db.execute(
            self._bewegungen_query(**filter).order_by(Bewegung.timestamp.desc())
        ).scalars().all()

        output = StringIO()
        writer = csv.writer(output, delimiter=';', quoting=csv.QUOTE_MINIMAL)
        writer.writerow(CSV_SPALTEN)
        for b in bewegungen:
            writer.writerow([
                b.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
                b.typ.value,
                b.artikel_nummer or "",
                b.artikel_name or "",
                str(b.charge_id) if b.charge_id else "",
                str(b.menge).replace(".", ","),
                b.lagerbereich.value,
                str(b.auftrag_id) if b.auftrag_id else "",
                b.mhd.isoformat() if b.mhd else "",
                b.schlacht_datum.isoformat() if b.schlacht_datum else "",
                "" if b.is_tk is None else ("ja" if b.is_tk else "nein"),
                b.user_id or "",
                b.notiz or "",
            ])
        return output.getvalue(), len(bewegungen)

    # ========================================
    # BESTANDSÜBERSICHT
    # ========================================

    def uebersicht(
        self,
        artikel_id: UUID | None = None,
        charge_id: UUID | None = None,
        lagerbereich: Lagerbereich | None = None,
        q: str | None = None,
        kritisch: bool = False,
        threshold_days: int | None = None,
        datum: date | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> tuple[list[dict], int]:
        """
        Bestand je Artikel/Charge/Lagerbereich mit MHD-Warnung.
        Mit ``datum`` wird der Bestand aus dem Journal bis einschließlich
        dieses Tages rekonstruiert.
        """
        if datum:
            zeilen = self._rekonstruieren(datum, artikel_id, charge_id)
        else:
            zeilen = self._aktueller_bestand(artikel_id, charge_id)

        if lagerbereich:
            zeilen = [z for z in zeilen if z["lagerbereich"] == lagerbereich]
        if q:
            suchtext = q.strip().lower()
            zeilen = [
                z for z in zeilen
                if suchtext in f"{z['artikel_name'] or ''} {z['artikel_nummer'] or ''} {z['charge_id'] or ''}".lower()
            ]

        schwelle = threshold_days if threshold_days is not None else settings.mhd_warn_tage
        chargen = self._chargen_map([z["charge_id"] for z in zeilen if z["charge_id"]])
        for zeile in zeilen:
            charge = chargen.get(zeile["charge_id"])
            zeile["mhd"] = charge.mhd if charge else None
            zeile["schlacht_datum"] = charge.schlacht_datum if charge else None
            zeile["warn_mhd"] = mhd_warnung(zeile["mhd"], schwelle)

        if kritisch:
            zeilen = [z for z in zeilen if z["warn_mhd"]]
        return zeilen[offset:offset + limit], len(zeilen)

    def _chargen_map(self, charge_ids: list[UUID]) -> dict[UUID, Charge]:
        if not charge_ids:
            return {}
        chargen = self.db.execute(select(Charge).where(Charge.id.in_(set(charge_ids)))).scalars().all()
        return {c.id: c for c in chargen}

    def _aktueller_bestand(self, artikel_id: UUID | None, charge_id: UUID | None) -> list[dict]:
        query = select(BestandAgg)
        if artikel_id:
            query = query.where(BestandAgg.artikel_id == artikel_id)
        if charge_id:
            query = query.where(BestandAgg.charge_id == charge_id)
        query = query.order_by(BestandAgg.updated_at.desc())
        return [
            {
                "id": agg.id,
                "artikel_id": agg.artikel_id,
                "artikel_name": agg.artikel_name,
                "artikel_nummer": agg.artikel_nummer,
                "charge_id": agg.charge_id,
                "lagerbereich": agg.lagerbereich,
                "verfuegbar": agg.verfuegbar,
                "reserviert": agg.reserviert,
                "unterwegs": agg.unterwegs,
                "updated_at": agg.updated_at,
            }
            for agg in self.db.execute(query).scalars().all()
        ]

    def _rekonstruieren(self, datum: date, artikel_id: UUID | None, charge_id: UUID | None) -> list[dict]:
        """Summiert das Journal bis Tagesende je (Artikel, Charge, Lagerbereich)"""
        query = select(Bewegung).where(Bewegung.timestamp <= tagesende(datum))
        if artikel_id:
            query = query.where(Bewegung.artikel_id == artikel_id)
        if charge_id:
            query = query.where(Bewegung.charge_id == charge_id)

        summen: dict[tuple, dict] = {}
        for b in self.db.execute(query.order_by(Bewegung.timestamp)).scalars().all():
            schluessel = (b.artikel_id, b.charge_id, b.lagerbereich)
            zeile = summen.setdefault(schluessel, {
                "id": None,
                "artikel_id": b.artikel_id,
                "artikel_name": b.artikel_name,
                "artikel_nummer": b.artikel_nummer,
                "charge_id": b.charge_id,
                "lagerbereich": b.lagerbereich,
                "verfuegbar": Decimal("0"),
                "reserviert": Decimal("0"),
                "unterwegs": Decimal("0"),
                "updated_at": None,
            })
            menge = Decimal(str(b.menge))
            if b.typ.wirkt_auf_verfuegbar:
                zeile["verfuegbar"] += menge
            elif b.typ in (BewegungsTyp.RESERVIERUNG, BewegungsTyp.RESERVIERUNG_AUFLOESEN):
                zeile["reserviert"] += menge
        return list(summen.values())

    # ========================================
    # ZUGANG / MÜLL
    # ========================================

    def _charge_zum_artikel(self, charge_id: UUID, artikel: Artikel) -> Charge:
        charge = self.get_charge(charge_id)
        if charge.artikel_id != artikel.id:
            raise ValidierungsError("Charge passt nicht zum Artikel")
        return charge

    def zugang(self, data: ZugangRequest, user_id: str | None = None) -> Bewegung:
        """Manueller Zugang (INVENTUR_KORREKTUR +), optional mit neuer Charge"""
        artikel = self._artikel(data.artikel_id)

        if data.charge_id:
            charge = self._charge_zum_artikel(data.charge_id, artikel)
        elif data.neue_charge:
            charge = self.create_charge(ChargeCreate(artikel_id=artikel.id, **data.neue_charge.model_dump()))
        else:
            raise ValidierungsError("Keine charge_id übergeben. Entweder charge_id oder neue_charge angeben.")

        bewegung = self._record_movement(
            typ=BewegungsTyp.INVENTUR_KORREKTUR,
            artikel=artikel,
            charge=charge,
            menge=data.menge,
            lagerbereich=data.lagerbereich,
            user_id=user_id,
            notiz=data.notiz,
        )
        self._agg_delta(artikel, charge.id, data.lagerbereich, verfuegbar=data.menge)
        logger.info(f"Zugang gebucht: {artikel.artikel_nummer} +{data.menge} ({data.lagerbereich.value})")
        return bewegung

    def muell_buchen(self, data: MuellRequest, user_id: str | None = None) -> Bewegung:
        """Müll-Buchung: negative MULL-Bewegung, verfügbarer Bestand sinkt"""
        artikel = self._artikel(data.artikel_id)
        charge = self._charge_zum_artikel(data.charge_id, artikel)

        notiz = f"[{data.grund.text}] {data.notiz or ''}".strip()
        bewegung = self._record_movement(
            typ=BewegungsTyp.MULL,
            artikel=artikel,
            charge=charge,
            menge=-data.menge,
            lagerbereich=data.lagerbereich,
            user_id=user_id,
            notiz=notiz,
        )
        self._agg_delta(artikel, charge.id, data.lagerbereich, verfuegbar=-data.menge)
        logger.info(f"Müll gebucht: {artikel.artikel_nummer} -{data.menge} ({data.grund.value})")
        return bewegung

    def list_muell(
        self,
        von: date | None = None,
        bis: date | None = None,
        artikel_id: UUID | None = None,
        charge_id: UUID | None = None,
        q: str | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> tuple[list[Bewegung], int]:
        return self.list_bewegungen(
            offset=offset,
            limit=limit,
            von=von,
            bis=bis,
            typen=[BewegungsTyp.MULL],
            artikel_id=artikel_id,
            charge_id=charge_id,
            q=q,
        )

    def muell_rueckgaengig(self, bewegung_id: UUID, begruendung: str | None = None, user_id: str | None = None) -> Bewegung:
        """
        Macht eine Müll-Buchung durch eine positive INVENTUR_KORREKTUR rückgängig.
        Jede Müll-Buchung kann nur einmal rückgängig gemacht werden.
        """
        muell = self.get_bewegung(bewegung_id)
        if muell.typ != BewegungsTyp.MULL:
            raise ValidierungsError("Nur Müll-Buchungen können rückgängig gemacht werden")
        if self.db.get(MuellUndo, muell.id):
            raise KonfliktError("Müll-Buchung wurde bereits rückgängig gemacht")

        artikel = self._artikel(muell.artikel_id)
        charge = self.db.get(Charge, muell.charge_id) if muell.charge_id else None
        menge = abs(Decimal(str(muell.menge)))

        korrektur = self._record_movement(
            typ=BewegungsTyp.INVENTUR_KORREKTUR,
            artikel=artikel,
            charge=charge,
            menge=menge,
            lagerbereich=muell.lagerbereich,
            user_id=user_id,
            auftrag_id=muell.auftrag_id,
            notiz=f"[UNDO_MUELL {muell.id}] {begruendung or ''}".strip(),
        )
        self._agg_delta(artikel, muell.charge_id, muell.lagerbereich, verfuegbar=menge)
        self.db.add(MuellUndo(muell_bewegung_id=muell.id, korrektur_bewegung_id=korrektur.id))
        self.db.flush()
        logger.info(f"Müll-Buchung {muell.id} rückgängig gemacht (+{menge})")
        return korrektur

    # ========================================
    # UMBUCHUNG / ZUSAMMENFÜHREN
    # ========================================

    def _verfuegbar(self, artikel_id: UUID, charge_id: UUID, lagerbereich: Lagerbereich) -> Decimal:
        self.db.flush()
        agg = self.db.execute(
            select(BestandAgg).where(
                BestandAgg.artikel_id == artikel_id,
                BestandAgg.charge_id == charge_id,
                BestandAgg.lagerbereich == lagerbereich,
            )
        ).scalar_one_or_none()
        return Decimal(str(agg.verfuegbar or 0)) if agg else Decimal("0")

    def _umbuchung_buchen(
        self,
        artikel: Artikel,
        quelle: Charge,
        von_bereich: Lagerbereich,
        ziel: Charge,
        nach_bereich: Lagerbereich,
        menge: Decimal,
        user_id: str | None,
        notiz_weg: str | None,
        notiz_hin: str | None,
    ) -> tuple[Bewegung, Bewegung]:
        """UMBUCHUNG_WEG (negativ) an der Quelle, UMBUCHUNG_HIN (positiv) am Ziel"""
        weg = self._record_movement(
            typ=BewegungsTyp.UMBUCHUNG_WEG,
            artikel=artikel,
            charge=quelle,
            menge=-menge,
            lagerbereich=von_bereich,
            user_id=user_id,
            notiz=notiz_weg,
        )
        self._agg_delta(artikel, quelle.id, von_bereich, verfuegbar=-menge)
        hin = self._record_movement(
            typ=BewegungsTyp.UMBUCHUNG_HIN,
            artikel=artikel,
            charge=ziel,
            menge=menge,
            lagerbereich=nach_bereich,
            user_id=user_id,
            notiz=notiz_hin,
        )
        self._agg_delta(artikel, ziel.id, nach_bereich, verfuegbar=menge)
        return weg, hin

    def umbuchen(self, charge_id: UUID, data: UmbuchenRequest, user_id: str | None = None) -> dict:
        """
        Bucht Menge aus einer Charge in eine bestehende oder neue Charge bzw.
        in einen anderen Lagerbereich. Eine neue Charge übernimmt fehlende
        Stammdaten (MHD, TK, Schlachtdatum) von der Quelle.
        Zu wenig Bestand an der Quelle blockiert nicht, es wird nur gewarnt.
        """
        quelle = self.get_charge(charge_id)
        artikel = self._artikel(quelle.artikel_id)
        von_bereich = data.von_lagerbereich or (Lagerbereich.TK if quelle.is_tk else Lagerbereich.NON_TK)

        if data.nach.charge_id:
            ziel = self._charge_zum_artikel(data.nach.charge_id, artikel)
        else:
            neue = data.nach.neue_charge
            ziel = self.create_charge(ChargeCreate(
                artikel_id=artikel.id,
                mhd=neue.mhd if neue else quelle.mhd,
                schlacht_datum=(neue.schlacht_datum if neue and neue.schlacht_datum else quelle.schlacht_datum),
                is_tk=neue.is_tk if neue else quelle.is_tk,
                lieferant_id=(neue.lieferant_id if neue and neue.lieferant_id else quelle.lieferant_id),
            ))

        if ziel.id == quelle.id and data.nach.lagerbereich == von_bereich:
            raise ValidierungsError("Quelle und Ziel der Umbuchung sind identisch")

        if self._verfuegbar(artikel.id, quelle.id, von_bereich) < data.menge:
            logger.warning(f"Umbuchung über den verfügbaren Bestand: Charge {quelle.id} ({von_bereich.value})")

        weg, hin = self._umbuchung_buchen(
            artikel, quelle, von_bereich, ziel, data.nach.lagerbereich, data.menge,
            user_id, data.notiz, data.notiz,
        )
        logger.info(f"Umbuchung: {artikel.artikel_nummer} {data.menge} von {quelle.id} nach {ziel.id}")
        return {"weg": weg, "hin": hin, "ziel_charge_id": ziel.id}

    def charge_zusammenfuehren(self, quelle_id: UUID, data: MergeRequest, user_id: str | None = None) -> dict:
        """
        Führt eine Charge in eine andere desselben Artikels über.
        Ohne Menge wird der verfügbare Bestand der Quelle im Ziel-Lagerbereich umgebucht.
        Die Quell-Charge bleibt für die Historie bestehen.
        """
        quelle = self.get_charge(quelle_id)
        ziel = self.get_charge(data.ziel_charge_id)
        if ziel.id == quelle.id:
            raise ValidierungsError("Quell- und Ziel-Charge sind identisch")
        if ziel.artikel_id != quelle.artikel_id:
            raise ValidierungsError("Chargen passen nicht zum Artikel")
        artikel = self._artikel(quelle.artikel_id)

        menge = data.menge
        if menge is None:
            menge = self._verfuegbar(artikel.id, quelle.id, data.ziel_lagerbereich)
            if menge <= 0:
                raise ValidierungsError("Quell-Charge hat keinen verfügbaren Bestand")

        zusatz = f" {data.notiz}" if data.notiz else ""
        weg, hin = self._umbuchung_buchen(
            artikel, quelle, data.ziel_lagerbereich, ziel, data.ziel_lagerbereich, menge,
            user_id, f"[MERGE->{ziel.id}]{zusatz}", f"[MERGE_FROM:{quelle.id}]{zusatz}",
        )
        logger.info(f"Charge {quelle.id} in {ziel.id} zusammengeführt ({menge})")
        return {"weg": weg, "hin": hin, "ziel_charge_id": ziel.id}

    # ========================================
    # RESERVIERUNGEN
    # ========================================

    def get_reservierung(self, reservierung_id: UUID) -> Reservierung:
        reservierung = self.db.get(Reservierung, reservierung_id)
        if not reservierung:
            raise NotFoundError("Reservierung nicht gefunden")
        return reservierung

    def reservieren(self, data: ReservierungCreate, user_id: str | None = None) -> Reservierung:
        artikel = self._artikel(data.artikel_id)
        if not self.db.get(Auftrag, data.auftrag_id):
            raise NotFoundError("Auftrag nicht gefunden")
        charge = self._charge_zum_artikel(data.charge_id, artikel) if data.charge_id else None

        reservierung = Reservierung(
            artikel_id=artikel.id,
            auftrag_id=data.auftrag_id,
            charge_id=charge.id if charge else None,
            liefer_datum=data.liefer_datum,
            menge=data.menge,
            lagerbereich=data.lagerbereich,
            status=ReservierungStatus.AKTIV,
            created_by=user_id,
        )
        self.db.add(reservierung)
        self._record_movement(
            typ=BewegungsTyp.RESERVIERUNG,
            artikel=artikel,
            charge=charge,
            menge=data.menge,
            lagerbereich=data.lagerbereich,
            user_id=user_id,
            auftrag_id=data.auftrag_id,
        )
        self._agg_delta(artikel, reservierung.charge_id, data.lagerbereich, reserviert=data.menge)
        return reservierung

    def list_reservierungen(
        self,
        artikel_id: UUID | None = None,
        auftrag_id: UUID | None = None,
        status: ReservierungStatus | None = None,
    ) -> list[Reservierung]:
        query = select(Reservierung)
        if artikel_id:
            query = query.where(Reservierung.artikel_id == artikel_id)
        if auftrag_id:
            query = query.where(Reservierung.auftrag_id == auftrag_id)
        if status:
            query = query.where(Reservierung.status == status)
        query = query.order_by(Reservierung.liefer_datum, Reservierung.created_at)
        return list(self.db.execute(query).scalars().all())

    def aufloesen(self, reservierung_id: UUID, user_id: str | None = None) -> Reservierung:
        """Gibt eine aktive Reservierung frei (RESERVIERUNG_AUFLOESEN, reserviert sinkt)"""
        reservierung = self.get_reservierung(reservierung_id)
        if reservierung.status != ReservierungStatus.AKTIV:
            raise ValidierungsError("Reservierung ist nicht aktiv")

        artikel = self._artikel(reservierung.artikel_id)
        charge = self.db.get(Charge, reservierung.charge_id) if reservierung.charge_id else None
        menge = Decimal(str(reservierung.menge))

        reservierung.status = ReservierungStatus.AUFGELOEST
        self._record_movement(
            typ=BewegungsTyp.RESERVIERUNG_AUFLOESEN,
            artikel=artikel,
            charge=charge,
            menge=-menge,
            lagerbereich=reservierung.lagerbereich,
            user_id=user_id,
            auftrag_id=reservierung.auftrag_id,
        )
        self._agg_delta(artikel, reservierung.charge_id, reservierung.lagerbereich, reserviert=-menge)
        return reservierung

    def update_reservierung(
        self,
        reservierung_id: UUID,
        data: ReservierungUpdate,
        user_id: str | None = None,
    ) -> Reservierung:
        """
        Ändert eine aktive Reservierung. Ändern sich Menge, Charge oder
        Lagerbereich, wird die alte Bindung aufgelöst und die neue gebucht.
        """
        reservierung = self.get_reservierung(reservierung_id)
        if reservierung.status != ReservierungStatus.AKTIV:
            raise ValidierungsError("Reservierung ist nicht aktiv")

        felder = data.model_dump(exclude_unset=True)
        artikel = self._artikel(reservierung.artikel_id)

        alte_bindung = (reservierung.charge_id, Decimal(str(reservierung.menge)), reservierung.lagerbereich)
        alter_auftrag = reservierung.auftrag_id

        if felder.get("auftrag_id") is not None:
            if not self.db.get(Auftrag, felder["auftrag_id"]):
                raise NotFoundError("Auftrag nicht gefunden")
            reservierung.auftrag_id = felder["auftrag_id"]
        if felder.get("liefer_datum") is not None:
            reservierung.liefer_datum = felder["liefer_datum"]

        charge_id = reservierung.charge_id
        if "charge_id" in felder:
            charge_id = self._charge_zum_artikel(felder["charge_id"], artikel).id if felder["charge_id"] else None
        neue_bindung = (
            charge_id,
            felder.get("menge") or alte_bindung[1],
            felder.get("lagerbereich") or alte_bindung[2],
        )

        if neue_bindung != alte_bindung:
            alt_charge_id, alt_menge, alt_bereich = alte_bindung
            self._record_movement(
                typ=BewegungsTyp.RESERVIERUNG_AUFLOESEN,
                artikel=artikel,
                charge=self.db.get(Charge, alt_charge_id) if alt_charge_id else None,
                menge=-alt_menge,
                lagerbereich=alt_bereich,
                user_id=user_id,
                auftrag_id=alter_auftrag,
                notiz="Reservierung geändert",
            )
            self._agg_delta(artikel, alt_charge_id, alt_bereich, reserviert=-alt_menge)

            neu_charge_id, neu_menge, neu_bereich = neue_bindung
            self._record_movement(
                typ=BewegungsTyp.RESERVIERUNG,
                artikel=artikel,
                charge=self.db.get(Charge, neu_charge_id) if neu_charge_id else None,
                menge=neu_menge,
                lagerbereich=neu_bereich,
                user_id=user_id,
                auftrag_id=reservierung.auftrag_id,
                notiz="Reservierung geändert",
            )
            self._agg_delta(artikel, neu_charge_id, neu_bereich, reserviert=neu_menge)

            reservierung.charge_id = neu_charge_id
            reservierung.menge = neu_menge
            reservierung.lagerbereich = neu_bereich
        return reservierung

    def teil_erfuellen(
        self,
        reservierung_id: UUID,
        menge_erfuellt: Decimal,
        user_id: str | None = None,
    ) -> Reservierung:
        """
        Reduziert die reservierte Menge. Ist alles erfüllt, wird die
        Reservierung ERFUELLT.
        """
        reservierung = self.get_reservierung(reservierung_id)
        if reservierung.status != ReservierungStatus.AKTIV:
            raise ValidierungsError("Reservierung ist nicht aktiv")

        artikel = self._artikel(reservierung.artikel_id)
        menge = Decimal(str(reservierung.menge))
        erfuellt = min(menge_erfuellt, menge)
        rest = menge - erfuellt

        if rest > 0:
            reservierung.menge = rest
        else:
            reservierung.status = ReservierungStatus.ERFUELLT

        self._record_movement(
            typ=BewegungsTyp.RESERVIERUNG_AUFLOESEN,
            artikel=artikel,
            charge=self.db.get(Charge, reservierung.charge_id) if reservierung.charge_id else None,
            menge=-erfuellt,
            lagerbereich=reservierung.lagerbereich,
            user_id=user_id,
            auftrag_id=reservierung.auftrag_id,
            notiz="Teil-Erfüllung" if rest > 0 else "Erfüllt",
        )
        self._agg_delta(artikel, reservierung.charge_id, reservierung.lagerbereich, reserviert=-erfuellt)
        return reservierung

    # ========================================
    # WARNUNGEN
    # ========================================

    def warnungen_mhd(
        self,
        threshold_days: int | None = None,
        nur_abgelaufen: bool = False,
        artikel_id: UUID | None = None,
        offset: int = 0,
        limit: int = 50,
        stichtag: date | None = None,
    ) -> tuple[list[dict], int]:
        """
        Chargen mit MHD innerhalb der Schwelle (NAH) oder überschritten
        (ABGELAUFEN), Bestand je Charge über alle Lagerbereiche summiert.
        """
        stichtag = stichtag or heute()
        schwelle = threshold_days if threshold_days is not None else settings.mhd_warn_tage

        if nur_abgelaufen:
            query = select(Charge).where(Charge.mhd < stichtag)
        else:
            query = select(Charge).where(Charge.mhd <= stichtag + timedelta(days=schwelle))
        if artikel_id:
            query = query.where(Charge.artikel_id == artikel_id)

        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar() or 0
        chargen = self.db.execute(
            query.order_by(Charge.mhd.asc(), Charge.created_at.asc()).offset(offset).limit(limit)
        ).scalars().all()

        summen = {}
        if chargen:
            for charge_id, verfuegbar, reserviert, unterwegs in self.db.execute(
                select(
                    BestandAgg.charge_id,
                    func.sum(BestandAgg.verfuegbar),
                    func.sum(BestandAgg.reserviert),
                    func.sum(BestandAgg.unterwegs),
                )
                .where(BestandAgg.charge_id.in_([c.id for c in chargen]))
                .group_by(BestandAgg.charge_id)
            ).all():
                summen[charge_id] = (verfuegbar, reserviert, unterwegs)

        zeilen = []
        for charge in chargen:
            verfuegbar, reserviert, unterwegs = summen.get(charge.id, (0, 0, 0))
            zeilen.append({
                "artikel_id": charge.artikel_id,
                "artikel_name": charge.artikel_name,
                "artikel_nummer": charge.artikel_nummer,
                "charge_id": charge.id,
                "mhd": charge.mhd,
                "schlacht_datum": charge.schlacht_datum,
                "verfuegbar": Decimal(str(verfuegbar or 0)),
                "reserviert": Decimal(str(reserviert or 0)),
                "unterwegs": Decimal(str(unterwegs or 0)),
                "warn_typ": mhd_warnung(charge.mhd, schwelle, stichtag),
            })
        return zeilen, total

    def warnungen_ueberreserviert(
        self,
        bis_datum: date | None = None,
        artikel_id: UUID | None = None,
    ) -> list[dict]:
        """Artikel, deren aktive Reservierungen den verfügbaren Bestand übersteigen"""
        self.db.flush()
        query = (
            select(Reservierung.artikel_id, func.sum(Reservierung.menge))
            .where(Reservierung.status == ReservierungStatus.AKTIV)
            .group_by(Reservierung.artikel_id)
        )
        if bis_datum:
            query = query.where(Reservierung.liefer_datum <= bis_datum)
        if artikel_id:
            query = query.where(Reservierung.artikel_id == artikel_id)
        reserviert = {a_id: Decimal(str(summe or 0)) for a_id, summe in self.db.execute(query).all()}
        if not reserviert:
            return []

        verfuegbar = {
            a_id: Decimal(str(summe or 0))
            for a_id, summe in self.db.execute(
                select(BestandAgg.artikel_id, func.sum(BestandAgg.verfuegbar))
                .where(BestandAgg.artikel_id.in_(list(reserviert)))
                .group_by(BestandAgg.artikel_id)
            ).all()
        }
        artikel = {
            a.id: a for a in self.db.execute(
                select(Artikel).where(Artikel.id.in_(list(reserviert)))
            ).scalars().all()
        }

        zeilen = []
        for a_id, menge in reserviert.items():
            bestand = verfuegbar.get(a_id, Decimal("0"))
            if menge <= bestand:
                continue
            zeilen.append({
                "artikel_id": a_id,
                "artikel_name": artikel[a_id].name if a_id in artikel else None,
                "artikel_nummer": artikel[a_id].artikel_nummer if a_id in artikel else None,
                "verfuegbar": bestand,
                "reserviert": menge,
                "diff": menge - bestand,
            })
        return sorted(zeilen, key=lambda z: z["diff"], reverse=True)

    def warnungen_tk_mismatch(
        self,
        von: date | None = None,
        bis: date | None = None,
        artikel_id: UUID | None = None,
        offset: int = 0,
        limit: int = 100,
    ) -> tuple[list[Bewegung], int]:
        """Bewegungen, deren TK-Kennzeichen nicht zum Lagerbereich passt (Standard: letzte 14 Tage)"""
        von = von or heute() - timedelta(days=14)
        query = select(Bewegung).where(
            Bewegung.timestamp >= datetime.combine(von, datetime.min.time()),
            Bewegung.timestamp <= tagesende(bis or heute()),
            or_(
                and_(Bewegung.is_tk == True, Bewegung.lagerbereich == Lagerbereich.NON_TK),  # noqa: E712
                and_(Bewegung.is_tk == False, Bewegung.lagerbereich == Lagerbereich.TK),  # noqa: E712
            ),
        )
        if artikel_id:
            query = query.where(Bewegung.artikel_id == artikel_id)

        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar() or 0
        items = self.db.execute(
            query.order_by(Bewegung.timestamp.desc()).offset(offset).limit(limit)
        ).scalars().all()
        return list(items), total

    def warnungen_summary(self, threshold_days: int | None = None, bis_datum: date | None = None) -> dict:
        _, mhd_total = self.warnungen_mhd(threshold_days=threshold_days, limit=1)
        _, mhd_abgelaufen = self.warnungen_mhd(threshold_days=threshold_days, nur_abgelaufen=True, limit=1)
        _, tk_total = self.warnungen_tk_mismatch(limit=1)
        return {
            "mhd_total": mhd_total,
            "mhd_abgelaufen": mhd_abgelaufen,
            "ueberreserviert_total": len(self.warnungen_ueberreserviert(bis_datum=bis_datum)),
            "tk_mismatch_total": tk_total,
        }

    # ========================================
    # HINTERGRUND-JOBS
    # ========================================

    def mhd_warnungen(self, threshold_days: int | None = None) -> list[dict]:
        """Bestandszeilen mit verfügbarer Menge und MHD-Warnung"""
        zeilen, _ = self.uebersicht(kritisch=True, threshold_days=threshold_days, limit=100000)
        return [z for z in zeilen if Decimal(str(z["verfuegbar"])) > 0]

    def abgelaufene_reservierungen_aufloesen(self, stichtag: date | None = None) -> int:
        """Löst aktive Reservierungen mit Lieferdatum vor dem Stichtag auf"""
        stichtag = stichtag or heute()
        reservierungen = self.db.execute(
            select(Reservierung).where(
                Reservierung.status == ReservierungStatus.AKTIV,
                Reservierung.liefer_datum < stichtag,
            )
        ).scalars().all()
        for reservierung in reservierungen:
            self.aufloesen(reservierung.id, user_id="system")
        return len(reservierungen)
