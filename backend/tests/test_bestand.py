"""
Tests für Lagerbestand: Chargen, Journal, Übersicht, Müll und Reservierungen
"""
from datetime import date, timedelta
from decimal import Decimal

from app.core.zeit import heute
from app.models.artikel import Artikel
from app.models.auftrag import Auftrag
from app.models.kunde import Kunde
from app.models.enums import MhdWarnung, Lagerbereich, ReservierungStatus
from app.schemas.inventory import ZugangRequest, NeueCharge, ReservierungCreate
from app.services.bestand_service import BestandService, mhd_warnung


def _zugang(client, artikel_id, menge="10", mhd=None, headers=None, **extra):
    payload = {
        "artikel_id": artikel_id,
        "menge": menge,
        "lagerbereich": "NON_TK",
        "neue_charge": {"mhd": (mhd or heute() + timedelta(days=30)).isoformat()},
        **extra,
    }
    return client.post("/api/v1/bestand/zugang", json=payload, headers=headers or {})


def _zeile(client, **params):
    data = client.get("/api/v1/bestand/uebersicht", params=params).json()
    assert data["total"] == 1, data
    return data["items"][0]


class TestMhdWarnung:
    """Warnstufen"""

    def test_stufen(self):
        stichtag = date(2030, 1, 10)
        assert mhd_warnung(date(2030, 1, 9), 5, stichtag) == MhdWarnung.ABGELAUFEN
        assert mhd_warnung(date(2030, 1, 10), 5, stichtag) == MhdWarnung.NAH
        assert mhd_warnung(date(2030, 1, 15), 5, stichtag) == MhdWarnung.NAH
        assert mhd_warnung(date(2030, 1, 16), 5, stichtag) is None
        assert mhd_warnung(None, 5, stichtag) is None


class TestZugang:
    """Manueller Zugang"""

    def test_zugang_mit_neuer_charge(self, client, sample_artikel):
        response = _zugang(client, sample_artikel["id"], menge="12.5", notiz="Inventur")
        assert response.status_code == 201
        data = response.json()
        bewegung = data["bewegung"]
        assert bewegung["typ"] == "INVENTUR_KORREKTUR"
        assert Decimal(str(bewegung["menge"])) == Decimal("12.5")
        assert bewegung["charge_id"] == data["charge_id"]
        assert bewegung["artikel_nummer"] == "R-100"
        assert bewegung["notiz"] == "Inventur"

        zeile = _zeile(client)
        assert Decimal(str(zeile["verfuegbar"])) == Decimal("12.5")
        assert zeile["warn_mhd"] is None

    def test_zugang_ohne_charge(self, client, sample_artikel):
        response = client.post("/api/v1/bestand/zugang", json={
            "artikel_id": sample_artikel["id"],
            "menge": "1",
            "lagerbereich": "TK",
        })
        assert response.status_code == 400
        assert "charge_id" in response.json()["detail"]

    def test_charge_eines_anderen_artikels(self, client, sample_artikel):
        anderer = client.post("/api/v1/artikel", json={"artikel_nummer": "L-1", "name": "Lammkeule"}).json()
        charge = client.post("/api/v1/bestand/chargen", json={
            "artikel_id": anderer["id"],
            "mhd": (heute() + timedelta(days=10)).isoformat(),
        }).json()

        response = client.post("/api/v1/bestand/zugang", json={
            "artikel_id": sample_artikel["id"],
            "charge_id": charge["id"],
            "menge": "1",
            "lagerbereich": "NON_TK",
        })
        assert response.status_code == 400
        assert response.json()["detail"] == "Charge passt nicht zum Artikel"

    def test_idempotency_key(self, client, sample_artikel):
        headers = {"Idempotency-Key": "zugang-123"}
        assert _zugang(client, sample_artikel["id"], headers=headers).status_code == 201

        response = _zugang(client, sample_artikel["id"], headers=headers)
        assert response.status_code == 409
        assert response.json()["detail"] == "Anfrage wurde bereits verarbeitet"

        bewegungen = client.get("/api/v1/bestand/bewegungen").json()
        assert bewegungen["total"] == 1

    def test_fehlgeschlagene_buchung_verbraucht_key_nicht(self, client, sample_artikel):
        headers = {"Idempotency-Key": "zugang-456"}
        response = client.post("/api/v1/bestand/zugang", json={
            "artikel_id": sample_artikel["id"],
            "menge": "1",
            "lagerbereich": "NON_TK",
        }, headers=headers)
        assert response.status_code == 400
        assert _zugang(client, sample_artikel["id"], headers=headers).status_code == 201

    def test_schreibrechte(self, client, auth_as, sample_artikel):
        auth_as(["kommissionierung"])
        assert _zugang(client, sample_artikel["id"]).status_code == 403
        assert client.get("/api/v1/bestand/uebersicht").status_code == 200

        auth_as(["kunde"])
        assert client.get("/api/v1/bestand/uebersicht").status_code == 403


class TestMuell:
    """Müll-Buchungen und deren Rückgängigmachung"""

    def _muell(self, client, artikel_id, charge_id, menge="3", **extra):
        payload = {
            "artikel_id": artikel_id,
            "charge_id": charge_id,
            "menge": menge,
            "lagerbereich": "NON_TK",
            "grund": "BESCHAEDIGT",
            **extra,
        }
        return client.post("/api/v1/bestand/muell", json=payload)

    def test_muell_buchen(self, client, sample_artikel):
        charge_id = _zugang(client, sample_artikel["id"]).json()["charge_id"]

        response = self._muell(client, sample_artikel["id"], charge_id, notiz="Verpackung offen")
        assert response.status_code == 201
        muell = response.json()
        assert muell["typ"] == "MULL"
        assert Decimal(str(muell["menge"])) == Decimal("-3")
        assert muell["notiz"] == "[Beschädigt] Verpackung offen"

        assert Decimal(str(_zeile(client)["verfuegbar"])) == Decimal("7")
        assert client.get("/api/v1/bestand/muell").json()["total"] == 1

    def test_muell_ohne_notiz(self, client, sample_artikel):
        charge_id = _zugang(client, sample_artikel["id"]).json()["charge_id"]
        response = self._muell(client, sample_artikel["id"], charge_id, grund="MHD_ABGELAUFEN")
        assert response.json()["notiz"] == "[MHD abgelaufen]"

    def test_rueckgaengig_genau_einmal(self, client, sample_artikel):
        charge_id = _zugang(client, sample_artikel["id"]).json()["charge_id"]
        muell = self._muell(client, sample_artikel["id"], charge_id).json()

        response = client.post(f"/api/v1/bestand/muell/{muell['id']}/undo", json={"begruendung": "Fehlbuchung"})
        assert response.status_code == 201
        korrektur = response.json()
        assert korrektur["typ"] == "INVENTUR_KORREKTUR"
        assert Decimal(str(korrektur["menge"])) == Decimal("3")
        assert korrektur["notiz"] == f"[UNDO_MUELL {muell['id']}] Fehlbuchung"
        assert Decimal(str(_zeile(client)["verfuegbar"])) == Decimal("10")

        response = client.post(f"/api/v1/bestand/muell/{muell['id']}/undo")
        assert response.status_code == 409
        assert Decimal(str(_zeile(client)["verfuegbar"])) == Decimal("10")

    def test_nur_muell_rueckgaengig(self, client, sample_artikel):
        zugang = _zugang(client, sample_artikel["id"]).json()
        response = client.post(f"/api/v1/bestand/muell/{zugang['bewegung']['id']}/undo")
        assert response.status_code == 400

    def test_unbekannte_bewegung(self, client):
        response = client.post("/api/v1/bestand/muell/00000000-0000-0000-0000-000000000000/undo")
        assert response.status_code == 404


class TestUebersicht:
    """Bestandsübersicht mit MHD-Warnung und Stichtag"""

    def test_mhd_warnungen(self, client, sample_artikel):
        _zugang(client, sample_artikel["id"], mhd=heute() - timedelta(days=1))
        _zugang(client, sample_artikel["id"], mhd=heute() + timedelta(days=2))
        _zugang(client, sample_artikel["id"], mhd=heute() + timedelta(days=30))

        data = client.get("/api/v1/bestand/uebersicht").json()
        assert data["total"] == 3
        warnungen = sorted(z["warn_mhd"] or "-" for z in data["items"])
        assert warnungen == ["-", "ABGELAUFEN", "NAH"]

        kritisch = client.get("/api/v1/bestand/uebersicht", params={"kritisch": True}).json()
        assert kritisch["total"] == 2

        # größere Schwelle macht auch die dritte Charge kritisch
        kritisch = client.get("/api/v1/bestand/uebersicht", params={"kritisch": True, "threshold_days": 40}).json()
        assert kritisch["total"] == 3

    def test_filter_lagerbereich_und_suche(self, client, sample_artikel):
        _zugang(client, sample_artikel["id"])
        _zugang(client, sample_artikel["id"], lagerbereich="TK")

        assert client.get("/api/v1/bestand/uebersicht", params={"lagerbereich": "TK"}).json()["total"] == 1
        assert client.get("/api/v1/bestand/uebersicht", params={"q": "hüfte"}).json()["total"] == 2
        assert client.get("/api/v1/bestand/uebersicht", params={"q": "Lamm"}).json()["total"] == 0

    def test_rekonstruktion_zum_stichtag(self, client, sample_artikel):
        charge_id = _zugang(client, sample_artikel["id"]).json()["charge_id"]
        client.post("/api/v1/bestand/muell", json={
            "artikel_id": sample_artikel["id"],
            "charge_id": charge_id,
            "menge": "4",
            "lagerbereich": "NON_TK",
            "grund": "VERDERB",
        })

        morgen = heute() + timedelta(days=1)
        zeile = _zeile(client, datum=morgen.isoformat())
        assert Decimal(str(zeile["verfuegbar"])) == Decimal("6")
        assert zeile["id"] is None

        frueher = heute() - timedelta(days=2)
        assert client.get("/api/v1/bestand/uebersicht", params={"datum": frueher.isoformat()}).json()["total"] == 0


class TestBewegungen:
    """Journal und CSV-Export"""

    def test_typ_filter(self, client, sample_artikel):
        charge_id = _zugang(client, sample_artikel["id"]).json()["charge_id"]
        client.post("/api/v1/bestand/muell", json={
            "artikel_id": sample_artikel["id"],
            "charge_id": charge_id,
            "menge": "1",
            "lagerbereich": "NON_TK",
            "grund": "SONSTIGES",
        })

        assert client.get("/api/v1/bestand/bewegungen").json()["total"] == 2
        assert client.get("/api/v1/bestand/bewegungen", params={"typ": "MULL"}).json()["total"] == 1
        assert client.get("/api/v1/bestand/bewegungen", params={"typ": "MULL,INVENTUR_KORREKTUR"}).json()["total"] == 2
        assert client.get("/api/v1/bestand/bewegungen", params={"typ": "FALSCH"}).status_code == 400

    def test_csv_export(self, client, sample_artikel):
        _zugang(client, sample_artikel["id"], menge="2.5")

        response = client.get("/api/v1/bestand/bewegungen/export")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]

        zeilen = response.text.strip().splitlines()
        assert zeilen[0].startswith("Zeitpunkt;Typ;Artikelnummer")
        assert len(zeilen) == 2
        felder = zeilen[1].split(";")
        assert felder[1] == "INVENTUR_KORREKTUR"
        assert felder[2] == "R-100"
        assert felder[5].startswith("2,5")

    def test_charge_ansicht(self, client, sample_artikel):
        charge_id = _zugang(client, sample_artikel["id"]).json()["charge_id"]
        response = client.get(f"/api/v1/bestand/chargen/{charge_id}/ansicht")
        assert response.status_code == 200
        data = response.json()
        assert data["charge"]["id"] == charge_id
        assert len(data["bewegungen"]) == 1
        assert data["reservierungen"] == []


class TestReservierungen:
    """Reservierungen für Aufträge"""

    def test_reservieren_und_freigeben(self, client, sample_kunde, sample_artikel, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        charge_id = _zugang(client, sample_artikel["id"]).json()["charge_id"]

        response = client.post("/api/v1/bestand/reservierungen", json={
            "artikel_id": sample_artikel["id"],
            "auftrag_id": auftrag["id"],
            "charge_id": charge_id,
            "liefer_datum": "2030-01-07",
            "menge": "4",
        })
        assert response.status_code == 201
        reservierung = response.json()
        assert reservierung["status"] == "AKTIV"

        zeile = _zeile(client)
        assert Decimal(str(zeile["reserviert"])) == Decimal("4")
        assert Decimal(str(zeile["verfuegbar"])) == Decimal("10")

        response = client.delete(f"/api/v1/bestand/reservierungen/{reservierung['id']}")
        assert response.json()["status"] == "AUFGELOEST"
        assert Decimal(str(_zeile(client)["reserviert"])) == Decimal("0")

        assert client.delete(f"/api/v1/bestand/reservierungen/{reservierung['id']}").status_code == 400

    def _reservieren(self, client, artikel_id, auftrag_id, charge_id, menge="4"):
        return client.post("/api/v1/bestand/reservierungen", json={
            "artikel_id": artikel_id,
            "auftrag_id": auftrag_id,
            "charge_id": charge_id,
            "liefer_datum": "2030-01-07",
            "menge": menge,
        }).json()

    def test_menge_aendern(self, client, sample_kunde, sample_artikel, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        charge_id = _zugang(client, sample_artikel["id"]).json()["charge_id"]
        reservierung = self._reservieren(client, sample_artikel["id"], auftrag["id"], charge_id)

        response = client.patch(f"/api/v1/bestand/reservierungen/{reservierung['id']}", json={"menge": "6"})
        assert response.status_code == 200
        assert Decimal(str(response.json()["menge"])) == Decimal("6")
        assert Decimal(str(_zeile(client)["reserviert"])) == Decimal("6")

        typen = client.get("/api/v1/bestand/bewegungen", params={"auftrag_id": auftrag["id"]}).json()["items"]
        assert sorted(b["typ"] for b in typen) == ["RESERVIERUNG", "RESERVIERUNG", "RESERVIERUNG_AUFLOESEN"]

        # nur Lieferdatum: keine weitere Buchung
        client.patch(f"/api/v1/bestand/reservierungen/{reservierung['id']}", json={"liefer_datum": "2030-01-08"})
        assert client.get(
            "/api/v1/bestand/bewegungen", params={"auftrag_id": auftrag["id"]}
        ).json()["total"] == 3
        assert client.get(f"/api/v1/bestand/reservierungen/{reservierung['id']}").json()["liefer_datum"] == "2030-01-08"

    def test_teilerfuellung(self, client, sample_kunde, sample_artikel, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        charge_id = _zugang(client, sample_artikel["id"]).json()["charge_id"]
        reservierung = self._reservieren(client, sample_artikel["id"], auftrag["id"], charge_id)
        url = f"/api/v1/bestand/reservierungen/{reservierung['id']}"

        response = client.post(f"{url}/teilerfuellung", json={"menge_erfuellt": "1.5"})
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "AKTIV"
        assert Decimal(str(data["menge"])) == Decimal("2.5")
        assert Decimal(str(_zeile(client)["reserviert"])) == Decimal("2.5")

        # mehr als reserviert wird auf den Rest begrenzt
        data = client.post(f"{url}/teilerfuellung", json={"menge_erfuellt": "5"}).json()
        assert data["status"] == "ERFUELLT"
        assert Decimal(str(_zeile(client)["reserviert"])) == Decimal("0")

        assert client.post(f"{url}/teilerfuellung", json={"menge_erfuellt": "1"}).status_code == 400
        assert client.patch(url, json={"menge": "1"}).status_code == 400


class TestUmbuchung:
    """Umbuchen und Zusammenführen von Chargen"""

    def test_umbuchen_in_tk(self, client, sample_artikel):
        charge_id = _zugang(client, sample_artikel["id"]).json()["charge_id"]

        response = client.post(f"/api/v1/bestand/chargen/{charge_id}/umbuchen", json={
            "nach": {"lagerbereich": "TK", "charge_id": charge_id},
            "menge": "4",
        })
        assert response.status_code == 201
        data = response.json()
        assert data["weg"]["typ"] == "UMBUCHUNG_WEG"
        assert Decimal(str(data["weg"]["menge"])) == Decimal("-4")
        assert data["weg"]["lagerbereich"] == "NON_TK"
        assert data["hin"]["typ"] == "UMBUCHUNG_HIN"
        assert Decimal(str(data["hin"]["menge"])) == Decimal("4")
        assert data["ziel_charge_id"] == charge_id

        assert Decimal(str(_zeile(client, lagerbereich="NON_TK")["verfuegbar"])) == Decimal("6")
        assert Decimal(str(_zeile(client, lagerbereich="TK")["verfuegbar"])) == Decimal("4")

    def test_umbuchen_in_neue_charge(self, client, sample_artikel):
        mhd = heute() + timedelta(days=20)
        charge_id = _zugang(client, sample_artikel["id"], mhd=mhd).json()["charge_id"]

        data = client.post(f"/api/v1/bestand/chargen/{charge_id}/umbuchen", json={
            "nach": {"lagerbereich": "NON_TK"},
            "menge": "2",
        }).json()
        assert data["ziel_charge_id"] != charge_id

        neue = client.get(f"/api/v1/bestand/chargen/{data['ziel_charge_id']}").json()
        assert neue["mhd"] == mhd.isoformat()
        assert neue["is_tk"] is False
        assert Decimal(str(_zeile(client, charge_id=data["ziel_charge_id"])["verfuegbar"])) == Decimal("2")

    def test_identische_umbuchung(self, client, sample_artikel):
        charge_id = _zugang(client, sample_artikel["id"]).json()["charge_id"]
        response = client.post(f"/api/v1/bestand/chargen/{charge_id}/umbuchen", json={
            "nach": {"lagerbereich": "NON_TK", "charge_id": charge_id},
            "menge": "1",
        })
        assert response.status_code == 400

    def test_zusammenfuehren(self, client, sample_artikel):
        quelle = _zugang(client, sample_artikel["id"], menge="7").json()["charge_id"]
        ziel = _zugang(client, sample_artikel["id"], menge="3").json()["charge_id"]

        response = client.post(f"/api/v1/bestand/chargen/{quelle}/merge", json={
            "ziel_charge_id": ziel,
            "ziel_lagerbereich": "NON_TK",
            "notiz": "Reste",
        })
        assert response.status_code == 201
        data = response.json()
        assert Decimal(str(data["hin"]["menge"])) == Decimal("7")
        assert data["weg"]["notiz"] == f"[MERGE->{ziel}] Reste"
        assert data["hin"]["notiz"] == f"[MERGE_FROM:{quelle}] Reste"

        assert Decimal(str(_zeile(client, charge_id=quelle)["verfuegbar"])) == Decimal("0")
        assert Decimal(str(_zeile(client, charge_id=ziel)["verfuegbar"])) == Decimal("10")

        # Quelle ist jetzt leer
        response = client.post(f"/api/v1/bestand/chargen/{quelle}/merge", json={
            "ziel_charge_id": ziel,
            "ziel_lagerbereich": "NON_TK",
        })
        assert response.status_code == 400
        assert response.json()["detail"] == "Quell-Charge hat keinen verfügbaren Bestand"

    def test_zusammenfuehren_anderer_artikel(self, client, sample_artikel):
        anderer = client.post("/api/v1/artikel", json={"artikel_nummer": "L-1", "name": "Lammkeule"}).json()
        quelle = _zugang(client, sample_artikel["id"]).json()["charge_id"]
        ziel = _zugang(client, anderer["id"]).json()["charge_id"]

        response = client.post(f"/api/v1/bestand/chargen/{quelle}/merge", json={
            "ziel_charge_id": ziel,
            "ziel_lagerbereich": "NON_TK",
        })
        assert response.status_code == 400

    def test_schreibrechte(self, client, auth_as, sample_artikel):
        charge_id = _zugang(client, sample_artikel["id"]).json()["charge_id"]
        auth_as(["kommissionierung"])
        response = client.post(f"/api/v1/bestand/chargen/{charge_id}/umbuchen", json={
            "nach": {"lagerbereich": "TK", "charge_id": charge_id},
            "menge": "1",
        })
        assert response.status_code == 403


class TestWarnungen:
    """MHD, Überreservierung und TK-Abweichungen"""

    def test_mhd(self, client, sample_artikel):
        _zugang(client, sample_artikel["id"], mhd=heute() - timedelta(days=1))
        _zugang(client, sample_artikel["id"], mhd=heute() + timedelta(days=2))
        _zugang(client, sample_artikel["id"], mhd=heute() + timedelta(days=30))

        data = client.get("/api/v1/bestand/warnungen/mhd").json()
        assert data["total"] == 2
        assert [z["warn_typ"] for z in data["items"]] == ["ABGELAUFEN", "NAH"]
        assert Decimal(str(data["items"][0]["verfuegbar"])) == Decimal("10")

        abgelaufen = client.get("/api/v1/bestand/warnungen/mhd", params={"nur_abgelaufen": True}).json()
        assert abgelaufen["total"] == 1

    def test_ueberreserviert(self, client, sample_kunde, sample_artikel, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        _zugang(client, sample_artikel["id"], menge="3")
        client.post("/api/v1/bestand/reservierungen", json={
            "artikel_id": sample_artikel["id"],
            "auftrag_id": auftrag["id"],
            "liefer_datum": "2030-01-07",
            "menge": "5",
        })

        data = client.get("/api/v1/bestand/warnungen/ueberreserviert").json()
        assert data["total"] == 1
        zeile = data["items"][0]
        assert zeile["artikel_nummer"] == "R-100"
        assert Decimal(str(zeile["diff"])) == Decimal("2")

        # Reservierung liegt nach dem Stichtag
        frueher = client.get("/api/v1/bestand/warnungen/ueberreserviert", params={"bis_datum": "2030-01-06"}).json()
        assert frueher["total"] == 0

    def test_tk_mismatch_und_summary(self, client, sample_artikel):
        _zugang(client, sample_artikel["id"])
        # Nicht-TK-Charge im TK-Lager
        _zugang(client, sample_artikel["id"], lagerbereich="TK")

        data = client.get("/api/v1/bestand/warnungen/tk-mismatch").json()
        assert data["total"] == 1
        assert data["items"][0]["lagerbereich"] == "TK"
        assert data["items"][0]["is_tk"] is False

        summary = client.get("/api/v1/bestand/warnungen/summary").json()
        assert summary == {
            "mhd_total": 0,
            "mhd_abgelaufen": 0,
            "ueberreserviert_total": 0,
            "tk_mismatch_total": 1,
        }


class TestHintergrundJobs:
    """Service-Funktionen der Celery Tasks"""

    def _artikel(self, db):
        artikel = Artikel(artikel_nummer="H-1", name="Hähnchenbrust", preis=Decimal("6.90"))
        db.add(artikel)
        db.commit()
        return artikel

    def test_mhd_warnungen_nur_mit_bestand(self, db):
        artikel = self._artikel(db)
        service = BestandService(db)
        service.zugang(ZugangRequest(
            artikel_id=artikel.id,
            menge=Decimal("5"),
            lagerbereich=Lagerbereich.TK,
            neue_charge=NeueCharge(mhd=heute() + timedelta(days=1), is_tk=True),
        ))
        service.zugang(ZugangRequest(
            artikel_id=artikel.id,
            menge=Decimal("5"),
            lagerbereich=Lagerbereich.TK,
            neue_charge=NeueCharge(mhd=heute() + timedelta(days=60), is_tk=True),
        ))
        db.commit()

        warnungen = service.mhd_warnungen()
        assert len(warnungen) == 1
        assert warnungen[0]["warn_mhd"] == MhdWarnung.NAH

    def test_veraltete_reservierungen(self, db):
        artikel = self._artikel(db)
        kunde = Kunde(
            name="Test", kunden_nr="K-1", email="t@example.com", password_hash="x", region="Nord", favoriten=[],
        )
        db.add(kunde)
        db.flush()
        auftrag = Auftrag(auftragsnummer="AU-1", kunde_id=kunde.id, kunde_name="Test")
        db.add(auftrag)
        db.commit()

        service = BestandService(db)
        alt = service.reservieren(ReservierungCreate(
            artikel_id=artikel.id, auftrag_id=auftrag.id, liefer_datum=date(2030, 1, 1), menge=Decimal("2"),
        ))
        neu = service.reservieren(ReservierungCreate(
            artikel_id=artikel.id, auftrag_id=auftrag.id, liefer_datum=date(2030, 1, 10), menge=Decimal("3"),
        ))
        db.commit()

        assert service.abgelaufene_reservierungen_aufloesen(date(2030, 1, 5)) == 1
        db.commit()
        assert alt.status == ReservierungStatus.AUFGELOEST
        assert neu.status == ReservierungStatus.AKTIV
