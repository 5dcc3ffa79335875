"""
Tests für Aufträge, Statusautomaten, Sichtbarkeit, Positionen und Zerlegung
"""
from datetime import date
from decimal import Decimal
from uuid import UUID

import pytest

from app.core.exceptions import ValidierungsError
from app.models.auftrag import Auftrag, ArtikelPosition
from app.models.enums import (
    AuftragStatus, KommissioniertStatus, KontrolliertStatus, Einheit,
)
from app.services.auftrag_service import (
    kann_sehen, uebergang_pruefen, STATUS_UEBERGAENGE,
)
from app.services.position_service import nettogewicht_berechnen


MONTAG = date(2030, 1, 7)
PICKER = "00000000-0000-0000-0000-00000000a001"
PICKER_2 = "00000000-0000-0000-0000-00000000a002"
KONTROLLEUR = "00000000-0000-0000-0000-00000000b001"


def _put(client, auftrag_id, **felder):
    return client.put(f"/api/v1/auftraege/{auftrag_id}", json=felder)


class TestAuftragAnlegen:
    """Anlegen und Berechnung"""

    def test_summen_aus_positionen(self, client, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        assert auftrag["auftragsnummer"].startswith("AU-")
        assert auftrag["status"] == "offen"
        assert auftrag["kommissioniert_status"] == "offen"
        assert Decimal(str(auftrag["gewicht"])) == Decimal("6")
        assert Decimal(str(auftrag["preis"])) == Decimal("75")

        position = auftrag["positionen"][0]
        assert position["artikel_name"] == "Rinderhüfte"
        assert Decimal(str(position["einzelpreis"])) == Decimal("12.50")
        assert Decimal(str(position["gesamtgewicht"])) == Decimal("6")
        assert Decimal(str(position["gesamtpreis"])) == Decimal("75")

    def test_fortlaufende_nummern(self, client, sample_kunde, auftrag_factory):
        erster = auftrag_factory(sample_kunde["id"], lieferdatum=None)
        zweiter = auftrag_factory(sample_kunde["id"], lieferdatum=None)
        assert erster["auftragsnummer"].endswith("-0001")
        assert zweiter["auftragsnummer"].endswith("-0002")

    def test_kundenrabatt_im_einzelpreis(self, client, sample_kunde, sample_artikel, auftrag_factory):
        client.post("/api/v1/kundenpreise", json={
            "kunde_id": sample_kunde["id"],
            "artikel_id": sample_artikel["id"],
            "aufpreis": "-0.50",
        })
        auftrag = auftrag_factory(sample_kunde["id"])
        assert Decimal(str(auftrag["positionen"][0]["einzelpreis"])) == Decimal("12.00")
        assert Decimal(str(auftrag["preis"])) == Decimal("72")

    def test_kunde_bestellt_fuer_sich_selbst(self, client, auth_as, sample_kunde, zweiter_kunde, sample_artikel):
        auth_as(["kunde"], sample_kunde["id"])
        response = client.post("/api/v1/auftraege", json={
            "kunde_id": zweiter_kunde["id"],
            "positionen": [{"artikel_id": sample_artikel["id"], "menge": "2.5", "einheit": "kg"}],
        })
        assert response.status_code == 201
        data = response.json()
        assert data["kunde_id"] == sample_kunde["id"]
        assert Decimal(str(data["gewicht"])) == Decimal("2.5")

    def test_unbekannter_artikel(self, client, sample_kunde):
        response = client.post("/api/v1/auftraege", json={
            "kunde_id": sample_kunde["id"],
            "positionen": [{"artikel_id": "00000000-0000-0000-0000-000000000000", "menge": 1}],
        })
        assert response.status_code == 404


class TestStatusAutomat:
    """Übergänge von Auftrag, Kommissionierung, Kontrolle und Beladung"""

    def test_ungueltiger_uebergang(self, client, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        response = _put(client, auftrag["id"], status="abgeschlossen")
        assert response.status_code == 400
        assert "offen" in response.json()["detail"]

    def test_gleicher_status_ist_noop(self):
        assert uebergang_pruefen(STATUS_UEBERGAENGE, AuftragStatus.OFFEN, AuftragStatus.OFFEN, "Status") is False
        with pytest.raises(ValidierungsError):
            uebergang_pruefen(STATUS_UEBERGAENGE, AuftragStatus.STORNIERT, AuftragStatus.ABGESCHLOSSEN, "Status")

    def test_kompletter_durchlauf(self, client, auth_as, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        auftrag_id = auftrag["id"]

        response = client.put(f"/api/v1/auftraege/{auftrag_id}/in-bearbeitung")
        assert response.json()["status"] == "in Bearbeitung"

        auth_as(["kommissionierung"], PICKER)
        response = _put(client, auftrag_id, kommissioniert_status="gestartet")
        assert response.status_code == 200
        data = response.json()
        assert data["kommissioniert_von"] == PICKER
        assert data["kommissioniert_startzeit"] is not None

        response = _put(client, auftrag_id, kommissioniert_status="fertig")
        assert response.status_code == 200
        assert response.json()["kommissioniert_endzeit"] is not None

        auth_as(["kontrolle"], KONTROLLEUR)
        assert client.get(f"/api/v1/auftraege/{auftrag_id}").status_code == 200
        assert _put(client, auftrag_id, kontrolliert_status="in Kontrolle").status_code == 200
        response = _put(client, auftrag_id, kontrolliert_status="geprüft")
        assert response.status_code == 200
        assert response.json()["kontrolliert_von"] == KONTROLLEUR

        auth_as(["fahrer"], "00000000-0000-0000-0000-0000000000f1")
        response = _put(client, auftrag_id, belade_status="beladen")
        assert response.status_code == 200
        assert response.json()["belade_zeit"] is not None

        auth_as(["admin"])
        response = _put(client, auftrag_id, status="abgeschlossen")
        assert response.json()["status"] == "abgeschlossen"

    def test_kommissionierung_erst_in_bearbeitung(self, client, auth_as, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        auth_as(["kommissionierung"], PICKER)
        assert _put(client, auftrag["id"], kommissioniert_status="gestartet").status_code == 400

    def test_nur_starter_darf_abschliessen(self, client, auth_as, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        client.put(f"/api/v1/auftraege/{auftrag['id']}/in-bearbeitung")

        auth_as(["kommissionierung"], PICKER)
        _put(client, auftrag["id"], kommissioniert_status="gestartet")

        auth_as(["kommissionierung"], PICKER_2)
        assert client.get(f"/api/v1/auftraege/{auftrag['id']}").status_code == 403
        assert _put(client, auftrag["id"], kommissioniert_status="fertig").status_code == 403

    def test_erneut_in_bearbeitung_gibt_kommissionierung_frei(self, client, auth_as, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        client.put(f"/api/v1/auftraege/{auftrag['id']}/in-bearbeitung")
        auth_as(["kommissionierung"], PICKER)
        _put(client, auftrag["id"], kommissioniert_status="gestartet")

        auth_as(["admin"])
        data = client.put(f"/api/v1/auftraege/{auftrag['id']}/in-bearbeitung").json()
        assert data["kommissioniert_status"] == "offen"
        assert data["kommissioniert_von"] is None
        assert data["kommissioniert_von_name"] is None
        assert data["kommissioniert_startzeit"] is None

        auth_as(["kommissionierung"], PICKER_2)
        response = _put(client, auftrag["id"], kommissioniert_status="gestartet")
        assert response.status_code == 200
        assert response.json()["kommissioniert_von"] == PICKER_2

    def test_beladung_erst_nach_pruefung(self, client, auth_as, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        auth_as(["fahrer"], "00000000-0000-0000-0000-0000000000f1")
        assert _put(client, auftrag["id"], belade_status="beladen").status_code == 400

    def test_reaktivierung_nach_storno(self, client, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        _put(client, auftrag["id"], status="storniert")

        response = _put(client, auftrag["id"], status="offen")
        assert response.status_code == 200
        assert response.json()["tour_id"] is not None


class TestFeldfreigaben:
    """Welche Rolle welches Feld ändern darf"""

    def test_kommissionierer_darf_status_nicht_aendern(self, client, auth_as, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        auth_as(["kommissionierung"], PICKER)
        response = _put(client, auftrag["id"], status="storniert")
        assert response.status_code == 403
        assert "status" in response.json()["detail"]

    def test_kunde_aendert_bemerkung_ohne_lieferdatum(self, client, auth_as, sample_kunde, auftrag_factory):
        ohne_datum = auftrag_factory(sample_kunde["id"], lieferdatum=None)
        mit_datum = auftrag_factory(sample_kunde["id"])

        auth_as(["kunde"], sample_kunde["id"])
        response = _put(client, ohne_datum["id"], bemerkungen="Bitte vakuumieren")
        assert response.status_code == 200
        assert response.json()["bemerkungen"] == "Bitte vakuumieren"

        assert _put(client, mit_datum["id"], bemerkungen="zu spät").status_code == 403
        assert _put(client, ohne_datum["id"], fahrer="Ali").status_code == 403

    def test_kunde_setzt_lieferdatum(self, client, auth_as, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"], lieferdatum=None)
        auth_as(["kunde"], sample_kunde["id"])

        response = _put(client, auftrag["id"], lieferdatum=MONTAG.isoformat())
        assert response.status_code == 200
        assert response.json()["tour_id"] is not None

    def test_fremder_kunde(self, client, auth_as, sample_kunde, zweiter_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"], lieferdatum=None)
        auth_as(["kunde"], zweiter_kunde["id"])
        assert _put(client, auftrag["id"], bemerkungen="x").status_code == 403
        assert client.get(f"/api/v1/auftraege/{auftrag['id']}").status_code == 403

    def test_rolle_ohne_freigaben(self, client, auth_as, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        auth_as(["lager"])
        assert _put(client, auftrag["id"], bemerkungen="x").status_code == 403


class TestSichtbarkeit:
    """kann_sehen je Rolle"""

    def _auftrag(self, **felder):
        werte = {
            "kunde_id": UUID("00000000-0000-0000-0000-0000000000c1"),
            "status": AuftragStatus.IN_BEARBEITUNG,
            "lieferdatum": MONTAG,
            "kommissioniert_status": KommissioniertStatus.OFFEN,
            "kontrolliert_status": KontrolliertStatus.OFFEN,
        }
        werte.update(felder)
        return Auftrag(**werte)

    def test_lese_rollen_sehen_alles(self):
        for rolle in ("admin", "buchhaltung", "statistik", "support"):
            assert kann_sehen({"id": "x", "roles": [rolle]}, self._auftrag())

    def test_fahrer_nur_heutige_lieferungen(self):
        fahrer = {"id": "f", "roles": ["fahrer"]}
        assert kann_sehen(fahrer, self._auftrag(), stichtag=MONTAG)
        assert not kann_sehen(fahrer, self._auftrag(), stichtag=date(2030, 1, 8))
        assert not kann_sehen(fahrer, self._auftrag(lieferdatum=None), stichtag=MONTAG)

    def test_kontrolle_sieht_fertige_kommissionierung(self):
        kontrolle = {"id": KONTROLLEUR, "roles": ["kontrolle"]}
        assert not kann_sehen(kontrolle, self._auftrag())
        assert kann_sehen(kontrolle, self._auftrag(kommissioniert_status=KommissioniertStatus.FERTIG))
        fremd = self._auftrag(
            kommissioniert_status=KommissioniertStatus.FERTIG,
            kontrolliert_status=KontrolliertStatus.IN_KONTROLLE,
            kontrolliert_von=UUID(PICKER),
        )
        assert not kann_sehen(kontrolle, fremd)

    def test_kunde_sieht_eigene(self):
        kunde = {"id": "00000000-0000-0000-0000-0000000000c1", "roles": ["kunde"]}
        assert kann_sehen(kunde, self._auftrag())
        assert not kann_sehen({**kunde, "id": "00000000-0000-0000-0000-0000000000c2"}, self._auftrag())

    def test_liste_nur_fuer_admin(self, client, auth_as):
        auth_as(["kunde"])
        assert client.get("/api/v1/auftraege").status_code == 403

    def test_auftraege_eines_kunden(self, client, auth_as, sample_kunde, zweiter_kunde, auftrag_factory):
        auftrag_factory(sample_kunde["id"], lieferdatum=None)
        auth_as(["kunde"], sample_kunde["id"])
        assert len(client.get(f"/api/v1/auftraege/kunden/{sample_kunde['id']}").json()) == 1
        assert client.get(f"/api/v1/auftraege/kunden/{zweiter_kunde['id']}").status_code == 403


class TestListen:
    """Filter, letzte Bestellung, in Bearbeitung"""

    def test_status_filter(self, client, sample_kunde, auftrag_factory):
        offen = auftrag_factory(sample_kunde["id"], lieferdatum=None)
        storniert = auftrag_factory(sample_kunde["id"], lieferdatum=None)
        _put(client, storniert["id"], status="storniert")

        data = client.get("/api/v1/auftraege", params={"status_in": "offen,in Bearbeitung"}).json()
        assert [a["id"] for a in data["items"]] == [offen["id"]]
        assert client.get("/api/v1/auftraege", params={"status_in": "quatsch"}).status_code == 400

    def test_has_tour_filter(self, client, sample_kunde, auftrag_factory):
        mit_tour = auftrag_factory(sample_kunde["id"])
        auftrag_factory(sample_kunde["id"], lieferdatum=None)
        data = client.get("/api/v1/auftraege", params={"has_tour": True}).json()
        assert [a["id"] for a in data["items"]] == [mit_tour["id"]]

    def test_letzte_bestellung(self, client, auth_as, sample_kunde, sample_artikel, auftrag_factory):
        auth_as(["kunde"], sample_kunde["id"])
        assert client.get("/api/v1/auftraege/letzte").json() is None

        auth_as(["admin"])
        auftrag = auftrag_factory(sample_kunde["id"], lieferdatum=None)

        auth_as(["kunde"], sample_kunde["id"])
        assert client.get("/api/v1/auftraege/letzte").json()["id"] == auftrag["id"]
        assert client.get("/api/v1/auftraege/letzte-artikel").json()["artikel_ids"] == [sample_artikel["id"]]

    def test_in_bearbeitung_fuer_kommissionierer(self, client, auth_as, sample_kunde, auftrag_factory):
        frei = auftrag_factory(sample_kunde["id"])
        fremd = auftrag_factory(sample_kunde["id"])
        for auftrag in (frei, fremd):
            client.put(f"/api/v1/auftraege/{auftrag['id']}/in-bearbeitung")

        auth_as(["kommissionierung"], PICKER_2)
        _put(client, fremd["id"], kommissioniert_status="gestartet")

        auth_as(["kommissionierung"], PICKER)
        ids = [a["id"] for a in client.get("/api/v1/auftraege/in-bearbeitung").json()]
        assert ids == [frei["id"]]

    def test_loeschen_raeumt_tour_auf(self, client, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        assert client.delete(f"/api/v1/auftraege/{auftrag['id']}").status_code == 204
        assert client.get(f"/api/v1/auftraege/{auftrag['id']}").status_code == 404
        assert client.get(f"/api/v1/touren/{auftrag['tour_id']}").status_code == 404

    def test_alle_loeschen(self, client, sample_kunde, auftrag_factory):
        auftrag_factory(sample_kunde["id"])
        auftrag_factory(sample_kunde["id"], lieferdatum=None)
        assert client.delete("/api/v1/auftraege/all").json() == {"deleted": 2}
        assert client.get("/api/v1/touren").json()["total"] == 0


class TestPositionen:
    """Kommissionierung und Kontrolle einzelner Positionen"""

    def _position_id(self, client, auftrag):
        return client.get(f"/api/v1/auftraege/{auftrag['id']}").json()["positionen"][0]["id"]

    def test_nettogewicht_berechnung(self):
        leergut = [{"leergut_art": "Kiste", "leergut_anzahl": 2, "leergut_gewicht": 0.5}]
        assert nettogewicht_berechnen(Decimal("5"), leergut) == Decimal("4.000")
        assert nettogewicht_berechnen(Decimal("0.5"), leergut) == Decimal("0.000")
        assert nettogewicht_berechnen(None, leergut) is None

    def test_fehlmenge(self):
        position = ArtikelPosition(menge=Decimal("3"), einheit=Einheit.STUECK, gesamtgewicht=Decimal("6"))
        assert position.fehlmenge is False
        position.kommissioniert_menge = Decimal("2")
        assert position.fehlmenge is True
        position.kommissioniert_menge = Decimal("2.5")
        assert position.fehlmenge is False

        kg = ArtikelPosition(menge=Decimal("10"), einheit=Einheit.KG, gesamtgewicht=Decimal("10"))
        kg.nettogewicht = Decimal("7")
        assert kg.fehlmenge is True

    def test_kommissionieren_per_api(self, client, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        position_id = self._position_id(client, auftrag)

        response = client.patch(f"/api/v1/artikelpositionen/{position_id}/kommissionierung", json={
            "bruttogewicht": "7.0",
            "leergut": [{"leergut_art": "Kiste", "leergut_anzahl": 2, "leergut_gewicht": 0.5}],
            "chargennummern": ["CH-1"],
        })
        assert response.status_code == 200
        data = response.json()
        assert Decimal(str(data["nettogewicht"])) == Decimal("6")
        assert data["chargennummern"] == ["CH-1"]
        assert data["fehlmenge"] is False
        assert data["kommissioniert_am"] is not None

    def test_kommissionieren_nur_eigene(self, client, auth_as, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        position_id = self._position_id(client, auftrag)

        auth_as(["kommissionierung"], PICKER)
        response = client.patch(
            f"/api/v1/artikelpositionen/{position_id}/kommissionierung",
            json={"kommissioniert_menge": 3},
        )
        assert response.status_code == 403

    def test_kontrolle_nur_waehrend_eigener_kontrolle(self, client, auth_as, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        position_id = self._position_id(client, auftrag)

        auth_as(["kontrolle"], KONTROLLEUR)
        response = client.patch(f"/api/v1/artikelpositionen/{position_id}/kontrolle", json={"kontrolliert": True})
        assert response.status_code == 403

        auth_as(["admin"])
        response = client.patch(f"/api/v1/artikelpositionen/{position_id}/kontrolle", json={"kontrolliert": True})
        assert response.json()["kontrolliert"] is True

    def test_kunde_bearbeitet_position_ohne_lieferdatum(self, client, auth_as, sample_kunde, sample_artikel, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"], lieferdatum=None)
        auth_as(["kunde"], sample_kunde["id"])

        response = client.post("/api/v1/artikelpositionen", json={
            "auftrag_id": auftrag["id"],
            "artikel_id": sample_artikel["id"],
            "menge": 1,
            "einheit": "kiste",
        })
        assert response.status_code == 201
        assert Decimal(str(response.json()["gesamtgewicht"])) == Decimal("10")

        auth_as(["admin"])
        assert Decimal(str(client.get(f"/api/v1/auftraege/{auftrag['id']}").json()["gewicht"])) == Decimal("16")

    def test_position_ohne_auftrag_nur_admin_und_kunde(self, client, auth_as, sample_kunde, sample_artikel):
        payload = {"artikel_id": sample_artikel["id"], "menge": 1, "einheit": "stück"}

        for rollen in (["fahrer"], ["lager"], ["kommissionierung"]):
            auth_as(rollen)
            assert client.post("/api/v1/artikelpositionen", json=payload).status_code == 403

        auth_as(["kunde"], sample_kunde["id"])
        response = client.post("/api/v1/artikelpositionen", json=payload)
        assert response.status_code == 201
        position_id = response.json()["id"]

        auth_as(["fahrer"])
        assert client.put(f"/api/v1/artikelpositionen/{position_id}", json={"menge": 2}).status_code == 403


class TestZerlegung:
    """Zerlegeaufträge aus Positionen mit Zerlegung"""

    def test_zerlegeauftrag_bei_bearbeitung(self, client, auth_as, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"], zerlegung=True, zerlege_bemerkung="in Scheiben")
        assert client.get("/api/v1/zerlegeauftraege").json()["total"] == 0

        client.put(f"/api/v1/auftraege/{auftrag['id']}/in-bearbeitung")
        offene = client.get("/api/v1/zerlegeauftraege/offen").json()
        assert offene["total"] == 1
        zerlegeauftrag = offene["items"][0]
        assert zerlegeauftrag["kunden_name"] == "Metzgerei Yilmaz"
        assert zerlegeauftrag["positionen"][0]["bemerkung"] == "in Scheiben"

        auth_as(["zerleger"], "00000000-0000-0000-0000-00000000e001")
        position_id = zerlegeauftrag["positionen"][0]["artikel_position_id"]
        response = client.patch(f"/api/v1/zerlegeauftraege/{zerlegeauftrag['id']}/positionen/{position_id}")
        assert response.status_code == 200
        data = response.json()
        assert data["ist_erledigt"] is True
        assert data["positionen"][0]["status"] == "erledigt"

        assert client.get("/api/v1/zerlegeauftraege/offen").json()["total"] == 0

        auth_as(["admin"])
        assert client.delete("/api/v1/zerlegeauftraege/erledigt").json() == {"deleted": 1}

    def test_ohne_zerlegung_kein_auftrag(self, client, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        client.put(f"/api/v1/auftraege/{auftrag['id']}/in-bearbeitung")
        assert client.get("/api/v1/zerlegeauftraege").json()["total"] == 0
