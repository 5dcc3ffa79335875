"""
Tests für Touren, Stopp-Reihenfolge, Regionsregeln und Vorlagen
"""
from datetime import date, timedelta
from decimal import Decimal

from app.models.enums import TourStatus
from app.models.tour import Tour
from app.services.tour_service import TourService


MONTAG = date(2030, 1, 7)
DIENSTAG = date(2030, 1, 8)


def _stops(client, tour_id):
    response = client.get(f"/api/v1/touren/{tour_id}")
    assert response.status_code == 200
    return response.json()["stops"]


class TestStandardTour:
    """Automatische Tourzuordnung über das Lieferdatum"""

    def test_auftrag_mit_lieferdatum_erzeugt_standard_tour(self, client, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        assert auftrag["tour_id"] is not None
        assert auftrag["tour_stop_id"] is not None

        tour = client.get(f"/api/v1/touren/{auftrag['tour_id']}").json()
        assert tour["is_standard"] is True
        assert tour["region"] == "Nord"
        assert tour["datum"] == MONTAG.isoformat()
        assert Decimal(str(tour["belegtes_gewicht_kg"])) == Decimal("6")

        stops = tour["stops"]
        assert len(stops) == 1
        assert stops[0]["position"] == 1
        assert stops[0]["kunde_name"] == "Metzgerei Yilmaz"

    def test_gleicher_tag_gleiche_region_eine_tour(self, client, sample_kunde, zweiter_kunde, auftrag_factory):
        erster = auftrag_factory(sample_kunde["id"])
        zweiter = auftrag_factory(zweiter_kunde["id"])
        assert erster["tour_id"] == zweiter["tour_id"]

        positionen = [(s["auftrag_id"], s["position"]) for s in _stops(client, erster["tour_id"])]
        assert positionen == [(erster["id"], 1), (zweiter["id"], 2)]

        touren = client.get("/api/v1/touren", params={"is_standard": True}).json()
        assert touren["total"] == 1

    def test_ohne_lieferdatum_keine_tour(self, client, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"], lieferdatum=None)
        assert auftrag["tour_id"] is None
        assert client.get("/api/v1/touren").json()["total"] == 0

    def test_lieferdatum_aendern_verschiebt_stopp(self, client, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        alte_tour = auftrag["tour_id"]

        response = client.put(f"/api/v1/auftraege/{auftrag['id']}", json={"lieferdatum": DIENSTAG.isoformat()})
        assert response.status_code == 200
        neu = response.json()
        assert neu["tour_id"] != alte_tour
        # gleiche Stopp-ID, leere Standard-Tour ist weg
        assert neu["tour_stop_id"] == auftrag["tour_stop_id"]
        assert client.get(f"/api/v1/touren/{alte_tour}").status_code == 404

    def test_lieferdatum_in_belegte_tour(self, client, sample_kunde, zweiter_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        dienstag = auftrag_factory(zweiter_kunde["id"], lieferdatum=DIENSTAG)

        response = client.put(f"/api/v1/auftraege/{auftrag['id']}", json={"lieferdatum": DIENSTAG.isoformat()})
        assert response.status_code == 200
        assert response.json()["tour_id"] == dienstag["tour_id"]

        stops = _stops(client, dienstag["tour_id"])
        assert [(s["auftrag_id"], s["position"]) for s in stops] == [(dienstag["id"], 1), (auftrag["id"], 2)]
        assert stops[1]["kunde_id"] == sample_kunde["id"]
        assert client.get(f"/api/v1/touren/{auftrag['tour_id']}").status_code == 404

        tour = client.get(f"/api/v1/touren/{dienstag['tour_id']}").json()
        assert Decimal(str(tour["belegtes_gewicht_kg"])) == Decimal("12")

    def test_storno_entfernt_stopp_und_leere_tour(self, client, sample_kunde, zweiter_kunde, auftrag_factory):
        erster = auftrag_factory(sample_kunde["id"])
        zweiter = auftrag_factory(zweiter_kunde["id"])

        response = client.put(f"/api/v1/auftraege/{erster['id']}", json={"status": "storniert"})
        assert response.status_code == 200
        assert response.json()["tour_id"] is None

        stops = _stops(client, zweiter["tour_id"])
        assert [(s["auftrag_id"], s["position"]) for s in stops] == [(zweiter["id"], 1)]

        client.put(f"/api/v1/auftraege/{zweiter['id']}", json={"status": "storniert"})
        assert client.get(f"/api/v1/touren/{zweiter['tour_id']}").status_code == 404

    def test_regionswechsel_des_kunden(self, client, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])

        response = client.patch(f"/api/v1/kunden/{sample_kunde['id']}", json={"region": "Süd"})
        assert response.status_code == 200

        neu = client.get(f"/api/v1/auftraege/{auftrag['id']}").json()
        tour = client.get(f"/api/v1/touren/{neu['tour_id']}").json()
        assert tour["region"] == "Süd"
        assert client.get(f"/api/v1/touren/{auftrag['tour_id']}").status_code == 404

    def test_regionswechsel_in_belegte_tour(self, client, sample_kunde, zweiter_kunde, auftrag_factory):
        client.patch(f"/api/v1/kunden/{zweiter_kunde['id']}", json={"region": "Süd"})
        sued = auftrag_factory(zweiter_kunde["id"])
        auftrag = auftrag_factory(sample_kunde["id"])
        assert sued["tour_id"] != auftrag["tour_id"]

        response = client.patch(
            f"/api/v1/kunden/{sample_kunde['id']}",
            json={"region": "Süd", "name": "Metzgerei Yilmaz & Söhne"},
        )
        assert response.status_code == 200

        stops = _stops(client, sued["tour_id"])
        assert [(s["auftrag_id"], s["position"]) for s in stops] == [(sued["id"], 1), (auftrag["id"], 2)]
        assert stops[1]["kunde_id"] == sample_kunde["id"]
        assert stops[1]["kunde_name"] == "Metzgerei Yilmaz & Söhne"
        assert client.get(f"/api/v1/touren/{auftrag['tour_id']}").status_code == 404

    def test_kunde_ohne_region(self, client, sample_artikel):
        kunde = client.post("/api/v1/kunden", json={
            "name": "Ohne Region",
            "kunden_nr": "K-5000",
            "email": "ohne@example.com",
            "password": "geheim123",
            "is_approved": True,
        }).json()
        response = client.post("/api/v1/auftraege", json={
            "kunde_id": kunde["id"],
            "lieferdatum": MONTAG.isoformat(),
            "positionen": [],
        })
        assert response.status_code == 400
        assert client.get("/api/v1/auftraege").json()["total"] == 0


class TestKapazitaet:
    """Gewicht und Überlast"""

    def test_ueberlast_flag(self, client, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])

        response = client.patch(f"/api/v1/touren/{auftrag['tour_id']}", json={"max_gewicht_kg": "5"})
        assert response.status_code == 200
        assert response.json()["over_capacity_flag"] is True

        response = client.patch(f"/api/v1/touren/{auftrag['tour_id']}", json={"max_gewicht_kg": "50"})
        assert response.json()["over_capacity_flag"] is False

    def test_fahrzeug_kapazitaet_greift_ohne_tour_maximum(self, client, sample_kunde, auftrag_factory):
        fahrzeug = client.post("/api/v1/fahrzeuge", json={
            "name": "Sprinter",
            "kennzeichen": "HH-XY 1",
            "max_gewicht_kg": "4",
        }).json()
        auftrag = auftrag_factory(sample_kunde["id"])

        response = client.patch(f"/api/v1/touren/{auftrag['tour_id']}", json={"fahrzeug_id": fahrzeug["id"]})
        assert response.json()["over_capacity_flag"] is True

    def test_fahrzeug_aenderung_bewertet_touren_neu(self, client, sample_kunde, auftrag_factory):
        fahrzeug = client.post("/api/v1/fahrzeuge", json={
            "name": "Kühlwagen 2",
            "kennzeichen": "HH-KW 2",
            "max_gewicht_kg": "50",
        }).json()
        auftrag = auftrag_factory(sample_kunde["id"])
        response = client.patch(f"/api/v1/touren/{auftrag['tour_id']}", json={"fahrzeug_id": fahrzeug["id"]})
        assert response.json()["over_capacity_flag"] is False

        response = client.patch(f"/api/v1/fahrzeuge/{fahrzeug['id']}", json={"max_gewicht_kg": "4"})
        assert response.status_code == 200
        assert client.get(f"/api/v1/touren/{auftrag['tour_id']}").json()["over_capacity_flag"] is True

        client.patch(f"/api/v1/fahrzeuge/{fahrzeug['id']}", json={"max_gewicht_kg": "6"})
        assert client.get(f"/api/v1/touren/{auftrag['tour_id']}").json()["over_capacity_flag"] is False

    def test_positionsaenderung_zieht_gewicht_nach(self, client, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        position_id = client.get(f"/api/v1/auftraege/{auftrag['id']}").json()["positionen"][0]["id"]

        client.put(f"/api/v1/artikelpositionen/{position_id}", json={"menge": 5})

        tour = client.get(f"/api/v1/touren/{auftrag['tour_id']}").json()
        assert Decimal(str(tour["belegtes_gewicht_kg"])) == Decimal("10")
        assert Decimal(str(tour["stops"][0]["gewicht_kg"])) == Decimal("10")


class TestReihenfolge:
    """Drag&Drop innerhalb und zwischen Touren"""

    def test_reihenfolge_setzen(self, client, sample_kunde, zweiter_kunde, auftrag_factory):
        erster = auftrag_factory(sample_kunde["id"])
        zweiter = auftrag_factory(zweiter_kunde["id"])
        stop_ids = [s["id"] for s in _stops(client, erster["tour_id"])]

        response = client.put(
            f"/api/v1/touren/{erster['tour_id']}/reihenfolge",
            json={"stop_ids": list(reversed(stop_ids))},
        )
        assert response.status_code == 200
        stops = response.json()["stops"]
        assert [s["auftrag_id"] for s in stops] == [zweiter["id"], erster["id"]]
        assert [s["position"] for s in stops] == [1, 2]

    def test_reihenfolge_unvollstaendig(self, client, sample_kunde, zweiter_kunde, auftrag_factory):
        erster = auftrag_factory(sample_kunde["id"])
        auftrag_factory(zweiter_kunde["id"])
        stop_ids = [s["id"] for s in _stops(client, erster["tour_id"])]

        response = client.put(f"/api/v1/touren/{erster['tour_id']}/reihenfolge", json={"stop_ids": stop_ids[:1]})
        assert response.status_code == 400

    def test_verschieben_innerhalb_der_tour(self, client, sample_kunde, zweiter_kunde, auftrag_factory):
        erster = auftrag_factory(sample_kunde["id"])
        zweiter = auftrag_factory(zweiter_kunde["id"])

        response = client.post(
            f"/api/v1/tour-stops/{zweiter['tour_stop_id']}/move",
            json={"to_tour_id": erster["tour_id"], "target_index": 0},
        )
        assert response.status_code == 200
        assert response.json()["position"] == 1
        assert [s["auftrag_id"] for s in _stops(client, erster["tour_id"])] == [zweiter["id"], erster["id"]]

    def test_verschieben_in_andere_tour(self, client, sample_kunde, zweiter_kunde, auftrag_factory):
        erster = auftrag_factory(sample_kunde["id"])
        zweiter = auftrag_factory(zweiter_kunde["id"])
        extra = client.post("/api/v1/touren", json={
            "datum": MONTAG.isoformat(),
            "region": "Nord",
            "name": "Nord Zusatztour",
        }).json()

        response = client.post(
            f"/api/v1/tour-stops/{erster['tour_stop_id']}/move",
            json={"to_tour_id": extra["id"], "target_index": 5},
        )
        assert response.status_code == 200
        stop = response.json()
        assert stop["id"] == erster["tour_stop_id"]
        assert stop["tour_id"] == extra["id"]
        assert stop["position"] == 1

        # Lücke in der Quelltour geschlossen
        assert [(s["auftrag_id"], s["position"]) for s in _stops(client, erster["tour_id"])] == [(zweiter["id"], 1)]
        assert client.get(f"/api/v1/auftraege/{erster['id']}").json()["tour_id"] == extra["id"]

        tour = client.get(f"/api/v1/touren/{extra['id']}").json()
        assert Decimal(str(tour["belegtes_gewicht_kg"])) == Decimal("6")

    def test_verschieben_in_die_mitte(self, client, sample_kunde, zweiter_kunde, auftrag_factory):
        erster = auftrag_factory(sample_kunde["id"])
        zweiter = auftrag_factory(zweiter_kunde["id"])
        dienstag = auftrag_factory(sample_kunde["id"], lieferdatum=DIENSTAG)

        response = client.post(
            f"/api/v1/tour-stops/{dienstag['tour_stop_id']}/move",
            json={"to_tour_id": erster["tour_id"], "target_index": 1},
        )
        assert response.status_code == 200
        assert response.json()["position"] == 2

        stops = _stops(client, erster["tour_id"])
        assert [(s["auftrag_id"], s["position"]) for s in stops] == [
            (erster["id"], 1), (dienstag["id"], 2), (zweiter["id"], 3),
        ]
        assert client.get(f"/api/v1/touren/{dienstag['tour_id']}").status_code == 404

    def test_stopp_manuell_anlegen(self, client, sample_kunde, auftrag_factory):
        vorhanden = auftrag_factory(sample_kunde["id"])
        ohne_tour = auftrag_factory(sample_kunde["id"], lieferdatum=None)

        response = client.post("/api/v1/tour-stops", json={
            "tour_id": vorhanden["tour_id"],
            "auftrag_id": ohne_tour["id"],
        })
        assert response.status_code == 201
        stop = response.json()
        assert stop["position"] == 2
        assert stop["kunde_id"] == sample_kunde["id"]
        assert Decimal(str(stop["gewicht_kg"])) == Decimal("6")

        auftrag = client.get(f"/api/v1/auftraege/{ohne_tour['id']}").json()
        assert auftrag["tour_stop_id"] == stop["id"]

        response = client.post("/api/v1/tour-stops", json={
            "tour_id": vorhanden["tour_id"],
            "auftrag_id": ohne_tour["id"],
        })
        assert response.status_code == 409

    def test_position_setzen_begrenzt(self, client, sample_kunde, zweiter_kunde, auftrag_factory):
        erster = auftrag_factory(sample_kunde["id"])
        zweiter = auftrag_factory(zweiter_kunde["id"])
        dritter = auftrag_factory(sample_kunde["id"], menge=1)

        response = client.patch(f"/api/v1/tour-stops/{erster['tour_stop_id']}", json={"position": 99})
        assert response.status_code == 200
        assert response.json()["position"] == 3
        stops = _stops(client, erster["tour_id"])
        assert [(s["auftrag_id"], s["position"]) for s in stops] == [
            (zweiter["id"], 1), (dritter["id"], 2), (erster["id"], 3),
        ]

        client.patch(f"/api/v1/tour-stops/{dritter['tour_stop_id']}", json={"position": 1})
        stops = _stops(client, erster["tour_id"])
        assert [s["auftrag_id"] for s in stops] == [dritter["id"], zweiter["id"], erster["id"]]
        assert [s["position"] for s in stops] == [1, 2, 3]

        assert client.patch(f"/api/v1/tour-stops/{dritter['tour_stop_id']}", json={"position": 0}).status_code == 422

    def test_letzten_stopp_verschieben_loescht_standard_tour(self, client, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        extra = client.post("/api/v1/touren", json={"datum": MONTAG.isoformat(), "region": "Nord"}).json()

        client.post(f"/api/v1/tour-stops/{auftrag['tour_stop_id']}/move", json={"to_tour_id": extra["id"]})
        assert client.get(f"/api/v1/touren/{auftrag['tour_id']}").status_code == 404

    def test_stopp_loeschen_schliesst_luecke(self, client, sample_kunde, zweiter_kunde, auftrag_factory):
        erster = auftrag_factory(sample_kunde["id"])
        zweiter = auftrag_factory(zweiter_kunde["id"])

        assert client.delete(f"/api/v1/tour-stops/{erster['tour_stop_id']}").status_code == 204
        stops = _stops(client, erster["tour_id"])
        assert [(s["auftrag_id"], s["position"]) for s in stops] == [(zweiter["id"], 1)]
        assert client.get(f"/api/v1/auftraege/{erster['id']}").json()["tour_stop_id"] is None

    def test_zweite_standard_tour_konflikt(self, client, sample_kunde, auftrag_factory):
        auftrag_factory(sample_kunde["id"])
        response = client.post("/api/v1/touren", json={
            "datum": MONTAG.isoformat(),
            "region": "nord",
            "is_standard": True,
        })
        assert response.status_code == 409


class TestZustellung:
    """Stopp-Updates durch Fahrer"""

    def test_fehlgeschlagen_braucht_fehlgrund(self, client, auth_as, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        auth_as(["fahrer"], "00000000-0000-0000-0000-0000000000f1")
        url = f"/api/v1/tour-stops/{auftrag['tour_stop_id']}"

        assert client.patch(url, json={"status": "fehlgeschlagen"}).status_code == 400

        response = client.patch(url, json={
            "status": "fehlgeschlagen",
            "fehlgrund": {"code": "KUNDE_NICHT_ERREICHBAR", "text": "Laden geschlossen"},
        })
        assert response.status_code == 200
        data = response.json()
        assert data["fehlgrund"]["code"] == "KUNDE_NICHT_ERREICHBAR"
        assert data["abgeschlossen_am"] is not None

    def test_fahrer_darf_position_nicht_aendern(self, client, auth_as, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        auth_as(["fahrer"], "00000000-0000-0000-0000-0000000000f1")

        response = client.patch(f"/api/v1/tour-stops/{auftrag['tour_stop_id']}", json={"position": 1})
        assert response.status_code == 403

    def test_lager_darf_stopps_nicht_aendern(self, client, auth_as, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        auth_as(["lager"])

        response = client.patch(f"/api/v1/tour-stops/{auftrag['tour_stop_id']}", json={"status": "zugestellt"})
        assert response.status_code == 403


class TestRegionRules:
    """Regionsregeln und Reihenfolge-Vorlagen"""

    def test_verbotener_wochentag(self, client, sample_kunde, sample_artikel):
        response = client.post("/api/v1/region-rules", json={"region": " nord ", "allowed_weekdays": [4, 2, 2]})
        assert response.status_code == 201
        regel = response.json()
        assert regel["region"] == "nord"
        assert regel["allowed_weekdays"] == [2, 4]
        assert regel["erlaubte_tage"] == ["Dienstag", "Donnerstag"]

        response = client.post("/api/v1/auftraege", json={
            "kunde_id": sample_kunde["id"],
            "lieferdatum": MONTAG.isoformat(),
            "positionen": [{"artikel_id": sample_artikel["id"], "menge": 1, "einheit": "kg"}],
        })
        assert response.status_code == 400
        assert "Montag" in response.json()["detail"]

        # nichts gespeichert
        assert client.get("/api/v1/auftraege").json()["total"] == 0
        assert client.get("/api/v1/touren").json()["total"] == 0

        response = client.post("/api/v1/auftraege", json={
            "kunde_id": sample_kunde["id"],
            "lieferdatum": DIENSTAG.isoformat(),
            "positionen": [],
        })
        assert response.status_code == 201

    def test_ausnahmetag(self, client, sample_kunde, auftrag_factory):
        client.post("/api/v1/region-rules", json={
            "region": "Nord",
            "allowed_weekdays": [1, 2, 3, 4, 5],
            "exception_dates": [MONTAG.isoformat()],
        })
        response = client.post("/api/v1/auftraege", json={
            "kunde_id": sample_kunde["id"],
            "lieferdatum": MONTAG.isoformat(),
        })
        assert response.status_code == 400

    def test_inaktive_regel_greift_nicht(self, client, sample_kunde, auftrag_factory):
        client.post("/api/v1/region-rules", json={"region": "Nord", "allowed_weekdays": [7], "is_active": False})
        auftrag = auftrag_factory(sample_kunde["id"])
        assert auftrag["tour_id"] is not None

    def test_ungueltige_regel(self, client):
        assert client.post("/api/v1/region-rules", json={"region": "Nord", "allowed_weekdays": [8]}).status_code == 422
        assert client.post("/api/v1/region-rules", json={"region": "Nord", "allowed_weekdays": []}).status_code == 422
        response = client.post("/api/v1/region-rules", json={
            "region": "Nord",
            "allowed_weekdays": [1],
            "order_cutoff": "25:00",
        })
        assert response.status_code == 422

    def test_region_eindeutig(self, client):
        assert client.post("/api/v1/region-rules", json={"region": "Nord", "allowed_weekdays": [1]}).status_code == 201
        assert client.post("/api/v1/region-rules", json={"region": "NORD", "allowed_weekdays": [2]}).status_code == 409

    def test_vorlage_bestimmt_position(self, client, sample_kunde, zweiter_kunde, auftrag_factory):
        response = client.post("/api/v1/reihenfolge-vorlagen", json={
            "name": "Nord Standard",
            "region": "Nord",
            "kunden_ids_in_reihenfolge": [zweiter_kunde["id"], sample_kunde["id"]],
        })
        assert response.status_code == 201
        vorlage = response.json()
        assert [e["position"] for e in vorlage["kunden_reihenfolge"]] == [1, 2]

        erster = auftrag_factory(sample_kunde["id"])
        zweiter = auftrag_factory(zweiter_kunde["id"])

        tour = client.get(f"/api/v1/touren/{erster['tour_id']}").json()
        assert tour["reihenfolge_vorlage_id"] == vorlage["id"]
        assert [s["auftrag_id"] for s in tour["stops"]] == [zweiter["id"], erster["id"]]

    def test_vorlage_unbekannter_wochentag(self, client):
        response = client.post("/api/v1/reihenfolge-vorlagen", json={"name": "X", "tage": ["Funday"]})
        assert response.status_code == 422


class TestArchivierung:
    """Archivierung abgeschlossener Touren"""

    def test_abgeschlossene_alte_touren(self, db):
        alt = Tour(datum=date(2030, 1, 1), region="Nord", status=TourStatus.ABGESCHLOSSEN)
        jung = Tour(datum=date(2030, 1, 20), region="Nord", status=TourStatus.ABGESCHLOSSEN)
        offen = Tour(datum=date(2030, 1, 1), region="Süd", status=TourStatus.GEPLANT)
        db.add_all([alt, jung, offen])
        db.commit()

        anzahl = TourService(db).abgeschlossene_archivieren(date(2030, 1, 20) - timedelta(days=14))
        db.commit()

        assert anzahl == 1
        db.refresh(alt)
        db.refresh(offen)
        assert alt.status == TourStatus.ARCHIVIERT
        assert alt.archiviert_am is not None
        assert offen.status == TourStatus.GEPLANT

    def test_archivieren_und_reaktivieren(self, client, sample_kunde, auftrag_factory):
        auftrag = auftrag_factory(sample_kunde["id"])
        response = client.post(f"/api/v1/touren/{auftrag['tour_id']}/archivieren")
        assert response.json()["status"] == "archiviert"
        response = client.post(f"/api/v1/touren/{auftrag['tour_id']}/reaktivieren")
        assert response.json()["status"] == "geplant"
        assert response.json()["archiviert_am"] is None
