"""
API Tests für Stammdaten, Login und Preise
"""
from decimal import Decimal

from app.core.security import verify_token


class TestHealth:
    """Health Check Tests"""

    def test_health_endpoint(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root_endpoint(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "Hacilar" in response.json()["message"]


class TestLogin:
    """Anmeldung von Kunden und Mitarbeitern"""

    def _registrieren(self, client):
        return client.post("/api/v1/kunden/registrieren", json={
            "name": "Grill Haus",
            "kunden_nr": "K-2001",
            "email": "Grill@Example.com",
            "password": "grill123",
            "region": " Süd ",
        })

    def test_registrierung_ist_ungenehmigt(self, client):
        response = self._registrieren(client)
        assert response.status_code == 201
        data = response.json()
        assert data["is_approved"] is False
        assert data["email"] == "grill@example.com"
        assert data["region"] == "Süd"
        assert "password_hash" not in data

    def test_login_kunde_erst_nach_freigabe(self, client):
        kunde = self._registrieren(client).json()

        response = client.post("/api/v1/login", json={"email": "grill@example.com", "password": "grill123"})
        assert response.status_code == 403

        client.patch(f"/api/v1/kunden/{kunde['id']}/freigabe", json={"is_approved": True})
        response = client.post("/api/v1/login", json={"email": "grill@example.com", "password": "grill123"})
        assert response.status_code == 200
        data = response.json()
        assert data["user"]["role"] == ["kunde"]
        assert data["user"]["id"] == kunde["id"]

        payload = verify_token(data["access_token"])
        assert payload["id"] == kunde["id"]
        assert payload["role"] == ["kunde"]

    def test_login_falsches_passwort(self, client):
        self._registrieren(client)
        response = client.post("/api/v1/login", json={"email": "grill@example.com", "password": "falsch"})
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_login_mitarbeiter_per_name(self, client):
        client.post("/api/v1/mitarbeiter", json={
            "name": "Ali Kaya",
            "password": "fahrer1",
            "rollen": ["Fahrer", "kommissionierung", "fahrer", "pilot"],
        })
        response = client.post("/api/v1/login", json={"name": "  ALI KAYA ", "password": "fahrer1"})
        assert response.status_code == 200
        assert response.json()["user"]["role"] == ["fahrer", "kommissionierung"]

    def test_check_token(self, client):
        response = client.get("/api/v1/login/check-token")
        assert response.status_code == 200
        assert response.json()["valid"] is True


class TestMitarbeiter:
    """Mitarbeiter und Verkäufer"""

    def test_rollen_normalisiert(self, client):
        response = client.post("/api/v1/mitarbeiter", json={
            "name": "Murat",
            "password": "lager12",
            "rollen": ["unbekannt"],
        })
        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "murat"
        assert data["rollen"] == ["lager"]

    def test_doppelter_name(self, client):
        payload = {"name": "Murat", "password": "lager12"}
        assert client.post("/api/v1/mitarbeiter", json=payload).status_code == 201
        response = client.post("/api/v1/mitarbeiter", json={**payload, "name": "murat"})
        assert response.status_code == 409

    def test_passwort_nur_selbst_oder_admin(self, client, auth_as):
        mitarbeiter = client.post("/api/v1/mitarbeiter", json={"name": "Murat", "password": "lager12"}).json()

        auth_as(["lager"], "00000000-0000-0000-0000-000000000001")
        response = client.put(f"/api/v1/mitarbeiter/{mitarbeiter['id']}/passwort", json={"password": "neu12345"})
        assert response.status_code == 403

        auth_as(["lager"], mitarbeiter["id"])
        response = client.put(f"/api/v1/mitarbeiter/{mitarbeiter['id']}/passwort", json={"password": "kurz"})
        assert response.status_code == 400
        response = client.put(f"/api/v1/mitarbeiter/{mitarbeiter['id']}/passwort", json={"password": "neu12345"})
        assert response.status_code == 204

    def test_nicht_admin_darf_keine_mitarbeiter_anlegen(self, client, auth_as):
        auth_as(["lager"])
        response = client.post("/api/v1/mitarbeiter", json={"name": "x", "password": "geheim1"})
        assert response.status_code == 403

    def test_verkaeufer_crud(self, client):
        response = client.post("/api/v1/verkaeufer", json={"name": "Hakan", "password": "verkauf1", "admin": True})
        assert response.status_code == 201
        verkaeufer = response.json()
        assert verkaeufer["admin"] is True

        assert client.post("/api/v1/verkaeufer", json={"name": "hakan", "password": "verkauf1"}).status_code == 409
        assert client.get("/api/v1/verkaeufer").json()["total"] == 1
        assert client.delete(f"/api/v1/verkaeufer/{verkaeufer['id']}").status_code == 204


class TestKunden:
    """Kunden-Stammdaten"""

    def test_kunde_sieht_nur_sich_selbst(self, client, auth_as, sample_kunde, zweiter_kunde):
        auth_as(["kunde"], sample_kunde["id"])
        assert client.get(f"/api/v1/kunden/{sample_kunde['id']}").status_code == 200
        assert client.get(f"/api/v1/kunden/{zweiter_kunde['id']}").status_code == 403

    def test_kunde_darf_freigabe_nicht_aendern(self, client, auth_as, sample_kunde):
        auth_as(["kunde"], sample_kunde["id"])
        response = client.patch(f"/api/v1/kunden/{sample_kunde['id']}", json={"is_approved": False})
        assert response.status_code == 403

        response = client.patch(f"/api/v1/kunden/{sample_kunde['id']}", json={"telefon": "040-123"})
        assert response.status_code == 200
        assert response.json()["telefon"] == "040-123"

    def test_doppelte_email(self, client, sample_kunde):
        response = client.post("/api/v1/kunden", json={
            "name": "Andere Metzgerei",
            "kunden_nr": "K-9999",
            "email": "YILMAZ@example.com",
            "password": "geheim123",
        })
        assert response.status_code == 409

    def test_unapproved_liste(self, client, sample_kunde):
        client.post("/api/v1/kunden/registrieren", json={
            "name": "Neukunde",
            "kunden_nr": "K-3001",
            "email": "neu@example.com",
            "password": "geheim123",
        })
        namen = [k["name"] for k in client.get("/api/v1/kunden/unapproved").json()]
        assert namen == ["Neukunde"]

    def test_favoriten(self, client, sample_kunde, sample_artikel):
        url = f"/api/v1/kunden/{sample_kunde['id']}/favoriten/{sample_artikel['id']}"
        assert client.post(url).json()["favoriten"] == [sample_artikel["id"]]
        # zweimal hinzufügen bleibt ein Eintrag
        assert client.post(url).json()["favoriten"] == [sample_artikel["id"]]
        assert client.delete(url).json()["favoriten"] == []

    def test_loeschen_entfernt_abhaengige_daten(
        self, client, sample_kunde, zweiter_kunde, sample_artikel, auftrag_factory,
    ):
        auftrag = auftrag_factory(sample_kunde["id"])
        anderer = auftrag_factory(zweiter_kunde["id"])
        client.post("/api/v1/kundenpreise", json={
            "kunde_id": sample_kunde["id"],
            "artikel_id": sample_artikel["id"],
            "aufpreis": "1",
        })
        client.post(f"/api/v1/kunden/{sample_kunde['id']}/favoriten/{sample_artikel['id']}")

        assert client.delete(f"/api/v1/kunden/{sample_kunde['id']}").status_code == 204

        assert client.get(f"/api/v1/kunden/{sample_kunde['id']}").status_code == 404
        assert client.get(f"/api/v1/kunden/{sample_kunde['id']}/favoriten").status_code == 404
        assert client.get(f"/api/v1/auftraege/{auftrag['id']}").status_code == 404
        assert client.get("/api/v1/kundenpreise", params={"kunde": sample_kunde["id"]}).json()["total"] == 0
        assert client.get("/api/v1/tour-stops", params={"kunde_id": sample_kunde["id"]}).json()["total"] == 0

        # Stopp des anderen Kunden rückt nach vorn
        stops = client.get(f"/api/v1/touren/{anderer['tour_id']}").json()["stops"]
        assert [(s["auftrag_id"], s["position"]) for s in stops] == [(anderer["id"], 1)]


class TestArtikelUndPreise:
    """Artikel und kundenspezifische Aufpreise"""

    def test_artikelnummer_eindeutig(self, client, sample_artikel):
        response = client.post("/api/v1/artikel", json={"artikel_nummer": "R-100", "name": "Kopie"})
        assert response.status_code == 409

    def test_effektiver_aufpreis_ohne_eintrag(self, client, sample_kunde, sample_artikel):
        response = client.get(
            "/api/v1/kundenpreise/effektiv",
            params={"kunde": sample_kunde["id"], "artikel": sample_artikel["id"]},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == "default"
        assert Decimal(str(data["aufpreis"])) == Decimal("0")

    def test_kundenpreis_wirkt_auf_artikelpreis(self, client, auth_as, sample_kunde, sample_artikel):
        response = client.post("/api/v1/kundenpreise", json={
            "kunde_id": sample_kunde["id"],
            "artikel_id": sample_artikel["id"],
            "aufpreis": "1.50",
        })
        assert response.status_code == 201
        kundenpreis = response.json()
        assert kundenpreis["kunde_name"] == "Metzgerei Yilmaz"
        assert kundenpreis["artikel_name"] == "Rinderhüfte"

        auth_as(["kunde"], sample_kunde["id"])
        artikel = client.get(f"/api/v1/artikel/{sample_artikel['id']}").json()
        assert Decimal(str(artikel["preis"])) == Decimal("14.00")
        assert Decimal(str(artikel["grundpreis"])) == Decimal("12.50")

        effektiv = client.get(
            "/api/v1/kundenpreise/effektiv",
            params={"kunde": "00000000-0000-0000-0000-000000000009", "artikel": sample_artikel["id"]},
        ).json()
        # Kunden sehen immer ihren eigenen Aufpreis
        assert effektiv["id"] == kundenpreis["id"]

    def test_kundenpreis_doppelt(self, client, sample_kunde, sample_artikel):
        payload = {"kunde_id": sample_kunde["id"], "artikel_id": sample_artikel["id"], "aufpreis": "1"}
        assert client.post("/api/v1/kundenpreise", json=payload).status_code == 201
        assert client.post("/api/v1/kundenpreise", json=payload).status_code == 409


class TestFahrzeuge:
    """Fahrzeuge"""

    def test_kennzeichen_gross_und_eindeutig(self, client):
        response = client.post("/api/v1/fahrzeuge", json={
            "name": "Kühlwagen 1",
            "kennzeichen": " hh-ab 123 ",
            "max_gewicht_kg": "1500",
        })
        assert response.status_code == 201
        assert response.json()["kennzeichen"] == "HH-AB 123"

        response = client.post("/api/v1/fahrzeuge", json={"name": "Kopie", "kennzeichen": "HH-AB 123"})
        assert response.status_code == 409

    def test_nur_admin(self, client, auth_as):
        auth_as(["fahrer"])
        assert client.get("/api/v1/fahrzeuge").status_code == 403
