"""
Pytest Konfiguration und gemeinsame Fixtures
"""
import pytest
from datetime import date
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.database import Base, get_db
from app.api.deps import get_current_user


# Test-Datenbank (SQLite in-memory)
SQLALCHEMY_TEST_DATABASE_URL = "sqlite://"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ADMIN_ID = "123e4567-e89b-12d3-a456-426614174000"

# Feste Liefertage (7.1.2030 ist ein Montag)
MONTAG = date(2030, 1, 7)
DIENSTAG = date(2030, 1, 8)


def override_get_db():
    """Test-DB Session"""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


# Dependency Override
app.dependency_overrides[get_db] = override_get_db


def _als_benutzer(roles: list[str], user_id: str = ADMIN_ID):
    async def override_auth():
        return {
            "id": user_id,
            "roles": list(roles),
            "raw": {"id": user_id, "role": list(roles), "exp": 0},
        }
    app.dependency_overrides[get_current_user] = override_auth


@pytest.fixture(scope="function")
def db():
    """Datenbankverbindung für Tests"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    yield db
    db.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client():
    """Test Client mit frischer Datenbank, angemeldet als Admin"""
    _als_benutzer(["admin"])

    Base.metadata.create_all(bind=engine)
    yield TestClient(app)
    Base.metadata.drop_all(bind=engine)

    # Cleanup overrides
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture
def auth_as(client):
    """Wechselt den angemeldeten Benutzer: auth_as(["kunde"], kunde_id)"""
    return _als_benutzer


@pytest.fixture
def sample_kunde(client):
    """Freigegebener Kunde in Region Nord"""
    kunde_data = {
        "name": "Metzgerei Yilmaz",
        "kunden_nr": "K-1001",
        "email": "yilmaz@example.com",
        "password": "geheim123",
        "adresse": "Hafenstraße 4, 20457 Hamburg",
        "region": "Nord",
        "is_approved": True,
    }
    response = client.post("/api/v1/kunden", json=kunde_data)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def zweiter_kunde(client):
    """Zweiter Kunde in derselben Region"""
    kunde_data = {
        "name": "Döner Palast",
        "kunden_nr": "K-1002",
        "email": "palast@example.com",
        "password": "geheim123",
        "region": "Nord",
        "is_approved": True,
    }
    response = client.post("/api/v1/kunden", json=kunde_data)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def sample_artikel(client):
    """Artikel mit 12,50 EUR/kg und 2 kg je Stück"""
    artikel_data = {
        "artikel_nummer": "R-100",
        "name": "Rinderhüfte",
        "kategorie": "Rind",
        "preis": "12.50",
        "gewicht_pro_stueck": "2.0",
        "gewicht_pro_kiste": "10.0",
    }
    response = client.post("/api/v1/artikel", json=artikel_data)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def auftrag_factory(client, sample_artikel):
    """Legt Aufträge als Admin an"""
    def _create(kunde_id: str, lieferdatum: date | None = MONTAG, menge: int = 3, **extra):
        auftrag_data = {
            "kunde_id": kunde_id,
            "lieferdatum": lieferdatum.isoformat() if lieferdatum else None,
            "positionen": [
                {"artikel_id": sample_artikel["id"], "menge": menge, "einheit": "stück", **extra},
            ],
        }
        response = client.post("/api/v1/auftraege", json=auftrag_data)
        assert response.status_code == 201, response.text
        return response.json()
    return _create
