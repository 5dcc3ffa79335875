"""
SQLAlchemy Models für das Hacilar Fleischhandel ERP
Aufträge, Touren, Stammdaten und Lagerbestand
"""
from app.models.enums import (
    Rolle,
    Einheit,
    ErfassungsModus,
    AuftragStatus,
    KommissioniertStatus,
    KontrolliertStatus,
    BeladeStatus,
    Zahlstatus,
    TourStatus,
    StopStatus,
    FehlgrundCode,
    ZerlegeStatus,
    Lagerbereich,
    BewegungsTyp,
    MuellGrund,
    ReservierungStatus,
    MhdWarnung,
)

# Stammdaten
from app.models.mitarbeiter import Mitarbeiter, Verkaeufer
from app.models.kunde import Kunde, KundenPreis
from app.models.artikel import Artikel
from app.models.fahrzeug import Fahrzeug

# Aufträge
from app.models.auftrag import Auftrag, ArtikelPosition
from app.models.zerlegung import ZerlegeAuftrag, ZerlegePosition

# Touren
from app.models.tour import Tour, TourStop, RegionRule, ReihenfolgeVorlage, WOCHENTAGE

# Lager
from app.models.inventory import (
    Charge,
    Bewegung,
    BestandAgg,
    Reservierung,
    IdempotencyKey,
    MuellUndo,
)

__all__ = [
    # Enums
    "Rolle",
    "Einheit",
    "ErfassungsModus",
    "AuftragStatus",
    "KommissioniertStatus",
    "KontrolliertStatus",
    "BeladeStatus",
    "Zahlstatus",
    "TourStatus",
    "StopStatus",
    "FehlgrundCode",
    "ZerlegeStatus",
    "Lagerbereich",
    "BewegungsTyp",
    "MuellGrund",
    "ReservierungStatus",
    "MhdWarnung",
    # Stammdaten
    "Mitarbeiter",
    "Verkaeufer",
    "Kunde",
    "KundenPreis",
    "Artikel",
    "Fahrzeug",
    # Aufträge
    "Auftrag",
    "ArtikelPosition",
    "ZerlegeAuftrag",
    "ZerlegePosition",
    # Touren
    "Tour",
    "TourStop",
    "RegionRule",
    "ReihenfolgeVorlage",
    "WOCHENTAGE",
    # Lager
    "Charge",
    "Bewegung",
    "BestandAgg",
    "Reservierung",
    "IdempotencyKey",
    "MuellUndo",
]
