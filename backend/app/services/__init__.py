"""
Business Logic Services für das Hacilar Fleischhandel ERP
"""
from app.services.tour_hooks import TourHooks
from app.services.tour_service import TourService, TourStopService
from app.services.region_rule_service import RegionRuleService, ReihenfolgeVorlageService
from app.services.auftrag_service import AuftragService
from app.services.position_service import PositionService
from app.services.zerlege_service import ZerlegeService
from app.services.kunde_service import KundeService
from app.services.artikel_service import ArtikelService, KundenPreisService, PreisService
from app.services.mitarbeiter_service import AuthService, MitarbeiterService, VerkaeuferService
from app.services.fahrzeug_service import FahrzeugService
from app.services.bestand_service import BestandService

__all__ = [
    "TourHooks",
    "TourService",
    "TourStopService",
    "RegionRuleService",
    "ReihenfolgeVorlageService",
    "AuftragService",
    "PositionService",
    "ZerlegeService",
    "KundeService",
    "ArtikelService",
    "KundenPreisService",
    "PreisService",
    "AuthService",
    "MitarbeiterService",
    "VerkaeuferService",
    "FahrzeugService",
    "BestandService",
]
