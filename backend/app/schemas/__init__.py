"""
Pydantic Schemas für das Fleischhandel-Backend
Request-/Response-Modelle aller Module
"""
# Login / Personal
from app.schemas.mitarbeiter import (
    LoginRequest, LoginResponse, TokenUser, TokenCheckResponse,
    MitarbeiterCreate, MitarbeiterUpdate, MitarbeiterResponse, MitarbeiterListResponse,
    PasswortRequest,
    VerkaeuferCreate, VerkaeuferUpdate, VerkaeuferResponse, VerkaeuferListResponse,
)

# Kunden / Preise
from app.schemas.kunde import (
    KundeRegistrieren, KundeCreate, KundeUpdate, KundeResponse, KundeListResponse,
    FreigabeRequest, FavoritenResponse,
    KundenPreisCreate, KundenPreisUpdate, KundenPreisResponse, KundenPreisListResponse,
    EffektiverAufpreis,
)

# Artikel
from app.schemas.artikel import (
    ArtikelCreate, ArtikelUpdate, ArtikelResponse, ArtikelListResponse,
)

# Aufträge / Positionen
from app.schemas.auftrag import (
    Leergut,
    ArtikelPositionCreate, ArtikelPositionInAuftrag, ArtikelPositionUpdate,
    KommissionierungUpdate, KontrolleUpdate,
    ArtikelPositionResponse, ArtikelPositionListResponse,
    AuftragCreate, AuftragUpdate, AuftragResponse, AuftragDetailResponse,
    AuftragListResponse, LetzteArtikelResponse,
)

# Fahrzeuge / Touren
from app.schemas.fahrzeug import (
    FahrzeugCreate, FahrzeugUpdate, FahrzeugResponse, FahrzeugListResponse,
)
from app.schemas.tour import (
    Fehlgrund, LeergutMitnahme,
    TourStopCreate, TourStopUpdate, TourStopMoveRequest, TourStopResponse, TourStopListResponse,
    TourCreate, TourUpdate, TourResponse, TourDetailResponse, TourListResponse,
    TourReihenfolgeRequest,
    RegionRuleCreate, RegionRuleUpdate, RegionRuleResponse, RegionRuleListResponse,
    ReihenfolgeVorlageCreate, ReihenfolgeVorlageUpdate, ReihenfolgeVorlageResponse,
    ReihenfolgeVorlageListResponse,
)

# Zerlegung
from app.schemas.zerlegung import (
    ZerlegeAuftragResponse, ZerlegeAuftragListResponse,
    ZerlegePositionResponse, ZerlegePositionUpdate,
)

# Bestand
from app.schemas.inventory import (
    ChargeCreate, ChargeUpdate, ChargeResponse, ChargeListResponse, ChargeAnsichtResponse,
    BewegungResponse, BewegungListResponse,
    BestandZeile, BestandUebersichtResponse,
    NeueCharge, ZugangRequest, ZugangResponse,
    MuellRequest, MuellUndoRequest,
    ReservierungCreate, ReservierungUpdate, TeilerfuellungRequest,
    ReservierungResponse, ReservierungListResponse,
    UmbuchungZiel, UmbuchenRequest, UmbuchungResponse, MergeRequest,
    MhdWarnungZeile, MhdWarnungListResponse, UeberreserviertZeile, UeberreserviertListResponse,
    TkMismatchListResponse, WarnungenSummary,
)
