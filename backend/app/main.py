"""
Hacilar Fleischhandel ERP - FastAPI Backend
Hauptanwendung und Router-Konfiguration
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import app.models  # noqa: F401  (registriert alle Tabellen)
from app.config import get_settings
from app.core.exceptions import DomainError
from app.core.logging_config import setup_logging
from app.database import engine, Base
from app.api.v1 import (
    login, mitarbeiter, kunden, artikel, artikelpositionen, auftraege,
    fahrzeuge, touren, region_rules, zerlegeauftraege, bestand,
)

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup und Shutdown Events"""
    setup_logging(settings.log_level)
    # Tabellen anlegen (keine Migrationen)
    Base.metadata.create_all(bind=engine)
    logger.info(f"{settings.app_name} {settings.app_version} gestartet")
    yield


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    ## Hacilar Fleischhandel ERP API

    Backend für den Fleischgroßhandel.

    ### Features
    - **Aufträge**: Bestellungen, Kommissionierung, Kontrolle, Beladung
    - **Touren**: Standard-Touren je Region und Tag, Drag&Drop-Reihenfolge
    - **Stammdaten**: Kunden, Artikel, Kundenpreise, Fahrzeuge, Personal
    - **Bestand**: Chargen, Bewegungsjournal, Müll, Reservierungen

    ### Authentifizierung
    Bearer Token über `/api/v1/login`
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health Check
@app.get("/health", tags=["System"])
async def health_check():
    """
    Systemstatus prüfen.
    Wird von Docker für Health Checks verwendet.
    """
    return {"status": "healthy", "version": settings.app_version}


@app.get("/", tags=["System"])
async def root():
    """API Root - Zeigt Willkommensnachricht"""
    return {
        "message": "Willkommen beim Hacilar Fleischhandel ERP",
        "version": settings.app_version,
        "docs": "/docs",
    }


# API Router einbinden
for api_router in (
    login.router,
    mitarbeiter.router,
    mitarbeiter.verkaeufer_router,
    kunden.router,
    artikel.router,
    artikel.kundenpreise_router,
    artikelpositionen.router,
    auftraege.router,
    fahrzeuge.router,
    touren.router,
    touren.stops_router,
    region_rules.router,
    region_rules.vorlagen_router,
    zerlegeauftraege.router,
    bestand.router,
):
    app.include_router(api_router, prefix="/api/v1")


# Exception Handler
@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError):
    """Fachliche Fehler der Services mit passendem Status"""
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=headers,
    )


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Globaler Exception Handler"""
    logger.exception(f"Unbehandelter Fehler bei {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Ein interner Fehler ist aufgetreten.",
            "error": str(exc) if settings.debug else None
        }
    )
