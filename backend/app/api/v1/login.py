"""
Login-API - Anmeldung für Kunden und Mitarbeiter
"""
from fastapi import APIRouter

from app.api.deps import DBSession, CurrentUser
from app.schemas.mitarbeiter import LoginRequest, LoginResponse, TokenCheckResponse, TokenUser
from app.services.mitarbeiter_service import AuthService

router = APIRouter(prefix="/login", tags=["Login"])


@router.post("", response_model=LoginResponse)
def login(data: LoginRequest, db: DBSession):
    """
    Meldet einen Kunden (per E-Mail) oder Mitarbeiter (per Name) an.

    - Kunden benötigen eine Freigabe durch einen Admin
    - Falsche Zugangsdaten ergeben 401
    """
    token, payload = AuthService(db).login(data)
    return LoginResponse(access_token=token, user=TokenUser(**payload))


@router.get("/check-token", response_model=TokenCheckResponse)
def check_token(user: CurrentUser):
    """Prüft das mitgesendete Token."""
    raw = user["raw"]
    return TokenCheckResponse(
        valid=True,
        user=TokenUser(id=str(raw.get("id")), role=user["roles"], exp=raw.get("exp", 0)),
    )
