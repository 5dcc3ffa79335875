"""
Helfer rund um den angemeldeten Benutzer (Token-Inhalt)
"""
from uuid import UUID
from sqlalchemy.orm import Session

from app.models.kunde import Kunde
from app.models.mitarbeiter import Mitarbeiter


def ist_admin(user: dict) -> bool:
    return "admin" in user.get("roles", [])


def benutzer_uuid(user: dict) -> UUID | None:
    """ID aus dem Token als UUID (None bei fremdem Format)"""
    try:
        return UUID(str(user.get("id")))
    except ValueError:
        return None


def benutzer_name(db: Session, user: dict) -> str | None:
    """Anzeigename für Stempel (Mitarbeitername, sonst Kundenname)"""
    user_id = benutzer_uuid(user)
    if not user_id:
        return None
    mitarbeiter = db.get(Mitarbeiter, user_id)
    if mitarbeiter:
        return mitarbeiter.name
    kunde = db.get(Kunde, user_id)
    return kunde.name if kunde else None
