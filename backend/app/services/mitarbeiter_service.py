"""
Personal-Service - Login, Mitarbeiter und Verkäufer
"""
import logging
from uuid import UUID
from sqlalchemy import select, func
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.exceptions import (
    ValidierungsError, BerechtigungsError, NotFoundError, KonfliktError,
    AuthentifizierungsError,
)
from app.core.security import hash_password, verify_password, create_access_token
from app.models.enums import Rolle
from app.models.kunde import Kunde
from app.models.mitarbeiter import Mitarbeiter, Verkaeufer
from app.schemas.mitarbeiter import (
    LoginRequest, MitarbeiterCreate, MitarbeiterUpdate,
    VerkaeuferCreate, VerkaeuferUpdate,
)

logger = logging.getLogger(__name__)
settings = get_settings()

GUELTIGE_ROLLEN = [r.value for r in Rolle]
MIN_PASSWORT_LAENGE = 6


def rollen_normalisieren(rollen: list[str] | None) -> list[str]:
    """Unbekannte Rollen verwerfen, Duplikate entfernen, leer → ["lager"]"""
    ergebnis: list[str] = []
    for rolle in rollen or []:
        rolle = (rolle or "").strip().lower()
        if rolle in GUELTIGE_ROLLEN and rolle not in ergebnis:
            ergebnis.append(rolle)
    return ergebnis or [Rolle.LAGER.value]


def _name_normalisieren(name: str) -> str:
    return name.strip().lower()


class AuthService:
    """Anmeldung von Kunden (E-Mail) und Mitarbeitern (Name)"""

    def __init__(self, db: Session):
        self.db = db

    def login(self, data: LoginRequest) -> tuple[str, dict]:
        if data.email:
            return self._login_kunde(data.email, data.password)
        return self._login_mitarbeiter(data.name, data.password)

    def _login_kunde(self, email: str, password: str) -> tuple[str, dict]:
        kunde = self.db.execute(
            select(Kunde).where(Kunde.email == email.strip().lower())
        ).scalar_one_or_none()
        if not kunde or not verify_password(password, kunde.password_hash):
            logger.warning(f"Fehlgeschlagene Anmeldung für Kunde {email}")
            raise AuthentifizierungsError("Ungültige Anmeldedaten")
        if not kunde.is_approved:
            raise BerechtigungsError("Nicht genehmigt")
        return create_access_token(
            str(kunde.id), [Rolle.KUNDE.value], settings.kunde_token_expire_minutes
        )

    def _login_mitarbeiter(self, name: str, password: str) -> tuple[str, dict]:
        mitarbeiter = self.db.execute(
            select(Mitarbeiter).where(Mitarbeiter.name == _name_normalisieren(name))
        ).scalar_one_or_none()
        if not mitarbeiter or not verify_password(password, mitarbeiter.password_hash):
            logger.warning(f"Fehlgeschlagene Anmeldung für Mitarbeiter {name}")
            raise AuthentifizierungsError("Ungültige Anmeldedaten")
        return create_access_token(
            str(mitarbeiter.id),
            rollen_normalisieren(mitarbeiter.rollen),
            settings.access_token_expire_minutes,
        )


class MitarbeiterService:
    """Service für Mitarbeiter-Verwaltung"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, mitarbeiter_id: UUID) -> Mitarbeiter:
        mitarbeiter = self.db.get(Mitarbeiter, mitarbeiter_id)
        if not mitarbeiter:
            raise NotFoundError("Mitarbeiter nicht gefunden")
        return mitarbeiter

    def _name_frei(self, name: str, ausser_id: UUID | None = None) -> None:
        query = select(Mitarbeiter.id).where(Mitarbeiter.name == name)
        if ausser_id:
            query = query.where(Mitarbeiter.id != ausser_id)
        if self.db.execute(query).first():
            raise KonfliktError(f"Mitarbeiter {name} existiert bereits")

    def create(self, data: MitarbeiterCreate) -> Mitarbeiter:
        name = _name_normalisieren(data.name)
        self._name_frei(name)
        mitarbeiter = Mitarbeiter(
            name=name,
            password_hash=hash_password(data.password),
            email=data.email,
            telefon=data.telefon,
            abteilung=data.abteilung,
            bemerkung=data.bemerkung,
            eintrittsdatum=data.eintrittsdatum,
            aktiv=data.aktiv,
            rollen=rollen_normalisieren(data.rollen),
        )
        self.db.add(mitarbeiter)
        self.db.flush()
        logger.info(f"Mitarbeiter angelegt: {name} {mitarbeiter.rollen}")
        return mitarbeiter

    def list_mitarbeiter(self) -> list[Mitarbeiter]:
        return list(self.db.execute(select(Mitarbeiter).order_by(Mitarbeiter.name)).scalars().all())

    def update(self, mitarbeiter_id: UUID, data: MitarbeiterUpdate) -> Mitarbeiter:
        mitarbeiter = self.get(mitarbeiter_id)
        update_data = data.model_dump(exclude_unset=True)

        if update_data.get("name"):
            update_data["name"] = _name_normalisieren(update_data["name"])
            self._name_frei(update_data["name"], ausser_id=mitarbeiter.id)
        if "rollen" in update_data:
            update_data["rollen"] = rollen_normalisieren(update_data["rollen"])

        for field, value in update_data.items():
            if value is None and field in ("name", "aktiv"):
                continue
            setattr(mitarbeiter, field, value)
        return mitarbeiter

    def passwort_setzen(self, mitarbeiter_id: UUID, password: str, user: dict) -> None:
        """Neues Passwort (Admin oder der Mitarbeiter selbst)"""
        if "admin" not in user.get("roles", []) and str(mitarbeiter_id) != str(user.get("id")):
            raise BerechtigungsError("Keine Berechtigung für diese Aktion")
        if len(password or "") < MIN_PASSWORT_LAENGE:
            raise ValidierungsError(
                f"Passwort muss mindestens {MIN_PASSWORT_LAENGE} Zeichen lang sein"
            )
        mitarbeiter = self.get(mitarbeiter_id)
        mitarbeiter.password_hash = hash_password(password)

    def delete(self, mitarbeiter_id: UUID) -> None:
        self.db.delete(self.get(mitarbeiter_id))


class VerkaeuferService:
    """Service für Verkäufer-Zugänge"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, verkaeufer_id: UUID) -> Verkaeufer:
        verkaeufer = self.db.get(Verkaeufer, verkaeufer_id)
        if not verkaeufer:
            raise NotFoundError("Verkäufer nicht gefunden")
        return verkaeufer

    def _name_frei(self, name: str, ausser_id: UUID | None = None) -> None:
        query = select(Verkaeufer.id).where(func.lower(Verkaeufer.name) == name.lower())
        if ausser_id:
            query = query.where(Verkaeufer.id != ausser_id)
        if self.db.execute(query).first():
            raise KonfliktError(f"Verkäufer {name} existiert bereits")

    def create(self, data: VerkaeuferCreate) -> Verkaeufer:
        name = data.name.strip()
        self._name_frei(name)
        verkaeufer = Verkaeufer(
            name=name,
            password_hash=hash_password(data.password),
            admin=data.admin,
        )
        self.db.add(verkaeufer)
        self.db.flush()
        return verkaeufer

    def list_verkaeufer(self) -> list[Verkaeufer]:
        return list(self.db.execute(select(Verkaeufer).order_by(Verkaeufer.name)).scalars().all())

    def update(self, verkaeufer_id: UUID, data: VerkaeuferUpdate) -> Verkaeufer:
        verkaeufer = self.get(verkaeufer_id)
        if data.name:
            self._name_frei(data.name.strip(), ausser_id=verkaeufer.id)
            verkaeufer.name = data.name.strip()
        if data.password:
            verkaeufer.password_hash = hash_password(data.password)
        if data.admin is not None:
            verkaeufer.admin = data.admin
        return verkaeufer

    def delete(self, verkaeufer_id: UUID) -> None:
        self.db.delete(self.get(verkaeufer_id))
