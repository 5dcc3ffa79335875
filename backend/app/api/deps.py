"""
API Dependencies - Gemeinsame Abhängigkeiten für Endpoints
"""
from typing import Annotated
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.core.security import verify_token
from app.database import get_db

# Type Alias für DB Session Dependency
DBSession = Annotated[Session, Depends(get_db)]

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/login")  # nur Hinweis für Swagger UI

# Rollen mit Lesezugriff auf alle Aufträge und Kunden
LESE_ROLLEN = ["admin", "buchhaltung", "statistik", "support"]


async def get_current_user(token: Annotated[str, Depends(oauth2_scheme)]):
    """
    Dependency für authentifizierten Benutzer.
    Verifiziert das JWT und liefert ID und Rollen.
    """
    payload = verify_token(token)

    roles = payload.get("role") or []
    if isinstance(roles, str):
        roles = [roles]

    return {
        "id": payload.get("id"),
        "roles": roles,
        "raw": payload,
    }


CurrentUser = Annotated[dict, Depends(get_current_user)]


def has_role(user: dict, *roles: str) -> bool:
    """True, wenn der Benutzer mindestens eine der Rollen besitzt."""
    user_roles = user.get("roles", [])
    return any(role in user_roles for role in roles)


def require_role(required_roles: list[str]):
    """
    Dependency Factory für Rollenprüfung.

    Verwendung:
        @router.get("/admin", dependencies=[Depends(require_role(["admin"]))])
    """
    async def check_role(user: CurrentUser):
        if not has_role(user, *required_roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Keine Berechtigung für diese Aktion"
            )
        return user
    return check_role


AdminUser = Annotated[dict, Depends(require_role(["admin"]))]


# Pagination Parameter
class PaginationParams:
    """Standard Pagination Parameter"""
    def __init__(
        self,
        page: int = 1,
        limit: int = 50,
        max_limit: int = 200
    ):
        self.page = max(1, page)
        self.limit = min(max(1, limit), max_limit)
        self.offset = (self.page - 1) * self.limit


Pagination = Annotated[PaginationParams, Depends()]


def require_self_or_role(user: dict, target_id, *roles: str) -> None:
    """403, wenn der Benutzer weder eine der Rollen hat noch selbst gemeint ist."""
    if has_role(user, *roles) or str(user.get("id")) == str(target_id):
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Keine Berechtigung für diese Aktion"
    )
