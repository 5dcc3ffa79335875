from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import bcrypt
from fastapi import HTTPException, status
from jose import JWTError, jwt

from app.config import get_settings

settings = get_settings()


def hash_password(password: str) -> str:
    """Erzeugt einen bcrypt-Hash für ein Klartext-Passwort."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    """Vergleicht ein Klartext-Passwort mit einem gespeicherten Hash."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Kein gültiger bcrypt-Hash gespeichert
        return False


def create_access_token(
    user_id: str,
    roles: list[str],
    expires_minutes: int | None = None,
) -> tuple[str, Dict[str, Any]]:
    """
    Signiert ein JWT mit Benutzer-ID, Rollen und Ablaufzeit.
    Gibt Token und Payload zurück.
    """
    minutes = expires_minutes or settings.access_token_expire_minutes
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    payload = {
        "id": user_id,
        "role": list(roles),
        "exp": int(expire.timestamp()),
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, payload


def verify_token(token: str) -> Dict[str, Any]:
    """
    Prüft Signatur und Ablauf eines JWT.
    Gibt die Claims zurück, bei Fehlern HTTP 401.
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Ungültiges oder abgelaufenes Token",
            headers={"WWW-Authenticate": "Bearer"},
        )
