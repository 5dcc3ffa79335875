"""
Fachliche Fehler mit zugehörigem HTTP-Status.

Services werfen diese Fehler, der Handler in main.py übersetzt sie in
JSON-Antworten.
"""


class DomainError(ValueError):
    """Basisklasse für fachliche Fehler"""
    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidierungsError(DomainError):
    """Ungültige Eingabe oder unzulässiger Zustand (400)"""
    status_code = 400


class BerechtigungsError(DomainError):
    """Aktion für die Rolle des Benutzers nicht erlaubt (403)"""
    status_code = 403


class NotFoundError(DomainError):
    """Datensatz existiert nicht (404)"""
    status_code = 404


class KonfliktError(DomainError):
    """Eindeutigkeit verletzt oder Anfrage bereits verarbeitet (409)"""
    status_code = 409


class AuthentifizierungsError(DomainError):
    """Anmeldung fehlgeschlagen (401)"""
    status_code = 401
