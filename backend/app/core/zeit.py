"""
Datums-Helfer für die Geschäftszeitzone (Europe/Berlin)
"""
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from app.config import get_settings

settings = get_settings()


def zeitzone() -> ZoneInfo:
    return ZoneInfo(settings.zeitzone)


def heute() -> date:
    """Aktueller Kalendertag in der Geschäftszeitzone"""
    return datetime.now(zeitzone()).date()


def tagesende(tag: date) -> datetime:
    """Letzter Zeitpunkt eines Tages (für inklusive Bis-Filter)"""
    return datetime.combine(tag, time.min) + timedelta(days=1) - timedelta(microseconds=1)
