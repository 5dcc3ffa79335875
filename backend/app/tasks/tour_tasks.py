"""
Celery Tasks für Touren
"""
import logging
from datetime import timedelta

from app.celery_app import celery_app
from app.config import get_settings
from app.core.zeit import heute
from app.database import SessionLocal
from app.services.tour_service import TourService

logger = logging.getLogger(__name__)
settings = get_settings()


@celery_app.task(name="app.tasks.tour_tasks.archive_finished_tours")
def archive_finished_tours(days: int | None = None):
    """
    Archiviert abgeschlossene Touren, die älter als die Aufbewahrungsfrist sind.
    Wird täglich um 2:00 ausgeführt.
    """
    tage = days if days is not None else settings.tour_archiv_nach_tagen
    stichtag = heute() - timedelta(days=tage)

    db = SessionLocal()
    try:
        anzahl = TourService(db).abgeschlossene_archivieren(stichtag)
        db.commit()
        logger.info(f"{anzahl} Touren vor {stichtag} archiviert")
        return {"status": "success", "archived": anzahl, "stichtag": stichtag.isoformat()}

    except Exception as e:
        logger.error(f"Fehler beim Archivieren von Touren: {e}")
        db.rollback()
        raise

    finally:
        db.close()
