"""
Celery Tasks für den Lagerbestand
"""
import logging

from app.celery_app import celery_app
from app.database import SessionLocal
from app.services.bestand_service import BestandService

logger = logging.getLogger(__name__)


@celery_app.task(name="app.tasks.inventory_tasks.check_mhd_warnings")
def check_mhd_warnings(threshold_days: int | None = None):
    """
    Meldet Bestände mit abgelaufenem oder nahem MHD.
    Wird täglich um 7:30 ausgeführt.
    """
    logger.info("Prüfe Mindesthaltbarkeit")

    db = SessionLocal()
    try:
        zeilen = BestandService(db).mhd_warnungen(threshold_days)
        alerts = []
        for zeile in zeilen:
            alert = {
                "artikel_nummer": zeile["artikel_nummer"],
                "artikel_name": zeile["artikel_name"],
                "charge_id": str(zeile["charge_id"]) if zeile["charge_id"] else None,
                "lagerbereich": zeile["lagerbereich"].value,
                "verfuegbar": float(zeile["verfuegbar"]),
                "mhd": zeile["mhd"].isoformat() if zeile["mhd"] else None,
                "warnung": zeile["warn_mhd"].value,
            }
            alerts.append(alert)
            logger.warning(
                f"MHD {alert['warnung']}: {alert['artikel_name']} "
                f"({alert['verfuegbar']} verfügbar, MHD {alert['mhd']})"
            )

        return {
            "status": "success",
            "alerts_count": len(alerts),
            "alerts": alerts,
        }

    finally:
        db.close()


@celery_app.task(name="app.tasks.inventory_tasks.release_stale_reservations")
def release_stale_reservations():
    """
    Gibt aktive Reservierungen frei, deren Lieferdatum vorbei ist.
    Wird täglich um 3:00 ausgeführt.
    """
    db = SessionLocal()
    try:
        anzahl = BestandService(db).abgelaufene_reservierungen_aufloesen()
        db.commit()
        logger.info(f"{anzahl} veraltete Reservierungen freigegeben")
        return {"status": "success", "released": anzahl}

    except Exception as e:
        logger.error(f"Fehler beim Freigeben von Reservierungen: {e}")
        db.rollback()
        raise

    finally:
        db.close()
