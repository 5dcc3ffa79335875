"""
Celery Konfiguration für Background Tasks
"""
from celery import Celery
from celery.schedules import crontab
from app.config import get_settings

settings = get_settings()

celery_app = Celery(
    "hacilar",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "app.tasks.tour_tasks",
        "app.tasks.inventory_tasks",
    ]
)

# Celery Konfiguration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.zeitzone,
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 Minuten max
    worker_prefetch_multiplier=1,
)

# Scheduled Tasks (Celery Beat)
celery_app.conf.beat_schedule = {
    # ========== TOUREN ==========
    # Abgeschlossene Touren archivieren (2:00)
    "daily-tour-archive": {
        "task": "app.tasks.tour_tasks.archive_finished_tours",
        "schedule": crontab(hour=2, minute=0),
    },
    # ========== LAGER ==========
    # Veraltete Reservierungen freigeben (3:00)
    "daily-stale-reservations": {
        "task": "app.tasks.inventory_tasks.release_stale_reservations",
        "schedule": crontab(hour=3, minute=0),
    },
    # MHD-Prüfung (7:30)
    "daily-expiry-check": {
        "task": "app.tasks.inventory_tasks.check_mhd_warnings",
        "schedule": crontab(hour=7, minute=30),
    },
}
