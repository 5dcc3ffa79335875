# Celery Tasks
from app.tasks import tour_tasks
from app.tasks import inventory_tasks

__all__ = [
    "tour_tasks",
    "inventory_tasks",
]
