# marketplace/celery_worker.py
import os

from celery import Celery
from celery.schedules import crontab

from marketplace.utils.settings import (
    ACTIVATION_POLL_SECONDS,
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
)

celery_app = Celery(
    "marketplace",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# WAŻNE: Explicite importuj taski, żeby Celery je zarejestrował
celery_app.conf.imports = (
    "marketplace.tasks.scheduled",
    "marketplace.services.notification_service",
)

# Konfiguracja beat schedule
celery_app.conf.beat_schedule = {
    "activate-scheduled-orders": {
        "task": "marketplace.tasks.scheduled.activate_scheduled_orders_task",
        "schedule": ACTIVATION_POLL_SECONDS,
    },
    "reset-monthly-loyalty-points": {
        "task": "marketplace.tasks.scheduled.reset_monthly_points_task",
        "schedule": crontab(hour=0, minute=5),
    },
}

celery_app.conf.timezone = "UTC"
#testy / lokalnie bez brokera
celery_app.conf.task_always_eager = os.getenv("CELERY_TASK_ALWAYS_EAGER", "0").lower() in {"1", "true", "yes", "on"}
