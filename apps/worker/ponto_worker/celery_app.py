"""Celery application configuration."""

from celery import Celery
from celery.schedules import crontab

from ponto_worker.settings import get_settings

settings = get_settings()

celery_app = Celery(
    "ponto_worker",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes
    task_soft_time_limit=25 * 60,  # 25 minutes
    beat_schedule={
        "daily-timecard-backups": {
            "task": "ponto_worker.tasks.create_daily_backups",
            "schedule": crontab(hour=settings.backup_hour, minute=0),
        },
        "nightly-integrity-check": {
            "task": "ponto_worker.tasks.verify_integrity_chains",
            "schedule": crontab(hour=settings.integrity_check_hour, minute=0),
        },
    },
)

# Import tasks to register them with Celery
from ponto_worker import tasks  # noqa: F401, E402
