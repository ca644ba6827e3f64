from __future__ import annotations

from celery import Celery
from celery.schedules import crontab

from kinetoflow_jobs.config import settings


def cron_schedule(expression: str) -> crontab:
    """Build a ``crontab`` from a five-field cron expression.

    Runs of whitespace between fields are accepted.
    """

    return crontab.from_string(" ".join(expression.split()))


celery_app = Celery(
    "kinetoflow",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["kinetoflow_jobs.tasks"],
)

celery_app.conf.timezone = settings.timezone
celery_app.conf.broker_connection_retry_on_startup = True
celery_app.conf.task_always_eager = settings.task_always_eager
celery_app.conf.task_eager_propagates = False
celery_app.conf.beat_schedule = {
    "reconcile-plan-sessions": {
        "task": "jobs.reconcile_sessions",
        "schedule": cron_schedule(settings.reconciliation_cron),
    },
}
