"""Celery application for the processing worker and maintenance jobs.

Delivery is at-least-once: a message is acknowledged only after its task
returned, and a message held by a worker that dies is redelivered.

Start the worker and the scheduler with:
    celery -A docsync.workers.celery_app worker -Q email-processing,maintenance
    celery -A docsync.workers.celery_app beat
"""

from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging

from ..config import settings
from ..observability.logging_config import configure_logging

celery_app = Celery(
    "docsync",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "docsync.workers.email_worker",
        "docsync.workers.maintenance",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    task_default_queue=settings.EMAIL_QUEUE_NAME,
    task_routes={
        "docsync.process_email": {"queue": settings.EMAIL_QUEUE_NAME},
        "requirements.*": {"queue": "maintenance"},
        "graph.*": {"queue": "maintenance"},
    },
    result_expires=86400,
)

celery_app.conf.beat_schedule = {
    "requirements-overdue-sweep-hourly": {
        "task": "requirements.overdue_sweep",
        "schedule": crontab(minute=5),
        "options": {
            "expires": 3300,  # Skip if not picked up before the next run
        },
    },
    "graph-subscription-renewal": {
        "task": "graph.renew_subscriptions",
        "schedule": crontab(minute=0, hour="*/2"),
        "options": {
            "expires": 3600,
        },
    },
}


@setup_logging.connect
def configure_worker_logging(**kwargs):
    """Use the DocuSync log format instead of Celery's own root handler."""
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)
