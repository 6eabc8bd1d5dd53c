"""Celery application for the creator pipeline worker.

- Redis as broker and result backend
- One "workflows" queue for trigger, resume and poll tasks
- Beat schedule for the due-wait poller
- Worker logging goes through core.logging_config instead of Celery's own
"""

from celery import Celery
from celery.signals import setup_logging as celery_setup_logging

from app.config import get_settings

settings = get_settings()

celery_app = Celery(
    "creator_pipeline",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    timezone="UTC",
    enable_utc=True,

    task_routes={
        "worker.tasks.workflow.*": {"queue": "workflows"},
    },
    task_default_queue="workflows",

    # Trigger results are only kept for debugging
    result_expires=3600,

    # A resume can drive a long tail of steps with retry backoff
    task_soft_time_limit=900,
    task_time_limit=1200,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_reject_on_worker_lost=True,

    beat_schedule={
        "poll-due-waits": {
            "task": "worker.tasks.workflow.poll_due_waits",
            "schedule": float(settings.WAIT_POLL_INTERVAL_SECONDS),
            "options": {"queue": "workflows"},
        },
    },

    include=["worker.tasks.workflow"],
)


@celery_setup_logging.connect
def _configure_worker_logging(**kwargs):
    from core.logging_config import setup_logging

    setup_logging()
