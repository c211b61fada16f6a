"""
Celery application for the notification worker.

Redis is both broker and result backend. The API process only queues
pipeline events; the worker renders and delivers them.
"""

from celery import Celery
from celery.signals import setup_logging
from app.core.config import settings
from app.core.logging_config import setup_logging as configure_logging

celery_app = Celery(
    "hiring_pipeline_worker",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["app.tasks.notification_tasks"]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    timezone="UTC",
    enable_utc=True,

    # Notifications are small; a stuck webhook should not hold a worker
    task_track_started=True,
    task_time_limit=60,
    task_soft_time_limit=45,
    task_acks_late=True,

    # Nobody reads delivery results beyond debugging
    result_expires=3600,

    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=200,

    task_routes={
        "deliver_pipeline_event": {"queue": "notifications"},
    },
)


@setup_logging.connect
def configure_worker_logging(**kwargs):
    """Use the API's log format in workers instead of Celery's own."""
    configure_logging(log_level=settings.LOG_LEVEL, json_logs=settings.JSON_LOGS)
