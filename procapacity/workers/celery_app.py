"""Celery application for background email delivery."""

from celery import Celery

from procapacity.config import settings

EMAIL_QUEUE = "email"

celery_app = Celery(
    "procapacity",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["procapacity.workers.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Emails are sent by name from the API, so routing is by name pattern too
    task_routes={"procapacity.workers.tasks.send_*": {"queue": EMAIL_QUEUE}},
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    # Callers never read results
    task_ignore_result=True,
    broker_connection_retry_on_startup=True,
)
