"""Celery application instance for async task processing.

Celery runs as a SEPARATE process from FastAPI. Workers are sync --
never use async code inside Celery tasks. Outbound email is the only
work dispatched here; request handlers enqueue and return immediately.

Worker startup: celery -A atreo.tasks.celery_app:celery_app worker -Q email --loglevel=info
"""

from celery import Celery

from atreo.config import get_settings

settings = get_settings()

celery_app = Celery(
    "atreo",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["atreo.tasks.email"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_routes={"atreo.tasks.email.*": {"queue": "email"}},
    result_expires=24 * 60 * 60,
    task_always_eager=settings.celery_task_always_eager,
    task_eager_propagates=settings.celery_task_always_eager,
)
