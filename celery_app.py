"""Celery application configuration for group desk background tasks."""

from celery import Celery
from celery.schedules import crontab

from groupdesk.config import settings

celery = Celery("groupdesk")

celery.conf.update(
    broker_url=settings.celery_broker_url,
    result_backend=settings.celery_result_backend,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    # --- Queue routing per job type ---
    task_routes={
        "groupdesk.modules.events.tasks.process_outbox": {"queue": "event-outbox"},
        "groupdesk.modules.events.tasks.cleanup_processed_events": {"queue": "event-outbox"},
        "groupdesk.modules.booking.tasks.expire_stale_quotations": {"queue": "booking"},
    },
    # --- Reliability settings ---
    task_default_retry_delay=60,
    task_max_retries=3,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    result_expires=86400,  # 24 hours
    broker_transport_options={
        "max_retries": 10,
        "interval_start": 0.2,
        "interval_step": 0.5,
        "interval_max": 5.0,
        "retry_on_timeout": True,
        "visibility_timeout": 3600,
    },
    # --- Beat schedule ---
    beat_schedule={
        "process-event-outbox": {
            "task": "groupdesk.modules.events.tasks.process_outbox",
            "schedule": settings.event_outbox_poll_seconds,
        },
        "cleanup-processed-events-daily": {
            "task": "groupdesk.modules.events.tasks.cleanup_processed_events",
            "schedule": crontab(hour=3, minute=30),
        },
        "expire-stale-quotations": {
            "task": "groupdesk.modules.booking.tasks.expire_stale_quotations",
            "schedule": settings.quotation_expiry_sweep_seconds,
        },
    },
)

celery.autodiscover_tasks([
    "groupdesk.modules.events",
    "groupdesk.modules.booking",
])
