"""Celery tasks for event outbox processing."""

from celery_app import celery
from groupdesk.config import settings
from groupdesk.modules.events.outbox_processor import OutboxProcessor
from groupdesk.modules.notifications.handlers import register_notification_handlers

register_notification_handlers()


@celery.task(name="groupdesk.modules.events.tasks.process_outbox")
def process_outbox():
    """Process a batch of pending outbox events."""
    processor = OutboxProcessor()
    return processor.process_batch(batch_size=settings.event_outbox_batch_size)


@celery.task(name="groupdesk.modules.events.tasks.cleanup_processed_events")
def cleanup_processed_events():
    """Delete expired processed_events and old completed outbox entries."""
    processor = OutboxProcessor()
    return processor.cleanup_expired()
