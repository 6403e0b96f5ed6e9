"""Celery tasks for event outbox processing."""

from celery_app import celery
from marketplace.config import settings
from marketplace.modules.events.outbox_processor import OutboxProcessor
from marketplace.modules.notifications.dispatcher import register_handlers

register_handlers()


@celery.task(name="marketplace.modules.events.tasks.process_outbox")
def process_outbox():
    """Process a batch of pending outbox events."""
    processor = OutboxProcessor()
    return processor.process_batch(batch_size=settings.event_outbox_batch_size)


@celery.task(name="marketplace.modules.events.tasks.cleanup_processed_events")
def cleanup_processed_events():
    """Delete expired processed_events and old completed outbox entries."""
    processor = OutboxProcessor()
    return processor.cleanup_expired()
