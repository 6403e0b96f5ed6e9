"""OutboxProcessor: synchronous batch processor for Celery workers."""

import logging
from datetime import timedelta

from sqlalchemy import Engine, delete, select, update
from sqlalchemy.orm import Session

from marketplace.clock import Clock, utcnow
from marketplace.database.engine import sync_engine
from marketplace.models.enums import EventStatus
from marketplace.models.event_outbox import EventOutbox
from marketplace.models.processed_event import ProcessedEvent
from marketplace.modules.events.handlers import EventHandlerRegistry

logger = logging.getLogger(__name__)

PROCESSED_EVENT_TTL = timedelta(days=7)
COMPLETED_EVENT_RETENTION = timedelta(days=30)


class OutboxProcessor:
    """Processes pending outbox events using sync sessions (for Celery workers).

    Uses SELECT ... FOR UPDATE SKIP LOCKED for safe multi-worker concurrency.
    Tracks idempotency via the processed_events table.
    """

    def __init__(self, engine: Engine | None = None, clock: Clock = utcnow) -> None:
        self.engine = engine or sync_engine
        self.clock = clock

    def _set_status(self, session: Session, event_id, **values) -> None:
        session.execute(
            update(EventOutbox)
            .where(EventOutbox.id == event_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

    def process_batch(self, batch_size: int = 50) -> dict:
        """Process a batch of pending events.

        Returns dict with 'processed', 'failed' and 'warnings' counts.
        """
        processed_count = 0
        failed_count = 0
        warning_count = 0

        with Session(self.engine) as session:
            pending = session.execute(
                select(EventOutbox)
                .where(EventOutbox.status == EventStatus.PENDING)
                .order_by(EventOutbox.created_at.asc())
                .limit(batch_size)
                .with_for_update(skip_locked=True)
            ).scalars().all()
            batch = [
                (e.id, e.event_type, dict(e.payload or {}), e.retry_count, e.max_retries)
                for e in pending
            ]

            for event_id, event_type, payload, retry_count, max_retries in batch:
                try:
                    already_processed = session.scalar(
                        select(ProcessedEvent.id).where(ProcessedEvent.event_id == event_id).limit(1)
                    )
                    if already_processed is not None:
                        self._set_status(
                            session, event_id, status=EventStatus.COMPLETED, processed_at=self.clock()
                        )
                        session.commit()
                        processed_count += 1
                        continue

                    # Stays uncommitted so a crash rolls back to PENDING
                    self._set_status(session, event_id, status=EventStatus.PROCESSING)

                    results = EventHandlerRegistry.dispatch(session, event_type, payload)

                    handler_errors = [r for r in results if r["status"] == "error"]
                    if handler_errors:
                        error_messages = "; ".join(
                            f"{r['handler']}: {r['error']}" for r in handler_errors
                        )
                        raise RuntimeError(f"Handler errors: {error_messages}")

                    for result in results:
                        for warning in result.get("warnings", []):
                            logger.warning(
                                "Event %s (type=%s) handler %s: %s",
                                event_id, event_type, result["handler"], warning,
                            )
                            warning_count += 1

                    now = self.clock()
                    session.add(
                        ProcessedEvent(
                            event_id=event_id,
                            event_type=event_type,
                            handler_name=",".join(r["handler"] for r in results) or "no_handlers",
                            processed_at=now,
                            expires_at=now + PROCESSED_EVENT_TTL,
                        )
                    )
                    self._set_status(
                        session, event_id, status=EventStatus.COMPLETED, processed_at=now
                    )
                    session.commit()
                    processed_count += 1

                except Exception as exc:
                    session.rollback()
                    logger.exception(
                        "Failed to process event %s (type=%s)", event_id, event_type
                    )

                    new_retry_count = retry_count + 1
                    new_status = (
                        EventStatus.FAILED if new_retry_count >= max_retries else EventStatus.PENDING
                    )
                    self._set_status(
                        session,
                        event_id,
                        status=new_status,
                        retry_count=new_retry_count,
                        last_error=str(exc),
                    )
                    session.commit()
                    failed_count += 1

        return {"processed": processed_count, "failed": failed_count, "warnings": warning_count}

    def cleanup_expired(self) -> int:
        """Delete expired processed_events and old completed outbox events.

        Returns total number of rows deleted.
        """
        now = self.clock()
        total_deleted = 0

        with Session(self.engine) as session:
            result = session.execute(
                delete(ProcessedEvent).where(ProcessedEvent.expires_at < now)
            )
            total_deleted += result.rowcount

            result = session.execute(
                delete(EventOutbox).where(
                    EventOutbox.status == EventStatus.COMPLETED,
                    EventOutbox.processed_at < now - COMPLETED_EVENT_RETENTION,
                )
            )
            total_deleted += result.rowcount

            session.commit()

        logger.info("Cleaned up %d expired event records", total_deleted)
        return total_deleted
