"""OutboxProcessor: synchronous batch processor for Celery workers."""

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from groupdesk.models.enums import EventStatus
from groupdesk.models.event_outbox import EventOutbox
from groupdesk.models.processed_event import ProcessedEvent
from groupdesk.modules.events.handlers import EventHandlerRegistry

logger = logging.getLogger(__name__)

PROCESSED_EVENT_TTL = timedelta(days=7)
COMPLETED_EVENT_RETENTION = timedelta(days=30)


class OutboxProcessor:
    """Processes pending outbox events using sync sessions.

    Rows are claimed with SELECT ... FOR UPDATE SKIP LOCKED so several
    workers can drain the outbox concurrently. Idempotency is tracked in the
    processed_events table.
    """

    def __init__(self, engine: Engine | None = None) -> None:
        if engine is None:
            from groupdesk.database.engine import sync_engine

            engine = sync_engine
        self.engine = engine

    def process_batch(self, batch_size: int = 50) -> dict:
        """Process a batch of pending events.

        Returns dict with 'processed' and 'failed' counts.
        """
        processed_count = 0
        failed_count = 0

        with Session(self.engine) as session:
            events = session.execute(
                select(EventOutbox)
                .where(EventOutbox.status == EventStatus.PENDING)
                .order_by(EventOutbox.created_at.asc())
                .limit(batch_size)
                .with_for_update(skip_locked=True)
            ).scalars().all()

            for event in events:
                event_id = event.id
                event_type = event.event_type
                payload = dict(event.payload or {})
                retry_count = event.retry_count
                max_retries = event.max_retries

                try:
                    already_processed = session.execute(
                        select(ProcessedEvent.id).where(ProcessedEvent.event_id == event_id)
                    ).first()

                    if already_processed:
                        event.status = EventStatus.COMPLETED
                        event.processed_at = datetime.now(UTC)
                        session.commit()
                        processed_count += 1
                        continue

                    # Not committed: a crash here rolls the row back to PENDING
                    event.status = EventStatus.PROCESSING
                    session.flush()

                    results = EventHandlerRegistry.dispatch(event_type, payload)

                    handler_errors = [r for r in results if r["status"] == "error"]
                    if handler_errors:
                        error_messages = "; ".join(
                            f"{r['handler']}: {r['error']}" for r in handler_errors
                        )
                        raise RuntimeError(f"Handler errors: {error_messages}")

                    now = datetime.now(UTC)
                    session.add(
                        ProcessedEvent(
                            event_id=event_id,
                            event_type=event_type,
                            handler_name=",".join(r["handler"] for r in results)
                            if results
                            else "no_handlers",
                            processed_at=now,
                            expires_at=now + PROCESSED_EVENT_TTL,
                        )
                    )
                    event.status = EventStatus.COMPLETED
                    event.processed_at = now
                    session.commit()
                    processed_count += 1

                except Exception as exc:
                    session.rollback()
                    logger.exception(
                        "Failed to process event %s (type=%s)", event_id, event_type
                    )

                    failed = session.get(EventOutbox, event_id)
                    new_retry_count = retry_count + 1
                    failed.retry_count = new_retry_count
                    failed.last_error = str(exc)
                    failed.status = (
                        EventStatus.FAILED
                        if new_retry_count >= max_retries
                        else EventStatus.PENDING
                    )
                    session.commit()
                    failed_count += 1

        return {"processed": processed_count, "failed": failed_count}

    def cleanup_expired(self) -> int:
        """Delete expired processed_events and old completed outbox events.

        Returns total number of rows deleted.
        """
        now = datetime.now(UTC)
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
