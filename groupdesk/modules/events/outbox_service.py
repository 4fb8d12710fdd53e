"""OutboxService: writes domain events to the outbox table."""

from sqlalchemy.ext.asyncio import AsyncSession

from groupdesk.models.enums import EventStatus
from groupdesk.models.event_outbox import EventOutbox


class OutboxService:
    """Publishes events to the outbox; delivery is handled by the processor.

    Events are written in the caller's transaction, so they are only
    delivered if the state change that produced them commits.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def publish_event(
        self,
        event_type: str,
        aggregate_type: str,
        aggregate_id: str,
        payload: dict,
        schema_version: int = 1,
    ) -> EventOutbox:
        """Create a new event in the outbox with PENDING status."""
        event = EventOutbox(
            event_type=event_type,
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            payload=payload,
            status=EventStatus.PENDING,
            retry_count=0,
            max_retries=3,
            schema_version=schema_version,
        )
        self.session.add(event)
        await self.session.flush()
        return event
